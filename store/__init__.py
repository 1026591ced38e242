"""Adapter für Verzeichnis, Persistenz und Benachrichtigungen."""

from store.json_store import JsonFileStore
from store.memory import InMemoryStore, StoreSnapshot
from store.notifications import Notification, OutboxChannel

__all__ = [
    "InMemoryStore",
    "JsonFileStore",
    "StoreSnapshot",
    "Notification",
    "OutboxChannel",
]

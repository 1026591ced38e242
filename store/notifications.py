"""Benachrichtigungs-Kanal, der Nachrichten nur sammelt und protokolliert."""

import logging
from datetime import datetime

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class Notification(BaseModel):
    """Eine gesendete Nachricht."""

    recipient_id: str
    payload: dict
    sent_at: datetime = Field(default_factory=datetime.now)

    @property
    def kind(self) -> str:
        return self.payload.get("kind", "")


class OutboxChannel:
    """Sammelt alle Nachrichten in einer Liste (Tests und CLI-Ausgabe)."""

    def __init__(self) -> None:
        self.messages: list[Notification] = []

    async def send(self, recipient_id: str, payload: dict) -> None:
        msg = Notification(recipient_id=recipient_id.upper(), payload=dict(payload))
        self.messages.append(msg)
        logger.info(f"Nachricht an {msg.recipient_id}: {msg.kind or 'ohne Typ'}")

    def to(self, recipient_id: str) -> list[Notification]:
        return [m for m in self.messages if m.recipient_id == recipient_id.upper()]

    def of_kind(self, kind: str) -> list[Notification]:
        return [m for m in self.messages if m.kind == kind]

    def clear(self) -> None:
        self.messages.clear()

    def __len__(self) -> int:
        return len(self.messages)

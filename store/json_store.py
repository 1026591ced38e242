"""JSON-Datei als Ablage für den Engine-Zustand (für die CLI).

Nach jeder Änderung wird der komplette Zustand über Pydantic in die Datei
geschrieben; beim Start wird er von dort geladen.
"""

import logging
from pathlib import Path

from engine.errors import PersistenceError
from store.memory import InMemoryStore, StoreSnapshot

logger = logging.getLogger(__name__)


class JsonFileStore(InMemoryStore):
    """InMemoryStore, der sich selbst in einer JSON-Datei spiegelt."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._loading = True
        snapshot = None
        if self.path.exists():
            try:
                snapshot = StoreSnapshot.load_json(self.path)
            except ValueError as e:
                raise PersistenceError(f"Zustandsdatei ungültig: {self.path}\n{e}") from e
            logger.debug(f"Zustand geladen: {self.path}")
        super().__init__(snapshot)
        self._loading = False

    def flush(self) -> None:
        """Schreibt den aktuellen Zustand in die Datei."""
        try:
            self.snapshot().save_json(self.path)
        except OSError as e:
            logger.error(f"Zustand konnte nicht gespeichert werden: {e}")
            raise PersistenceError(f"Schreiben von {self.path} fehlgeschlagen: {e}") from e

    def _changed(self) -> None:
        if not self._loading:
            self.flush()

    def __repr__(self) -> str:
        return f"JsonFileStore({self.path})"

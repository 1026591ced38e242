"""Fehlerklassen der Scheduling-Engine."""


class SchedulingError(Exception):
    """Basisklasse aller Engine-Fehler."""


class ValidationError(SchedulingError):
    """Ungültige Eingabe (unbekannte Klasse/Trimester, falscher Scope, ...).

    Wird vor jeder Änderung geworfen.
    """


class CapacityExceededError(SchedulingError):
    """Quoten überschreiten die verfügbare Kapazität; nichts wurde geschrieben."""

    def __init__(self, needed: int, available: int, context: str = "") -> None:
        self.needed = needed
        self.available = available
        where = f" ({context})" if context else ""
        super().__init__(
            f"Quoten überschreiten die Kapazität{where}: "
            f"benötigt {needed}, verfügbar {available}"
        )


class NoCandidateFoundError(SchedulingError):
    """Keine Vertretung mehr verfügbar – führt zur Eskalation."""


class PersistenceError(SchedulingError):
    """Lese-/Schreibfehler im Speicher. Keine automatische Wiederholung."""


class AlreadyResolvedError(SchedulingError):
    """Annahme/Ablehnung einer Aufgabe, die nicht mehr offen ist."""

    def __init__(self, task_id: str, state: str) -> None:
        self.task_id = task_id
        self.state = state
        super().__init__(f"Vertretungsaufgabe {task_id} ist bereits abgeschlossen ({state})")

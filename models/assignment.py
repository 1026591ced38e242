"""Quoten-Zuweisung Lehrkraft × Fach × Klasse pro Trimester (Pydantic v2)."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class Assignment(BaseModel):
    """Offene Perioden eines Fachs für eine Klasse in diesem Trimester."""

    teacher_id: str
    subject: str
    class_id: str
    term_id: str
    remaining_quota: int = Field(ge=0)       # Noch geschuldete Perioden
    is_lab: Optional[bool] = None            # None → aus Fachregeln ableiten
    last_decayed_cycle: Optional[str] = None # ISO-Woche des letzten Abbaus ("2026-W43")
    version: int = 0                         # Optimistische Sperre, vom Store erhöht

    @field_validator("teacher_id")
    @classmethod
    def normalize_teacher(cls, v: str) -> str:
        return v.upper()

    @property
    def key(self) -> tuple[str, str, str, str]:
        return (self.teacher_id, self.subject, self.class_id, self.term_id)

    @property
    def is_completed(self) -> bool:
        return self.remaining_quota == 0

    def __str__(self) -> str:
        return f"{self.subject}/{self.class_id} ({self.teacher_id}, {self.remaining_quota} offen)"

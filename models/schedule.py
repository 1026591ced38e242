"""Wochenplan-Einträge und datumsbezogene Vertretungen (Pydantic v2)."""

from datetime import date
from typing import Optional

from pydantic import BaseModel, field_validator


class ScheduleEntry(BaseModel):
    """Eine wiederkehrende Wochenstunde einer Klasse."""

    class_id: str
    term_id: str
    day: int              # 0-basiert (0=Mo, 4=Fr)
    slot_number: int      # Slot-Nummer im Tagesraster
    subject: str
    teacher_id: Optional[str] = None
    is_double_period: bool = False

    @field_validator("teacher_id")
    @classmethod
    def normalize_teacher(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v

    def belongs_to(self, class_id: str, subject: str, teacher_id: str) -> bool:
        return (self.class_id == class_id and self.subject == subject
                and self.teacher_id == teacher_id)


class ScheduleOverride(BaseModel):
    """Vertretung an genau einem Kalenderdatum.

    Der wiederkehrende ScheduleEntry bleibt unverändert; für dieses Datum
    unterrichtet substitute_teacher_id statt original_teacher_id.
    """

    date: date
    class_id: str
    day: int
    slot_number: int
    subject: str
    original_teacher_id: str
    substitute_teacher_id: str
    task_id: str

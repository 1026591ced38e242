"""Abwesenheitsantrag einer Lehrkraft (Pydantic v2)."""

from datetime import date, timedelta
from enum import Enum

from pydantic import BaseModel, field_validator, model_validator


class AbsenceScope(str, Enum):
    FULL = "Full"
    FIRST_HALF = "FirstHalf"
    SECOND_HALF = "SecondHalf"


class AbsenceRequest(BaseModel):
    """Abwesenheit über einen Datumsbereich; erst nach Genehmigung relevant."""

    id: str
    teacher_id: str
    start_date: date
    end_date: date
    scope: AbsenceScope = AbsenceScope.FULL
    reason: str = ""
    approved: bool = False

    @field_validator("teacher_id")
    @classmethod
    def normalize_teacher(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode='after')
    def _check_range(self):
        if self.end_date < self.start_date:
            raise ValueError(
                f"Abwesenheit {self.id}: Ende {self.end_date} liegt vor Beginn {self.start_date}")
        return self

    def weekdays(self) -> list[date]:
        """Alle Tage Mo–Fr im Bereich (inklusive)."""
        days = []
        current = self.start_date
        while current <= self.end_date:
            if current.weekday() < 5:
                days.append(current)
            current += timedelta(days=1)
        return days

    def covers(self, day: date) -> bool:
        return self.approved and self.start_date <= day <= self.end_date

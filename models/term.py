"""Datenmodell für ein Schultrimester (Pydantic v2)."""

from datetime import date

from pydantic import BaseModel, model_validator


class Term(BaseModel):
    """Ein Trimester; nur aktive Trimester werden wöchentlich abgebaut."""

    id: str
    number: int            # 1..3
    start_date: date
    end_date: date
    is_active: bool = True

    @model_validator(mode='after')
    def _check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError(
                f"Trimester {self.id}: Ende {self.end_date} liegt vor Beginn {self.start_date}")
        return self

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

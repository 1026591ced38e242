"""Vertretungsaufgaben und Angebote an Kandidaten (Pydantic v2)."""

import uuid
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from models.timeslot import day_name


class TaskState(str, Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    DECLINED = "Declined"
    ESCALATED = "Escalated"


def new_task_id() -> str:
    return uuid.uuid4().hex[:12]


class Occurrence(BaseModel):
    """Ein datierter Ausfall einer wiederkehrenden Stunde (ggf. Doppelstunde)."""

    absence_id: str
    original_teacher_id: str
    class_id: str
    term_id: str
    subject: str
    date: date
    day: int
    slot_numbers: list[int]   # 1 Slot oder 2 bei Doppelstunde

    @property
    def is_double_period(self) -> bool:
        return len(self.slot_numbers) > 1

    def describe(self) -> str:
        slots = "+".join(str(s) for s in self.slot_numbers)
        return (f"{self.subject} in {self.class_id}, {day_name(self.day)} "
                f"{self.date.isoformat()} Slot {slots}")


class ReplacementTask(BaseModel):
    """Ein Vertretungsversuch: ein Kandidat für ein Occurrence."""

    id: str = Field(default_factory=new_task_id)
    absence_id: str
    original_teacher_id: str
    candidate_teacher_id: Optional[str] = None   # None bei sofortiger Eskalation
    class_id: str
    term_id: str
    subject: str
    slot_numbers: list[int]
    date: date
    day: int
    tier: Optional[int] = None                    # 1..3, Priorität des Angebots
    attempt: int = 1
    excluded_teacher_ids: list[str] = []          # Bereits abgelehnt
    state: TaskState = TaskState.PENDING
    decline_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    resolved_at: Optional[datetime] = None

    @property
    def is_resolved(self) -> bool:
        return self.state != TaskState.PENDING

    def occurrence(self) -> Occurrence:
        return Occurrence(
            absence_id=self.absence_id,
            original_teacher_id=self.original_teacher_id,
            class_id=self.class_id,
            term_id=self.term_id,
            subject=self.subject,
            date=self.date,
            day=self.day,
            slot_numbers=list(self.slot_numbers),
        )


class CandidateOffer(BaseModel):
    """Nachricht an eine Lehrkraft mit der Bitte um Vertretung."""

    task_id: str
    original_teacher_id: str
    class_id: str
    subject: str
    day: str
    slot_numbers: list[int]
    date: date
    priority: int
    kind: str = "replacement_request"

    @classmethod
    def for_task(cls, task: ReplacementTask) -> "CandidateOffer":
        return cls(
            task_id=task.id,
            original_teacher_id=task.original_teacher_id,
            class_id=task.class_id,
            subject=task.subject,
            day=day_name(task.day),
            slot_numbers=list(task.slot_numbers),
            date=task.date,
            priority=task.tier or 3,
        )

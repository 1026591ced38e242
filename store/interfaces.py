"""Schnittstellen zu den externen Kollaborateuren der Engine.

Die Engine kennt nur diese drei Protokolle:
  - DirectoryService      – Lehrkräfte, Klassen, Trimester nachschlagen
  - SchedulePersistence   – CRUD für Zuweisungen, Plan, Slots, Abwesenheiten,
                            Vertretungsaufgaben und datierte Vertretungen
  - NotificationChannel   – send(recipient_id, payload)

Jeder Aufruf ist ein Unterbrechungspunkt (async).
"""

from datetime import date
from typing import Optional, Protocol, runtime_checkable

from config.schema import SlotDefinition
from models.absence import AbsenceRequest
from models.assignment import Assignment
from models.replacement import ReplacementTask, TaskState
from models.schedule import ScheduleEntry, ScheduleOverride
from models.school_class import SchoolClass
from models.teacher import Teacher
from models.term import Term


@runtime_checkable
class DirectoryService(Protocol):
    async def get_teacher(self, teacher_id: str) -> Optional[Teacher]: ...

    async def get_class(self, class_id: str) -> Optional[SchoolClass]: ...

    async def get_term(self, term_id: str) -> Optional[Term]: ...

    async def list_teachers(self, role: Optional[str] = None) -> list[Teacher]: ...


@runtime_checkable
class SchedulePersistence(Protocol):
    # ── Slot-Katalog ──
    async def list_slots(self) -> list[SlotDefinition]: ...

    async def save_slots(self, slots: list[SlotDefinition]) -> None: ...

    # ── Zuweisungen ──
    async def list_assignments(
        self,
        class_id: Optional[str] = None,
        term_id: Optional[str] = None,
        teacher_id: Optional[str] = None,
        subject: Optional[str] = None,
    ) -> list[Assignment]: ...

    async def save_assignment(self, assignment: Assignment) -> Assignment: ...

    async def apply_decay(self, assignment: Assignment, release_entries: bool) -> int: ...

    # ── Wochenplan ──
    async def list_entries(
        self,
        class_id: Optional[str] = None,
        teacher_id: Optional[str] = None,
        day: Optional[int] = None,
        term_id: Optional[str] = None,
    ) -> list[ScheduleEntry]: ...

    async def replace_class_schedule(
        self, class_id: str, term_id: str, entries: list[ScheduleEntry]
    ) -> None: ...

    # ── Abwesenheiten ──
    async def get_absence(self, absence_id: str) -> Optional[AbsenceRequest]: ...

    async def save_absence(self, absence: AbsenceRequest) -> None: ...

    async def list_absences(
        self, teacher_id: Optional[str] = None, approved: Optional[bool] = None
    ) -> list[AbsenceRequest]: ...

    # ── Vertretungsaufgaben ──
    async def get_task(self, task_id: str) -> Optional[ReplacementTask]: ...

    async def save_task(self, task: ReplacementTask) -> None: ...

    async def list_tasks(
        self,
        state: Optional[TaskState] = None,
        absence_id: Optional[str] = None,
        on_date: Optional[date] = None,
    ) -> list[ReplacementTask]: ...

    # ── Datierte Vertretungen ──
    async def accept_task(
        self, task: ReplacementTask, overrides: list[ScheduleOverride]
    ) -> None: ...

    async def list_overrides(
        self,
        on_date: Optional[date] = None,
        class_id: Optional[str] = None,
        teacher_id: Optional[str] = None,
    ) -> list[ScheduleOverride]: ...


@runtime_checkable
class NotificationChannel(Protocol):
    async def send(self, recipient_id: str, payload: dict) -> None: ...

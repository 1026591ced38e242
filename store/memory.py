"""In-Memory-Implementierung von DirectoryService und SchedulePersistence.

Alle Lese- und Schreibzugriffe arbeiten mit Kopien, damit Aufrufer den
gespeicherten Zustand nicht versehentlich verändern.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from config.schema import SlotDefinition
from engine.errors import PersistenceError
from models.absence import AbsenceRequest
from models.assignment import Assignment
from models.replacement import ReplacementTask, TaskState
from models.schedule import ScheduleEntry, ScheduleOverride
from models.school_class import SchoolClass
from models.teacher import Teacher
from models.term import Term

logger = logging.getLogger(__name__)


class StoreSnapshot(BaseModel):
    """Vollständiger Speicherinhalt (für JSON-Ablage und Tests)."""

    teachers: list[Teacher] = []
    classes: list[SchoolClass] = []
    terms: list[Term] = []
    slots: list[SlotDefinition] = []
    assignments: list[Assignment] = []
    entries: list[ScheduleEntry] = []
    absences: list[AbsenceRequest] = []
    tasks: list[ReplacementTask] = []
    overrides: list[ScheduleOverride] = []

    def save_json(self, path: Path) -> None:
        """Speichert den Zustand als JSON-Datei."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.model_dump_json(indent=2))

    @classmethod
    def load_json(cls, path: Path) -> "StoreSnapshot":
        """Lädt einen gespeicherten Zustand aus JSON."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Zustandsdatei nicht gefunden: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate_json(f.read())


class InMemoryStore:
    """Verzeichnis + Persistenz in einem Objekt."""

    def __init__(self, snapshot: Optional[StoreSnapshot] = None) -> None:
        self._teachers: dict[str, Teacher] = {}
        self._classes: dict[str, SchoolClass] = {}
        self._terms: dict[str, Term] = {}
        self._slots: list[SlotDefinition] = []
        self._assignments: dict[tuple, Assignment] = {}
        self._entries: list[ScheduleEntry] = []
        self._absences: dict[str, AbsenceRequest] = {}
        self._tasks: dict[str, ReplacementTask] = {}
        self._overrides: list[ScheduleOverride] = []
        if snapshot is not None:
            self.load_snapshot(snapshot)

    # ─── Snapshot ─────────────────────────────────────────────────────────────

    def load_snapshot(self, snapshot: StoreSnapshot) -> None:
        self._teachers = {t.id: t for t in snapshot.teachers}
        self._classes = {c.id: c for c in snapshot.classes}
        self._terms = {t.id: t for t in snapshot.terms}
        self._slots = list(snapshot.slots)
        self._assignments = {a.key: a for a in snapshot.assignments}
        self._entries = list(snapshot.entries)
        self._absences = {a.id: a for a in snapshot.absences}
        self._tasks = {t.id: t for t in snapshot.tasks}
        self._overrides = list(snapshot.overrides)

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            teachers=list(self._teachers.values()),
            classes=list(self._classes.values()),
            terms=list(self._terms.values()),
            slots=list(self._slots),
            assignments=list(self._assignments.values()),
            entries=list(self._entries),
            absences=list(self._absences.values()),
            tasks=list(self._tasks.values()),
            overrides=list(self._overrides),
        ).model_copy(deep=True)

    # ─── Stammdaten (synchron, für Seeds und Tests) ───────────────────────────

    def add_teacher(self, teacher: Teacher) -> None:
        self._teachers[teacher.id] = teacher.model_copy()
        self._changed()

    def add_class(self, school_class: SchoolClass) -> None:
        self._classes[school_class.id] = school_class.model_copy()
        self._changed()

    def add_term(self, term: Term) -> None:
        self._terms[term.id] = term.model_copy()
        self._changed()

    def add_entries(self, entries: list[ScheduleEntry]) -> None:
        self._entries.extend(e.model_copy() for e in entries)
        self._changed()

    # ─── DirectoryService ─────────────────────────────────────────────────────

    async def get_teacher(self, teacher_id: str) -> Optional[Teacher]:
        t = self._teachers.get(teacher_id.upper())
        return t.model_copy() if t else None

    async def get_class(self, class_id: str) -> Optional[SchoolClass]:
        c = self._classes.get(class_id)
        return c.model_copy() if c else None

    async def get_term(self, term_id: str) -> Optional[Term]:
        t = self._terms.get(term_id)
        return t.model_copy() if t else None

    async def list_teachers(self, role: Optional[str] = None) -> list[Teacher]:
        return [
            t.model_copy() for t in sorted(self._teachers.values(), key=lambda t: t.id)
            if role is None or t.role == role
        ]

    async def list_classes(self) -> list[SchoolClass]:
        return [c.model_copy() for c in sorted(self._classes.values(), key=lambda c: c.id)]

    # ─── Slot-Katalog ─────────────────────────────────────────────────────────

    async def list_slots(self) -> list[SlotDefinition]:
        return sorted(self._slots, key=lambda s: s.slot_number)

    async def save_slots(self, slots: list[SlotDefinition]) -> None:
        numbers = [s.slot_number for s in slots]
        if len(numbers) != len(set(numbers)):
            raise PersistenceError("Slot-Nummern sind nicht eindeutig")
        self._slots = list(slots)
        self._changed()

    # ─── Zuweisungen ──────────────────────────────────────────────────────────

    async def list_assignments(
        self,
        class_id: Optional[str] = None,
        term_id: Optional[str] = None,
        teacher_id: Optional[str] = None,
        subject: Optional[str] = None,
    ) -> list[Assignment]:
        result = []
        for a in self._assignments.values():
            if class_id is not None and a.class_id != class_id:
                continue
            if term_id is not None and a.term_id != term_id:
                continue
            if teacher_id is not None and a.teacher_id != teacher_id.upper():
                continue
            if subject is not None and a.subject != subject:
                continue
            result.append(a.model_copy())
        return result

    def _check_version(self, assignment: Assignment) -> None:
        current = self._assignments.get(assignment.key)
        if current is not None and current.version != assignment.version:
            raise PersistenceError(
                f"Versionskonflikt für {assignment}: gespeichert v{current.version}, "
                f"geschrieben v{assignment.version}"
            )

    async def save_assignment(self, assignment: Assignment) -> Assignment:
        self._check_version(assignment)
        stored = assignment.model_copy(update={"version": assignment.version + 1})
        self._assignments[stored.key] = stored
        self._changed()
        return stored.model_copy()

    async def apply_decay(self, assignment: Assignment, release_entries: bool) -> int:
        """Schreibt die abgebaute Quote und löscht ggf. die Plan-Einträge – atomar."""
        self._check_version(assignment)
        stored = assignment.model_copy(update={"version": assignment.version + 1})
        released = 0
        if release_entries:
            keep = []
            for e in self._entries:
                if (e.term_id == assignment.term_id
                        and e.belongs_to(assignment.class_id, assignment.subject,
                                         assignment.teacher_id)):
                    released += 1
                else:
                    keep.append(e)
            self._entries = keep
        self._assignments[stored.key] = stored
        self._changed()
        return released

    # ─── Wochenplan ───────────────────────────────────────────────────────────

    async def list_entries(
        self,
        class_id: Optional[str] = None,
        teacher_id: Optional[str] = None,
        day: Optional[int] = None,
        term_id: Optional[str] = None,
    ) -> list[ScheduleEntry]:
        result = []
        for e in self._entries:
            if class_id is not None and e.class_id != class_id:
                continue
            if teacher_id is not None and e.teacher_id != teacher_id.upper():
                continue
            if day is not None and e.day != day:
                continue
            if term_id is not None and e.term_id != term_id:
                continue
            result.append(e.model_copy())
        return result

    async def replace_class_schedule(
        self, class_id: str, term_id: str, entries: list[ScheduleEntry]
    ) -> None:
        for e in entries:
            if e.class_id != class_id or e.term_id != term_id:
                raise PersistenceError(
                    f"Eintrag gehört nicht zu {class_id}/{term_id}: {e.class_id}/{e.term_id}"
                )
        self._entries = [
            e for e in self._entries
            if not (e.class_id == class_id and e.term_id == term_id)
        ] + [e.model_copy() for e in entries]
        logger.debug(f"Plan {class_id}/{term_id} ersetzt: {len(entries)} Einträge")
        self._changed()

    # ─── Abwesenheiten ────────────────────────────────────────────────────────

    async def get_absence(self, absence_id: str) -> Optional[AbsenceRequest]:
        a = self._absences.get(absence_id)
        return a.model_copy() if a else None

    async def save_absence(self, absence: AbsenceRequest) -> None:
        self._absences[absence.id] = absence.model_copy()
        self._changed()

    async def list_absences(
        self, teacher_id: Optional[str] = None, approved: Optional[bool] = None
    ) -> list[AbsenceRequest]:
        return [
            a.model_copy() for a in self._absences.values()
            if (teacher_id is None or a.teacher_id == teacher_id.upper())
            and (approved is None or a.approved == approved)
        ]

    # ─── Vertretungsaufgaben ──────────────────────────────────────────────────

    async def get_task(self, task_id: str) -> Optional[ReplacementTask]:
        t = self._tasks.get(task_id)
        return t.model_copy(deep=True) if t else None

    async def save_task(self, task: ReplacementTask) -> None:
        self._tasks[task.id] = task.model_copy(deep=True)
        self._changed()

    async def list_tasks(
        self,
        state: Optional[TaskState] = None,
        absence_id: Optional[str] = None,
        on_date: Optional[date] = None,
    ) -> list[ReplacementTask]:
        result = [
            t.model_copy(deep=True) for t in self._tasks.values()
            if (state is None or t.state == state)
            and (absence_id is None or t.absence_id == absence_id)
            and (on_date is None or t.date == on_date)
        ]
        result.sort(key=lambda t: t.created_at)
        return result

    # ─── Datierte Vertretungen ────────────────────────────────────────────────

    async def accept_task(self, task: ReplacementTask,
                          overrides: list[ScheduleOverride]) -> None:
        """Speichert die angenommene Aufgabe samt Vertretungen – atomar."""
        for override in overrides:
            if override.task_id != task.id:
                raise PersistenceError(
                    f"Vertretung {override.class_id}/{override.slot_number} gehört "
                    f"nicht zu Aufgabe {task.id}"
                )
        replaced = {(o.date, o.class_id, o.slot_number) for o in overrides}
        self._overrides = [
            o for o in self._overrides
            if (o.date, o.class_id, o.slot_number) not in replaced
        ] + [o.model_copy() for o in overrides]
        self._tasks[task.id] = task.model_copy(deep=True)
        self._changed()

    async def list_overrides(
        self,
        on_date: Optional[date] = None,
        class_id: Optional[str] = None,
        teacher_id: Optional[str] = None,
    ) -> list[ScheduleOverride]:
        return [
            o.model_copy() for o in self._overrides
            if (on_date is None or o.date == on_date)
            and (class_id is None or o.class_id == class_id)
            and (teacher_id is None or o.substitute_teacher_id == teacher_id.upper())
        ]

    # ─── Hook ─────────────────────────────────────────────────────────────────

    def _changed(self) -> None:
        """Wird nach jeder Änderung aufgerufen (JsonFileStore speichert hier)."""

    def __repr__(self) -> str:
        return (f"InMemoryStore({len(self._assignments)} assignments, "
                f"{len(self._entries)} entries, {len(self._tasks)} tasks)")

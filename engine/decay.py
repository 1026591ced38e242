"""Wöchentlicher Quotenabbau.

Für jede Zuweisung eines aktiven Trimesters werden die Einträge des
Wochenplans gezählt und von der offenen Quote abgezogen (nie unter 0).
Erreicht die Quote 0, werden die passenden Einträge im selben Speicheraufruf
gelöscht und alle Admins benachrichtigt.

Jede Zuweisung trägt die ISO-Woche ihres letzten Abbaus; ein zweiter Lauf
in derselben Woche ändert nichts.
"""

import logging
from datetime import date
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel

from engine.errors import PersistenceError
from engine.locks import KeyedLocks, class_key
from models.assignment import Assignment
from models.term import Term
from store.interfaces import DirectoryService, NotificationChannel, SchedulePersistence

logger = logging.getLogger(__name__)


def cycle_of(reference_date: date) -> str:
    """ISO-Woche als Zyklus-Kennung, z.B. "2026-W43"."""
    year, week, _ = reference_date.isocalendar()
    return f"{year}-W{week:02d}"


class CompletedCourse(BaseModel):
    """Zuweisung, deren Quote in diesem Lauf 0 erreicht hat."""

    teacher_id: str
    subject: str
    class_id: str
    term_id: str
    released_entries: int


class DecayResult(BaseModel):
    """Ergebnis eines Abbau-Laufs."""

    cycle: str
    reduced_count: int = 0
    completed_count: int = 0
    skipped: int = 0           # Schon in diesem Zyklus abgebaut
    completed: list[CompletedCourse] = []
    failed: list[str] = []


class WeeklyDecay:
    """Zieht die Wochenstunden von den offenen Quoten ab."""

    def __init__(
        self,
        directory: DirectoryService,
        persistence: SchedulePersistence,
        notifier: NotificationChannel,
        admin_ids: Callable[[], Awaitable[list[str]]],
        locks: Optional[KeyedLocks] = None,
    ) -> None:
        self.directory = directory
        self.persistence = persistence
        self.notifier = notifier
        self.admin_ids = admin_ids
        self.locks = locks or KeyedLocks()

    async def _active_terms(self, assignments: list[Assignment]) -> dict[str, Term]:
        terms = {}
        for term_id in {a.term_id for a in assignments}:
            term = await self.directory.get_term(term_id)
            if term is not None and term.is_active:
                terms[term_id] = term
        return terms

    async def run(self, reference_date: Optional[date] = None) -> DecayResult:
        reference_date = reference_date or date.today()
        cycle = cycle_of(reference_date)
        result = DecayResult(cycle=cycle)

        assignments = await self.persistence.list_assignments()
        active_terms = await self._active_terms(assignments)

        for a in sorted(assignments, key=lambda a: a.key):
            if a.term_id not in active_terms or a.remaining_quota == 0:
                continue
            if a.last_decayed_cycle == cycle:
                result.skipped += 1
                continue
            try:
                completed = await self._decay_one(a, cycle, result)
            except PersistenceError as exc:
                logger.error(f"Abbau für {a} fehlgeschlagen: {exc}")
                result.failed.append(str(a))
                continue
            if completed is not None:
                await self._notify_completed(completed, cycle)

        logger.info(
            f"Quotenabbau {cycle}: {result.reduced_count} reduziert, "
            f"{result.completed_count} abgeschlossen, {result.skipped} übersprungen"
        )
        return result

    async def _decay_one(
        self, a: Assignment, cycle: str, result: DecayResult
    ) -> Optional[CompletedCourse]:
        async with self.locks.hold(class_key(a.class_id)):
            # Frisch lesen: Version und Zyklus könnten sich geändert haben
            fresh = await self.persistence.list_assignments(
                class_id=a.class_id, term_id=a.term_id,
                teacher_id=a.teacher_id, subject=a.subject)
            if not fresh:
                return None
            current = fresh[0]
            if current.last_decayed_cycle == cycle or current.remaining_quota == 0:
                result.skipped += 1
                return None

            entries = await self.persistence.list_entries(
                class_id=a.class_id, teacher_id=a.teacher_id, term_id=a.term_id)
            taught = sum(1 for e in entries if e.subject == a.subject)
            new_quota = max(0, current.remaining_quota - taught)
            updated = current.model_copy(update={
                "remaining_quota": new_quota,
                "last_decayed_cycle": cycle,
            })
            released = await self.persistence.apply_decay(
                updated, release_entries=new_quota == 0)

        if new_quota < current.remaining_quota:
            result.reduced_count += 1
            logger.debug(f"{a.subject}/{a.class_id}: {current.remaining_quota} → {new_quota}")
        if new_quota > 0:
            return None

        result.completed_count += 1
        done = CompletedCourse(
            teacher_id=a.teacher_id,
            subject=a.subject,
            class_id=a.class_id,
            term_id=a.term_id,
            released_entries=released,
        )
        result.completed.append(done)
        return done

    async def _notify_completed(self, done: CompletedCourse, cycle: str) -> None:
        logger.info(f"Kurs abgeschlossen: {done.subject} in {done.class_id} ({done.teacher_id})")
        payload = {"kind": "course_completed", "cycle": cycle, **done.model_dump(mode="json")}
        for admin_id in await self.admin_ids():
            await self.notifier.send(admin_id, payload)

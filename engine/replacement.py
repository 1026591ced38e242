"""Vertretungs-Workflow nach genehmigter Abwesenheit.

Zustände pro Ausfall:
    Pending --annehmen--> Accepted (Ende)
    Pending --ablehnen--> Declined --> neues Pending (nächster Kandidat)
                                   --> Escalated (Ende, einmalige Admin-Meldung)

Jede Kandidatensuche läuft über eine Warteschlange von WorkItems
(Ausfall + ausgeschlossene Lehrkräfte). Die Suche und das Speichern des
Angebots sind pro Datum gesperrt, damit kein Kandidat zweimal für
denselben Slot angefragt wird.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel

from analysis.candidates import CandidateContext, CandidateFinder
from config.schema import ReplacementConfig
from engine.errors import (
    AlreadyResolvedError,
    NoCandidateFoundError,
    PersistenceError,
    ValidationError,
)
from engine.locks import KeyedLocks, class_key, date_key, task_key, teacher_key
from models.absence import AbsenceRequest, AbsenceScope
from models.replacement import CandidateOffer, Occurrence, ReplacementTask, TaskState
from models.schedule import ScheduleEntry, ScheduleOverride
from models.slot import SlotCatalog
from models.term import Term
from store.interfaces import DirectoryService, NotificationChannel, SchedulePersistence

logger = logging.getLogger(__name__)


# ─── Ergebnis-Modelle ─────────────────────────────────────────────────────────

class ProcessResult(BaseModel):
    """Zusammenfassung einer verarbeiteten Abwesenheit."""

    absence_id: str
    occurrences_affected: int = 0
    offers_sent: int = 0
    escalated: int = 0
    skipped: int = 0               # Bereits bei früherem Lauf bearbeitet
    failed: list[str] = []         # Beschreibung der Ausfälle mit Speicherfehler
    task_ids: list[str] = []


class DeclineResult(BaseModel):
    """Ergebnis einer Ablehnung (manuell oder per Zeitablauf)."""

    task_id: str
    next_candidate_notified: bool = False
    escalated: bool = False
    next_task_id: Optional[str] = None
    next_candidate_id: Optional[str] = None


@dataclass
class WorkItem:
    """Ein offener Ausfall in der Warteschlange."""

    occurrence: Occurrence
    excluded: list[str] = field(default_factory=list)
    attempt: int = 1
    declined_task: Optional[ReplacementTask] = None   # Wird bei leerem Pool eskaliert


# ─── Betroffene Stunden ───────────────────────────────────────────────────────

def _in_scope(scope: AbsenceScope, slot_number: int, catalog: SlotCatalog) -> bool:
    if scope == AbsenceScope.FIRST_HALF:
        return catalog.is_first_half(slot_number)
    if scope == AbsenceScope.SECOND_HALF:
        return catalog.is_second_half(slot_number)
    return True


def affected_occurrences(
    absence: AbsenceRequest,
    entries: list[ScheduleEntry],
    catalog: SlotCatalog,
    terms: Optional[dict[str, Term]] = None,
) -> list[Occurrence]:
    """Alle datierten Stunden der Lehrkraft, die durch die Abwesenheit ausfallen.

    Beide Hälften einer Doppelstunde, die zusammen ausfallen, bilden einen
    Ausfall. Einträge eines Trimesters, das das Datum nicht enthält, zählen nicht.
    """
    terms = terms or {}
    own = sorted(
        (e for e in entries if e.teacher_id == absence.teacher_id),
        key=lambda e: (e.day, e.slot_number),
    )
    result: list[Occurrence] = []

    for day in absence.weekdays():
        weekday = day.weekday()
        todays = [
            e for e in own
            if e.day == weekday
            and _in_scope(absence.scope, e.slot_number, catalog)
            and (e.term_id not in terms or terms[e.term_id].contains(day))
        ]
        i = 0
        while i < len(todays):
            e = todays[i]
            slots = [e.slot_number]
            if e.is_double_period and i + 1 < len(todays):
                nxt = todays[i + 1]
                if (nxt.is_double_period
                        and nxt.slot_number == catalog.partner_of(e.slot_number, previous=False)
                        and nxt.class_id == e.class_id and nxt.subject == e.subject):
                    slots.append(nxt.slot_number)
                    i += 1
            result.append(Occurrence(
                absence_id=absence.id,
                original_teacher_id=absence.teacher_id,
                class_id=e.class_id,
                term_id=e.term_id,
                subject=e.subject,
                date=day,
                day=weekday,
                slot_numbers=slots,
            ))
            i += 1
    return result


def _occurrence_key(occ_or_task) -> tuple:
    return (occ_or_task.date, occ_or_task.class_id, tuple(occ_or_task.slot_numbers))


# ─── Workflow ─────────────────────────────────────────────────────────────────

class ReplacementEngine:
    """Erzeugt Vertretungsangebote und führt die Aufgaben durch ihre Zustände."""

    def __init__(
        self,
        directory: DirectoryService,
        persistence: SchedulePersistence,
        notifier: NotificationChannel,
        load_catalog: Callable[[], Awaitable[SlotCatalog]],
        config: Optional[ReplacementConfig] = None,
        locks: Optional[KeyedLocks] = None,
        finder: Optional[CandidateFinder] = None,
    ) -> None:
        self.directory = directory
        self.persistence = persistence
        self.notifier = notifier
        self.load_catalog = load_catalog
        self.config = config or ReplacementConfig()
        self.locks = locks or KeyedLocks()
        self.finder = finder or CandidateFinder()

    # ── Abwesenheit verarbeiten ───────────────────────────────────────────────

    async def process_absence(self, absence_id: str) -> ProcessResult:
        absence = await self.persistence.get_absence(absence_id)
        if absence is None:
            raise ValidationError(f"Unbekannte Abwesenheit: {absence_id}")
        if not absence.approved:
            raise ValidationError(f"Abwesenheit {absence_id} ist nicht genehmigt")

        catalog = await self.load_catalog()
        entries = await self.persistence.list_entries(teacher_id=absence.teacher_id)
        terms: dict[str, Term] = {}
        for term_id in {e.term_id for e in entries}:
            term = await self.directory.get_term(term_id)
            if term is not None:
                terms[term_id] = term

        occurrences = affected_occurrences(absence, entries, catalog, terms)
        existing = await self.persistence.list_tasks(absence_id=absence.id)
        handled = {_occurrence_key(t) for t in existing}

        result = ProcessResult(absence_id=absence.id, occurrences_affected=len(occurrences))
        logger.info(
            f"Abwesenheit {absence.id} ({absence.teacher_id}, {absence.scope.value}): "
            f"{len(occurrences)} betroffene Stunde(n)"
        )

        # Ausfälle einer Abwesenheit werden nacheinander bearbeitet
        for occ in occurrences:
            if _occurrence_key(occ) in handled:
                result.skipped += 1
                continue
            try:
                task = await self._offer_or_escalate(WorkItem(occurrence=occ))
            except PersistenceError as exc:
                logger.error(f"Speicherfehler bei {occ.describe()}: {exc}")
                result.failed.append(occ.describe())
                continue
            result.task_ids.append(task.id)
            if task.state == TaskState.ESCALATED:
                result.escalated += 1
            else:
                result.offers_sent += 1
        return result

    # ── Annehmen / Ablehnen ───────────────────────────────────────────────────

    async def _pending_task(self, task_id: str, candidate_id: str) -> ReplacementTask:
        task = await self.persistence.get_task(task_id)
        if task is None:
            raise ValidationError(f"Unbekannte Vertretungsaufgabe: {task_id}")
        if task.is_resolved:
            raise AlreadyResolvedError(task.id, task.state.value)
        if task.candidate_teacher_id != candidate_id.upper():
            raise ValidationError(
                f"Aufgabe {task_id} ist an {task.candidate_teacher_id} gerichtet, "
                f"nicht an {candidate_id.upper()}"
            )
        return task

    async def accept(self, task_id: str, candidate_id: str) -> ReplacementTask:
        """Nimmt ein Angebot an und legt die datierte Vertretung an."""
        async with self.locks.hold(task_key(task_id)):
            task = await self._pending_task(task_id, candidate_id)
            async with self.locks.hold(class_key(task.class_id),
                                       teacher_key(task.candidate_teacher_id)):
                overrides = [
                    ScheduleOverride(
                        date=task.date,
                        class_id=task.class_id,
                        day=task.day,
                        slot_number=slot,
                        subject=task.subject,
                        original_teacher_id=task.original_teacher_id,
                        substitute_teacher_id=task.candidate_teacher_id,
                        task_id=task.id,
                    )
                    for slot in task.slot_numbers
                ]
                task.state = TaskState.ACCEPTED
                task.resolved_at = datetime.now()
                # Aufgabe und Vertretungen gemeinsam; schlägt es fehl, bleibt sie Pending
                await self.persistence.accept_task(task, overrides)

        logger.info(f"Vertretung angenommen: {task.candidate_teacher_id} für "
                    f"{task.occurrence().describe()}")
        await self._notify_admins({
            "kind": "replacement_accepted",
            "task_id": task.id,
            "substitute_teacher_id": task.candidate_teacher_id,
            **task.occurrence().model_dump(mode="json"),
        })
        return task

    async def _mark_declined(self, task_id: str, candidate_id: str, reason: str) -> WorkItem:
        async with self.locks.hold(task_key(task_id)):
            task = await self._pending_task(task_id, candidate_id)
            task.state = TaskState.DECLINED
            task.decline_reason = reason
            task.resolved_at = datetime.now()
            await self.persistence.save_task(task)
        logger.info(f"Vertretung abgelehnt: {task.candidate_teacher_id} ({reason or '-'}) "
                    f"für {task.occurrence().describe()}")
        return WorkItem(
            occurrence=task.occurrence(),
            excluded=task.excluded_teacher_ids + [task.candidate_teacher_id],
            attempt=task.attempt + 1,
            declined_task=task,
        )

    async def decline(self, task_id: str, candidate_id: str, reason: str = "") -> DeclineResult:
        """Lehnt ein Angebot ab und sucht sofort den nächsten Kandidaten."""
        item = await self._mark_declined(task_id, candidate_id, reason)
        results = await self._drain(deque([item]))
        return results[0]

    async def expire_stale_offers(self, now: Optional[datetime] = None) -> list[DeclineResult]:
        """Offene Angebote älter als offer_timeout_minutes gelten als abgelehnt."""
        now = now or datetime.now()
        cutoff = now - timedelta(minutes=self.config.offer_timeout_minutes)
        stale = [t for t in await self.persistence.list_tasks(state=TaskState.PENDING)
                 if t.created_at <= cutoff]
        queue: deque[WorkItem] = deque()
        for task in stale:
            logger.warning(f"Angebot {task.id} an {task.candidate_teacher_id} abgelaufen")
            try:
                queue.append(await self._mark_declined(
                    task.id, task.candidate_teacher_id, "timeout"))
            except AlreadyResolvedError:
                # Zwischenzeitlich angenommen
                continue
        return await self._drain(queue)

    # ── Warteschlange ─────────────────────────────────────────────────────────

    async def _drain(self, queue: deque[WorkItem]) -> list[DeclineResult]:
        """Sucht für jeden abgelehnten Ausfall den nächsten Kandidaten."""
        results: list[DeclineResult] = []
        while queue:
            item = queue.popleft()
            nxt = await self._offer_or_escalate(item)
            declined_id = item.declined_task.id if item.declined_task else nxt.id
            if nxt.state == TaskState.ESCALATED:
                results.append(DeclineResult(task_id=declined_id, escalated=True))
            else:
                results.append(DeclineResult(
                    task_id=declined_id,
                    next_candidate_notified=True,
                    next_task_id=nxt.id,
                    next_candidate_id=nxt.candidate_teacher_id,
                ))
        return results

    async def _offer_or_escalate(self, item: WorkItem) -> ReplacementTask:
        occ = item.occurrence
        async with self.locks.hold(date_key(occ.date)):
            ctx = await self._context(occ, item.excluded)
            try:
                match = self.finder.find(ctx)
            except NoCandidateFoundError as exc:
                logger.info(str(exc))
                return await self._escalate(item)

            task = ReplacementTask(
                absence_id=occ.absence_id,
                original_teacher_id=occ.original_teacher_id,
                candidate_teacher_id=match.teacher_id,
                class_id=occ.class_id,
                term_id=occ.term_id,
                subject=occ.subject,
                slot_numbers=list(occ.slot_numbers),
                date=occ.date,
                day=occ.day,
                tier=match.tier,
                attempt=item.attempt,
                excluded_teacher_ids=list(item.excluded),
            )
            await self.persistence.save_task(task)

        offer = CandidateOffer.for_task(task)
        await self.notifier.send(match.teacher_id, offer.model_dump(mode="json"))
        logger.info(f"Angebot an {match.teacher_id} (Stufe {match.tier}: {match.tier_name}) "
                    f"für {occ.describe()}")
        return task

    async def _escalate(self, item: WorkItem) -> ReplacementTask:
        occ = item.occurrence
        if item.declined_task is not None:
            task = item.declined_task
            task.excluded_teacher_ids = list(item.excluded)
        else:
            task = ReplacementTask(
                absence_id=occ.absence_id,
                original_teacher_id=occ.original_teacher_id,
                class_id=occ.class_id,
                term_id=occ.term_id,
                subject=occ.subject,
                slot_numbers=list(occ.slot_numbers),
                date=occ.date,
                day=occ.day,
                attempt=item.attempt,
                excluded_teacher_ids=list(item.excluded),
            )
        task.state = TaskState.ESCALATED
        task.resolved_at = datetime.now()
        await self.persistence.save_task(task)

        logger.info(f"Eskalation an Admins: {occ.describe()}")
        await self._notify_admins({
            "kind": "replacement_escalated",
            "task_id": task.id,
            "declined_by": list(item.excluded),
            **occ.model_dump(mode="json"),
        })
        return task

    async def _context(self, occ: Occurrence, excluded: list[str]) -> CandidateContext:
        return CandidateContext(
            occurrence=occ,
            catalog=await self.load_catalog(),
            teachers=await self.directory.list_teachers(role=self.config.teacher_role),
            day_entries=await self.persistence.list_entries(day=occ.day),
            overrides=await self.persistence.list_overrides(on_date=occ.date),
            pending_tasks=await self.persistence.list_tasks(
                state=TaskState.PENDING, on_date=occ.date),
            absences=await self.persistence.list_absences(approved=True),
            assignments=await self.persistence.list_assignments(
                class_id=occ.class_id, subject=occ.subject),
            excluded=set(excluded),
        )

    # ── Benachrichtigungen ────────────────────────────────────────────────────

    async def admin_ids(self) -> list[str]:
        admins = await self.directory.list_teachers(role="admin")
        return [a.id for a in admins] or [i.upper() for i in self.config.fallback_admin_ids]

    async def _notify_admins(self, payload: dict) -> None:
        for admin_id in await self.admin_ids():
            await self.notifier.send(admin_id, payload)

"""SchedulingEngine: die Operationen, die von außen aufgerufen werden.

Verdrahtet Generator, Konflikt-Prüfung, Vertretungs-Workflow und
Quotenabbau mit den drei Kollaborateuren (Verzeichnis, Persistenz,
Benachrichtigung). Alle Operationen sind async.
"""

import logging
from datetime import date, datetime
from typing import Optional

from analysis.conflict_validator import Conflict, ConflictValidator
from analysis.quota_report import QuotaReport, build_quota_report
from config.defaults import default_engine_config
from config.schema import EngineConfig
from engine.capacity import check_assignment_capacity, monthly_capacity
from engine.decay import DecayResult, WeeklyDecay
from engine.errors import ValidationError
from engine.generator import AvailabilityGrid, GenerationSummary, TimetableGenerator
from engine.locks import KeyedLocks, class_key, teacher_key
from engine.replacement import DeclineResult, ProcessResult, ReplacementEngine
from models.absence import AbsenceRequest
from models.assignment import Assignment
from models.replacement import ReplacementTask
from models.schedule import ScheduleEntry
from models.school_class import SchoolClass
from models.slot import SlotCatalog
from models.timeslot import DAY_NAMES
from store.interfaces import DirectoryService, NotificationChannel, SchedulePersistence

logger = logging.getLogger(__name__)


class SchedulingEngine:
    """Fassade über alle Teilkomponenten."""

    def __init__(
        self,
        directory: DirectoryService,
        persistence: SchedulePersistence,
        notifier: NotificationChannel,
        config: Optional[EngineConfig] = None,
        locks: Optional[KeyedLocks] = None,
    ) -> None:
        self.directory = directory
        self.persistence = persistence
        self.notifier = notifier
        self.config = config or default_engine_config()
        self.locks = locks or KeyedLocks()
        self.validator = ConflictValidator()
        self.replacements = ReplacementEngine(
            directory, persistence, notifier,
            load_catalog=self.catalog,
            config=self.config.replacement,
            locks=self.locks,
        )
        self.decay = WeeklyDecay(
            directory, persistence, notifier,
            admin_ids=self.replacements.admin_ids,
            locks=self.locks,
        )

    # ─── Hilfen ───────────────────────────────────────────────────────────────

    async def catalog(self) -> SlotCatalog:
        """Slot-Katalog aus dem Speicher; fehlt er, wird das Config-Raster angelegt."""
        slots = await self.persistence.list_slots()
        if not slots:
            slots = list(self.config.time_grid.slots)
            await self.persistence.save_slots(slots)
            logger.info(f"Standard-Zeitraster angelegt ({len(slots)} Slots)")
        return SlotCatalog(slots, self.config.time_grid.half_day_split)

    async def _require_class(self, class_id: str) -> SchoolClass:
        school_class = await self.directory.get_class(class_id)
        if school_class is None:
            raise ValidationError(f"Unbekannte Klasse: {class_id}")
        return school_class

    async def _require_term(self, term_id: str):
        term = await self.directory.get_term(term_id)
        if term is None:
            raise ValidationError(f"Unbekanntes Trimester: {term_id}")
        return term

    # ─── Generator ────────────────────────────────────────────────────────────

    async def generate_timetable(self, class_id: str, term_id: str) -> GenerationSummary:
        """Erzeugt den Wochenplan und ersetzt den bisherigen Plan der Klasse.

        Raises:
            ValidationError: unbekannte Klasse oder unbekanntes Trimester
            CapacityExceededError: Quoten passen nicht in die Woche; nichts geschrieben
        """
        await self._require_class(class_id)
        await self._require_term(term_id)
        catalog = await self.catalog()
        generator = TimetableGenerator(
            catalog, self.config.subjects, self.config.time_grid.days_per_week)

        # Zuweisungen erst unter der Klassensperre lesen, sonst kann ein
        # paralleler Quotenabbau abgeschlossene Kurse zurück in den Plan bringen
        async with self.locks.hold(class_key(class_id)):
            assignments = [
                a for a in await self.persistence.list_assignments(
                    class_id=class_id, term_id=term_id)
                if a.remaining_quota > 0
            ]
            if not assignments:
                logger.warning(f"Keine offenen Zuweisungen für {class_id} ({term_id})")
            teacher_ids = sorted({a.teacher_id for a in assignments})

            async with self.locks.hold(*(teacher_key(t) for t in teacher_ids)):
                grid = AvailabilityGrid.from_entries(
                    await self.persistence.list_entries(), class_id)
                summary = generator.build(class_id, term_id, assignments, grid)
                await self.persistence.replace_class_schedule(
                    class_id, term_id, summary.entries)

        logger.info(
            f"Plan für {class_id} gespeichert: {summary.placed_count} Einträge, "
            f"{summary.double_periods} Doppelstunden, {len(summary.warnings)} Warnung(en)"
        )
        return summary

    async def validate_timetable(self, class_id: str) -> list[Conflict]:
        await self._require_class(class_id)
        entries = await self.persistence.list_entries()
        return self.validator.validate(class_id, entries)

    async def validate_all(self) -> list[Conflict]:
        return self.validator.validate_all(await self.persistence.list_entries())

    # ─── Zuweisungen ──────────────────────────────────────────────────────────

    async def save_assignment(
        self, assignment: Assignment, reference_date: Optional[date] = None
    ) -> Assignment:
        """Legt eine Zuweisung an oder setzt ihre Quote neu.

        Die Quote muss zwischen 1 und max_course_limit liegen und die
        effektive Quote der Klasse darf die Monatskapazität nicht übersteigen.
        """
        rules = self.config.subjects
        if not 1 <= assignment.remaining_quota <= rules.max_course_limit:
            raise ValidationError(
                f"Quote muss zwischen 1 und {rules.max_course_limit} liegen "
                f"(erhalten: {assignment.remaining_quota})"
            )
        await self._require_class(assignment.class_id)
        term = await self._require_term(assignment.term_id)
        if await self.directory.get_teacher(assignment.teacher_id) is None:
            raise ValidationError(f"Unbekannte Lehrkraft: {assignment.teacher_id}")
        catalog = await self.catalog()
        reference_date = reference_date or date.today()

        async with self.locks.hold(class_key(assignment.class_id)):
            existing = await self.persistence.list_assignments(
                class_id=assignment.class_id, term_id=assignment.term_id)
            used = check_assignment_capacity(
                assignment, existing, reference_date,
                active_term=term.is_active,
                periods_per_day=catalog.periods_per_day,
                rules=rules,
            )
            stored = next((a for a in existing if a.key == assignment.key), None)
            update = {"version": stored.version if stored else 0}
            if stored is not None:
                update["last_decayed_cycle"] = stored.last_decayed_cycle
            saved = await self.persistence.save_assignment(assignment.model_copy(update=update))

        logger.info(f"Zuweisung gespeichert: {saved} – Klasse jetzt {used} Perioden")
        return saved

    async def class_capacity(self, class_id: str, reference_date: Optional[date] = None) -> int:
        school_class = await self._require_class(class_id)
        term = await self.directory.get_term(school_class.term_id)
        catalog = await self.catalog()
        return monthly_capacity(
            reference_date or date.today(),
            active_term=term.is_active if term else False,
            periods_per_day=catalog.periods_per_day,
        )

    # ─── Vertretungen ─────────────────────────────────────────────────────────

    async def record_absence(self, absence: AbsenceRequest) -> AbsenceRequest:
        if await self.directory.get_teacher(absence.teacher_id) is None:
            raise ValidationError(f"Unbekannte Lehrkraft: {absence.teacher_id}")
        await self.persistence.save_absence(absence)
        return absence

    async def process_approved_absence(self, absence_id: str) -> ProcessResult:
        return await self.replacements.process_absence(absence_id)

    async def accept_replacement(self, task_id: str, candidate_id: str) -> ReplacementTask:
        return await self.replacements.accept(task_id, candidate_id)

    async def decline_replacement(
        self, task_id: str, candidate_id: str, reason: str = ""
    ) -> DeclineResult:
        return await self.replacements.decline(task_id, candidate_id, reason)

    async def expire_stale_offers(self, now: Optional[datetime] = None) -> list[DeclineResult]:
        return await self.replacements.expire_stale_offers(now)

    # ─── Quotenabbau ──────────────────────────────────────────────────────────

    async def run_weekly_decay(self, reference_date: Optional[date] = None) -> DecayResult:
        return await self.decay.run(reference_date)

    # ─── Ansichten ────────────────────────────────────────────────────────────

    async def effective_class_schedule(self, class_id: str, on_date: date) -> list[ScheduleEntry]:
        """Plan eines Datums mit angenommenen Vertretungen."""
        await self._require_class(class_id)
        entries = await self.persistence.list_entries(class_id=class_id, day=on_date.weekday())
        result = []
        for e in entries:
            term = await self.directory.get_term(e.term_id)
            if term is not None and not term.contains(on_date):
                continue
            result.append(e)
        overrides = {
            o.slot_number: o
            for o in await self.persistence.list_overrides(on_date=on_date, class_id=class_id)
        }
        for i, e in enumerate(result):
            o = overrides.get(e.slot_number)
            if o is not None and o.original_teacher_id == e.teacher_id:
                result[i] = e.model_copy(update={"teacher_id": o.substitute_teacher_id})
        return sorted(result, key=lambda e: e.slot_number)

    async def weekly_summary(self, class_id: str) -> dict[str, list[ScheduleEntry]]:
        """Einträge nach Wochentag gruppiert, je Tag nach Slot sortiert."""
        await self._require_class(class_id)
        entries = await self.persistence.list_entries(class_id=class_id)
        days = DAY_NAMES[:self.config.time_grid.days_per_week]
        return {
            name: sorted((e for e in entries if e.day == d), key=lambda e: e.slot_number)
            for d, name in enumerate(days)
        }

    async def quota_report(
        self, class_id: str, reference_date: Optional[date] = None
    ) -> QuotaReport:
        school_class = await self._require_class(class_id)
        term = await self.directory.get_term(school_class.term_id)
        catalog = await self.catalog()
        return build_quota_report(
            class_id,
            await self.persistence.list_assignments(class_id=class_id),
            await self.persistence.list_entries(class_id=class_id),
            reference_date or date.today(),
            active_term=term.is_active if term else False,
            periods_per_day=catalog.periods_per_day,
            rules=self.config.subjects,
        )

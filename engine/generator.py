"""Greedy-Stundenplan-Generator für eine Klasse.

Ablauf:
  1. Machbarkeit: Σ Quote ≤ Tage × Perioden, sonst CapacityExceededError
  2. Zuweisungen nach Quote absteigend sortieren
  3. Pro Zuweisung Tagesziel ceil(q / Tage); Labor-Fächer bekommen zuerst
     eine Doppelstunde pro Tag, danach Einzelstunden bis zum Tagesziel
  4. Alle Einträge in einem Schritt speichern (replace_class_schedule)

Belegung wird in einem AvailabilityGrid gehalten, das nur diesem Lauf gehört.
"""

import logging
import math
from collections import defaultdict
from typing import Optional

from pydantic import BaseModel

from config.schema import SubjectRulesConfig
from engine.capacity import weekly_capacity
from engine.errors import CapacityExceededError
from models.assignment import Assignment
from models.schedule import ScheduleEntry
from models.slot import SlotCatalog
from models.subject import Subject
from models.timeslot import day_name

logger = logging.getLogger(__name__)


# ─── Ergebnis-Modelle ─────────────────────────────────────────────────────────

class UnderScheduled(BaseModel):
    """Zuweisung, die nicht vollständig verplant werden konnte."""

    teacher_id: str
    subject: str
    requested: int
    placed: int

    @property
    def missing(self) -> int:
        return self.requested - self.placed


class GenerationSummary(BaseModel):
    """Ergebnis eines Generator-Laufs."""

    class_id: str
    term_id: str
    placed_count: int
    double_periods: int = 0
    warnings: list[str] = []
    under_scheduled: list[UnderScheduled] = []
    entries: list[ScheduleEntry] = []

    @property
    def is_complete(self) -> bool:
        return not self.under_scheduled


# ─── Belegungsraster ──────────────────────────────────────────────────────────

class AvailabilityGrid:
    """Belegung Lehrkraft × Tag × Slot plus eigene Klasse × Tag × Slot."""

    def __init__(self) -> None:
        self._teacher_busy: dict[str, set[tuple[int, int]]] = defaultdict(set)
        self._class_busy: set[tuple[int, int]] = set()

    @classmethod
    def from_entries(cls, entries: list[ScheduleEntry], class_id: str) -> "AvailabilityGrid":
        """Lädt die Belegung der Lehrkräfte aus Einträgen anderer Klassen."""
        grid = cls()
        for e in entries:
            if e.class_id == class_id or not e.teacher_id:
                continue
            grid._teacher_busy[e.teacher_id].add((e.day, e.slot_number))
        return grid

    def is_free(self, teacher_id: str, day: int, slot_number: int) -> bool:
        return ((day, slot_number) not in self._class_busy
                and (day, slot_number) not in self._teacher_busy[teacher_id])

    def occupy(self, teacher_id: str, day: int, slot_number: int) -> None:
        self._class_busy.add((day, slot_number))
        self._teacher_busy[teacher_id].add((day, slot_number))

    def teacher_load(self, teacher_id: str) -> int:
        return len(self._teacher_busy[teacher_id])


# ─── Generator ────────────────────────────────────────────────────────────────

class TimetableGenerator:
    """Erzeugt den Wochenplan einer Klasse aus ihren Quoten-Zuweisungen."""

    def __init__(
        self,
        catalog: SlotCatalog,
        rules: Optional[SubjectRulesConfig] = None,
        days_per_week: int = 5,
    ) -> None:
        self.catalog = catalog
        self.rules = rules or SubjectRulesConfig()
        self.days_per_week = days_per_week

    def check_feasibility(self, assignments: list[Assignment], class_id: str) -> int:
        """Wirft CapacityExceededError wenn die Quoten nicht in die Woche passen."""
        needed = sum(a.remaining_quota for a in assignments)
        available = weekly_capacity(self.catalog, self.days_per_week)
        if needed > available:
            raise CapacityExceededError(needed, available, context=f"Klasse {class_id}")
        return needed

    def _is_lab(self, a: Assignment) -> bool:
        return Subject(name=a.subject, is_lab=a.is_lab).lab_flag(self.rules.lab_keywords)

    def build(
        self,
        class_id: str,
        term_id: str,
        assignments: list[Assignment],
        grid: AvailabilityGrid,
    ) -> GenerationSummary:
        """Verplant alle offenen Zuweisungen. Reine Berechnung, kein Speichern."""
        active = [a for a in assignments if a.remaining_quota > 0]
        retired = len(assignments) - len(active)
        if retired:
            logger.debug(f"{retired} abgeschlossene Zuweisung(en) übersprungen")

        needed = self.check_feasibility(active, class_id)
        logger.info(
            f"Generiere Plan für {class_id}: {len(active)} Zuweisungen, "
            f"{needed} Perioden benötigt"
        )

        # Hohe Quoten zuerst; Tie-Break stabil über Lehrkraft/Fach
        ordered = sorted(active, key=lambda a: (-a.remaining_quota, a.teacher_id, a.subject))

        entries: list[ScheduleEntry] = []
        summary = GenerationSummary(class_id=class_id, term_id=term_id, placed_count=0)

        for a in ordered:
            placed = self._place_assignment(a, class_id, term_id, grid, entries, summary)
            if placed < a.remaining_quota:
                miss = UnderScheduled(
                    teacher_id=a.teacher_id,
                    subject=a.subject,
                    requested=a.remaining_quota,
                    placed=placed,
                )
                summary.under_scheduled.append(miss)
                msg = (f"{a.subject} ({a.teacher_id}): nur {placed} von "
                       f"{a.remaining_quota} Perioden verplant")
                summary.warnings.append(msg)
                logger.warning(msg)

        summary.entries = entries
        summary.placed_count = len(entries)
        return summary

    def _place_assignment(
        self,
        a: Assignment,
        class_id: str,
        term_id: str,
        grid: AvailabilityGrid,
        entries: list[ScheduleEntry],
        summary: GenerationSummary,
    ) -> int:
        remaining = a.remaining_quota
        daily_target = math.ceil(a.remaining_quota / self.days_per_week)
        lab = self._is_lab(a)
        teacher = a.teacher_id

        def add(day: int, slot: int, double: bool) -> None:
            grid.occupy(teacher, day, slot)
            entries.append(ScheduleEntry(
                class_id=class_id,
                term_id=term_id,
                day=day,
                slot_number=slot,
                subject=a.subject,
                teacher_id=teacher,
                is_double_period=double,
            ))

        for day in range(self.days_per_week):
            if remaining <= 0:
                break
            today = 0

            # Labor: höchstens eine Doppelstunde pro Tag
            if lab and remaining >= 2:
                for first, second in self.catalog.double_pairs:
                    if grid.is_free(teacher, day, first) and grid.is_free(teacher, day, second):
                        add(day, first, True)
                        add(day, second, True)
                        remaining -= 2
                        today += 2
                        summary.double_periods += 1
                        logger.debug(
                            f"Doppelstunde {a.subject} {day_name(day)} Slot {first}+{second}")
                        break

            for slot in self.catalog.academic_numbers:
                if today >= daily_target or remaining <= 0:
                    break
                if grid.is_free(teacher, day, slot):
                    add(day, slot, False)
                    remaining -= 1
                    today += 1

        return a.remaining_quota - remaining

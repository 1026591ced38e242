"""Vertretungssuche: findet die nächste freie Lehrkraft für einen Ausfall.

Kandidaten werden in Stufen gesucht, die erste nicht-leere Stufe gewinnt:
  1. unterrichtet dieselbe Klasse am selben Wochentag (anderer Slot)
  2. hat eine Zuweisung für genau dieses Fach in dieser Klasse
  3. jede Lehrkraft mit Rolle "teacher"

In jeder Stufe muss der Kandidat in allen Slots des Ausfalls frei sein.
Innerhalb einer Stufe: höhere offene Quote für (Fach, Klasse) zuerst,
danach Lehrer-ID.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Optional

from pydantic import BaseModel

from engine.errors import NoCandidateFoundError
from models.absence import AbsenceRequest, AbsenceScope
from models.assignment import Assignment
from models.replacement import Occurrence, ReplacementTask, TaskState
from models.schedule import ScheduleEntry, ScheduleOverride
from models.slot import SlotCatalog
from models.teacher import Teacher


class CandidateMatch(BaseModel):
    """Gefundene Vertretung mit Stufe und Rang-Quote."""

    teacher_id: str
    tier: int
    tier_name: str
    quota: int = 0


@dataclass
class CandidateContext:
    """Momentaufnahme aller Belegungen, die für einen Ausfall zählen."""

    occurrence: Occurrence
    catalog: SlotCatalog
    teachers: list[Teacher]
    day_entries: list[ScheduleEntry]          # Wiederkehrende Einträge des Wochentags
    overrides: list[ScheduleOverride] = field(default_factory=list)    # Am Datum
    pending_tasks: list[ReplacementTask] = field(default_factory=list) # Am Datum
    absences: list[AbsenceRequest] = field(default_factory=list)
    assignments: list[Assignment] = field(default_factory=list)
    excluded: set[str] = field(default_factory=set)

    @property
    def slots(self) -> set[int]:
        return set(self.occurrence.slot_numbers)

    def quota_for(self, teacher_id: str) -> Optional[int]:
        """Offene Quote der Lehrkraft für (Fach, Klasse) des Ausfalls."""
        occ = self.occurrence
        for a in self.assignments:
            if (a.teacher_id == teacher_id and a.subject == occ.subject
                    and a.class_id == occ.class_id):
                return a.remaining_quota
        return None

    def is_absent(self, teacher_id: str, on_date: date) -> bool:
        for absence in self.absences:
            if absence.teacher_id != teacher_id or not absence.covers(on_date):
                continue
            if absence.scope == AbsenceScope.FULL:
                return True
            half = (self.catalog.is_first_half if absence.scope == AbsenceScope.FIRST_HALF
                    else self.catalog.is_second_half)
            if any(half(s) for s in self.slots):
                return True
        return False

    def is_free(self, teacher_id: str) -> bool:
        """Frei in allen Slots: kein Eintrag, keine Vertretung, kein offenes Angebot."""
        slots = self.slots
        occ = self.occurrence
        if any(e.teacher_id == teacher_id and e.slot_number in slots
               for e in self.day_entries):
            return False
        if any(o.substitute_teacher_id == teacher_id and o.slot_number in slots
               for o in self.overrides if o.date == occ.date):
            return False
        if any(t.candidate_teacher_id == teacher_id and slots & set(t.slot_numbers)
               for t in self.pending_tasks
               if t.state == TaskState.PENDING and t.date == occ.date):
            return False
        return not self.is_absent(teacher_id, occ.date)


@dataclass(frozen=True)
class CandidateTier:
    """Eine Suchstufe: Prädikat auf (Lehrer-ID, Kontext)."""

    number: int
    name: str
    predicate: Callable[[str, CandidateContext], bool]


def _teaches_class_same_day(teacher_id: str, ctx: CandidateContext) -> bool:
    return any(e.teacher_id == teacher_id and e.class_id == ctx.occurrence.class_id
               for e in ctx.day_entries)


def _holds_assignment(teacher_id: str, ctx: CandidateContext) -> bool:
    return ctx.quota_for(teacher_id) is not None


DEFAULT_TIERS: list[CandidateTier] = [
    CandidateTier(1, "gleiche Klasse, gleicher Tag", _teaches_class_same_day),
    CandidateTier(2, "Fach-Zuweisung", _holds_assignment),
    CandidateTier(3, "beliebige freie Lehrkraft", lambda teacher_id, ctx: True),
]


class CandidateFinder:
    """Durchläuft die Stufen und liefert den bestplatzierten Kandidaten."""

    def __init__(self, tiers: Optional[list[CandidateTier]] = None) -> None:
        self.tiers = tiers if tiers is not None else DEFAULT_TIERS

    def eligible(self, ctx: CandidateContext) -> list[str]:
        """Freie Lehrkräfte ohne den Abwesenden und bereits Ablehnende."""
        blocked = set(ctx.excluded) | {ctx.occurrence.original_teacher_id}
        return [
            t.id for t in ctx.teachers
            if t.id not in blocked and ctx.is_free(t.id)
        ]

    def rank(self, teacher_ids: list[str], ctx: CandidateContext) -> list[str]:
        return sorted(teacher_ids, key=lambda tid: (-(ctx.quota_for(tid) or 0), tid))

    def find(self, ctx: CandidateContext) -> CandidateMatch:
        """Bester Kandidat der ersten nicht-leeren Stufe.

        Raises:
            NoCandidateFoundError: wenn keine Stufe einen Kandidaten liefert.
        """
        pool = self.eligible(ctx)
        for tier in self.tiers:
            matches = [tid for tid in pool if tier.predicate(tid, ctx)]
            if matches:
                best = self.rank(matches, ctx)[0]
                return CandidateMatch(
                    teacher_id=best,
                    tier=tier.number,
                    tier_name=tier.name,
                    quota=ctx.quota_for(best) or 0,
                )
        raise NoCandidateFoundError(
            f"Keine Vertretung für {ctx.occurrence.describe()} "
            f"({len(ctx.excluded)} bereits ausgeschlossen)"
        )

"""Quotenbericht einer Klasse.

Zeigt pro Zuweisung die offene Quote, die verplanten Wochenstunden und den
Abschluss-Status sowie die effektive Gesamtquote gegen die Monatskapazität.
"""

from collections import defaultdict
from datetime import date
from typing import Optional

from pydantic import BaseModel

from config.schema import SubjectRulesConfig
from engine.capacity import effective_quota, monthly_capacity, quota_group
from models.assignment import Assignment
from models.schedule import ScheduleEntry


# ─── Metriken-Modelle ─────────────────────────────────────────────────────────

class QuotaLine(BaseModel):
    """Eine Zuweisung im Bericht."""

    subject: str
    teacher_id: str
    term_id: str
    remaining_quota: int
    scheduled_per_week: int
    completed: bool
    group: Optional[str] = None     # "religion" / "language" / None
    last_decayed_cycle: Optional[str] = None

    @property
    def weeks_left(self) -> Optional[int]:
        """Wochen bis zum Abschluss bei gleichbleibendem Plan."""
        if self.completed:
            return 0
        if self.scheduled_per_week == 0:
            return None
        return -(-self.remaining_quota // self.scheduled_per_week)


class QuotaReport(BaseModel):
    """Quotenübersicht einer Klasse."""

    class_id: str
    reference_date: date
    lines: list[QuotaLine]
    effective_total: int
    capacity: int

    @property
    def utilization(self) -> float:
        return self.effective_total / self.capacity if self.capacity > 0 else 0.0

    @property
    def over_capacity(self) -> bool:
        return self.effective_total > self.capacity

    def print_rich(self) -> None:
        """Gibt den Bericht formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()
        color = (
            "red" if self.over_capacity
            else "yellow" if self.utilization >= 0.9
            else "green"
        )
        completed = sum(1 for l in self.lines if l.completed)
        console.print(Panel(
            f"Klasse: [bold]{self.class_id}[/bold] | Monat: {self.reference_date:%Y-%m}\n"
            f"Effektive Quote: [{color}]{self.effective_total}[/{color}] / "
            f"{self.capacity} ({self.utilization:.0%})\n"
            f"Zuweisungen: {len(self.lines)} | abgeschlossen: {completed}",
            title="Quotenbericht",
            border_style="cyan",
        ))

        table = Table(box=box.ROUNDED, show_lines=False)
        table.add_column("Fach", width=24)
        table.add_column("Lehrkraft", width=10)
        table.add_column("Offen", justify="right", width=6)
        table.add_column("Pro Woche", justify="right", width=9)
        table.add_column("Wochen", justify="right", width=7)
        table.add_column("Gruppe", width=9)
        table.add_column("Status", width=14)

        for l in sorted(self.lines, key=lambda x: (x.subject, x.teacher_id)):
            status = ("[green]abgeschlossen[/green]" if l.completed
                      else "[yellow]nicht verplant[/yellow]" if l.scheduled_per_week == 0
                      else "laufend")
            weeks = "–" if l.weeks_left is None else str(l.weeks_left)
            table.add_row(
                l.subject, l.teacher_id, str(l.remaining_quota),
                str(l.scheduled_per_week), weeks, l.group or "", status,
            )
        console.print(table)


# ─── Analyzer ─────────────────────────────────────────────────────────────────

def build_quota_report(
    class_id: str,
    assignments: list[Assignment],
    entries: list[ScheduleEntry],
    reference_date: date,
    active_term: bool = True,
    periods_per_day: int = 8,
    rules: Optional[SubjectRulesConfig] = None,
) -> QuotaReport:
    rules = rules or SubjectRulesConfig()
    own = [a for a in assignments if a.class_id == class_id]

    per_week: dict[tuple, int] = defaultdict(int)
    for e in entries:
        if e.class_id == class_id and e.teacher_id:
            per_week[(e.teacher_id, e.subject, e.term_id)] += 1

    lines = [
        QuotaLine(
            subject=a.subject,
            teacher_id=a.teacher_id,
            term_id=a.term_id,
            remaining_quota=a.remaining_quota,
            scheduled_per_week=per_week[(a.teacher_id, a.subject, a.term_id)],
            completed=a.is_completed,
            group=quota_group(a.subject, rules),
            last_decayed_cycle=a.last_decayed_cycle,
        )
        for a in own
    ]
    return QuotaReport(
        class_id=class_id,
        reference_date=reference_date,
        lines=lines,
        effective_total=effective_quota(own, rules),
        capacity=monthly_capacity(reference_date, active_term, periods_per_day),
    )

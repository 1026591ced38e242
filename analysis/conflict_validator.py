"""Konflikt-Prüfung des gespeicherten Wochenplans.

Meldet Lehrkräfte, die im selben (Tag, Slot) in mehreren Klassen stehen,
sowie Klassen mit mehr als einem Eintrag pro Slot. Rein lesend.
"""

from collections import defaultdict
from typing import Literal

from pydantic import BaseModel

from models.schedule import ScheduleEntry
from models.timeslot import day_name


class Conflict(BaseModel):
    """Eine Doppelbelegung."""

    kind: Literal["teacher_double_booking", "class_double_booking"] = "teacher_double_booking"
    teacher_id: str = ""
    day: int
    slot_number: int
    classes: list[str]

    @property
    def description(self) -> str:
        where = f"{day_name(self.day)}, Slot {self.slot_number}"
        if self.kind == "class_double_booking":
            return f"{where}: {self.classes[0]} hat mehrere Einträge"
        return f"{where}: {self.teacher_id} gleichzeitig in {', '.join(self.classes)}"


class ConflictReport(BaseModel):
    """Ergebnis einer Konflikt-Prüfung."""

    scope: str                 # Klassen-ID oder "alle"
    conflicts: list[Conflict]

    @property
    def is_valid(self) -> bool:
        return not self.conflicts

    def print_rich(self) -> None:
        """Gibt den Report formatiert über Rich aus."""
        from rich.console import Console
        from rich.panel import Panel
        from rich.table import Table
        from rich import box

        console = Console()
        status = (
            "[bold green]✓ KONFLIKTFREI[/bold green]"
            if self.is_valid
            else "[bold red]✗ DOPPELBELEGUNGEN GEFUNDEN[/bold red]"
        )
        lines = [status, f"Prüfbereich: {self.scope} | Konflikte: {len(self.conflicts)}"]
        console.print(Panel("\n".join(lines), title="Konflikt-Prüfung", border_style="cyan"))

        if not self.conflicts:
            console.print("[dim]Keine Konflikte gefunden.[/dim]")
            return

        table = Table(box=box.ROUNDED, show_lines=True)
        table.add_column("Typ", width=24)
        table.add_column("Lehrkraft", width=10)
        table.add_column("Tag", width=10)
        table.add_column("Slot", width=5, justify="right")
        table.add_column("Klassen")

        for c in self.conflicts:
            table.add_row(
                f"[red]{c.kind}[/red]",
                c.teacher_id or "–",
                day_name(c.day),
                str(c.slot_number),
                ", ".join(c.classes),
            )
        console.print(table)


class ConflictValidator:
    """Prüft Einträge auf Doppelbelegung von Lehrkräften und Klassen."""

    def validate(self, class_id: str, entries: list[ScheduleEntry]) -> list[Conflict]:
        """Konflikte, an denen class_id beteiligt ist.

        entries muss den Plan aller Klassen enthalten, sonst bleiben
        Überschneidungen mit anderen Klassen unsichtbar.
        """
        by_teacher = self._group_by_teacher(entries)
        conflicts: list[Conflict] = []
        seen: set[tuple] = set()

        for e in entries:
            if e.class_id != class_id or not e.teacher_id:
                continue
            key = (e.teacher_id, e.day, e.slot_number)
            if key in seen:
                continue
            seen.add(key)
            classes = by_teacher[key]
            others = [c for c in classes if c != class_id]
            if others:
                conflicts.append(Conflict(
                    teacher_id=e.teacher_id,
                    day=e.day,
                    slot_number=e.slot_number,
                    classes=[class_id] + sorted(set(others)),
                ))

        conflicts.extend(
            c for c in self._class_double_booking(entries) if c.classes[0] == class_id
        )
        return sorted(conflicts, key=lambda c: (c.day, c.slot_number, c.teacher_id))

    def validate_all(self, entries: list[ScheduleEntry]) -> list[Conflict]:
        """Alle Doppelbelegungen im gesamten Plan."""
        conflicts: list[Conflict] = []
        for (teacher_id, day, slot), classes in self._group_by_teacher(entries).items():
            if len(classes) > 1:
                conflicts.append(Conflict(
                    teacher_id=teacher_id,
                    day=day,
                    slot_number=slot,
                    classes=sorted(classes),
                ))
        conflicts.extend(self._class_double_booking(entries))
        return sorted(conflicts, key=lambda c: (c.day, c.slot_number, c.teacher_id))

    def report(self, entries: list[ScheduleEntry], class_id: str | None = None) -> ConflictReport:
        if class_id is None:
            return ConflictReport(scope="alle", conflicts=self.validate_all(entries))
        return ConflictReport(scope=class_id, conflicts=self.validate(class_id, entries))

    # ── Einzelne Prüfungen ────────────────────────────────────────────────────

    @staticmethod
    def _group_by_teacher(entries: list[ScheduleEntry]) -> dict[tuple, list[str]]:
        seen: dict[tuple, list[str]] = defaultdict(list)
        for e in entries:
            if e.teacher_id:
                seen[(e.teacher_id, e.day, e.slot_number)].append(e.class_id)
        return seen

    @staticmethod
    def _class_double_booking(entries: list[ScheduleEntry]) -> list[Conflict]:
        """Eine Klasse darf pro Slot nur einen Eintrag haben."""
        by_slot: dict[tuple, int] = defaultdict(int)
        for e in entries:
            by_slot[(e.class_id, e.day, e.slot_number)] += 1
        return [
            Conflict(kind="class_double_booking", day=day, slot_number=slot,
                     classes=[class_id])
            for (class_id, day, slot), n in by_slot.items() if n > 1
        ]

"""Renderer für die Terminal-Anzeige von Klassen- und Lehrer-Plänen.

Wird von `timetable show` (Rich) verwendet.
"""

from collections import defaultdict
from typing import TYPE_CHECKING, Optional

from models.slot import SlotCatalog

if TYPE_CHECKING:
    from models.schedule import ScheduleEntry


def render_class_rows(
    class_id: str,
    entries: list["ScheduleEntry"],
    catalog: SlotCatalog,
    day_names: list[str],
) -> list[list[str]]:
    """Gibt Tabellenzeilen für den Klassen-Stundenplan zurück.

    Jede Zeile: [slot, zeit, Mo, Di, Mi, Do, Fr]
    Pausen und Appell werden als separate Zeilen mit '─' eingefügt.
    Doppelstunden sind mit '⇕' markiert.
    """
    slot_map = {(e.day, e.slot_number): e for e in entries if e.class_id == class_id}
    rows: list[list[str]] = []

    for slot in catalog.slots:
        label = catalog.label(slot.slot_number)
        if not slot.is_academic:
            rows.append(["—", f"{slot.kind.value} {label}"] + ["─" * 8] * len(day_names))
            continue
        cells = [str(slot.slot_number), label]
        for day_idx in range(len(day_names)):
            entry = slot_map.get((day_idx, slot.slot_number))
            if entry is None:
                cells.append("—")
            else:
                mark = " ⇕" if entry.is_double_period else ""
                cells.append(f"{entry.subject}{mark}\n{entry.teacher_id or '?'}")
        rows.append(cells)

    return rows


def render_teacher_rows(
    teacher_id: str,
    entries: list["ScheduleEntry"],
    catalog: SlotCatalog,
    day_names: list[str],
) -> list[list[str]]:
    """Gibt Tabellenzeilen für den Lehrer-Stundenplan zurück.

    Freistunden zwischen zwei Stunden werden als 'Freistunde' markiert.
    """
    own = [e for e in entries if e.teacher_id == teacher_id.upper()]
    slot_map = {(e.day, e.slot_number): e for e in own}

    by_day: dict[int, list[int]] = defaultdict(list)
    for e in own:
        idx = catalog.period_index(e.slot_number)
        if idx is not None:
            by_day[e.day].append(idx)
    gaps: set[tuple[int, int]] = set()
    for day_idx, indices in by_day.items():
        unique = sorted(set(indices))
        for i in range(unique[0] + 1, unique[-1]):
            if i not in unique:
                gaps.add((day_idx, i))

    rows: list[list[str]] = []
    for slot in catalog.slots:
        label = catalog.label(slot.slot_number)
        if not slot.is_academic:
            rows.append(["—", f"{slot.kind.value} {label}"] + ["─" * 8] * len(day_names))
            continue
        cells = [str(slot.slot_number), label]
        idx = catalog.period_index(slot.slot_number)
        for day_idx in range(len(day_names)):
            entry = slot_map.get((day_idx, slot.slot_number))
            if entry is not None:
                cells.append(f"{entry.subject}\n{entry.class_id}")
            elif (day_idx, idx) in gaps:
                cells.append("↕ Freistunde")
            else:
                cells.append("—")
        rows.append(cells)

    return rows


def print_schedule_table(
    title: str,
    rows: list[list[str]],
    day_names: list[str],
    caption: Optional[str] = None,
) -> None:
    """Gibt die Zeilen als Rich-Tabelle aus."""
    from rich.console import Console
    from rich.table import Table
    from rich import box

    table = Table(title=title, box=box.ROUNDED, show_lines=True, caption=caption)
    table.add_column("Slot", justify="right", width=4)
    table.add_column("Zeit", width=18)
    for name in day_names:
        table.add_column(name[:3], width=16)
    for row in rows:
        table.add_row(*row)
    Console().print(table)

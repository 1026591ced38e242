"""Scheduling-Engine — Haupt-CLI.

Verwendung:
  python main.py config init               Default-Konfiguration anlegen
  python main.py config show               Konfiguration anzeigen
  python main.py config edit               Konfiguration bearbeiten
  python main.py seed                      Demo-Daten erzeugen
  python main.py timetable generate 6A     Wochenplan einer Klasse erzeugen
  python main.py timetable generate --all  Wochenpläne aller Klassen erzeugen
  python main.py timetable validate        Doppelbelegungen prüfen
  python main.py timetable show 6A         Wochenplan anzeigen
  python main.py timetable day 6A <datum>  Tagesplan inkl. Vertretungen
  python main.py absence add PER <datum>   Abwesenheit erfassen
  python main.py absence process ABS-1     Vertretungen anfragen
  python main.py replacement list          Vertretungsaufgaben auflisten
  python main.py replacement accept <id> <lehrer>
  python main.py replacement decline <id> <lehrer> --reason "..."
  python main.py replacement expire        Abgelaufene Angebote weiterreichen
  python main.py decay run                 Wöchentlichen Quotenabbau ausführen
  python main.py quota report 6A           Quotenbericht einer Klasse
  python main.py quota set PER Science 6A 6
  python main.py capacity 6A               Monatskapazität einer Klasse
"""

import asyncio
import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich import box

console = Console()

DATE_TYPE = click.DateTime(formats=["%Y-%m-%d"])


def _setup_logging(verbose: bool) -> None:
    """Root-Logger mit RichHandler; --verbose schaltet auf DEBUG."""
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(RichHandler(console=console, show_path=False, rich_tracebacks=True))
    root.setLevel(logging.DEBUG if verbose else logging.INFO)


def _open_engine():
    """Lädt Config und Zustandsdatei und baut die Engine."""
    from config.manager import ConfigManager
    from engine.service import SchedulingEngine
    from store.json_store import JsonFileStore
    from store.notifications import OutboxChannel

    try:
        config = ConfigManager().load_or_default()
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    store = JsonFileStore(Path(config.storage.state_path))
    outbox = OutboxChannel()
    engine = SchedulingEngine(store, store, outbox, config)
    return engine, store, outbox


def _run(coro):
    """Führt eine Engine-Operation aus; Engine-Fehler beenden mit Code 1."""
    from engine.errors import SchedulingError
    try:
        return asyncio.run(coro)
    except SchedulingError as e:
        console.print(f"[red]✗ {type(e).__name__}: {e}[/red]")
        sys.exit(1)


def _print_outbox(outbox) -> None:
    if not outbox.messages:
        return
    table = Table(title="Gesendete Nachrichten", box=box.SIMPLE)
    table.add_column("An", width=8)
    table.add_column("Typ", width=22)
    table.add_column("Details")
    for m in outbox.messages:
        p = m.payload
        slots = "+".join(str(s) for s in p.get("slot_numbers", []))
        detail = " ".join(
            str(x) for x in (p.get("subject"), p.get("class_id"), p.get("date"),
                             f"Slot {slots}" if slots else None, p.get("task_id"))
            if x
        )
        table.add_row(m.recipient_id, m.kind, detail)
    console.print(table)


# ─── CONFIG ───────────────────────────────────────────────────────────────────

@click.group("config")
def cmd_config():
    """Konfiguration anlegen, anzeigen oder bearbeiten."""


@cmd_config.command("init")
@click.option("--force", is_flag=True, default=False, help="Bestehende Datei überschreiben.")
def config_init(force: bool):
    """Legt die Default-Konfiguration als YAML an."""
    from config.defaults import default_engine_config
    from config.manager import ConfigManager

    mgr = ConfigManager()
    if not mgr.first_run_check() and not force:
        console.print(
            "[yellow]Eine Konfiguration existiert bereits.[/yellow]\n"
            "Verwenden Sie [bold]--force[/bold] zum Überschreiben."
        )
        return
    mgr.save(default_engine_config())


@cmd_config.command("show")
def config_show():
    """Zeigt die aktuelle Konfiguration an."""
    from config.manager import ConfigManager
    mgr = ConfigManager()
    mgr.show(mgr.load_or_default())


@cmd_config.command("edit")
def config_edit():
    """Bearbeitet die Konfiguration interaktiv."""
    from config.manager import ConfigManager
    mgr = ConfigManager()
    mgr.edit_interactive(mgr.load_or_default())


# ─── SEED ─────────────────────────────────────────────────────────────────────

@click.command("seed")
@click.option("--seed", default=42, help="Zufalls-Seed für reproduzierbare Daten.")
@click.option("--force", is_flag=True, default=False, help="Bestehenden Zustand ersetzen.")
def cmd_seed(seed: int, force: bool):
    """Erzeugt Demo-Daten (Klassen, Lehrkräfte, Quoten, Abwesenheiten)."""
    from data.fake_data import FakeDataGenerator

    engine, store, _ = _open_engine()
    if store.path.exists() and not force:
        console.print(
            f"[yellow]Zustand existiert bereits: {store.path}[/yellow]\n"
            "Verwenden Sie [bold]--force[/bold] zum Ersetzen."
        )
        return
    gen = FakeDataGenerator(engine.config, seed=seed)
    data = gen.generate()
    store.load_snapshot(data)
    store.flush()
    gen.print_summary(data)
    console.print(f"[green]✓[/green] Zustand gespeichert: {store.path}")


# ─── TIMETABLE ────────────────────────────────────────────────────────────────

@click.group("timetable")
def cmd_timetable():
    """Wochenpläne erzeugen, prüfen und anzeigen."""


@cmd_timetable.command("generate")
@click.argument("class_ids", nargs=-1)
@click.option("--all", "all_classes", is_flag=True, default=False, help="Alle Klassen.")
@click.option("--term", "term_id", default=None, help="Trimester (Default: das der Klasse).")
def timetable_generate(class_ids: tuple[str, ...], all_classes: bool, term_id: Optional[str]):
    """Erzeugt den Wochenplan für die angegebenen Klassen."""
    engine, store, _ = _open_engine()

    async def _go():
        classes = await store.list_classes()
        wanted = [c for c in classes if all_classes or c.id in class_ids]
        unknown = set(class_ids) - {c.id for c in classes}
        for cid in sorted(unknown):
            console.print(f"[red]Unbekannte Klasse: {cid}[/red]")
        summaries = []
        for c in wanted:
            summaries.append(await engine.generate_timetable(c.id, term_id or c.term_id))
        return summaries

    summaries = _run(_go())
    if not summaries:
        console.print("[yellow]Keine Klasse ausgewählt.[/yellow]")
        return

    table = Table(title="Generierte Pläne", box=box.ROUNDED)
    table.add_column("Klasse", width=8)
    table.add_column("Einträge", justify="right")
    table.add_column("Doppelstd.", justify="right")
    table.add_column("Status")
    for s in summaries:
        status = ("[green]vollständig[/green]" if s.is_complete
                  else f"[yellow]{len(s.under_scheduled)} unvollständig[/yellow]")
        table.add_row(s.class_id, str(s.placed_count), str(s.double_periods), status)
    console.print(table)
    for s in summaries:
        for w in s.warnings:
            console.print(f"  [yellow]⚠[/yellow] {s.class_id}: {w}")


@cmd_timetable.command("validate")
@click.argument("class_id", required=False)
def timetable_validate(class_id: Optional[str]):
    """Prüft den Plan einer Klasse (oder aller Klassen) auf Doppelbelegung."""
    from analysis.conflict_validator import ConflictReport

    engine, _, _ = _open_engine()
    if class_id:
        conflicts = _run(engine.validate_timetable(class_id))
    else:
        conflicts = _run(engine.validate_all())
    report = ConflictReport(scope=class_id or "alle", conflicts=conflicts)
    report.print_rich()
    if not report.is_valid:
        sys.exit(2)


@cmd_timetable.command("show")
@click.argument("class_id")
@click.option("--teacher", "teacher_id", default=None, help="Stattdessen Lehrer-Plan zeigen.")
def timetable_show(class_id: str, teacher_id: Optional[str]):
    """Zeigt den Wochenplan einer Klasse (oder mit --teacher einer Lehrkraft)."""
    from export.tui_renderer import print_schedule_table, render_class_rows, render_teacher_rows

    engine, store, _ = _open_engine()
    day_names = engine.config.time_grid.day_names

    async def _go():
        catalog = await engine.catalog()
        if teacher_id:
            return catalog, await store.list_entries(teacher_id=teacher_id)
        await engine.weekly_summary(class_id)
        return catalog, await store.list_entries(class_id=class_id)

    catalog, entries = _run(_go())
    if teacher_id:
        rows = render_teacher_rows(teacher_id, entries, catalog, day_names)
        title = f"Lehrkraft {teacher_id.upper()}"
    else:
        rows = render_class_rows(class_id, entries, catalog, day_names)
        title = f"Klasse {class_id}"
    print_schedule_table(title, rows, day_names, caption=f"{len(entries)} Einträge")


@cmd_timetable.command("day")
@click.argument("class_id")
@click.argument("on_date", type=DATE_TYPE)
def timetable_day(class_id: str, on_date: datetime):
    """Zeigt den Plan eines Datums mit angenommenen Vertretungen."""
    engine, store, _ = _open_engine()

    async def _go():
        effective = await engine.effective_class_schedule(class_id, on_date.date())
        overrides = await store.list_overrides(on_date=on_date.date(), class_id=class_id)
        return effective, {o.slot_number for o in overrides}

    entries, substituted = _run(_go())
    table = Table(title=f"{class_id} am {on_date:%Y-%m-%d} ({on_date:%A})", box=box.ROUNDED)
    table.add_column("Slot", justify="right")
    table.add_column("Fach")
    table.add_column("Lehrkraft")
    for e in entries:
        who = e.teacher_id or "?"
        if e.slot_number in substituted:
            who = f"[cyan]{who} (Vertretung)[/cyan]"
        table.add_row(str(e.slot_number), e.subject, who)
    console.print(table)


# ─── ABSENCE ──────────────────────────────────────────────────────────────────

@click.group("absence")
def cmd_absence():
    """Abwesenheiten erfassen und verarbeiten."""


@cmd_absence.command("add")
@click.argument("teacher_id")
@click.argument("start", type=DATE_TYPE)
@click.argument("end", type=DATE_TYPE, required=False)
@click.option("--scope", type=click.Choice(["Full", "FirstHalf", "SecondHalf"]),
              default="Full", help="Ganzer Tag oder Tageshälfte.")
@click.option("--reason", default="", help="Grund der Abwesenheit.")
@click.option("--approve", is_flag=True, default=False, help="Direkt genehmigen.")
@click.option("--id", "absence_id", default=None, help="Eigene ID vergeben.")
def absence_add(teacher_id, start, end, scope, reason, approve, absence_id):
    """Erfasst eine Abwesenheit."""
    from models.absence import AbsenceRequest, AbsenceScope
    from models.replacement import new_task_id

    engine, _, _ = _open_engine()
    absence = AbsenceRequest(
        id=absence_id or f"ABS-{new_task_id()[:6]}",
        teacher_id=teacher_id,
        start_date=start.date(),
        end_date=(end or start).date(),
        scope=AbsenceScope(scope),
        reason=reason,
        approved=approve,
    )
    _run(engine.record_absence(absence))
    state = "[green]genehmigt[/green]" if approve else "[yellow]offen[/yellow]"
    console.print(f"[green]✓[/green] Abwesenheit {absence.id} erfasst ({state})")


@cmd_absence.command("approve")
@click.argument("absence_id")
def absence_approve(absence_id: str):
    """Genehmigt eine erfasste Abwesenheit."""
    engine, store, _ = _open_engine()

    async def _go():
        absence = await store.get_absence(absence_id)
        if absence is None:
            return None
        absence.approved = True
        await store.save_absence(absence)
        return absence

    if _run(_go()) is None:
        console.print(f"[red]Unbekannte Abwesenheit: {absence_id}[/red]")
        sys.exit(1)
    console.print(f"[green]✓[/green] Abwesenheit {absence_id} genehmigt")


@cmd_absence.command("process")
@click.argument("absence_id")
def absence_process(absence_id: str):
    """Fragt Vertretungen für alle betroffenen Stunden an."""
    engine, _, outbox = _open_engine()
    result = _run(engine.process_approved_absence(absence_id))
    console.print(Panel(
        f"Betroffene Stunden: [bold]{result.occurrences_affected}[/bold] | "
        f"Angebote: [green]{result.offers_sent}[/green] | "
        f"Eskaliert: [yellow]{result.escalated}[/yellow] | "
        f"Übersprungen: {result.skipped} | "
        f"Fehler: [red]{len(result.failed)}[/red]",
        title=f"Abwesenheit {absence_id}",
        border_style="cyan",
    ))
    for f in result.failed:
        console.print(f"  [red]✗[/red] {f}")
    _print_outbox(outbox)


# ─── REPLACEMENT ──────────────────────────────────────────────────────────────

@click.group("replacement")
def cmd_replacement():
    """Vertretungsaufgaben anzeigen und beantworten."""


@cmd_replacement.command("list")
@click.option("--state", type=click.Choice(["Pending", "Accepted", "Declined", "Escalated"]),
              default=None, help="Nur Aufgaben in diesem Zustand.")
def replacement_list(state: Optional[str]):
    """Listet Vertretungsaufgaben."""
    from models.replacement import TaskState

    _, store, _ = _open_engine()
    tasks = _run(store.list_tasks(state=TaskState(state) if state else None))

    colors = {"Pending": "cyan", "Accepted": "green", "Declined": "dim", "Escalated": "yellow"}
    table = Table(title="Vertretungsaufgaben", box=box.ROUNDED)
    table.add_column("ID", width=12)
    table.add_column("Datum", width=10)
    table.add_column("Klasse", width=7)
    table.add_column("Fach", width=20)
    table.add_column("Slot", width=5)
    table.add_column("Für", width=5)
    table.add_column("Kandidat", width=8)
    table.add_column("Stufe", justify="right", width=5)
    table.add_column("Zustand")
    for t in tasks:
        c = colors[t.state.value]
        table.add_row(
            t.id, t.date.isoformat(), t.class_id, t.subject,
            "+".join(str(s) for s in t.slot_numbers),
            t.original_teacher_id, t.candidate_teacher_id or "–",
            str(t.tier or "–"), f"[{c}]{t.state.value}[/{c}]",
        )
    console.print(table)


@cmd_replacement.command("accept")
@click.argument("task_id")
@click.argument("candidate_id")
def replacement_accept(task_id: str, candidate_id: str):
    """Nimmt ein Vertretungsangebot an."""
    engine, _, outbox = _open_engine()
    task = _run(engine.accept_replacement(task_id, candidate_id))
    console.print(f"[green]✓[/green] {task.candidate_teacher_id} vertritt "
                  f"{task.occurrence().describe()}")
    _print_outbox(outbox)


@cmd_replacement.command("decline")
@click.argument("task_id")
@click.argument("candidate_id")
@click.option("--reason", default="", help="Grund der Ablehnung.")
def replacement_decline(task_id: str, candidate_id: str, reason: str):
    """Lehnt ein Vertretungsangebot ab; der nächste Kandidat wird angefragt."""
    engine, _, outbox = _open_engine()
    result = _run(engine.decline_replacement(task_id, candidate_id, reason))
    if result.escalated:
        console.print("[yellow]Kein weiterer Kandidat – an Admins eskaliert.[/yellow]")
    else:
        console.print(f"[green]✓[/green] Nächster Kandidat {result.next_candidate_id} "
                      f"angefragt (Aufgabe {result.next_task_id})")
    _print_outbox(outbox)


@cmd_replacement.command("expire")
def replacement_expire():
    """Behandelt abgelaufene Angebote als abgelehnt."""
    engine, _, outbox = _open_engine()
    results = _run(engine.expire_stale_offers())
    escalated = sum(1 for r in results if r.escalated)
    console.print(f"Abgelaufen: [bold]{len(results)}[/bold] | "
                  f"neu angefragt: {len(results) - escalated} | eskaliert: {escalated}")
    _print_outbox(outbox)


# ─── DECAY ────────────────────────────────────────────────────────────────────

@click.group("decay")
def cmd_decay():
    """Wöchentlicher Quotenabbau."""


@cmd_decay.command("run")
@click.option("--date", "ref", type=DATE_TYPE, default=None, help="Stichtag (Default: heute).")
def decay_run(ref: Optional[datetime]):
    """Zieht die Wochenstunden von den offenen Quoten ab."""
    engine, _, outbox = _open_engine()
    result = _run(engine.run_weekly_decay(ref.date() if ref else None))
    console.print(Panel(
        f"Zyklus: [bold]{result.cycle}[/bold]\n"
        f"Reduziert: {result.reduced_count} | Abgeschlossen: {result.completed_count} | "
        f"Übersprungen: {result.skipped} | Fehler: {len(result.failed)}",
        title="Quotenabbau",
        border_style="cyan",
    ))
    for c in result.completed:
        console.print(f"  [green]✓[/green] {c.subject} in {c.class_id} ({c.teacher_id}) "
                      f"abgeschlossen, {c.released_entries} Einträge freigegeben")
    _print_outbox(outbox)


# ─── QUOTA ────────────────────────────────────────────────────────────────────

@click.group("quota")
def cmd_quota():
    """Quoten anzeigen und setzen."""


@cmd_quota.command("report")
@click.argument("class_id")
@click.option("--date", "ref", type=DATE_TYPE, default=None, help="Stichtag (Default: heute).")
def quota_report(class_id: str, ref: Optional[datetime]):
    """Zeigt offene Quoten, Wochenstunden und Kapazität einer Klasse."""
    engine, _, _ = _open_engine()
    report = _run(engine.quota_report(class_id, ref.date() if ref else None))
    report.print_rich()


@cmd_quota.command("set")
@click.argument("teacher_id")
@click.argument("subject")
@click.argument("class_id")
@click.argument("quota", type=int)
@click.option("--term", "term_id", default=None, help="Trimester (Default: das der Klasse).")
def quota_set(teacher_id: str, subject: str, class_id: str, quota: int, term_id: Optional[str]):
    """Legt eine Zuweisung an oder setzt ihre Quote neu."""
    from models.assignment import Assignment

    engine, store, _ = _open_engine()

    async def _go():
        school_class = await store.get_class(class_id)
        term = term_id or (school_class.term_id if school_class else "")
        return await engine.save_assignment(Assignment(
            teacher_id=teacher_id, subject=subject, class_id=class_id,
            term_id=term, remaining_quota=quota,
        ))

    saved = _run(_go())
    console.print(f"[green]✓[/green] Gespeichert: {saved}")


# ─── CAPACITY ─────────────────────────────────────────────────────────────────

@click.command("capacity")
@click.argument("class_id")
@click.option("--date", "ref", type=DATE_TYPE, default=None, help="Stichtag (Default: heute).")
def cmd_capacity(class_id: str, ref: Optional[datetime]):
    """Zeigt die Monatskapazität einer Klasse."""
    from engine.capacity import weekdays_in_month

    engine, _, _ = _open_engine()
    day = ref.date() if ref else date.today()
    capacity = _run(engine.class_capacity(class_id, day))
    console.print(
        f"Klasse [bold]{class_id}[/bold], {day:%Y-%m}: "
        f"{weekdays_in_month(day)} Schultage → [bold]{capacity}[/bold] Perioden"
    )


# ─── HAUPT-CLI ────────────────────────────────────────────────────────────────

@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Debug-Ausgaben anzeigen.")
def cli(verbose: bool):
    """Scheduling-Engine: Wochenpläne, Vertretungen und Quotenabbau.

    Starten Sie mit: python main.py seed
    """
    _setup_logging(verbose)


def main():
    """Einstiegspunkt."""
    cli()


# Befehle registrieren
cli.add_command(cmd_config)
cli.add_command(cmd_seed)
cli.add_command(cmd_timetable)
cli.add_command(cmd_absence)
cli.add_command(cmd_replacement)
cli.add_command(cmd_decay)
cli.add_command(cmd_quota)
cli.add_command(cmd_capacity)


if __name__ == "__main__":
    main()

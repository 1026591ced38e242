"""Tests für die Terminal-Darstellung und die CLI."""

import json
from pathlib import Path

from click.testing import CliRunner

from config.defaults import default_slots
from export.tui_renderer import render_class_rows, render_teacher_rows
from models.schedule import ScheduleEntry
from models.slot import SlotCatalog

DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]


def _e(day: int, slot: int, subject: str = "English", teacher: str = "PER",
       class_id: str = "6A", double: bool = False) -> ScheduleEntry:
    return ScheduleEntry(class_id=class_id, term_id="T1", day=day, slot_number=slot,
                         subject=subject, teacher_id=teacher, is_double_period=double)


# ─── RENDERER ─────────────────────────────────────────────────────────────────

class TestRenderer:
    def test_class_rows_cover_all_slots(self):
        rows = render_class_rows("6A", [_e(0, 2)], SlotCatalog(default_slots()), DAYS)
        assert len(rows) == 10
        assert all(len(r) == 2 + len(DAYS) for r in rows)
        assert rows[0][0] == "—"             # Appell
        assert "Assembly" in rows[0][1]
        assert rows[1][0] == "2"
        assert rows[1][2] == "English\nPER"
        assert rows[1][3] == "—"

    def test_class_rows_ignore_other_classes(self):
        rows = render_class_rows("6A", [_e(0, 2, class_id="6B")],
                                 SlotCatalog(default_slots()), DAYS)
        assert rows[1][2] == "—"

    def test_double_period_marked(self):
        entries = [_e(2, 7, "Science", double=True), _e(2, 8, "Science", double=True)]
        rows = render_class_rows("6A", entries, SlotCatalog(default_slots()), DAYS)
        seventh = next(r for r in rows if r[0] == "7")
        assert "⇕" in seventh[4]

    def test_teacher_rows_mark_gaps(self):
        """PER Mo Slot 2 und 4 → Slot 3 ist eine Freistunde."""
        entries = [_e(0, 2), _e(0, 4, class_id="6B")]
        rows = render_teacher_rows("per", entries, SlotCatalog(default_slots()), DAYS)
        by_slot = {r[0]: r for r in rows if r[0] != "—"}
        assert by_slot["2"][2] == "English\n6A"
        assert by_slot["3"][2] == "↕ Freistunde"
        assert by_slot["4"][2] == "English\n6B"
        assert by_slot["5"][2] == "—"


# ─── CLI ──────────────────────────────────────────────────────────────────────

class TestCli:
    def test_help(self):
        """main.py --help gibt Usage aus."""
        from main import cli
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Usage" in result.output

    def test_subcommands_registered(self):
        from main import cli
        runner = CliRunner()
        for group in ("config", "timetable", "absence", "replacement", "decay", "quota"):
            result = runner.invoke(cli, [group, "--help"])
            assert result.exit_code == 0, group

    def test_config_init_writes_yaml(self):
        from main import cli
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["config", "init"])
            assert result.exit_code == 0
            assert Path("config/engine_config.yaml").exists()
            again = runner.invoke(cli, ["config", "init"])
            assert "existiert bereits" in again.output

    def test_full_workflow(self):
        """seed → generate → validate → Bericht → Abwesenheit → Abbau."""
        from main import cli
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["seed", "--seed", "7"])
            assert result.exit_code == 0, result.output
            state = Path("output/engine_state.json")
            assert state.exists()
            assert json.loads(state.read_text(encoding="utf-8"))["classes"]

            result = runner.invoke(cli, ["timetable", "generate", "--all"])
            assert result.exit_code == 0, result.output
            assert "6A" in result.output

            result = runner.invoke(cli, ["timetable", "validate"])
            assert result.exit_code == 0, result.output

            result = runner.invoke(cli, ["timetable", "show", "6A"])
            assert result.exit_code == 0, result.output

            result = runner.invoke(cli, ["quota", "report", "6A"])
            assert result.exit_code == 0, result.output

            result = runner.invoke(cli, ["capacity", "6A", "--date", "2026-10-19"])
            assert result.exit_code == 0, result.output
            assert "176" in result.output

            result = runner.invoke(cli, ["absence", "process", "ABS-1"])
            assert result.exit_code == 0, result.output

            result = runner.invoke(cli, ["replacement", "list"])
            assert result.exit_code == 0, result.output

            result = runner.invoke(cli, ["decay", "run"])
            assert result.exit_code == 0, result.output
            assert "Zyklus" in result.output

    def test_unapproved_absence_exits_with_error(self):
        from main import cli
        runner = CliRunner()
        with runner.isolated_filesystem():
            runner.invoke(cli, ["seed", "--seed", "7"])
            result = runner.invoke(cli, ["absence", "process", "ABS-2"])
            assert result.exit_code == 1
            assert "ValidationError" in result.output

    def test_unknown_class_exits_with_error(self):
        from main import cli
        runner = CliRunner()
        with runner.isolated_filesystem():
            runner.invoke(cli, ["seed"])
            result = runner.invoke(cli, ["capacity", "9Z"])
            assert result.exit_code == 1

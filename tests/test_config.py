"""Tests für das Konfigurationssystem und die Datenmodelle."""

from datetime import date
from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from config.defaults import (
    default_course_limit,
    default_engine_config,
    default_slots,
    default_time_grid,
    subjects_for_grade,
)
from config.manager import ConfigManager
from config.schema import SlotDefinition, SlotKind, TimeGridConfig
from models.absence import AbsenceRequest, AbsenceScope
from models.assignment import Assignment
from models.slot import SlotCatalog
from models.subject import Subject, is_lab_subject
from models.teacher import Teacher
from models.term import Term


# ─── DEFAULT-KONFIGURATION ────────────────────────────────────────────────────

class TestDefaultConfig:
    def test_default_time_grid_valid(self):
        """Default-Zeitraster: 10 Slots, davon 8 Perioden."""
        tg = default_time_grid()
        assert tg.days_per_week == 5
        assert len(tg.slots) == 10
        assert sum(1 for s in tg.slots if s.is_academic) == 8

    def test_default_engine_config_valid(self):
        config = default_engine_config()
        assert config.replacement.offer_timeout_minutes == 60
        assert config.subjects.max_course_limit == 50
        assert config.subjects.language_pair == ["Tamil", "Sinhala"]

    def test_subjects_for_grade(self):
        assert "Science" in subjects_for_grade(6)
        assert subjects_for_grade(42) == []

    def test_course_limits(self):
        assert default_course_limit(6, "Mathematics") == 6
        assert default_course_limit(3, "English") == 5
        assert default_course_limit(8, "Religion (Hindu)") == 3
        assert default_course_limit(7, "Library") == 1


# ─── PYDANTIC-VALIDIERUNG ─────────────────────────────────────────────────────

class TestPydanticValidation:
    def test_duplicate_slot_numbers_raise(self):
        slots = default_slots()
        slots.append(SlotDefinition(slot_number=2, start_time="14:00", end_time="14:45"))
        with pytest.raises(PydanticValidationError):
            TimeGridConfig(slots=slots)

    def test_grid_without_periods_raises(self):
        slots = [SlotDefinition(slot_number=1, start_time="07:00", end_time="07:30",
                                kind=SlotKind.ASSEMBLY)]
        with pytest.raises(PydanticValidationError):
            TimeGridConfig(slots=slots, half_day_split=1)

    def test_half_day_split_must_leave_second_half(self):
        with pytest.raises(PydanticValidationError):
            TimeGridConfig(slots=default_slots(), half_day_split=8)

    def test_day_names_must_match(self):
        with pytest.raises(PydanticValidationError):
            TimeGridConfig(slots=default_slots(), days_per_week=4)

    def test_slot_is_frozen(self):
        slot = default_slots()[1]
        with pytest.raises(PydanticValidationError):
            slot.start_time = "06:00"

    def test_absence_range_checked(self):
        with pytest.raises(PydanticValidationError):
            AbsenceRequest(id="A", teacher_id="per", start_date=date(2026, 10, 20),
                           end_date=date(2026, 10, 19))

    def test_term_range_checked(self):
        with pytest.raises(PydanticValidationError):
            Term(id="T", number=1, start_date=date(2026, 10, 20), end_date=date(2026, 10, 1))

    def test_negative_quota_rejected(self):
        with pytest.raises(PydanticValidationError):
            Assignment(teacher_id="PER", subject="English", class_id="6A",
                       term_id="T1", remaining_quota=-1)


# ─── SLOT-KATALOG ─────────────────────────────────────────────────────────────

class TestSlotCatalog:
    def test_periods_and_index(self):
        cat = SlotCatalog.from_time_grid(default_time_grid())
        assert cat.periods_per_day == 8
        assert cat.academic_numbers == [2, 3, 4, 5, 7, 8, 9, 10]
        assert cat.period_index(1) is None
        assert cat.period_index(7) == 5

    def test_half_day_split(self):
        cat = SlotCatalog.from_time_grid(default_time_grid())
        assert cat.is_first_half(5)
        assert not cat.is_first_half(7)
        assert cat.is_second_half(7)
        assert not cat.is_second_half(6)

    def test_double_pairs_do_not_span_break(self):
        """Slot 5 und 7 sind durch die Pause getrennt → kein Paar."""
        cat = SlotCatalog.from_time_grid(default_time_grid())
        assert cat.double_pairs == [(2, 3), (3, 4), (4, 5), (7, 8), (8, 9), (9, 10)]
        assert cat.partner_of(5, previous=False) is None
        assert cat.partner_of(8, previous=True) == 7

    def test_label(self):
        cat = SlotCatalog(default_slots())
        assert cat.label(2) == "07:30–08:15"
        assert cat.label(99) == "99"


# ─── MODELLE ──────────────────────────────────────────────────────────────────

class TestModels:
    def test_teacher_id_upper(self):
        t = Teacher(id="per", name="Perera, Nimal")
        assert t.id == "PER"
        assert not t.is_admin

    def test_admin_role(self):
        assert Teacher(id="adm", name="Verwaltung", role="admin").is_admin

    def test_lab_subject_keywords(self):
        keywords = ["Science", "IT", "Lab"]
        assert is_lab_subject("Computer Science", keywords)
        assert is_lab_subject("science", keywords)
        assert not is_lab_subject("History", keywords)
        assert is_lab_subject("IT", keywords)
        assert is_lab_subject("it lab", keywords)
        assert not is_lab_subject("Religion - Christianity", keywords)
        assert not is_lab_subject("Literature", keywords)

    def test_subject_lab_flag_override(self):
        assert Subject(name="Science", is_lab=False).lab_flag(["Science"]) is False
        assert Subject(name="Chemistry").lab_flag(["Chemistry"]) is True

    def test_absence_weekdays_skip_weekend(self):
        """Fr 23.10. bis Mo 26.10.2026 → nur Fr und Mo."""
        a = AbsenceRequest(id="A", teacher_id="PER", start_date=date(2026, 10, 23),
                           end_date=date(2026, 10, 26), scope=AbsenceScope.FULL)
        assert a.weekdays() == [date(2026, 10, 23), date(2026, 10, 26)]

    def test_absence_covers_only_when_approved(self):
        a = AbsenceRequest(id="A", teacher_id="PER", start_date=date(2026, 10, 19),
                           end_date=date(2026, 10, 19))
        assert not a.covers(date(2026, 10, 19))
        assert a.model_copy(update={"approved": True}).covers(date(2026, 10, 19))

    def test_term_contains(self):
        t = Term(id="T1", number=1, start_date=date(2026, 9, 1), end_date=date(2026, 12, 15))
        assert t.contains(date(2026, 10, 19))
        assert not t.contains(date(2027, 1, 5))


# ─── CONFIG-MANAGER ───────────────────────────────────────────────────────────

class TestConfigManager:
    def test_save_and_load_roundtrip(self, tmp_path: Path):
        """Gespeicherte Config kann wieder geladen werden."""
        config = default_engine_config()
        mgr = ConfigManager()
        mgr.DEFAULT_CONFIG = tmp_path / "engine_config.yaml"

        mgr.save(config)
        assert mgr.DEFAULT_CONFIG.exists()

        loaded = mgr.load(mgr.DEFAULT_CONFIG)
        assert loaded.school_name == config.school_name
        assert loaded.time_grid.slots == config.time_grid.slots
        assert loaded.replacement.offer_timeout_minutes == 60

    def test_saved_yaml_has_comments(self, tmp_path: Path):
        mgr = ConfigManager()
        path = mgr.save(default_engine_config(), tmp_path / "c.yaml")
        text = path.read_text(encoding="utf-8")
        assert "Scheduling-Engine" in text
        assert "─── Vertretungen ───" in text
        assert "# Minuten" in text

    def test_first_run_check_no_file(self, tmp_path: Path):
        mgr = ConfigManager()
        mgr.DEFAULT_CONFIG = tmp_path / "nonexistent.yaml"
        assert mgr.first_run_check() is True

    def test_first_run_check_with_file(self, tmp_path: Path):
        mgr = ConfigManager()
        mgr.DEFAULT_CONFIG = tmp_path / "engine_config.yaml"
        mgr.save(default_engine_config())
        assert mgr.first_run_check() is False

    def test_load_nonexistent_raises(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            ConfigManager().load(tmp_path / "missing.yaml")

    def test_load_invalid_raises_value_error(self, tmp_path: Path):
        path = tmp_path / "broken.yaml"
        path.write_text("school_name: X\n", encoding="utf-8")
        with pytest.raises(ValueError):
            ConfigManager().load(path)

    def test_load_or_default_without_file(self, tmp_path: Path):
        config = ConfigManager().load_or_default(tmp_path / "missing.yaml")
        assert config.time_grid.days_per_week == 5

"""Tests für Kapazitätsrechner und Quoten-Gruppierung."""

from datetime import date

import pytest

from config.defaults import default_slots
from config.schema import SlotDefinition, SlotKind, SubjectRulesConfig
from engine.capacity import (
    check_assignment_capacity,
    effective_quota,
    monthly_capacity,
    quota_group,
    weekdays_in_month,
    weekly_capacity,
)
from engine.errors import CapacityExceededError, ValidationError
from models.assignment import Assignment
from models.slot import SlotCatalog


def _a(subject: str, quota: int, teacher: str = "PER", class_id: str = "6A") -> Assignment:
    return Assignment(teacher_id=teacher, subject=subject, class_id=class_id,
                      term_id="T1", remaining_quota=quota)


# ─── MONATSKAPAZITÄT ──────────────────────────────────────────────────────────

class TestMonthlyCapacity:
    def test_weekdays_october_2026(self):
        """Oktober 2026 hat 22 Schultage (Mo–Fr)."""
        assert weekdays_in_month(date(2026, 10, 19)) == 22

    def test_weekdays_february_2026(self):
        """Februar 2026 beginnt an einem Sonntag → 20 Schultage."""
        assert weekdays_in_month(date(2026, 2, 1)) == 20

    def test_capacity_is_weekdays_times_periods(self):
        assert monthly_capacity(date(2026, 10, 1)) == 22 * 8
        assert monthly_capacity(date(2026, 10, 1), periods_per_day=6) == 22 * 6

    def test_same_month_same_capacity(self):
        """Kapazität hängt nur vom Monat ab, nicht vom Tag."""
        assert monthly_capacity(date(2026, 10, 1)) == monthly_capacity(date(2026, 10, 31))

    def test_inactive_term_has_no_capacity(self):
        assert monthly_capacity(date(2026, 10, 1), active_term=False) == 0


class TestWeeklyCapacity:
    def test_default_catalog(self):
        """Standard-Raster: 8 Perioden × 5 Tage = 40."""
        assert weekly_capacity(SlotCatalog(default_slots())) == 40

    def test_inactive_slot_not_counted(self):
        slots = default_slots()
        slots[-1] = SlotDefinition(slot_number=10, start_time="13:00", end_time="13:45",
                                   is_active=False)
        assert weekly_capacity(SlotCatalog(slots)) == 35

    def test_breaks_not_counted(self):
        slots = [
            SlotDefinition(slot_number=1, start_time="08:00", end_time="08:45"),
            SlotDefinition(slot_number=2, start_time="08:45", end_time="09:00",
                           kind=SlotKind.BREAK),
            SlotDefinition(slot_number=3, start_time="09:00", end_time="09:45"),
        ]
        assert weekly_capacity(SlotCatalog(slots), days_per_week=4) == 8


# ─── GRUPPIERUNG ──────────────────────────────────────────────────────────────

class TestQuotaGrouping:
    def test_religion_family(self):
        rules = SubjectRulesConfig()
        assert quota_group("Religion", rules) == "religion"
        assert quota_group("Religion (Hindu)", rules) == "religion"
        assert quota_group("religion - buddhism", rules) == "religion"

    def test_language_pair(self):
        rules = SubjectRulesConfig()
        assert quota_group("Tamil", rules) == "language"
        assert quota_group("Sinhala", rules) == "language"

    def test_regular_subject_has_no_group(self):
        assert quota_group("Mathematics", SubjectRulesConfig()) is None

    def test_group_counts_maximum_once(self):
        """Religion 3/2 → 3, Tamil 4 / Sinhala 5 → 5, Englisch 6 → 14."""
        assignments = [
            _a("Religion", 3),
            _a("Religion (Hindu)", 2, teacher="SIV"),
            _a("Tamil", 4, teacher="KUM"),
            _a("Sinhala", 5, teacher="BAN"),
            _a("English", 6, teacher="FER"),
        ]
        assert effective_quota(assignments) == 14

    def test_plain_sum_without_groups(self):
        assert effective_quota([_a("English", 6), _a("Mathematics", 6, teacher="FER")]) == 12

    def test_empty(self):
        assert effective_quota([]) == 0


# ─── ZUWEISUNGS-PRÜFUNG ───────────────────────────────────────────────────────

class TestCheckAssignmentCapacity:
    def _existing(self) -> list[Assignment]:
        # 4 × 42 = 168 Perioden (Oktober 2026: Kapazität 176)
        return [_a(f"Fach {i}", 42, teacher=f"T{i}") for i in range(4)]

    def test_fits(self):
        used = check_assignment_capacity(
            _a("English", 8), self._existing(), date(2026, 10, 5))
        assert used == 176

    def test_exceeds_capacity(self):
        with pytest.raises(CapacityExceededError) as exc:
            check_assignment_capacity(_a("English", 9), self._existing(), date(2026, 10, 5))
        assert exc.value.needed == 177
        assert exc.value.available == 176

    def test_update_replaces_same_key(self):
        """Eine bestehende Zuweisung wird ersetzt, nicht doppelt gezählt."""
        existing = self._existing() + [_a("English", 8)]
        used = check_assignment_capacity(_a("English", 6), existing, date(2026, 10, 5))
        assert used == 174

    def test_other_classes_ignored(self):
        existing = self._existing() + [_a("English", 40, class_id="7B")]
        assert check_assignment_capacity(_a("English", 8), existing, date(2026, 10, 5)) == 176

    def test_group_member_below_max_is_free(self):
        """Eine zweite Religions-Variante unter dem Maximum kostet nichts."""
        existing = self._existing() + [_a("Religion", 8, teacher="SIV")]
        used = check_assignment_capacity(
            _a("Religion (Islam)", 5, teacher="ISM"), existing, date(2026, 10, 5))
        assert used == 176

    def test_quota_above_limit(self):
        with pytest.raises(ValidationError):
            check_assignment_capacity(_a("English", 51), [], date(2026, 10, 5))

    def test_inactive_term_rejects_everything(self):
        with pytest.raises(CapacityExceededError):
            check_assignment_capacity(_a("English", 1), [], date(2026, 10, 5), active_term=False)

"""Tests für Konflikt-Prüfung und Quotenbericht."""

from datetime import date

from analysis.conflict_validator import ConflictReport, ConflictValidator
from analysis.quota_report import build_quota_report
from models.assignment import Assignment
from models.schedule import ScheduleEntry


def _e(class_id: str, day: int, slot: int, teacher: str, subject: str = "English") -> ScheduleEntry:
    return ScheduleEntry(class_id=class_id, term_id="T1", day=day, slot_number=slot,
                         subject=subject, teacher_id=teacher)


# ─── KONFLIKTE ────────────────────────────────────────────────────────────────

class TestConflictValidator:
    def test_clean_schedule(self):
        entries = [_e("6A", 0, 2, "PER"), _e("6B", 0, 2, "FER"), _e("6A", 0, 3, "FER")]
        v = ConflictValidator()
        assert v.validate("6A", entries) == []
        assert v.validate_all(entries) == []

    def test_teacher_in_two_classes(self):
        entries = [_e("6A", 0, 2, "PER"), _e("6B", 0, 2, "PER")]
        conflicts = ConflictValidator().validate("6A", entries)
        assert len(conflicts) == 1
        c = conflicts[0]
        assert c.kind == "teacher_double_booking"
        assert c.teacher_id == "PER"
        assert c.classes == ["6A", "6B"]
        assert "PER" in c.description

    def test_validate_only_reports_own_class(self):
        """Konflikt zwischen 6B und 6C betrifft 6A nicht."""
        entries = [_e("6A", 0, 2, "FER"), _e("6B", 1, 4, "PER"), _e("6C", 1, 4, "PER")]
        v = ConflictValidator()
        assert v.validate("6A", entries) == []
        assert len(v.validate_all(entries)) == 1

    def test_class_double_booking(self):
        entries = [_e("6A", 2, 7, "PER"), _e("6A", 2, 7, "FER", "Maths")]
        conflicts = ConflictValidator().validate("6A", entries)
        assert [c.kind for c in conflicts] == ["class_double_booking"]
        assert conflicts[0].classes == ["6A"]

    def test_entries_without_teacher_ignored(self):
        entries = [
            ScheduleEntry(class_id="6A", term_id="T1", day=0, slot_number=2, subject="Lib"),
            ScheduleEntry(class_id="6B", term_id="T1", day=0, slot_number=2, subject="Lib"),
        ]
        assert ConflictValidator().validate_all(entries) == []

    def test_report_scope(self):
        entries = [_e("6A", 0, 2, "PER"), _e("6B", 0, 2, "PER")]
        v = ConflictValidator()
        report = v.report(entries)
        assert isinstance(report, ConflictReport)
        assert report.scope == "alle"
        assert not report.is_valid
        assert v.report(entries, "6A").scope == "6A"

    def test_sorted_by_day_and_slot(self):
        entries = [_e("6A", 3, 2, "PER"), _e("6B", 3, 2, "PER"),
                   _e("6A", 1, 5, "FER"), _e("6B", 1, 5, "FER")]
        conflicts = ConflictValidator().validate_all(entries)
        assert [(c.day, c.slot_number) for c in conflicts] == [(1, 5), (3, 2)]


# ─── QUOTENBERICHT ────────────────────────────────────────────────────────────

class TestQuotaReport:
    def _assignments(self) -> list[Assignment]:
        return [
            Assignment(teacher_id="PER", subject="English", class_id="6A",
                       term_id="T1", remaining_quota=10),
            Assignment(teacher_id="KUM", subject="Tamil", class_id="6A",
                       term_id="T1", remaining_quota=4),
            Assignment(teacher_id="BAN", subject="Sinhala", class_id="6A",
                       term_id="T1", remaining_quota=5),
            Assignment(teacher_id="FER", subject="Maths", class_id="6A",
                       term_id="T1", remaining_quota=0),
        ]

    def test_lines_and_totals(self):
        entries = [_e("6A", d, 2, "PER") for d in range(3)]
        report = build_quota_report("6A", self._assignments(), entries, date(2026, 10, 19))
        assert report.capacity == 176
        assert report.effective_total == 15
        english = next(l for l in report.lines if l.subject == "English")
        assert english.scheduled_per_week == 3
        assert english.weeks_left == 4
        assert not report.over_capacity

    def test_groups_and_completion(self):
        report = build_quota_report("6A", self._assignments(), [], date(2026, 10, 19))
        by_subject = {l.subject: l for l in report.lines}
        assert by_subject["Tamil"].group == "language"
        assert by_subject["Maths"].completed
        assert by_subject["Maths"].weeks_left == 0
        assert by_subject["Tamil"].weeks_left is None

    def test_inactive_term_is_over_capacity(self):
        report = build_quota_report("6A", self._assignments(), [], date(2026, 10, 19),
                                    active_term=False)
        assert report.capacity == 0
        assert report.over_capacity
        assert report.utilization == 0.0

"""Default-Werte: Tagesraster, Lehrplan und Quoten nach Jahrgang."""

from config.schema import (
    EngineConfig,
    SlotDefinition,
    SlotKind,
    TimeGridConfig,
)


# ─── ZEITRASTER ───
# Appell, 4 Perioden, Pause, 4 Perioden → 8 Perioden pro Tag.

def default_slots() -> list[SlotDefinition]:
    """Standard-Tagesraster mit 10 Slots."""
    return [
        SlotDefinition(slot_number=1,  start_time="07:00", end_time="07:30", kind=SlotKind.ASSEMBLY),
        SlotDefinition(slot_number=2,  start_time="07:30", end_time="08:15"),
        SlotDefinition(slot_number=3,  start_time="08:15", end_time="09:00"),
        SlotDefinition(slot_number=4,  start_time="09:00", end_time="09:45"),
        SlotDefinition(slot_number=5,  start_time="09:45", end_time="10:30"),
        SlotDefinition(slot_number=6,  start_time="10:30", end_time="10:45", kind=SlotKind.BREAK),
        SlotDefinition(slot_number=7,  start_time="10:45", end_time="11:30"),
        SlotDefinition(slot_number=8,  start_time="11:30", end_time="12:15"),
        SlotDefinition(slot_number=9,  start_time="12:15", end_time="13:00"),
        SlotDefinition(slot_number=10, start_time="13:00", end_time="13:45"),
    ]


def default_time_grid() -> TimeGridConfig:
    return TimeGridConfig(slots=default_slots())


def default_engine_config() -> EngineConfig:
    """Komplette Default-Konfiguration."""
    return EngineConfig(time_grid=default_time_grid())


# ─── LEHRPLAN ───
# Jahrgang → angebotene Fächer (Sri-Lanka-Curriculum, Jg. 1–11).

_PRIMARY = ["English", "Mathematics", "Science", "Tamil", "Religion", "PT",
            "Environmental Studies"]
_MIDDLE = ["English", "Mathematics", "Science", "History", "Religion", "Tamil",
           "Sinhala", "Information Technology", "Health Science", "Geography",
           "Civics", "Library", "Art", "Music", "PT"]
_SENIOR = ["English", "Mathematics", "Science", "History", "Religion", "Tamil",
           "Sinhala", "Commerce", "Information Technology", "Health Science",
           "Art", "Music", "PT"]

SUBJECTS_BY_GRADE: dict[int, list[str]] = {
    1: _PRIMARY, 2: _PRIMARY, 3: _PRIMARY,
    4: _PRIMARY + ["Art", "Information Technology", "Sinhala"],
    5: _PRIMARY + ["Art", "Information Technology", "Sinhala"],
    6: _MIDDLE, 7: _MIDDLE, 8: _MIDDLE, 9: _MIDDLE,
    10: _SENIOR, 11: _SENIOR,
}


def subjects_for_grade(grade: int) -> list[str]:
    """Fächerliste eines Jahrgangs (leer bei unbekanntem Jahrgang)."""
    return list(SUBJECTS_BY_GRADE.get(grade, []))


def default_course_limit(grade: int, subject: str) -> int:
    """Wochen-Perioden eines Fachs je nach Jahrgang."""
    s = subject.lower()
    if s in ("english", "mathematics", "science"):
        return 5 if grade <= 5 else 6 if grade <= 9 else 7
    if s in ("tamil", "sinhala"):
        return 4 if grade <= 5 else 5
    if s.startswith("religion"):
        return 2 if grade <= 5 else 3
    if s in ("pt", "physical training", "art", "music", "health science", "health"):
        return 2
    if s == "environmental studies":
        return 4 if grade <= 3 else 3
    if s in ("information technology", "it"):
        return 2 if grade <= 5 else 3
    if s in ("history", "geography", "civics"):
        return 3 if grade <= 9 else 4
    if s == "commerce":
        return 4
    if s == "library":
        return 1
    return 3

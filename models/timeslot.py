"""Wochentags-Namen für das 0-basierte Tagesraster (0=Montag, ..., 4=Freitag)."""

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]


def day_name(day: int) -> str:
    """Wochentagsname für einen 0-basierten Index."""
    return DAY_NAMES[day] if 0 <= day < len(DAY_NAMES) else str(day)

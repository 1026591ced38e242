"""Kapazitätsrechner und Quoten-Gruppierung.

Kapazitätsregel: Eine Klasse darf im aktuellen Zyklus höchstens
(Wochentage im Kalendermonat) × (Perioden pro Tag) Perioden zugewiesen
bekommen. Der Wert wird immer neu berechnet, nie gespeichert.

Gruppierungsregel: Alle Varianten der Religions-Familie teilen sich eine
Quote, ebenso das Wahlsprachen-Paar Tamil/Sinhala. Eine Gruppe zählt mit
ihrem Maximum genau einmal, alle anderen Fächer mit ihrer Summe.
"""

import calendar
from datetime import date
from typing import Iterable, Optional

from config.schema import SubjectRulesConfig
from engine.errors import CapacityExceededError, ValidationError
from models.assignment import Assignment
from models.slot import SlotCatalog

DEFAULT_PERIODS_PER_DAY = 8


def weekdays_in_month(reference_date: date) -> int:
    """Anzahl Mo–Fr im Kalendermonat von reference_date."""
    _, days_in_month = calendar.monthrange(reference_date.year, reference_date.month)
    return sum(
        1 for d in range(1, days_in_month + 1)
        if date(reference_date.year, reference_date.month, d).weekday() < 5
    )


def monthly_capacity(
    reference_date: date,
    active_term: bool = True,
    periods_per_day: int = DEFAULT_PERIODS_PER_DAY,
) -> int:
    """Perioden-Budget einer Klasse für den Monat von reference_date.

    Ein inaktives Trimester hat kein Budget (0).
    """
    if not active_term:
        return 0
    return weekdays_in_month(reference_date) * periods_per_day


def weekly_capacity(catalog: SlotCatalog, days_per_week: int = 5) -> int:
    """Maximale Perioden einer Klasse pro Woche (Generator-Machbarkeit)."""
    return days_per_week * catalog.periods_per_day


def quota_group(subject: str, rules: SubjectRulesConfig) -> Optional[str]:
    """Gruppen-Schlüssel eines Fachs oder None, wenn es einzeln zählt."""
    if subject.lower().startswith(rules.religion_prefix.lower()):
        return "religion"
    pair = {s.lower() for s in rules.language_pair}
    if subject.lower() in pair:
        return "language"
    return None


def effective_quota(
    assignments: Iterable[Assignment],
    rules: Optional[SubjectRulesConfig] = None,
) -> int:
    """Effektiv belegte Quote einer Klasse (Gruppen zählen einmal mit Maximum)."""
    rules = rules or SubjectRulesConfig()
    total = 0
    group_max: dict[str, int] = {}
    for a in assignments:
        group = quota_group(a.subject, rules)
        if group is None:
            total += a.remaining_quota
        else:
            group_max[group] = max(group_max.get(group, 0), a.remaining_quota)
    return total + sum(group_max.values())


def check_assignment_capacity(
    candidate: Assignment,
    existing: Iterable[Assignment],
    reference_date: date,
    active_term: bool = True,
    periods_per_day: int = DEFAULT_PERIODS_PER_DAY,
    rules: Optional[SubjectRulesConfig] = None,
) -> int:
    """Prüft ob candidate (neu oder aktualisiert) noch in die Kapazität passt.

    existing sind alle Zuweisungen derselben Klasse/desselben Trimesters;
    ein Eintrag mit gleichem Schlüssel wird durch candidate ersetzt.
    Gibt die effektive Quote nach der Änderung zurück.
    """
    rules = rules or SubjectRulesConfig()
    if candidate.remaining_quota > rules.max_course_limit:
        raise ValidationError(
            f"Quote {candidate.remaining_quota} für {candidate.subject} liegt über "
            f"dem Maximum {rules.max_course_limit}"
        )
    merged = [
        a for a in existing
        if a.class_id == candidate.class_id
        and a.term_id == candidate.term_id
        and a.key != candidate.key
    ]
    merged.append(candidate)
    used = effective_quota(merged, rules)
    capacity = monthly_capacity(reference_date, active_term, periods_per_day)
    if used > capacity:
        raise CapacityExceededError(
            used, capacity, context=f"Klasse {candidate.class_id}, {reference_date:%Y-%m}"
        )
    return used

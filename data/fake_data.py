"""Testdaten-Generator für die Scheduling-Engine.

Erzeugt eine kleine Schule (Sri-Lanka-Curriculum) mit Klassen, Lehrkräften,
einem aktiven Trimester, Quoten-Zuweisungen und Beispiel-Abwesenheiten.

Garantien:
  - Die Summe der Quoten jeder Klasse passt in die Woche (mit Reserve),
    d.h. generate_timetable wirft keine CapacityExceededError
  - Pro Fach gibt es genug Lehrkräfte, dass keine mehr als
    MAX_TEACHER_LOAD Perioden pro Woche trägt
  - Jede Klasse belegt genau eine der beiden Wahlsprachen
"""

import math
import random
import string
from datetime import date, timedelta
from typing import Optional

from config.defaults import default_course_limit, subjects_for_grade
from config.schema import EngineConfig
from engine.capacity import weekly_capacity
from models.absence import AbsenceRequest, AbsenceScope
from models.assignment import Assignment
from models.school_class import SchoolClass
from models.slot import SlotCatalog
from models.teacher import Teacher
from models.term import Term
from store.memory import StoreSnapshot

# Perioden pro Woche, die eine Lehrkraft höchstens trägt
MAX_TEACHER_LOAD = 24
# Freie Perioden pro Klasse und Woche, damit Lehrer-Konflikte auflösbar bleiben
CLASS_SLACK = 4

# ─── Namens-Listen ────────────────────────────────────────────────────────────

_FIRST_NAMES = [
    "Nimal", "Kamala", "Saman", "Dilani", "Ruwan", "Priya", "Suresh",
    "Anjali", "Kasun", "Tharushi", "Mohamed", "Fathima", "Lakshmi", "Kumar",
    "Chamari", "Nuwan", "Ishara", "Sanjeewa", "Malini", "Arjun",
]

_LAST_NAMES = [
    "Perera", "Fernando", "Silva", "Jayasinghe", "Bandara", "Wickramasinghe",
    "Rajapaksa", "Kumaran", "Sivakumar", "Nadarajah", "Gunawardena",
    "Dissanayake", "Herath", "Rathnayake", "Senanayake", "Ismail",
    "Karunaratne", "Amarasinghe", "Mendis", "Ekanayake",
]


def _make_abbreviation(last_name: str, used: set[str], rng: random.Random) -> str:
    """Generiert ein eindeutiges 3-Zeichen-Kürzel aus dem Nachnamen."""
    base = last_name.upper()
    candidates = [
        base[:3],
        base[:2] + base[-1],
        base[0] + base[2:4],
        base[:2] + str(len(used) % 10),
    ]
    for c in candidates:
        c = c[:3].ljust(3, "X")
        if c not in used:
            used.add(c)
            return c
    while True:
        c = "".join(rng.choices(string.ascii_uppercase, k=3))
        if c not in used:
            used.add(c)
            return c


class FakeDataGenerator:
    """Generiert einen vollständigen Speicherstand auf Basis der EngineConfig."""

    def __init__(
        self,
        config: EngineConfig,
        seed: Optional[int] = None,
        grades: tuple[int, ...] = (6, 7, 8),
        sections: tuple[str, ...] = ("A", "B"),
        reference_date: Optional[date] = None,
    ) -> None:
        self.config = config
        self.rng = random.Random(seed)
        self.grades = grades
        self.sections = sections
        self.reference_date = reference_date or date.today()
        self._used_abbreviations: set[str] = set()
        self._catalog = SlotCatalog.from_time_grid(config.time_grid)

    # ─── Trimester & Klassen ──────────────────────────────────────────────────

    def _generate_term(self) -> Term:
        start = self.reference_date - timedelta(days=30)
        return Term(id="T1", number=1, start_date=start,
                    end_date=start + timedelta(days=120), is_active=True)

    def _generate_classes(self, term: Term) -> list[SchoolClass]:
        return [
            SchoolClass(id=f"{g}{s}", name=f"Grade {g} {s}", grade=g,
                        section=s, term_id=term.id)
            for g in self.grades
            for s in self.sections
        ]

    # ─── Lehrplan pro Klasse ──────────────────────────────────────────────────

    def _class_subjects(self, grade: int) -> list[tuple[str, int]]:
        """Fächer einer Klasse mit Quote, gekürzt bis sie in die Woche passen."""
        pair = self.config.subjects.language_pair
        language = self.rng.choice(pair)
        subjects = [
            s for s in subjects_for_grade(grade)
            if s not in pair or s == language
        ]
        plan = [(s, default_course_limit(grade, s)) for s in subjects]
        budget = weekly_capacity(self._catalog, self.config.time_grid.days_per_week) - CLASS_SLACK
        # Nebenfächer stehen hinten in der Liste und fallen zuerst weg
        while plan and sum(q for _, q in plan) > budget:
            plan.pop()
        return plan

    # ─── Lehrkräfte & Zuweisungen ─────────────────────────────────────────────

    def _make_teacher(self, subject: str) -> Teacher:
        first = self.rng.choice(_FIRST_NAMES)
        last = self.rng.choice(_LAST_NAMES)
        abbr = _make_abbreviation(last, self._used_abbreviations, self.rng)
        return Teacher(id=abbr, name=f"{last}, {first}", subjects=[subject])

    def _generate_staff(
        self, classes: list[SchoolClass], term: Term
    ) -> tuple[list[Teacher], list[Assignment]]:
        demand: dict[str, list[tuple[SchoolClass, int]]] = {}
        for c in classes:
            for subject, quota in self._class_subjects(c.grade):
                demand.setdefault(subject, []).append((c, quota))

        teachers: list[Teacher] = []
        assignments: list[Assignment] = []
        for subject, rows in demand.items():
            total = sum(q for _, q in rows)
            pool = [self._make_teacher(subject)
                    for _ in range(max(1, math.ceil(total / MAX_TEACHER_LOAD)))]
            load = {t.id: 0 for t in pool}
            for c, quota in rows:
                teacher = min(pool, key=lambda t: (load[t.id], t.id))
                load[teacher.id] += quota
                assignments.append(Assignment(
                    teacher_id=teacher.id, subject=subject,
                    class_id=c.id, term_id=term.id, remaining_quota=quota,
                ))
            teachers.extend(pool)

        # Zweitfach für einige Lehrkräfte (nur Info im Verzeichnis)
        all_subjects = sorted(demand)
        for t in teachers:
            if self.rng.random() < 0.3:
                extra = self.rng.choice(all_subjects)
                if extra not in t.subjects:
                    t.subjects.append(extra)
        return teachers, assignments

    def _generate_admins(self) -> list[Teacher]:
        return [Teacher(id="ADM", name="Schulverwaltung", role="admin")]

    # ─── Abwesenheiten ────────────────────────────────────────────────────────

    def _next_weekday(self, offset: int) -> date:
        d = self.reference_date + timedelta(days=offset)
        while d.weekday() >= 5:
            d += timedelta(days=1)
        return d

    def _generate_absences(self, teachers: list[Teacher]) -> list[AbsenceRequest]:
        if len(teachers) < 2:
            return []
        sick, course = self.rng.sample(teachers, 2)
        day = self._next_weekday(1)
        return [
            AbsenceRequest(id="ABS-1", teacher_id=sick.id, start_date=day, end_date=day,
                           scope=AbsenceScope.FULL, reason="Krank", approved=True),
            AbsenceRequest(id="ABS-2", teacher_id=course.id,
                           start_date=self._next_weekday(2), end_date=self._next_weekday(2),
                           scope=AbsenceScope.FIRST_HALF, reason="Fortbildung",
                           approved=False),
        ]

    # ─── Vollständiger Datensatz ──────────────────────────────────────────────

    def generate(self) -> StoreSnapshot:
        """Erzeugt den vollständigen Speicherstand."""
        term = self._generate_term()
        classes = self._generate_classes(term)
        teachers, assignments = self._generate_staff(classes, term)
        return StoreSnapshot(
            teachers=teachers + self._generate_admins(),
            classes=classes,
            terms=[term],
            slots=list(self.config.time_grid.slots),
            assignments=assignments,
            absences=self._generate_absences(teachers),
        )

    # ─── Ausgabe ──────────────────────────────────────────────────────────────

    def print_summary(self, data: StoreSnapshot) -> None:
        """Gibt eine Rich-Tabelle mit Übersicht der erzeugten Daten aus."""
        from rich.console import Console
        from rich.table import Table
        from rich import box

        console = Console()
        table = Table(title="Erzeugte Testdaten", box=box.ROUNDED)
        table.add_column("Kategorie", style="bold cyan")
        table.add_column("Anzahl", justify="right")
        table.add_column("Details")

        admins = sum(1 for t in data.teachers if t.is_admin)
        quota = sum(a.remaining_quota for a in data.assignments)
        table.add_row("Trimester", str(len(data.terms)),
                      ", ".join(f"{t.id} {t.start_date}–{t.end_date}" for t in data.terms))
        table.add_row("Klassen", str(len(data.classes)),
                      f"{len(set(c.grade for c in data.classes))} Jahrgänge")
        table.add_row("Lehrkräfte", str(len(data.teachers) - admins), f"+ {admins} Admin")
        table.add_row("Zuweisungen", str(len(data.assignments)), f"{quota} Perioden/Woche")
        table.add_row("Abwesenheiten", str(len(data.absences)),
                      f"{sum(1 for a in data.absences if a.approved)} genehmigt")

        console.print(table)

from pydantic import BaseModel, Field, model_validator
from typing import Optional
from enum import Enum


class SlotKind(str, Enum):
    PERIOD = "Period"
    BREAK = "Break"
    ASSEMBLY = "Assembly"


# ─── ZEITRASTER (vollständig konfigurierbar) ───

class SlotDefinition(BaseModel):
    """Ein Eintrag im Tagesraster (Unterrichtsstunde, Pause oder Appell)."""
    model_config = {"frozen": True}

    # Laufende Nummer im Raster, 1-basiert
    slot_number: int = Field(ge=1)
    # Beginn im Format "HH:MM"
    start_time: str
    # Ende im Format "HH:MM"
    end_time: str
    # Art des Slots; nur "Period" ist unterrichtsrelevant
    kind: SlotKind = SlotKind.PERIOD
    # Inaktive Slots werden vom Generator ignoriert
    is_active: bool = True

    @property
    def is_academic(self) -> bool:
        return self.kind == SlotKind.PERIOD and self.is_active


class TimeGridConfig(BaseModel):
    """Tagesraster der Schule.

    Definiert:
    - alle Slots eines Tages (Perioden, Pausen, Appell)
    - wie viele Tage pro Woche unterrichtet wird
    - wo der Tag für Halbtags-Abwesenheiten geteilt wird
    """
    # Anzahl Unterrichtstage pro Woche (Mo–Fr)
    days_per_week: int = Field(5, ge=1, le=5,
        description="Unterrichtstage pro Woche")
    # Namen der Wochentage
    day_names: list[str] = Field(
        default=["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"],
        description="Namen der Wochentage")
    # Alle Slots des Tages in Rasterreihenfolge
    slots: list[SlotDefinition] = Field(
        description="Alle Slots des Tages mit Uhrzeiten und Art")
    # Letzte Periode (Position unter den Perioden) der ersten Tageshälfte
    half_day_split: int = Field(4, ge=1,
        description="Perioden 1..n gehören zur ersten Tageshälfte")

    @model_validator(mode='after')
    def validate_slots(self):
        """Slot-Nummern müssen eindeutig sein, mind. eine Periode muss existieren."""
        numbers = [s.slot_number for s in self.slots]
        if len(numbers) != len(set(numbers)):
            raise ValueError("Slot-Nummern im Zeitraster sind nicht eindeutig")
        academic = [s for s in self.slots if s.is_academic]
        if not academic:
            raise ValueError("Zeitraster enthält keine Unterrichtsperiode")
        if self.half_day_split >= len(academic):
            raise ValueError(
                f"half_day_split ({self.half_day_split}) muss kleiner sein als "
                f"die Anzahl Perioden ({len(academic)})")
        if len(self.day_names) != self.days_per_week:
            raise ValueError("day_names passt nicht zu days_per_week")
        return self


# ─── FÄCHER ───

class SubjectRulesConfig(BaseModel):
    """Fachregeln für Quoten und Doppelstunden."""
    # Schlüsselwörter für Labor-Fächer (ganzes Wort, Groß-/Kleinschreibung egal)
    lab_keywords: list[str] = Field(
        default=["Science", "Computer Science", "Physics", "Chemistry",
                 "Biology", "IT", "Lab"],
        description="Labor-Fächer bekommen Doppelstunden")
    # Präfix der Religions-Familie (alle Varianten teilen sich eine Quote)
    religion_prefix: str = Field("Religion",
        description="Fächer mit diesem Präfix zählen als eine Quote")
    # Gekoppelte Wahlsprachen (zählen gemeinsam einmal)
    language_pair: list[str] = Field(
        default=["Tamil", "Sinhala"],
        description="Sich ausschließende Wahlsprachen")
    # Obergrenze für eine neu gesetzte Quote
    max_course_limit: int = Field(50, ge=1,
        description="Maximale Quote pro Zuweisung")


# ─── VERTRETUNG ───

class ReplacementConfig(BaseModel):
    """Konfiguration des Vertretungs-Workflows."""
    # Nach so vielen Minuten gilt ein offenes Angebot als abgelehnt
    offer_timeout_minutes: int = Field(60, ge=1,
        description="Ablaufzeit eines Vertretungsangebots (Minuten)")
    # Empfänger für Eskalationen, falls das Verzeichnis keine Admins liefert
    fallback_admin_ids: list[str] = Field(
        default=["admin"],
        description="Admin-Empfänger wenn das Verzeichnis keine liefert")
    # Rolle, aus der Stufe 3 (beliebige freie Lehrkraft) schöpft
    teacher_role: str = Field("teacher",
        description="Verzeichnis-Rolle der Lehrkräfte")


# ─── SPEICHER ───

class StorageConfig(BaseModel):
    """Ablage des Engine-Zustands für die CLI."""
    state_path: str = Field("output/engine_state.json",
        description="JSON-Datei mit Stammdaten, Plänen und Aufgaben")


# ─── GESAMT-CONFIG ───

class EngineConfig(BaseModel):
    """Gesamtkonfiguration der Scheduling-Engine."""
    # Name der Schule
    school_name: str = Field("Musterschule",
        description="Name der Schule")
    # Vollständiges Zeitraster
    time_grid: TimeGridConfig
    # Fachregeln
    subjects: SubjectRulesConfig = Field(default_factory=SubjectRulesConfig)
    # Vertretungs-Workflow
    replacement: ReplacementConfig = Field(default_factory=ReplacementConfig)
    # Ablage
    storage: StorageConfig = Field(default_factory=StorageConfig)
    # Optionale Notiz, wird nur angezeigt
    notes: Optional[str] = None

"""Datenmodell für eine Schulklasse (Pydantic v2)."""

from pydantic import BaseModel


class SchoolClass(BaseModel):
    """Repräsentiert eine einzelne Klasse (z.B. 7-B)."""

    id: str          # "7B"
    name: str        # "Grade 7 B"
    grade: int
    section: str     # "A".."F"
    term_id: str     # Aktives Halbjahr/Trimester der Klasse

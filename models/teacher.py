"""Datenmodell für eine Lehrkraft (Pydantic v2)."""

from typing import Literal

from pydantic import BaseModel, field_validator


class Teacher(BaseModel):
    """Repräsentiert eine Person aus dem Verzeichnis (Lehrkraft oder Admin)."""

    id: str                                       # Kürzel ("PER")
    name: str                                     # "Perera, Nimal"
    role: Literal["teacher", "admin"] = "teacher"
    subjects: list[str] = []                      # Unterrichtbare Fächer (nur Info)

    @field_validator("id")
    @classmethod
    def normalize_id(cls, v: str) -> str:
        return v.upper()

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

"""Datenmodell für ein Unterrichtsfach (Pydantic v2)."""

import re
from typing import Optional
from pydantic import BaseModel


class Subject(BaseModel):
    """Repräsentiert ein Unterrichtsfach."""

    name: str
    is_lab: Optional[bool] = None  # None → aus lab_keywords der Config ableiten

    def lab_flag(self, lab_keywords: list[str]) -> bool:
        """True wenn das Fach Doppelstunden (Labor) bekommt."""
        if self.is_lab is not None:
            return self.is_lab
        return is_lab_subject(self.name, lab_keywords)


def is_lab_subject(name: str, lab_keywords: list[str]) -> bool:
    """Ganzwort-Vergleich gegen die Labor-Schlüsselwörter (Groß-/Kleinschreibung egal).

    "IT" trifft also "IT" und "IT Lab", aber nicht "Christianity".
    """
    return any(
        re.search(rf"\b{re.escape(k)}\b", name, re.IGNORECASE)
        for k in lab_keywords
    )

from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class DayAvailability:
    date: date
    label: str  # e.g. "martes 20 de octubre"
    slots: tuple[str, ...]  # HH:MM, ascending

from __future__ import annotations

from datetime import date

# 0 = domingo ... 6 = sábado
WEEKDAY_NAMES = (
    "domingo",
    "lunes",
    "martes",
    "miércoles",
    "jueves",
    "viernes",
    "sábado",
)

MONTH_NAMES = (
    "enero",
    "febrero",
    "marzo",
    "abril",
    "mayo",
    "junio",
    "julio",
    "agosto",
    "septiembre",
    "octubre",
    "noviembre",
    "diciembre",
)


def sunday_based_weekday(day: date) -> int:
    """Weekday index with domingo = 0, matching WEEKDAY_NAMES."""
    return (day.weekday() + 1) % 7


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[sunday_based_weekday(day)]


def month_name(day: date) -> str:
    return MONTH_NAMES[day.month - 1]


def format_long_date(day: date) -> str:
    """Render a date the way the clinic writes it, e.g. "martes 20 de octubre"."""
    return f"{weekday_name(day)} {day.day} de {month_name(day)}"

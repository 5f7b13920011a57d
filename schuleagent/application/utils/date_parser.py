from __future__ import annotations

import re
from datetime import date, datetime, timedelta

from schuleagent.application.utils.locale_es import MONTH_NAMES, WEEKDAY_NAMES, sunday_based_weekday

TODAY_TOKEN = "hoy"
TOMORROW_TOKEN = "mañana"
DAY_AFTER_TOMORROW_TOKEN = "pasado mañana"
NEXT_WEEK_TOKENS = ("próxima semana", "la semana que viene")

# Two-digit birth years above this are 19xx, the rest 20xx
TWO_DIGIT_YEAR_PIVOT = 50

DAY_OF_MONTH_PATTERN = re.compile(r"(\d{1,2})\s*de\s*(\w+)")
LONG_DATE_WITH_YEAR_PATTERN = re.compile(r"(\d{1,2})\s*de\s*(\w+)\s*(?:de|del)\s*(\d{4})")
NUMERIC_DATE_PATTERN = re.compile(r"(\d{1,2})[/\-](\d{1,2})[/\-](\d{2,4})")


def parse_colloquial_date(text: str, now: datetime | None = None) -> date | None:
    """Resolve a free-text Spanish date expression to a calendar date.

    Rules are substring checks evaluated in a fixed order and the first one
    that matches wins: hoy, mañana, pasado mañana, weekday name, next week,
    "<day> de <month>". Because "pasado mañana" also contains "mañana", the
    tomorrow rule claims it first.
    """
    if now is None:
        now = datetime.now()
    today = now.date()
    normalized = text.lower()

    if TODAY_TOKEN in normalized:
        return today
    if TOMORROW_TOKEN in normalized:
        return today + timedelta(days=1)
    if DAY_AFTER_TOMORROW_TOKEN in normalized:
        return today + timedelta(days=2)

    for index, day_name in enumerate(WEEKDAY_NAMES):
        if day_name in normalized:
            days_ahead = index - sunday_based_weekday(today)
            if days_ahead <= 0:
                days_ahead += 7
            return today + timedelta(days=days_ahead)

    if any(token in normalized for token in NEXT_WEEK_TOKENS):
        return today + timedelta(days=7)

    match = DAY_OF_MONTH_PATTERN.search(normalized)
    if match:
        month = _resolve_month(match.group(2))
        if month is not None:
            day = int(match.group(1))
            try:
                candidate = datetime(now.year, month, day)
                if candidate < now:
                    candidate = candidate.replace(year=now.year + 1)
            except ValueError:
                return None
            return candidate.date()

    return None


def parse_birth_date(text: str, now: datetime | None = None) -> date | None:
    """Parse a date of birth. Returns None when unparseable or not in the past."""
    if now is None:
        now = datetime.now()
    normalized = text.lower().strip()

    numeric = NUMERIC_DATE_PATTERN.search(normalized)
    long_form = LONG_DATE_WITH_YEAR_PATTERN.search(normalized)
    if numeric:
        birth_date = _numeric_birth_date(numeric)
    elif long_form and _resolve_month(long_form.group(2)) is not None:
        birth_date = _safe_date(int(long_form.group(3)), _resolve_month(long_form.group(2)), int(long_form.group(1)))
    else:
        birth_date = parse_colloquial_date(normalized, now)

    if birth_date is None:
        return None
    if datetime.combine(birth_date, datetime.min.time()) > now:
        return None
    return birth_date


def expand_two_digit_year(year_text: str) -> int:
    if len(year_text) != 2:
        return int(year_text)
    value = int(year_text)
    return 1900 + value if value > TWO_DIGIT_YEAR_PIVOT else 2000 + value


def _numeric_birth_date(match: re.Match[str]) -> date | None:
    day, month, year_text = match.groups()
    return _safe_date(expand_two_digit_year(year_text), int(month), int(day))


def _resolve_month(word: str) -> int | None:
    for index, name in enumerate(MONTH_NAMES):
        if name in word:
            return index + 1
    return None


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None

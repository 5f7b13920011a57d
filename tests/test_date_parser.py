from __future__ import annotations

from datetime import date, datetime

from schuleagent.application.utils.date_parser import (
    expand_two_digit_year,
    parse_birth_date,
    parse_colloquial_date,
)
from schuleagent.application.utils.locale_es import format_long_date

# Monday
NOW = datetime(2026, 10, 19, 10, 0)


def test_relative_tokens():
    assert parse_colloquial_date("hoy", NOW) == date(2026, 10, 19)
    assert parse_colloquial_date("Mañana por favor", NOW) == date(2026, 10, 20)
    assert parse_colloquial_date("la próxima semana", NOW) == date(2026, 10, 26)
    assert parse_colloquial_date("la semana que viene", NOW) == date(2026, 10, 26)


def test_pasado_manana_is_claimed_by_tomorrow_rule():
    assert parse_colloquial_date("pasado mañana", NOW) == date(2026, 10, 20)


def test_weekday_is_always_in_the_future():
    assert parse_colloquial_date("el viernes", NOW) == date(2026, 10, 23)
    assert parse_colloquial_date("el domingo", NOW) == date(2026, 10, 25)
    # same weekday as today jumps a full week
    assert parse_colloquial_date("el lunes", NOW) == date(2026, 10, 26)


def test_day_of_month():
    assert parse_colloquial_date("el 25 de diciembre", NOW) == date(2026, 12, 25)
    assert parse_colloquial_date("15 de marzo", NOW) == date(2027, 3, 15)


def test_day_of_month_today_rolls_to_next_year():
    assert parse_colloquial_date("19 de octubre", NOW) == date(2027, 10, 19)


def test_unparseable_or_impossible_dates():
    assert parse_colloquial_date("cuando puedas", NOW) is None
    assert parse_colloquial_date("31 de febrero", NOW) is None
    assert parse_colloquial_date("3 de nada", NOW) is None


def test_birth_date_numeric_formats():
    assert parse_birth_date("15/03/1985", NOW) == date(1985, 3, 15)
    assert parse_birth_date("15-03-85", NOW) == date(1985, 3, 15)
    assert parse_birth_date("1/2/05", NOW) == date(2005, 2, 1)
    assert parse_birth_date("31/02/1990", NOW) is None


def test_birth_date_long_form_with_year():
    assert parse_birth_date("15 de marzo de 1985", NOW) == date(1985, 3, 15)


def test_birth_date_rejects_future():
    assert parse_birth_date("01/01/2030", NOW) is None
    # colloquial fallback lands in the future
    assert parse_birth_date("mañana", NOW) is None
    assert parse_birth_date("no sé", NOW) is None


def test_two_digit_year_pivot():
    assert expand_two_digit_year("51") == 1951
    assert expand_two_digit_year("50") == 2050
    assert expand_two_digit_year("1999") == 1999


def test_format_long_date():
    assert format_long_date(date(2026, 10, 20)) == "martes 20 de octubre"
    assert format_long_date(date(2026, 10, 24)) == "sábado 24 de octubre"

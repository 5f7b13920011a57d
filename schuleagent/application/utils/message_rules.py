from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class KeywordRule:
    """Maps a keyword found in a normalized message to an intent or value.

    Substring match by default; ``exact`` rules only match the whole message.
    """

    pattern: str
    value: str
    exact: bool = False

    def matches(self, text: str) -> bool:
        if self.exact:
            return text == self.pattern
        return self.pattern in text


BOOKING_INTENT_RULES = (
    KeywordRule("1", "book"),
    KeywordRule("agendar", "book"),
    KeywordRule("cita", "book"),
)

SERVICE_RULES = (
    KeywordRule("mamograf", "mammography"),
    KeywordRule("densito", "densitometry"),
)

DOCUMENT_TYPE_RULES = (
    KeywordRule("cc", "CC"),
    KeywordRule("ce", "CE"),
    KeywordRule("pp", "PP"),
    KeywordRule("ti", "TI"),
)

# Evaluated with last_match: a masculine keyword overrides a feminine one.
SEX_RULES = (
    KeywordRule("fem", "F"),
    KeywordRule("mujer", "F"),
    KeywordRule("f", "F", exact=True),
    KeywordRule("masc", "M"),
    KeywordRule("hombre", "M"),
    KeywordRule("m", "M", exact=True),
)

SAME_PHONE_RULES = (
    KeywordRule("este", "same"),
    KeywordRule("mismo", "same"),
)

# Affirmative rules come first, so "sí, no hay problema" confirms.
CONFIRMATION_RULES = (
    KeywordRule("si", "confirm"),
    KeywordRule("sí", "confirm"),
    KeywordRule("confirmo", "confirm"),
    KeywordRule("ok", "confirm"),
    KeywordRule("no", "cancel"),
    KeywordRule("cancelar", "cancel"),
)

MIN_DOCUMENT_DIGITS = 6
MIN_PHONE_DIGITS = 10


def normalize_message(text: str) -> str:
    return text.lower().strip()


def first_match(rules: Sequence[KeywordRule], text: str) -> str | None:
    for rule in rules:
        if rule.matches(text):
            return rule.value
    return None


def last_match(rules: Sequence[KeywordRule], text: str) -> str | None:
    value = None
    for rule in rules:
        if rule.matches(text):
            value = rule.value
    return value


def digits_only(text: str) -> str:
    return re.sub(r"\D", "", text)


def has_full_name(text: str) -> bool:
    """First name plus last name: at least two space-separated tokens."""
    return len(text.split()) >= 2


def looks_like_email(text: str) -> bool:
    return "@" in text and "." in text

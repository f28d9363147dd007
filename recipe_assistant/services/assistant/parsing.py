"""
Slot parsing helpers for spoken numbers, ordinals and durations.

Speech-to-text hands us a mix of digits and words ("5 minutes",
"twenty five minutes", "an hour and a half"), so every numeric slot
goes through these functions.
"""

import re
from fractions import Fraction
from typing import Optional

UNITS = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14,
    "fifteen": 15, "sixteen": 16, "seventeen": 17, "eighteen": 18,
    "nineteen": 19,
}
TENS = {
    "twenty": 20, "thirty": 30, "forty": 40, "fifty": 50,
    "sixty": 60, "seventy": 70, "eighty": 80, "ninety": 90,
}
ORDINALS = {
    "first": 1, "second": 2, "third": 3, "fourth": 4, "fifth": 5,
    "sixth": 6, "seventh": 7, "eighth": 8, "ninth": 9, "tenth": 10,
    "eleventh": 11, "twelfth": 12, "thirteenth": 13, "fourteenth": 14,
    "fifteenth": 15, "sixteenth": 16, "seventeenth": 17, "eighteenth": 18,
    "nineteenth": 19, "twentieth": 20,
}
ARTICLES = {"a": 1, "an": 1}

UNIT_SECONDS = {
    "second": 1, "seconds": 1, "sec": 1, "secs": 1,
    "minute": 60, "minutes": 60, "min": 60, "mins": 60,
    "hour": 3600, "hours": 3600, "hr": 3600, "hrs": 3600,
}

_WORD_NUMBER = (
    r"(?:(?:" + "|".join(TENS) + r")(?:[\s-](?:" + "|".join(k for k in UNITS if k != "zero") + r"))?"
    r"|" + "|".join(UNITS) + r")"
)
NUMBER_PATTERN = (
    r"(?:\d+\s+\d+/\d+|\d+/\d+|\d+(?:\.\d+)?|" + _WORD_NUMBER + r"|an?)"
)
_UNIT_PATTERN = r"(?:seconds?|secs?|minutes?|mins?|hours?|hrs?)"

_DURATION_RE = re.compile(
    rf"\b(?P<number>{NUMBER_PATTERN})(?P<half>\s+and\s+a\s+half)?\s*(?P<unit>{_UNIT_PATTERN})\b"
    rf"(?P<trailing_half>\s+and\s+a\s+half)?"
)
_HALF_HOUR_RE = re.compile(r"\bhalf\s+(?:an?\s+)?(?P<unit>hour|minute)\b")
_QUARTER_HOUR_RE = re.compile(r"\b(?:a\s+)?quarter\s+(?:of\s+)?an?\s+hour\b")


def parse_number(text: str) -> Optional[float]:
    """
    Parse one spoken or written number.

    Handles digits ("3", "2.5"), fractions ("1/2", "1 1/2"), number
    words up to ninety-nine and the articles "a"/"an".
    """
    text = text.strip().lower()
    if not text:
        return None

    mixed = re.fullmatch(r"(\d+)\s+(\d+)/(\d+)", text)
    if mixed:
        whole, num, den = (int(g) for g in mixed.groups())
        return float(whole + Fraction(num, den)) if den else None

    frac = re.fullmatch(r"(\d+)/(\d+)", text)
    if frac:
        num, den = (int(g) for g in frac.groups())
        return float(Fraction(num, den)) if den else None

    if re.fullmatch(r"\d+(?:\.\d+)?", text):
        return float(text)

    if text in ARTICLES:
        return float(ARTICLES[text])
    if text in UNITS:
        return float(UNITS[text])

    parts = re.split(r"[\s-]+", text)
    if parts[0] in TENS:
        total = TENS[parts[0]]
        if len(parts) == 2 and parts[1] in UNITS:
            total += UNITS[parts[1]]
        elif len(parts) > 1:
            return None
        return float(total)

    return None


def parse_ordinal(text: str) -> Optional[int]:
    """Parse "third" or "3rd" into 3."""
    text = text.strip().lower()
    if text in ORDINALS:
        return ORDINALS[text]
    match = re.fullmatch(r"(\d+)(?:st|nd|rd|th)", text)
    if match:
        return int(match.group(1))
    return None


def find_number(text: str) -> Optional[float]:
    """First number that appears anywhere in the text."""
    for match in re.finditer(rf"\b{NUMBER_PATTERN}\b", text.lower()):
        # Articles only count as numbers next to a unit
        if match.group(0) in ARTICLES:
            continue
        value = parse_number(match.group(0))
        if value is not None:
            return value
    return None


def parse_duration(text: str) -> Optional[float]:
    """
    Total seconds spoken in the text, or None when there is no duration.

    Compound durations add up: "1 hour 30 minutes" is 5400 seconds.
    """
    text = text.lower()
    total = 0.0
    found = False

    for match in _HALF_HOUR_RE.finditer(text):
        total += UNIT_SECONDS[match.group("unit")] / 2
        found = True
    for _ in _QUARTER_HOUR_RE.finditer(text):
        total += 900
        found = True

    # "half an hour" contains "an hour"; count it only once
    remainder = _QUARTER_HOUR_RE.sub(" ", _HALF_HOUR_RE.sub(" ", text))
    for match in _DURATION_RE.finditer(remainder):
        number = parse_number(match.group("number"))
        if number is None:
            continue
        if match.group("half") or match.group("trailing_half"):
            number += 0.5
        total += number * UNIT_SECONDS[match.group("unit")]
        found = True

    return total if found and total > 0 else None


def strip_duration(text: str) -> str:
    """Remove duration phrases so leftover words can be read as a label."""
    text = _HALF_HOUR_RE.sub(" ", text.lower())
    text = _QUARTER_HOUR_RE.sub(" ", text)
    text = _DURATION_RE.sub(" ", text)
    return re.sub(r"\s+", " ", text).strip()

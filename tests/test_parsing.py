import pytest

from recipe_assistant.services.assistant.parsing import (
    find_number,
    parse_duration,
    parse_number,
    parse_ordinal,
    strip_duration,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("3", 3.0),
        ("2.5", 2.5),
        ("1/2", 0.5),
        ("1 1/2", 1.5),
        ("seven", 7.0),
        ("twenty five", 25.0),
        ("twenty-five", 25.0),
        ("forty", 40.0),
        ("an", 1.0),
        ("banana", None),
        ("", None),
    ],
)
def test_parse_number(text, expected):
    assert parse_number(text) == expected


def test_parse_ordinal():
    assert parse_ordinal("third") == 3
    assert parse_ordinal("3rd") == 3
    assert parse_ordinal("twelfth") == 12
    assert parse_ordinal("soon") is None


def test_find_number_skips_articles():
    assert find_number("a pinch and 3 cups") == 3.0
    assert find_number("make it a big batch") is None


@pytest.mark.parametrize(
    "text, seconds",
    [
        ("set a timer for 5 minutes", 300),
        ("30 seconds", 30),
        ("an hour", 3600),
        ("1 hour 30 minutes", 5400),
        ("twenty five minutes", 1500),
        ("half an hour", 1800),
        ("an hour and a half", 5400),
        ("2 and a half minutes", 150),
        ("a quarter of an hour", 900),
        ("10 mins", 600),
    ],
)
def test_parse_duration(text, seconds):
    assert parse_duration(text) == seconds


def test_parse_duration_none_without_unit():
    assert parse_duration("set a timer") is None
    assert parse_duration("step 5") is None
    assert parse_duration("as soon as possible") is None


def test_strip_duration_leaves_label():
    assert strip_duration("pasta timer for 8 minutes") == "pasta timer for"

"""Unit tests for remaining-time formatting."""

import pytest

from attempt_guard.utils.time_format import format_remaining_time


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (0, "0 seconds"),
        (1, "1 second"),
        (45, "45 seconds"),
        (60, "1 minute"),
        (61, "1 minute and 1 second"),
        (90, "1 minute and 30 seconds"),
        (150, "2 minutes and 30 seconds"),
        (1800, "30 minutes"),
        (3599, "59 minutes and 59 seconds"),
        (3600, "1 hour"),
        (3660, "1 hour and 1 minute"),
        (7200, "2 hours"),
        (7325, "2 hours and 2 minutes"),
    ],
)
def test_english_formatting(seconds: int, expected: str) -> None:
    assert format_remaining_time(seconds) == expected


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (1, "1 seconde"),
        (45, "45 secondes"),
        (90, "1 minute et 30 secondes"),
        (120, "2 minutes"),
        (3660, "1 heure et 1 minute"),
        (7200, "2 heures"),
    ],
)
def test_french_formatting(seconds: int, expected: str) -> None:
    assert format_remaining_time(seconds, locale="fr") == expected


def test_hours_drop_leftover_seconds() -> None:
    assert format_remaining_time(3661) == "1 hour and 1 minute"


def test_negative_and_fractional_input_is_clamped() -> None:
    assert format_remaining_time(-5) == "0 seconds"
    assert format_remaining_time(59.9) == "59 seconds"


def test_unknown_locale_is_rejected() -> None:
    with pytest.raises(ValueError):
        format_remaining_time(10, locale="de")  # type: ignore[arg-type]

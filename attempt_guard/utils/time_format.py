"""Human-readable rendering of lockout durations."""

from __future__ import annotations

from typing import Literal

Locale = Literal["en", "fr"]

_UNITS: dict[str, dict[str, tuple[str, str]]] = {
    "en": {
        "second": ("second", "seconds"),
        "minute": ("minute", "minutes"),
        "hour": ("hour", "hours"),
    },
    "fr": {
        "second": ("seconde", "secondes"),
        "minute": ("minute", "minutes"),
        "hour": ("heure", "heures"),
    },
}

_JOINERS: dict[str, str] = {"en": "and", "fr": "et"}


def _unit(value: int, unit: str, locale: str) -> str:
    singular, plural = _UNITS[locale][unit]
    # French treats 0 as singular ("0 seconde")
    if locale == "fr":
        word = plural if value > 1 else singular
    else:
        word = singular if value == 1 else plural
    return f"{value} {word}"


def format_remaining_time(seconds: int | float, locale: Locale = "en") -> str:
    """Render a duration in seconds as text.

    Examples:
        >>> format_remaining_time(45)
        '45 seconds'
        >>> format_remaining_time(90)
        '1 minute and 30 seconds'
        >>> format_remaining_time(3660)
        '1 hour and 1 minute'
        >>> format_remaining_time(90, locale="fr")
        '1 minute et 30 secondes'
    """
    if locale not in _UNITS:
        raise ValueError(f"Unsupported locale: {locale!r}")

    total = max(0, int(seconds))
    joiner = _JOINERS[locale]

    if total < 60:
        return _unit(total, "second", locale)

    minutes, secs = divmod(total, 60)
    if minutes < 60:
        if secs > 0:
            return f"{_unit(minutes, 'minute', locale)} {joiner} {_unit(secs, 'second', locale)}"
        return _unit(minutes, "minute", locale)

    hours, mins = divmod(minutes, 60)
    if mins > 0:
        return f"{_unit(hours, 'hour', locale)} {joiner} {_unit(mins, 'minute', locale)}"
    return _unit(hours, "hour", locale)

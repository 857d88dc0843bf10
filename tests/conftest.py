"""Shared fixtures: a fixed observer and scripted ephemeris engines."""

from datetime import date, datetime, time, timedelta

import pytest

from moonwatch.errors import EngineFailure
from moonwatch.models import (
    FALLBACK,
    PRIMARY,
    CelestialEvent,
    DayEphemeris,
    MoonIllumination,
    ObserverLocation,
)
from moonwatch.timeutil import local_datetime

LA_TZ = "America/Los_Angeles"


def at(day: date, hhmm: str | None, tz_name: str = LA_TZ) -> datetime | None:
    """UTC instant of a local "HH:MM" on ``day``; None passes through."""
    if hhmm is None:
        return None
    hour, minute = (int(p) for p in hhmm.split(":"))
    return local_datetime(day, time(hour, minute), tz_name)


def make_day(
    day: date,
    method: str,
    tz_name: str = LA_TZ,
    sunrise: str | None = "05:42",
    sunset: str | None = "20:08",
    moonrise: str | None = "21:00",
    moonset: str | None = "07:00",
    fraction: float = 0.5,
    lit: float = 0.99,
) -> DayEphemeris:
    """Build a DayEphemeris from local wall-clock times.

    Moon times before 12:00 are placed on the following morning, the same
    way the engines select moon events in the 24 h after local noon.
    """
    next_day = day + timedelta(days=1)

    def moon_time(hhmm):
        if hhmm is None:
            return None
        return at(next_day if hhmm < "12:00" else day, hhmm, tz_name)

    return DayEphemeris(
        day=day,
        sun=CelestialEvent(
            body="sun",
            rise=at(day, sunrise, tz_name),
            transit=at(day, "12:55", tz_name),
            set=at(day, sunset, tz_name),
        ),
        moon=CelestialEvent(
            body="moon",
            rise=moon_time(moonrise),
            transit=None,
            set=moon_time(moonset),
        ),
        illumination=MoonIllumination(
            phase_angle_deg=fraction * 360.0,
            phase_fraction=fraction,
            illuminated_fraction=lit,
        ),
        method=method,
    )


class ScriptedEngine:
    """Engine double: every day gets the default night unless overridden.

    ``nights`` maps a date to ``make_day`` keyword overrides; dates in
    ``failing`` raise EngineFailure.
    """

    def __init__(self, method: str, nights=None, failing=()):
        self.method = method
        self.nights = dict(nights or {})
        self.failing = set(failing)
        self.calls: list[date] = []

    def compute_day(self, day: date, location: ObserverLocation) -> DayEphemeris:
        self.calls.append(day)
        if day in self.failing:
            raise EngineFailure(f"scripted failure for {day}")
        return make_day(day, self.method, location.timezone, **self.nights.get(day, {}))


@pytest.fixture
def los_angeles():
    return ObserverLocation(
        latitude=34.05,
        longitude=-118.24,
        timezone=LA_TZ,
        display_name="Los Angeles",
        state="California",
        country="United States",
    )


@pytest.fixture
def primary_engine():
    return ScriptedEngine(PRIMARY)


@pytest.fixture
def fallback_engine():
    return ScriptedEngine(FALLBACK)

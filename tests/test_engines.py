"""
Ephemeris engine tests against known almanac values.

The skyfield tests need de421.bsp; it is downloaded into resources/
on first use and the tests are skipped when that fails.
"""

import math
from datetime import date, datetime, timedelta

import pytest
from pytz import utc

from moonwatch.classify import phase_name
from moonwatch.config import Settings
from moonwatch.ephemeris import SkyfieldEngine
from moonwatch.errors import EngineFailure
from moonwatch.fallback import AstralEngine, lunar_elongation
from moonwatch.models import FALLBACK, PRIMARY, ObserverLocation
from moonwatch.scanner import RangeScanner
from moonwatch.timeutil import (
    format_wall_clock,
    local_datetime,
    local_noon,
    parse_wall_clock,
    to_julian_day,
)

SOLSTICE = date(2024, 6, 21)


@pytest.fixture(scope="module")
def skyfield_engine():
    data_dir = Settings().data_dir
    engine = SkyfieldEngine(data_dir)
    try:
        engine._ephemeris()
    except EngineFailure as exc:
        pytest.skip(f"DE421 kernel unavailable: {exc}")
    return engine


@pytest.fixture
def arctic():
    # Kiruna area, midnight sun in late June
    return ObserverLocation(
        latitude=68.0, longitude=20.0, timezone="Europe/Stockholm", display_name="Kiruna"
    )


def minutes_apart(a: datetime, b: datetime) -> float:
    return abs((a - b).total_seconds()) / 60.0


# =============================================================================
# Fallback engine
# =============================================================================


class TestLunarElongation:
    def test_near_new_moon(self):
        # New moon of 2000-01-06 18:14 UTC
        jd = to_julian_day(datetime(2000, 1, 6, 18, 14, tzinfo=utc))
        elongation = lunar_elongation(jd)
        assert min(elongation, 360.0 - elongation) < 1.0

    def test_near_full_moon(self):
        # Full moon of 2024-06-22 01:08 UTC
        jd = to_julian_day(datetime(2024, 6, 22, 1, 8, tzinfo=utc))
        assert lunar_elongation(jd) == pytest.approx(180.0, abs=1.0)

    def test_range(self):
        for hours in range(0, 24 * 30, 7):
            jd = 2451545.0 + hours / 24.0
            assert 0.0 <= lunar_elongation(jd) < 360.0


class TestAstralEngine:
    """Tests for the astral-based fallback engine."""

    def test_los_angeles_solstice(self, los_angeles):
        day = AstralEngine().compute_day(SOLSTICE, los_angeles)

        assert day.method == FALLBACK
        assert day.moon.transit is None
        assert format_wall_clock(day.sun.set, los_angeles.timezone) in ("20:07", "20:08", "20:09")
        assert phase_name(day.illumination.phase_fraction) == "Full Moon"
        assert day.illumination.illuminated_fraction > 0.95

    def test_moon_events_in_the_day_after_noon(self, los_angeles):
        engine = AstralEngine()
        for offset in range(0, 30, 3):
            day = SOLSTICE + timedelta(days=offset)
            data = engine.compute_day(day, los_angeles)
            noon = datetime(day.year, day.month, day.day, 19, 0, tzinfo=utc)
            for instant in (data.moon.rise, data.moon.set):
                if instant is not None:
                    assert noon <= instant < noon + timedelta(days=1)

    def test_polar_day_has_no_sunset(self, arctic):
        data = AstralEngine().compute_day(SOLSTICE, arctic)
        assert data.sun.set is None
        assert data.sun.rise is None
        assert not data.has_night_anchors

    def test_sun_events_around_noon_near_midnight_sun(self, arctic):
        # Late May at 68°N the sun sets just after local midnight
        engine = AstralEngine()
        for offset in range(10):
            day = date(2024, 5, 20) + timedelta(days=offset)
            data = engine.compute_day(day, arctic)
            noon = local_noon(day, arctic.timezone)
            if data.sun.set is not None:
                assert noon <= data.sun.set < noon + timedelta(days=1)
            if data.sun.rise is not None:
                assert noon - timedelta(days=1) < data.sun.rise <= noon

    def test_after_midnight_sunset_belongs_to_previous_evening(self, arctic):
        data = AstralEngine().compute_day(date(2024, 5, 25), arctic)
        assert data.sun.set is None or data.sun.set > local_noon(date(2024, 5, 25), arctic.timezone)

    def test_rejects_datetime(self, los_angeles):
        with pytest.raises(EngineFailure):
            AstralEngine().compute_day(datetime(2024, 6, 21, 12), los_angeles)


# =============================================================================
# Skyfield engine
# =============================================================================


@pytest.mark.ephemeris
class TestSkyfieldEngine:
    """Tests for the primary engine."""

    def test_los_angeles_solstice(self, skyfield_engine, los_angeles):
        day = skyfield_engine.compute_day(SOLSTICE, los_angeles)

        assert day.method == PRIMARY
        # Almanac sunset 20:08 PDT
        sunset_almanac = datetime(2024, 6, 22, 3, 8, tzinfo=utc)
        assert minutes_apart(day.sun.set, sunset_almanac) <= 2.0
        # Almanac sunrise 05:42 PDT
        sunrise_almanac = datetime(2024, 6, 21, 12, 42, tzinfo=utc)
        assert minutes_apart(day.sun.rise, sunrise_almanac) <= 2.0
        # Almanac moonrise 20:27 PDT
        moonrise_almanac = datetime(2024, 6, 22, 3, 27, tzinfo=utc)
        assert minutes_apart(day.moon.rise, moonrise_almanac) <= 2.0
        assert phase_name(day.illumination.phase_fraction) == "Full Moon"
        assert day.illumination.illuminated_percent > 95.0

    def test_agrees_with_fallback(self, skyfield_engine, los_angeles):
        primary = skyfield_engine.compute_day(SOLSTICE, los_angeles)
        fallback = AstralEngine().compute_day(SOLSTICE, los_angeles)

        assert minutes_apart(primary.sun.set, fallback.sun.set) <= 3.0
        assert minutes_apart(primary.moon.rise, fallback.moon.rise) <= 3.0
        assert minutes_apart(primary.moon.set, fallback.moon.set) <= 3.0
        assert primary.illumination.phase_angle_deg == pytest.approx(
            fallback.illumination.phase_angle_deg, abs=1.5
        )

    def test_event_windows(self, skyfield_engine, los_angeles):
        day = skyfield_engine.compute_day(SOLSTICE, los_angeles)
        noon = datetime(2024, 6, 21, 19, 0, tzinfo=utc)

        assert day.sun.rise <= noon < day.sun.set
        assert minutes_apart(day.sun.transit, noon) < 90
        for instant in (day.moon.rise, day.moon.transit, day.moon.set):
            if instant is not None:
                assert noon <= instant < noon + timedelta(days=1)

    def test_sunrise_round_trip(self, skyfield_engine, los_angeles):
        day = skyfield_engine.compute_day(SOLSTICE, los_angeles)
        clock = format_wall_clock(day.sun.rise, los_angeles.timezone)
        back = local_datetime(SOLSTICE, parse_wall_clock(clock), los_angeles.timezone)
        assert minutes_apart(back, day.sun.rise) < 1.0

    def test_phase_fraction_range(self, skyfield_engine, los_angeles):
        for offset in range(0, 29, 4):
            data = skyfield_engine.compute_day(SOLSTICE + timedelta(days=offset), los_angeles)
            assert 0.0 <= data.illumination.phase_fraction < 1.0
            assert 0.0 <= data.illumination.illuminated_fraction <= 1.0
            assert not math.isnan(data.illumination.phase_angle_deg)

    def test_polar_day_has_no_sunset(self, skyfield_engine, arctic):
        data = skyfield_engine.compute_day(SOLSTICE, arctic)
        assert data.sun.set is None
        assert not data.has_night_anchors

    def test_outside_kernel_span(self, skyfield_engine, los_angeles):
        with pytest.raises(EngineFailure):
            skyfield_engine.compute_day(date(2080, 1, 1), los_angeles)

    def test_polar_scan_omits_days(self, skyfield_engine, arctic):
        scanner = RangeScanner(skyfield_engine, AstralEngine())
        result = scanner.scan(arctic, date(2024, 6, 18), date(2024, 6, 24))

        assert result.days_searched == 7
        assert result.total_events == 0
        assert result.omitted_days == 7

    def test_month_scan(self, skyfield_engine, los_angeles):
        scanner = RangeScanner(skyfield_engine, AstralEngine())
        result = scanner.scan(los_angeles, date(2024, 6, 1), date(2024, 6, 30))

        assert result.days_searched == 30
        # The moon rises during the night for roughly half of a lunation
        assert 8 <= result.total_events <= 22
        assert result.method_counts[PRIMARY] >= 28
        for event in result.events:
            assert event.sunset_utc < event.moonrise_utc <= event.next_sunrise_utc

"""Fallback ephemeris engine: astral rise/set plus a low-precision lunar phase.

Used only for days the skyfield engine cannot answer, e.g. dates outside
the DE421 span or a kernel that failed to download.
"""

import logging
import math
from datetime import date, datetime, timedelta

from astral import Observer, moon
from astral import sun as astral_sun
from pytz import utc

from moonwatch.errors import EngineFailure
from moonwatch.models import (
    FALLBACK,
    CelestialEvent,
    DayEphemeris,
    MoonIllumination,
    ObserverLocation,
)
from moonwatch.timeutil import (
    J2000,
    degrees_to_radians,
    local_noon,
    normalize_degrees,
    radians_to_degrees,
    to_julian_day,
    valid_coordinates,
)

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


def lunar_elongation(jd: float) -> float:
    """Geocentric Sun-Moon elongation in degrees, [0, 360).

    Mean elongation plus the six largest periodic terms (Meeus, ch. 48);
    good to roughly half a degree, or about an hour of lunar phase.
    """
    t = (jd - J2000) / 36525.0
    d = degrees_to_radians(normalize_degrees(297.8501921 + 445267.1114034 * t))
    m = degrees_to_radians(normalize_degrees(357.5291092 + 35999.0502909 * t))
    mp = degrees_to_radians(normalize_degrees(134.9633964 + 477198.8675055 * t))
    elongation = (
        radians_to_degrees(d)
        + 6.289 * math.sin(mp)
        - 2.100 * math.sin(m)
        + 1.274 * math.sin(2 * d - mp)
        + 0.658 * math.sin(2 * d)
        + 0.214 * math.sin(2 * mp)
        + 0.110 * math.sin(d)
    )
    return normalize_degrees(elongation)


class AstralEngine:
    """Same contract as ``SkyfieldEngine``, computed independently.

    Rise and set come from astral's analytic series per civil day and are
    then re-selected around local noon the same way: sunrise is the last
    one at or before noon, sunset and the moon events the first in the
    24 h after it. Lunar transit is not available and is always None.
    """

    method = FALLBACK

    def compute_day(self, day: date, location: ObserverLocation) -> DayEphemeris:
        """Compute one civil day.

        Raises:
            EngineFailure: If the inputs make the computation undefined.
        """
        if not isinstance(day, date) or isinstance(day, datetime):
            raise EngineFailure(f"not a calendar date: {day!r}")
        if not valid_coordinates(location.latitude, location.longitude):
            raise EngineFailure(
                f"invalid coordinates: {location.latitude}, {location.longitude}"
            )

        observer = Observer(
            latitude=location.latitude,
            longitude=location.longitude,
            elevation=location.elevation_m,
        )
        tz_name = location.timezone
        anchor = local_noon(day, tz_name)
        prev_day, next_day = day - ONE_DAY, day + ONE_DAY

        try:
            sunrises = [
                _event(astral_sun.sunrise, observer, d, tz_name) for d in (prev_day, day)
            ]
            sunsets = [
                _event(astral_sun.sunset, observer, d, tz_name) for d in (day, next_day)
            ]
            noon = _event(astral_sun.noon, observer, day, tz_name)
            moonrises = [
                _event(moon.moonrise, observer, d, tz_name) for d in (day, next_day)
            ]
            moonsets = [
                _event(moon.moonset, observer, d, tz_name) for d in (day, next_day)
            ]
        except OverflowError as exc:
            raise EngineFailure(f"astral could not compute {day}: {exc}") from exc

        sun_event = CelestialEvent(
            body="sun",
            rise=_last_before(sunrises, anchor),
            transit=noon,
            set=_first_after(sunsets, anchor),
        )
        moon_event = CelestialEvent(
            body="moon",
            rise=_first_after(moonrises, anchor),
            transit=None,
            set=_first_after(moonsets, anchor),
        )

        elongation = lunar_elongation(to_julian_day(anchor))
        return DayEphemeris(
            day=day,
            sun=sun_event,
            moon=moon_event,
            illumination=MoonIllumination(
                phase_angle_deg=elongation,
                phase_fraction=elongation / 360.0,
                illuminated_fraction=(1.0 - math.cos(degrees_to_radians(elongation))) / 2.0,
            ),
            method=self.method,
        )


def _event(func, observer: Observer, day: date, tz_name: str) -> datetime | None:
    """Call an astral event function; None when the body never crosses the horizon."""
    try:
        value = func(observer, date=day, tzinfo=tz_name)
    except ValueError:
        return None
    if value is None:
        return None
    return value.astimezone(utc)


def _first_after(instants: list[datetime | None], anchor: datetime) -> datetime | None:
    window = [i for i in instants if i is not None and anchor <= i < anchor + ONE_DAY]
    return min(window) if window else None


def _last_before(instants: list[datetime | None], anchor: datetime) -> datetime | None:
    window = [i for i in instants if i is not None and anchor - ONE_DAY < i <= anchor]
    return max(window) if window else None

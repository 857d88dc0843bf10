"""Primary ephemeris engine: skyfield with the JPL DE421 kernel."""

import logging
from datetime import date, datetime, timedelta
from functools import lru_cache
from pathlib import Path

from skyfield import almanac
from skyfield.api import Loader, wgs84
from skyfield.errors import EphemerisRangeError

from moonwatch.errors import EngineFailure
from moonwatch.models import (
    PRIMARY,
    CelestialEvent,
    DayEphemeris,
    MoonIllumination,
    ObserverLocation,
)
from moonwatch.timeutil import local_noon, normalize_degrees, valid_coordinates

logger = logging.getLogger(__name__)

EPHEMERIS_FILE = "de421.bsp"

# Sun: -0.8333° (34' refraction + mean solar semi-diameter).
# Moon: None lets skyfield apply refraction and the semi-diameter at the
# Moon's actual distance. The observer is topocentric, so parallax is
# already in the apparent altitude and must not be added again.
SUN_HORIZON_DEG = -0.8333
MOON_HORIZON_DEG = None

SEARCH_SPAN = timedelta(days=1)


@lru_cache(maxsize=4)
def _load(data_dir: str):
    """Load (downloading on first use) the kernel and a builtin timescale."""
    loader = Loader(data_dir, verbose=False)
    eph = loader(EPHEMERIS_FILE)
    ts = loader.timescale()
    logger.info("Loaded %s from %s", EPHEMERIS_FILE, data_dir)
    return eph, ts


class SkyfieldEngine:
    """Rise/set/transit and lunar phase from numerically integrated JPL positions.

    Every civil day is anchored at local noon and searched one day either
    side of the anchor:

    - sunrise: the last rising at or before the anchor (that morning)
    - sunset: the first setting after the anchor (that evening)
    - solar transit: the meridian transit closest to the anchor
    - moonrise, moonset, lunar transit: the first event in the 24 h after
      the anchor, so a moonrise after midnight still belongs to the night
      that began on ``day``
    """

    method = PRIMARY

    def __init__(self, data_dir: Path | str):
        self.data_dir = str(data_dir)

    def _ephemeris(self):
        try:
            return _load(self.data_dir)
        except OSError as exc:
            raise EngineFailure(f"cannot load {EPHEMERIS_FILE}: {exc}") from exc

    def compute_day(self, day: date, location: ObserverLocation) -> DayEphemeris:
        """Compute Sun and Moon events plus lunar illumination for one civil day.

        Args:
            day: Observer civil date.
            location: Observer position and timezone.

        Returns:
            DayEphemeris; any event that does not occur in its window is None.

        Raises:
            EngineFailure: If the inputs make the computation undefined.
        """
        if not isinstance(day, date) or isinstance(day, datetime):
            raise EngineFailure(f"not a calendar date: {day!r}")
        if not valid_coordinates(location.latitude, location.longitude):
            raise EngineFailure(
                f"invalid coordinates: {location.latitude}, {location.longitude}"
            )

        eph, ts = self._ephemeris()
        anchor = local_noon(day, location.timezone)

        try:
            topos = wgs84.latlon(
                latitude_degrees=location.latitude,
                longitude_degrees=location.longitude,
                elevation_m=location.elevation_m,
            )
            observer = eph["earth"] + topos
            sun, moon = eph["sun"], eph["moon"]

            t_before = ts.from_datetime(anchor - SEARCH_SPAN)
            t_anchor = ts.from_datetime(anchor)
            t_after = ts.from_datetime(anchor + SEARCH_SPAN)

            sun_event = CelestialEvent(
                body="sun",
                rise=_last(
                    _crossings(almanac.find_risings, observer, sun, t_before, t_anchor, SUN_HORIZON_DEG)
                ),
                transit=_nearest(
                    _instants(almanac.find_transits(observer, sun, t_before, t_after)), anchor
                ),
                set=_first(
                    _crossings(almanac.find_settings, observer, sun, t_anchor, t_after, SUN_HORIZON_DEG)
                ),
            )
            moon_event = CelestialEvent(
                body="moon",
                rise=_first(
                    _crossings(almanac.find_risings, observer, moon, t_anchor, t_after, MOON_HORIZON_DEG)
                ),
                transit=_first(
                    _instants(almanac.find_transits(observer, moon, t_anchor, t_after))
                ),
                set=_first(
                    _crossings(almanac.find_settings, observer, moon, t_anchor, t_after, MOON_HORIZON_DEG)
                ),
            )

            elongation = normalize_degrees(float(almanac.moon_phase(eph, t_anchor).degrees))
            lit = float(almanac.fraction_illuminated(eph, "moon", t_anchor))
        except EphemerisRangeError as exc:
            raise EngineFailure(f"{day} is outside the {EPHEMERIS_FILE} span") from exc
        except ValueError as exc:
            raise EngineFailure(f"skyfield could not compute {day}: {exc}") from exc

        return DayEphemeris(
            day=day,
            sun=sun_event,
            moon=moon_event,
            illumination=MoonIllumination(
                phase_angle_deg=elongation,
                phase_fraction=elongation / 360.0,
                illuminated_fraction=min(max(lit, 0.0), 1.0),
            ),
            method=self.method,
        )


def _crossings(finder, observer, body, t0, t1, horizon_deg: float | None) -> list[datetime]:
    """Horizon crossings that really happen (grazes are flagged False)."""
    times, flags = finder(observer, body, t0, t1, horizon_degrees=horizon_deg)
    return [t.utc_datetime() for t, crossed in zip(times, flags) if crossed]


def _instants(times) -> list[datetime]:
    return [t.utc_datetime() for t in times]


def _first(instants: list[datetime]) -> datetime | None:
    return min(instants) if instants else None


def _last(instants: list[datetime]) -> datetime | None:
    return max(instants) if instants else None


def _nearest(instants: list[datetime], anchor: datetime) -> datetime | None:
    if not instants:
        return None
    return min(instants, key=lambda instant: abs(instant - anchor))

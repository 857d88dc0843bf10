"""Julian days, angle helpers, and timezone-aware wall-clock conversion."""

import math
from datetime import date, datetime, time, timedelta
from functools import lru_cache

from pytz import timezone, utc
from pytz.exceptions import AmbiguousTimeError, NonExistentTimeError
from timezonefinder import TimezoneFinder

from moonwatch.errors import ValidationError

J2000 = 2451545.0

_tf = TimezoneFinder()


def to_julian_day(value: date | datetime) -> float:
    """Convert a calendar date or instant to a Julian Day number.

    A ``date`` is taken at 0h UTC; a naive ``datetime`` is taken as UTC.
    Proleptic Gregorian throughout (Meeus, Astronomical Algorithms ch. 7).

    >>> to_julian_day(datetime(2000, 1, 1, 12))
    2451545.0
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(utc)
        day_fraction = (
            value.hour + value.minute / 60 + (value.second + value.microsecond / 1e6) / 3600
        ) / 24.0
    elif isinstance(value, date):
        day_fraction = 0.0
    else:
        raise TypeError(f"expected date or datetime, got {type(value).__name__}")

    y, m = value.year, value.month
    if m <= 2:
        y -= 1
        m += 12
    a = y // 100
    b = 2 - a + a // 4
    return (
        math.floor(365.25 * (y + 4716))
        + math.floor(30.6001 * (m + 1))
        + value.day
        + day_fraction
        + b
        - 1524.5
    )


def normalize_degrees(angle: float) -> float:
    """Wrap an angle into [0, 360)."""
    wrapped = angle % 360.0
    # -1e-15 % 360 == 360.0 in floating point
    return 0.0 if wrapped == 360.0 else wrapped


def degrees_to_radians(angle: float) -> float:
    return angle * math.pi / 180.0


def radians_to_degrees(angle: float) -> float:
    return angle * 180.0 / math.pi


@lru_cache(maxsize=1024)
def timezone_name_at(lat: float, lng: float) -> str:
    """IANA zone name enclosing (lat, lng); ``"UTC"`` where none is found."""
    return _tf.timezone_at(lat=lat, lng=lng) or "UTC"


def local_time_of_day(instant: datetime | None, lat: float, lng: float) -> str | None:
    """Format a UTC instant as the observer's wall-clock ``"HH:MM"``.

    Returns None for a missing or naive instant, or for coordinates that are
    NaN or out of range. The returned string carries no date: an instant just
    after local midnight renders as ``"00:MM"`` on the following civil day.
    """
    if not isinstance(instant, datetime) or instant.tzinfo is None:
        return None
    if not valid_coordinates(lat, lng):
        return None
    return format_wall_clock(instant, timezone_name_at(lat, lng))


def valid_coordinates(lat: float, lng: float) -> bool:
    try:
        return -90.0 <= float(lat) <= 90.0 and -180.0 <= float(lng) <= 180.0
    except (TypeError, ValueError):
        return False


def format_wall_clock(instant: datetime | None, tz_name: str) -> str | None:
    """``"HH:MM"`` for an aware instant in the named zone, None otherwise."""
    if not isinstance(instant, datetime) or instant.tzinfo is None:
        return None
    text = instant.astimezone(timezone(tz_name)).strftime("%H:%M")
    if text.startswith("24:"):
        text = "00:" + text[3:]
    return text


def local_date(instant: datetime, tz_name: str) -> date:
    """Civil date of an aware instant in the named zone."""
    return instant.astimezone(timezone(tz_name)).date()


def local_datetime(day: date, wall_clock: time, tz_name: str) -> datetime:
    """UTC instant of a wall-clock time on a civil day.

    A wall-clock time skipped by a spring-forward transition resolves to the
    instant one hour later; an ambiguous fall-back time resolves to the first
    (daylight) occurrence.
    """
    tz = timezone(tz_name)
    naive = datetime.combine(day, wall_clock)
    try:
        local = tz.localize(naive, is_dst=None)
    except NonExistentTimeError:
        local = tz.localize(naive + timedelta(hours=1), is_dst=True)
    except AmbiguousTimeError:
        local = tz.localize(naive, is_dst=True)
    return local.astimezone(utc)


def local_noon(day: date, tz_name: str) -> datetime:
    """UTC instant of 12:00 local time on ``day``: the search anchor for a civil day."""
    return local_datetime(day, time(12, 0), tz_name)


def parse_date(value: date | str) -> date:
    """Accept a ``date`` or a ``"YYYY-MM-DD"`` string.

    Raises:
        ValidationError: On any other shape.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError("error_date_format", value=value) from None


def parse_wall_clock(value: time | str) -> time:
    """Accept a ``time`` or an ``"HH:MM"`` string (``"24:MM"`` means ``"00:MM"``).

    Raises:
        ValidationError: On any other shape.
    """
    if isinstance(value, time):
        return value
    text = str(value).strip()
    if text.startswith("24:"):
        text = "00:" + text[3:]
    try:
        return datetime.strptime(text, "%H:%M").time()
    except ValueError:
        raise ValidationError("error_time_format", value=value) from None

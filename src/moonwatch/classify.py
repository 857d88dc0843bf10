"""Nighttime-moonrise and moon-phase classification.

Both classifiers are pure: they take instants or fractions and never touch
an ephemeris.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from moonwatch.i18n import t
from moonwatch.timeutil import local_datetime, parse_wall_clock

UNTIL_SUNRISE = "until sunrise"

# Half-width of the four principal phases, as a fraction of the synodic month
PRINCIPAL_HALF_WIDTH = 0.03

# (upper bound, i18n key); each phase covers [previous bound, upper bound)
_PHASE_TABLE: tuple[tuple[float, str], ...] = (
    (0.00 + PRINCIPAL_HALF_WIDTH, "phase_new_moon"),
    (0.25 - PRINCIPAL_HALF_WIDTH, "phase_waxing_crescent"),
    (0.25 + PRINCIPAL_HALF_WIDTH, "phase_first_quarter"),
    (0.50 - PRINCIPAL_HALF_WIDTH, "phase_waxing_gibbous"),
    (0.50 + PRINCIPAL_HALF_WIDTH, "phase_full_moon"),
    (0.75 - PRINCIPAL_HALF_WIDTH, "phase_waning_gibbous"),
    (0.75 + PRINCIPAL_HALF_WIDTH, "phase_last_quarter"),
    (1.00 - PRINCIPAL_HALF_WIDTH, "phase_waning_crescent"),
    (1.00, "phase_new_moon"),
)

PHASE_NAMES: tuple[str, ...] = tuple(
    dict.fromkeys(t(key, "en") for _, key in _PHASE_TABLE)
)


def phase_name(fraction: float, lang: str = "en") -> str:
    """Name the phase for a fraction of the synodic cycle.

    Args:
        fraction: 0 = new, 0.25 = first quarter, 0.5 = full, 0.75 = last quarter.
            Values outside [0, 1) are wrapped.
        lang: Language code for the returned label.

    Raises:
        ValueError: If fraction is NaN or infinite.
    """
    if not math.isfinite(fraction):
        raise ValueError(f"phase fraction must be finite, got {fraction!r}")
    fraction = fraction % 1.0
    for upper, key in _PHASE_TABLE:
        if fraction < upper:
            return t(key, lang)
    # fraction % 1.0 can round up to exactly 1.0 for tiny negative inputs
    return t("phase_new_moon", lang)


def is_nighttime_moonrise(
    sunset: datetime | None,
    moonrise: datetime | None,
    upper_bound: datetime | None,
) -> bool:
    """True when moonrise falls after sunset and no later than the upper bound.

    ``upper_bound`` is normally the following morning's sunrise; a bedtime
    cutoff substitutes its own instant. Any missing anchor means the night
    cannot be classified as watchable.
    """
    if sunset is None or moonrise is None or upper_bound is None:
        return False
    return sunset < moonrise <= upper_bound


@dataclass(frozen=True)
class Bedtime:
    """Upper bound for the watchable window.

    ``clock`` is None for the "until sunrise" behaviour.
    """

    clock: time | None = None

    @classmethod
    def parse(cls, value: "str | time | Bedtime | None") -> "Bedtime":
        """Parse None, ``"until sunrise"``, or an ``"HH:MM"`` wall-clock time.

        Raises:
            ValidationError: For any other string.
        """
        if isinstance(value, Bedtime):
            return value
        if value is None:
            return cls()
        if isinstance(value, str) and value.strip().lower() in ("", UNTIL_SUNRISE):
            return cls()
        return cls(clock=parse_wall_clock(value))

    @property
    def until_sunrise(self) -> bool:
        return self.clock is None

    def label(self) -> str:
        return UNTIL_SUNRISE if self.clock is None else self.clock.strftime("%H:%M")

    def upper_bound(
        self, day: date, tz_name: str, next_sunrise: datetime | None
    ) -> datetime | None:
        """The instant that closes the night of ``day``.

        Wall-clock bedtimes at or after noon fall on ``day`` itself; earlier
        ones fall on the following morning.
        """
        if self.clock is None:
            return next_sunrise
        night_day = day if self.clock >= time(12, 0) else day + timedelta(days=1)
        return local_datetime(night_day, self.clock, tz_name)

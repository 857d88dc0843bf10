"""Range scanning: one candidate night per civil day, filtered to watchable moonrises."""

import logging
import threading
from datetime import date, datetime, timedelta
from typing import Protocol

from moonwatch.classify import Bedtime, is_nighttime_moonrise, phase_name
from moonwatch.config import DEFAULT_MAX_DAYS
from moonwatch.errors import EngineFailure, ScanCancelled, ValidationError
from moonwatch.models import (
    FALLBACK,
    PRIMARY,
    DayEphemeris,
    NightEvent,
    ObserverLocation,
    ScanResult,
)
from moonwatch.timeutil import format_wall_clock, parse_date

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


class EphemerisEngine(Protocol):
    method: str

    def compute_day(self, day: date, location: ObserverLocation) -> DayEphemeris: ...


def resolve_date_range(
    from_date: date | str | None,
    to_date: date | str | None,
    days: int | None,
    today: date,
    max_days: int = DEFAULT_MAX_DAYS,
) -> tuple[date, date]:
    """Turn request parameters into an inclusive (from, to) civil-date range.

    With both dates given they are used as-is; with neither, the range runs
    from ``today`` to ``today + days``.

    Raises:
        ValidationError: Malformed dates, only one date given, ``to < from``,
            or a span longer than ``max_days``.
    """
    if from_date is None and to_date is None:
        if days is None:
            raise ValidationError("error_days", value=days, max_days=max_days)
        if not isinstance(days, int) or isinstance(days, bool) or not 0 <= days <= max_days:
            raise ValidationError("error_days", value=days, max_days=max_days)
        return today, today + timedelta(days=days)
    if from_date is None or to_date is None:
        raise ValidationError("error_range_partial")

    start = parse_date(from_date)
    end = parse_date(to_date)
    validate_span(start, end, max_days)
    return start, end


def validate_span(start: date, end: date, max_days: int) -> None:
    """Raises ValidationError unless ``start <= end`` and the span fits ``max_days``."""
    if end < start:
        raise ValidationError(
            "error_range_order", from_date=start.isoformat(), to_date=end.isoformat()
        )
    requested = (end - start).days
    if requested > max_days:
        raise ValidationError(
            "error_range_too_large", requested_days=requested, max_days=max_days
        )


class RangeScanner:
    """Walks a date range day by day with a primary and a fallback engine.

    Per day: one primary computation and at most one fallback computation,
    plus the following day's sunrise. Results are cached per (day, method)
    for the duration of one ``scan`` call, so the next-morning sunrise of
    day ``d`` is reused as day ``d+1``'s ephemeris.
    """

    def __init__(
        self,
        primary: EphemerisEngine,
        fallback: EphemerisEngine,
        max_days: int = DEFAULT_MAX_DAYS,
        lang: str = "en",
    ):
        self.primary = primary
        self.fallback = fallback
        self.max_days = max_days
        self.lang = lang

    def scan(
        self,
        location: ObserverLocation,
        from_date: date | str,
        to_date: date | str,
        bedtime: Bedtime | str | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ScanResult:
        """Find every civil day in [from_date, to_date] with a watchable moonrise.

        Args:
            location: Resolved observer.
            from_date: First civil day (inclusive).
            to_date: Last civil day (inclusive).
            bedtime: ``"HH:MM"`` cutoff, ``"until sunrise"``, or None.
            cancel_event: Checked between days; when set the scan stops.

        Returns:
            ScanResult with events in chronological order.

        Raises:
            ValidationError: Before any ephemeris work, for a bad range or bedtime.
            ScanCancelled: If cancel_event was set mid-scan.
        """
        start = parse_date(from_date)
        end = parse_date(to_date)
        validate_span(start, end, self.max_days)
        cutoff = Bedtime.parse(bedtime)

        day_count = (end - start).days + 1
        logger.info(
            "Scanning %s (%.4f, %.4f) from %s to %s, bedtime=%s",
            location.display_name,
            location.latitude,
            location.longitude,
            start,
            end,
            cutoff.label(),
        )

        cache: dict[tuple[date, str], DayEphemeris | None] = {}
        method_counts = {PRIMARY: 0, FALLBACK: 0}
        events: list[NightEvent] = []
        omitted = 0

        for offset in range(day_count):
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Scan cancelled after %d of %d days", offset, day_count)
                raise ScanCancelled(f"cancelled at {start + timedelta(days=offset)}")

            day = start + timedelta(days=offset)
            data = self._night_data(day, location, cache)
            if data is None:
                omitted += 1
                logger.info("%s: no sunset/moonrise from either engine, omitted", day)
                continue
            method_counts[data.method] += 1

            next_sunrise = self._sunrise(day + ONE_DAY, location, cache)
            upper = cutoff.upper_bound(day, location.timezone, next_sunrise)
            if not is_nighttime_moonrise(data.sun.set, data.moon.rise, upper):
                continue

            events.append(self._night_event(day, data, next_sunrise, location.timezone))

        logger.info(
            "Found %d nighttime moonrises in %d days (primary=%d, fallback=%d, omitted=%d)",
            len(events),
            day_count,
            method_counts[PRIMARY],
            method_counts[FALLBACK],
            omitted,
        )
        return ScanResult(
            location=location,
            from_date=start,
            to_date=end,
            days_searched=day_count,
            events=tuple(events),
            method_counts=method_counts,
            omitted_days=omitted,
            bedtime=cutoff.label(),
        )

    def _compute(
        self,
        engine: EphemerisEngine,
        day: date,
        location: ObserverLocation,
        cache: dict[tuple[date, str], DayEphemeris | None],
    ) -> DayEphemeris | None:
        key = (day, engine.method)
        if key not in cache:
            try:
                cache[key] = engine.compute_day(day, location)
            except EngineFailure as exc:
                logger.warning("%s engine failed for %s: %s", engine.method, day, exc)
                cache[key] = None
        return cache[key]

    def _night_data(
        self,
        day: date,
        location: ObserverLocation,
        cache: dict[tuple[date, str], DayEphemeris | None],
    ) -> DayEphemeris | None:
        """Primary data for ``day``, or fallback data if the primary lacks sunset/moonrise."""
        primary = self._compute(self.primary, day, location, cache)
        if primary is not None and primary.has_night_anchors:
            return primary

        logger.warning("%s: primary engine incomplete, trying fallback", day)
        fallback = self._compute(self.fallback, day, location, cache)
        if fallback is not None and fallback.has_night_anchors:
            return fallback
        return None

    def _sunrise(
        self,
        day: date,
        location: ObserverLocation,
        cache: dict[tuple[date, str], DayEphemeris | None],
    ) -> datetime | None:
        for engine in (self.primary, self.fallback):
            data = self._compute(engine, day, location, cache)
            if data is not None and data.sun.rise is not None:
                return data.sun.rise
        return None

    def _night_event(
        self,
        day: date,
        data: DayEphemeris,
        next_sunrise: datetime | None,
        tz_name: str,
    ) -> NightEvent:
        fraction = data.illumination.phase_fraction
        return NightEvent(
            date=day.isoformat(),
            sunset=format_wall_clock(data.sun.set, tz_name),
            moonrise=format_wall_clock(data.moon.rise, tz_name),
            moonset=format_wall_clock(data.moon.set, tz_name),
            next_sunrise=format_wall_clock(next_sunrise, tz_name),
            moon_phase=round(fraction, 4),
            moon_illumination=data.illumination.illuminated_percent,
            moon_phase_name=phase_name(fraction, self.lang),
            method=data.method,
            sunset_utc=data.sun.set,
            moonrise_utc=data.moon.rise,
            moonset_utc=data.moon.set,
            next_sunrise_utc=next_sunrise,
        )

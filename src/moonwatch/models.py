"""Data model definitions: explicit boundaries between input, ephemeris, and scan layers."""

from dataclasses import dataclass, field
from datetime import date, datetime

from moonwatch.errors import ValidationError
from moonwatch.timeutil import timezone_name_at, valid_coordinates

PRIMARY = "primary"
FALLBACK = "fallback"

METHOD_LABELS = {
    PRIMARY: "Skyfield (JPL DE421)",
    FALLBACK: "Astral (fallback)",
}


@dataclass(frozen=True)
class QueryInput:
    """Raw user input. Not yet validated."""

    location: str  # Free-text place ("Los Angeles, CA", "90210")
    from_date: str | None = None  # "YYYY-MM-DD"
    to_date: str | None = None  # "YYYY-MM-DD"
    days: int | None = None  # Implicit range length when no dates are given
    bedtime: str | None = None  # "HH:MM", "until sunrise", or None


@dataclass(frozen=True)
class ObserverLocation:
    """Resolved observer position. Input to every ephemeris computation."""

    latitude: float  # Decimal degrees, -90..90
    longitude: float  # Decimal degrees, -180..180 (negative = West)
    timezone: str  # IANA zone name derived from lat/long
    elevation_m: float = 0.0  # Meters above sea level
    display_name: str = ""  # City or place name returned by the resolver
    state: str = ""
    country: str = ""

    def __post_init__(self) -> None:
        if not valid_coordinates(self.latitude, self.longitude):
            raise ValidationError(
                "error_coordinates", lat=self.latitude, lng=self.longitude
            )

    @classmethod
    def from_coordinates(
        cls,
        latitude: float,
        longitude: float,
        elevation_m: float = 0.0,
        display_name: str = "",
        state: str = "",
        country: str = "",
    ) -> "ObserverLocation":
        """Build a location, resolving the timezone from the coordinates.

        Raises:
            ValidationError: If the coordinates are NaN or out of range.
        """
        if not valid_coordinates(latitude, longitude):
            raise ValidationError("error_coordinates", lat=latitude, lng=longitude)
        return cls(
            latitude=float(latitude),
            longitude=float(longitude),
            timezone=timezone_name_at(float(latitude), float(longitude)),
            elevation_m=float(elevation_m),
            display_name=display_name or f"{latitude:.4f}, {longitude:.4f}",
            state=state,
            country=country,
        )


@dataclass(frozen=True)
class CelestialEvent:
    """Rise, transit, and set instants (aware UTC) for one body on one civil day."""

    body: str  # "sun" or "moon"
    rise: datetime | None = None
    transit: datetime | None = None
    set: datetime | None = None


@dataclass(frozen=True)
class MoonIllumination:
    """Lunar phase geometry at the civil-day anchor."""

    phase_angle_deg: float  # Sun-Moon ecliptic elongation, [0, 360)
    phase_fraction: float  # [0, 1): 0 = new, 0.5 = full
    illuminated_fraction: float  # Lit fraction of the disk, [0, 1]

    @property
    def illuminated_percent(self) -> float:
        return round(self.illuminated_fraction * 100, 1)


@dataclass(frozen=True)
class DayEphemeris:
    """One engine's answer for one civil day."""

    day: date
    sun: CelestialEvent
    moon: CelestialEvent
    illumination: MoonIllumination
    method: str  # PRIMARY or FALLBACK

    @property
    def has_night_anchors(self) -> bool:
        """True when both sunset and moonrise were found."""
        return self.sun.set is not None and self.moon.rise is not None


@dataclass(frozen=True)
class NightEvent:
    """A watchable moonrise on one civil day."""

    date: str  # Observer civil date, "YYYY-MM-DD"
    sunset: str  # Local "HH:MM"
    moonrise: str  # Local "HH:MM"
    moonset: str | None  # Local "HH:MM"
    next_sunrise: str | None  # Local "HH:MM" of the following morning
    moon_phase: float  # Phase fraction, [0, 1)
    moon_illumination: float  # Illuminated percent, one decimal
    moon_phase_name: str
    method: str  # PRIMARY or FALLBACK
    sunset_utc: datetime | None = field(repr=False, compare=False, default=None)
    moonrise_utc: datetime | None = field(repr=False, compare=False, default=None)
    moonset_utc: datetime | None = field(repr=False, compare=False, default=None)
    next_sunrise_utc: datetime | None = field(repr=False, compare=False, default=None)

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "moonrise": self.moonrise,
            "moonset": self.moonset,
            "sunset": self.sunset,
            "sunrise": self.next_sunrise,
            "moon_phase": self.moon_phase,
            "moon_illumination": f"{self.moon_illumination:.1f}",
            "moon_phase_name": self.moon_phase_name,
            "calculation_method": METHOD_LABELS.get(self.method, self.method),
        }


@dataclass(frozen=True)
class ScanResult:
    """Every watchable night in a date range, plus how it was computed."""

    location: ObserverLocation
    from_date: date
    to_date: date
    days_searched: int  # Civil days visited, inclusive range
    events: tuple[NightEvent, ...]  # Chronological, at most one per day
    method_counts: dict[str, int]  # {"primary": n, "fallback": m}
    omitted_days: int = 0  # Days neither engine could compute
    bedtime: str | None = None

    @property
    def total_events(self) -> int:
        return len(self.events)

    def to_dict(self) -> dict:
        loc = self.location
        return {
            "location": loc.display_name,
            "state": loc.state,
            "country": loc.country,
            "lat": loc.latitude,
            "long": loc.longitude,
            "timezone": loc.timezone,
            "dateRange": {
                "from": self.from_date.isoformat(),
                "to": self.to_date.isoformat(),
            },
            "daysSearched": self.days_searched,
            "totalEvents": self.total_events,
            "calculationMethods": {
                "primary": METHOD_LABELS[PRIMARY],
                "fallback": METHOD_LABELS[FALLBACK],
                "stats": dict(self.method_counts),
            },
            "omittedDays": self.omitted_days,
            "bedtime": self.bedtime,
            "events": [event.to_dict() for event in self.events],
        }

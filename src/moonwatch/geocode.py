"""Location resolution: free-text place to ObserverLocation via httpx geocoders."""

import logging

import httpx

from moonwatch.config import DEFAULT_USER_AGENT, Settings
from moonwatch.errors import LocationResolutionError, ValidationError
from moonwatch.models import ObserverLocation

logger = logging.getLogger(__name__)

IPGEOLOCATION_URL = "https://api.ipgeolocation.io/v2/astronomy"
NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"


class LocationResolver:
    """Resolve a place name with ipgeolocation.io (if keyed), falling back to Nominatim.

    The API key and User-Agent are passed in explicitly; nothing is read
    from the environment. One lookup chain per ``resolve`` call, no retries.
    """

    def __init__(
        self,
        api_key: str | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ):
        self.api_key = api_key
        self.user_agent = user_agent
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)

    @classmethod
    def from_settings(
        cls, settings: Settings, client: httpx.Client | None = None
    ) -> "LocationResolver":
        return cls(
            api_key=settings.ipgeolocation_api_key,
            user_agent=settings.user_agent,
            timeout=settings.http_timeout,
            client=client,
        )

    def close(self) -> None:
        self._client.close()

    def _geocode_ipgeolocation(self, location: str) -> dict | None:
        """Single ipgeolocation.io call. Returns None when the place is unknown."""
        resp = self._client.get(
            IPGEOLOCATION_URL,
            params={"apiKey": self.api_key, "location": location},
            timeout=self.timeout,
        )
        if resp.status_code in (400, 404, 423):
            return None
        resp.raise_for_status()
        data = resp.json().get("location") or {}
        if not data.get("latitude") or not data.get("longitude"):
            return None
        return {
            "lat": float(data["latitude"]),
            "lng": float(data["longitude"]),
            "name": data.get("city") or data.get("location_string") or location,
            "state": data.get("state_prov") or "",
            "country": data.get("country_name") or "",
        }

    def _geocode_nominatim(self, location: str) -> dict | None:
        """Nominatim (OpenStreetMap) geocoder. Returns None when nothing matches."""
        params = {"q": location, "format": "json", "limit": 1, "addressdetails": 1}
        headers = {"User-Agent": self.user_agent}
        resp = self._client.get(
            NOMINATIM_URL, params=params, headers=headers, timeout=self.timeout
        )
        resp.raise_for_status()
        results = resp.json()
        if not results:
            return None
        r = results[0]
        address = r.get("address") or {}
        name = (
            address.get("city")
            or address.get("town")
            or address.get("village")
            or address.get("hamlet")
            or r.get("display_name")
            or location
        )
        return {
            "lat": float(r["lat"]),
            "lng": float(r["lon"]),
            "name": name,
            "state": address.get("state", ""),
            "country": address.get("country", ""),
        }

    def resolve(self, location: str) -> ObserverLocation:
        """Resolve free text to an ObserverLocation with its IANA timezone.

        Raises:
            ValidationError: If the input is empty.
            LocationResolutionError: If no geocoder can place the input.
        """
        if not location or not location.strip():
            raise ValidationError("error_location_required")
        location = location.strip()

        found: dict | None = None
        if self.api_key:
            try:
                found = self._geocode_ipgeolocation(location)
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("ipgeolocation lookup failed for %r: %s", location, exc)

        if found is None:
            try:
                found = self._geocode_nominatim(location)
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("Nominatim lookup failed for %r: %s", location, exc)
                raise LocationResolutionError(location, str(exc)) from exc

        if found is None:
            raise LocationResolutionError(location, "no match")

        try:
            resolved = ObserverLocation.from_coordinates(
                found["lat"],
                found["lng"],
                display_name=found["name"],
                state=found["state"],
                country=found["country"],
            )
        except ValidationError as exc:
            raise LocationResolutionError(location, str(exc)) from exc

        logger.info(
            "Location %r -> %s, %s (%.4f, %.4f) %s",
            location,
            resolved.display_name,
            resolved.state,
            resolved.latitude,
            resolved.longitude,
            resolved.timezone,
        )
        return resolved

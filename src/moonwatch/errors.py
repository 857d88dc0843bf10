"""Exception taxonomy shared by the resolver, the engines and the scanner."""

from typing import Any

from moonwatch.i18n import t


class MoonwatchError(Exception):
    """Base class for all moonwatch errors."""


class ValidationError(MoonwatchError, ValueError):
    """Request rejected before any ephemeris work.

    ``key`` names an i18n message; ``params`` fill its placeholders so the
    presentation layer can re-render the message in another language.
    """

    def __init__(self, key: str, lang: str = "en", **params: Any) -> None:
        self.key = key
        self.params = params
        super().__init__(t(key, lang).format(**params))

    def localized(self, lang: str) -> str:
        return t(self.key, lang).format(**self.params)


class LocationResolutionError(MoonwatchError):
    """The geocoder could not turn the input into coordinates."""

    def __init__(self, location: str, reason: str = "") -> None:
        self.location = location
        self.reason = reason
        super().__init__(self.localized("en"))

    def localized(self, lang: str) -> str:
        return t("error_location", lang).format(location=self.location, error=self.reason)


class EngineFailure(MoonwatchError):
    """An ephemeris engine could not compute a day at all."""


class ScanCancelled(MoonwatchError):
    """The caller cancelled a scan between days."""

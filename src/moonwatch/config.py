"""Runtime settings, read from the environment once at the entry point."""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from moonwatch.errors import ValidationError

_ROOT = Path(__file__).parent.parent.parent

DEFAULT_MAX_DAYS = 365 * 3
DEFAULT_DAYS = 30
DEFAULT_USER_AGENT = "moonwatch/0.1 (nighttime moonrise finder)"


@dataclass(frozen=True)
class Settings:
    """Explicit configuration handed to the resolver and scanner.

    Core modules never read ``os.environ``; only ``from_env`` does.
    """

    ipgeolocation_api_key: str | None = None
    user_agent: str = DEFAULT_USER_AGENT
    data_dir: Path = _ROOT / "resources"
    max_days: int = DEFAULT_MAX_DAYS
    default_days: int = DEFAULT_DAYS
    http_timeout: float = 10.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build Settings from environment variables (``.env`` already loaded).

        Raises:
            ValidationError: When a numeric variable cannot be parsed.
        """
        env = os.environ if environ is None else environ
        return cls(
            ipgeolocation_api_key=env.get("IPGEOLOCATION_API_KEY") or None,
            user_agent=env.get("MOONWATCH_USER_AGENT", DEFAULT_USER_AGENT),
            data_dir=Path(env.get("MOONWATCH_DATA_DIR", str(_ROOT / "resources"))),
            max_days=_int_setting(env, "MOONWATCH_MAX_DAYS", DEFAULT_MAX_DAYS),
            default_days=_int_setting(env, "MOONWATCH_DEFAULT_DAYS", DEFAULT_DAYS),
            http_timeout=_float_setting(env, "MOONWATCH_HTTP_TIMEOUT", 10.0),
            log_level=env.get("MOONWATCH_LOG_LEVEL", "INFO").upper(),
        )


def _int_setting(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError("error_setting", name=name, value=raw) from None
    if value < 0:
        raise ValidationError("error_setting", name=name, value=raw)
    return value


def _float_setting(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValidationError("error_setting", name=name, value=raw) from None
    if value <= 0:
        raise ValidationError("error_setting", name=name, value=raw)
    return value

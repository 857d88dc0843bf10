"""
Settings, error message and logging setup tests.
"""

import logging
from pathlib import Path

import pytest

from moonwatch.config import DEFAULT_DAYS, DEFAULT_MAX_DAYS, DEFAULT_USER_AGENT, Settings
from moonwatch.errors import LocationResolutionError, ValidationError
from moonwatch.i18n import t
from moonwatch.logging_config import setup_logging


class TestSettings:
    def test_defaults_from_empty_environment(self):
        settings = Settings.from_env({})
        assert settings.ipgeolocation_api_key is None
        assert settings.user_agent == DEFAULT_USER_AGENT
        assert settings.max_days == DEFAULT_MAX_DAYS == 1095
        assert settings.default_days == DEFAULT_DAYS == 30
        assert settings.http_timeout == 10.0
        assert settings.log_level == "INFO"

    def test_values_from_environment(self):
        settings = Settings.from_env(
            {
                "IPGEOLOCATION_API_KEY": "abc123",
                "MOONWATCH_USER_AGENT": "tester/1.0",
                "MOONWATCH_DATA_DIR": "/tmp/kernels",
                "MOONWATCH_MAX_DAYS": "365",
                "MOONWATCH_DEFAULT_DAYS": "7",
                "MOONWATCH_HTTP_TIMEOUT": "2.5",
                "MOONWATCH_LOG_LEVEL": "debug",
            }
        )
        assert settings.ipgeolocation_api_key == "abc123"
        assert settings.user_agent == "tester/1.0"
        assert settings.data_dir == Path("/tmp/kernels")
        assert settings.max_days == 365
        assert settings.default_days == 7
        assert settings.http_timeout == 2.5
        assert settings.log_level == "DEBUG"

    def test_blank_api_key_is_none(self):
        assert Settings.from_env({"IPGEOLOCATION_API_KEY": ""}).ipgeolocation_api_key is None

    @pytest.mark.parametrize(
        "name,value",
        [
            ("MOONWATCH_MAX_DAYS", "lots"),
            ("MOONWATCH_MAX_DAYS", "-1"),
            ("MOONWATCH_DEFAULT_DAYS", "3.5"),
            ("MOONWATCH_HTTP_TIMEOUT", "0"),
            ("MOONWATCH_HTTP_TIMEOUT", "soon"),
        ],
    )
    def test_invalid_numbers_rejected(self, name, value):
        with pytest.raises(ValidationError) as exc_info:
            Settings.from_env({name: value})
        assert exc_info.value.key == "error_setting"
        assert exc_info.value.params == {"name": name, "value": value}


class TestMessages:
    def test_validation_error_is_value_error(self):
        assert issubclass(ValidationError, ValueError)

    def test_validation_error_relocalizes(self):
        exc = ValidationError("error_range_too_large", max_days=1095, requested_days=2000)
        assert "1095" in str(exc)
        assert "2000" in exc.localized("ko")
        assert exc.localized("ko") != str(exc)

    def test_location_error_message(self):
        exc = LocationResolutionError("Atlantis", "no match")
        assert str(exc).startswith("Location not found: Atlantis.")
        assert "no match" in exc.localized("ko")

    def test_unknown_key_returns_key(self):
        assert t("no_such_key", "en") == "no_such_key"


class TestLogging:
    @pytest.fixture(autouse=True)
    def restore_logger(self):
        logger = logging.getLogger("moonwatch")
        saved = (list(logger.handlers), logger.level, logger.propagate)
        yield
        logger.handlers[:] = saved[0]
        logger.setLevel(saved[1])
        logger.propagate = saved[2]

    def test_setup_attaches_single_handler(self):
        setup_logging("DEBUG")
        logger = setup_logging("WARNING")
        assert logger.name == "moonwatch"
        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING
        assert logger.propagate is False

    def test_unknown_level_falls_back_to_info(self):
        logger = setup_logging("chatty")
        assert logger.level == logging.INFO
        assert logging.getLogger("httpx").level == logging.WARNING

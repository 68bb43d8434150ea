"""Tests for settings and logging configuration."""

import logging
from datetime import timedelta

import pytest

from coarecon.config import Settings, load_settings
from coarecon.domain.errors import ValidationError
from coarecon.logging_config import configure_logging


def test_defaults_without_environment():
    settings = load_settings({})

    assert settings == Settings()
    assert settings.staged_job_ttl == timedelta(hours=24)
    assert settings.high_confidence_threshold == 0.95
    assert settings.log_level == "WARNING"


def test_environment_overrides():
    settings = load_settings(
        {
            "COARECON_DB_PATH": "/tmp/coarecon.db",
            "COARECON_STAGED_JOB_TTL_HOURS": "1.5",
            "COARECON_HIGH_CONFIDENCE": "0.9",
            "COARECON_SAMPLE_SIZE": "3",
            "COARECON_MATCH_WORKERS": "8",
            "COARECON_LOG_LEVEL": "debug",
        }
    )

    assert settings.database_path == "/tmp/coarecon.db"
    assert settings.staged_job_ttl == timedelta(minutes=90)
    assert settings.high_confidence_threshold == 0.9
    assert settings.sample_size == 3
    assert settings.match_workers == 8
    assert settings.log_level == "DEBUG"


def test_blank_values_use_defaults():
    settings = load_settings({"COARECON_SAMPLE_SIZE": " ", "COARECON_DB_PATH": ""})

    assert settings.sample_size == 5
    assert settings.database_path is None


@pytest.mark.parametrize(
    "name,value",
    [
        ("COARECON_STAGED_JOB_TTL_HOURS", "soon"),
        ("COARECON_STAGED_JOB_TTL_HOURS", "0"),
        ("COARECON_HIGH_CONFIDENCE", "1.2"),
        ("COARECON_SAMPLE_SIZE", "0"),
        ("COARECON_MATCH_WORKERS", "two"),
    ],
)
def test_invalid_values_rejected(name, value):
    with pytest.raises(ValidationError) as excinfo:
        load_settings({name: value})

    assert name in str(excinfo.value)


@pytest.fixture
def package_logger():
    """Give the test a clean ``coarecon`` logger and restore it afterwards."""
    logger = logging.getLogger("coarecon")
    saved_handlers, saved_level = logger.handlers[:], logger.level
    logger.handlers = []
    yield logger
    logger.handlers = saved_handlers
    logger.setLevel(saved_level)


def test_configure_logging_sets_level_once(package_logger):
    logger = configure_logging("info")
    configure_logging("DEBUG")

    assert logger is package_logger
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1


def test_configure_logging_unknown_level():
    with pytest.raises(ValueError):
        configure_logging("LOUD")

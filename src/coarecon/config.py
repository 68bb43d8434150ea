"""Runtime settings read from the environment."""

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping, Optional

from coarecon.domain.errors import ValidationError

DEFAULT_STAGED_JOB_TTL_HOURS = 24.0
DEFAULT_HIGH_CONFIDENCE = 0.95
DEFAULT_SAMPLE_SIZE = 5
DEFAULT_MATCH_WORKERS = 4
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(frozen=True)
class Settings:
    """Tunables shared by the staging, import and matching services."""

    database_path: Optional[str] = None
    staged_job_ttl_hours: float = DEFAULT_STAGED_JOB_TTL_HOURS
    high_confidence_threshold: float = DEFAULT_HIGH_CONFIDENCE
    sample_size: int = DEFAULT_SAMPLE_SIZE
    match_workers: int = DEFAULT_MATCH_WORKERS
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def staged_job_ttl(self) -> timedelta:
        return timedelta(hours=self.staged_job_ttl_hours)


def _number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValidationError(f"Invalid value for {name}: '{raw}'")


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from COARECON_* environment variables.

    Args:
        env: Mapping to read instead of os.environ (used by tests)

    Raises:
        ValidationError: If a variable is present but malformed or out of range
    """
    if env is None:
        env = os.environ

    settings = Settings(
        database_path=env.get("COARECON_DB_PATH") or None,
        staged_job_ttl_hours=_number(
            env, "COARECON_STAGED_JOB_TTL_HOURS", DEFAULT_STAGED_JOB_TTL_HOURS, float
        ),
        high_confidence_threshold=_number(
            env, "COARECON_HIGH_CONFIDENCE", DEFAULT_HIGH_CONFIDENCE, float
        ),
        sample_size=_number(env, "COARECON_SAMPLE_SIZE", DEFAULT_SAMPLE_SIZE, int),
        match_workers=_number(env, "COARECON_MATCH_WORKERS", DEFAULT_MATCH_WORKERS, int),
        log_level=(env.get("COARECON_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
    )

    if settings.staged_job_ttl_hours <= 0:
        raise ValidationError("COARECON_STAGED_JOB_TTL_HOURS must be positive")
    if not 0.0 <= settings.high_confidence_threshold <= 1.0:
        raise ValidationError("COARECON_HIGH_CONFIDENCE must be between 0 and 1")
    if settings.sample_size < 1:
        raise ValidationError("COARECON_SAMPLE_SIZE must be at least 1")
    if settings.match_workers < 1:
        raise ValidationError("COARECON_MATCH_WORKERS must be at least 1")
    return settings

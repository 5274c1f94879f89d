# barberflow/config.py

import logging
import os
import re
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

HHMM_PATTERN = re.compile(r"^\d{2}:\d{2}$")


def _safe_int(env_var: str, default: str) -> int:
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(f"Invalid integer for {env_var}: {raw!r}") from None


def _safe_bool(env_var: str, default: str) -> bool:
    raw = os.getenv(env_var, default)
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = os.getenv("DATABASE_URL", "sqlite:///./barberflow.db")
    echo: bool = _safe_bool("DATABASE_ECHO", "false")


@dataclass(frozen=True)
class AuthConfig:
    secret_key: str = os.getenv("SECRET_KEY", "change-me-later")
    algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    access_token_expire_minutes: int = _safe_int("ACCESS_TOKEN_EXPIRE_MINUTES", "30")


@dataclass(frozen=True)
class SchedulingConfig:
    """Fallback business hours and durations used when an establishment has none."""

    default_open_time: str = os.getenv("DEFAULT_OPEN_TIME", "09:00")
    default_close_time: str = os.getenv("DEFAULT_CLOSE_TIME", "18:00")
    default_slot_minutes: int = _safe_int("DEFAULT_SLOT_MINUTES", "30")
    default_appointment_minutes: int = _safe_int("DEFAULT_APPOINTMENT_MINUTES", "60")
    # longest appointment the storage reader looks back for
    max_appointment_minutes: int = _safe_int("MAX_APPOINTMENT_MINUTES", "480")
    # zone of the stored wall-clock times; aware inputs are converted into it
    timezone: str = os.getenv("TIMEZONE", "UTC")


@dataclass(frozen=True)
class AppConfig:
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "barberflow")


def _validate_config(config: AppConfig) -> None:
    sched = config.scheduling
    for name, value in [
        ("DEFAULT_OPEN_TIME", sched.default_open_time),
        ("DEFAULT_CLOSE_TIME", sched.default_close_time),
    ]:
        if not HHMM_PATTERN.match(value):
            raise ValueError(f"{name} must be in HH:mm format, got {value!r}")
    if sched.default_open_time >= sched.default_close_time:
        raise ValueError(
            "DEFAULT_OPEN_TIME must be earlier than DEFAULT_CLOSE_TIME, "
            f"got {sched.default_open_time} >= {sched.default_close_time}"
        )
    if sched.default_slot_minutes < 1:
        raise ValueError(f"DEFAULT_SLOT_MINUTES must be >= 1, got {sched.default_slot_minutes}")
    if sched.default_appointment_minutes < 1:
        raise ValueError(
            f"DEFAULT_APPOINTMENT_MINUTES must be >= 1, got {sched.default_appointment_minutes}"
        )
    if sched.max_appointment_minutes < sched.default_appointment_minutes:
        raise ValueError(
            "MAX_APPOINTMENT_MINUTES must be >= DEFAULT_APPOINTMENT_MINUTES, "
            f"got {sched.max_appointment_minutes}"
        )
    if sched.timezone.upper() != "UTC":
        try:
            ZoneInfo(sched.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"TIMEZONE is not a known time zone: {sched.timezone!r}") from None
    if config.auth.access_token_expire_minutes < 1:
        raise ValueError(
            "ACCESS_TOKEN_EXPIRE_MINUTES must be >= 1, "
            f"got {config.auth.access_token_expire_minutes}"
        )


def load_config() -> AppConfig:
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.app_name)
    return config


settings = load_config()

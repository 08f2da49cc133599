from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
import os

import yaml

DEFAULT_BUFFER_MINUTES = 10
DEFAULT_LOOKAHEAD_HOURS = 48
DEFAULT_PAGE_SIZE = 250
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_TIMEZONE = "America/Los_Angeles"
DEFAULT_CACHE_PATH = "/var/lib/drivetime/cache.json"


class ConfigError(ValueError):
    """Raised when a config file or override cannot be interpreted."""


@dataclass
class ScheduleConfig:
    poll_minutes: int = 5
    backup_minutes: int = 60


@dataclass
class GoogleConfig:
    credentials_path: str = ""
    token_path: str = ""


@dataclass
class AppConfig:
    home_address: str = ""
    buffer_minutes: int = DEFAULT_BUFFER_MINUTES
    calendar_ids: List[str] = field(default_factory=lambda: ["primary"])
    maps_api_key: str = ""
    lookahead_hours: int = DEFAULT_LOOKAHEAD_HOURS
    log_level: str = DEFAULT_LOG_LEVEL
    timezone: str = DEFAULT_TIMEZONE
    page_size: int = DEFAULT_PAGE_SIZE
    cache_path: str = DEFAULT_CACHE_PATH
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    google: GoogleConfig = field(default_factory=GoogleConfig)

    def missing_required(self) -> List[str]:
        missing = []
        if not self.home_address.strip():
            missing.append("home_address")
        if not self.maps_api_key.strip():
            missing.append("GOOGLE_MAPS_API_KEY")
        return missing


def parse_calendar_ids(value: Any) -> List[str]:
    """Accept either a YAML list or a comma separated string."""
    if value is None:
        return []
    if isinstance(value, str):
        parts = value.split(",")
    else:
        parts = [str(v) for v in value]
    return [p.strip() for p in parts if p and p.strip()]


def _as_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc


def load_config(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    env = os.environ if environ is None else environ

    data: Dict[str, Any] = {}
    if path:
        p = Path(path)
        if p.exists():
            try:
                data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
            except yaml.YAMLError as exc:
                raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
            if not isinstance(data, dict):
                raise ConfigError(f"{path} must contain a mapping at the top level.")

    schedule = data.get("schedule", {}) or {}

    # Environment wins over the file.
    home_address = env.get("DRIVETIME_HOME_ADDRESS") or data.get("home_address", "")
    buffer_minutes = env.get("DRIVETIME_BUFFER_MINUTES") or data.get("buffer_minutes", DEFAULT_BUFFER_MINUTES)
    lookahead_hours = env.get("DRIVETIME_LOOKAHEAD_HOURS") or data.get("lookahead_hours", DEFAULT_LOOKAHEAD_HOURS)
    log_level = env.get("DRIVETIME_LOG_LEVEL") or data.get("log_level", DEFAULT_LOG_LEVEL)
    raw_ids = env.get("DRIVETIME_CALENDAR_IDS") or data.get("calendar_ids", ["primary"])

    return AppConfig(
        home_address=str(home_address or "").strip(),
        buffer_minutes=_as_int("buffer_minutes", buffer_minutes),
        calendar_ids=parse_calendar_ids(raw_ids),
        maps_api_key=str(env.get("GOOGLE_MAPS_API_KEY", "")).strip(),
        lookahead_hours=_as_int("lookahead_hours", lookahead_hours),
        log_level=str(log_level).strip().upper(),
        timezone=str(data.get("timezone", DEFAULT_TIMEZONE)),
        page_size=_as_int("page_size", data.get("page_size", DEFAULT_PAGE_SIZE)),
        cache_path=str(data.get("cache_path", DEFAULT_CACHE_PATH)),
        schedule=ScheduleConfig(
            poll_minutes=_as_int("schedule.poll_minutes", schedule.get("poll_minutes", 5)),
            backup_minutes=_as_int("schedule.backup_minutes", schedule.get("backup_minutes", 60)),
        ),
        google=GoogleConfig(
            credentials_path=env.get("GOOGLE_CREDENTIALS_JSON", ""),
            token_path=env.get("GOOGLE_TOKEN_JSON", ""),
        ),
    )

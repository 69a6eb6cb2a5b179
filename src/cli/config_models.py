"""Pydantic configuration models for fishing-forecast."""

import os
import re
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator

from forecast.conditions import DEFAULT_WATER_TEMP_OFFSET_F, WATER_TEMPERATURE_URL

VALID_CONTENT_PROVIDERS = {"template", "auto", "claude", "perplexity"}
VALID_CONFIDENCE = {"low", "medium", "high"}
VALID_WAIT_POLICIES = {"block", "stale"}


def validate_cron(expr: str) -> str:
    """Validate cron expression format (5 fields)."""
    parts = expr.split()
    if len(parts) != 5:
        raise ValueError(f"Cron must have 5 fields, got {len(parts)}: {expr}")
    patterns = [
        r"^(\*|[0-9]|[1-5][0-9])(/[0-9]+)?$",  # minute
        r"^(\*|[0-9]|1[0-9]|2[0-3])(/[0-9]+)?$",  # hour
        r"^(\*|[1-9]|[12][0-9]|3[01])(/[0-9]+)?$",  # day
        r"^(\*|[1-9]|1[0-2])(/[0-9]+)?$",  # month
        r"^(\*|[0-6])(/[0-9]+)?$",  # weekday
    ]
    for i, (part, pattern) in enumerate(zip(parts, patterns)):
        if not re.match(pattern, part) and part != "*":
            # Allow ranges and lists like 1-5, 0,30
            if not re.match(r"^[\d\-,\*/]+$", part):
                raise ValueError(f"Invalid cron field {i}: {part}")
    return expr


def validate_timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown time zone: {name}") from e
    return name


def _expand_env(value: Optional[str]) -> Optional[str]:
    """``${VAR}`` to the variable's value."""
    if value and value.startswith("${") and value.endswith("}"):
        return os.getenv(value[2:-1], "")
    return value


class LocationConfig(BaseModel):
    """Spot the daily report covers."""

    name: str = "Lake St. Clair, MI"
    latitude: float = 42.4583
    longitude: float = -82.7167
    timezone: str = "America/New_York"

    @field_validator("latitude")
    @classmethod
    def validate_latitude(cls, v: float) -> float:
        if not -90 <= v <= 90:
            raise ValueError(f"latitude must be -90..90, got {v}")
        return v

    @field_validator("longitude")
    @classmethod
    def validate_longitude(cls, v: float) -> float:
        if not -180 <= v <= 180:
            raise ValueError(f"longitude must be -180..180, got {v}")
        return v

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        return validate_timezone(v)


class AdapterConfig(BaseModel):
    """One prediction source."""

    enabled: bool = True
    weight: Optional[float] = None  # None = adapter default
    confidence: Optional[str] = None
    timeout_seconds: Optional[float] = None
    base_url: Optional[str] = None
    city: Optional[str] = None

    @field_validator("weight")
    @classmethod
    def validate_weight(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not 0 < v <= 1:
            raise ValueError(f"weight must be in (0, 1], got {v}")
        return v

    @field_validator("confidence")
    @classmethod
    def validate_confidence(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in VALID_CONFIDENCE:
            raise ValueError(f"Invalid confidence: {v}. Must be one of {VALID_CONFIDENCE}")
        return v


class SourcesConfig(BaseModel):
    """Prediction sources, queried in this order."""

    solunar_org: AdapterConfig = Field(default_factory=AdapterConfig)
    fishing_reminder: AdapterConfig = Field(default_factory=AdapterConfig)
    in_fisherman: AdapterConfig = Field(default_factory=AdapterConfig)
    astronomical: AdapterConfig = Field(default_factory=AdapterConfig)
    min_sources: int = 2


class ConsensusConfig(BaseModel):
    cluster_threshold_minutes: float = 120

    @field_validator("cluster_threshold_minutes")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"cluster_threshold_minutes must be positive, got {v}")
        return v


class ReportsConfig(BaseModel):
    """Report cache and generation limits."""

    freshness_hours: float = 24
    retain_days: int = 7
    generation_deadline_seconds: float = 25
    max_workers: int = 4
    wait_policy: str = "block"

    @field_validator("wait_policy")
    @classmethod
    def validate_wait_policy(cls, v: str) -> str:
        if v not in VALID_WAIT_POLICIES:
            raise ValueError(f"Invalid wait_policy: {v}. Must be one of {VALID_WAIT_POLICIES}")
        return v

    @field_validator("retain_days")
    @classmethod
    def validate_retain_days(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"retain_days must be >= 0, got {v}")
        return v


class ContentConfig(BaseModel):
    """Report text provider."""

    provider: str = "template"
    model: Optional[str] = None  # None = use provider default
    api_key: Optional[str] = None
    max_tokens: int = 1200

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        if v not in VALID_CONTENT_PROVIDERS:
            raise ValueError(
                f"Invalid content provider: {v}. Must be one of {VALID_CONTENT_PROVIDERS}"
            )
        return v


class ConditionsConfig(BaseModel):
    """Current weather and water temperature for the report."""

    enabled: bool = True
    weather_api_key: Optional[str] = None  # None = WEATHER_API_KEY env var
    water_url: Optional[str] = WATER_TEMPERATURE_URL
    # Added to air temperature when the lake page has no readings
    water_temp_offset_f: float = DEFAULT_WATER_TEMP_OFFSET_F
    timeout_seconds: float = 8.0

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {v}")
        return v


class SchedulerConfig(BaseModel):
    enabled: bool = True
    cron: str = "1 0 * * *"
    timezone: str = "America/New_York"
    sweep_cron: str = "30 0 * * *"

    @field_validator("cron", "sweep_cron")
    @classmethod
    def validate_schedule(cls, v: str) -> str:
        return validate_cron(v)

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        return validate_timezone(v)


class PathsConfig(BaseModel):
    """File paths configuration."""

    reports_db: Path = Path("~/fishing/reports.db")
    log_file: Path = Path("~/fishing/fishing.log")

    @model_validator(mode="after")
    def expand_paths(self):
        """Expand ~ in all paths."""
        self.reports_db = self.reports_db.expanduser()
        self.log_file = self.log_file.expanduser()
        return self


VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    json_output: bool = Field(default=False, alias="json")

    model_config = {"populate_by_name": True}

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class FishingConfig(BaseModel):
    """Main configuration model."""

    location: LocationConfig = Field(default_factory=LocationConfig)
    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    consensus: ConsensusConfig = Field(default_factory=ConsensusConfig)
    reports: ReportsConfig = Field(default_factory=ReportsConfig)
    content: ContentConfig = Field(default_factory=ContentConfig)
    conditions: ConditionsConfig = Field(default_factory=ConditionsConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def expand_env_vars(self):
        """Expand ${VAR} patterns in API keys."""
        self.content.api_key = _expand_env(self.content.api_key)
        self.conditions.weather_api_key = _expand_env(self.conditions.weather_api_key)
        return self

    @classmethod
    def from_dict(cls, data: dict) -> "FishingConfig":
        """Create config from a parsed YAML dict."""
        if "paths" in data:
            for key in ["reports_db", "log_file"]:
                if key in data["paths"] and isinstance(data["paths"][key], str):
                    data["paths"][key] = Path(data["paths"][key])
        return cls.model_validate(data)

    def to_dict(self) -> dict:
        """Plain dict view used by components and the web layer."""
        return self.model_dump(mode="python", by_alias=True)

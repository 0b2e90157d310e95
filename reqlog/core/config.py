"""
Configuration for the request logger using Pydantic Settings.
LoggerConfig is the per-registration surface; Settings loads it from the environment.
"""

from functools import lru_cache
from typing import Annotated, Any, List, Literal, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from reqlog.core.levels import DEFAULT_LEVEL, SeverityLevel, parse_level
from reqlog.schemas.schemas import AutoLoggingMode

DEFAULT_TRACE_HEADER = "X-Request-Id"
# Edge ray id, used when the configured trace header is absent
FALLBACK_TRACE_HEADER = "cf-ray"

HeaderPolicy = Union[Literal["omit", "all"], Tuple[str, ...]]


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _coerce_header_policy(value: Any) -> Any:
    if isinstance(value, bool):
        return "all" if value else "omit"
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("", "omit", "false", "none"):
            return "omit"
        if lowered in ("all", "true"):
            return "all"
        return tuple(_split_csv(value))
    return value


class LoggerConfig(BaseModel):
    """
    Options supplied once per middleware registration.

    header: "omit" attaches no headers, "all" copies every request header,
    a tuple of names copies only those (looked up case-insensitively).
    """

    model_config = ConfigDict(frozen=True)

    level: SeverityLevel = DEFAULT_LEVEL
    trace_header: str = Field(default=DEFAULT_TRACE_HEADER, min_length=1)
    auto_logging: AutoLoggingMode = AutoLoggingMode.SILENT
    include_platform_properties: Tuple[str, ...] = ()
    redact_keys: Tuple[str, ...] = ()
    header: HeaderPolicy = "omit"

    @field_validator("level", mode="before")
    @classmethod
    def parse_level_name(cls, v: Any) -> SeverityLevel:
        return parse_level(v)

    @field_validator("auto_logging", mode="before")
    @classmethod
    def lower_auto_logging(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("header", mode="before")
    @classmethod
    def parse_header_policy(cls, v: Any) -> Any:
        return _coerce_header_policy(v)

    @field_validator("redact_keys", mode="before")
    @classmethod
    def lower_redact_keys(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = _split_csv(v)
        return tuple(k.strip().lower() for k in v if k and k.strip())

    @field_validator("include_platform_properties", mode="before")
    @classmethod
    def split_platform_properties(cls, v: Any) -> Any:
        if isinstance(v, str):
            return tuple(_split_csv(v))
        return v


class Settings(BaseSettings):
    """
    Environment-driven settings for applications embedding the logger.
    List-valued variables accept comma-separated text.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # --- Application ---
    APP_NAME: str = "reqlog example service"
    APP_VERSION: str = "1.0.0"
    APP_ENV: str = Field(default="production")

    # --- Logging ---
    LOG_LEVEL: str = DEFAULT_LEVEL.value
    LOG_TRACE_HEADER: str = DEFAULT_TRACE_HEADER
    LOG_AUTO_LOGGING: str = AutoLoggingMode.SILENT.value
    LOG_REDACT_KEYS: Annotated[List[str], NoDecode] = []
    LOG_HEADERS: str = "omit"
    LOG_PLATFORM_PROPERTIES: Annotated[List[str], NoDecode] = []

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: Any) -> str:
        return parse_level(v).value

    @field_validator("LOG_REDACT_KEYS", "LOG_PLATFORM_PROPERTIES", mode="before")
    @classmethod
    def parse_csv_list(cls, v: Any) -> Any:
        if isinstance(v, str):
            return _split_csv(v)
        return v

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    def logger_config(self) -> LoggerConfig:
        """Build the middleware options described by these settings."""
        return LoggerConfig(
            level=self.LOG_LEVEL,
            trace_header=self.LOG_TRACE_HEADER,
            auto_logging=self.LOG_AUTO_LOGGING,
            include_platform_properties=tuple(self.LOG_PLATFORM_PROPERTIES),
            redact_keys=tuple(self.LOG_REDACT_KEYS),
            header=self.LOG_HEADERS,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached accessor for application settings."""
    return Settings()

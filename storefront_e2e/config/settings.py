# storefront_e2e/config/settings.py
"""
Environment-Aware Configuration for the Storefront E2E Suite

This module loads every tunable of the parallel session manager and the
scenario suite from layered sources (defaults → .env → .env.local →
environment variables) and validates them with Pydantic v2.

Sections:
- BrowserSettings: engine kind, headless mode, viewport, locale, timezone,
  navigation/action timeout, download and HTTPS policies
- SessionSettings: repeated-session policy, tracing and artifact directories
- LoggingSettings: structlog output configuration

Nested values use the ``__`` delimiter, e.g. ``BROWSER__VIEWPORT_WIDTH=800``.
The flat names ``BROWSER`` (engine kind), ``HEADLESS``, ``VIEWPORT_WIDTH`` and
``VIEWPORT_HEIGHT`` are accepted too and win over their nested forms.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    DotEnvSettingsSource,
    EnvSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict
)


class Environment(str, Enum):
    """Execution environments with specific behaviors."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class ExistingSessionPolicy(str, Enum):
    """What ``create_session`` does when the unit already has a bound session."""
    SUPERSEDE = "supersede"
    CLOSE = "close"
    REJECT = "reject"


class BrowserSettings(BaseModel):
    """
    Browser and browsing-context configuration.

    The engine kind is kept as free text: an unrecognized kind is not a
    configuration error, it falls back to chromium when the browser launches.
    """
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    name: str = Field(
        default="chromium",
        description="Engine kind (chromium, firefox, webkit; chrome/safari aliases)"
    )

    headless: bool = Field(default=True, description="Run browser in headless mode")

    viewport_width: int = Field(default=1920, ge=1, le=7680)
    viewport_height: int = Field(default=1080, ge=1, le=4320)

    timeout: int = Field(
        default=30000,
        ge=0,
        le=600000,
        description="Default page action/navigation timeout in milliseconds"
    )

    slow_mo: int = Field(default=0, ge=0, le=5000)

    locale: str = Field(default="en-US")
    timezone_id: str = Field(default="America/New_York")

    accept_downloads: bool = Field(default=True)
    ignore_https_errors: bool = Field(default=True)

    args: List[str] = Field(default_factory=list, description="Extra browser command line arguments")

    @field_validator("name")
    @classmethod
    def normalize_browser_name(cls, v: str) -> str:
        """Engine kinds are matched case-insensitively."""
        v = v.strip().lower()
        if not v:
            raise ValueError("Browser name must not be empty")
        return v

    @field_validator("args", mode="before")
    @classmethod
    def parse_args(cls, v) -> List[str]:
        """Parse browser arguments from string or list."""
        if isinstance(v, str):
            return [arg.strip() for arg in v.split(",") if arg.strip()]
        return v or []


class SessionSettings(BaseModel):
    """Session lifecycle and diagnostics artifacts."""
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    on_existing_session: ExistingSessionPolicy = Field(
        default=ExistingSessionPolicy.SUPERSEDE,
        description="Policy when a unit creates a session while one is still bound"
    )

    trace_enabled: bool = Field(default=True)
    trace_screenshots: bool = Field(default=True)
    trace_snapshots: bool = Field(default=True)
    trace_sources: bool = Field(default=False)

    trace_dir: Path = Field(default=Path("target/traces"))
    screenshot_dir: Path = Field(default=Path("target/screenshots"))


class LoggingSettings(BaseModel):
    """Centralized logging configuration."""
    model_config = ConfigDict(extra="forbid")

    level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    format_type: str = Field(
        default="structured",
        description="Log format (structured, console)"
    )

    console_enabled: bool = Field(default=True)
    file_enabled: bool = Field(default=False)
    file_path: Path = Field(default=Path("target/logs/storefront-e2e.log"))

    max_file_size_mb: int = Field(default=100, ge=1, le=1000)
    backup_count: int = Field(default=5, ge=1, le=30)

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v_upper

    @field_validator("format_type")
    @classmethod
    def validate_format_type(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = {"structured", "console"}
        if v not in valid_formats:
            raise ValueError(f"Invalid format: {v}")
        return v


class _FlatBrowserKindMixin:
    """
    Read a plain ``BROWSER=firefox`` as the engine kind.

    pydantic-settings decodes the variable named after a nested model as
    JSON. Anything that is not a JSON object is taken as ``browser.name``
    and merged with the ``BROWSER__*`` variables.
    """

    def decode_complex_value(self, field_name: str, field: FieldInfo, value: Any) -> Any:
        if field_name == "browser" and isinstance(value, str) and not value.lstrip().startswith("{"):
            return {"name": value} if value.strip() else {}
        return super().decode_complex_value(field_name, field, value)


class SuiteEnvSettingsSource(_FlatBrowserKindMixin, EnvSettingsSource):
    """Environment variables."""


class SuiteDotEnvSettingsSource(_FlatBrowserKindMixin, DotEnvSettingsSource):
    """.env and .env.local files."""


class Settings(BaseSettings):
    """
    Suite settings with environment-aware loading.

    Priority order:
    1. Environment variables (highest priority)
    2. .env.local file
    3. .env file
    4. Default values (lowest priority)
    """

    model_config = SettingsConfigDict(
        env_file=[".env", ".env.local"],
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        validation_alias="ENVIRONMENT",
    )

    debug: bool = Field(default=False, validation_alias="DEBUG")

    application_url: str = Field(
        default="https://www.saucedemo.com/",
        validation_alias="APPLICATION_URL",
        description="Storefront under test"
    )

    parallel_thread_count: int = Field(
        default=5,
        ge=1,
        validation_alias="PARALLEL_THREAD_COUNT",
        description="Reported only; parallelism comes from the test runner"
    )

    # Flat spellings of the most common browser knobs
    headless_override: Optional[bool] = Field(default=None, validation_alias="HEADLESS")
    viewport_width_override: Optional[int] = Field(default=None, ge=1, validation_alias="VIEWPORT_WIDTH")
    viewport_height_override: Optional[int] = Field(default=None, ge=1, validation_alias="VIEWPORT_HEIGHT")

    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def settings_customise_sources(
            cls,
            settings_cls: Type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,
            file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            SuiteEnvSettingsSource(settings_cls),
            SuiteDotEnvSettingsSource(settings_cls),
            file_secret_settings,
        )

    @field_validator("application_url")
    @classmethod
    def validate_application_url(cls, v: str) -> str:
        """Validate the storefront URL."""
        result = urlparse(v)
        if not all([result.scheme, result.netloc]):
            raise ValueError(f"Invalid application_url: {v}")
        return v

    @model_validator(mode="after")
    def configure_environment_defaults(self) -> "Settings":
        """Apply environment-specific configuration adjustments."""
        if self.headless_override is not None:
            self.browser.headless = self.headless_override
        if self.viewport_width_override is not None:
            self.browser.viewport_width = self.viewport_width_override
        if self.viewport_height_override is not None:
            self.browser.viewport_height = self.viewport_height_override

        if self.environment in (Environment.PRODUCTION, Environment.TESTING):
            self.browser.headless = True
        elif self.environment == Environment.DEVELOPMENT and self.debug:
            self.logging.level = "DEBUG"
        return self

    def launch_options(self) -> Dict[str, Any]:
        """Keyword arguments for ``BrowserType.launch``."""
        options: Dict[str, Any] = {
            "headless": self.browser.headless,
            "slow_mo": self.browser.slow_mo,
        }
        if self.browser.args:
            options["args"] = list(self.browser.args)
        return options

    def context_options(self) -> Dict[str, Any]:
        """Keyword arguments for ``Browser.new_context``."""
        return {
            "viewport": {
                "width": self.browser.viewport_width,
                "height": self.browser.viewport_height,
            },
            "locale": self.browser.locale,
            "timezone_id": self.browser.timezone_id,
            "accept_downloads": self.browser.accept_downloads,
            "ignore_https_errors": self.browser.ignore_https_errors,
        }

    def tracing_options(self) -> Dict[str, Any]:
        """Keyword arguments for ``BrowserContext.tracing.start``."""
        return {
            "screenshots": self.session.trace_screenshots,
            "snapshots": self.session.trace_snapshots,
            "sources": self.session.trace_sources,
        }

    def summary(self) -> Dict[str, Any]:
        """Flat view of the values reported in the suite banner."""
        return {
            "environment": self.environment.value,
            "browser_name": self.browser.name,
            "headless": self.browser.headless,
            "viewport": f"{self.browser.viewport_width}x{self.browser.viewport_height}",
            "timeout": self.browser.timeout,
            "application_url": self.application_url,
            "parallel_thread_count": self.parallel_thread_count,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    The cache can be cleared using get_settings.cache_clear()

    Example:
        >>> settings = get_settings()
        >>> settings.context_options()["viewport"]
        {'width': 1920, 'height': 1080}
    """
    return Settings()


def reload_settings() -> Settings:
    """Force reload settings by clearing cache."""
    get_settings.cache_clear()
    return get_settings()

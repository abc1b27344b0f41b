"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
"""

import logging
import os
from functools import lru_cache
from typing import Literal, cast

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from .env file
load_dotenv()

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class RemindersConfig(BaseModel):
    """Reminder poller configuration."""

    poll_interval_seconds: float = Field(
        default=60.0, gt=0.0, description="Interval between reminder evaluations"
    )
    dedupe_within_minute: bool = Field(
        default=True, description="Suppress a second firing when two ticks land in one minute"
    )


class NotificationConfig(BaseModel):
    """Notification sink configuration."""

    display_seconds: float = Field(
        default=10.0, gt=0.0, description="How long a reminder banner stays visible"
    )
    sound_enabled: bool = Field(default=True, description="Ring the terminal bell on notify")


class WaterConfig(BaseModel):
    """Hydration tracking configuration."""

    glass_ml: int = Field(default=250, gt=0, description="Volume of one logged glass")
    daily_limit_ml: int = Field(default=3000, gt=0, description="Maximum logged volume per day")
    points_per_glass: int = Field(default=2, ge=0, description="Points earned per glass")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default="INFO", description="Logging level")
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Component configs
    reminders: RemindersConfig = Field(default_factory=RemindersConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    water: WaterConfig = Field(default_factory=WaterConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> LogLevel:
        v = val.strip().upper()
        return cast(LogLevel, v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO")

    def _parse_bool(val: str | None, default: bool) -> bool:
        if val is None:
            return default
        return val.strip().lower() in {"1", "true", "yes", "on"}

    # Detect environment
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    reminders_config = RemindersConfig(
        poll_interval_seconds=float(os.getenv("POLL_INTERVAL_SECONDS", "60.0")),
        dedupe_within_minute=_parse_bool(os.getenv("DEDUPE_WITHIN_MINUTE"), True),
    )

    notification_config = NotificationConfig(
        display_seconds=float(os.getenv("NOTIFICATION_DISPLAY_SECONDS", "10.0")),
        sound_enabled=_parse_bool(os.getenv("NOTIFICATION_SOUND"), True),
    )

    water_config = WaterConfig(
        glass_ml=int(os.getenv("GLASS_ML", "250")),
        daily_limit_ml=int(os.getenv("DAILY_WATER_LIMIT_ML", "3000")),
        points_per_glass=int(os.getenv("POINTS_PER_GLASS", "2")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        reminders=reminders_config,
        notifications=notification_config,
        water=water_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def configure_logging(config: LoggingConfig) -> None:
    """Apply level and renderer to structlog and the stdlib root logger."""
    logging.basicConfig(level=getattr(logging, config.level), format="%(message)s")

    renderer = (
        structlog.dev.ConsoleRenderer()
        if config.format == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# Configuration validation and helpers
def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
        print(f"✅ Configuration loaded for {config.environment} environment")
    except Exception as e:
        print(f"❌ Configuration validation failed: {e}")
        raise


# Development helpers
def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\n🔧 CONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\n⏰ REMINDERS")
    print(f"Poll Interval: {config.reminders.poll_interval_seconds}s")
    print(f"Same-minute Dedupe: {config.reminders.dedupe_within_minute}")
    print(f"Banner Duration: {config.notifications.display_seconds}s")

    print("\n💧 WATER")
    print(f"Glass: {config.water.glass_ml} ml")
    print(f"Daily Limit: {config.water.daily_limit_ml} ml")
    print(f"Points per Glass: {config.water.points_per_glass}")


if __name__ == "__main__":
    # Test configuration loading
    validate_config()
    print_config_summary()

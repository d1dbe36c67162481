"""
Configuration management with environment variable support and validation.

Design principles:
- One config section per tool, validated at startup (fail fast)
- Type safety with Pydantic
- Environment and .env overrides, command-line arguments on top
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from .env file
load_dotenv()

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class HealthCheckConfig(BaseModel):
    """API health checker settings."""

    base_url: str = Field(default="http://localhost:8000", description="Base URL probed")
    timeout_seconds: float = Field(default=5.0, gt=0.0, description="Per-request timeout")
    interval_minutes: float = Field(default=5.0, gt=0.0, description="Monitoring interval")
    log_file: Path = Field(default=Path("logs/api-health.log"))


class BundleConfig(BaseModel):
    """Bundle analyzer settings."""

    build_dir: Path | None = Field(
        default=None, description="Directory to scan; detected when unset"
    )
    warning_kb: float = Field(default=200.0, ge=0.0, description="Warning threshold in KB")
    error_kb: float = Field(default=500.0, ge=0.0, description="Error threshold in KB")
    log_file: Path = Field(default=Path("logs/bundle-analysis.log"))

    @model_validator(mode="after")
    def warning_below_error(self) -> "BundleConfig":
        if self.warning_kb >= self.error_kb:
            raise ValueError("warning_kb must be lower than error_kb")
        return self


class PerformanceConfig(BaseModel):
    """Performance monitor settings."""

    name: str = Field(default="performance-monitor")
    interval_seconds: float = Field(default=5.0, gt=0.0, description="Summary print interval")
    summary_minutes: float = Field(default=5.0, gt=0.0, description="Window printed by monitor")
    log_file: Path = Field(default=Path("logs/performance.log"))


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default="WARNING", description="Logging level")
    format: Literal["json", "console"] = Field(default="console", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all tools."""

    health: HealthCheckConfig = Field(default_factory=HealthCheckConfig)
    bundle: BundleConfig = Field(default_factory=BundleConfig)
    performance: PerformanceConfig = Field(default_factory=PerformanceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _level_to_literal(val: str) -> LogLevel:
        v = val.strip().upper()
        return cast(
            LogLevel, v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "WARNING"
        )

    log_dir = Path(os.getenv("PROBEKIT_LOG_DIR", "logs"))
    build_dir = os.getenv("PROBEKIT_BUILD_DIR")

    health_config = HealthCheckConfig(
        base_url=os.getenv("PROBEKIT_BASE_URL", "http://localhost:8000"),
        timeout_seconds=float(os.getenv("PROBEKIT_TIMEOUT_SECONDS", "5.0")),
        interval_minutes=float(os.getenv("PROBEKIT_INTERVAL_MINUTES", "5.0")),
        log_file=log_dir / "api-health.log",
    )

    bundle_config = BundleConfig(
        build_dir=Path(build_dir) if build_dir else None,
        warning_kb=float(os.getenv("PROBEKIT_WARNING_KB", "200")),
        error_kb=float(os.getenv("PROBEKIT_ERROR_KB", "500")),
        log_file=log_dir / "bundle-analysis.log",
    )

    performance_config = PerformanceConfig(
        name=os.getenv("PROBEKIT_MONITOR_NAME", "performance-monitor"),
        interval_seconds=float(os.getenv("PROBEKIT_MONITOR_INTERVAL_SECONDS", "5.0")),
        summary_minutes=float(os.getenv("PROBEKIT_SUMMARY_MINUTES", "5.0")),
        log_file=log_dir / "performance.log",
    )

    log_format = os.getenv("LOG_FORMAT", "console").strip().lower()
    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "WARNING")),
        format="json" if log_format == "json" else "console",
    )

    return AppConfig(
        health=health_config,
        bundle=bundle_config,
        performance=performance_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()

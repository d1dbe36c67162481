"""
Tests for configuration management in `probekit/config.py`.

Covers:
- Defaults matching the documented thresholds and log paths
- Environment overrides and log level coercion
- Threshold validation
- get_config cache behavior
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from probekit.config import BundleConfig, HealthCheckConfig, get_config, load_config_from_env

ENV_VARS = [
    "PROBEKIT_BASE_URL",
    "PROBEKIT_TIMEOUT_SECONDS",
    "PROBEKIT_INTERVAL_MINUTES",
    "PROBEKIT_WARNING_KB",
    "PROBEKIT_ERROR_KB",
    "PROBEKIT_LOG_DIR",
    "PROBEKIT_BUILD_DIR",
    "LOG_LEVEL",
    "LOG_FORMAT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Isolate each test from the developer's environment and the config cache."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_config.cache_clear()
    yield
    get_config.cache_clear()


def test_defaults() -> None:
    config = load_config_from_env()

    assert config.health.base_url == "http://localhost:8000"
    assert config.health.timeout_seconds == 5.0
    assert config.health.log_file == Path("logs/api-health.log")
    assert config.bundle.warning_kb == 200
    assert config.bundle.error_kb == 500
    assert config.bundle.build_dir is None
    assert config.performance.log_file == Path("logs/performance.log")


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROBEKIT_BASE_URL", "https://api.example.com")
    monkeypatch.setenv("PROBEKIT_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("PROBEKIT_WARNING_KB", "100")
    monkeypatch.setenv("PROBEKIT_ERROR_KB", "250")
    monkeypatch.setenv("PROBEKIT_LOG_DIR", "/var/log/probekit")
    monkeypatch.setenv("PROBEKIT_BUILD_DIR", "dist")
    monkeypatch.setenv("PROBEKIT_SUMMARY_MINUTES", "15")

    config = load_config_from_env()

    assert config.health.base_url == "https://api.example.com"
    assert config.health.timeout_seconds == 2.5
    assert config.bundle.warning_kb == 100
    assert config.bundle.error_kb == 250
    assert config.bundle.build_dir == Path("dist")
    assert config.bundle.log_file == Path("/var/log/probekit/bundle-analysis.log")
    assert config.performance.summary_minutes == 15


def test_logging_level_literal_coercion(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "unknown")
    assert load_config_from_env().logging.level == "WARNING"

    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("LOG_FORMAT", "JSON")
    config = load_config_from_env()
    assert config.logging.level == "DEBUG"
    assert config.logging.format == "json"


def test_thresholds_must_be_ordered(monkeypatch: pytest.MonkeyPatch) -> None:
    with pytest.raises(ValueError, match="warning_kb must be lower"):
        BundleConfig(warning_kb=600, error_kb=500)

    monkeypatch.setenv("PROBEKIT_WARNING_KB", "900")
    with pytest.raises(ValueError):
        load_config_from_env()


def test_timeout_must_be_positive() -> None:
    with pytest.raises(ValueError):
        HealthCheckConfig(timeout_seconds=0)


def test_get_config_cache() -> None:
    assert get_config() is get_config()

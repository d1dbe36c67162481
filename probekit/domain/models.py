"""
Domain models for sampling and aggregation.

These models represent the core concepts shared by every tool and are
framework-agnostic. They use Pydantic for validation; samples and summaries
are frozen so they can be passed around and logged without defensive copies.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Outcome(str, Enum):
    """Result of a single probe."""

    SUCCESS = "success"
    FAILURE = "failure"


class ThresholdStatus(str, Enum):
    """Per-item classification against a ThresholdPolicy, ordered good < warning < error."""

    GOOD = "good"
    WARNING = "warning"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _THRESHOLD_RANK[self]


_THRESHOLD_RANK = {
    ThresholdStatus.GOOD: 0,
    ThresholdStatus.WARNING: 1,
    ThresholdStatus.ERROR: 2,
}


class OverallStatus(str, Enum):
    """Aggregate health of a set of samples."""

    HEALTHY = "HEALTHY"
    DEGRADED = "DEGRADED"
    UNHEALTHY = "UNHEALTHY"
    NO_DATA = "NO_DATA"


class Sample(BaseModel):
    """One measured event."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(description="Endpoint path, file path or operation name")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    duration_ms: int | None = Field(default=None, ge=0)
    outcome: Outcome
    detail: str | None = None
    measured_value: float | None = Field(
        default=None, description="Byte size, HTTP status code, or other payload"
    )
    method: str | None = None
    status: str | None = Field(default=None, description="Classifier label, if any")
    tags: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def failure_requires_detail(self) -> "Sample":
        if self.outcome is Outcome.FAILURE and not self.detail:
            raise ValueError("failed samples must carry a detail message")
        return self

    @property
    def succeeded(self) -> bool:
        return self.outcome is Outcome.SUCCESS


class ThresholdPolicy(BaseModel):
    """Two ordered cutoffs mapping a value to good / warning / error."""

    model_config = ConfigDict(frozen=True)

    warning_cutoff: float = Field(ge=0.0)
    error_cutoff: float = Field(ge=0.0)

    @model_validator(mode="after")
    def cutoffs_ordered(self) -> "ThresholdPolicy":
        if self.warning_cutoff >= self.error_cutoff:
            raise ValueError("warning_cutoff must be lower than error_cutoff")
        return self


class Summary(BaseModel):
    """Aggregate over a set of samples. Recomputed on every request, never stored."""

    model_config = ConfigDict(frozen=True)

    window_start: datetime | None = None
    window_end: datetime | None = None
    total: int = Field(ge=0)
    success_count: int = Field(ge=0)
    failure_count: int = Field(ge=0)
    avg_duration_ms: float | None = None
    min_duration_ms: int | None = None
    max_duration_ms: int | None = None
    overall_status: OverallStatus
    no_data: bool = False

    @model_validator(mode="after")
    def counts_add_up(self) -> "Summary":
        if self.success_count + self.failure_count != self.total:
            raise ValueError("success_count + failure_count must equal total")
        return self

    @property
    def success_rate(self) -> int | None:
        """Rounded success percentage, or None for an empty summary."""
        if self.total == 0:
            return None
        return round(self.success_count / self.total * 100)

    def to_log_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json") | {"success_rate": self.success_rate}

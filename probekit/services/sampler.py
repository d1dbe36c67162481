"""
Sampling of single probes.

Key patterns:
- Exactly one Sample per probe invocation, recorded before returning or re-raising
- Generic Result type for batch callers that must keep going after a failure
- Structured logging configured once for the whole package
"""

import inspect
import logging
import sys
import time
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Generic, Literal, TypeVar

import structlog

from probekit.domain.models import Outcome, Sample

if TYPE_CHECKING:
    from probekit.services.aggregator import WindowedAggregator

# Configure structured logging once for the package; the CLI reconfigures it
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
        structlog.processors.JSONRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


def configure_logging(
    level: str = "INFO", fmt: Literal["json", "console"] = "json"
) -> None:
    """Route structlog output to stderr at the given level, for the CLI entry points."""
    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr, force=True)
    renderer = (
        structlog.dev.ConsoleRenderer() if fmt == "console" else structlog.processors.JSONRenderer()
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
        cache_logger_on_first_use=False,
    )


# Generic Result type for explicit error handling
ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    Used by batch callers: a failed probe becomes an err Result and the batch
    moves on to the next item.
    """

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        if error is None:
            raise ValueError("Result.err requires an error")
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error


ProbeT = TypeVar("ProbeT")


def failure_detail(error: BaseException) -> str:
    """Human-readable message for a failed probe; never empty."""
    return str(error) or type(error).__name__


class Sampler:
    """
    Runs exactly one probe per call and hands exactly one Sample to the aggregator.

    The sampler owns no state of its own: the aggregator is passed in by the
    caller. No retries and no timeouts are applied here; a probe that needs a
    deadline enforces it itself and fails accordingly.
    """

    def __init__(
        self,
        aggregator: "WindowedAggregator",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.aggregator = aggregator
        self._clock = clock or (lambda: datetime.now(UTC))
        self.logger = logger.bind(component="sampler")

    async def run(
        self,
        label: str,
        probe: Callable[[], Any],
        *,
        method: str | None = None,
        measure: Callable[[Any], float | None] | None = None,
        tags: Mapping[str, str] | None = None,
    ) -> Any:
        """
        Execute the probe, record the outcome and return its result unchanged.

        The probe may be a plain callable or return an awaitable. On failure the
        sample is recorded first and the original exception is re-raised.
        """
        _, result = await self.capture(label, probe, method=method, measure=measure, tags=tags)
        return result.unwrap()

    def run_sync(
        self,
        label: str,
        probe: Callable[[], ProbeT],
        *,
        method: str | None = None,
        measure: Callable[[ProbeT], float | None] | None = None,
        tags: Mapping[str, str] | None = None,
    ) -> ProbeT:
        """Synchronous counterpart of run() for probes that never suspend."""
        start = time.perf_counter()
        try:
            value = probe()
        except Exception as e:
            self._record_failure(label, start, e, method=method, tags=tags)
            raise
        self._record_success(label, start, value, method=method, measure=measure, tags=tags)
        return value

    async def capture(
        self,
        label: str,
        probe: Callable[[], Any],
        *,
        method: str | None = None,
        measure: Callable[[Any], float | None] | None = None,
        tags: Mapping[str, str] | None = None,
    ) -> tuple[Sample, Result[Any, Exception]]:
        """
        Like run(), but hands back the recorded sample and a Result instead of raising.

        Batch callers use this so one failing item never stops the rest.
        """
        start = time.perf_counter()
        try:
            value = probe()
            if inspect.isawaitable(value):
                value = await value
        except Exception as e:
            sample = self._record_failure(label, start, e, method=method, tags=tags)
            return sample, Result.err(e)
        sample = self._record_success(
            label, start, value, method=method, measure=measure, tags=tags
        )
        return sample, Result.ok(value)

    def record_static(
        self,
        label: str,
        value: float,
        *,
        status: str | None = None,
        tags: Mapping[str, str] | None = None,
    ) -> Sample:
        """Record a measurement that has no duration, such as a file size."""
        sample = Sample(
            label=label,
            timestamp=self._clock(),
            outcome=Outcome.SUCCESS,
            measured_value=value,
            status=status,
            tags=dict(tags or {}),
        )
        self.aggregator.record(sample)
        return sample

    def capture_static(
        self,
        label: str,
        probe: Callable[[], float],
        *,
        status: Callable[[float], str | None] | None = None,
        tags: Mapping[str, str] | None = None,
    ) -> tuple[Sample, Result[float, Exception]]:
        """
        Read a measurement that has no duration and record it either way.

        A failing probe becomes a failed static sample; the error is handed
        back in the Result so a scan can move on to the next item.
        """
        try:
            value = probe()
        except Exception as e:
            sample = Sample(
                label=label,
                timestamp=self._clock(),
                outcome=Outcome.FAILURE,
                detail=failure_detail(e),
                measured_value=getattr(e, "measured_value", None),
                tags=dict(tags or {}),
            )
            self.aggregator.record(sample)
            self.logger.warning(
                "probe_failed", label=label, error=sample.detail, error_type=type(e).__name__
            )
            return sample, Result.err(e)
        sample = self.record_static(
            label, value, status=status(value) if status else None, tags=tags
        )
        return sample, Result.ok(value)

    def _record_success(
        self,
        label: str,
        start: float,
        result: Any,
        *,
        method: str | None,
        measure: Callable[[Any], float | None] | None,
        tags: Mapping[str, str] | None,
    ) -> Sample:
        duration_ms = _elapsed_ms(start)
        sample = Sample(
            label=label,
            timestamp=self._clock(),
            duration_ms=duration_ms,
            outcome=Outcome.SUCCESS,
            measured_value=measure(result) if measure else None,
            method=method,
            tags=dict(tags or {}),
        )
        self.aggregator.record(sample)
        self.logger.debug("probe_succeeded", label=label, duration_ms=duration_ms)
        return sample

    def _record_failure(
        self,
        label: str,
        start: float,
        error: Exception,
        *,
        method: str | None,
        tags: Mapping[str, str] | None,
    ) -> Sample:
        duration_ms = _elapsed_ms(start)
        sample = Sample(
            label=label,
            timestamp=self._clock(),
            duration_ms=duration_ms,
            outcome=Outcome.FAILURE,
            detail=failure_detail(error),
            measured_value=getattr(error, "measured_value", None),
            method=method,
            tags=dict(tags or {}),
        )
        self.aggregator.record(sample)
        self.logger.warning(
            "probe_failed",
            label=label,
            duration_ms=duration_ms,
            error=sample.detail,
            error_type=type(error).__name__,
        )
        return sample


def _elapsed_ms(start: float) -> int:
    return max(0, round((time.perf_counter() - start) * 1000))

"""
Windowed aggregation of samples.

Samples are appended to an in-memory sequence that grows for the life of the
aggregator; windowing is applied when a summary is requested. Summaries are
recomputed from the raw samples every time.
"""

import threading
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime, timedelta
from statistics import mean

from probekit.domain.errors import SinkWriteFailure
from probekit.domain.models import Sample, Summary
from probekit.services.classifier import health_status
from probekit.services.sampler import logger
from probekit.services.sinks import Sink


class WindowedAggregator:
    """
    Accumulates samples and answers summary queries over a trailing window.

    record() only appends under a lock, so the total in any summary equals the
    number of record() calls that completed before summarize() was invoked,
    even when probes run on worker threads.
    """

    def __init__(self, sinks: Iterable[Sink] = ()) -> None:
        self._samples: list[Sample] = []
        self._lock = threading.Lock()
        self.sinks: list[Sink] = list(sinks)
        self.logger = logger.bind(component="windowed_aggregator")

    def record(self, sample: Sample) -> None:
        """Accept a sample. Never raises because of a sink."""
        with self._lock:
            self._samples.append(sample)

        for sink in self.sinks:
            try:
                sink.emit(sample)
            except (SinkWriteFailure, OSError) as e:
                self.logger.error(
                    "sink_write_failed",
                    sink=type(sink).__name__,
                    label=sample.label,
                    error=str(e),
                )

    def all(self) -> tuple[Sample, ...]:
        """Every sample recorded so far, in insertion order."""
        with self._lock:
            return tuple(self._samples)

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def summarize(self, window: timedelta, now: datetime | None = None) -> Summary:
        """Summarize samples with timestamp strictly after now - window."""
        window_end = now or datetime.now(UTC)
        window_start = window_end - window
        in_window = [s for s in self.all() if s.timestamp > window_start]
        return summarize_samples(in_window, window_start=window_start, window_end=window_end)

    def summarize_all(self) -> Summary:
        """Summarize everything recorded, with no time window."""
        return summarize_samples(self.all())


def summarize_samples(
    samples: Sequence[Sample],
    window_start: datetime | None = None,
    window_end: datetime | None = None,
) -> Summary:
    """
    Reduce samples into a Summary.

    Latency statistics use successful samples with a duration only; failed
    samples are counted but never contribute latency.
    """
    total = len(samples)
    failure_count = sum(1 for s in samples if not s.succeeded)
    durations = [s.duration_ms for s in samples if s.succeeded and s.duration_ms is not None]

    return Summary(
        window_start=window_start,
        window_end=window_end,
        total=total,
        success_count=total - failure_count,
        failure_count=failure_count,
        avg_duration_ms=mean(durations) if durations else None,
        min_duration_ms=min(durations) if durations else None,
        max_duration_ms=max(durations) if durations else None,
        overall_status=health_status(total, failure_count),
        no_data=total == 0,
    )

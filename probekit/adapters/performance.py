"""
Operation timing.

Wraps arbitrary operations in the Sampler and reports latency over a
trailing window. Memory deltas are attached when tracemalloc is tracing.
"""

import tracemalloc
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any

import httpx
from rich.console import Console

from probekit.config import PerformanceConfig
from probekit.domain.errors import ProbeFailure
from probekit.domain.models import Sample, Summary
from probekit.services.aggregator import WindowedAggregator
from probekit.services.monitor import PeriodicMonitor
from probekit.services.sampler import Sampler, logger
from probekit.services.sinks import TextLogSink


class PerformanceMonitor:
    """Measures named operations and summarizes them over a trailing window."""

    def __init__(
        self,
        config: PerformanceConfig | None = None,
        aggregator: WindowedAggregator | None = None,
        console: Console | None = None,
    ) -> None:
        self.config = config or PerformanceConfig()
        self.aggregator = aggregator or WindowedAggregator(
            [TextLogSink(self.config.log_file, failure_word="ERROR")]
        )
        self.sampler = Sampler(self.aggregator)
        self.console = console or Console()
        self.logger = logger.bind(component="performance_monitor", monitor=self.config.name)

    async def measure_operation(self, name: str, operation: Callable[[], Any]) -> Any:
        """Time one operation; its result is returned and its errors re-raised."""
        tracing = tracemalloc.is_tracing()
        start_memory = tracemalloc.get_traced_memory()[0] if tracing else 0

        _, result = await self.sampler.capture(name, operation)
        if result.is_ok() and tracing:
            delta = tracemalloc.get_traced_memory()[0] - start_memory
            self.logger.debug("operation_memory_delta", name=name, memory_delta=delta)
        return result.unwrap()

    def record_metric(self, sample: Sample) -> None:
        """Record an externally measured sample, e.g. a page-load time."""
        self.aggregator.record(sample)

    def get_summary(self, minutes: float = 10) -> Summary:
        return self.aggregator.summarize(timedelta(minutes=minutes))

    def monitor(self) -> PeriodicMonitor:
        window = self.config.summary_minutes

        async def tick() -> None:
            summary = self.get_summary(window)
            if summary.total > 0:
                avg = round(summary.avg_duration_ms) if summary.avg_duration_ms is not None else 0
                self.console.print(
                    f"📈 Last {window:g} min: {summary.total} ops, avg {avg}ms, "
                    f"{summary.failure_count} failed"
                )

        return PeriodicMonitor(self.config.interval_seconds, tick, name=self.config.name)

    async def start_monitoring(self) -> None:
        self.console.print(f"📊 Performance monitoring started ({self.config.name})")
        self.console.print(f"📁 Logging to: {self.config.log_file}")
        await self.monitor().run_forever()


async def fetch_json(url: str, client: httpx.AsyncClient | None = None) -> Any:
    """GET a JSON document, raising ProbeFailure on transport errors or non-2xx."""
    try:
        if client is not None:
            response = await client.get(url)
        else:
            async with httpx.AsyncClient() as own_client:
                response = await own_client.get(url)
    except httpx.HTTPError as e:
        raise ProbeFailure(str(e) or type(e).__name__) from e

    if not response.is_success:
        raise ProbeFailure(
            f"HTTP {response.status_code}: {response.reason_phrase}",
            measured_value=response.status_code,
        )
    return response.json()


async def measure_api_call(
    url: str,
    monitor: PerformanceMonitor | None = None,
    client: httpx.AsyncClient | None = None,
) -> Any:
    """Time a JSON API call under the ``api-call`` label."""
    monitor = monitor or PerformanceMonitor()
    return await monitor.measure_operation("api-call", lambda: fetch_json(url, client))


async def measure_database_query(
    query: Awaitable[Any], monitor: PerformanceMonitor | None = None
) -> Any:
    """Time an already-issued query awaitable under the ``database-query`` label."""
    monitor = monitor or PerformanceMonitor()
    return await monitor.measure_operation("database-query", lambda: query)

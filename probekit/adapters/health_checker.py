"""
HTTP endpoint health checking.

Endpoints are configured as a tagged variant (a bare path or a detailed
entry with method, body, headers and expected status) and resolved to a
canonical EndpointCheck before probing. Each check is a single request
through the Sampler; a batch continues past failed endpoints.
"""

from collections.abc import AsyncIterator, Iterable, Mapping
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Annotated, Any, Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from rich.console import Console

from probekit.config import HealthCheckConfig
from probekit.domain.errors import ProbeFailure
from probekit.domain.models import OverallStatus, Sample, Summary
from probekit.services.aggregator import WindowedAggregator, summarize_samples
from probekit.services.monitor import PeriodicMonitor
from probekit.services.sampler import Sampler, logger
from probekit.services.sinks import ConsoleSink, TextLogSink


class SimpleEndpoint(BaseModel):
    """A bare path probed with GET and expected to return 200."""

    kind: Literal["simple"] = "simple"
    path: str


class DetailedEndpoint(BaseModel):
    """A path with its own method, payload, headers and expected status."""

    kind: Literal["detailed"] = "detailed"
    path: str
    method: str = "GET"
    expected_status: int = Field(default=200, ge=100, le=599)
    body: Any = None
    headers: dict[str, str] = Field(default_factory=dict)


EndpointSpec = Annotated[SimpleEndpoint | DetailedEndpoint, Field(discriminator="kind")]
_endpoint_adapter: TypeAdapter[SimpleEndpoint | DetailedEndpoint] = TypeAdapter(EndpointSpec)


class EndpointCheck(BaseModel):
    """Canonical request description every endpoint entry resolves to."""

    model_config = ConfigDict(frozen=True)

    path: str
    method: str = "GET"
    expected_status: int = 200
    body: Any = None
    headers: dict[str, str] = Field(default_factory=dict)


def resolve_endpoint(
    entry: str | Mapping[str, Any] | SimpleEndpoint | DetailedEndpoint | EndpointCheck,
) -> EndpointCheck:
    """
    Resolve a configured endpoint entry to an EndpointCheck.

    Accepts a bare path, a SimpleEndpoint/DetailedEndpoint, or a mapping using
    either ``path`` or ``endpoint`` for the path and ``expected_status`` or
    ``expectedStatus`` for the expected code.
    """
    if isinstance(entry, EndpointCheck):
        return entry
    if isinstance(entry, str):
        entry = SimpleEndpoint(path=entry)
    elif isinstance(entry, Mapping):
        data = dict(entry)
        if "endpoint" in data and "path" not in data:
            data["path"] = data.pop("endpoint")
        if "expectedStatus" in data and "expected_status" not in data:
            data["expected_status"] = data.pop("expectedStatus")
        data.setdefault("kind", "detailed")
        entry = _endpoint_adapter.validate_python(data)

    if isinstance(entry, SimpleEndpoint):
        return EndpointCheck(path=entry.path)
    return EndpointCheck(
        path=entry.path,
        method=entry.method.upper(),
        expected_status=entry.expected_status,
        body=entry.body,
        headers=dict(entry.headers),
    )


DEFAULT_ENDPOINTS: list[str | dict[str, Any]] = [
    "/api/health",
    "/api/users",
    {
        "endpoint": "/api/auth/login",
        "method": "POST",
        "body": {"email": "test@example.com", "password": "testpass"},
        "expected_status": 400,  # validation error, not 200
    },
]


class EndpointResult(BaseModel):
    """Outcome of one endpoint check, as presented to callers."""

    model_config = ConfigDict(frozen=True)

    endpoint: str
    url: str
    method: str
    status: int | None
    duration_ms: int
    success: bool
    timestamp: datetime
    error: str | None = None
    sample: Sample

    @classmethod
    def from_sample(cls, check: EndpointCheck, url: str, sample: Sample) -> "EndpointResult":
        return cls(
            endpoint=check.path,
            url=url,
            method=check.method,
            status=int(sample.measured_value) if sample.measured_value is not None else None,
            duration_ms=sample.duration_ms or 0,
            success=sample.succeeded,
            timestamp=sample.timestamp,
            error=sample.detail,
            sample=sample,
        )


class ApiHealthChecker:
    """
    Checks a configured set of endpoints on one base URL.

    The aggregator is owned by the caller (or created here with a text log
    sink); every check appends one sample to it.
    """

    def __init__(
        self,
        config: HealthCheckConfig | None = None,
        aggregator: WindowedAggregator | None = None,
        client: httpx.AsyncClient | None = None,
        console: Console | None = None,
    ) -> None:
        self.config = config or HealthCheckConfig()
        self.aggregator = aggregator or WindowedAggregator(
            [TextLogSink(self.config.log_file, failure_word="FAILED")]
        )
        self.sampler = Sampler(self.aggregator)
        self.console = console or Console()
        self._client = client
        self.logger = logger.bind(component="api_health_checker", base_url=self.config.base_url)

    @property
    def base_url(self) -> str:
        return self.config.base_url.rstrip("/")

    def url_for(self, check: EndpointCheck) -> str:
        return f"{self.base_url}{check.path}"

    @asynccontextmanager
    async def session(self) -> AsyncIterator["ApiHealthChecker"]:
        """Share one HTTP client across every check made inside the block."""
        if self._client is not None:
            yield self
            return

        async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
            self._client = client
            try:
                yield self
            finally:
                self._client = None

    async def request(self, check: EndpointCheck) -> httpx.Response:
        """Send one request; raise ProbeFailure on transport errors or an unexpected status."""
        headers = {"Content-Type": "application/json", **check.headers}
        kwargs: dict[str, Any] = {"headers": headers, "timeout": self.config.timeout_seconds}
        if check.body is not None:
            kwargs["json"] = check.body

        try:
            if self._client is not None:
                response = await self._client.request(check.method, self.url_for(check), **kwargs)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.request(check.method, self.url_for(check), **kwargs)
        except httpx.HTTPError as e:
            raise ProbeFailure(str(e) or type(e).__name__) from e

        if response.status_code != check.expected_status:
            raise ProbeFailure(
                f"Expected {check.expected_status}, got {response.status_code}",
                measured_value=response.status_code,
            )
        return response

    async def check_endpoint(
        self, endpoint: str | Mapping[str, Any] | SimpleEndpoint | DetailedEndpoint | EndpointCheck
    ) -> EndpointResult:
        """Probe one endpoint. Failures are recorded and returned, not raised."""
        check = resolve_endpoint(endpoint)
        sample, _ = await self.sampler.capture(
            check.path,
            lambda: self.request(check),
            method=check.method,
            measure=lambda response: response.status_code,
            tags={"url": self.url_for(check)},
        )
        return EndpointResult.from_sample(check, self.url_for(check), sample)

    async def check_endpoints(
        self,
        endpoints: Iterable[
            str | Mapping[str, Any] | SimpleEndpoint | DetailedEndpoint | EndpointCheck
        ],
    ) -> list[EndpointResult]:
        """Probe endpoints one after another, printing each outcome as it completes."""
        results = []
        async with self.session():
            for endpoint in endpoints:
                check = resolve_endpoint(endpoint)
                self.console.print(f"🔍 Checking {check.path}...")
                result = await self.check_endpoint(check)
                results.append(result)
                self.console.print(ConsoleSink.format_sample(result.sample))
        return results

    def health_summary(self, results: Iterable[EndpointResult]) -> Summary:
        """Summary over one batch of results."""
        return summarize_samples([result.sample for result in results])

    async def run_check(self, endpoints: Iterable[Any] = DEFAULT_ENDPOINTS) -> Summary:
        """Check every endpoint once and log the batch summary."""
        results = await self.check_endpoints(endpoints)
        summary = self.health_summary(results)
        self.logger.info(
            "health_check_completed",
            total=summary.total,
            failed=summary.failure_count,
            status=summary.overall_status.value,
        )
        return summary

    def monitor(
        self, endpoints: Iterable[Any] = DEFAULT_ENDPOINTS, interval_minutes: float | None = None
    ) -> PeriodicMonitor:
        """Build a monitor that re-checks the endpoints every interval."""
        endpoint_list = list(endpoints)
        minutes = interval_minutes or self.config.interval_minutes

        async def tick() -> None:
            self.console.print(f"\n📊 Health check at {datetime.now().strftime('%H:%M:%S')}")
            summary = await self.run_check(endpoint_list)
            self.console.print(ConsoleSink.format_summary(summary))
            if summary.overall_status is not OverallStatus.HEALTHY:
                self.console.print(
                    "⚠️  Some endpoints are having issues. Check the logs for details."
                )

        return PeriodicMonitor(minutes * 60, tick, name="api-health")

    async def start_monitoring(
        self, endpoints: Iterable[Any] = DEFAULT_ENDPOINTS, interval_minutes: float | None = None
    ) -> None:
        """Check immediately, then every interval, until cancelled."""
        monitor = self.monitor(endpoints, interval_minutes)
        self.console.print(
            f"🔄 Starting API health monitoring every {monitor.interval_seconds / 60:g} minutes"
        )
        self.console.print(f"📁 Logging to: {self.config.log_file}")
        await monitor.run_forever()

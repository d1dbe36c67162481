"""Command-line entry points for the health checker, bundle analyzer and performance monitor."""

import argparse
import asyncio
import sys
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path

from rich.console import Console

from probekit.adapters.bundle_analyzer import BundleAnalyzer
from probekit.adapters.health_checker import DEFAULT_ENDPOINTS, ApiHealthChecker
from probekit.adapters.performance import PerformanceMonitor, measure_api_call
from probekit.config import AppConfig, get_config
from probekit.domain.errors import ConfigurationError, ProbeFailure
from probekit.domain.models import OverallStatus, ThresholdStatus
from probekit.services.sampler import configure_logging

console = Console()
err_console = Console(stderr=True)


def _setup(config: AppConfig) -> None:
    configure_logging(config.logging.level, config.logging.format)


def _run_forever(coro_factory: Callable[[], Awaitable[None]]) -> int:
    try:
        asyncio.run(coro_factory())
    except KeyboardInterrupt:
        console.print("\n⏹️  Monitoring stopped")
    return 0


def health_main(argv: Sequence[str] | None = None) -> int:
    config = get_config()
    parser = argparse.ArgumentParser(
        prog="probekit-health", description="Check that API endpoints respond as expected"
    )
    commands = parser.add_subparsers(dest="command")

    check = commands.add_parser("check", help="Check all endpoints once")
    check.add_argument("base_url", nargs="?", default=config.health.base_url)

    monitor = commands.add_parser("monitor", help="Monitor endpoints continuously")
    monitor.add_argument("base_url", nargs="?", default=config.health.base_url)
    monitor.add_argument("interval_minutes", nargs="?", type=float, default=None)

    single = commands.add_parser("single", help="Check a single endpoint")
    single.add_argument("base_url", nargs="?", default=config.health.base_url)
    single.add_argument("path", nargs="?", default="/api/health")

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    _setup(config)
    health_config = config.health.model_copy(update={"base_url": args.base_url})
    checker = ApiHealthChecker(health_config, console=console)

    if args.command == "check":
        console.print(f"🏥 API Health Check for {checker.base_url}")
        summary = asyncio.run(checker.run_check(DEFAULT_ENDPOINTS))
        avg = round(summary.avg_duration_ms) if summary.avg_duration_ms is not None else 0
        console.print("\n📊 Overall Health Summary:")
        console.print(f"Status: {summary.overall_status.value}")
        console.print(f"Success Rate: {summary.success_rate or 0}%")
        console.print(f"Average Response Time: {avg}ms")
        console.print(f"Check logs for details: {health_config.log_file}")
        return 0 if summary.overall_status is OverallStatus.HEALTHY else 1

    if args.command == "monitor":
        return _run_forever(
            lambda: checker.start_monitoring(DEFAULT_ENDPOINTS, args.interval_minutes)
        )

    console.print(f"🔍 Checking single endpoint: {checker.base_url}{args.path}")
    result = asyncio.run(checker.check_endpoint(args.path))
    if result.success:
        console.print(f"✅ Success: {result.duration_ms}ms")
        return 0
    console.print(f"❌ Failed: {result.error}")
    return 1


def bundle_main(argv: Sequence[str] | None = None) -> int:
    config = get_config()
    parser = argparse.ArgumentParser(
        prog="probekit-bundle", description="Analyze JavaScript and CSS bundle sizes"
    )
    commands = parser.add_subparsers(dest="command")
    analyze = commands.add_parser("analyze", help="Full analysis (default)")
    analyze.add_argument("build_dir", nargs="?", default=None)
    check = commands.add_parser("check", help="Quick status check for CI")
    check.add_argument("build_dir", nargs="?", default=None)

    args = parser.parse_args(argv)
    command = args.command or "analyze"
    build_dir = getattr(args, "build_dir", None)

    _setup(config)
    bundle_config = config.bundle
    if build_dir:
        bundle_config = bundle_config.model_copy(update={"build_dir": Path(build_dir)})
    analyzer = BundleAnalyzer(bundle_config, console=console)

    try:
        report = analyzer.run_analysis()
    except ConfigurationError as e:
        err_console.print(f"❌ Failed to analyze bundles: {e}")
        return 1

    if command == "check":
        console.print(f"Bundle status: {report.status.value.upper()}")
        console.print(f"Total size: {report.total_size}")
        return 0 if report.status is ThresholdStatus.GOOD else 1

    console.print(f"\n📄 Analysis logged to: {bundle_config.log_file}")
    return 1 if report.status is ThresholdStatus.ERROR else 0


def perf_main(argv: Sequence[str] | None = None) -> int:
    config = get_config()
    parser = argparse.ArgumentParser(
        prog="probekit-perf", description="Measure operation timings"
    )
    commands = parser.add_subparsers(dest="command")
    test_api = commands.add_parser("test-api", help="Test API response time")
    test_api.add_argument("url", nargs="?", default=f"{config.health.base_url}/api/health")
    commands.add_parser("monitor", help="Start continuous monitoring")

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    _setup(config)
    monitor = PerformanceMonitor(config.performance, console=console)

    if args.command == "monitor":
        return _run_forever(monitor.start_monitoring)

    console.print(f"🧪 Testing API: {args.url}")
    try:
        asyncio.run(measure_api_call(args.url, monitor))
    except (ProbeFailure, ValueError) as e:
        err_console.print(f"❌ API call failed: {e}")
        return 1
    console.print("✅ API call successful")
    console.print(f"📊 Check {config.performance.log_file} for timing data")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Dispatch ``probekit <tool> ...`` to the individual tools."""
    tools = {"health": health_main, "bundle": bundle_main, "perf": perf_main}
    args = list(sys.argv[1:] if argv is None else argv)
    if not args or args[0] not in tools:
        console.print("Usage: probekit {health,bundle,perf} [command] [args...]")
        return 0 if not args else 2
    return tools[args[0]](args[1:])


if __name__ == "__main__":
    sys.exit(main())

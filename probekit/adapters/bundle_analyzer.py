"""
Static-asset bundle size analysis.

Scans a build directory for JavaScript and CSS bundles, classifies each file
against the warning/error thresholds and reduces the scan to a report whose
status is the worst per-file status.
"""

from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from rich.console import Console

from probekit.config import BundleConfig
from probekit.domain.errors import ConfigurationError, ProbeFailure, SinkWriteFailure
from probekit.domain.models import ThresholdPolicy, ThresholdStatus
from probekit.services.aggregator import WindowedAggregator
from probekit.services.classifier import classify, worst_status
from probekit.services.sampler import Sampler, failure_detail, logger
from probekit.services.sinks import JsonLinesSink, iso_timestamp

COMMON_BUILD_DIRS = ("build", "dist", "public/build")
BUNDLE_EXTENSIONS = (".js", ".css")
EXCLUDE_PATTERNS = (".map", ".txt", ".html")
COMPRESSED_EXTENSIONS = (".gz", ".br")
LARGE_TOTAL_KB = 300

_STATUS_ICONS = {
    ThresholdStatus.ERROR: "❌",
    ThresholdStatus.WARNING: "⚠️ ",
    ThresholdStatus.GOOD: "✅",
}


def format_file_size(size_bytes: int) -> str:
    """Human-readable size: 0 B, 512 B, 1.5 KB, 2 MB."""
    if size_bytes == 0:
        return "0 B"

    units = ["B", "KB", "MB", "GB"]
    value = float(size_bytes)
    exponent = 0
    while value >= 1024 and exponent < len(units) - 1:
        value /= 1024
        exponent += 1
    return f"{value:.1f}".rstrip("0").rstrip(".") + f" {units[exponent]}"


def find_build_directory(root: Path | None = None) -> Path:
    """First existing common build directory under root, or ``build``."""
    base = root or Path()
    for candidate in COMMON_BUILD_DIRS:
        if (base / candidate).exists():
            return base / candidate
    return base / "build"


def is_bundle_file(filename: str) -> bool:
    if not filename.endswith(BUNDLE_EXTENSIONS):
        return False
    return not any(pattern in filename for pattern in EXCLUDE_PATTERNS)


def read_file_size(file_path: Path) -> int:
    try:
        return file_path.stat().st_size
    except OSError as e:
        raise ProbeFailure(f"Cannot read {file_path.name}: {e.strerror or e}") from e


def find_bundle_files(directory: Path) -> list[Path]:
    """Every bundle file below directory, depth first in name order."""
    if not directory.exists():
        raise ConfigurationError(f"Build directory not found: {directory}")

    files: list[Path] = []

    def scan(current: Path) -> None:
        for item in sorted(current.iterdir()):
            if item.is_dir():
                scan(item)
            elif is_bundle_file(item.name):
                files.append(item)

    scan(directory)
    return files


class BundleFile(BaseModel):
    """Size classification of one bundle file."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(description="Path relative to the build directory")
    full_path: Path
    size_bytes: int = Field(ge=0)
    size_kb: int
    size_formatted: str
    status: ThresholdStatus
    is_compressed: bool = False


class BundleFailure(BaseModel):
    """A bundle file that was found but could not be measured."""

    model_config = ConfigDict(frozen=True)

    path: str
    detail: str


class BundleReport(BaseModel):
    """Aggregate of one scan."""

    model_config = ConfigDict(frozen=True)

    total_size: str
    total_size_kb: int
    file_count: int
    js_size: str
    css_size: str
    large_files: int
    warning_files: int
    status: ThresholdStatus
    files: list[BundleFile]
    failed_files: list[BundleFailure] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_log_entry(self) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "timestamp": iso_timestamp(self.generated_at),
            "totalSizeKB": self.total_size_kb,
            "fileCount": self.file_count,
            "status": self.status.value,
            "files": [
                {"path": f.path, "sizeKB": f.size_kb, "status": f.status.value}
                for f in self.files
            ],
        }
        if self.failed_files:
            entry["failedFiles"] = [
                {"path": f.path, "detail": f.detail} for f in self.failed_files
            ]
        return entry


def generate_report(
    files: Sequence[BundleFile], failures: Sequence[BundleFailure] = ()
) -> BundleReport:
    """Reduce a scan to one report; any unreadable file makes it an error."""
    total = sum(f.size_bytes for f in files)
    js_total = sum(f.size_bytes for f in files if f.path.endswith(".js"))
    css_total = sum(f.size_bytes for f in files if f.path.endswith(".css"))

    return BundleReport(
        total_size=format_file_size(total),
        total_size_kb=round(total / 1024),
        file_count=len(files),
        js_size=format_file_size(js_total),
        css_size=format_file_size(css_total),
        large_files=sum(1 for f in files if f.status is ThresholdStatus.ERROR),
        warning_files=sum(1 for f in files if f.status is ThresholdStatus.WARNING),
        status=ThresholdStatus.ERROR if failures else worst_status(f.status for f in files),
        files=list(files),
        failed_files=list(failures),
    )


def recommendations(report: BundleReport) -> list[str]:
    tips: list[str] = []
    if report.large_files > 0:
        tips += [
            "Consider code splitting for large JavaScript files",
            "Use dynamic imports for non-critical code",
            "Check for duplicate dependencies in your bundle",
        ]
    if report.total_size_kb > LARGE_TOTAL_KB:
        tips += [
            "Total bundle size is quite large. Consider:",
            "  - Lazy loading components",
            "  - Tree shaking unused code",
            "  - Using a smaller UI library",
        ]
    if report.status is ThresholdStatus.GOOD:
        tips.append("Bundle size looks healthy! 🎉")
    return tips


class BundleAnalyzer:
    """
    Scans one build directory and reports bundle sizes.

    Each analyzed file is recorded as a static sample (no duration) so the
    aggregator holds the full scan for later inspection.
    """

    def __init__(
        self,
        config: BundleConfig | None = None,
        aggregator: WindowedAggregator | None = None,
        console: Console | None = None,
    ) -> None:
        self.config = config or BundleConfig()
        self.build_dir = self.config.build_dir or find_build_directory()
        self.policy = ThresholdPolicy(
            warning_cutoff=self.config.warning_kb, error_cutoff=self.config.error_kb
        )
        self.aggregator = aggregator or WindowedAggregator()
        self.sampler = Sampler(self.aggregator)
        self.report_sink = JsonLinesSink(self.config.log_file)
        self.console = console or Console()
        self.logger = logger.bind(component="bundle_analyzer", build_dir=str(self.build_dir))

    def analyze_file(self, file_path: Path) -> BundleFile | BundleFailure:
        relative = file_path.relative_to(self.build_dir).as_posix()
        _, result = self.sampler.capture_static(
            relative,
            lambda: read_file_size(file_path),
            status=lambda size: classify(size / 1024, self.policy).value,
        )
        if result.is_err():
            return BundleFailure(path=relative, detail=failure_detail(result.unwrap_err()))

        size_bytes = int(result.unwrap())
        size_kb = size_bytes / 1024
        status = classify(size_kb, self.policy)
        return BundleFile(
            path=relative,
            full_path=file_path,
            size_bytes=size_bytes,
            size_kb=round(size_kb),
            size_formatted=format_file_size(size_bytes),
            status=status,
            is_compressed=file_path.name.endswith(COMPRESSED_EXTENSIONS),
        )

    def analyze_bundles(self) -> tuple[list[BundleFile], list[BundleFailure]]:
        """Analyze every bundle file, largest first, plus the files that could not be read."""
        self.console.print(f"📦 Analyzing bundles in {self.build_dir}")
        bundle_files = find_bundle_files(self.build_dir)
        if not bundle_files:
            raise ConfigurationError(
                f"No bundle files found in {self.build_dir}. Did you run 'npm run build'?"
            )

        analysis: list[BundleFile] = []
        failures: list[BundleFailure] = []
        for path in bundle_files:
            outcome = self.analyze_file(path)
            if isinstance(outcome, BundleFailure):
                failures.append(outcome)
            else:
                analysis.append(outcome)
        analysis.sort(key=lambda f: f.size_bytes, reverse=True)
        return analysis, failures

    def print_report(self, report: BundleReport) -> None:
        out = self.console
        out.print("\n📊 Bundle Analysis Report")
        out.print("=========================")
        out.print(f"📦 Total bundle size: {report.total_size} ({report.total_size_kb} KB)")
        out.print(f"📄 Files analyzed: {report.file_count}")
        out.print(f"🟨 JavaScript: {report.js_size}")
        out.print(f"🎨 CSS: {report.css_size}")

        if report.failed_files:
            out.print(f"❌ Status: {len(report.failed_files)} files could not be read")
        elif report.status is ThresholdStatus.ERROR:
            out.print(
                f"❌ Status: {report.large_files} files exceed {self.config.error_kb:g}KB threshold"
            )
        elif report.status is ThresholdStatus.WARNING:
            out.print(
                f"⚠️  Status: {report.warning_files} files exceed "
                f"{self.config.warning_kb:g}KB threshold"
            )
        else:
            out.print("✅ Status: All files within size limits")

        out.print("\n📁 File Breakdown:")
        for file in report.files:
            out.print(f"{_STATUS_ICONS[file.status]} {file.path} - {file.size_formatted}")
        for failed in report.failed_files:
            out.print(f"❌ {failed.path} - {failed.detail}")

        out.print("\n💡 Recommendations:")
        for tip in recommendations(report):
            out.print(tip if tip.startswith(" ") else f"• {tip}")

    def log_analysis(self, report: BundleReport) -> None:
        self.report_sink.emit(report.to_log_entry())

    def run_analysis(self, quiet: bool = False) -> BundleReport:
        """Analyze, print and append the report to the JSON-lines log."""
        try:
            report = generate_report(*self.analyze_bundles())
        except ConfigurationError as e:
            self.logger.error("bundle_analysis_failed", error=str(e))
            raise

        if not quiet:
            self.print_report(report)
        try:
            self.log_analysis(report)
        except SinkWriteFailure as e:
            self.logger.error("bundle_log_write_failed", error=str(e))
        self.logger.info(
            "bundle_analysis_completed",
            file_count=report.file_count,
            total_size_kb=report.total_size_kb,
            status=report.status.value,
        )
        return report

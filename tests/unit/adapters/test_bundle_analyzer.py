"""Tests for the bundle analyzer using real files under tmp_path."""

import io
import json
from pathlib import Path

import pytest
from rich.console import Console

from probekit.adapters.bundle_analyzer import (
    BundleAnalyzer,
    find_build_directory,
    find_bundle_files,
    format_file_size,
    generate_report,
    is_bundle_file,
    recommendations,
)
from probekit.config import BundleConfig
from probekit.domain.errors import ConfigurationError
from probekit.domain.models import Outcome, ThresholdStatus

KB = 1024


def write_file(path: Path, size_bytes: int) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size_bytes)
    return path


@pytest.fixture
def build_dir(tmp_path: Path) -> Path:
    root = tmp_path / "dist"
    write_file(root / "assets" / "vendor.js", 600 * KB)
    write_file(root / "assets" / "app.css", 250 * KB)
    write_file(root / "main.js", 50 * KB)
    write_file(root / "main.js.map", 900 * KB)
    write_file(root / "index.html", 2 * KB)
    return root


def make_analyzer(build_dir: Path, tmp_path: Path, **overrides: float) -> BundleAnalyzer:
    config = BundleConfig(
        build_dir=build_dir, log_file=tmp_path / "logs" / "bundle-analysis.log", **overrides
    )
    return BundleAnalyzer(config, console=Console(file=io.StringIO(), width=120))


class TestFileSelection:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("main.js", True),
            ("styles.css", True),
            ("main.js.map", False),
            ("licenses.txt.js", False),
            ("index.html", False),
            ("logo.svg", False),
            ("main.js.gz", False),
        ],
    )
    def test_is_bundle_file(self, name: str, expected: bool) -> None:
        assert is_bundle_file(name) is expected

    def test_find_bundle_files_recurses(self, build_dir: Path) -> None:
        names = sorted(p.name for p in find_bundle_files(build_dir))
        assert names == ["app.css", "main.js", "vendor.js"]

    def test_missing_directory_is_configuration_error(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="Build directory not found"):
            find_bundle_files(tmp_path / "nope")

    def test_find_build_directory_prefers_common_names(self, tmp_path: Path) -> None:
        assert find_build_directory(tmp_path) == tmp_path / "build"

        (tmp_path / "public" / "build").mkdir(parents=True)
        assert find_build_directory(tmp_path) == tmp_path / "public" / "build"

        (tmp_path / "dist").mkdir()
        assert find_build_directory(tmp_path) == tmp_path / "dist"


@pytest.mark.parametrize(
    "size,expected",
    [
        (0, "0 B"),
        (512, "512 B"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (250 * KB, "250 KB"),
        (5 * KB * KB, "5 MB"),
        (3 * KB**3, "3 GB"),
    ],
)
def test_format_file_size(size: int, expected: str) -> None:
    assert format_file_size(size) == expected


class TestAnalysis:
    def test_files_classified_against_thresholds(self, build_dir: Path, tmp_path: Path) -> None:
        analyzer = make_analyzer(build_dir, tmp_path, warning_kb=200, error_kb=500)

        files, failures = analyzer.analyze_bundles()

        assert [(f.path, f.status) for f in files] == [
            ("assets/vendor.js", ThresholdStatus.ERROR),
            ("assets/app.css", ThresholdStatus.WARNING),
            ("main.js", ThresholdStatus.GOOD),
        ]
        assert [f.size_kb for f in files] == [600, 250, 50]
        assert failures == []

    def test_report_status_is_worst_of_files(self, build_dir: Path, tmp_path: Path) -> None:
        analyzer = make_analyzer(build_dir, tmp_path)

        report = generate_report(*analyzer.analyze_bundles())

        assert report.status is ThresholdStatus.ERROR
        assert report.file_count == 3
        assert report.total_size_kb == 900
        assert report.large_files == 1
        assert report.warning_files == 1
        assert report.js_size == "650 KB"
        assert report.css_size == "250 KB"

    def test_small_bundles_are_good(self, tmp_path: Path) -> None:
        root = tmp_path / "build"
        write_file(root / "a.js", 10 * KB)
        write_file(root / "b.css", 20 * KB)

        report = make_analyzer(root, tmp_path).run_analysis()

        assert report.status is ThresholdStatus.GOOD
        assert recommendations(report) == ["Bundle size looks healthy! 🎉"]

    def test_each_file_is_recorded_as_static_sample(
        self, build_dir: Path, tmp_path: Path
    ) -> None:
        analyzer = make_analyzer(build_dir, tmp_path)

        analyzer.analyze_bundles()

        samples = analyzer.aggregator.all()
        assert len(samples) == 3
        assert all(s.duration_ms is None for s in samples)
        assert {s.status for s in samples} == {"good", "warning", "error"}

    def test_empty_build_directory_is_configuration_error(self, tmp_path: Path) -> None:
        root = tmp_path / "build"
        write_file(root / "index.html", 100)

        with pytest.raises(ConfigurationError, match="No bundle files found"):
            make_analyzer(root, tmp_path).run_analysis()

    def test_run_analysis_appends_json_line(self, build_dir: Path, tmp_path: Path) -> None:
        analyzer = make_analyzer(build_dir, tmp_path)

        analyzer.run_analysis()
        analyzer.run_analysis()

        lines = (tmp_path / "logs" / "bundle-analysis.log").read_text().splitlines()
        assert len(lines) == 2
        entry = json.loads(lines[0])
        assert set(entry) == {"timestamp", "totalSizeKB", "fileCount", "status", "files"}
        assert entry["status"] == "error"
        assert entry["files"][0] == {"path": "assets/vendor.js", "sizeKB": 600, "status": "error"}

    def test_dangling_symlink_is_recorded_and_scan_continues(
        self, tmp_path: Path
    ) -> None:
        root = tmp_path / "build"
        write_file(root / "app.js", 10 * KB)
        (root / "vendor.js").symlink_to(tmp_path / "missing.js")
        analyzer = make_analyzer(root, tmp_path)

        report = analyzer.run_analysis()

        assert [f.path for f in report.files] == ["app.js"]
        assert [f.path for f in report.failed_files] == ["vendor.js"]
        assert "Cannot read vendor.js" in report.failed_files[0].detail
        assert report.status is ThresholdStatus.ERROR

        samples = analyzer.aggregator.all()
        assert [(s.label, s.outcome) for s in samples] == [
            ("app.js", Outcome.SUCCESS),
            ("vendor.js", Outcome.FAILURE),
        ]

        line = (tmp_path / "logs" / "bundle-analysis.log").read_text().splitlines()[-1]
        assert json.loads(line)["failedFiles"][0]["path"] == "vendor.js"

    def test_recommendations_for_large_bundles(self, build_dir: Path, tmp_path: Path) -> None:
        report = make_analyzer(build_dir, tmp_path).run_analysis()

        tips = recommendations(report)

        assert "Consider code splitting for large JavaScript files" in tips
        assert "  - Lazy loading components" in tips
        assert "Bundle size looks healthy! 🎉" not in tips

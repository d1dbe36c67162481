"""Tests for the command-line entry points and their exit codes."""

from collections.abc import Iterator
from pathlib import Path

import pytest

from probekit import cli
from probekit.config import get_config
from probekit.domain.errors import ProbeFailure

KB = 1024


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setenv("PROBEKIT_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.delenv("PROBEKIT_BUILD_DIR", raising=False)
    get_config.cache_clear()
    yield
    get_config.cache_clear()


def make_build(root: Path, sizes_kb: dict[str, int]) -> Path:
    for name, size in sizes_kb.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"x" * size * KB)
    return root


class TestBundleCommands:
    def test_analyze_exits_nonzero_on_error_status(self, tmp_path: Path) -> None:
        build = make_build(tmp_path / "dist", {"big.js": 700})
        assert cli.bundle_main(["analyze", str(build)]) == 1

    def test_analyze_passes_with_warnings(self, tmp_path: Path) -> None:
        build = make_build(tmp_path / "dist", {"medium.js": 300})
        assert cli.bundle_main(["analyze", str(build)]) == 0

    def test_check_fails_on_warning(self, tmp_path: Path) -> None:
        build = make_build(tmp_path / "dist", {"medium.js": 300})
        assert cli.bundle_main(["check", str(build)]) == 1

    def test_check_passes_when_good(self, tmp_path: Path) -> None:
        build = make_build(tmp_path / "dist", {"small.js": 10, "small.css": 5})
        assert cli.bundle_main(["check", str(build)]) == 0

    def test_unreadable_bundle_exits_nonzero(self, tmp_path: Path) -> None:
        build = make_build(tmp_path / "dist", {"app.js": 10})
        (build / "vendor.js").symlink_to(tmp_path / "gone.js")

        assert cli.bundle_main(["analyze", str(build)]) == 1

    def test_missing_directory_exits_nonzero(self, tmp_path: Path) -> None:
        assert cli.bundle_main(["analyze", str(tmp_path / "missing")]) == 1

    def test_log_written_under_configured_directory(self, tmp_path: Path) -> None:
        build = make_build(tmp_path / "dist", {"small.js": 10})
        cli.bundle_main(["analyze", str(build)])
        assert (tmp_path / "logs" / "bundle-analysis.log").exists()


class TestHealthCommands:
    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli.health_main([]) == 0
        assert "probekit-health" in capsys.readouterr().out

    def test_single_reports_failure(self, monkeypatch: pytest.MonkeyPatch) -> None:
        async def refuse(self: object, check: object) -> None:
            raise ProbeFailure("connection refused")

        monkeypatch.setattr(cli.ApiHealthChecker, "request", refuse)

        assert cli.health_main(["single", "http://testserver", "/api/health"]) == 1

    def test_check_exit_code_follows_status(self, monkeypatch: pytest.MonkeyPatch) -> None:
        async def always_ok(self: object, check: object) -> object:
            class Response:
                status_code = 200

            return Response()

        monkeypatch.setattr(cli.ApiHealthChecker, "request", always_ok)

        assert cli.health_main(["check", "http://testserver"]) == 0


def test_dispatcher_routes_to_tool(tmp_path: Path) -> None:
    build = make_build(tmp_path / "dist", {"small.js": 10})
    assert cli.main(["bundle", "check", str(build)]) == 0
    assert cli.main(["unknown"]) == 2

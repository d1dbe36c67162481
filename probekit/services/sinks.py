"""
Append-only sinks for samples, summaries and reports.

Sinks never reorder or rewrite earlier records. Write errors surface as
SinkWriteFailure so the aggregator can log and drop them.
"""

import json
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel
from rich.console import Console

from probekit.domain.errors import SinkWriteFailure
from probekit.domain.models import Sample, Summary

Record = Sample | Summary | BaseModel | Mapping[str, Any]


class Sink(Protocol):
    """Anything that accepts records for persistence or display."""

    def emit(self, record: Record) -> None: ...


def iso_timestamp(value: datetime) -> str:
    """ISO-8601 with millisecond precision and a Z suffix for UTC."""
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _append_line(path: Path, line: str) -> None:
    try:
        with path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")
    except (OSError, ValueError) as e:
        raise SinkWriteFailure(f"Failed to append to {path}: {e}") from e


class TextLogSink:
    """
    Line-delimited text log.

    Format: ``<timestamp> | <label> | <duration>ms | <SUCCESS|FAILED|ERROR> | <detail>``
    """

    def __init__(self, path: Path | str, failure_word: str = "FAILED") -> None:
        self.path = Path(path)
        self.failure_word = failure_word
        _ensure_parent(self.path)

    def format_sample(self, sample: Sample) -> str:
        label = f"{sample.method} {sample.label}" if sample.method else sample.label
        outcome = "SUCCESS" if sample.succeeded else self.failure_word
        duration = sample.duration_ms if sample.duration_ms is not None else 0
        return " | ".join(
            [iso_timestamp(sample.timestamp), label, f"{duration}ms", outcome, sample.detail or ""]
        )

    def format_summary(self, summary: Summary) -> str:
        stamp = summary.window_end or datetime.now().astimezone()
        avg = round(summary.avg_duration_ms) if summary.avg_duration_ms is not None else 0
        detail = f"total={summary.total} failed={summary.failure_count}"
        return " | ".join(
            [iso_timestamp(stamp), "summary", f"{avg}ms", summary.overall_status.value, detail]
        )

    def emit(self, record: Record) -> None:
        if isinstance(record, Sample):
            line = self.format_sample(record)
        elif isinstance(record, Summary):
            line = self.format_summary(record)
        else:
            raise TypeError(f"TextLogSink cannot format {type(record).__name__}")
        _append_line(self.path, line)


class JsonLinesSink:
    """One JSON object per line."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        _ensure_parent(self.path)

    def emit(self, record: Record) -> None:
        if isinstance(record, BaseModel):
            payload: Any = record.model_dump(mode="json")
        else:
            payload = dict(record)
        _append_line(self.path, json.dumps(payload, default=str))


class ConsoleSink:
    """Human-readable presentation on a rich console."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def emit(self, record: Record) -> None:
        if isinstance(record, Sample):
            self.console.print(self.format_sample(record))
        elif isinstance(record, Summary):
            self.console.print(self.format_summary(record))
        elif isinstance(record, BaseModel):
            self.console.print_json(data=record.model_dump(mode="json"))
        else:
            self.console.print_json(data=dict(record))

    @staticmethod
    def format_sample(sample: Sample) -> str:
        if sample.succeeded:
            return f"✅ {sample.label} - {sample.duration_ms or 0}ms"
        return f"❌ {sample.label} - {sample.detail}"

    @staticmethod
    def format_summary(summary: Summary) -> str:
        if summary.no_data:
            return "📭 No recent samples"
        avg = round(summary.avg_duration_ms) if summary.avg_duration_ms is not None else 0
        return (
            f"📈 Summary: {summary.success_count}/{summary.total} healthy, "
            f"avg {avg}ms, status: {summary.overall_status.value}"
        )

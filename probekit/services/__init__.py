"""
Core services shared by every tool.

This package contains the sampler, the threshold classifier, the windowed
aggregator, the log sinks and the periodic monitor.
"""

from .aggregator import WindowedAggregator, summarize_samples
from .classifier import classify, health_status, worst_status
from .monitor import PeriodicMonitor
from .sampler import Result, Sampler, configure_logging
from .sinks import ConsoleSink, JsonLinesSink, Sink, TextLogSink

__all__ = [
    "ConsoleSink",
    "JsonLinesSink",
    "PeriodicMonitor",
    "Result",
    "Sampler",
    "Sink",
    "TextLogSink",
    "WindowedAggregator",
    "classify",
    "configure_logging",
    "health_status",
    "summarize_samples",
    "worst_status",
]

"""
Threshold classification.

Pure functions mapping measurements to discrete statuses. Nothing here
touches I/O or the aggregator.
"""

from collections.abc import Iterable

from probekit.domain.models import OverallStatus, ThresholdPolicy, ThresholdStatus


def classify(value: float, policy: ThresholdPolicy) -> ThresholdStatus:
    """
    Map a value to good / warning / error.

    A value at or below warning_cutoff is good, at or below error_cutoff is a
    warning, anything above is an error.
    """
    if value > policy.error_cutoff:
        return ThresholdStatus.ERROR
    if value > policy.warning_cutoff:
        return ThresholdStatus.WARNING
    return ThresholdStatus.GOOD


def worst_status(statuses: Iterable[ThresholdStatus]) -> ThresholdStatus:
    """Most severe status wins; an empty collection is good."""
    return max(statuses, key=lambda status: status.rank, default=ThresholdStatus.GOOD)


def health_status(total: int, failure_count: int) -> OverallStatus:
    """
    HEALTHY with no failures, UNHEALTHY once at least half failed, else DEGRADED.

    Exactly half counts as UNHEALTHY.
    """
    if total == 0:
        return OverallStatus.NO_DATA
    if failure_count == 0:
        return OverallStatus.HEALTHY
    if failure_count < total / 2:
        return OverallStatus.DEGRADED
    return OverallStatus.UNHEALTHY

"""Operational probing utilities.

This package contains the shared sampling and aggregation core plus the
three command-line tools built on it: an HTTP endpoint health checker, a
bundle-size analyzer and an operation-timing monitor.
"""

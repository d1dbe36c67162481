"""
Tool-specific adapters built on the sampling core.

Each adapter supplies the probes (HTTP requests, file stats, timed
operations) and the presentation for one command-line tool.
"""

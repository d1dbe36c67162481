"""Error taxonomy for probes, configuration and log sinks."""


class ProbekitError(Exception):
    """Base class for all errors raised by probekit."""


class ProbeFailure(ProbekitError):
    """
    The probe itself errored: unreachable host, unexpected status, missing file.

    measured_value carries whatever was observed before the probe gave up,
    e.g. the HTTP status code that did not match.
    """

    def __init__(self, message: str, measured_value: float | None = None) -> None:
        super().__init__(message)
        self.measured_value = measured_value


class ConfigurationError(ProbekitError):
    """The run cannot start, e.g. no build directory or no bundle files."""


class SinkWriteFailure(ProbekitError):
    """Appending a record to a log sink failed. Never fatal to the aggregator."""

"""Errors raised while resolving inputs and exporting the job span.

Every error here is fatal to the invocation; the CLI reports it and exits non-zero.
"""


class JobTelemetryError(Exception):
    """Base class for all export-job-telemetry failures."""

    pass


class InvalidTraceContext(JobTelemetryError, ValueError):
    """Raised when the traceparent input is malformed."""

    pass


class InvalidTimestamp(JobTelemetryError, ValueError):
    """Raised when started-at or created-at is not an RFC 3339 timestamp."""

    pass


class MissingInputError(JobTelemetryError):
    """Raised when a required input is empty."""

    pass


class ExporterInitError(JobTelemetryError):
    """Raised when the span exporter or tracer provider cannot be built."""

    pass


class FlushError(JobTelemetryError):
    """Raised when pending spans cannot be flushed at shutdown."""

    pass

"""
Resource and tracer provider wiring for the job span.

The pipeline owns its TracerProvider; it is passed explicitly to the emitter
and never registered as the global provider. Use it as a context manager so
pending spans are flushed on every exit path:

    with TelemetryPipeline(exporter, resource) as pipeline:
        JobSpanEmitter(pipeline).emit(job_input)
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from types import TracebackType

from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SimpleSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from opentelemetry.trace import Tracer

from . import __version__
from .config import SCHEMA_URL, SERVICE_NAME_KEY, TRACER_NAME
from .errors import ExporterInitError, FlushError

logger = logging.getLogger(__name__)


def build_resource_attributes(service_name: str, attrs: Mapping[str, str]) -> dict[str, str]:
    """Copy attrs and set service.name; the explicit service name always wins."""
    resource_attrs = dict(attrs)
    resource_attrs[SERVICE_NAME_KEY] = service_name
    return resource_attrs


def create_resource(service_name: str, attrs: Mapping[str, str]) -> Resource:
    """OTEL resource for the job span, described against the pinned semantic conventions."""
    return Resource.create(build_resource_attributes(service_name, attrs), schema_url=SCHEMA_URL)


class _ResultTrackingSpanExporter(SpanExporter):
    """Delegates to the real exporter and counts exports that did not succeed.

    Span processors drop the export result, so the pipeline reads it from here.
    """

    def __init__(self, exporter: SpanExporter):
        self._exporter = exporter
        self.failed_exports = 0

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        try:
            result = self._exporter.export(spans)
        except Exception:
            self.failed_exports += 1
            raise
        if result is not SpanExportResult.SUCCESS:
            self.failed_exports += 1
            logger.debug("Export of %d span(s) returned %s", len(spans), result.name)
        return result

    def shutdown(self) -> None:
        self._exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._exporter.force_flush(timeout_millis)


class TelemetryPipeline:
    """A tracer provider plus its span processor, flushed and shut down exactly once."""

    def __init__(
        self,
        exporter: SpanExporter,
        resource: Resource,
        flush_timeout_ms: int = 30000,
        batch: bool = True,
        extra_processors: Iterable[SpanProcessor] = (),
    ):
        """
        Build the provider.

        Args:
            exporter: Where finished spans go
            resource: Resource bound to every span from this provider
            flush_timeout_ms: Upper bound for the flush at shutdown
            batch: BatchSpanProcessor when True, SimpleSpanProcessor otherwise
            extra_processors: Processors added before the exporting one (e.g. SpanPrinter)

        Raises:
            ExporterInitError: the provider or processor could not be built
        """
        self.flush_timeout_ms = flush_timeout_ms
        self._shut_down = False
        self._exporter = _ResultTrackingSpanExporter(exporter)
        try:
            self.provider = TracerProvider(resource=resource)
            for processor in extra_processors:
                self.provider.add_span_processor(processor)
            self.provider.add_span_processor(
                BatchSpanProcessor(self._exporter) if batch else SimpleSpanProcessor(self._exporter)
            )
        except Exception as e:
            raise ExporterInitError(f"failed to initialize tracer provider: {e}") from e

    @property
    def tracer(self) -> Tracer:
        return self.provider.get_tracer(TRACER_NAME, __version__)

    @property
    def is_shut_down(self) -> bool:
        return self._shut_down

    def shutdown(self) -> None:
        """Flush pending spans within the timeout, then shut the provider down.

        Calling it again is a no-op.

        Raises:
            FlushError: the flush timed out, an export failed or shutdown failed
        """
        if self._shut_down:
            return
        self._shut_down = True
        try:
            flushed = self.provider.force_flush(self.flush_timeout_ms)
            self.provider.shutdown()
        except Exception as e:
            raise FlushError(f"failed to shut down tracer provider: {e}") from e
        if not flushed:
            raise FlushError(
                f"failed to shut down tracer provider: flush timed out after {self.flush_timeout_ms}ms"
            )
        if self._exporter.failed_exports:
            raise FlushError(
                f"failed to export spans: {self._exporter.failed_exports} export(s) did not succeed"
            )
        logger.debug("Tracer provider shut down")

    def __enter__(self) -> "TelemetryPipeline":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.shutdown()
            return
        # Already failing: report the flush problem but let the original error propagate.
        try:
            self.shutdown()
        except FlushError as flush_error:
            logger.error("%s", flush_error)

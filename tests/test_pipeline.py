"""Tests for resource building and tracer provider shutdown."""

import pytest
from opentelemetry.sdk.trace.export import SpanExportResult
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from job_telemetry.config import SCHEMA_URL
from job_telemetry.errors import FlushError
from job_telemetry.pipeline import (
    TelemetryPipeline,
    build_resource_attributes,
    create_resource,
)


def test_service_name_always_wins() -> None:
    """An explicit service name overwrites service.name from the attribute map."""
    attrs = {"service.name": "other", "x": "1"}
    assert build_resource_attributes("svc", attrs) == {"x": "1", "service.name": "svc"}
    assert attrs == {"service.name": "other", "x": "1"}


def test_create_resource() -> None:
    """The resource carries user attributes, the service name and the schema URL."""
    resource = create_resource("svc", {"deployment.environment": "ci"})
    assert resource.attributes["service.name"] == "svc"
    assert resource.attributes["deployment.environment"] == "ci"
    assert resource.schema_url == SCHEMA_URL


def test_create_resource_overrides_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Explicit inputs win over OTEL_SERVICE_NAME / OTEL_RESOURCE_ATTRIBUTES."""
    monkeypatch.setenv("OTEL_SERVICE_NAME", "from-env")
    monkeypatch.setenv("OTEL_RESOURCE_ATTRIBUTES", "team=env,region=eu")
    resource = create_resource("svc", {"team": "input"})
    assert resource.attributes["service.name"] == "svc"
    assert resource.attributes["team"] == "input"


def test_shutdown_is_idempotent(pipeline: TelemetryPipeline) -> None:
    """Shutting down twice is a no-op the second time."""
    pipeline.shutdown()
    pipeline.shutdown()
    assert pipeline.is_shut_down


def test_flush_timeout_raises_flush_error(
    pipeline: TelemetryPipeline, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A failed force_flush is reported as FlushError."""
    monkeypatch.setattr(pipeline.provider, "force_flush", lambda timeout_millis=30000: False)
    with pytest.raises(FlushError, match="timed out"):
        pipeline.shutdown()


def test_context_manager_flushes_batched_spans() -> None:
    """Spans queued in the batch processor are exported when the block exits."""
    exporter = InMemorySpanExporter()
    with TelemetryPipeline(exporter, create_resource("svc", {})) as pipeline:
        pipeline.tracer.start_span("job").end()
    assert pipeline.is_shut_down
    assert [s.name for s in exporter.get_finished_spans()] == ["job"]


def test_context_manager_shuts_down_on_error() -> None:
    """The provider is shut down on early aborts and the original error propagates."""
    exporter = InMemorySpanExporter()
    with pytest.raises(RuntimeError, match="boom"):
        with TelemetryPipeline(exporter, create_resource("svc", {})) as pipeline:
            raise RuntimeError("boom")
    assert pipeline.is_shut_down


def test_flush_error_does_not_mask_original_error(monkeypatch: pytest.MonkeyPatch) -> None:
    """During an abort, a flush failure is logged and the abort error wins."""
    pipeline = TelemetryPipeline(InMemorySpanExporter(), create_resource("svc", {}))
    monkeypatch.setattr(pipeline.provider, "force_flush", lambda timeout_millis=30000: False)
    with pytest.raises(RuntimeError, match="boom"):
        with pipeline:
            raise RuntimeError("boom")
    assert pipeline.is_shut_down


@pytest.mark.parametrize("batch", [True, False])
def test_failed_export_raises_flush_error(batch: bool, monkeypatch: pytest.MonkeyPatch) -> None:
    """Span processors drop the export result; shutdown still reports the failure."""
    exporter = InMemorySpanExporter()
    monkeypatch.setattr(exporter, "export", lambda spans: SpanExportResult.FAILURE)
    pipeline = TelemetryPipeline(exporter, create_resource("svc", {}), batch=batch)
    pipeline.tracer.start_span("job").end()
    with pytest.raises(FlushError, match="failed to export spans"):
        pipeline.shutdown()
    assert pipeline.is_shut_down


def test_successful_export_reaches_exporter(
    pipeline: TelemetryPipeline, span_exporter: InMemorySpanExporter
) -> None:
    pipeline.tracer.start_span("job").end()
    pipeline.shutdown()
    assert len(span_exporter.get_finished_spans()) == 1

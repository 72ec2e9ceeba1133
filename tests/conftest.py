"""Shared fixtures: clean action environment, in-memory pipeline, sample inputs."""

import os
from collections.abc import Iterator
from datetime import datetime, timezone

import pytest
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from job_telemetry.pipeline import TelemetryPipeline, create_resource

TRACEPARENT = "00-4bf92f3577b34da6a3ce929d0e0e4736-00f067aa0ba902b7-01"
TRACE_ID_HEX = "4bf92f3577b34da6a3ce929d0e0e4736"
PARENT_SPAN_ID_HEX = "00f067aa0ba902b7"


@pytest.fixture(autouse=True)
def _clean_action_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop runner variables from the host so each test controls its own inputs."""
    for name in list(os.environ):
        if name.startswith("INPUT_"):
            monkeypatch.delenv(name, raising=False)
    for name in (
        "RUNNER_DEBUG",
        "GITHUB_ACTION_PATH",
        "JOB_TELEMETRY_ROOT",
        "OTEL_EXPORTER_OTLP_PROTOCOL",
        "JOB_TELEMETRY_FLUSH_TIMEOUT_MS",
        "OTEL_RESOURCE_ATTRIBUTES",
        "OTEL_SERVICE_NAME",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def raw_inputs() -> dict[str, str]:
    """A complete, valid set of raw inputs."""
    return {
        "traceparent": TRACEPARENT,
        "otel-service-name": "ci-pipeline",
        "otel-exporter-otlp-endpoint": "localhost:4317",
        "otel-exporter-otlp-headers": "authorization=Bearer abc==,x-team=infra",
        "otel-resource-attributes": "deployment.environment=ci,vcs.repository=acme/app",
        "started-at": "2024-01-01T00:00:00Z",
        "created-at": "2023-12-31T23:59:30Z",
        "job-status": "success",
        "job-name": "build",
    }


@pytest.fixture
def frozen_now() -> datetime:
    return datetime(2024, 1, 1, 0, 0, 5, tzinfo=timezone.utc)


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def pipeline(span_exporter: InMemorySpanExporter) -> Iterator[TelemetryPipeline]:
    """Synchronous pipeline exporting to memory; shut down after the test if still open."""
    p = TelemetryPipeline(
        span_exporter,
        create_resource("ci-pipeline", {"deployment.environment": "ci"}),
        batch=False,
    )
    yield p
    p.shutdown()

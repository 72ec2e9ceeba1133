"""
OTLP trace exporter factory.

Supports both gRPC (the default, as the action has always used) and HTTP.
"""

from typing import Any

from opentelemetry.sdk.trace.export import SpanExporter

from ..errors import ExporterInitError


def _traces_url(endpoint: str) -> str:
    """HTTP endpoint for the traces signal; bare host:port defaults to http://."""
    url = endpoint.rstrip("/")
    if "://" not in url:
        url = f"http://{url}"
    if not url.endswith("/v1/traces"):
        url = f"{url}/v1/traces"
    return url


def create_otlp_trace_exporter(
    endpoint: str,
    protocol: str = "grpc",
    headers: dict[str, str] | None = None,
    **kwargs: Any,
) -> SpanExporter:
    """
    Create an OTLP trace exporter.

    Args:
        endpoint: host:port or URL of the collector. For gRPC an http:// scheme
            selects an insecure channel and https:// a TLS one.
        protocol: "grpc" or "http"
        headers: Optional headers sent with every export request; keys are
            lowercased for gRPC metadata
        **kwargs: Additional exporter configuration

    Returns:
        Configured SpanExporter

    Raises:
        ExporterInitError: unknown protocol, empty endpoint, or the exporter could not be built
    """
    if not endpoint:
        raise ExporterInitError("failed to initialize exporter: endpoint is empty")
    try:
        if protocol == "grpc":
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

            return OTLPSpanExporter(
                endpoint=endpoint,
                # gRPC rejects metadata keys that are not lowercase.
                headers={k.lower(): v for k, v in headers.items()} if headers else None,
                **kwargs,
            )
        if protocol == "http":
            from opentelemetry.exporter.otlp.proto.http.trace_exporter import (  # type: ignore[assignment]
                OTLPSpanExporter,
            )

            return OTLPSpanExporter(
                endpoint=_traces_url(endpoint),
                headers=headers or None,
                **kwargs,
            )
    except Exception as e:
        raise ExporterInitError(f"failed to initialize exporter: {e}") from e
    raise ExporterInitError(f"failed to initialize exporter: unknown protocol {protocol!r}")

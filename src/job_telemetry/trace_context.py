"""
Parse W3C traceparent headers and rebuild the remote parent span context.

traceparent format: {version}-{trace-id}-{parent-id}-{trace-flags}, e.g.
  00-4bf92f3577b34da6a3ce929d0e0e4736-00f067aa0ba902b7-01
"""

import re
from dataclasses import dataclass

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.trace import NonRecordingSpan, SpanContext, TraceFlags

from .errors import InvalidTraceContext

_HEX = re.compile(r"[0-9a-fA-F]+")
_TRACE_ID_BYTES = 16
_SPAN_ID_BYTES = 8


@dataclass(frozen=True)
class TraceContext:
    """Identifiers recovered from a traceparent header."""

    version: int
    trace_id: int
    parent_span_id: int
    trace_flags: int

    @property
    def trace_id_hex(self) -> str:
        return format(self.trace_id, "032x")

    @property
    def parent_span_id_hex(self) -> str:
        return format(self.parent_span_id, "016x")

    @property
    def sampled(self) -> bool:
        """Sampled bit as sent by the caller (the rebuilt context is always sampled)."""
        return bool(self.trace_flags & TraceFlags.SAMPLED)

    def to_span_context(self) -> SpanContext:
        """Remote, sampled span context for the upstream span."""
        return SpanContext(
            trace_id=self.trace_id,
            span_id=self.parent_span_id,
            is_remote=True,
            trace_flags=TraceFlags(TraceFlags.SAMPLED),
        )

    def to_parent_context(self) -> Context:
        """OpenTelemetry context with the upstream span set as current, for use as parent."""
        return trace.set_span_in_context(NonRecordingSpan(self.to_span_context()))


def _decode_segment(segment: str, label: str, expected_bytes: int | None = None) -> int:
    """Decode one hex segment; enforce its byte length when given."""
    if not segment or not _HEX.fullmatch(segment) or len(segment) % 2:
        raise InvalidTraceContext(f"invalid traceparent {label}: {segment!r} is not hex")
    if expected_bytes is not None and len(segment) != expected_bytes * 2:
        raise InvalidTraceContext(
            f"invalid traceparent {label}: expected {expected_bytes} bytes, got {len(segment) // 2}"
        )
    return int(segment, 16)


def parse_traceparent(value: str) -> TraceContext:
    """
    Parse a traceparent header into a TraceContext.

    Raises:
        InvalidTraceContext: wrong segment count, non-hex or odd-length segments,
            wrong id lengths, or all-zero trace/parent ids.
    """
    if not value:
        raise InvalidTraceContext("traceparent is empty")
    parts = value.split("-")
    if len(parts) != 4:
        raise InvalidTraceContext(
            f"invalid traceparent: expected 4 segments, got {len(parts)}: {value!r}"
        )
    version_hex, trace_id_hex, span_id_hex, flags_hex = parts
    version = _decode_segment(version_hex, "version")
    trace_id = _decode_segment(trace_id_hex, "trace-id", _TRACE_ID_BYTES)
    span_id = _decode_segment(span_id_hex, "parent-id", _SPAN_ID_BYTES)
    flags = _decode_segment(flags_hex, "trace-flags")
    if trace_id == 0:
        raise InvalidTraceContext("invalid traceparent trace-id: all zeros")
    if span_id == 0:
        raise InvalidTraceContext("invalid traceparent parent-id: all zeros")
    return TraceContext(
        version=version,
        trace_id=trace_id,
        parent_span_id=span_id,
        trace_flags=flags,
    )

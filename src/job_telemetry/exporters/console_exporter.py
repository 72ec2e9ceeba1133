"""
Print finished spans to stdout for debugging a run.
"""

from typing import Any

from opentelemetry.sdk.trace import ReadableSpan, SpanProcessor


class SpanPrinter(SpanProcessor):
    """SpanProcessor that prints the full span (ids, status, attributes) when it ends."""

    def on_start(self, span: Any, parent_context: Any = None) -> None:
        pass

    def on_end(self, span: ReadableSpan) -> None:
        trace_id = format(span.context.trace_id, "032x")
        span_id = format(span.context.span_id, "016x")
        parent_id = format(span.parent.span_id, "016x") if span.parent else ""
        status = span.status.status_code.name if span.status else "UNSET"
        print(
            f"   span name={span.name} trace_id={trace_id} span_id={span_id} parent_id={parent_id} status={status}"
        )
        if span.attributes:
            for k, v in sorted(span.attributes.items()):
                print(f"      {k}={v}")

    def shutdown(self) -> None:
        pass

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return True

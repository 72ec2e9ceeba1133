"""
File-based span exporter for offline inspection.

Writes each finished span as one JSON line, so a dry run of the action can be
checked without a collector.
"""

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult


def span_to_dict(span: ReadableSpan) -> dict[str, Any]:
    """Flatten a finished span into JSON-serializable fields."""
    return {
        "name": span.name,
        "trace_id": format(span.context.trace_id, "032x"),
        "span_id": format(span.context.span_id, "016x"),
        "parent_span_id": format(span.parent.span_id, "016x") if span.parent else None,
        "parent_is_remote": span.parent.is_remote if span.parent else None,
        "start_time": span.start_time,
        "end_time": span.end_time,
        "status": {
            "status_code": span.status.status_code.name,
            "description": span.status.description,
        },
        "attributes": dict(span.attributes) if span.attributes else {},
        "kind": span.kind.name if span.kind else "INTERNAL",
        "resource": dict(span.resource.attributes) if span.resource else {},
        "schema_url": span.resource.schema_url if span.resource else "",
    }


class FileSpanExporter(SpanExporter):
    """Export spans to a JSON-lines file."""

    def __init__(self, output_path: str | Path, append: bool = True):
        self.output_path = Path(output_path)
        self.append = append
        self.output_path.parent.mkdir(parents=True, exist_ok=True)

        if not append and self.output_path.exists():
            self.output_path.unlink()

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        """Append spans to the file."""
        try:
            lines = [json.dumps(span_to_dict(span), default=str) for span in spans]
            with open(self.output_path, "a", encoding="utf-8") as f:
                for line in lines:
                    f.write(line + "\n")
        except (OSError, TypeError, ValueError):
            return SpanExportResult.FAILURE
        return SpanExportResult.SUCCESS

    def shutdown(self) -> None:
        pass

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return True

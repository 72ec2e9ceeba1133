"""Span exporters and processors for the job span."""

from .console_exporter import SpanPrinter
from .file_exporter import FileSpanExporter
from .otlp_exporter import create_otlp_trace_exporter

__all__ = [
    "create_otlp_trace_exporter",
    "FileSpanExporter",
    "SpanPrinter",
]

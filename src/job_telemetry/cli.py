"""
Command-line interface for export-job-telemetry.

Inputs are read from INPUT_* environment variables as set by the GitHub
Actions runner; any input can be overridden with the matching --<name> flag.

Examples:
  # Inside a workflow step (inputs come from INPUT_* variables)
  export-job-telemetry

  # Locally, writing the span to a file instead of a collector
  export-job-telemetry --traceparent 00-4bf92f3577b34da6a3ce929d0e0e4736-00f067aa0ba902b7-01 \\
      --otel-service-name ci --otel-exporter-otlp-endpoint localhost:4317 \\
      --started-at 2024-01-01T00:00:00Z --job-status success --output-file span.jsonl
"""

import argparse
import logging
import sys

from . import __version__
from .actions import configure_logging
from .config import (
    ACTION_NAME,
    PROTOCOLS,
    get_build_info,
    get_default_protocol,
    get_flush_timeout_ms,
    load_input_definitions,
)
from .emitter import JobSpanEmitter
from .errors import ExporterInitError, JobTelemetryError
from .exporters import FileSpanExporter, SpanPrinter, create_otlp_trace_exporter
from .inputs import JobTelemetryInput, collect_raw_inputs, read_job_input
from .pipeline import TelemetryPipeline, create_resource

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    """argparse type for timeouts: a whole number greater than zero."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"{value!r} must be greater than 0")
    return number


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser; one flag per action input."""
    parser = argparse.ArgumentParser(
        prog=ACTION_NAME,
        description="Export a CI job run as one OpenTelemetry span continuing an existing trace",
    )
    inputs_group = parser.add_argument_group(
        "action inputs", "Override the INPUT_* environment variables set by the runner"
    )
    for definition in load_input_definitions().values():
        required = " (required)" if definition.required else ""
        inputs_group.add_argument(
            f"--{definition.name}",
            dest=definition.name.replace("-", "_"),
            type=str,
            default=None,
            help=(definition.description or definition.name) + required,
        )

    parser.add_argument(
        "--protocol",
        choices=PROTOCOLS,
        default=None,
        help="OTLP protocol (default: OTEL_EXPORTER_OTLP_PROTOCOL or grpc)",
    )
    parser.add_argument(
        "--flush-timeout",
        type=_positive_int,
        default=None,
        metavar="MS",
        help="Max time to wait for the span to be flushed (default: JOB_TELEMETRY_FLUSH_TIMEOUT_MS or 30000)",
    )
    parser.add_argument(
        "--output-file",
        type=str,
        default=None,
        help="Write the span as JSON lines to this file instead of exporting over OTLP",
    )
    parser.add_argument(
        "--show-span",
        action="store_true",
        help="Print the finished span (ids, status, attributes) to stdout",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging (also enabled by RUNNER_DEBUG=1)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _input_overrides(args: argparse.Namespace) -> dict[str, str | None]:
    return {
        name: getattr(args, name.replace("-", "_"), None)
        for name in load_input_definitions()
    }


def build_pipeline(job_input: JobTelemetryInput, args: argparse.Namespace) -> TelemetryPipeline:
    """Exporter + resource + provider for this run."""
    flush_timeout_ms = args.flush_timeout or get_flush_timeout_ms()
    if args.output_file:
        exporter = FileSpanExporter(args.output_file)
        logger.info("Output: %s", args.output_file)
    else:
        protocol = args.protocol or get_default_protocol()
        exporter = create_otlp_trace_exporter(
            job_input.exporter_endpoint,
            protocol=protocol,
            headers=job_input.exporter_headers,
        )
        logger.info("Output: OTLP %s %s", protocol, job_input.exporter_endpoint)
    try:
        return TelemetryPipeline(
            exporter,
            create_resource(job_input.service_name, job_input.resource_attributes),
            flush_timeout_ms=flush_timeout_ms,
            extra_processors=[SpanPrinter()] if args.show_span else (),
        )
    except ExporterInitError:
        exporter.shutdown()
        raise


def run(args: argparse.Namespace) -> int:
    """Resolve inputs, emit the job span and flush. Returns the process exit code."""
    build_date, commit_id = get_build_info()
    logger.info(
        "Starting %s version: %s (%s) commit: %s", ACTION_NAME, __version__, build_date, commit_id
    )
    try:
        job_input = read_job_input(collect_raw_inputs(_input_overrides(args)))
        with build_pipeline(job_input, args) as pipeline:
            emitter = JobSpanEmitter(pipeline)
            emitted = emitter.emit(job_input)
            emitter.flush()
    except JobTelemetryError as e:
        logger.error("%s", e)
        return 1
    logger.info(
        "Exported span %s (trace %s) duration=%dms status=%s",
        emitted.span_id,
        emitted.trace_id,
        emitted.duration_ms,
        emitted.status_code.name,
    )
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose)
    sys.exit(run(args))


if __name__ == "__main__":
    main()

"""
Emit the single span describing a CI job run.

The span is built after the job has finished, so both ends are explicit:
  start = started-at input
  end   = wall-clock now, sampled once and shared with the duration attribute

States advance strictly in order and an emitter produces one span only:
  UNINITIALIZED -> CONTEXT_RESOLVED -> SPAN_OPEN -> ATTRIBUTES_ATTACHED
  -> STATUS_SET -> SPAN_CLOSED -> FLUSHED
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from opentelemetry.trace import Span, Status, StatusCode

from .config import (
    JOB_CONCLUSION_ATTR,
    JOB_DURATION_ATTR,
    JOB_NAME_ATTR,
    JOB_START_LATENCY_ATTR,
    SPAN_NAME,
)
from .inputs import JobStatus, JobTelemetryInput
from .pipeline import TelemetryPipeline
from .timestamps import duration_ms, to_unix_nanos, utc_now

logger = logging.getLogger(__name__)


class EmitterState(Enum):
    """Lifecycle of a JobSpanEmitter."""

    UNINITIALIZED = 0
    CONTEXT_RESOLVED = 1
    SPAN_OPEN = 2
    ATTRIBUTES_ATTACHED = 3
    STATUS_SET = 4
    SPAN_CLOSED = 5
    FLUSHED = 6


@dataclass(frozen=True)
class EmittedSpan:
    """What was sent: ids, timing and status of the job span."""

    trace_id: str
    span_id: str
    parent_span_id: str
    start_time_ns: int
    end_time_ns: int
    duration_ms: int
    start_latency_ms: int | None
    status_code: StatusCode
    status_message: str


def job_attributes(
    job_input: JobTelemetryInput,
    now: datetime,
) -> dict[str, Any]:
    """Span attributes for the job, in attach order (later keys overwrite earlier ones)."""
    attrs: dict[str, Any] = {JOB_CONCLUSION_ATTR: job_input.job_status.raw}
    if job_input.created_at is not None:
        attrs[JOB_START_LATENCY_ATTR] = duration_ms(job_input.started_at, job_input.created_at)
    if job_input.job_name:
        attrs[JOB_NAME_ATTR] = job_input.job_name
    attrs[JOB_DURATION_ATTR] = duration_ms(now, job_input.started_at)
    # Resource attributes are repeated on the span for viewers that only show span attributes.
    attrs.update(job_input.resource_attributes)
    return attrs


def span_status(job_status: JobStatus) -> Status:
    """Span status for the job outcome.

    The API keeps a description only on ERROR statuses, so OK/UNSET carry none.
    """
    if job_status.status_code is StatusCode.ERROR:
        return Status(StatusCode.ERROR, job_status.status_message)
    return Status(job_status.status_code)


class JobSpanEmitter:
    """Build, populate and close the job span on a given pipeline."""

    def __init__(
        self,
        pipeline: TelemetryPipeline,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.pipeline = pipeline
        self.clock = clock
        self.state = EmitterState.UNINITIALIZED

    def _advance(self, expected: EmitterState, target: EmitterState) -> None:
        if self.state is not expected:
            raise RuntimeError(
                f"JobSpanEmitter cannot move to {target.name} from {self.state.name}"
            )
        self.state = target
        logger.debug("Emitter state: %s", target.name)

    def emit(self, job_input: JobTelemetryInput) -> EmittedSpan:
        """Emit the job span and close it. Call flush() (or exit the pipeline) afterwards.

        Raises:
            RuntimeError: the emitter already produced its span
        """
        self._advance(EmitterState.UNINITIALIZED, EmitterState.CONTEXT_RESOLVED)
        trace_context = job_input.trace_context
        parent = trace_context.to_parent_context()
        logger.info("TraceID: %s", trace_context.trace_id_hex)
        logger.info("SpanID: %s", trace_context.parent_span_id_hex)

        self._advance(EmitterState.CONTEXT_RESOLVED, EmitterState.SPAN_OPEN)
        start_ns = to_unix_nanos(job_input.started_at)
        span: Span = self.pipeline.tracer.start_span(
            SPAN_NAME,
            context=parent,
            start_time=start_ns,
        )
        now = self.clock()
        end_ns = to_unix_nanos(now)

        self._advance(EmitterState.SPAN_OPEN, EmitterState.ATTRIBUTES_ATTACHED)
        attrs = job_attributes(job_input, now)
        span.set_attributes(attrs)

        self._advance(EmitterState.ATTRIBUTES_ATTACHED, EmitterState.STATUS_SET)
        job_status = job_input.job_status
        span.set_status(span_status(job_status))
        logger.info(
            "Job status %r -> %s (%s)",
            job_status.raw,
            job_status.status_code.name,
            job_status.status_message,
        )

        self._advance(EmitterState.STATUS_SET, EmitterState.SPAN_CLOSED)
        span.end(end_time=end_ns)

        span_context = span.get_span_context()
        return EmittedSpan(
            trace_id=format(span_context.trace_id, "032x"),
            span_id=format(span_context.span_id, "016x"),
            parent_span_id=trace_context.parent_span_id_hex,
            start_time_ns=start_ns,
            end_time_ns=end_ns,
            duration_ms=duration_ms(now, job_input.started_at),
            start_latency_ms=(
                duration_ms(job_input.started_at, job_input.created_at)
                if job_input.created_at is not None
                else None
            ),
            status_code=job_status.status_code,
            status_message=job_status.status_message,
        )

    def flush(self) -> None:
        """Flush and shut down the pipeline.

        Raises:
            FlushError: pending spans could not be flushed
        """
        self._advance(EmitterState.SPAN_CLOSED, EmitterState.FLUSHED)
        self.pipeline.shutdown()

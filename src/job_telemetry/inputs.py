"""
Resolve raw action inputs into a typed JobTelemetryInput.

Raw values come from INPUT_* environment variables or CLI flags (CLI wins).
Parsing failures raise the errors in .errors; nothing here talks to the exporter.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from opentelemetry.trace import StatusCode

from .actions import get_input
from .config import INPUT_NAMES, InputDefinition, load_input_definitions
from .errors import MissingInputError
from .timestamps import parse_rfc3339
from .trace_context import TraceContext, parse_traceparent

logger = logging.getLogger(__name__)

# Inputs validated by their own parsers, so an empty value reports the parse error instead.
_PARSER_VALIDATED_INPUTS = frozenset({"traceparent", "started-at"})


def parse_key_value_pairs(value: str) -> dict[str, str]:
    """Parse "k1=v1,k2=v2" into a dict. Entries without '=' are skipped; last duplicate wins."""
    pairs: dict[str, str] = {}
    if not value:
        return pairs
    for entry in value.split(","):
        key, sep, val = entry.partition("=")
        if not sep:
            logger.debug("Skipping malformed key=value entry: %r", entry)
            continue
        pairs[key] = val
    return pairs


class JobConclusion(Enum):
    """Closed classification of the job-status input."""

    SUCCESS = "success"
    FAILURE = "failure"
    OTHER = "other"


# conclusion -> (span status code, status message)
_STATUS_BY_CONCLUSION: dict[JobConclusion, tuple[StatusCode, str]] = {
    JobConclusion.SUCCESS: (StatusCode.OK, "Job completed successfully"),
    JobConclusion.FAILURE: (StatusCode.ERROR, "Job failed"),
    JobConclusion.OTHER: (StatusCode.UNSET, "Job status unknown"),
}


@dataclass(frozen=True)
class JobStatus:
    """Job outcome: the closed conclusion plus the raw value reported by the runner."""

    conclusion: JobConclusion
    raw: str

    @classmethod
    def from_input(cls, raw: str) -> "JobStatus":
        """Classify a raw job-status value; unknown values (cancelled, skipped, ...) are OTHER."""
        normalized = (raw or "").strip().lower()
        for conclusion in (JobConclusion.SUCCESS, JobConclusion.FAILURE):
            if normalized == conclusion.value:
                return cls(conclusion=conclusion, raw=raw)
        return cls(conclusion=JobConclusion.OTHER, raw=raw)

    @property
    def status_code(self) -> StatusCode:
        return _STATUS_BY_CONCLUSION[self.conclusion][0]

    @property
    def status_message(self) -> str:
        return _STATUS_BY_CONCLUSION[self.conclusion][1]


@dataclass(frozen=True)
class JobTelemetryInput:
    """All resolved invocation parameters."""

    trace_context: TraceContext
    service_name: str
    exporter_endpoint: str
    started_at: datetime
    job_status: JobStatus
    exporter_headers: dict[str, str] = field(default_factory=dict)
    resource_attributes: dict[str, str] = field(default_factory=dict)
    created_at: datetime | None = None
    job_name: str | None = None


def collect_raw_inputs(
    overrides: Mapping[str, str | None] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Raw input values by name: CLI overrides first, then INPUT_* environment variables."""
    overrides = overrides or {}
    raw: dict[str, str] = {}
    for name in INPUT_NAMES:
        value = overrides.get(name)
        raw[name] = value.strip() if value is not None else get_input(name, environ)
    return raw


def _check_required(
    raw: Mapping[str, str],
    definitions: Mapping[str, InputDefinition],
) -> None:
    missing = [
        name
        for name, definition in definitions.items()
        if definition.required
        and name not in _PARSER_VALIDATED_INPUTS
        and not raw.get(name, "")
    ]
    if missing:
        raise MissingInputError(f"missing required input(s): {', '.join(missing)}")


def read_job_input(
    raw: Mapping[str, str],
    definitions: Mapping[str, InputDefinition] | None = None,
) -> JobTelemetryInput:
    """
    Build a JobTelemetryInput from raw string inputs.

    The trace context is resolved first so a bad traceparent is reported before
    anything else.

    Raises:
        InvalidTraceContext: traceparent missing or malformed
        InvalidTimestamp: started-at missing/malformed or created-at malformed
        MissingInputError: another required input is empty
    """
    if definitions is None:
        definitions = load_input_definitions()
    trace_context = parse_traceparent(raw.get("traceparent", ""))
    _check_required(raw, definitions)

    started_at = parse_rfc3339(raw.get("started-at", ""), "started-at")
    created_raw = raw.get("created-at", "")
    created_at = parse_rfc3339(created_raw, "created-at") if created_raw else None
    if created_at is not None and created_at > started_at:
        logger.warning("created-at %s is after started-at %s", created_raw, raw.get("started-at"))

    return JobTelemetryInput(
        trace_context=trace_context,
        service_name=raw.get("otel-service-name", ""),
        exporter_endpoint=raw.get("otel-exporter-otlp-endpoint", ""),
        exporter_headers=parse_key_value_pairs(raw.get("otel-exporter-otlp-headers", "")),
        resource_attributes=parse_key_value_pairs(raw.get("otel-resource-attributes", "")),
        started_at=started_at,
        created_at=created_at,
        job_status=JobStatus.from_input(raw.get("job-status", "")),
        job_name=raw.get("job-name") or None,
    )

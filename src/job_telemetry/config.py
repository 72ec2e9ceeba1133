"""
Configuration for exporting CI job telemetry.

Input declarations (names, required flags, descriptions) come from the action
definition in action.yaml. The action root is resolved from JOB_TELEMETRY_ROOT,
then GITHUB_ACTION_PATH (set by the runner for the running action), then the
directory containing pyproject.toml when running from source. When none of
these hold an action.yaml, the built-in input table is used.

Exporter tuning is read from the environment: OTEL_EXPORTER_OTLP_PROTOCOL and
JOB_TELEMETRY_FLUSH_TIMEOUT_MS.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

ACTION_NAME = "export-job-telemetry"
TRACER_NAME = ACTION_NAME
SPAN_NAME = "Export Job Telemetry"

# Semantic conventions release the resource is described against.
SCHEMA_URL = "https://opentelemetry.io/schemas/1.20.0"
SERVICE_NAME_KEY = "service.name"

ATTR_PREFIX = "ci.workflow.job"


def attr(suffix: str) -> str:
    """Return full attribute name with the job prefix (e.g. attr('name') -> 'ci.workflow.job.name')."""
    if not suffix:
        return ATTR_PREFIX
    return f"{ATTR_PREFIX}.{suffix}"


JOB_CONCLUSION_ATTR = attr("conclusion")
JOB_START_LATENCY_ATTR = attr("start_latency_ms")
JOB_NAME_ATTR = attr("name")
JOB_DURATION_ATTR = attr("duration_ms")

PROTOCOLS = ("grpc", "http")
_DEFAULT_PROTOCOL = "grpc"
_DEFAULT_FLUSH_TIMEOUT_MS = 30000


@dataclass(frozen=True)
class InputDefinition:
    """Declaration of one action input."""

    name: str
    required: bool
    description: str = ""


# Fallback when action.yaml cannot be located (e.g. installed package run outside the action).
_BUILTIN_INPUTS: dict[str, bool] = {
    "traceparent": True,
    "otel-service-name": True,
    "otel-exporter-otlp-endpoint": True,
    "otel-exporter-otlp-headers": False,
    "otel-resource-attributes": False,
    "started-at": True,
    "created-at": False,
    "job-status": True,
    "job-name": False,
}

INPUT_NAMES = tuple(_BUILTIN_INPUTS)


def get_action_root() -> Path | None:
    """Return the directory holding action.yaml, or None when it cannot be found.

    Resolution order:
    1. JOB_TELEMETRY_ROOT env var
    2. GITHUB_ACTION_PATH env var (checked-out action on a runner)
    3. Directory containing pyproject.toml, walking up from this file (running from source)
    """
    for env_name in ("JOB_TELEMETRY_ROOT", "GITHUB_ACTION_PATH"):
        env_root = os.environ.get(env_name, "").strip()
        if env_root:
            p = Path(env_root).resolve()
            if (p / "action.yaml").is_file():
                return p
    here = Path(__file__).resolve().parent
    for candidate in [here, *here.parents]:
        if (candidate / "pyproject.toml").is_file():
            return candidate if (candidate / "action.yaml").is_file() else None
    return None


def load_yaml(path: Path, default: Any = None) -> Any:
    """Load YAML file; return default on missing file or parse error."""
    if default is None:
        default = {}
    if not path.exists():
        return default
    try:
        with path.open(encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except (OSError, yaml.YAMLError):
        return default
    return data if isinstance(data, dict) else default


def _description(raw: Any) -> str:
    """Collapse folded YAML descriptions to a single line."""
    if not isinstance(raw, str):
        return ""
    return " ".join(raw.split())


def load_input_definitions(action_path: Path | None = None) -> dict[str, InputDefinition]:
    """
    Return input declarations keyed by input name.

    action.yaml entries override the built-in table; inputs declared only in
    action.yaml are ignored since nothing reads them.
    """
    definitions = {
        name: InputDefinition(name=name, required=required)
        for name, required in _BUILTIN_INPUTS.items()
    }
    if action_path is None:
        root = get_action_root()
        if root is None:
            return definitions
        action_path = root / "action.yaml"
    data = load_yaml(action_path)
    inputs = data.get("inputs")
    if not isinstance(inputs, dict):
        return definitions
    for name, spec in inputs.items():
        if name not in definitions or not isinstance(spec, dict):
            continue
        required = spec.get("required", definitions[name].required)
        definitions[name] = InputDefinition(
            name=name,
            required=required is True or str(required).strip().lower() == "true",
            description=_description(spec.get("description")),
        )
    return definitions


def get_default_protocol() -> str:
    """OTLP protocol from OTEL_EXPORTER_OTLP_PROTOCOL (grpc, http/protobuf or http). Default: grpc."""
    raw = os.environ.get("OTEL_EXPORTER_OTLP_PROTOCOL", "").strip().lower()
    if not raw:
        return _DEFAULT_PROTOCOL
    if raw.startswith("http"):
        return "http"
    if raw == "grpc":
        return raw
    raise SystemExit(f"OTEL_EXPORTER_OTLP_PROTOCOL must be one of: {', '.join(PROTOCOLS)}.")


def get_flush_timeout_ms() -> int:
    """Flush timeout for the batch processor at shutdown, from JOB_TELEMETRY_FLUSH_TIMEOUT_MS."""
    raw = os.environ.get("JOB_TELEMETRY_FLUSH_TIMEOUT_MS", "").strip()
    if not raw:
        return _DEFAULT_FLUSH_TIMEOUT_MS
    try:
        value = int(raw)
    except ValueError:
        raise SystemExit("JOB_TELEMETRY_FLUSH_TIMEOUT_MS must be an integer.") from None
    if value <= 0:
        raise SystemExit("JOB_TELEMETRY_FLUSH_TIMEOUT_MS must be positive.")
    return value


def get_build_info() -> tuple[str, str]:
    """Build date and commit id stamped into the environment by the release workflow."""
    return (
        os.environ.get("JOB_TELEMETRY_BUILD_DATE", "").strip() or "unknown",
        os.environ.get("JOB_TELEMETRY_COMMIT_ID", "").strip() or "unknown",
    )

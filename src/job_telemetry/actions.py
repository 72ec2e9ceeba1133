"""
GitHub Actions host bindings.

Reads action inputs the way the runner exposes them (INPUT_<NAME> environment
variables) and renders log records as workflow commands so errors and
warnings are annotated on the job.
"""

import logging
import os
import sys
from collections.abc import Mapping

# Workflow command per level; INFO and anything unlisted is printed as-is.
_COMMAND_BY_LEVEL = {
    logging.DEBUG: "debug",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "error",
}


def input_env_name(name: str) -> str:
    """Environment variable the runner uses for an input (e.g. job-name -> INPUT_JOB-NAME)."""
    return "INPUT_" + name.replace(" ", "_").upper()


def get_input(name: str, environ: Mapping[str, str] | None = None) -> str:
    """Return the stripped value of an action input, or "" when unset."""
    env = os.environ if environ is None else environ
    return env.get(input_env_name(name), "").strip()


def escape_data(message: str) -> str:
    """Escape a workflow command payload so multi-line messages stay one command."""
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


class WorkflowCommandFormatter(logging.Formatter):
    """Format records as ::error::, ::warning:: and ::debug:: workflow commands."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        command = _COMMAND_BY_LEVEL.get(record.levelno)
        if command is None:
            return message
        return f"::{command}::{escape_data(message)}"


def is_runner_debug(environ: Mapping[str, str] | None = None) -> bool:
    """True when the workflow was re-run with debug logging enabled."""
    env = os.environ if environ is None else environ
    return env.get("RUNNER_DEBUG", "").strip() == "1"


def configure_logging(verbose: bool = False) -> logging.Logger:
    """Attach a stdout handler with workflow-command formatting to the package logger."""
    logger = logging.getLogger("job_telemetry")
    logger.setLevel(logging.DEBUG if verbose or is_runner_debug() else logging.INFO)
    # Rebind to the current stdout on every call so repeated invocations don't stack handlers.
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(WorkflowCommandFormatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger

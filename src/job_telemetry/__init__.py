"""
Export Job Telemetry - one OpenTelemetry span per CI job run.

This package continues a trace started by an external setup step and emits a
single span describing a CI job: queue latency, execution duration and outcome.
"""

__version__ = "1.0.0"

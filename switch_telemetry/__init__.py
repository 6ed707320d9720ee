"""Switch telemetry agent: SNMP counter sampling, Prometheus export, JSONL archive."""

__version__ = "0.1.0"

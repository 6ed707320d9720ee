"""
Prometheus exporter.

Every MetricsExporter owns its own CollectorRegistry, so an aggregator can
be rebuilt (e.g. in tests) without "Duplicated timeseries" errors from the
process-wide default registry.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable

from prometheus_client import CollectorRegistry, Counter, Histogram, start_http_server

from switch_telemetry.schemas.metric import MetricDefinition

logger = logging.getLogger(__name__)

COLLECT_DURATION_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)


def parse_listen_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` (host optional, e.g. ``:9990``) into (host, port)."""
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid listen address {address!r}, expected host:port")
    return host.strip("[]") or "0.0.0.0", int(port)


class MetricsExporter:
    """Cumulative switch counters plus collector health metrics."""

    def __init__(
        self,
        definitions: Iterable[MetricDefinition],
        *,
        node: str,
        machine: str,
        registry: CollectorRegistry | None = None,
    ) -> None:
        self.registry = registry or CollectorRegistry()
        self._node = node
        self._machine = machine
        self._counters: dict[str, Counter] = {}
        for d in definitions:
            self._counters[d.name] = Counter(
                d.name,
                d.description,
                labelnames=("node", "interface"),
                registry=self.registry,
            )

        self._collect_duration = Histogram(
            "disco_collect_duration_seconds",
            "Duration of one SNMP collection round trip",
            labelnames=("machine",),
            buckets=COLLECT_DURATION_BUCKETS,
            registry=self.registry,
        )
        self._collect_errors = Counter(
            "disco_collect_errors",
            "Number of failed SNMP collection cycles",
            labelnames=("machine",),
            registry=self.registry,
        )

    def add_increase(self, metric_name: str, interface: str, value: int) -> None:
        """Add a counter delta to the cumulative metric for one interface."""
        self._counters[metric_name].labels(
            node=self._node, interface=interface,
        ).inc(value)

    def observe_collect_duration(self, seconds: float) -> None:
        self._collect_duration.labels(machine=self._machine).observe(seconds)

    def inc_collect_error(self) -> None:
        self._collect_errors.labels(machine=self._machine).inc()

    def serve(self, listen_address: str) -> None:
        """Start the /metrics HTTP endpoint in a background thread."""
        host, port = parse_listen_address(listen_address)
        start_http_server(port, addr=host, registry=self.registry)
        logger.info("Serving Prometheus metrics on %s:%d", host, port)

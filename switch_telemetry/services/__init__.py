"""Aggregation engine, archive writer, Prometheus exporter and scheduler."""

"""
Switch Telemetry Agent - process entry point.

Usage:
    python -m switch_telemetry --community s3cret \\
        --hostname mlab2-abc0t.mlab-sandbox.measurement-lab.org \\
        --metrics config/metrics.yaml

    # 不連真實 switch，用模擬資料跑完整流程
    python -m switch_telemetry --mock --hostname mlab2-abc0t.example.org \\
        --community public --metrics config/metrics.yaml --datadir ./spool

Every flag can also be given as an environment variable (see core/config.py).
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from typing import Any

from pydantic import ValidationError

from switch_telemetry.core.config import Settings, get_settings
from switch_telemetry.core.metrics_file import MetricsFileError, load_metric_definitions
from switch_telemetry.services.aggregator import CounterAggregator
from switch_telemetry.services.archive import ArchiveWriter
from switch_telemetry.services.exporter import MetricsExporter
from switch_telemetry.services.scheduler import SchedulerService
from switch_telemetry.snmp.engine import AsyncSnmpEngine, SnmpEngineConfig, SnmpTarget
from switch_telemetry.snmp.interfaces import InterfaceResolutionError, resolve_interfaces

logger = logging.getLogger(__name__)

EXIT_STARTUP_FAILURE = 2

# argparse dest -> Settings field
_FLAG_FIELDS = {
    "community": "community",
    "datadir": "data_dir",
    "hostname": "hostname",
    "metrics": "metrics_file",
    "write_interval": "write_interval_seconds",
    "target": "target",
    "prometheus_listen_address": "prometheus_listen_address",
    "mock": "snmp_mock",
    "log_level": "log_level",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="switch_telemetry",
        description="Poll switch port counters, export them and archive deltas.",
    )
    parser.add_argument("--community", help="The SNMP community string for the switch.")
    parser.add_argument("--datadir", help="Base directory where archive files will be written.")
    parser.add_argument("--hostname", help="The FQDN of the node.")
    parser.add_argument("--metrics", help="Path to YAML file defining metrics to scrape.")
    parser.add_argument(
        "--write-interval", type=int,
        help="Interval in seconds to write out archive files, e.g. 300.",
    )
    parser.add_argument("--target", help="Switch FQDN to scrape metrics from.")
    parser.add_argument(
        "--prometheus-listen-address",
        help="host:port to serve Prometheus metrics on, e.g. :9990.",
    )
    parser.add_argument(
        "--mock", action="store_true", default=None,
        help="Use a simulated switch instead of real SNMP.",
    )
    parser.add_argument("--log-level", help="Root log level (DEBUG, INFO, ...).")
    return parser


def settings_from_args(argv: list[str] | None = None, base: Settings | None = None) -> Settings:
    """
    Environment/.env settings overridden by any flags that were given.

    Raises:
        ValidationError: an override is out of range (e.g. --write-interval 0).
    """
    args = build_parser().parse_args(argv)
    settings = base or get_settings()
    update: dict[str, Any] = {
        field: getattr(args, dest)
        for dest, field in _FLAG_FIELDS.items()
        if getattr(args, dest) is not None
    }
    if not update:
        return settings
    return Settings.model_validate({**settings.model_dump(), **update})


def build_engine(settings: Settings) -> Any:
    """Real pysnmp engine, or the mock switch when SNMP_MOCK is set."""
    if settings.snmp_mock:
        from switch_telemetry.snmp.mock_engine import MockSnmpEngine

        logger.info("SNMP collection using MOCK engine (no real devices)")
        return MockSnmpEngine(machine=settings.machine)
    return AsyncSnmpEngine(
        config=SnmpEngineConfig(
            max_repetitions=settings.snmp_max_repetitions,
            walk_timeout=settings.snmp_walk_timeout,
        )
    )


async def run_agent(settings: Settings) -> int:
    """Resolve interfaces, wire the components and run until signalled."""
    definitions = load_metric_definitions(settings.metrics_file)

    target = SnmpTarget(
        ip=settings.resolved_target,
        community=settings.community.strip(),
        port=settings.snmp_port,
        timeout=settings.snmp_timeout,
        retries=settings.snmp_retries,
    )
    engine = build_engine(settings)
    bindings = await resolve_interfaces(engine, target, settings.machine)

    exporter = MetricsExporter(
        definitions, node=settings.hostname, machine=settings.machine,
    )
    exporter.serve(settings.prometheus_listen_address)

    aggregator = CounterAggregator(
        engine,
        target,
        definitions,
        bindings,
        hostname=settings.hostname,
        experiment=settings.resolved_target,
        exporter=exporter,
        archive_writer=ArchiveWriter(settings.data_dir, settings.hostname),
        archive_failure_fatal=settings.archive_failure_fatal,
    )
    logger.info(
        "Tracking %d counters on %s for %s",
        len(aggregator.oids), settings.resolved_target, settings.hostname,
    )

    service = SchedulerService(
        aggregator,
        write_interval_seconds=settings.write_interval_seconds,
        align_start=settings.align_start,
    )
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, service.request_stop)

    return await service.run()


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        settings = settings_from_args(argv)
    except ValidationError as e:
        logger.critical("Invalid settings: %s", e)
        return EXIT_STARTUP_FAILURE
    logging.getLogger().setLevel(
        getattr(logging, settings.log_level.upper(), logging.INFO)
    )

    problems = settings.validate_required()
    if problems:
        for problem in problems:
            logger.critical(problem)
        return EXIT_STARTUP_FAILURE

    try:
        return asyncio.run(run_agent(settings))
    except (MetricsFileError, InterfaceResolutionError, ValueError) as e:
        logger.critical("Startup failed: %s", e)
        return EXIT_STARTUP_FAILURE
    except ImportError as e:
        logger.critical("SNMP support unavailable: %s", e)
        return EXIT_STARTUP_FAILURE
    except OSError as e:
        logger.critical("Could not start Prometheus endpoint: %s", e)
        return EXIT_STARTUP_FAILURE


if __name__ == "__main__":
    sys.exit(main())

"""Root conftest — shared fixtures for all tests."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from prometheus_client import CollectorRegistry

from switch_fixtures import HOSTNAME, MACHINE, T0, TARGET
from switch_telemetry.core.enums import InterfaceRole
from switch_telemetry.schemas.metric import MetricDefinition
from switch_telemetry.services.aggregator import CounterAggregator
from switch_telemetry.services.archive import ArchiveWriter
from switch_telemetry.services.exporter import MetricsExporter
from switch_telemetry.snmp.engine import SnmpTarget
from switch_telemetry.snmp.interfaces import InterfaceBinding


@pytest.fixture
def definitions() -> list[MetricDefinition]:
    return [
        MetricDefinition(
            name="ifHCInOctets",
            description="Ingress octets.",
            oidStub=".1.3.6.1.2.1.31.1.1.1.6",
            mlabUplinkName="switch.octets.uplink.rx",
            mlabMachineName="switch.octets.local.rx",
        ),
        MetricDefinition(
            name="ifOutDiscards",
            description="Egress discards.",
            oidStub=".1.3.6.1.2.1.2.2.1.19",
            mlabUplinkName="switch.discards.uplink.tx",
            mlabMachineName="switch.discards.local.tx",
        ),
    ]


@pytest.fixture
def bindings() -> dict[InterfaceRole, InterfaceBinding]:
    return {
        InterfaceRole.MACHINE: InterfaceBinding(
            role=InterfaceRole.MACHINE, if_index=524,
            if_descr="xe-0/0/12", if_alias="mlab2",
        ),
        InterfaceRole.UPLINK: InterfaceBinding(
            role=InterfaceRole.UPLINK, if_index=568,
            if_descr="xe-0/0/45", if_alias="uplink-10g",
        ),
    }


@pytest.fixture
def snmp_target() -> SnmpTarget:
    return SnmpTarget(ip=TARGET, community="public")


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def exporter(definitions, registry) -> MetricsExporter:
    return MetricsExporter(
        definitions, node=HOSTNAME, machine=MACHINE, registry=registry,
    )


@pytest.fixture
def engine() -> MagicMock:
    """SNMP engine double; tests set engine.get.side_effect / return_value."""
    mock = MagicMock()
    mock.get = AsyncMock()
    mock.walk = AsyncMock()
    return mock


@pytest.fixture
def archive_writer(tmp_path) -> ArchiveWriter:
    return ArchiveWriter(tmp_path, HOSTNAME)


@pytest.fixture
def aggregator(
    engine, snmp_target, definitions, bindings, exporter, archive_writer,
) -> CounterAggregator:
    return CounterAggregator(
        engine,
        snmp_target,
        definitions,
        bindings,
        hostname=HOSTNAME,
        experiment=TARGET,
        exporter=exporter,
        archive_writer=archive_writer,
        interval_start=T0,
    )

"""
Mock SNMP Engine.

Drop-in replacement for AsyncSnmpEngine that serves a simulated switch
without sending any UDP packets. Used when SNMP_MOCK=true.

Implements the same get() / walk() interface so the resolver and the
aggregator work unchanged.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from switch_telemetry.snmp.mock_data import MockSwitch
from switch_telemetry.snmp.values import SnmpValue

logger = logging.getLogger(__name__)


class MockSnmpEngine:
    """
    Mock SNMP engine — same interface as AsyncSnmpEngine.

    One MockSwitch per target IP; the given machine name is placed on one
    of its access ports. Adds a tiny async sleep to simulate network latency.
    """

    def __init__(self, machine: str, latency: float = 0.005) -> None:
        self._machine = machine
        self._latency = latency
        self._switches: dict[str, MockSwitch] = {}
        logger.info("MockSnmpEngine initialized (no real SNMP traffic)")

    def _switch(self, ip: str) -> MockSwitch:
        if ip not in self._switches:
            self._switches[ip] = MockSwitch(ip, self._machine)
        return self._switches[ip]

    async def get(
        self, target: Any, *oids: str,
    ) -> dict[str, SnmpValue]:
        """Mock SNMP GET — counters rise on every call."""
        await asyncio.sleep(self._latency)
        switch = self._switch(target.ip)
        result: dict[str, SnmpValue] = {}
        for oid in oids:
            result.update(switch.get(oid))
        return result

    async def walk(
        self,
        target: Any,
        oid_prefix: str,
        max_repetitions: int | None = None,
    ) -> list[tuple[str, str]]:
        """Mock SNMP WALK — static interface tables per target."""
        await asyncio.sleep(self._latency)
        return self._switch(target.ip).walk(oid_prefix)

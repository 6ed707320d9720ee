"""
Mock switch data generators.

根據 switch IP 產生模擬的 SNMP OID/value pairs，供 MockSnmpEngine 回傳。

設計原則：
- 使用 deterministic hash（基於 IP）確保同一台 switch 每次啟動一致
- ifAlias 表包含 machine 名稱與一個 ``uplink-*`` 埠
- 每次 GET 計數器都會單調遞增，模擬真實流量
"""
from __future__ import annotations

import hashlib
import random as _random
from typing import Any

from switch_telemetry.core.enums import SnmpValueKind
from switch_telemetry.snmp.oid_maps import (
    IF_ALIAS,
    IF_DESCR,
    SYS_UPTIME,
    UPLINK_ALIAS_PREFIX,
    normalize_oid,
)
from switch_telemetry.snmp.values import SnmpValue

# Port layout: 48 access ports + one uplink, ifIndex 501..
_FIRST_IF_INDEX = 501
_ACCESS_PORTS = 48

# ifXTable high-capacity columns (ifHCInOctets .. ifHCOutBroadcastPkts)
_IF_X_TABLE = "1.3.6.1.2.1.31.1.1.1"
_HC_COLUMNS = frozenset(range(6, 14))


def _seed(ip: str) -> int:
    return int(hashlib.md5(ip.encode("utf-8")).hexdigest()[:8], 16)


def _port_layout(ip: str, machine: str) -> dict[int, tuple[str, str]]:
    """{ifIndex: (ifDescr, ifAlias)} for a mock switch."""
    rng = _random.Random(_seed(ip))
    machine_port = rng.randrange(_ACCESS_PORTS)
    layout: dict[int, tuple[str, str]] = {}
    for port in range(_ACCESS_PORTS):
        if_index = _FIRST_IF_INDEX + port
        alias = machine if port == machine_port else ""
        layout[if_index] = (f"xe-0/0/{port}", alias)
    uplink_index = _FIRST_IF_INDEX + _ACCESS_PORTS
    layout[uplink_index] = (f"xe-0/0/{_ACCESS_PORTS}", f"{UPLINK_ALIAS_PREFIX}-10g")
    return layout


def _is_hc_column(oid: str) -> bool:
    if not oid.startswith(_IF_X_TABLE + "."):
        return False
    column = oid[len(_IF_X_TABLE) + 1:].split(".", 1)[0]
    return column.isdigit() and int(column) in _HC_COLUMNS


class MockSwitch:
    """In-memory switch: static interface tables plus rising counters."""

    def __init__(self, ip: str, machine: str) -> None:
        self.ip = ip
        self.machine = machine
        self._layout = _port_layout(ip, machine)
        self._rng = _random.Random(_seed(ip) ^ 0x5EED)
        self._counters: dict[str, int] = {}

    def walk(self, oid_prefix: str) -> list[tuple[str, str]]:
        prefix = normalize_oid(oid_prefix)
        if prefix == IF_ALIAS:
            return [
                (f"{IF_ALIAS}.{idx}", alias)
                for idx, (_, alias) in sorted(self._layout.items())
            ]
        if prefix == IF_DESCR:
            return [
                (f"{IF_DESCR}.{idx}", descr)
                for idx, (descr, _) in sorted(self._layout.items())
            ]
        return []

    def get(self, oid: str) -> dict[str, Any]:
        oid = normalize_oid(oid)
        if oid == SYS_UPTIME:
            return {oid: SnmpValue(SnmpValueKind.OTHER, "1592000258", "TimeTicks")}

        column, _, index = oid.rpartition(".")
        if not index.isdigit() or int(index) not in self._layout:
            return {}
        if_index = int(index)

        if column == IF_DESCR:
            return {oid: SnmpValue.octet_string(self._layout[if_index][0])}
        if column == IF_ALIAS:
            return {oid: SnmpValue.octet_string(self._layout[if_index][1])}
        return {oid: self._next_counter(oid)}

    def _next_counter(self, oid: str) -> SnmpValue:
        if oid not in self._counters:
            self._counters[oid] = self._rng.randint(1_000, 1_000_000_000)
        else:
            self._counters[oid] += self._rng.randint(0, 5_000_000)

        if _is_hc_column(oid):
            return SnmpValue.counter64(self._counters[oid])
        return SnmpValue.counter32(self._counters[oid] % 2**32)

"""
SNMP Engine — pysnmp asyncio wrapper.

提供兩個核心操作：
- get()  — 取得一或多個 scalar OID 的值（typed SnmpValue）
- walk() — 走訪整個 OID 子樹（自動使用 GETBULK）

所有操作都是 async，使用 pysnmp 7.x 的 v3arch asyncio API。

NOTE: pysnmp imports are deferred to AsyncSnmpEngine.__init__() so that
mock mode (SNMP_MOCK=true) works even when pysnmp is not installed.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from switch_telemetry.snmp.values import SnmpValue, to_snmp_value

logger = logging.getLogger(__name__)

_MISSING_VALUE_CLASSES = ("NoSuchObject", "NoSuchInstance", "EndOfMibView")


class SnmpError(Exception):
    """Base SNMP error."""


class SnmpTimeoutError(SnmpError):
    """SNMP request timed out after all retries."""


@dataclass
class SnmpTarget:
    """Connection parameters for a single SNMP target."""

    ip: str
    community: str
    port: int = 161
    timeout: float = 5.0
    retries: int = 1


@dataclass
class SnmpEngineConfig:
    """Engine-level configuration."""

    max_repetitions: int = 25
    walk_timeout: float = 120.0


def _raise_for_error(
    op: str,
    target: SnmpTarget,
    error_indication: Any,
    error_status: Any,
    error_index: Any,
    var_binds: Any,
) -> None:
    """Translate pysnmp error indications into SnmpError subclasses."""
    if error_indication:
        err_str = str(error_indication)
        if "timeout" in err_str.lower():
            raise SnmpTimeoutError(f"SNMP {op} timeout: {target.ip}: {err_str}")
        raise SnmpError(f"SNMP {op} error: {err_str}")

    if error_status:
        at = "?"
        if error_index and var_binds:
            at = str(var_binds[int(error_index) - 1][0])
        raise SnmpError(
            f"SNMP {op} error status: {error_status.prettyPrint()} at {at}"
        )


class AsyncSnmpEngine:
    """
    Thin async wrapper around the pysnmp 7.x asyncio API (SNMP v2c).

    Uses a single shared pysnmp SnmpEngine instance for all requests.
    """

    def __init__(self, config: SnmpEngineConfig | None = None) -> None:
        from pysnmp.hlapi.v3arch.asyncio import SnmpEngine as PySnmpEngine

        self._config = config or SnmpEngineConfig()
        self._engine = PySnmpEngine()

    async def _make_transport(self, target: SnmpTarget) -> Any:
        """Create UDP transport for target (resolves the address)."""
        from pysnmp.hlapi.v3arch.asyncio import UdpTransportTarget

        try:
            return await UdpTransportTarget.create(
                (target.ip, target.port),
                timeout=target.timeout,
                retries=target.retries,
            )
        except Exception as e:
            raise SnmpError(f"cannot create transport to {target.ip}: {e}") from e

    async def get(
        self, target: SnmpTarget, *oids: str,
    ) -> dict[str, SnmpValue]:
        """
        SNMP GET for one or more scalar OIDs.

        Returns:
            {oid_str: SnmpValue} dict. OIDs the device reports as
            noSuchObject/noSuchInstance are left out.

        Raises:
            SnmpTimeoutError: if request times out.
            SnmpError: on other SNMP errors.
        """
        from pysnmp.hlapi.v3arch.asyncio import (
            CommunityData,
            ContextData,
            ObjectIdentity,
            ObjectType,
            get_cmd,
        )

        transport = await self._make_transport(target)
        object_types = [ObjectType(ObjectIdentity(oid)) for oid in oids]

        error_indication, error_status, error_index, var_binds = await get_cmd(
            self._engine,
            CommunityData(target.community, mpModel=1),
            transport,
            ContextData(),
            *object_types,
        )
        _raise_for_error(
            "GET", target, error_indication, error_status, error_index, var_binds,
        )

        result: dict[str, SnmpValue] = {}
        for oid, val in var_binds:
            if val.__class__.__name__ in _MISSING_VALUE_CLASSES:
                logger.debug("GET %s on %s: %s", oid, target.ip, val.__class__.__name__)
                continue  # caller handles missing data
            result[str(oid)] = to_snmp_value(val)

        return result

    async def walk(
        self,
        target: SnmpTarget,
        oid_prefix: str,
        max_repetitions: int | None = None,
    ) -> list[tuple[str, str]]:
        """
        Full SNMP walk of a subtree using GETBULK.

        Returns:
            List of (oid_str, value_str) tuples within the subtree.

        Raises:
            SnmpTimeoutError: if any GETBULK times out, or the walk exceeds
                walk_timeout.
            SnmpError: on other errors.
        """
        try:
            return await asyncio.wait_for(
                self._walk_impl(target, oid_prefix, max_repetitions),
                timeout=self._config.walk_timeout,
            )
        except asyncio.TimeoutError as e:
            raise SnmpTimeoutError(
                f"SNMP WALK of {oid_prefix} on {target.ip} exceeded "
                f"{self._config.walk_timeout}s"
            ) from e

    async def _walk_impl(
        self,
        target: SnmpTarget,
        oid_prefix: str,
        max_repetitions: int | None,
    ) -> list[tuple[str, str]]:
        """Internal walk implementation."""
        from pysnmp.hlapi.v3arch.asyncio import (
            CommunityData,
            ContextData,
            ObjectIdentity,
            ObjectType,
            bulk_walk_cmd,
        )

        max_rep = max_repetitions or self._config.max_repetitions
        transport = await self._make_transport(target)
        results: list[tuple[str, str]] = []
        prefix = oid_prefix.strip(".")

        async for (
            error_indication, error_status, error_index, var_binds,
        ) in bulk_walk_cmd(
            self._engine,
            CommunityData(target.community, mpModel=1),
            transport,
            ContextData(),
            0,  # non-repeaters
            max_rep,
            ObjectType(ObjectIdentity(prefix)),
            lexicographicMode=False,
        ):
            _raise_for_error(
                "WALK", target, error_indication, error_status, error_index, var_binds,
            )

            for oid, val in var_binds:
                oid_str = str(oid)
                if not oid_str.startswith(prefix + "."):
                    return results
                if val.__class__.__name__ in _MISSING_VALUE_CLASSES:
                    return results

                val_str = (
                    val.prettyPrint()
                    if hasattr(val, "prettyPrint")
                    else str(val)
                )
                results.append((oid_str, val_str))

        return results

"""
Interface discovery — which switch ports belong to this node and the uplink.

Switch operators label ports through IF-MIB::ifAlias: the port facing a node
carries the node's short machine name (e.g. ``mlab2``), the uplink port
carries a label starting with ``uplink``. The ifIndex found that way selects
the counter column instances to poll; ifDescr (e.g. ``xe-0/0/12``) is used
as the Prometheus ``interface`` label.

Resolution runs once at startup; a missing role is fatal because the agent
cannot know which counters to track without it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from switch_telemetry.core.enums import InterfaceRole
from switch_telemetry.snmp.engine import SnmpError, SnmpTarget
from switch_telemetry.snmp.oid_maps import (
    IF_ALIAS,
    IF_DESCR,
    UPLINK_ALIAS_PREFIX,
    create_oid,
    normalize_oid,
)

logger = logging.getLogger(__name__)


class InterfaceResolutionError(Exception):
    """The machine or uplink interface could not be determined."""


@dataclass(frozen=True)
class InterfaceBinding:
    """Resolved switch port for one role."""

    role: InterfaceRole
    if_index: int
    if_descr: str
    if_alias: str


def classify_alias(alias: str, machine: str) -> InterfaceRole | None:
    """Return the role an ifAlias value denotes, or None."""
    if alias == machine:
        return InterfaceRole.MACHINE
    if alias.startswith(UPLINK_ALIAS_PREFIX):
        return InterfaceRole.UPLINK
    return None


async def resolve_interfaces(
    engine: Any,
    target: SnmpTarget,
    machine: str,
) -> dict[InterfaceRole, InterfaceBinding]:
    """
    Discover the machine and uplink ports via ifAlias, then fetch ifDescr.

    Args:
        engine: AsyncSnmpEngine or MockSnmpEngine
        target: switch to query
        machine: short machine name the node's port is labelled with

    Returns:
        {role: InterfaceBinding} for exactly MACHINE and UPLINK.

    Raises:
        InterfaceResolutionError: walk/GET failed or a role was not found.
    """
    try:
        varbinds = await engine.walk(target, IF_ALIAS)
    except SnmpError as e:
        raise InterfaceResolutionError(
            f"Failed to walk the ifAlias OID on {target.ip}: {e}"
        ) from e

    candidates: dict[InterfaceRole, tuple[int, str]] = {}
    for oid_str, val_str in varbinds:
        alias = val_str.strip()
        role = classify_alias(alias, machine)
        if role is None:
            continue

        try:
            if_index = int(normalize_oid(oid_str).rsplit(".", 1)[-1])
        except ValueError:
            logger.warning("Ignoring ifAlias entry with bad index: %s", oid_str)
            continue

        if role in candidates:
            logger.warning(
                "Multiple %s ports on %s (ifIndex %d and %d), using %d",
                role.value, target.ip, candidates[role][0], if_index,
                candidates[role][0],
            )
            continue
        candidates[role] = (if_index, alias)

    bindings: dict[InterfaceRole, InterfaceBinding] = {}
    for role in InterfaceRole:
        if role not in candidates:
            raise InterfaceResolutionError(
                f"No {role.value} interface found in ifAlias on {target.ip} "
                f"(machine={machine!r})"
            )
        if_index, alias = candidates[role]
        if_descr = await _get_if_descr(engine, target, if_index, role)
        bindings[role] = InterfaceBinding(
            role=role, if_index=if_index, if_descr=if_descr, if_alias=alias,
        )
        logger.info(
            "Resolved %s interface: ifIndex=%d ifDescr=%s ifAlias=%s",
            role.value, if_index, if_descr, alias,
        )

    return bindings


async def _get_if_descr(
    engine: Any,
    target: SnmpTarget,
    if_index: int,
    role: InterfaceRole,
) -> str:
    """GET ifDescr.<ifIndex>; an empty or missing description is an error."""
    descr_oid = create_oid(IF_DESCR, if_index)
    try:
        result = await engine.get(target, descr_oid)
    except SnmpError as e:
        raise InterfaceResolutionError(
            f"Failed to determine the {role.value} interface ifDescr: {e}"
        ) from e

    value = result.get(descr_oid)
    if value is None:
        raise InterfaceResolutionError(
            f"Failed to determine the {role.value} interface ifDescr: "
            f"{descr_oid} not returned"
        )
    descr = value.as_text()
    if not descr:
        raise InterfaceResolutionError(
            f"Empty ifDescr for {role.value} interface (ifIndex {if_index})"
        )
    return descr

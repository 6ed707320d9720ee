"""
OID constants used by the agent.

Counter OIDs come from the metrics YAML; only the interface discovery
tables are fixed here.
"""
from __future__ import annotations

# IF-MIB
IF_DESCR = "1.3.6.1.2.1.2.2.1.2"              # ifDescr (indexed by ifIndex)
IF_ALIAS = "1.3.6.1.2.1.31.1.1.1.18"          # ifAlias (operator port label)
IF_HC_IN_OCTETS = "1.3.6.1.2.1.31.1.1.1.6"    # ifHCInOctets (Counter64)
IF_OUT_DISCARDS = "1.3.6.1.2.1.2.2.1.19"      # ifOutDiscards (Counter32)

# SNMPv2-MIB
SYS_UPTIME = "1.3.6.1.2.1.1.3.0"              # TimeTicks

# ifAlias values starting with this mark the switch uplink port
UPLINK_ALIAS_PREFIX = "uplink"


def create_oid(oid_stub: str, if_index: int | str) -> str:
    """Join a column OID with an ifIndex, e.g. ``1.3.6.1.2.1.2.2.1.2.524``."""
    return f"{oid_stub.strip('.')}.{if_index}"


def normalize_oid(oid: str) -> str:
    """Strip the leading dot some tools print (``.1.3.6`` -> ``1.3.6``)."""
    return oid.lstrip(".")

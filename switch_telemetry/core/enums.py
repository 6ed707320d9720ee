"""
Enumeration definitions for the agent.

All enums are defined here to maintain consistency and type safety.
"""
from enum import Enum


class InterfaceRole(str, Enum):
    """
    Which switch port a counter pertains to.

    - MACHINE: the port this node is plugged into
    - UPLINK: the switch's uplink to the site router
    """

    MACHINE = "machine"
    UPLINK = "uplink"


class SnmpValueKind(str, Enum):
    """Wire types the agent distinguishes in GET responses."""

    COUNTER32 = "Counter32"
    COUNTER64 = "Counter64"
    OCTET_STRING = "OctetString"
    OTHER = "Other"

"""
Typed SNMP values and counter decoding.

The engine tags every GET result with its wire type so that the aggregator
can reject anything that is not a Counter32/Counter64 instead of silently
reading e.g. a Gauge32 or TimeTicks as a counter.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from switch_telemetry.core.enums import SnmpValueKind

_COUNTER32_MAX = 2**32 - 1
_COUNTER64_MAX = 2**64 - 1

# pysnmp class name -> kind
_KIND_BY_CLASS: dict[str, SnmpValueKind] = {
    "Counter32": SnmpValueKind.COUNTER32,
    "Counter64": SnmpValueKind.COUNTER64,
    "OctetString": SnmpValueKind.OCTET_STRING,
    "DisplayString": SnmpValueKind.OCTET_STRING,
}


class CounterDecodeError(ValueError):
    """A GET result could not be interpreted as an unsigned counter."""


@dataclass(frozen=True)
class SnmpValue:
    """One GET result: wire kind, python value and the original type name."""

    kind: SnmpValueKind
    value: int | bytes | str
    type_name: str

    @classmethod
    def counter32(cls, value: int) -> SnmpValue:
        return cls(SnmpValueKind.COUNTER32, value, "Counter32")

    @classmethod
    def counter64(cls, value: int) -> SnmpValue:
        return cls(SnmpValueKind.COUNTER64, value, "Counter64")

    @classmethod
    def octet_string(cls, value: bytes | str) -> SnmpValue:
        if isinstance(value, str):
            value = value.encode("utf-8")
        return cls(SnmpValueKind.OCTET_STRING, value, "OctetString")

    def as_text(self) -> str:
        """Human-readable string, decoding octet strings as UTF-8."""
        if isinstance(self.value, bytes):
            return self.value.decode("utf-8", errors="replace").strip()
        return str(self.value).strip()


def to_snmp_value(val: Any) -> SnmpValue:
    """Convert a pysnmp value object into an SnmpValue."""
    type_name = val.__class__.__name__
    kind = _KIND_BY_CLASS.get(type_name, SnmpValueKind.OTHER)

    if kind in (SnmpValueKind.COUNTER32, SnmpValueKind.COUNTER64):
        return SnmpValue(kind, int(val), type_name)
    if kind is SnmpValueKind.OCTET_STRING:
        raw = val.asOctets() if hasattr(val, "asOctets") else bytes(val)
        return SnmpValue(kind, raw, type_name)

    text = val.prettyPrint() if hasattr(val, "prettyPrint") else str(val)
    return SnmpValue(kind, text, type_name)


def decode_counter(oid: str, value: SnmpValue) -> int:
    """
    Return the counter value as a non-negative int.

    Raises:
        CounterDecodeError: value is not a Counter32/Counter64, or is out of
            range for its width.
    """
    if value.kind is SnmpValueKind.COUNTER32:
        limit = _COUNTER32_MAX
    elif value.kind is SnmpValueKind.COUNTER64:
        limit = _COUNTER64_MAX
    else:
        raise CounterDecodeError(
            f"Unknown type {value.type_name} for OID {oid}"
        )

    if not isinstance(value.value, int) or not 0 <= value.value <= limit:
        raise CounterDecodeError(
            f"{value.type_name} value {value.value!r} out of range for OID {oid}"
        )
    return value.value

"""Core module - contains enums, configuration and metric definitions."""
from .enums import InterfaceRole, SnmpValueKind

__all__ = [
    "InterfaceRole",
    "SnmpValueKind",
]

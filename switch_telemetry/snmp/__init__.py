"""
SNMP access layer.

架構：
    AsyncSnmpEngine    — pysnmp async wrapper (get/walk)
    MockSnmpEngine     — simulated switch with the same interface
    SnmpValue          — typed GET results + counter decoding
    resolve_interfaces — ifAlias based machine/uplink port discovery
"""

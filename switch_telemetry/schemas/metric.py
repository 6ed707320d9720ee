"""
Pydantic schema for one entry of the metrics YAML file.

YAML 範例::

    - name: ifHCInOctets
      description: Ingress octets.
      oidStub: .1.3.6.1.2.1.31.1.1.1.6
      mlabUplinkName: switch.octets.uplink.rx
      mlabMachineName: switch.octets.local.rx
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator

from switch_telemetry.core.enums import InterfaceRole


class MetricDefinition(BaseModel):
    """An SNMP counter to scrape for both the machine port and the uplink."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    name: str = Field(..., min_length=1, description="Prometheus metric name")
    description: str = Field(..., min_length=1, description="Prometheus help text")
    oid_stub: str = Field(
        ..., min_length=1, alias="oidStub",
        description="Column OID; the ifIndex is appended to it",
    )
    uplink_name: str = Field(
        ..., min_length=1, alias="mlabUplinkName",
        description="Archive metric name for the uplink port",
    )
    machine_name: str = Field(
        ..., min_length=1, alias="mlabMachineName",
        description="Archive metric name for the machine port",
    )

    @field_validator("oid_stub")
    @classmethod
    def check_oid_stub(cls, v: str) -> str:
        """Accept ``.1.3.6`` or ``1.3.6``; store without the leading dot."""
        stub = v.lstrip(".")
        parts = stub.split(".")
        if not all(p.isdigit() for p in parts):
            raise ValueError(f"not a numeric OID: {v!r}")
        return stub

    def archive_name(self, role: InterfaceRole) -> str:
        """Archive metric name for the given interface role."""
        if role is InterfaceRole.MACHINE:
            return self.machine_name
        return self.uplink_name

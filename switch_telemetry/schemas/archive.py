"""
Archive document schemas.

One IntervalDocument per tracked counter per flush; the archive file is the
JSONL concatenation of all documents of one flush. Field aliases are the
on-disk key names.
"""
from pydantic import BaseModel, ConfigDict, Field


class Sample(BaseModel):
    """
    Increase of one counter over one sampling cycle.

    - timestamp: logical cycle start (unix seconds), shared by all counters
    - collect_start / collect_end: SNMP round-trip bounds (unix nanoseconds)
    - value: counter increase since the previous cycle
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    timestamp: int
    collect_start: int = Field(..., alias="collectstart")
    collect_end: int = Field(..., alias="collectend")
    value: int = Field(..., ge=0)


class IntervalDocument(BaseModel):
    """All samples of one counter between two flushes."""

    model_config = ConfigDict(populate_by_name=True)

    experiment: str
    hostname: str
    metric: str
    samples: list[Sample] = Field(default_factory=list, alias="sample")

    def to_json_line(self) -> str:
        """Serialize with on-disk key names, no trailing newline."""
        return self.model_dump_json(by_alias=True)

"""
Counter Aggregation Engine.

Holds one CounterState per tracked OID (metric × interface role) and runs two
kinds of cycles against it:

- sample(now): one batched SNMP GET for every tracked OID, turning raw
  counter values into per-cycle increases.
- flush(now): drain every counter's pending samples into IntervalDocuments
  and hand them to the archive writer.

Both cycles take the same asyncio.Lock, so a flush always observes the table
as left by some completed sample cycle. The SNMP round trip happens inside
the lock; the archive write happens after it is released.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from switch_telemetry.core.enums import InterfaceRole
from switch_telemetry.schemas.archive import IntervalDocument, Sample
from switch_telemetry.schemas.metric import MetricDefinition
from switch_telemetry.services.archive import ArchiveWriteError, ArchiveWriter
from switch_telemetry.services.exporter import MetricsExporter
from switch_telemetry.snmp.engine import SnmpError, SnmpTarget
from switch_telemetry.snmp.interfaces import InterfaceBinding
from switch_telemetry.snmp.oid_maps import create_oid
from switch_telemetry.snmp.values import CounterDecodeError, decode_counter

logger = logging.getLogger(__name__)


class CollectionError(Exception):
    """A sampling cycle failed and was skipped; counter state is unchanged."""


@dataclass
class CounterState:
    """Per-OID state; identity fields are fixed, the rest is mutated by cycles."""

    oid: str
    name: str
    role: InterfaceRole
    if_descr: str
    if_alias: str
    archive_metric: str
    previous_value: int = 0
    primed: bool = False
    samples: list[Sample] = field(default_factory=list)


@dataclass(frozen=True)
class _PendingArchive:
    start: datetime
    end: datetime
    documents: list[IntervalDocument]


def build_counter_table(
    definitions: Iterable[MetricDefinition],
    bindings: Mapping[InterfaceRole, InterfaceBinding],
) -> dict[str, CounterState]:
    """Cross product of metric definitions and resolved interfaces, keyed by OID."""
    table: dict[str, CounterState] = {}
    for metric in definitions:
        for role, binding in bindings.items():
            oid = create_oid(metric.oid_stub, binding.if_index)
            if oid in table:
                raise ValueError(f"OID {oid} tracked twice ({metric.name}, {role.value})")
            table[oid] = CounterState(
                oid=oid,
                name=metric.name,
                role=role,
                if_descr=binding.if_descr,
                if_alias=binding.if_alias,
                archive_metric=metric.archive_name(role),
            )
    return table


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CounterAggregator:
    """
    Tracks switch counters between the sampling and the archive cycle.

    The exporter and archive writer are injected; the aggregator keeps no
    module-level state.
    """

    def __init__(
        self,
        engine: Any,
        target: SnmpTarget,
        definitions: Iterable[MetricDefinition],
        bindings: Mapping[InterfaceRole, InterfaceBinding],
        *,
        hostname: str,
        experiment: str,
        exporter: MetricsExporter,
        archive_writer: ArchiveWriter,
        archive_failure_fatal: bool = True,
        interval_start: datetime | None = None,
        clock_ns: Callable[[], int] = time.time_ns,
    ) -> None:
        self._engine = engine
        self._target = target
        self._hostname = hostname
        self._experiment = experiment
        self._exporter = exporter
        self._archive_writer = archive_writer
        self._archive_failure_fatal = archive_failure_fatal
        self._clock_ns = clock_ns

        self._counters = build_counter_table(definitions, bindings)
        self._lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()
        self._unwritten: list[_PendingArchive] = []
        self.interval_start = interval_start or _utcnow()

    # ── Introspection ────────────────────────────────────────────

    @property
    def oids(self) -> list[str]:
        return list(self._counters)

    @property
    def first_run(self) -> bool:
        """True until the first successful sampling cycle."""
        return not any(state.primed for state in self._counters.values())

    @property
    def unwritten_batches(self) -> int:
        """Flushes whose archive write failed and is still pending."""
        return len(self._unwritten)

    def counter(self, oid: str) -> CounterState:
        return self._counters[oid]

    # ── Sampling cycle ───────────────────────────────────────────

    async def sample(self, now: datetime) -> None:
        """
        Run one sampling cycle stamped with the logical cycle time ``now``.

        Raises:
            CollectionError: the GET failed, returned nothing, or returned a
                value that is not a counter. No counter is modified.
        """
        timestamp = int(now.timestamp())

        async with self._lock:
            oids = list(self._counters)

            collect_start = self._clock_ns()
            t0 = time.perf_counter()
            try:
                raw = await self._engine.get(self._target, *oids)
            except SnmpError as e:
                raise self._collection_error(
                    f"failed to GET {len(oids)} OIDs from {self._target.ip}: {e}"
                ) from e
            collect_end = self._clock_ns()

            if not raw:
                raise self._collection_error(
                    f"No results returned from server for oids: {oids}"
                )

            self._exporter.observe_collect_duration(time.perf_counter() - t0)

            # Decode everything before touching state so a bad value aborts
            # the cycle without partial updates.
            values: dict[str, int] = {}
            for oid, value in raw.items():
                if oid not in self._counters:
                    logger.warning("Ignoring unrequested OID %s in response", oid)
                    continue
                try:
                    values[oid] = decode_counter(oid, value)
                except CounterDecodeError as e:
                    raise self._collection_error(str(e)) from e

            for oid, current in values.items():
                self._apply(self._counters[oid], current, timestamp, collect_start, collect_end)

            missing = len(oids) - len(values)
            if missing:
                logger.warning(
                    "%d of %d OIDs missing from response on %s",
                    missing, len(oids), self._target.ip,
                )

        logger.debug("Collected %d counters at %d", len(values), timestamp)

    def _apply(
        self,
        state: CounterState,
        current: int,
        timestamp: int,
        collect_start: int,
        collect_end: int,
    ) -> None:
        if state.primed:
            if current < state.previous_value:
                logger.warning(
                    "Counter %s (%s/%s) went backwards %d -> %d, "
                    "treating as reset",
                    state.oid, state.name, state.role.value,
                    state.previous_value, current,
                )
            else:
                increase = current - state.previous_value
                state.samples.append(
                    Sample(
                        timestamp=timestamp,
                        collect_start=collect_start,
                        collect_end=collect_end,
                        value=increase,
                    )
                )
                self._exporter.add_increase(state.name, state.if_descr, increase)

        state.previous_value = current
        state.primed = True

    def _collection_error(self, message: str) -> CollectionError:
        """Count and log a failed cycle; the caller raises the result."""
        self._exporter.inc_collect_error()
        logger.error("Collection failed: %s", message)
        return CollectionError(message)

    # ── Archive cycle ────────────────────────────────────────────

    async def flush(self, now: datetime) -> list[IntervalDocument]:
        """
        Drain every counter into an IntervalDocument and archive them.

        The interval archived is [interval_start, now]; afterwards
        interval_start is ``now``.

        Returns:
            One document per tracked counter (possibly with no samples).

        Raises:
            ArchiveWriteError: the write failed and the failure policy is fatal.
        """
        async with self._lock:
            documents = self.drain()

        start = self.interval_start
        self.interval_start = now
        self._unwritten.append(_PendingArchive(start, now, documents))
        await self._write_pending()
        return documents

    def drain(self) -> list[IntervalDocument]:
        """Build documents and reset every sample list. Caller holds the lock."""
        documents: list[IntervalDocument] = []
        for state in self._counters.values():
            documents.append(
                IntervalDocument(
                    experiment=self._experiment,
                    hostname=self._hostname,
                    metric=state.archive_metric,
                    samples=state.samples,
                )
            )
            state.samples = []
        return documents

    async def _write_pending(self) -> None:
        """Write queued batches oldest first; stop at the first failure."""
        async with self._write_lock:
            while self._unwritten:
                batch = self._unwritten[0]
                try:
                    await self._archive_writer.write_async(
                        batch.start, batch.end, batch.documents,
                    )
                except ArchiveWriteError:
                    if self._archive_failure_fatal:
                        raise
                    logger.error(
                        "Archive write failed, %d batch(es) queued for retry",
                        len(self._unwritten),
                    )
                    return
                self._unwritten.pop(0)

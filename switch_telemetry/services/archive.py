"""
Archive Writer.

Persists one flush worth of IntervalDocuments as a JSONL file:

    <data_dir>/switch/<YYYY>/<MM>/<DD>/<hostname>/<start>-to-<end>-switch.jsonl

The date directory is taken from the interval end; all times are UTC.
Files are written to a temporary name first and renamed into place, so a
reader never sees a partial archive.
"""
from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path

from switch_telemetry.schemas.archive import IntervalDocument

logger = logging.getLogger(__name__)

_NAME_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"


class ArchiveWriteError(Exception):
    """Raised when an archive file could not be written."""


def _utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def get_relative_path(start: datetime, end: datetime, hostname: str) -> Path:
    """Archive path below ``<data_dir>/switch`` for an interval."""
    start, end = _utc(start), _utc(end)
    name = (
        f"{start.strftime(_NAME_TIME_FORMAT)}-to-"
        f"{end.strftime(_NAME_TIME_FORMAT)}-switch.jsonl"
    )
    return Path(end.strftime("%Y/%m/%d")) / hostname / name


def get_path(start: datetime, end: datetime, data_dir: str | Path, hostname: str) -> Path:
    """Full filesystem path where the archive for an interval is written."""
    return Path(data_dir) / "switch" / get_relative_path(start, end, hostname)


def render_documents(documents: Sequence[IntervalDocument]) -> str:
    """JSONL body: one document per line."""
    return "".join(doc.to_json_line() + "\n" for doc in documents)


class ArchiveWriter:
    """Writes flushed interval documents under a data directory."""

    def __init__(self, data_dir: str | Path, hostname: str) -> None:
        self.data_dir = Path(data_dir)
        self.hostname = hostname

    def path_for(self, start: datetime, end: datetime) -> Path:
        return get_path(start, end, self.data_dir, self.hostname)

    def write(
        self,
        start: datetime,
        end: datetime,
        documents: Sequence[IntervalDocument],
    ) -> Path:
        """
        Write documents for the interval [start, end] synchronously.

        Raises:
            ArchiveWriteError: directory creation or file write failed.
        """
        archive_path = self.path_for(start, end)
        tmp_path = archive_path.with_name(archive_path.name + ".tmp")
        body = render_documents(documents)

        try:
            archive_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(
                "Failed to create archive directory path '%s': %s",
                archive_path.parent, e,
            )
            raise ArchiveWriteError(
                f"cannot create {archive_path.parent}: {e}"
            ) from e

        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(body)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, archive_path)
        except OSError as e:
            logger.error("Failed to write archive file '%s': %s", archive_path, e)
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                logger.warning("Could not remove partial archive %s", tmp_path)
            raise ArchiveWriteError(f"cannot write {archive_path}: {e}") from e

        logger.info(
            "Wrote %d documents to %s", len(documents), archive_path,
        )
        return archive_path

    async def write_async(
        self,
        start: datetime,
        end: datetime,
        documents: Sequence[IntervalDocument],
    ) -> Path:
        """write() on a worker thread so disk I/O never blocks the event loop."""
        return await asyncio.to_thread(self.write, start, end, documents)

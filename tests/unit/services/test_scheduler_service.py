"""Tests for the sample/flush scheduler."""
import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from switch_fixtures import HOSTNAME, TARGET, counters
from switch_telemetry.services.aggregator import CollectionError, CounterAggregator
from switch_telemetry.services.archive import ArchiveWriteError
from switch_telemetry.services.scheduler import (
    EXIT_ARCHIVE_FAILURE,
    EXIT_OK,
    SchedulerService,
    next_boundary,
)

T0 = datetime(2020, 6, 11, 18, 13, 30, tzinfo=timezone.utc)


@pytest.fixture
def fake_aggregator():
    aggregator = MagicMock()
    aggregator.sample = AsyncMock()
    aggregator.flush = AsyncMock(return_value=[])
    aggregator.unwritten_batches = 0
    return aggregator


@pytest.fixture
def service(fake_aggregator):
    return SchedulerService(fake_aggregator, write_interval_seconds=300, align_start=False)


class TestNextBoundary:
    def test_on_boundary(self):
        assert next_boundary(T0, 10) == T0

    def test_rounds_up(self):
        assert next_boundary(T0 + timedelta(seconds=3.5), 10) == T0 + timedelta(seconds=10)

    def test_just_past_boundary(self):
        now = T0 + timedelta(microseconds=250_000)
        assert next_boundary(now, 10) == T0 + timedelta(seconds=10)

    def test_just_before_boundary_lands_on_whole_second(self):
        boundary = next_boundary(T0 - timedelta(microseconds=1), 10)
        assert boundary == T0
        assert boundary.microsecond == 0
        assert int(boundary.timestamp()) == int(T0.timestamp())


class TestCycles:
    @pytest.mark.asyncio
    async def test_run_sample_passes_cycle_time(self, service, fake_aggregator):
        assert await service.run_sample(T0) is True
        fake_aggregator.sample.assert_awaited_once_with(T0)

    @pytest.mark.asyncio
    async def test_failed_sample_is_skipped(self, service, fake_aggregator):
        fake_aggregator.sample.side_effect = CollectionError("timeout")

        assert await service.run_sample(T0) is False
        assert service.exit_code == EXIT_OK

    @pytest.mark.asyncio
    async def test_archive_failure_requests_stop(self, service, fake_aggregator):
        fake_aggregator.flush.side_effect = ArchiveWriteError("disk full")

        assert await service.run_flush(T0) is False
        assert service.exit_code == EXIT_ARCHIVE_FAILURE

    @pytest.mark.asyncio
    async def test_successful_flush(self, service, fake_aggregator):
        assert await service.run_flush(T0) is True
        fake_aggregator.flush.assert_awaited_once_with(T0)
        assert service.exit_code == EXIT_OK


class TestRun:
    @pytest.mark.asyncio
    async def test_run_samples_immediately_and_flushes_on_stop(self, service, fake_aggregator):
        task = asyncio.create_task(service.run())
        await asyncio.sleep(0.05)

        jobs = {job["id"]: job for job in service.get_jobs()}
        assert set(jobs) == {"sample", "flush"}
        fake_aggregator.sample.assert_awaited_once()

        service.request_stop()
        assert await task == EXIT_OK
        fake_aggregator.flush.assert_awaited_once()
        assert not service.scheduler.running

    @pytest.mark.asyncio
    async def test_interval_start_is_set_on_start(self, service, fake_aggregator):
        task = asyncio.create_task(service.run())
        await asyncio.sleep(0.05)
        service.request_stop()
        await task

        start = fake_aggregator.interval_start
        assert isinstance(start, datetime)
        fake_aggregator.sample.assert_awaited_once_with(start)

    @pytest.mark.asyncio
    async def test_fatal_stop_skips_final_flush(self, service, fake_aggregator):
        task = asyncio.create_task(service.run())
        await asyncio.sleep(0.05)

        service.request_stop(EXIT_ARCHIVE_FAILURE)

        assert await task == EXIT_ARCHIVE_FAILURE
        fake_aggregator.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_final_flush_failure_sets_exit_code(self, service, fake_aggregator):
        fake_aggregator.flush.side_effect = ArchiveWriteError("disk full")
        task = asyncio.create_task(service.run())
        await asyncio.sleep(0.05)

        service.request_stop()

        assert await task == EXIT_ARCHIVE_FAILURE


class TestShutdown:
    @pytest.mark.asyncio
    async def test_stop_lets_in_flight_sample_finish(self, fake_aggregator):
        get_started = asyncio.Event()
        completed = []

        async def _sample(now):
            if fake_aggregator.sample.await_count == 1:
                return
            get_started.set()
            await asyncio.sleep(0.3)
            completed.append(now)

        fake_aggregator.sample.side_effect = _sample
        fake_aggregator.flush.side_effect = lambda now: completed.append("flush") or []
        service = SchedulerService(
            fake_aggregator, write_interval_seconds=300,
            sample_interval_seconds=1, align_start=False,
        )

        task = asyncio.create_task(service.run())
        await asyncio.wait_for(get_started.wait(), timeout=5)
        service.request_stop()

        assert await asyncio.wait_for(task, timeout=5) == EXIT_OK
        assert len(completed) == 2
        assert isinstance(completed[0], datetime)
        assert completed[1] == "flush"

    @pytest.mark.asyncio
    async def test_unwritten_batches_at_exit_fail_the_process(
        self, engine, snmp_target, definitions, bindings, exporter, archive_writer,
        monkeypatch,
    ):
        async def _fail(*args, **kwargs):
            raise ArchiveWriteError("disk full")

        monkeypatch.setattr(archive_writer, "write_async", _fail)
        engine.get.return_value = counters(1, 1, 1, 1)
        aggregator = CounterAggregator(
            engine, snmp_target, definitions, bindings,
            hostname=HOSTNAME, experiment=TARGET,
            exporter=exporter, archive_writer=archive_writer,
            archive_failure_fatal=False,
        )
        service = SchedulerService(aggregator, write_interval_seconds=300, align_start=False)

        task = asyncio.create_task(service.run())
        await asyncio.sleep(0.05)
        service.request_stop()

        assert await task == EXIT_ARCHIVE_FAILURE
        assert aggregator.unwritten_batches == 1

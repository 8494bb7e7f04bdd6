"""Tests for the DHT22 publisher service."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from hatsensor.dht.polling import DHTPublisherService, main, run
from hatsensor.lib.exceptions import (
    ConnectError,
    PublishError,
    SampleError,
    SerializationError,
)
from hatsensor.lib.service import ShutdownSignal, run_service


async def _wait_until(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


class TestPoll:
    """Tests for sampling within a tick."""

    @pytest.mark.asyncio
    async def test_returns_reading(
        self, make_sampler, make_transport, make_session, sample_reading
    ):
        session = make_session(make_sampler([sample_reading]), make_transport())
        service = DHTPublisherService(session)

        assert await service.poll() is sample_reading

    @pytest.mark.asyncio
    async def test_sample_error_skips_tick(
        self, make_sampler, make_transport, make_session, caplog
    ):
        sampler = make_sampler([SampleError("No valid reading", attempts=11)])
        service = DHTPublisherService(make_session(sampler, make_transport()))

        assert await service.poll() is None
        assert "Read error: No valid reading" in caplog.text


class TestPublish:
    """Tests for publishing a reading."""

    @pytest.mark.asyncio
    async def test_publishes_json_to_topic(
        self, make_sampler, make_transport, make_session, sample_reading
    ):
        transport = make_transport()
        service = DHTPublisherService(
            make_session(make_sampler([sample_reading]), transport)
        )

        await service.publish(sample_reading)

        topic, payload, _ = transport.calls[0]
        assert topic == "sensors/test"
        assert json.loads(payload) == {
            "humidity": "55.2",
            "temperature": "21.3",
            "pressure": "0",
            "sensor_id": "TEST-01",
            "timestamp": "2024-06-15T12:00:00Z",
        }

    @pytest.mark.asyncio
    async def test_serialization_error_skips_publish(
        self, make_sampler, make_transport, make_session, caplog
    ):
        reading = MagicMock()
        reading.to_json.side_effect = SerializationError("bad value")
        transport = make_transport()
        service = DHTPublisherService(
            make_session(make_sampler([reading]), transport)
        )

        await service.publish(reading)

        assert transport.calls == []
        assert "Error marshalling reading, skipping" in caplog.text

    @pytest.mark.asyncio
    async def test_publish_error_propagates(
        self, make_sampler, make_transport, make_session, sample_reading
    ):
        transport = make_transport(fail_on={1})
        service = DHTPublisherService(
            make_session(make_sampler([sample_reading]), transport)
        )

        with pytest.raises(PublishError):
            await service.publish(sample_reading)


class TestPublishLoop:
    """End-to-end tests of the publishing loop."""

    @pytest.mark.asyncio
    async def test_failed_read_skips_only_its_tick(
        self, make_sampler, make_transport, make_session, sample_reading, caplog
    ):
        sampler = make_sampler(
            [sample_reading, SampleError("Checksum did not validate"), sample_reading]
        )
        transport = make_transport()
        service = DHTPublisherService(make_session(sampler, transport))
        shutdown = ShutdownSignal()

        task = asyncio.create_task(service.run(shutdown))
        await _wait_until(lambda: sampler.calls >= 3 and len(transport.calls) >= 2)
        assert not task.done()
        shutdown.trigger()
        await asyncio.wait_for(task, 2.0)

        # every completed read was published, the failed one was not
        assert len(transport.calls) == sampler.calls - 1
        assert caplog.text.count("Read error:") == 1
        assert all(topic == "sensors/test" for topic, _, _ in transport.calls)

    @pytest.mark.asyncio
    async def test_publish_failure_stops_service(
        self, make_sampler, make_transport, make_session, sample_reading
    ):
        sampler = make_sampler([sample_reading])
        transport = make_transport(fail_on={1})
        session = make_session(sampler, transport)
        service = DHTPublisherService(session)

        with pytest.raises(PublishError):
            await asyncio.wait_for(service.run(ShutdownSignal()), 2.0)

        assert len(transport.calls) == 1
        assert transport.disconnects == [250]
        assert sampler.closed

    @pytest.mark.asyncio
    async def test_publishes_spaced_by_interval_and_never_overlap(
        self, make_sampler, make_transport, make_session, sample_reading
    ):
        sampler = make_sampler([sample_reading])
        transport = make_transport(delay_sec=0.02)
        service = DHTPublisherService(
            make_session(sampler, transport, interval_sec=0.05)
        )
        shutdown = ShutdownSignal()

        task = asyncio.create_task(service.run(shutdown))
        await _wait_until(lambda: len(transport.calls) >= 3)
        shutdown.trigger()
        await asyncio.wait_for(task, 2.0)

        times = [at for _, _, at in transport.calls]
        gaps = [later - earlier for earlier, later in zip(times, times[1:])]
        # allow for timer granularity
        assert all(gap >= 0.045 for gap in gaps)
        assert transport.max_concurrent == 1

    @pytest.mark.asyncio
    async def test_shutdown_during_publish_completes_it(
        self, make_sampler, make_transport, make_session, sample_reading
    ):
        shutdown = ShutdownSignal()
        loop = asyncio.get_running_loop()
        sampler = make_sampler([sample_reading])
        transport = make_transport(
            delay_sec=0.05,
            on_publish=lambda n: loop.call_soon_threadsafe(shutdown.trigger),
        )
        session = make_session(sampler, transport)
        service = DHTPublisherService(session)

        await asyncio.wait_for(service.run(shutdown), 2.0)

        assert len(transport.calls) == 1
        assert transport.disconnects == [250]
        assert sampler.closed
        assert session.closed

    @pytest.mark.asyncio
    async def test_shutdown_between_ticks_publishes_nothing(
        self, make_sampler, make_transport, make_session, sample_reading
    ):
        sampler = make_sampler([sample_reading])
        transport = make_transport()
        service = DHTPublisherService(
            make_session(sampler, transport, interval_sec=10)
        )
        shutdown = ShutdownSignal()

        task = asyncio.create_task(service.run(shutdown))
        await asyncio.sleep(0.02)
        shutdown.trigger()
        await asyncio.wait_for(task, 1.0)

        assert sampler.calls == 0
        assert transport.calls == []
        assert transport.disconnects == [250]


class TestRun:
    """Tests for the service entry points."""

    @pytest.mark.asyncio
    async def test_run_opens_session_from_settings(
        self, settings, make_sampler, make_transport, make_session, sample_reading
    ):
        session = make_session(make_sampler([sample_reading]), make_transport())
        shutdown = ShutdownSignal()
        shutdown.trigger()

        with (
            patch("hatsensor.dht.polling.get_settings", return_value=settings),
            patch(
                "hatsensor.dht.polling.open_session",
                new=AsyncMock(return_value=session),
            ) as mock_open,
        ):
            await run(shutdown)

        mock_open.assert_awaited_once_with(settings)
        assert session.closed

    def test_publish_failure_exits_non_zero(
        self, settings, make_sampler, make_transport, make_session, sample_reading
    ):
        transport = make_transport(fail_on={1})
        session = make_session(make_sampler([sample_reading]), transport)

        with (
            patch("hatsensor.dht.polling.get_settings", return_value=settings),
            patch(
                "hatsensor.dht.polling.open_session",
                new=AsyncMock(return_value=session),
            ),
        ):
            code = run_service(run, name="dht")

        assert code == 1
        assert len(transport.calls) == 1
        assert session.closed

    def test_startup_failure_exits_non_zero(self, settings, caplog):
        with (
            patch("hatsensor.dht.polling.get_settings", return_value=settings),
            patch(
                "hatsensor.dht.polling.open_session",
                new=AsyncMock(side_effect=ConnectError("broker unreachable")),
            ),
        ):
            code = run_service(run, name="dht")

        assert code == 1
        assert "Dht service terminated: broker unreachable" in caplog.text

    def test_main_raises_system_exit(self):
        with patch("hatsensor.dht.polling.run_service", return_value=0):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 0

"""
Unit Tests for TimeoutSupervisor

Tests for:
- arm / cancel / re-arm
- arm_if_idle decisions by sink status and queue
- firing, active-sink skip, and teardown error containment
"""

import asyncio

import pytest

from conftest import GUILD_A, GUILD_B, FakeSink
from guild_audio_bot.application.services.timeout_supervisor import TimeoutSupervisor
from guild_audio_bot.config.settings import TimeoutSettings
from guild_audio_bot.domain.session.entities import AudioSession, TrackDescriptor
from guild_audio_bot.domain.session.value_objects import SinkStatus
from guild_audio_bot.domain.shared.exceptions import TimeoutFired


class TeardownRecorder:
    def __init__(self, error: Exception | None = None) -> None:
        self.calls: list[tuple[int, TimeoutFired]] = []
        self.error = error

    async def __call__(self, guild_id: int, event: TimeoutFired) -> None:
        self.calls.append((guild_id, event))
        if self.error is not None:
            raise self.error


@pytest.fixture
def teardown():
    return TeardownRecorder()


@pytest.fixture
def supervisor(store, teardown):
    settings = TimeoutSettings(idle_seconds=0.02, paused_seconds=0.05)
    return TimeoutSupervisor(store, settings, teardown)


def add_session(store, status: SinkStatus, queued: int = 0) -> FakeSink:
    sink = FakeSink()
    sink.current_status = status
    session = AudioSession(guild_id=GUILD_A, sink=sink)
    for n in range(queued):
        session.enqueue(TrackDescriptor(title=f"t{n}", url=f"https://x/{n}"))
    store.sessions[GUILD_A] = session
    return sink


# =============================================================================
# Arm / Cancel
# =============================================================================


class TestArmCancel:
    @pytest.mark.asyncio
    async def test_arm_registers_handle(self, supervisor, store):
        handle = supervisor.arm(GUILD_A, 10)

        assert store.timeout_handles[GUILD_A] is handle
        assert supervisor.is_armed(GUILD_A)
        assert handle.delay == 10

    @pytest.mark.asyncio
    async def test_rearm_cancels_previous(self, supervisor, store):
        first = supervisor.arm(GUILD_A, 10)
        second = supervisor.arm(GUILD_A, 10)
        await asyncio.sleep(0)

        assert first.task.cancelled()
        assert store.timeout_handles[GUILD_A] is second

    @pytest.mark.asyncio
    async def test_cancel(self, supervisor, store):
        supervisor.arm(GUILD_A, 10)

        assert supervisor.cancel(GUILD_A) is True
        assert supervisor.cancel(GUILD_A) is False
        assert GUILD_A not in store.timeout_handles

    @pytest.mark.asyncio
    async def test_cancel_all(self, supervisor, store):
        supervisor.arm(GUILD_A, 10)
        supervisor.arm(GUILD_B, 10)

        assert supervisor.cancel_all() == 2
        assert store.timeout_handles == {}

    @pytest.mark.asyncio
    async def test_handle_cancel_idempotent(self, supervisor):
        handle = supervisor.arm(GUILD_A, 10)

        assert handle.cancel() is True
        await asyncio.sleep(0)
        assert handle.cancel() is False


# =============================================================================
# arm_if_idle
# =============================================================================


class TestArmIfIdle:
    @pytest.mark.asyncio
    async def test_no_session_arms_idle(self, supervisor):
        handle = supervisor.arm_if_idle(GUILD_A)
        assert handle is not None
        assert handle.delay == 0.02

    @pytest.mark.asyncio
    async def test_paused_uses_paused_delay(self, supervisor, store):
        add_session(store, SinkStatus.PAUSED)

        handle = supervisor.arm_if_idle(GUILD_A)

        assert handle.delay == 0.05

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [SinkStatus.PLAYING, SinkStatus.BUFFERING])
    async def test_active_sink_not_armed(self, supervisor, store, status):
        add_session(store, status)

        assert supervisor.arm_if_idle(GUILD_A) is None
        assert not supervisor.is_armed(GUILD_A)

    @pytest.mark.asyncio
    async def test_queued_tracks_on_idle_sink_armed(self, supervisor, store):
        """Tracks left waiting after a failed advance still let the guild time out."""
        add_session(store, SinkStatus.IDLE, queued=1)

        handle = supervisor.arm_if_idle(GUILD_A)

        assert handle is not None
        assert handle.delay == 0.02


# =============================================================================
# Firing
# =============================================================================


class TestFiring:
    @pytest.mark.asyncio
    async def test_fires_teardown(self, supervisor, store, teardown):
        supervisor.arm(GUILD_A, 0.01)
        await asyncio.sleep(0.05)

        assert len(teardown.calls) == 1
        guild_id, event = teardown.calls[0]
        assert guild_id == GUILD_A
        assert isinstance(event, TimeoutFired)
        assert event.delay_seconds == 0.01
        assert GUILD_A not in store.timeout_handles

    @pytest.mark.asyncio
    async def test_cancelled_timer_never_fires(self, supervisor, teardown):
        supervisor.arm(GUILD_A, 0.01)
        supervisor.cancel(GUILD_A)
        await asyncio.sleep(0.05)

        assert teardown.calls == []

    @pytest.mark.asyncio
    async def test_skips_when_sink_became_active(self, supervisor, store, teardown):
        sink = add_session(store, SinkStatus.IDLE)
        supervisor.arm(GUILD_A, 0.01)
        sink.current_status = SinkStatus.PLAYING
        await asyncio.sleep(0.05)

        assert teardown.calls == []
        assert GUILD_A not in store.timeout_handles

    @pytest.mark.asyncio
    async def test_teardown_error_is_contained(self, store):
        recorder = TeardownRecorder(error=RuntimeError("boom"))
        supervisor = TimeoutSupervisor(store, TimeoutSettings(), recorder)

        handle = supervisor.arm(GUILD_A, 0.01)
        await asyncio.sleep(0.05)

        assert handle.done
        assert handle.task.exception() is None
        assert len(recorder.calls) == 1

    @pytest.mark.asyncio
    async def test_no_teardown_callback(self, store):
        supervisor = TimeoutSupervisor(store)

        handle = supervisor.arm(GUILD_A, 0.01)
        await asyncio.sleep(0.05)

        assert handle.done

import asyncio

import pytest
import pytest_asyncio

from guild_audio_bot.application.interfaces.audio_sink import AudioSink, VolumeControl
from guild_audio_bot.application.interfaces.stream_resolver import ResolvedStream, StreamResolver
from guild_audio_bot.domain.session.value_objects import SinkStatus
from guild_audio_bot.domain.shared.exceptions import CapabilityUnavailable

GUILD_A = 111111111111111111
GUILD_B = 222222222222222222


# ============================================================================
# Fakes
# ============================================================================


class FakeVolumeControl(VolumeControl):
    def __init__(self, fail: bool = False) -> None:
        self.applied: list[int] = []
        self.fail = fail

    def set_volume(self, percent: int) -> None:
        if self.fail:
            raise CapabilityUnavailable("volume")
        self.applied.append(percent)


class FakeSink(AudioSink):
    """In-memory sink recording every call."""

    def __init__(self, *, connected: bool = True, volume: FakeVolumeControl | None = None) -> None:
        self.connected = connected
        self.current_status = SinkStatus.IDLE
        self.volume = volume
        self.started: list[tuple[str, int]] = []
        self.stop_calls = 0
        self.fail_start: Exception | None = None

    @property
    def is_connected(self) -> bool:
        return self.connected

    def status(self) -> SinkStatus:
        return self.current_status

    def volume_control(self) -> VolumeControl | None:
        return self.volume

    async def start(self, track, volume: int = 100) -> None:
        if self.fail_start is not None:
            raise self.fail_start
        self.started.append((track.title, volume))
        self.current_status = SinkStatus.PLAYING

    def stop(self) -> None:
        self.stop_calls += 1
        self.current_status = SinkStatus.IDLE

    def pause(self) -> bool:
        if self.current_status != SinkStatus.PLAYING:
            return False
        self.current_status = SinkStatus.PAUSED
        return True

    def resume(self) -> bool:
        if self.current_status != SinkStatus.PAUSED:
            return False
        self.current_status = SinkStatus.PLAYING
        return True


class FakeResolver(StreamResolver):
    """Resolver answering from dicts; can be held open with ``gate``."""

    def __init__(self) -> None:
        self.results: dict[str, ResolvedStream | Exception] = {}
        self.playlists: dict[str, tuple[ResolvedStream, ...] | Exception] = {}
        self.calls: list[tuple[str, int]] = []
        self.playlist_calls: list[tuple[str, int]] = []
        self.gate: asyncio.Event | None = None

    async def resolve(self, query: str, guild_id: int) -> ResolvedStream:
        self.calls.append((query, guild_id))
        if self.gate is not None:
            await self.gate.wait()
        result = self.results.get(query)
        if isinstance(result, Exception):
            raise result
        if result is None:
            return ResolvedStream(
                title=f"Title of {query}",
                duration_seconds=180,
                canonical_url=f"https://www.youtube.com/watch?v={abs(hash(query)) % 10_000}",
                stream_url="https://stream.example/audio",
            )
        return result

    async def resolve_playlist(self, url: str, guild_id: int) -> tuple[ResolvedStream, ...]:
        self.playlist_calls.append((url, guild_id))
        if self.gate is not None:
            await self.gate.wait()
        result = self.playlists.get(url, ())
        if isinstance(result, Exception):
            raise result
        return result


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def store():
    from guild_audio_bot.domain.session.store import SessionStore

    return SessionStore()


@pytest.fixture
def sink():
    return FakeSink(volume=FakeVolumeControl())


@pytest.fixture
def resolver():
    return FakeResolver()


@pytest.fixture
def sample_track():
    from guild_audio_bot.domain.session.entities import TrackDescriptor
    from guild_audio_bot.domain.session.value_objects import TrackSource

    return TrackDescriptor(
        title="Test Track",
        url="https://www.youtube.com/watch?v=test123",
        duration_ms=180_000,
        thumbnail_url="https://img.example/thumb.jpg",
        source=TrackSource.YOUTUBE,
        stream_url="https://stream.example/test",
    )


@pytest.fixture
def settings():
    from guild_audio_bot.config.settings import (
        CleanupSettings,
        Settings,
        TimeoutSettings,
    )

    return Settings(
        environment="test",
        timeouts=TimeoutSettings(idle_seconds=0.05, paused_seconds=0.1),
        cleanup=CleanupSettings(cleanup_interval_minutes=1, reap_interval_seconds=1),
    )


@pytest_asyncio.fixture
async def container(settings, resolver):
    """Container wired with the fake resolver and a probe that sees no processes."""
    from guild_audio_bot.config.container import create_container
    from guild_audio_bot.infrastructure.processes.registry import ProcessRegistry

    c = create_container(settings)
    c._process_registry = ProcessRegistry(c.store, probe=lambda pid: False, killer=lambda pid: None)
    c._stream_resolver = resolver
    yield c
    await c.shutdown()

"""
Unit Tests for PlaybackService

Tests for:
- The play flow: validation, dedup, loading, start vs queue
- Failure paths: resolver errors, sink start errors, supersede
- Transport controls: skip, stop, pause, resume
- Lifecycle events: natural track end and inactivity timeout
- Advancing past tracks that fail to start, skip during a fetch
- Lazily loaded playlists and the auto-advance toggle
"""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from conftest import GUILD_A, FakeSink
from guild_audio_bot.application.interfaces.stream_resolver import ResolvedStream
from guild_audio_bot.application.services.playback_service import (
    PlayResult,
    PlayStatus,
    is_playlist_url,
    to_descriptor,
)
from guild_audio_bot.application.services.query_deduplicator import StreamDetails
from guild_audio_bot.domain.session.value_objects import SinkStatus, TrackSource, UIState
from guild_audio_bot.domain.shared.exceptions import ResolutionFailure, TimeoutFired
from guild_audio_bot.domain.shared.messages import DiscordUIMessages, ErrorMessages, LogTemplates


@pytest.fixture
def playback(container):
    return container.playback_service


async def start_playing(playback, sink, query="first song"):
    result = await playback.play(GUILD_A, query, sink=sink)
    assert result.status == PlayStatus.NOW_PLAYING
    return result


# =============================================================================
# Helpers
# =============================================================================


class TestPlayResult:
    def test_queued_message_is_one_based(self, sample_track):
        result = PlayResult.queued(sample_track, 0)

        assert result.message == "✅ Added to queue: **Test Track** (position 1)"
        assert result.queue_position == 0
        assert result.is_success

    def test_error_not_success(self):
        assert not PlayResult.error(PlayStatus.FAILED, "x").is_success

    def test_to_descriptor_detects_source(self):
        details = StreamDetails(
            title="t", duration_seconds=3, url="https://open.spotify.com/track/1"
        )

        track = to_descriptor(details)

        assert track.source == TrackSource.SPOTIFY
        assert track.duration_ms == 3000


# =============================================================================
# Play
# =============================================================================


class TestPlay:
    @pytest.mark.asyncio
    async def test_empty_query(self, playback, sink):
        result = await playback.play(GUILD_A, "   ", sink=sink)

        assert result.status == PlayStatus.FAILED
        assert result.message == DiscordUIMessages.ERROR_EMPTY_QUERY

    @pytest.mark.asyncio
    async def test_not_connected(self, playback, resolver):
        result = await playback.play(GUILD_A, "song", sink=FakeSink(connected=False))

        assert result.status == PlayStatus.NOT_CONNECTED
        assert resolver.calls == []

    @pytest.mark.asyncio
    async def test_no_sink(self, playback):
        result = await playback.play(GUILD_A, "song")
        assert result.status == PlayStatus.NOT_CONNECTED

    @pytest.mark.asyncio
    async def test_starts_when_idle(self, playback, container, sink):
        result = await playback.play(GUILD_A, "song", sink=sink)

        assert result.status == PlayStatus.NOW_PLAYING
        assert result.message == DiscordUIMessages.NOW_PLAYING.format(title="Title of song")
        assert sink.started == [("Title of song", 100)]

        session = container.session_registry.get(GUILD_A)
        assert session.current_track.title == "Title of song"
        assert session.started_at is not None
        assert container.state_coordinator.current(GUILD_A) == UIState.PLAYING
        assert not container.deduplicator.is_active(GUILD_A)

    @pytest.mark.asyncio
    async def test_queues_when_busy(self, playback, container, sink):
        await start_playing(playback, sink)

        result = await playback.play(GUILD_A, "second song", sink=sink)

        assert result.status == PlayStatus.QUEUED
        assert result.queue_position == 0
        assert "(position 1)" in result.message
        assert len(sink.started) == 1
        assert container.session_registry.get(GUILD_A).lazy_load_info.total_count == 1

    @pytest.mark.asyncio
    async def test_queues_when_paused(self, playback, sink):
        await start_playing(playback, sink)
        playback.pause(GUILD_A)

        result = await playback.play(GUILD_A, "second song", sink=sink)

        assert result.status == PlayStatus.QUEUED

    @pytest.mark.asyncio
    async def test_duplicate_while_resolving(self, playback, resolver, sink):
        resolver.gate = asyncio.Event()
        first = asyncio.create_task(playback.play(GUILD_A, "slow song", sink=sink))
        await asyncio.sleep(0)

        second = await playback.play(GUILD_A, "other song", sink=sink)

        assert second.status == PlayStatus.DUPLICATE
        assert "slow song" in second.message

        resolver.gate.set()
        assert (await first).status == PlayStatus.NOW_PLAYING

    @pytest.mark.asyncio
    async def test_loading_state_during_resolve(self, playback, container, resolver, sink):
        resolver.gate = asyncio.Event()
        task = asyncio.create_task(playback.play(GUILD_A, "slow song", sink=sink))
        await asyncio.sleep(0)

        panel = container.state_coordinator.panel(GUILD_A)
        assert panel.state == UIState.LOADING
        assert panel.loading_title == "slow song"

        resolver.gate.set()
        await task

    @pytest.mark.asyncio
    async def test_resolver_failure(self, playback, container, resolver, sink):
        resolver.results["bad"] = ResolutionFailure("bad", "Video unavailable")

        result = await playback.play(GUILD_A, "bad", sink=sink)

        assert result.status == PlayStatus.FAILED
        assert result.message == "Video unavailable"
        panel = container.state_coordinator.panel(GUILD_A)
        assert panel.state == UIState.ERROR
        assert panel.error_message == "Video unavailable"
        assert container.error_tracker.get(GUILD_A).error_count == 1
        assert container.timeout_supervisor.is_armed(GUILD_A)
        assert not container.deduplicator.is_active(GUILD_A)

    @pytest.mark.asyncio
    async def test_retry_after_error(self, playback, resolver, sink):
        resolver.results["song"] = ResolutionFailure("song", "temporary")
        await playback.play(GUILD_A, "song", sink=sink)
        del resolver.results["song"]

        result = await playback.play(GUILD_A, "song", sink=sink)

        assert result.status == PlayStatus.NOW_PLAYING

    @pytest.mark.asyncio
    async def test_sink_start_failure(self, playback, container, sink):
        sink.fail_start = RuntimeError("ffmpeg missing")

        result = await playback.play(GUILD_A, "song", sink=sink)

        assert result.status == PlayStatus.FAILED
        assert result.message == DiscordUIMessages.ERROR_PLAYBACK_START_FAILED
        assert container.state_coordinator.current(GUILD_A) == UIState.ERROR
        assert container.session_registry.get(GUILD_A) is None

    @pytest.mark.asyncio
    async def test_stop_during_resolve_supersedes(self, playback, container, resolver, sink):
        resolver.gate = asyncio.Event()
        task = asyncio.create_task(playback.play(GUILD_A, "slow song", sink=sink))
        await asyncio.sleep(0)

        await playback.stop(GUILD_A)
        resolver.gate.set()
        result = await task

        assert result.status == PlayStatus.SUPERSEDED
        assert sink.started == []
        assert not container.deduplicator.is_active(GUILD_A)

    @pytest.mark.asyncio
    async def test_muted_session_starts_silent(self, playback, container, sink):
        await start_playing(playback, sink)
        container.session_registry.toggle_mute(GUILD_A)
        await playback.play(GUILD_A, "next", sink=sink)

        await playback.skip(GUILD_A)

        assert sink.started[-1] == ("Title of next", 0)

    @pytest.mark.asyncio
    async def test_play_cancels_armed_timer(self, playback, container, sink):
        container.timeout_supervisor.arm(GUILD_A, 60)

        await playback.play(GUILD_A, "song", sink=sink)

        assert not container.timeout_supervisor.is_armed(GUILD_A)


# =============================================================================
# Transport controls
# =============================================================================


class TestTransport:
    @pytest.mark.asyncio
    async def test_skip_starts_next(self, playback, container, sink):
        await start_playing(playback, sink)
        await playback.play(GUILD_A, "second", sink=sink)

        track = await playback.skip(GUILD_A)

        assert track.title == "Title of second"
        assert sink.started[-1][0] == "Title of second"
        assert container.session_registry.get(GUILD_A).queue_length == 0
        assert container.state_coordinator.current(GUILD_A) == UIState.PLAYING

    @pytest.mark.asyncio
    async def test_skip_last_track_goes_idle(self, playback, container, sink):
        await start_playing(playback, sink)

        assert await playback.skip(GUILD_A) is None

        assert sink.stop_calls == 1
        assert container.state_coordinator.current(GUILD_A) == UIState.IDLE
        assert container.session_registry.get(GUILD_A).current_track is None
        assert container.timeout_supervisor.is_armed(GUILD_A)

    @pytest.mark.asyncio
    async def test_skip_without_session(self, playback):
        assert await playback.skip(GUILD_A) is None

    @pytest.mark.asyncio
    async def test_stop_tears_down(self, playback, container, sink):
        await start_playing(playback, sink)
        await playback.play(GUILD_A, "second", sink=sink)

        report = await playback.stop(GUILD_A)

        assert report.session_removed
        assert sink.stop_calls == 1
        assert container.session_registry.get(GUILD_A) is None
        assert container.state_coordinator.current(GUILD_A) == UIState.IDLE

    @pytest.mark.asyncio
    async def test_stop_disconnects_voice(self, playback, sink):
        gateway = AsyncMock()
        playback.set_voice_gateway(gateway)
        await start_playing(playback, sink)

        await playback.stop(GUILD_A)

        gateway.disconnect.assert_awaited_once_with(GUILD_A)

    @pytest.mark.asyncio
    async def test_disconnect_error_is_logged_not_raised(self, playback, sink):
        gateway = AsyncMock()
        gateway.disconnect.side_effect = RuntimeError("gateway gone")
        playback.set_voice_gateway(gateway)
        await start_playing(playback, sink)

        report = await playback.teardown(GUILD_A)

        assert report.session_removed

    @pytest.mark.asyncio
    async def test_pause_and_resume(self, playback, container, sink):
        await start_playing(playback, sink)

        assert playback.pause(GUILD_A) is True
        assert container.state_coordinator.current(GUILD_A) == UIState.PAUSED
        assert container.store.timeout_handles[GUILD_A].delay == 0.1

        assert playback.resume(GUILD_A) is True
        assert container.state_coordinator.current(GUILD_A) == UIState.PLAYING
        assert not container.timeout_supervisor.is_armed(GUILD_A)

    @pytest.mark.asyncio
    async def test_pause_when_nothing_playing(self, playback):
        assert playback.pause(GUILD_A) is False

    @pytest.mark.asyncio
    async def test_resume_when_not_paused(self, playback, sink):
        await start_playing(playback, sink)
        assert playback.resume(GUILD_A) is False


# =============================================================================
# Lifecycle events
# =============================================================================


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_track_end_advances_queue(self, playback, sink):
        await start_playing(playback, sink)
        await playback.play(GUILD_A, "second", sink=sink)
        sink.current_status = SinkStatus.IDLE

        await playback.on_track_end(GUILD_A)

        assert sink.started[-1][0] == "Title of second"

    @pytest.mark.asyncio
    async def test_track_end_with_empty_queue_goes_idle(self, playback, container, sink):
        await start_playing(playback, sink)
        sink.current_status = SinkStatus.IDLE

        await playback.on_track_end(GUILD_A)

        assert container.state_coordinator.current(GUILD_A) == UIState.IDLE
        assert container.timeout_supervisor.is_armed(GUILD_A)

    @pytest.mark.asyncio
    async def test_track_end_error_is_recorded(self, playback, container, sink):
        await start_playing(playback, sink)
        sink.current_status = SinkStatus.IDLE

        await playback.on_track_end(GUILD_A, RuntimeError("stream died"))

        assert container.error_tracker.get(GUILD_A).error_count == 1

    @pytest.mark.asyncio
    async def test_track_end_without_session(self, playback):
        await playback.on_track_end(GUILD_A)

    @pytest.mark.asyncio
    async def test_handle_timeout_tears_down(self, playback, container, sink):
        await start_playing(playback, sink)

        await playback.handle_timeout(GUILD_A, TimeoutFired(GUILD_A, 300))

        assert container.session_registry.get(GUILD_A) is None

    @pytest.mark.asyncio
    async def test_idle_timer_fires_teardown(self, playback, container, sink):
        """The container wires the supervisor's teardown to the playback service."""
        await start_playing(playback, sink)
        await playback.skip(GUILD_A)

        await asyncio.sleep(0.15)

        assert container.session_registry.get(GUILD_A) is None
        assert sink.stop_calls == 2

    @pytest.mark.asyncio
    async def test_resolved_stream_used_for_track(self, playback, container, resolver, sink):
        resolver.results["song"] = ResolvedStream(
            title="Exact",
            duration_seconds=61,
            canonical_url="https://www.youtube.com/watch?v=exact",
            thumbnail_url="https://img.example/exact.jpg",
            stream_url="https://stream.example/exact",
        )

        await playback.play(GUILD_A, "song", sink=sink)

        track = container.session_registry.get(GUILD_A).current_track
        assert track.duration_ms == 61_000
        assert track.source == TrackSource.YOUTUBE
        assert track.stream_url == "https://stream.example/exact"


# =============================================================================
# Failed advances
# =============================================================================


class TestFailedAdvance:
    @pytest.mark.asyncio
    async def test_track_end_with_every_next_track_failing(self, playback, container, sink):
        await start_playing(playback, sink)
        for query in ("two", "three", "four"):
            await playback.play(GUILD_A, query, sink=sink)
        sink.current_status = SinkStatus.IDLE
        sink.fail_start = RuntimeError("ffmpeg missing")

        await playback.on_track_end(GUILD_A)

        session = container.session_registry.get(GUILD_A)
        assert session.queue_length == 0
        assert session.current_track is None
        assert container.state_coordinator.current(GUILD_A) == UIState.IDLE
        assert container.error_tracker.get(GUILD_A).error_count == 3
        assert container.timeout_supervisor.is_armed(GUILD_A)

        await asyncio.sleep(0.3)

        assert (
            container.timeout_supervisor.is_armed(GUILD_A)
            or container.session_registry.get(GUILD_A) is None
        )
        assert container.session_registry.get(GUILD_A) is None

    @pytest.mark.asyncio
    async def test_track_end_moves_past_one_failing_track(self, playback, container, sink):
        await start_playing(playback, sink)
        await playback.play(GUILD_A, "broken", sink=sink)
        await playback.play(GUILD_A, "fine", sink=sink)
        sink.current_status = SinkStatus.IDLE

        calls = 0
        original_start = sink.start

        async def start_failing_once(track, volume=100):
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("stream rejected")
            await original_start(track, volume)

        sink.start = start_failing_once

        await playback.on_track_end(GUILD_A)

        assert sink.started[-1][0] == "Title of fine"
        assert container.state_coordinator.current(GUILD_A) == UIState.PLAYING
        assert container.error_tracker.get(GUILD_A).error_count == 1
        assert not container.timeout_supervisor.is_armed(GUILD_A)

    @pytest.mark.asyncio
    async def test_skip_into_failing_track_goes_idle(self, playback, container, sink):
        await start_playing(playback, sink)
        await playback.play(GUILD_A, "second", sink=sink)
        sink.fail_start = RuntimeError("ffmpeg missing")

        assert await playback.skip(GUILD_A) is None

        assert container.state_coordinator.current(GUILD_A) == UIState.IDLE
        assert container.session_registry.get(GUILD_A).current_track is None
        assert container.timeout_supervisor.is_armed(GUILD_A)

    @pytest.mark.asyncio
    async def test_disconnected_sink_stops_advancing(self, playback, container, sink):
        await start_playing(playback, sink)
        await playback.play(GUILD_A, "second", sink=sink)
        await playback.play(GUILD_A, "third", sink=sink)
        sink.current_status = SinkStatus.IDLE
        sink.connected = False

        await playback.on_track_end(GUILD_A)

        assert len(sink.started) == 2
        assert container.session_registry.get(GUILD_A).queue_length == 1
        assert container.state_coordinator.current(GUILD_A) == UIState.ERROR
        assert container.timeout_supervisor.is_armed(GUILD_A)


# =============================================================================
# Skip during a fetch
# =============================================================================


def count_releases(caplog) -> int:
    return sum(1 for record in caplog.records if record.msg == LogTemplates.DEDUP_RELEASED)


class TestSkipDuringFetch:
    @pytest.mark.asyncio
    async def test_first_play_superseded(self, playback, container, resolver, sink, caplog):
        caplog.set_level(logging.DEBUG, logger="guild_audio_bot")
        resolver.gate = asyncio.Event()
        task = asyncio.create_task(playback.play(GUILD_A, "slow song", sink=sink))
        await asyncio.sleep(0)

        assert await playback.skip(GUILD_A) is None
        assert container.deduplicator.is_active(GUILD_A)

        resolver.gate.set()
        result = await task

        assert result.status == PlayStatus.SUPERSEDED
        assert sink.started == []
        assert count_releases(caplog) == 1
        assert not container.deduplicator.is_active(GUILD_A)
        assert container.state_coordinator.current(GUILD_A) == UIState.IDLE
        assert container.timeout_supervisor.is_armed(GUILD_A)

        resolver.gate = None
        follow_up = await playback.play(GUILD_A, "next song", sink=sink)

        assert follow_up.status == PlayStatus.NOW_PLAYING
        assert not container.timeout_supervisor.is_armed(GUILD_A)

    @pytest.mark.asyncio
    async def test_queued_play_superseded(self, playback, container, resolver, sink):
        await start_playing(playback, sink)
        resolver.gate = asyncio.Event()
        task = asyncio.create_task(playback.play(GUILD_A, "slow song", sink=sink))
        await asyncio.sleep(0)

        assert await playback.skip(GUILD_A) is None
        resolver.gate.set()
        result = await task

        assert result.status == PlayStatus.SUPERSEDED
        assert len(sink.started) == 1
        assert container.session_registry.get(GUILD_A).queue_length == 0
        assert not container.deduplicator.is_active(GUILD_A)
        assert container.timeout_supervisor.is_armed(GUILD_A)


# =============================================================================
# Playlists
# =============================================================================


PLAYLIST_URL = "https://www.youtube.com/playlist?list=PLmix"


def watch_url(entry_id: str) -> str:
    return f"https://www.youtube.com/watch?v={entry_id}"


@pytest.fixture
def playlist(resolver):
    """Three-entry playlist whose entries resolve to titled streams."""
    ids = ("a", "b", "c")
    resolver.playlists[PLAYLIST_URL] = tuple(
        ResolvedStream(title=f"Listed {i}", duration_seconds=120, canonical_url=watch_url(i))
        for i in ids
    )
    for i in ids:
        resolver.results[watch_url(i)] = ResolvedStream(
            title=f"Entry {i}",
            duration_seconds=120,
            canonical_url=watch_url(i),
            stream_url=f"https://stream.example/{i}",
        )
    return ids


class TestPlaylists:
    @pytest.mark.parametrize(
        ("query", "expected"),
        [
            (PLAYLIST_URL, True),
            ("https://www.youtube.com/watch?v=abc&list=PL1", True),
            ("https://youtube.com/watch?list=PL1&v=abc", True),
            ("https://www.youtube.com/watch?v=abc", False),
            ("never gonna give you up", False),
        ],
    )
    def test_is_playlist_url(self, query, expected):
        assert is_playlist_url(query) is expected

    @pytest.mark.asyncio
    async def test_starts_first_entry_and_defers_the_rest(
        self, playback, container, resolver, sink, playlist
    ):
        result = await playback.play(GUILD_A, PLAYLIST_URL, sink=sink)

        assert result.status == PlayStatus.NOW_PLAYING
        assert result.message == DiscordUIMessages.PLAYLIST_STARTED.format(title="Entry a", count=2)
        assert sink.started == [("Entry a", 100)]
        assert resolver.playlist_calls == [(PLAYLIST_URL, GUILD_A)]
        assert resolver.calls == [(watch_url("a"), GUILD_A)]

        session = container.session_registry.get(GUILD_A)
        assert session.current_track.stream_url == "https://stream.example/a"
        assert session.queue_length == 0
        assert session.pending_count == 2
        assert session.lazy_load_info.total_count == 2
        assert not container.deduplicator.is_active(GUILD_A)

    @pytest.mark.asyncio
    async def test_track_end_resolves_next_entry(
        self, playback, container, resolver, sink, playlist
    ):
        await playback.play(GUILD_A, PLAYLIST_URL, sink=sink)
        sink.current_status = SinkStatus.IDLE

        await playback.on_track_end(GUILD_A)

        session = container.session_registry.get(GUILD_A)
        assert session.current_track.title == "Entry b"
        assert session.current_track.stream_url == "https://stream.example/b"
        assert session.lazy_load_info.current_track_index == 2
        assert session.upcoming_count == 1
        assert resolver.calls[-1] == (watch_url("b"), GUILD_A)

    @pytest.mark.asyncio
    async def test_playlist_while_busy_is_queued(self, playback, container, resolver, sink, playlist):
        await start_playing(playback, sink)

        result = await playback.play(GUILD_A, PLAYLIST_URL, sink=sink)

        assert result.status == PlayStatus.QUEUED
        assert result.message == DiscordUIMessages.PLAYLIST_QUEUED.format(count=3)
        assert len(sink.started) == 1
        assert container.session_registry.get(GUILD_A).upcoming_count == 3
        assert all(query != watch_url("a") for query, _ in resolver.calls)

    @pytest.mark.asyncio
    async def test_queued_tracks_play_before_playlist_entries(self, playback, sink, playlist):
        await start_playing(playback, sink)
        await playback.play(GUILD_A, PLAYLIST_URL, sink=sink)
        await playback.play(GUILD_A, "single", sink=sink)

        track = await playback.skip(GUILD_A)

        assert track.title == "Title of single"

    @pytest.mark.asyncio
    async def test_empty_playlist_fails(self, playback, container, resolver, sink):
        resolver.playlists[PLAYLIST_URL] = ()

        result = await playback.play(GUILD_A, PLAYLIST_URL, sink=sink)

        assert result.status == PlayStatus.FAILED
        assert result.message == ErrorMessages.RESOLVER_PLAYLIST_EMPTY
        assert container.state_coordinator.current(GUILD_A) == UIState.ERROR
        assert container.timeout_supervisor.is_armed(GUILD_A)

    @pytest.mark.asyncio
    async def test_listing_failure_is_reported(self, playback, resolver, sink):
        resolver.playlists[PLAYLIST_URL] = ResolutionFailure(PLAYLIST_URL, "Playlist does not exist")

        result = await playback.play(GUILD_A, PLAYLIST_URL, sink=sink)

        assert result.status == PlayStatus.FAILED
        assert result.message == "Playlist does not exist"

    @pytest.mark.asyncio
    async def test_unresolvable_entry_is_skipped(
        self, playback, container, resolver, sink, playlist
    ):
        resolver.results[watch_url("a")] = ResolutionFailure(watch_url("a"), "Video unavailable")

        result = await playback.play(GUILD_A, PLAYLIST_URL, sink=sink)

        assert result.status == PlayStatus.NOW_PLAYING
        assert result.track.title == "Entry b"
        assert sink.started == [("Entry b", 100)]
        assert container.error_tracker.get(GUILD_A).error_count == 1
        assert not container.timeout_supervisor.is_armed(GUILD_A)

    @pytest.mark.asyncio
    async def test_entry_waits_while_another_fetch_holds_the_slot(
        self, playback, container, resolver, sink, playlist
    ):
        await playback.play(GUILD_A, PLAYLIST_URL, sink=sink)
        sink.current_status = SinkStatus.IDLE
        resolver.gate = asyncio.Event()
        task = asyncio.create_task(playback.play(GUILD_A, "requested", sink=sink))
        await asyncio.sleep(0)

        await playback.on_track_end(GUILD_A)

        session = container.session_registry.get(GUILD_A)
        assert [t.title for t in session.queue] == ["Listed b"]
        assert session.upcoming_count == 2

        resolver.gate.set()
        result = await task

        assert result.status == PlayStatus.NOW_PLAYING
        assert sink.started[-1][0] == "Title of requested"
        assert session.queue[0].url == watch_url("b")


# =============================================================================
# Auto-advance
# =============================================================================


class TestAutoAdvance:
    @pytest.mark.asyncio
    async def test_without_session(self, playback):
        assert await playback.set_auto_advance(GUILD_A, False) is None

    @pytest.mark.asyncio
    async def test_disabled_track_end_waits(self, playback, container, sink):
        await start_playing(playback, sink)
        await playback.play(GUILD_A, "second", sink=sink)
        assert await playback.set_auto_advance(GUILD_A, False) is False
        sink.current_status = SinkStatus.IDLE

        await playback.on_track_end(GUILD_A)

        assert len(sink.started) == 1
        assert container.session_registry.get(GUILD_A).queue_length == 1
        assert container.state_coordinator.current(GUILD_A) == UIState.IDLE
        assert container.timeout_supervisor.is_armed(GUILD_A)

    @pytest.mark.asyncio
    async def test_skip_still_advances_when_disabled(self, playback, sink):
        await start_playing(playback, sink)
        await playback.play(GUILD_A, "second", sink=sink)
        await playback.set_auto_advance(GUILD_A, False)

        track = await playback.skip(GUILD_A)

        assert track.title == "Title of second"

    @pytest.mark.asyncio
    async def test_enabling_resumes_waiting_queue(self, playback, container, sink):
        await start_playing(playback, sink)
        await playback.play(GUILD_A, "second", sink=sink)
        await playback.set_auto_advance(GUILD_A, False)
        sink.current_status = SinkStatus.IDLE
        await playback.on_track_end(GUILD_A)

        assert await playback.set_auto_advance(GUILD_A, True) is True

        assert sink.started[-1][0] == "Title of second"
        assert container.state_coordinator.current(GUILD_A) == UIState.PLAYING
        assert not container.timeout_supervisor.is_armed(GUILD_A)

    @pytest.mark.asyncio
    async def test_enabling_while_playing_changes_nothing(self, playback, sink):
        await start_playing(playback, sink)
        await playback.play(GUILD_A, "second", sink=sink)

        await playback.set_auto_advance(GUILD_A, True)

        assert len(sink.started) == 1

"""Orchestrates the play flow across the per-guild components.

Every external failure is caught here and converted into a ``PlayResult``
or a logged event, so one guild's trouble never escapes into another's.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict

from guild_audio_bot.application.services.query_deduplicator import (
    PlaylistDetails,
    StreamDetails,
    StreamFetchError,
)
from guild_audio_bot.domain.session.entities import TrackDescriptor
from guild_audio_bot.domain.session.value_objects import SinkStatus, TrackSource, UIState
from guild_audio_bot.domain.shared.exceptions import DuplicateRequestSignal, TimeoutFired
from guild_audio_bot.domain.shared.messages import DiscordUIMessages, LogTemplates
from guild_audio_bot.domain.shared.types import NonNegativeInt

if TYPE_CHECKING:
    from guild_audio_bot.application.interfaces.voice_gateway import VoiceGateway
    from guild_audio_bot.application.services.cleanup_coordinator import (
        CleanupCoordinator,
        TeardownReport,
    )
    from guild_audio_bot.application.services.error_tracker import ErrorTracker
    from guild_audio_bot.application.services.query_deduplicator import QueryDeduplicator
    from guild_audio_bot.application.services.session_registry import GuildSessionRegistry
    from guild_audio_bot.application.services.state_coordinator import StateCoordinator
    from guild_audio_bot.application.services.timeout_supervisor import TimeoutSupervisor

logger = logging.getLogger(__name__)

BUSY_STATUSES = frozenset({SinkStatus.PLAYING, SinkStatus.PAUSED, SinkStatus.BUFFERING})

# playlist?list=... pages, and watch URLs that carry a list= parameter.
PLAYLIST_URL_RE = re.compile(r"youtube\.com/(playlist\?|watch\?(.*&)?list=)", re.IGNORECASE)


class PlayStatus(Enum):
    """Status codes for play results."""

    NOW_PLAYING = "now_playing"
    QUEUED = "queued"
    DUPLICATE = "duplicate"
    SUPERSEDED = "superseded"
    NOT_CONNECTED = "not_connected"
    FAILED = "failed"


class PlayResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: PlayStatus
    message: str
    track: TrackDescriptor | None = None
    queue_position: NonNegativeInt | None = None

    @property
    def is_success(self) -> bool:
        return self.status in {PlayStatus.NOW_PLAYING, PlayStatus.QUEUED}

    @classmethod
    def started(cls, track: TrackDescriptor) -> PlayResult:
        return cls(
            status=PlayStatus.NOW_PLAYING,
            message=DiscordUIMessages.NOW_PLAYING.format(title=track.title),
            track=track,
        )

    @classmethod
    def queued(cls, track: TrackDescriptor, position: int) -> PlayResult:
        return cls(
            status=PlayStatus.QUEUED,
            message=DiscordUIMessages.ADDED_TO_QUEUE.format(title=track.title, position=position + 1),
            track=track,
            queue_position=position,
        )

    @classmethod
    def playlist_started(cls, track: TrackDescriptor, remaining: int) -> PlayResult:
        return cls(
            status=PlayStatus.NOW_PLAYING,
            message=DiscordUIMessages.PLAYLIST_STARTED.format(title=track.title, count=remaining),
            track=track,
        )

    @classmethod
    def playlist_queued(cls, count: int) -> PlayResult:
        return cls(
            status=PlayStatus.QUEUED,
            message=DiscordUIMessages.PLAYLIST_QUEUED.format(count=count),
        )

    @classmethod
    def error(cls, status: PlayStatus, message: str) -> PlayResult:
        return cls(status=status, message=message)


def is_playlist_url(query: str) -> bool:
    return bool(PLAYLIST_URL_RE.search(query))


def to_descriptor(details: StreamDetails) -> TrackDescriptor:
    return TrackDescriptor(
        title=details.title,
        url=details.url,
        duration_ms=details.duration_ms,
        thumbnail_url=details.thumbnail_url,
        source=TrackSource.from_url(details.url),
        stream_url=details.stream_url,
    )


class PlaybackService:
    def __init__(
        self,
        *,
        sessions: GuildSessionRegistry,
        deduplicator: QueryDeduplicator,
        states: StateCoordinator,
        timeouts: TimeoutSupervisor,
        cleanup: CleanupCoordinator,
        errors: ErrorTracker,
        voice: VoiceGateway | None = None,
    ) -> None:
        self._sessions = sessions
        self._deduplicator = deduplicator
        self._states = states
        self._timeouts = timeouts
        self._cleanup = cleanup
        self._errors = errors
        self._voice = voice

    def set_voice_gateway(self, voice: VoiceGateway) -> None:
        self._voice = voice

    # ─────────────────────────────────────────────────────────────────
    # Play
    # ─────────────────────────────────────────────────────────────────

    async def play(
        self,
        guild_id: int,
        query: str,
        *,
        sink: Any = None,
        title_fallback: str | None = None,
    ) -> PlayResult:
        query = query.strip()
        if not query:
            return PlayResult.error(PlayStatus.FAILED, DiscordUIMessages.ERROR_EMPTY_QUERY)

        existing = self._sessions.get(guild_id)
        sink = sink or (existing.sink if existing else None)
        if sink is None or not sink.is_connected:
            return PlayResult.error(PlayStatus.NOT_CONNECTED, DiscordUIMessages.ERROR_NOT_CONNECTED)

        self._timeouts.cancel(guild_id)

        try:
            guard = self._deduplicator.acquire(guild_id, query)
        except DuplicateRequestSignal as e:
            return PlayResult.error(
                PlayStatus.DUPLICATE,
                DiscordUIMessages.REQUEST_IN_PROGRESS_FOR.format(query=e.active_query),
            )

        with guard:
            busy = self._is_busy(guild_id, sink)
            if not busy and self._states.can_transition(guild_id, UIState.LOADING):
                self._states.begin_loading(guild_id, title_fallback or query)

            outcome: StreamDetails | PlaylistDetails | StreamFetchError
            if is_playlist_url(query):
                outcome = await self._deduplicator.resolve_playlist_with(guard, query)
            else:
                outcome = await self._deduplicator.resolve_with(guard, query, title_fallback)

            # Anything may have happened to this guild while we were suspended.
            superseded = guard.superseded

        if superseded:
            logger.info(LogTemplates.PLAYBACK_SUPERSEDED, guild_id, query)
            if self._is_stalled(guild_id):
                await self._play_next(guild_id)
            return PlayResult.error(PlayStatus.SUPERSEDED, DiscordUIMessages.REQUEST_SUPERSEDED)

        if isinstance(outcome, StreamFetchError):
            return self._fail(guild_id, outcome.error)
        if isinstance(outcome, PlaylistDetails):
            return await self._load_playlist(guild_id, outcome, sink)

        track = to_descriptor(outcome)
        session = self._sessions.get(guild_id)
        if session is not None and self._is_busy(guild_id, session.sink):
            position = self._sessions.append_track(guild_id, track) or 0
            logger.info(LogTemplates.PLAYBACK_QUEUED, guild_id, track.title, position)
            return PlayResult.queued(track, position)

        return await self._start(guild_id, track, sink)

    async def _load_playlist(self, guild_id: int, playlist: PlaylistDetails, sink: Any) -> PlayResult:
        tracks = tuple(to_descriptor(entry) for entry in playlist.entries)
        logger.info(LogTemplates.PLAYBACK_PLAYLIST_LOADED, guild_id, len(tracks))

        session = self._sessions.get(guild_id)
        if session is not None and self._is_busy(guild_id, session.sink):
            self._sessions.append_lazy(guild_id, tracks)
            return PlayResult.playlist_queued(len(tracks))

        # The session exists before the first entry plays so the rest has somewhere to wait.
        self._sessions.get_or_create(guild_id, sink)
        self._sessions.append_lazy(guild_id, tracks)
        result = await self._play_next(guild_id)
        if result is None:
            return PlayResult.error(PlayStatus.FAILED, DiscordUIMessages.ERROR_PLAYBACK_START_FAILED)
        if result.status == PlayStatus.DUPLICATE:
            return PlayResult.playlist_queued(len(tracks))
        if result.status != PlayStatus.NOW_PLAYING or result.track is None:
            return result

        session = self._sessions.get(guild_id)
        return PlayResult.playlist_started(result.track, session.upcoming_count if session else 0)

    async def _play_next(self, guild_id: int) -> PlayResult | None:
        """Start the next upcoming track, moving past tracks that fail to start.

        Returns None once nothing is left to play; the guild is then idle with
        its inactivity timer armed.
        """
        while True:
            session = self._sessions.get(guild_id)
            if session is None:
                return None

            track = self._sessions.advance(guild_id)
            if track is None:
                self._go_idle(guild_id)
                return None

            if track.stream_url is None:
                hydrated = await self._hydrate(guild_id, track)
                if isinstance(hydrated, PlayResult):
                    result = hydrated
                else:
                    result = await self._start(guild_id, hydrated, session.sink)
            else:
                result = await self._start(guild_id, track, session.sink)

            if result.status == PlayStatus.FAILED:
                continue
            if result.status == PlayStatus.SUPERSEDED and self._is_stalled(guild_id):
                continue
            return result

    async def _hydrate(self, guild_id: int, track: TrackDescriptor) -> TrackDescriptor | PlayResult:
        """Resolve a lazily loaded playlist entry just before it plays."""
        try:
            guard = self._deduplicator.acquire(guild_id, track.url)
        except DuplicateRequestSignal as e:
            # The request holding the slot plays first; this entry waits at the front.
            self._sessions.requeue_front(guild_id, track)
            logger.info(LogTemplates.PLAYBACK_LAZY_DEFERRED, guild_id, track.title, e.active_query)
            self._timeouts.arm_if_idle(guild_id)
            return PlayResult.error(
                PlayStatus.DUPLICATE,
                DiscordUIMessages.REQUEST_IN_PROGRESS_FOR.format(query=e.active_query),
            )

        with guard:
            self._enter_loading(guild_id, track.title)
            outcome = await self._deduplicator.resolve_with(guard, track.url, track.title)
            superseded = guard.superseded

        if superseded:
            logger.info(LogTemplates.PLAYBACK_SUPERSEDED, guild_id, track.url)
            return PlayResult.error(PlayStatus.SUPERSEDED, DiscordUIMessages.REQUEST_SUPERSEDED)
        if isinstance(outcome, StreamFetchError):
            return self._fail(guild_id, outcome.error)
        return to_descriptor(outcome)

    async def _start(self, guild_id: int, track: TrackDescriptor, sink: Any) -> PlayResult:
        session = self._sessions.get(guild_id)
        if session is None:
            volume = self._sessions.default_volume
        else:
            volume = 0 if session.muted else session.volume
            sink = sink or session.sink

        self._enter_loading(guild_id, track.title)
        try:
            await sink.start(track, volume)
        except Exception as e:
            logger.exception(LogTemplates.PLAYBACK_START_FAILED, guild_id, track.title, e)
            return self._fail(guild_id, DiscordUIMessages.ERROR_PLAYBACK_START_FAILED)

        if not sink.is_connected:
            sink.stop()
            return self._fail(guild_id, DiscordUIMessages.ERROR_NOT_CONNECTED, PlayStatus.NOT_CONNECTED)

        self._timeouts.cancel(guild_id)
        self._sessions.get_or_create(guild_id, sink)
        self._sessions.mark_started(guild_id, track)
        self._states.mark_playing(guild_id)
        logger.info(LogTemplates.PLAYBACK_STARTED, guild_id, track.title)
        return PlayResult.started(track)

    def _enter_loading(self, guild_id: int, title: str) -> None:
        current = self._states.current(guild_id)
        if current == UIState.PAUSED:
            self._states.reset(guild_id)
            current = UIState.IDLE
        if current != UIState.LOADING:
            self._states.begin_loading(guild_id, title)

    def _fail(
        self, guild_id: int, message: str, status: PlayStatus = PlayStatus.FAILED
    ) -> PlayResult:
        """Record a failed request.

        Every start passes through loading first, so a failed start always
        lands in error. A failed lookup queued behind a playing track leaves
        the panel on that track.
        """
        self._errors.record(guild_id)
        if self._states.current(guild_id) == UIState.LOADING:
            self._states.mark_error(guild_id, message)
            self._sessions.clear_current(guild_id)
        self._timeouts.arm_if_idle(guild_id)
        return PlayResult.error(status, message)

    def _is_busy(self, guild_id: int, sink: Any) -> bool:
        session = self._sessions.get(guild_id)
        if session is None or session.current_track is None or sink is None:
            return False
        return sink.status() in BUSY_STATUSES

    def _is_stalled(self, guild_id: int) -> bool:
        """True when tracks wait on an idle sink and nothing is being fetched."""
        session = self._sessions.get(guild_id)
        if session is None or not session.upcoming_count:
            return False
        if self._deduplicator.is_active(guild_id):
            return False
        return session.sink is None or session.sink.status() not in BUSY_STATUSES

    # ─────────────────────────────────────────────────────────────────
    # Transport controls
    # ─────────────────────────────────────────────────────────────────

    async def skip(self, guild_id: int) -> TrackDescriptor | None:
        """Skip the current track; supersedes any in-flight fetch.

        Returns the track that started, or None if nothing else could play.
        """
        superseded = self._deduplicator.supersede(guild_id)
        session = self._sessions.get(guild_id)
        if session is None:
            if self._states.current(guild_id) == UIState.LOADING:
                self._states.reset(guild_id)
            if superseded:
                # The abandoned first request never creates a session.
                self._timeouts.arm_if_idle(guild_id)
            return None

        self._timeouts.cancel(guild_id)
        session.sink.stop()
        result = await self._play_next(guild_id)
        if result is None or not result.is_success:
            return None
        return result.track

    async def stop(self, guild_id: int) -> TeardownReport:
        logger.info(LogTemplates.PLAYBACK_STOPPED, guild_id)
        return await self.teardown(guild_id)

    def pause(self, guild_id: int) -> bool:
        session = self._sessions.get(guild_id)
        if session is None or self._states.current(guild_id) != UIState.PLAYING:
            return False
        if not session.sink.pause():
            return False
        self._states.mark_paused(guild_id)
        self._timeouts.arm_if_idle(guild_id)
        return True

    def resume(self, guild_id: int) -> bool:
        session = self._sessions.get(guild_id)
        if session is None or self._states.current(guild_id) != UIState.PAUSED:
            return False
        if not session.sink.resume():
            return False
        self._timeouts.cancel(guild_id)
        self._states.mark_playing(guild_id)
        return True

    async def set_auto_advance(self, guild_id: int, enabled: bool) -> bool | None:
        """Toggle automatic queue progression. Returns None without a session.

        Enabling it while tracks wait on an idle sink starts the next one.
        """
        if self._sessions.set_auto_advance(guild_id, enabled) is None:
            return None
        if enabled and self._is_stalled(guild_id):
            await self._play_next(guild_id)
        return enabled

    # ─────────────────────────────────────────────────────────────────
    # Lifecycle events
    # ─────────────────────────────────────────────────────────────────

    async def on_track_end(self, guild_id: int, error: Exception | None = None) -> None:
        """Called by the sink when a track finishes on its own."""
        if error is not None:
            logger.warning(LogTemplates.PLAYBACK_TRACK_ERROR, guild_id, error)
            self._errors.record(guild_id)

        session = self._sessions.get(guild_id)
        if session is None:
            return

        if not session.auto_advance:
            logger.info(LogTemplates.PLAYBACK_ADVANCE_OFF, guild_id)
            self._go_idle(guild_id)
            return
        await self._play_next(guild_id)

    async def handle_timeout(self, guild_id: int, event: TimeoutFired) -> None:
        logger.info(LogTemplates.PLAYBACK_TIMEOUT_TEARDOWN, guild_id, event.message)
        await self.teardown(guild_id)

    async def teardown(self, guild_id: int, *, disconnect: bool = True) -> TeardownReport:
        """Stop the sink, drop playback state, and optionally leave voice."""
        session = self._sessions.get(guild_id)
        if session is not None and session.sink is not None:
            session.sink.stop()

        report = self._cleanup.end_playback(guild_id)

        if disconnect and self._voice is not None:
            try:
                await self._voice.disconnect(guild_id)
            except Exception as e:
                logger.warning(LogTemplates.PLAYBACK_DISCONNECT_FAILED, guild_id, e)
        return report

    def _go_idle(self, guild_id: int) -> None:
        self._sessions.clear_current(guild_id)
        self._states.reset(guild_id)
        self._timeouts.arm_if_idle(guild_id)

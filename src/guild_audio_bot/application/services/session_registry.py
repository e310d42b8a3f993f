"""Single source of truth for each guild's AudioSession."""

from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict

from guild_audio_bot.domain.session.entities import AudioSession, TrackDescriptor
from guild_audio_bot.domain.session.value_objects import VolumeChangeStatus
from guild_audio_bot.domain.shared.datetime_utils import utcnow
from guild_audio_bot.domain.shared.exceptions import CapabilityUnavailable
from guild_audio_bot.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from guild_audio_bot.domain.session.store import SessionStore

logger = logging.getLogger(__name__)

MIN_VOLUME = 0
MAX_VOLUME = 100


class VolumeChangeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: VolumeChangeStatus
    volume: int
    muted: bool = False

    @property
    def applied(self) -> bool:
        return self.status == VolumeChangeStatus.APPLIED


def clamp_volume(value: int) -> int:
    return max(MIN_VOLUME, min(MAX_VOLUME, value))


class GuildSessionRegistry:
    """Reads and mutates sessions held in the shared ``SessionStore``.

    Queue changes are only possible through this API so the lazy-load
    summary never drifts from the real queue length.
    """

    def __init__(self, store: SessionStore, default_volume: int = MAX_VOLUME) -> None:
        self._store = store
        self._default_volume = clamp_volume(default_volume)

    @property
    def default_volume(self) -> int:
        return self._default_volume

    # ─────────────────────────────────────────────────────────────────
    # Lookup
    # ─────────────────────────────────────────────────────────────────

    def get(self, guild_id: int) -> AudioSession | None:
        return self._store.sessions.get(guild_id)

    def set(self, session: AudioSession) -> None:
        self._store.sessions[session.guild_id] = session

    def delete(self, guild_id: int) -> bool:
        session = self._store.sessions.pop(guild_id, None)
        if session is None:
            return False
        logger.info(LogTemplates.SESSION_DELETED, guild_id)
        return True

    def get_or_create(self, guild_id: int, sink: Any = None) -> AudioSession:
        session = self._store.sessions.get(guild_id)
        if session is None:
            session = AudioSession(guild_id=guild_id, sink=sink, volume=self._default_volume)
            self._store.sessions[guild_id] = session
            logger.info(LogTemplates.SESSION_CREATED, guild_id)
        elif sink is not None and session.sink is not sink:
            session.sink = sink
        return session

    def all_sessions(self) -> list[AudioSession]:
        return list(self._store.sessions.values())

    def configure_voice_channel(self, guild_id: int, channel_id: int) -> int | None:
        """Record the sticky voice channel; returns the previously configured one."""
        previous = self._store.voice_channels.get(guild_id)
        self._store.voice_channels[guild_id] = channel_id
        logger.info(LogTemplates.VOICE_CHANNEL_CONFIGURED, guild_id, channel_id)
        return previous

    def configured_voice_channel(self, guild_id: int) -> int | None:
        return self._store.voice_channels.get(guild_id)

    # ─────────────────────────────────────────────────────────────────
    # Queue
    # ─────────────────────────────────────────────────────────────────

    def append_track(self, guild_id: int, track: TrackDescriptor) -> int | None:
        """Append to the queue. Returns the position, or None without a session."""
        session = self.get(guild_id)
        if session is None:
            return None
        return session.enqueue(track)

    def append_lazy(self, guild_id: int, tracks: tuple[TrackDescriptor, ...]) -> int | None:
        """Park playlist entries behind the queue. Returns how many were added."""
        session = self.get(guild_id)
        if session is None:
            return None
        added = session.enqueue_lazy(tracks)
        logger.info(LogTemplates.SESSION_LAZY_ADDED, added, guild_id, session.upcoming_count)
        return added

    def requeue_front(self, guild_id: int, track: TrackDescriptor) -> bool:
        """Put ``track`` back at the head of the queue."""
        session = self.get(guild_id)
        if session is None:
            return False
        session.push_front(track)
        return True

    def remove_track(self, guild_id: int, index: int) -> TrackDescriptor | None:
        session = self.get(guild_id)
        if session is None:
            return None
        return session.remove_at(index)

    def advance(self, guild_id: int) -> TrackDescriptor | None:
        """Pop the next upcoming track, or None when nothing is left."""
        session = self.get(guild_id)
        if session is None:
            return None
        return session.pop_next()

    def clear_queue(self, guild_id: int) -> int:
        session = self.get(guild_id)
        if session is None:
            return 0
        return session.clear_queue()

    def shuffle_queue(self, guild_id: int, rng: random.Random | None = None) -> int:
        """Shuffle upcoming tracks and return how many there are (0 without a session)."""
        session = self.get(guild_id)
        if session is None:
            return 0
        session.shuffle(rng)
        logger.debug(LogTemplates.SESSION_SHUFFLED, guild_id, session.upcoming_count)
        return session.upcoming_count

    def set_auto_advance(self, guild_id: int, enabled: bool) -> bool | None:
        session = self.get(guild_id)
        if session is None:
            return None
        session.auto_advance = enabled
        logger.info(LogTemplates.SESSION_AUTO_ADVANCE, guild_id, enabled)
        return enabled

    def mark_started(self, guild_id: int, track: TrackDescriptor) -> AudioSession | None:
        session = self.get(guild_id)
        if session is None:
            return None
        session.current_track = track
        session.started_at = utcnow()
        return session

    def clear_current(self, guild_id: int) -> None:
        session = self.get(guild_id)
        if session is not None:
            session.current_track = None
            session.started_at = None

    # ─────────────────────────────────────────────────────────────────
    # Volume
    # ─────────────────────────────────────────────────────────────────

    def set_volume(self, guild_id: int, volume: int) -> VolumeChangeResult:
        """Record ``volume`` and apply it if the sink exposes volume control."""
        session = self.get(guild_id)
        target = clamp_volume(volume)
        if session is None:
            return VolumeChangeResult(status=VolumeChangeStatus.NO_SESSION, volume=target)

        session.volume = target
        session.muted = False
        session.previous_volume = None
        return self._apply(session, target)

    def step_volume(self, guild_id: int, delta: int) -> VolumeChangeResult:
        session = self.get(guild_id)
        if session is None:
            return VolumeChangeResult(status=VolumeChangeStatus.NO_SESSION, volume=self._default_volume)
        return self.set_volume(guild_id, session.volume + delta)

    def toggle_mute(self, guild_id: int) -> VolumeChangeResult:
        """Mute, remembering the current volume, or restore it when muted."""
        session = self.get(guild_id)
        if session is None:
            return VolumeChangeResult(status=VolumeChangeStatus.NO_SESSION, volume=self._default_volume)

        if session.muted:
            restored = session.previous_volume if session.previous_volume is not None else session.volume
            session.muted = False
            session.previous_volume = None
            session.volume = restored
            return self._apply(session, restored)

        session.previous_volume = session.volume
        session.muted = True
        return self._apply(session, MIN_VOLUME)

    def _apply(self, session: AudioSession, effective: int) -> VolumeChangeResult:
        control = None
        if session.sink is not None:
            control = session.sink.volume_control()

        if control is None:
            logger.info(LogTemplates.VOLUME_UNSUPPORTED, session.guild_id, effective)
            return VolumeChangeResult(
                status=VolumeChangeStatus.UNSUPPORTED, volume=session.volume, muted=session.muted
            )

        try:
            control.set_volume(effective)
        except CapabilityUnavailable as e:
            logger.info(LogTemplates.VOLUME_CAPABILITY_LOST, session.guild_id, e.capability)
            return VolumeChangeResult(
                status=VolumeChangeStatus.UNSUPPORTED, volume=session.volume, muted=session.muted
            )

        logger.debug(LogTemplates.VOLUME_APPLIED, session.guild_id, effective)
        return VolumeChangeResult(
            status=VolumeChangeStatus.APPLIED, volume=session.volume, muted=session.muted
        )

"""Core domain entities for the per-guild session bounded context."""

from __future__ import annotations

import random
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from guild_audio_bot.domain.session.value_objects import TrackSource, UIState
from guild_audio_bot.domain.shared.datetime_utils import utcnow
from guild_audio_bot.domain.shared.exceptions import InvalidOperationError
from guild_audio_bot.domain.shared.types import (
    DiscordSnowflake,
    DurationMs,
    NonEmptyStr,
    NonNegativeInt,
    PositiveInt,
    UtcDatetimeField,
    VolumePercent,
)


class TrackDescriptor(BaseModel):
    """Immutable description of a playable track."""

    model_config = ConfigDict(frozen=True, strict=True)

    title: NonEmptyStr
    url: NonEmptyStr
    duration_ms: DurationMs = 0
    thumbnail_url: str | None = None
    image_url: str | None = None
    source: TrackSource = TrackSource.UNKNOWN
    stream_url: str | None = None

    @property
    def is_spotify(self) -> bool:
        return self.source == TrackSource.SPOTIFY

    @property
    def duration_seconds(self) -> int:
        return self.duration_ms // 1000


class LazyLoadInfo(BaseModel):
    """Playlist entries known to the session but not yet pulled into the queue.

    ``pending[current_track_index:]`` are still waiting. ``total_count`` counts
    every upcoming track: the loaded queue plus the waiting entries.
    """

    model_config = ConfigDict(frozen=True, strict=True)

    pending: tuple[TrackDescriptor, ...] = ()
    current_track_index: NonNegativeInt = 0
    total_count: NonNegativeInt = 0

    @property
    def remaining(self) -> tuple[TrackDescriptor, ...]:
        return self.pending[self.current_track_index :]

    @property
    def playlist_urls(self) -> tuple[str, ...]:
        return tuple(track.url for track in self.remaining)


class AudioSession(BaseModel):
    """Live playback state for a single guild.

    The queue is exposed as a tuple; every change goes through the methods
    below so that ``lazy_load_info.total_count`` always equals the queue
    length plus the playlist entries still waiting to be pulled in.
    """

    model_config = ConfigDict(strict=True, arbitrary_types_allowed=True)

    guild_id: DiscordSnowflake
    sink: Any = None
    queue: tuple[TrackDescriptor, ...] = ()
    volume: VolumePercent = 100
    muted: bool = False
    previous_volume: VolumePercent | None = None
    auto_advance: bool = True
    started_at: UtcDatetimeField | None = None
    lazy_load_info: LazyLoadInfo = Field(default_factory=LazyLoadInfo)
    current_track: TrackDescriptor | None = None
    created_at: UtcDatetimeField = Field(default_factory=utcnow)

    @property
    def queue_length(self) -> int:
        return len(self.queue)

    @property
    def pending_count(self) -> int:
        return len(self.lazy_load_info.remaining)

    @property
    def upcoming_count(self) -> int:
        return self.lazy_load_info.total_count

    def _replace_queue(
        self, queue: tuple[TrackDescriptor, ...], info: LazyLoadInfo | None = None
    ) -> None:
        if info is None:
            info = self.lazy_load_info
        self.queue = queue
        self.lazy_load_info = info.model_copy(
            update={"total_count": len(queue) + len(info.remaining)}
        )

    def enqueue(self, track: TrackDescriptor) -> int:
        """Append a track and return its zero-based position."""
        self._replace_queue((*self.queue, track))
        return len(self.queue) - 1

    def push_front(self, track: TrackDescriptor) -> None:
        self._replace_queue((track, *self.queue))

    def enqueue_lazy(self, tracks: tuple[TrackDescriptor, ...]) -> int:
        """Park playlist entries behind the queue; they are pulled in one at a time."""
        pending = (*self.lazy_load_info.remaining, *tracks)
        self._replace_queue(self.queue, LazyLoadInfo(pending=pending))
        return len(tracks)

    def remove_at(self, index: int) -> TrackDescriptor:
        if index < 0 or index >= len(self.queue):
            raise InvalidOperationError(
                operation="remove_track",
                current_state=f"queue_length={len(self.queue)}",
                message=f"No track at position {index}",
            )
        removed = self.queue[index]
        self._replace_queue(self.queue[:index] + self.queue[index + 1 :])
        return removed

    def pop_next(self) -> TrackDescriptor | None:
        """Take the queue head, falling back to the next waiting playlist entry."""
        if self.queue:
            head, *rest = self.queue
            self._replace_queue(tuple(rest))
            return head

        info = self.lazy_load_info
        if not info.remaining:
            return None
        head = info.pending[info.current_track_index]
        index = info.current_track_index + 1
        if index >= len(info.pending):
            info = LazyLoadInfo()
        else:
            info = info.model_copy(update={"current_track_index": index})
        self._replace_queue((), info)
        return head

    def clear_queue(self) -> int:
        count = self.upcoming_count
        self._replace_queue((), LazyLoadInfo())
        return count

    def shuffle(self, rng: random.Random | None = None) -> None:
        """Shuffle loaded and waiting tracks together, keeping each part's size."""
        loaded = len(self.queue)
        items = [*self.queue, *self.lazy_load_info.remaining]
        (rng or random).shuffle(items)
        self._replace_queue(tuple(items[:loaded]), LazyLoadInfo(pending=tuple(items[loaded:])))


class ProcessRecord(BaseModel):
    """Metadata for one spawned resolver process."""

    model_config = ConfigDict(strict=True)

    pid: PositiveInt
    spawned_at: UtcDatetimeField = Field(default_factory=utcnow)
    last_alive: UtcDatetimeField | None = None


class ActiveQuery(BaseModel):
    """An in-flight fetch holding a guild's deduplication slot."""

    model_config = ConfigDict(frozen=True, strict=True)

    query: str
    token: NonEmptyStr
    superseded: bool = False
    started_at: UtcDatetimeField = Field(default_factory=utcnow)


class ErrorRecord(BaseModel):
    """Accumulated delivery errors for a guild's control message."""

    model_config = ConfigDict(strict=True)

    message_id: DiscordSnowflake | None = None
    channel_id: DiscordSnowflake | None = None
    error_count: NonNegativeInt = 0
    last_error_timestamp: UtcDatetimeField = Field(default_factory=utcnow)


class PanelState(BaseModel):
    """What a guild's control panel is currently showing."""

    model_config = ConfigDict(frozen=True, strict=True)

    state: UIState = UIState.IDLE
    loading_title: str | None = None
    error_message: str | None = None
    updated_at: UtcDatetimeField = Field(default_factory=utcnow)

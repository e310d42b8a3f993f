"""Port interfaces for the audio sink bound to a guild's voice connection."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from guild_audio_bot.domain.session.value_objects import SinkStatus

if TYPE_CHECKING:
    from ...domain.session.entities import TrackDescriptor


class VolumeControl(ABC):
    """Capability handle returned by sinks that can adjust gain."""

    @abstractmethod
    def set_volume(self, percent: int) -> None:
        """Apply a volume in [0, 100]."""
        ...


class AudioSink(ABC):
    """Interface for a per-guild playback sink."""

    @abstractmethod
    def status(self) -> SinkStatus:
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @abstractmethod
    def volume_control(self) -> VolumeControl | None:
        """Return the volume capability, or None if this sink has none."""
        ...

    @abstractmethod
    async def start(self, track: "TrackDescriptor", volume: int = 100) -> None:
        """Begin playing ``track``, replacing whatever is playing."""
        ...

    @abstractmethod
    def stop(self) -> None:
        ...

    @abstractmethod
    def pause(self) -> bool:
        ...

    @abstractmethod
    def resume(self) -> bool:
        ...

"""Enumerations and small value objects for the session bounded context."""

from __future__ import annotations

from enum import StrEnum


class UIState(StrEnum):
    """Renderable state of a guild's control panel."""

    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    ERROR = "error"


class SinkStatus(StrEnum):
    """Playback status reported by an audio sink."""

    IDLE = "idle"
    BUFFERING = "buffering"
    PLAYING = "playing"
    PAUSED = "paused"
    STOPPED = "stopped"

    @property
    def is_active(self) -> bool:
        """True while audio is flowing or about to flow."""
        return self in (SinkStatus.PLAYING, SinkStatus.BUFFERING)


class TrackSource(StrEnum):
    """Where a track's metadata originated."""

    YOUTUBE = "youtube"
    SPOTIFY = "spotify"
    UNKNOWN = "unknown"

    @classmethod
    def from_url(cls, url: str) -> TrackSource:
        lowered = url.lower()
        if "spotify.com" in lowered or lowered.startswith("spotify:"):
            return cls.SPOTIFY
        if "youtube.com" in lowered or "youtu.be" in lowered:
            return cls.YOUTUBE
        return cls.UNKNOWN


class VolumeChangeStatus(StrEnum):
    """Outcome of a volume change request."""

    APPLIED = "applied"
    UNSUPPORTED = "unsupported"
    NO_SESSION = "no_session"

"""Pydantic models for parsing yt-dlp ``--dump-json`` output.

Before-validators coerce garbage from external yt-dlp data gracefully so a
single odd field never fails the whole resolution.
"""

from __future__ import annotations

from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

from guild_audio_bot.domain.shared.types import NonEmptyStr, NonNegativeInt

SEARCH_PREFIX: Final[str] = "ytsearch1:"
STDERR_TAIL_CHARS: Final[int] = 300
YOUTUBE_WATCH_URL: Final[str] = "https://www.youtube.com/watch?v={video_id}"

# Placeholders yt-dlp lists for entries that cannot be played.
UNAVAILABLE_TITLES: Final[frozenset[str]] = frozenset({"[Private video]", "[Deleted video]"})


def _empty_to_none(v: Any) -> str | None:
    if not isinstance(v, str) or not v.strip():
        return None
    return v


def _non_negative_int(v: Any) -> int | None:
    if v is None:
        return None
    try:
        val = int(float(v))
        return val if val >= 0 else None
    except (TypeError, ValueError):
        return None


def _list_or_empty(v: Any) -> list[Any]:
    return v if isinstance(v, list) else []


class AudioFormatInfo(BaseModel):
    """A single format entry from yt-dlp extraction."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: NonEmptyStr | None = None
    acodec: NonEmptyStr | None = None
    vcodec: NonEmptyStr | None = None

    @property
    def is_audio_only(self) -> bool:
        return self.acodec not in (None, "none") and self.vcodec in (None, "none")


class YtDlpMetadata(BaseModel):
    """Trimmed yt-dlp metadata. Extra fields are ignored."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    title: NonEmptyStr | None = None
    duration: NonNegativeInt | None = None
    thumbnail: NonEmptyStr | None = None
    webpage_url: NonEmptyStr | None = None
    url: NonEmptyStr | None = None
    formats: list[AudioFormatInfo] = Field(default_factory=list)

    @field_validator("title", "thumbnail", "webpage_url", "url", mode="before")
    @classmethod
    def _coerce_empty_to_none(cls, v: Any) -> str | None:
        """Convert empty / whitespace-only / non-string values to None."""
        return _empty_to_none(v)

    @field_validator("duration", mode="before")
    @classmethod
    def _coerce_duration(cls, v: Any) -> int | None:
        """Coerce to non-negative int; return None for garbage values."""
        return _non_negative_int(v)

    @field_validator("formats", mode="before")
    @classmethod
    def _coerce_formats(cls, v: Any) -> list[Any]:
        return _list_or_empty(v)

    @property
    def stream_url(self) -> str | None:
        """Direct media URL, preferring an audio-only format when listed."""
        if self.url:
            return self.url
        for fmt in reversed(self.formats):
            if fmt.url and fmt.is_audio_only:
                return fmt.url
        return None


class ThumbnailInfo(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    url: NonEmptyStr | None = None

    @field_validator("url", mode="before")
    @classmethod
    def _coerce_url(cls, v: Any) -> str | None:
        return _empty_to_none(v)


class YtDlpFlatEntry(BaseModel):
    """One ``--flat-playlist`` entry: enough to list a track, not to play it."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: NonEmptyStr | None = None
    title: NonEmptyStr | None = None
    url: NonEmptyStr | None = None
    duration: NonNegativeInt | None = None
    thumbnails: list[ThumbnailInfo] = Field(default_factory=list)

    @field_validator("id", "title", "url", mode="before")
    @classmethod
    def _coerce_empty_to_none(cls, v: Any) -> str | None:
        return _empty_to_none(v)

    @field_validator("duration", mode="before")
    @classmethod
    def _coerce_duration(cls, v: Any) -> int | None:
        return _non_negative_int(v)

    @field_validator("thumbnails", mode="before")
    @classmethod
    def _coerce_thumbnails(cls, v: Any) -> list[Any]:
        return [t for t in _list_or_empty(v) if isinstance(t, dict)]

    @property
    def canonical_url(self) -> str | None:
        """Watch URL for the entry; older yt-dlp releases print only the video id."""
        if self.url and self.url.startswith(("http://", "https://")):
            return self.url
        if self.id:
            return YOUTUBE_WATCH_URL.format(video_id=self.id)
        return None

    @property
    def thumbnail_url(self) -> str | None:
        # yt-dlp lists thumbnails smallest first.
        for thumb in reversed(self.thumbnails):
            if thumb.url:
                return thumb.url
        return None

    @property
    def is_playable(self) -> bool:
        return (
            self.title is not None
            and self.title not in UNAVAILABLE_TITLES
            and self.canonical_url is not None
        )

"""Port interface for describing queries and playlists through an external metadata resolver."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict

from guild_audio_bot.domain.shared.types import DiscordSnowflake, NonEmptyStr


class ResolvedStream(BaseModel):
    """Raw resolver output. Every field may be missing; callers normalize."""

    model_config = ConfigDict(frozen=True)

    title: str | None = None
    duration_seconds: float | None = None
    thumbnail_url: str | None = None
    canonical_url: str | None = None
    stream_url: str | None = None


class StreamResolver(ABC):
    """Interface for resolving a query string to stream metadata."""

    @abstractmethod
    async def resolve(self, query: NonEmptyStr, guild_id: DiscordSnowflake) -> ResolvedStream:
        """Describe ``query`` on behalf of ``guild_id``.

        Raises:
            ResolutionFailure: the resolver ran but could not describe the query.
            ProcessSpawnFailure: the resolver process could not be launched.
        """
        ...

    @abstractmethod
    async def resolve_playlist(
        self, url: NonEmptyStr, guild_id: DiscordSnowflake
    ) -> tuple[ResolvedStream, ...]:
        """List the entries of playlist ``url`` without resolving their streams.

        Entries carry a title and canonical URL; ``stream_url`` stays empty
        until the track is resolved on its own just before it plays.

        Raises:
            ResolutionFailure: the resolver ran but could not list the playlist.
            ProcessSpawnFailure: the resolver process could not be launched.
        """
        ...

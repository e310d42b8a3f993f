"""Per-guild gate that keeps at most one resolver fetch in flight."""

from __future__ import annotations

import logging
import uuid
from types import TracebackType
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from guild_audio_bot.domain.session.entities import ActiveQuery
from guild_audio_bot.domain.shared.exceptions import (
    DuplicateRequestSignal,
    ProcessSpawnFailure,
    ResolutionFailure,
)
from guild_audio_bot.domain.shared.messages import DiscordUIMessages, ErrorMessages, LogTemplates
from guild_audio_bot.domain.shared.types import NonNegativeInt

if TYPE_CHECKING:
    from guild_audio_bot.application.interfaces.stream_resolver import (
        ResolvedStream,
        StreamResolver,
    )
    from guild_audio_bot.domain.session.store import SessionStore

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Unknown Title"


class StreamDetails(BaseModel):
    """Normalized resolver result."""

    model_config = ConfigDict(frozen=True)

    title: str
    duration_seconds: NonNegativeInt = 0
    thumbnail_url: str | None = None
    url: str
    stream_url: str | None = None

    @property
    def duration_ms(self) -> int:
        return self.duration_seconds * 1000


class PlaylistDetails(BaseModel):
    """Normalized playlist listing. Entries have no stream URL until they play."""

    model_config = ConfigDict(frozen=True)

    url: str
    entries: tuple[StreamDetails, ...]


class StreamFetchError(BaseModel):
    """Structured failure returned instead of raising."""

    model_config = ConfigDict(frozen=True)

    error: str
    duplicate: bool = False


class QueryGuard:
    """Holds a guild's deduplication slot until released.

    Release is idempotent and token-checked: a guard whose slot was already
    force-released never clears a newer request's slot. A superseded guard
    still owns its slot and frees it on release.
    """

    def __init__(self, deduplicator: QueryDeduplicator, guild_id: int, token: str) -> None:
        self._deduplicator = deduplicator
        self.guild_id = guild_id
        self.token = token
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    @property
    def superseded(self) -> bool:
        """True once a skip/stop has abandoned this request or its slot is gone."""
        return not self._deduplicator._holds(self.guild_id, self.token, allow_superseded=False)

    def release(self) -> bool:
        if self._released:
            return False
        self._released = True
        return self._deduplicator._release_token(self.guild_id, self.token)

    def __enter__(self) -> QueryGuard:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()

    async def __aenter__(self) -> QueryGuard:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


class QueryDeduplicator:
    def __init__(self, store: SessionStore, resolver: StreamResolver) -> None:
        self._store = store
        self._resolver = resolver

    def acquire(self, guild_id: int, query: str) -> QueryGuard:
        """Claim the guild's slot.

        Raises:
            DuplicateRequestSignal: a fetch is already in flight for this guild.
        """
        existing = self._store.active_queries.get(guild_id)
        if existing is not None:
            logger.info(LogTemplates.DEDUP_DUPLICATE, guild_id, query, existing.query)
            raise DuplicateRequestSignal(guild_id, existing.query)

        token = uuid.uuid4().hex
        self._store.active_queries[guild_id] = ActiveQuery(query=query, token=token)
        logger.debug(LogTemplates.DEDUP_ACQUIRED, guild_id, query)
        return QueryGuard(self, guild_id, token)

    def release(self, guild_id: int) -> bool:
        """Drop whatever entry the guild holds. No-op when nothing is held."""
        entry = self._store.active_queries.pop(guild_id, None)
        if entry is None:
            return False
        logger.debug(LogTemplates.DEDUP_RELEASED, guild_id, entry.query)
        return True

    def _release_token(self, guild_id: int, token: str) -> bool:
        if not self._holds(guild_id, token):
            return False
        entry = self._store.active_queries.pop(guild_id)
        logger.debug(LogTemplates.DEDUP_RELEASED, guild_id, entry.query)
        return True

    def supersede(self, guild_id: int) -> bool:
        """Mark the in-flight request as abandoned without freeing its slot.

        The request still releases its own slot when its fetch returns, so a
        newer request only proceeds after that release.
        """
        entry = self._store.active_queries.get(guild_id)
        if entry is None or entry.superseded:
            return False
        self._store.active_queries[guild_id] = entry.model_copy(update={"superseded": True})
        logger.info(LogTemplates.DEDUP_SUPERSEDED, guild_id, entry.query)
        return True

    def _holds(self, guild_id: int, token: str, *, allow_superseded: bool = True) -> bool:
        entry = self._store.active_queries.get(guild_id)
        if entry is None or entry.token != token:
            return False
        return allow_superseded or not entry.superseded

    def is_active(self, guild_id: int) -> bool:
        return guild_id in self._store.active_queries

    def active_query(self, guild_id: int) -> str | None:
        entry = self._store.active_queries.get(guild_id)
        return entry.query if entry else None

    async def fetch_stream_details(
        self, query: str, title_fallback: str | None, guild_id: int
    ) -> StreamDetails | StreamFetchError:
        """Resolve ``query`` under the guild's slot and normalize the result.

        Never raises for resolver problems; the slot is released on every path.
        """
        try:
            guard = self.acquire(guild_id, query)
        except DuplicateRequestSignal:
            return StreamFetchError(error=DiscordUIMessages.REQUEST_ALREADY_IN_PROGRESS, duplicate=True)

        with guard:
            return await self.resolve_with(guard, query, title_fallback)

    async def resolve_with(
        self, guard: QueryGuard, query: str, title_fallback: str | None
    ) -> StreamDetails | StreamFetchError:
        """Resolve under a slot the caller already holds. The caller releases it."""
        guild_id = guard.guild_id
        try:
            resolved = await self._resolver.resolve(query, guild_id)
        except (ResolutionFailure, ProcessSpawnFailure) as e:
            logger.warning(LogTemplates.DEDUP_FETCH_FAILED, guild_id, query, e.message)
            return StreamFetchError(error=e.message)
        except Exception as e:
            logger.exception(LogTemplates.DEDUP_FETCH_UNEXPECTED, guild_id, query, e)
            return StreamFetchError(error=ErrorMessages.RESOLVER_UNEXPECTED_ERROR)

        return normalize_stream(resolved, query, title_fallback)

    async def resolve_playlist_with(
        self, guard: QueryGuard, url: str
    ) -> PlaylistDetails | StreamFetchError:
        """List a playlist under a slot the caller already holds."""
        guild_id = guard.guild_id
        try:
            listed = await self._resolver.resolve_playlist(url, guild_id)
        except (ResolutionFailure, ProcessSpawnFailure) as e:
            logger.warning(LogTemplates.DEDUP_FETCH_FAILED, guild_id, url, e.message)
            return StreamFetchError(error=e.message)
        except Exception as e:
            logger.exception(LogTemplates.DEDUP_FETCH_UNEXPECTED, guild_id, url, e)
            return StreamFetchError(error=ErrorMessages.RESOLVER_UNEXPECTED_ERROR)

        entries = tuple(
            normalize_stream(item, item.canonical_url, None) for item in listed if item.canonical_url
        )
        if not entries:
            return StreamFetchError(error=ErrorMessages.RESOLVER_PLAYLIST_EMPTY)
        return PlaylistDetails(url=url, entries=entries)


def normalize_stream(
    resolved: ResolvedStream, query: str, title_fallback: str | None
) -> StreamDetails:
    title = (resolved.title or "").strip() or (title_fallback or "").strip() or DEFAULT_TITLE

    duration = 0
    if resolved.duration_seconds is not None and resolved.duration_seconds >= 0:
        duration = int(resolved.duration_seconds)

    return StreamDetails(
        title=title,
        duration_seconds=duration,
        thumbnail_url=resolved.thumbnail_url or None,
        url=resolved.canonical_url or query,
        stream_url=resolved.stream_url or None,
    )

"""StreamResolver backed by tracked ``yt-dlp`` subprocesses."""

from __future__ import annotations

import asyncio
import logging
import re

from pydantic import ValidationError as PydanticValidationError

from guild_audio_bot.application.interfaces.stream_resolver import ResolvedStream, StreamResolver
from guild_audio_bot.config.settings import ResolverSettings
from guild_audio_bot.domain.shared.exceptions import ResolutionFailure
from guild_audio_bot.domain.shared.messages import ErrorMessages, LogTemplates
from guild_audio_bot.infrastructure.audio.models import (
    SEARCH_PREFIX,
    STDERR_TAIL_CHARS,
    YtDlpFlatEntry,
    YtDlpMetadata,
)
from guild_audio_bot.infrastructure.processes.registry import ProcessRegistry, TrackedProcess

logger = logging.getLogger(__name__)

_URL_RE = re.compile(r"^(https?://|spotify:)", re.IGNORECASE)


def looks_like_url(query: str) -> bool:
    return bool(_URL_RE.match(query.strip()))


def parse_dump_json(stdout: bytes) -> YtDlpMetadata | None:
    """Parse the first JSON document yt-dlp printed, or None if there is none."""
    for line in stdout.decode("utf-8", errors="replace").splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            return YtDlpMetadata.model_validate_json(line)
        except PydanticValidationError:
            return None
    return None


def parse_flat_playlist(stdout: bytes) -> list[YtDlpFlatEntry]:
    """Parse one JSON document per line, keeping the entries that can be played."""
    entries = []
    for line in stdout.decode("utf-8", errors="replace").splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            entry = YtDlpFlatEntry.model_validate_json(line)
        except PydanticValidationError:
            continue
        if entry.is_playable:
            entries.append(entry)
    return entries


def _stderr_reason(stderr: bytes) -> str | None:
    lines = [
        line.strip()
        for line in stderr.decode("utf-8", errors="replace").splitlines()
        if line.strip()
    ]
    if not lines:
        return None
    return lines[-1][:STDERR_TAIL_CHARS]


class YtDlpProcessResolver(StreamResolver):
    def __init__(self, processes: ProcessRegistry, settings: ResolverSettings | None = None) -> None:
        self._processes = processes
        self._settings = settings or ResolverSettings()

    def build_args(self, query: str) -> list[str]:
        target = query.strip() if looks_like_url(query) else f"{SEARCH_PREFIX}{query.strip()}"
        return [
            *self._settings.command,
            "--dump-json",
            "--skip-download",
            "--no-playlist",
            "--no-warnings",
            "-f",
            self._settings.format,
            *self._settings.extra_args,
            target,
        ]

    def build_playlist_args(self, url: str) -> list[str]:
        return [
            *self._settings.command,
            "--flat-playlist",
            "--dump-json",
            "--ignore-errors",
            "--no-warnings",
            "--playlist-end",
            str(self._settings.playlist_limit),
            *self._settings.extra_args,
            url.strip(),
        ]

    async def resolve(self, query: str, guild_id: int) -> ResolvedStream:
        stdout, stderr, returncode = await self._run(
            guild_id, query, self.build_args(query), self._settings.timeout_seconds
        )

        if returncode != 0:
            reason = _stderr_reason(stderr) or ErrorMessages.RESOLVER_EXIT_CODE.format(code=returncode)
            logger.warning(LogTemplates.RESOLVER_FAILED, guild_id, query, reason)
            raise ResolutionFailure(query, reason)

        metadata = parse_dump_json(stdout)
        if metadata is None:
            logger.warning(LogTemplates.RESOLVER_BAD_OUTPUT, guild_id, query)
            raise ResolutionFailure(query, ErrorMessages.RESOLVER_NO_METADATA)

        logger.debug(LogTemplates.RESOLVER_RESOLVED, guild_id, metadata.title)
        return ResolvedStream(
            title=metadata.title,
            duration_seconds=metadata.duration,
            thumbnail_url=metadata.thumbnail,
            canonical_url=metadata.webpage_url,
            stream_url=metadata.stream_url,
        )

    async def resolve_playlist(self, url: str, guild_id: int) -> tuple[ResolvedStream, ...]:
        stdout, stderr, returncode = await self._run(
            guild_id, url, self.build_playlist_args(url), self._settings.playlist_timeout_seconds
        )

        # --ignore-errors exits non-zero when single entries fail; the rest are still usable.
        entries = parse_flat_playlist(stdout)
        if not entries:
            if returncode != 0:
                reason = _stderr_reason(stderr) or ErrorMessages.RESOLVER_EXIT_CODE.format(code=returncode)
            else:
                reason = ErrorMessages.RESOLVER_PLAYLIST_EMPTY
            logger.warning(LogTemplates.RESOLVER_FAILED, guild_id, url, reason)
            raise ResolutionFailure(url, reason)

        logger.debug(LogTemplates.RESOLVER_PLAYLIST_RESOLVED, guild_id, len(entries))
        return tuple(
            ResolvedStream(
                title=entry.title,
                duration_seconds=entry.duration,
                thumbnail_url=entry.thumbnail_url,
                canonical_url=entry.canonical_url,
            )
            for entry in entries
        )

    async def _run(
        self, guild_id: int, query: str, args: list[str], timeout: float
    ) -> tuple[bytes, bytes, int | None]:
        tracked = await self._processes.spawn(guild_id, args)

        try:
            stdout, stderr = await asyncio.wait_for(tracked.process.communicate(), timeout=timeout)
        except TimeoutError:
            logger.warning(LogTemplates.RESOLVER_TIMEOUT, guild_id, tracked.pid, timeout)
            await self._kill(tracked)
            raise ResolutionFailure(
                query, ErrorMessages.RESOLVER_TIMED_OUT.format(seconds=timeout)
            ) from None
        finally:
            self._processes.discard(guild_id, tracked.pid)

        return stdout, stderr, tracked.process.returncode

    async def _kill(self, tracked: TrackedProcess) -> None:
        try:
            tracked.process.kill()
        except ProcessLookupError:
            return
        await tracked.process.wait()

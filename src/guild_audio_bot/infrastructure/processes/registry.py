"""Tracks external resolver processes per guild.

Records live in the injected ``SessionStore``. Every map edit here is
synchronous, so ``reap()`` can run from the cleanup loop while spawns and
status requests are in flight; removals are always existence-checked to
keep the aggregate counts in ``get_status()`` accurate.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import psutil
from pydantic import BaseModel, ConfigDict, Field

from guild_audio_bot.domain.session.entities import ProcessRecord
from guild_audio_bot.domain.shared.datetime_utils import utcnow
from guild_audio_bot.domain.shared.exceptions import ProcessSpawnFailure
from guild_audio_bot.domain.shared.messages import ErrorMessages, LogTemplates
from guild_audio_bot.domain.shared.types import NonNegativeInt

if TYPE_CHECKING:
    from guild_audio_bot.domain.session.store import SessionStore

logger = logging.getLogger(__name__)

Launcher = Callable[..., Awaitable[Any]]
LivenessProbe = Callable[[int], bool]
Killer = Callable[[int], None]


def psutil_liveness_probe(pid: int) -> bool:
    """True if ``pid`` exists and is not a zombie."""
    try:
        proc = psutil.Process(pid)
        return proc.is_running() and proc.status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False
    except psutil.AccessDenied:
        # Exists, but owned by someone else.
        return True


class GuildProcessDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    alive_processes: NonNegativeInt
    total_processes: NonNegativeInt
    process_pids: list[int] = Field(default_factory=list)


class ProcessStatus(BaseModel):
    """Aggregated view of every tracked resolver process."""

    model_config = ConfigDict(frozen=True)

    total_guilds: NonNegativeInt = 0
    total_processes: NonNegativeInt = 0
    guild_details: dict[int, GuildProcessDetail] = Field(default_factory=dict)


class ReapStats(BaseModel):
    model_config = ConfigDict(frozen=True)

    dead_removed: NonNegativeInt = 0
    overlaps_terminated: NonNegativeInt = 0

    @property
    def total(self) -> int:
        return self.dead_removed + self.overlaps_terminated


@dataclass(frozen=True)
class TrackedProcess:
    guild_id: int
    pid: int
    process: Any


class ProcessRegistry:
    def __init__(
        self,
        store: SessionStore,
        *,
        launcher: Launcher | None = None,
        probe: LivenessProbe | None = None,
        killer: Killer | None = None,
    ) -> None:
        self._store = store
        self._launcher = launcher or asyncio.create_subprocess_exec
        self._probe = probe or psutil_liveness_probe
        self._killer = killer or self._kill_pid
        self._handles: dict[int, Any] = {}

    # ─────────────────────────────────────────────────────────────────
    # Spawn / discard
    # ─────────────────────────────────────────────────────────────────

    async def spawn(self, guild_id: int, args: Sequence[str]) -> TrackedProcess:
        """Launch ``args`` for ``guild_id`` and start tracking it.

        Raises:
            ProcessSpawnFailure: the launcher failed. The caller decides what
                to tell the user; nothing is retried here.
        """
        if not args:
            raise ProcessSpawnFailure(guild_id, ErrorMessages.RESOLVER_EMPTY_COMMAND)

        try:
            process = await self._launcher(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(LogTemplates.PROCESS_SPAWN_FAILED, guild_id, e)
            raise ProcessSpawnFailure(guild_id, str(e)) from e

        pid = process.pid
        self._handles[pid] = process
        self._store.process_records.setdefault(guild_id, []).append(ProcessRecord(pid=pid))
        logger.debug(LogTemplates.PROCESS_SPAWNED, guild_id, pid, args[0])
        return TrackedProcess(guild_id=guild_id, pid=pid, process=process)

    def discard(self, guild_id: int, pid: int) -> bool:
        """Forget ``pid``. Returns False if it was not tracked for the guild."""
        self._handles.pop(pid, None)
        records = self._store.process_records.get(guild_id)
        if not records:
            return False

        for index, record in enumerate(records):
            if record.pid == pid:
                del records[index]
                break
        else:
            return False

        if not records:
            del self._store.process_records[guild_id]
        logger.debug(LogTemplates.PROCESS_DISCARDED, guild_id, pid)
        return True

    # ─────────────────────────────────────────────────────────────────
    # Introspection
    # ─────────────────────────────────────────────────────────────────

    def get_status(self) -> ProcessStatus:
        details: dict[int, GuildProcessDetail] = {}
        for guild_id, records in list(self._store.process_records.items()):
            if not records:
                continue
            pids = [record.pid for record in records]
            alive = sum(1 for pid in pids if self._probe(pid))
            details[guild_id] = GuildProcessDetail(
                alive_processes=alive,
                total_processes=len(pids),
                process_pids=pids,
            )

        return ProcessStatus(
            total_guilds=len(details),
            total_processes=sum(d.total_processes for d in details.values()),
            guild_details=details,
        )

    def tracked_pids(self, guild_id: int) -> list[int]:
        return [record.pid for record in self._store.process_records.get(guild_id, [])]

    # ─────────────────────────────────────────────────────────────────
    # Reaping / termination
    # ─────────────────────────────────────────────────────────────────

    def reap(self) -> ReapStats:
        """Drop dead records and collapse overlapping live ones to the newest."""
        dead_removed = 0
        overlaps_terminated = 0
        now = utcnow()

        for guild_id, records in list(self._store.process_records.items()):
            alive: list[ProcessRecord] = []
            for record in list(records):
                if self._probe(record.pid):
                    record.last_alive = now
                    alive.append(record)
                elif self.discard(guild_id, record.pid):
                    logger.debug(LogTemplates.PROCESS_REAPED_DEAD, guild_id, record.pid)
                    dead_removed += 1

            if len(alive) > 1:
                alive.sort(key=lambda r: r.spawned_at)
                for record in alive[:-1]:
                    self._killer(record.pid)
                    if self.discard(guild_id, record.pid):
                        logger.warning(LogTemplates.PROCESS_OVERLAP_TERMINATED, guild_id, record.pid)
                        overlaps_terminated += 1

        stats = ReapStats(dead_removed=dead_removed, overlaps_terminated=overlaps_terminated)
        if stats.total:
            logger.info(LogTemplates.PROCESS_REAP_SUMMARY, dead_removed, overlaps_terminated)
        return stats

    def terminate_guild(self, guild_id: int) -> int:
        records = self._store.process_records.pop(guild_id, [])
        for record in records:
            self._killer(record.pid)
            self._handles.pop(record.pid, None)
        if records:
            logger.info(LogTemplates.PROCESS_GUILD_TERMINATED, len(records), guild_id)
        return len(records)

    def terminate_all(self) -> int:
        return sum(self.terminate_guild(guild_id) for guild_id in list(self._store.process_records))

    def _kill_pid(self, pid: int) -> None:
        handle = self._handles.get(pid)
        try:
            if handle is not None:
                if handle.returncode is None:
                    handle.kill()
                return
            psutil.Process(pid).kill()
        except (ProcessLookupError, psutil.NoSuchProcess):
            pass
        except (OSError, psutil.Error) as e:
            logger.warning(LogTemplates.PROCESS_KILL_FAILED, pid, e)

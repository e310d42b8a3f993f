"""Per-guild purges, age-based sweeps, and the periodic cleanup loop.

Every removal here is synchronous and existence-checked, so purges and
sweeps interleave safely with ordinary command traffic on the same maps.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from pydantic import BaseModel

from guild_audio_bot.config.settings import CleanupSettings
from guild_audio_bot.domain.shared.datetime_utils import utcnow
from guild_audio_bot.domain.shared.messages import LogTemplates
from guild_audio_bot.domain.shared.types import NonNegativeInt

if TYPE_CHECKING:
    from guild_audio_bot.application.services.query_deduplicator import QueryDeduplicator
    from guild_audio_bot.application.services.session_registry import GuildSessionRegistry
    from guild_audio_bot.application.services.state_coordinator import StateCoordinator
    from guild_audio_bot.application.services.timeout_supervisor import TimeoutSupervisor
    from guild_audio_bot.domain.session.store import SessionStore
    from guild_audio_bot.infrastructure.processes.registry import ProcessRegistry

logger = logging.getLogger(__name__)


class CleanupStats(BaseModel):
    errors_swept: NonNegativeInt = 0
    dead_processes_reaped: NonNegativeInt = 0
    overlapping_processes_terminated: NonNegativeInt = 0

    @property
    def total_cleaned(self) -> int:
        return (
            self.errors_swept + self.dead_processes_reaped + self.overlapping_processes_terminated
        )


class TeardownReport(BaseModel):
    guild_id: int
    entries_purged: NonNegativeInt = 0
    timer_cancelled: bool = False
    session_removed: bool = False
    query_released: bool = False
    query_superseded: bool = False
    panel_forgotten: bool = False
    processes_terminated: NonNegativeInt = 0

    @property
    def removed_anything(self) -> bool:
        return bool(
            self.entries_purged
            or self.timer_cancelled
            or self.session_removed
            or self.query_released
            or self.query_superseded
            or self.panel_forgotten
            or self.processes_terminated
        )


class CleanupCoordinator:
    def __init__(
        self,
        *,
        store: SessionStore,
        sessions: GuildSessionRegistry,
        deduplicator: QueryDeduplicator,
        processes: ProcessRegistry,
        timeouts: TimeoutSupervisor,
        states: StateCoordinator,
        settings: CleanupSettings | None = None,
    ) -> None:
        self._store = store
        self._sessions = sessions
        self._deduplicator = deduplicator
        self._processes = processes
        self._timeouts = timeouts
        self._states = states
        self._settings = settings or CleanupSettings()
        self._running = False
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def retention(self) -> timedelta:
        return timedelta(hours=self._settings.error_retention_hours)

    # ─────────────────────────────────────────────────────────────────
    # On-demand
    # ─────────────────────────────────────────────────────────────────

    def purge_guild(self, guild_id: int) -> int:
        """Remove the guild's timer, configured channel and error record.

        Returns how many of those entries actually existed.
        """
        removed = 0
        if self._timeouts.cancel(guild_id):
            removed += 1
        if self._store.voice_channels.pop(guild_id, None) is not None:
            removed += 1
        if self._store.error_records.pop(guild_id, None) is not None:
            removed += 1

        if removed:
            logger.info(LogTemplates.CLEANUP_GUILD_PURGED, removed, guild_id)
        return removed

    def sweep_stale(self, now: datetime | None = None) -> int:
        """Remove error records older than the retention window."""
        reference = now or utcnow()
        cutoff = reference - self.retention
        removed = 0

        for guild_id, record in list(self._store.error_records.items()):
            if record.last_error_timestamp >= cutoff:
                continue
            if self._store.error_records.get(guild_id) is record:
                del self._store.error_records[guild_id]
                removed += 1

        if removed:
            logger.info(LogTemplates.CLEANUP_ERRORS_SWEPT, removed)
        return removed

    def teardown_guild(self, guild_id: int) -> TeardownReport:
        """Remove the guild's whole footprint from every map."""
        report = TeardownReport(
            guild_id=guild_id,
            entries_purged=self.purge_guild(guild_id),
            session_removed=self._sessions.delete(guild_id),
            query_released=self._deduplicator.release(guild_id),
            panel_forgotten=self._states.forget(guild_id),
            processes_terminated=self._processes.terminate_guild(guild_id),
        )
        if report.removed_anything:
            logger.info(LogTemplates.CLEANUP_GUILD_TORN_DOWN, guild_id)
        return report

    def end_playback(self, guild_id: int) -> TeardownReport:
        """Drop playback state but keep the guild's channel config and error history.

        An in-flight fetch is superseded rather than released; it frees its
        own slot when it returns.
        """
        report = TeardownReport(
            guild_id=guild_id,
            timer_cancelled=self._timeouts.cancel(guild_id),
            session_removed=self._sessions.delete(guild_id),
            query_superseded=self._deduplicator.supersede(guild_id),
            panel_forgotten=self._states.forget(guild_id),
            processes_terminated=self._processes.terminate_guild(guild_id),
        )
        if report.removed_anything:
            logger.info(LogTemplates.CLEANUP_PLAYBACK_ENDED, guild_id)
        return report

    # ─────────────────────────────────────────────────────────────────
    # Periodic
    # ─────────────────────────────────────────────────────────────────

    def run_cleanup(self, now: datetime | None = None) -> CleanupStats:
        logger.debug(LogTemplates.CLEANUP_CYCLE_RUNNING)
        reaped = self._processes.reap()
        stats = CleanupStats(
            errors_swept=self.sweep_stale(now),
            dead_processes_reaped=reaped.dead_removed,
            overlapping_processes_terminated=reaped.overlaps_terminated,
        )
        if stats.total_cleaned > 0:
            logger.info(
                LogTemplates.CLEANUP_COMPLETED,
                stats.errors_swept,
                stats.dead_processes_reaped,
                stats.overlapping_processes_terminated,
            )
        return stats

    def start(self) -> None:
        if self._running:
            logger.warning(LogTemplates.CLEANUP_ALREADY_RUNNING)
            return

        self._running = True
        self._tasks = [
            asyncio.create_task(
                self._run_loop(self._settings.cleanup_interval_minutes * 60, self._sweep_once)
            ),
            asyncio.create_task(
                self._run_loop(self._settings.reap_interval_seconds, self._reap_once)
            ),
        ]
        logger.info(LogTemplates.CLEANUP_STARTED)

    async def stop(self) -> None:
        self._running = False

        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []

        logger.info(LogTemplates.CLEANUP_STOPPED)

    @property
    def is_running(self) -> bool:
        return self._running

    async def _sweep_once(self) -> None:
        self.run_cleanup()

    async def _reap_once(self) -> None:
        self._processes.reap()

    async def _run_loop(self, interval_seconds: float, action: Callable[[], Awaitable[None]]) -> None:
        while self._running:
            try:
                await action()
            except Exception:
                logger.exception(LogTemplates.CLEANUP_CYCLE_FAILED)

            try:
                await asyncio.sleep(interval_seconds)
            except asyncio.CancelledError:
                break

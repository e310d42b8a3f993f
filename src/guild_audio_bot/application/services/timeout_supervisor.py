"""Per-guild inactivity timers that trigger teardown when they fire."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from guild_audio_bot.config.settings import TimeoutSettings
from guild_audio_bot.domain.session.value_objects import SinkStatus
from guild_audio_bot.domain.shared.datetime_utils import utcnow
from guild_audio_bot.domain.shared.exceptions import TimeoutFired
from guild_audio_bot.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from guild_audio_bot.domain.session.store import SessionStore

logger = logging.getLogger(__name__)

TeardownCallback = Callable[[int, TimeoutFired], Awaitable[None]]


class ScheduledTask:
    """Cancellable handle around an ``asyncio.Task``. Cancel is idempotent."""

    def __init__(self, task: asyncio.Task[None], delay: float) -> None:
        self.task = task
        self.delay = delay
        self.armed_at = utcnow()

    @property
    def done(self) -> bool:
        return self.task.done()

    def cancel(self) -> bool:
        if self.task.done():
            return False
        return self.task.cancel()


class TimeoutSupervisor:
    def __init__(
        self,
        store: SessionStore,
        settings: TimeoutSettings | None = None,
        teardown: TeardownCallback | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or TimeoutSettings()
        self._teardown = teardown

    def set_teardown(self, teardown: TeardownCallback) -> None:
        self._teardown = teardown

    def arm(self, guild_id: int, delay: float | None = None) -> ScheduledTask:
        """(Re)arm the guild's timer; any previous timer is cancelled first."""
        self.cancel(guild_id)
        seconds = self._settings.idle_seconds if delay is None else delay
        task = asyncio.create_task(
            self._fire_after(guild_id, seconds), name=f"inactivity-timeout-{guild_id}"
        )
        handle = ScheduledTask(task, seconds)
        self._store.timeout_handles[guild_id] = handle
        logger.debug(LogTemplates.TIMEOUT_ARMED, guild_id, seconds)
        return handle

    def arm_if_idle(self, guild_id: int) -> ScheduledTask | None:
        """Arm whenever the sink is not producing audio.

        Queued tracks do not hold the timer off: an advance that fails, or a
        session with auto-advance off, leaves tracks waiting on an idle sink.
        """
        session = self._store.sessions.get(guild_id)
        sink = session.sink if session else None
        status = sink.status() if sink is not None else SinkStatus.IDLE

        if status == SinkStatus.PAUSED:
            return self.arm(guild_id, self._settings.paused_seconds)
        if status.is_active:
            return None
        return self.arm(guild_id, self._settings.idle_seconds)

    def cancel(self, guild_id: int) -> bool:
        """Disarm the guild's timer. No-op if none is armed."""
        handle = self._store.timeout_handles.pop(guild_id, None)
        if handle is None:
            return False
        handle.cancel()
        logger.debug(LogTemplates.TIMEOUT_CANCELLED, guild_id)
        return True

    def is_armed(self, guild_id: int) -> bool:
        handle = self._store.timeout_handles.get(guild_id)
        return handle is not None and not handle.done

    def cancel_all(self) -> int:
        return sum(1 for guild_id in list(self._store.timeout_handles) if self.cancel(guild_id))

    async def _fire_after(self, guild_id: int, delay: float) -> None:
        await asyncio.sleep(delay)

        handle = self._store.timeout_handles.get(guild_id)
        if handle is None or handle.task is not asyncio.current_task():
            return
        del self._store.timeout_handles[guild_id]

        session = self._store.sessions.get(guild_id)
        sink = session.sink if session else None
        if sink is not None and sink.status().is_active:
            logger.info(LogTemplates.TIMEOUT_SKIPPED_ACTIVE, guild_id)
            return

        event = TimeoutFired(guild_id, delay)
        logger.info(LogTemplates.TIMEOUT_FIRED, guild_id, delay)
        if self._teardown is None:
            return

        try:
            await self._teardown(guild_id, event)
        except Exception as e:
            logger.exception(LogTemplates.TIMEOUT_TEARDOWN_FAILED, guild_id, e)

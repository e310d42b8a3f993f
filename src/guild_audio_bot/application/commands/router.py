"""Command and router translating command-layer requests into core operations."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from guild_audio_bot.application.services.diagnostics import format_process_status, format_report
from guild_audio_bot.application.services.playback_service import PlayStatus
from guild_audio_bot.domain.session.rendering import RenderPayload
from guild_audio_bot.domain.session.value_objects import VolumeChangeStatus
from guild_audio_bot.domain.shared.exceptions import DomainError
from guild_audio_bot.domain.shared.messages import DiscordUIMessages, EmojiConstants, LogTemplates
from guild_audio_bot.domain.shared.types import DiscordSnowflake

if TYPE_CHECKING:
    from guild_audio_bot.application.services.diagnostics import Diagnostics
    from guild_audio_bot.application.services.playback_service import PlaybackService
    from guild_audio_bot.application.services.session_registry import (
        GuildSessionRegistry,
        VolumeChangeResult,
    )
    from guild_audio_bot.application.services.state_coordinator import StateCoordinator
    from guild_audio_bot.infrastructure.processes.registry import ProcessRegistry

logger = logging.getLogger(__name__)

DEFAULT_VOLUME_STEP = 10
MIN_SHUFFLE_LENGTH = 2


class CommandKind(StrEnum):
    PLAY = "play"
    SKIP = "skip"
    STOP = "stop"
    PAUSE = "pause"
    RESUME = "resume"
    VOLUME_UP = "volume_up"
    VOLUME_DOWN = "volume_down"
    MUTE = "mute"
    SHUFFLE = "shuffle"
    AUTO_ADVANCE = "auto_advance"
    RESET = "reset"
    SET_VOICE_CHANNEL = "set_voice_channel"
    PROCESS_STATUS = "process_status"
    INSPECT_MEMORY = "inspect_memory"
    NOW_PLAYING = "now_playing"


class AutoAdvanceMode(StrEnum):
    ENABLE = "enable"
    DISABLE = "disable"
    STATUS = "status"


class CommandRequest(BaseModel):
    """A command delivered by the command layer for one guild."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    guild_id: DiscordSnowflake
    kind: CommandKind
    args: dict[str, Any] = Field(default_factory=dict)


class CommandResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str | None = None
    ephemeral: bool = False
    payload: RenderPayload | None = None

    @classmethod
    def reply(cls, content: str, *, ephemeral: bool = False) -> CommandResponse:
        return cls(content=content, ephemeral=ephemeral)

    @classmethod
    def private(cls, content: str) -> CommandResponse:
        return cls(content=content, ephemeral=True)


Handler = Callable[[CommandRequest], Awaitable[CommandResponse]]


class CommandRouter:
    def __init__(
        self,
        *,
        playback: PlaybackService,
        sessions: GuildSessionRegistry,
        states: StateCoordinator,
        processes: ProcessRegistry,
        diagnostics: Diagnostics,
        volume_step: int = DEFAULT_VOLUME_STEP,
    ) -> None:
        self._playback = playback
        self._sessions = sessions
        self._states = states
        self._processes = processes
        self._diagnostics = diagnostics
        self._volume_step = volume_step
        self._handlers: dict[CommandKind, Handler] = {
            CommandKind.PLAY: self._play,
            CommandKind.SKIP: self._skip,
            CommandKind.STOP: self._stop,
            CommandKind.PAUSE: self._pause,
            CommandKind.RESUME: self._resume,
            CommandKind.VOLUME_UP: self._volume_up,
            CommandKind.VOLUME_DOWN: self._volume_down,
            CommandKind.MUTE: self._mute,
            CommandKind.SHUFFLE: self._shuffle,
            CommandKind.AUTO_ADVANCE: self._auto_advance,
            CommandKind.RESET: self._reset,
            CommandKind.SET_VOICE_CHANNEL: self._set_voice_channel,
            CommandKind.PROCESS_STATUS: self._process_status,
            CommandKind.INSPECT_MEMORY: self._inspect_memory,
            CommandKind.NOW_PLAYING: self._now_playing,
        }

    async def dispatch(self, request: CommandRequest) -> CommandResponse:
        """Run ``request``. Failures become short ephemeral replies; detail goes to the log."""
        handler = self._handlers[request.kind]
        try:
            return await handler(request)
        except DomainError as e:
            logger.warning(LogTemplates.COMMAND_DOMAIN_ERROR, request.kind, request.guild_id, e.message)
            return CommandResponse.private(DiscordUIMessages.ERROR_WITH_REASON.format(reason=e.message))
        except Exception as e:
            logger.exception(LogTemplates.COMMAND_FAILED, request.kind, request.guild_id, e)
            return CommandResponse.private(DiscordUIMessages.ERROR_COMMAND_FAILED)

    # ─────────────────────────────────────────────────────────────────
    # Playback
    # ─────────────────────────────────────────────────────────────────

    async def _play(self, request: CommandRequest) -> CommandResponse:
        query = str(request.args.get("query", ""))
        result = await self._playback.play(
            request.guild_id,
            query,
            sink=request.args.get("sink"),
            title_fallback=request.args.get("title"),
        )

        if result.status == PlayStatus.NOW_PLAYING:
            return CommandResponse(
                content=result.message, payload=self._states.render(request.guild_id)
            )
        if result.status == PlayStatus.QUEUED:
            return CommandResponse.reply(result.message)
        return CommandResponse.private(result.message)

    async def _skip(self, request: CommandRequest) -> CommandResponse:
        if self._sessions.get(request.guild_id) is None:
            await self._playback.skip(request.guild_id)
            return CommandResponse.private(DiscordUIMessages.NOTHING_PLAYING)

        track = await self._playback.skip(request.guild_id)
        if track is None:
            return CommandResponse.reply(DiscordUIMessages.SKIPPED_QUEUE_FINISHED)
        return CommandResponse(
            content=DiscordUIMessages.SKIPPED_TO.format(title=track.title),
            payload=self._states.render(request.guild_id),
        )

    async def _stop(self, request: CommandRequest) -> CommandResponse:
        report = await self._playback.stop(request.guild_id)
        if not report.session_removed:
            return CommandResponse.private(DiscordUIMessages.NOTHING_PLAYING)
        return CommandResponse.reply(DiscordUIMessages.STOPPED)

    async def _pause(self, request: CommandRequest) -> CommandResponse:
        if self._playback.pause(request.guild_id):
            return CommandResponse(
                content=DiscordUIMessages.PAUSED, payload=self._states.render(request.guild_id)
            )
        return CommandResponse.private(DiscordUIMessages.NOTHING_TO_PAUSE)

    async def _resume(self, request: CommandRequest) -> CommandResponse:
        if self._playback.resume(request.guild_id):
            return CommandResponse(
                content=DiscordUIMessages.RESUMED, payload=self._states.render(request.guild_id)
            )
        return CommandResponse.private(DiscordUIMessages.NOTHING_TO_RESUME)

    async def _shuffle(self, request: CommandRequest) -> CommandResponse:
        session = self._sessions.get(request.guild_id)
        if session is None or session.upcoming_count < MIN_SHUFFLE_LENGTH:
            return CommandResponse.private(DiscordUIMessages.NOT_ENOUGH_TO_SHUFFLE)
        count = self._sessions.shuffle_queue(request.guild_id)
        return CommandResponse.reply(DiscordUIMessages.SHUFFLED.format(count=count))

    async def _auto_advance(self, request: CommandRequest) -> CommandResponse:
        try:
            mode = AutoAdvanceMode(request.args.get("mode", AutoAdvanceMode.STATUS))
        except ValueError:
            return CommandResponse.private(DiscordUIMessages.ERROR_INVALID_OPTION)

        session = self._sessions.get(request.guild_id)
        if session is None:
            return CommandResponse.private(DiscordUIMessages.NO_ACTIVE_SESSION)

        if mode == AutoAdvanceMode.ENABLE:
            await self._playback.set_auto_advance(request.guild_id, True)
            return CommandResponse.private(DiscordUIMessages.AUTO_ADVANCE_ENABLED)
        if mode == AutoAdvanceMode.DISABLE:
            await self._playback.set_auto_advance(request.guild_id, False)
            return CommandResponse.private(DiscordUIMessages.AUTO_ADVANCE_DISABLED)

        if session.upcoming_count:
            queue = DiscordUIMessages.AUTO_ADVANCE_QUEUE_WAITING.format(count=session.upcoming_count)
        else:
            queue = DiscordUIMessages.AUTO_ADVANCE_QUEUE_EMPTY
        return CommandResponse.private(
            DiscordUIMessages.AUTO_ADVANCE_STATUS.format(
                emoji=EmojiConstants.CHECK if session.auto_advance else EmojiConstants.STOP,
                state="enabled" if session.auto_advance else "disabled",
                queue=queue,
            )
        )

    async def _reset(self, request: CommandRequest) -> CommandResponse:
        await self._playback.teardown(request.guild_id)
        return CommandResponse.private(DiscordUIMessages.RESET_DONE)

    async def _now_playing(self, request: CommandRequest) -> CommandResponse:
        return CommandResponse(payload=self._states.render(request.guild_id), ephemeral=True)

    # ─────────────────────────────────────────────────────────────────
    # Volume
    # ─────────────────────────────────────────────────────────────────

    async def _volume_up(self, request: CommandRequest) -> CommandResponse:
        result = self._sessions.step_volume(request.guild_id, self._volume_step)
        return self._volume_response(result)

    async def _volume_down(self, request: CommandRequest) -> CommandResponse:
        result = self._sessions.step_volume(request.guild_id, -self._volume_step)
        return self._volume_response(result)

    async def _mute(self, request: CommandRequest) -> CommandResponse:
        result = self._sessions.toggle_mute(request.guild_id)
        return self._volume_response(result)

    def _volume_response(self, result: VolumeChangeResult) -> CommandResponse:
        if result.status == VolumeChangeStatus.NO_SESSION:
            return CommandResponse.private(DiscordUIMessages.NOTHING_PLAYING)

        if result.muted:
            message = DiscordUIMessages.VOLUME_MUTED
        else:
            message = DiscordUIMessages.VOLUME_SET.format(volume=result.volume)

        if result.status == VolumeChangeStatus.UNSUPPORTED:
            message = f"{message}\n{DiscordUIMessages.VOLUME_UNSUPPORTED_NOTE}"
        return CommandResponse.private(message)

    # ─────────────────────────────────────────────────────────────────
    # Configuration / diagnostics
    # ─────────────────────────────────────────────────────────────────

    async def _set_voice_channel(self, request: CommandRequest) -> CommandResponse:
        channel_id = request.args.get("channel_id")
        if not isinstance(channel_id, int) or channel_id <= 0:
            return CommandResponse.private(DiscordUIMessages.ERROR_INVALID_CHANNEL)
        self._sessions.configure_voice_channel(request.guild_id, channel_id)
        return CommandResponse.private(
            DiscordUIMessages.VOICE_CHANNEL_CONFIGURED.format(channel_id=channel_id)
        )

    async def _process_status(self, request: CommandRequest) -> CommandResponse:
        return CommandResponse.private(format_process_status(self._processes.get_status()))

    async def _inspect_memory(self, request: CommandRequest) -> CommandResponse:
        report = self._diagnostics.log_snapshot()
        return CommandResponse.private(format_report(report))

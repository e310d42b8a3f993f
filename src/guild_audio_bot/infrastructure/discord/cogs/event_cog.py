"""Gateway event listeners that keep per-guild state in step with Discord."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from guild_audio_bot.domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from ....config.container import Container

logger = logging.getLogger(__name__)


class EventCog(commands.Cog):
    def __init__(self, bot: commands.Bot, container: Container) -> None:
        self.bot = bot
        self.container = container

    @commands.Cog.listener()
    async def on_guild_remove(self, guild: discord.Guild) -> None:
        logger.info(LogTemplates.EVENT_GUILD_REMOVED, guild.id)

        session = self.container.session_registry.get(guild.id)
        if session is not None and session.sink is not None:
            session.sink.stop()
        self.container.cleanup_coordinator.teardown_guild(guild.id)

    @commands.Cog.listener()
    async def on_voice_state_update(
        self, member: discord.Member, before: discord.VoiceState, after: discord.VoiceState
    ) -> None:
        if self.bot.user is None or member.id != self.bot.user.id:
            return

        # Kicked or disconnected from voice by someone else.
        if before.channel is not None and after.channel is None:
            logger.info(LogTemplates.EVENT_BOT_VOICE_DISCONNECTED, member.guild.id)
            await self.container.playback_service.teardown(member.guild.id, disconnect=False)


async def setup(bot: commands.Bot) -> None:
    container = getattr(bot, "container", None)
    if container is None:
        raise RuntimeError(ErrorMessages.CONTAINER_NOT_FOUND)

    await bot.add_cog(EventCog(bot, container))

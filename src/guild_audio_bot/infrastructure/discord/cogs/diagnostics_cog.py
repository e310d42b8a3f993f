"""Owner/admin diagnostics: process status, memory inspection, and a periodic status log."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands, tasks

from guild_audio_bot.application.commands.router import CommandKind, CommandRequest
from guild_audio_bot.domain.shared.messages import (
    DiscordUIMessages,
    ErrorMessages,
    LogTemplates,
)

if TYPE_CHECKING:
    from ....config.container import Container

logger = logging.getLogger(__name__)

# Discord rejects message content longer than this.
MESSAGE_LIMIT = 2000


def _is_bot_owner(interaction: discord.Interaction) -> bool:
    """Check if the user is a configured bot owner or the application owner."""
    app_info = interaction.client.application
    if app_info and app_info.owner and interaction.user.id == app_info.owner.id:
        return True

    container = getattr(interaction.client, "container", None)
    if container:
        return interaction.user.id in container.settings.discord.owner_ids
    return False


def require_owner_or_admin():
    """Allow bot owners and guild admins."""

    async def predicate(interaction: discord.Interaction) -> bool:
        if not interaction.guild:
            return False

        if _is_bot_owner(interaction):
            return True

        if isinstance(interaction.user, discord.Member):
            perms = interaction.user.guild_permissions
            return perms.administrator or perms.manage_guild

        return False

    return app_commands.check(predicate)


def truncate(text: str, limit: int = MESSAGE_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


class DiagnosticsCog(commands.Cog):
    def __init__(self, bot: commands.Bot, container: Container) -> None:
        self.bot = bot
        self.container = container
        self.status_log.change_interval(
            minutes=container.settings.diagnostics.status_log_interval_minutes
        )

    async def cog_load(self) -> None:
        self.status_log.start()

    async def cog_unload(self) -> None:
        self.status_log.cancel()

    async def _run(self, interaction: discord.Interaction, kind: CommandKind) -> None:
        assert interaction.guild is not None
        response = await self.container.command_router.dispatch(
            CommandRequest(guild_id=interaction.guild.id, kind=kind)
        )
        await interaction.response.send_message(
            truncate(response.content or DiscordUIMessages.ERROR_GENERIC), ephemeral=True
        )

    # ─────────────────────────────────────────────────────────────────
    # Commands
    # ─────────────────────────────────────────────────────────────────

    @app_commands.command(name="process-status", description="Show tracked resolver processes.")
    @require_owner_or_admin()
    async def process_status(self, interaction: discord.Interaction) -> None:
        await self._run(interaction, CommandKind.PROCESS_STATUS)

    @app_commands.command(name="inspect-memory", description="Dump per-guild state sizes.")
    @require_owner_or_admin()
    async def inspect_memory(self, interaction: discord.Interaction) -> None:
        await self._run(interaction, CommandKind.INSPECT_MEMORY)

    # ─────────────────────────────────────────────────────────────────
    # Status loop
    # ─────────────────────────────────────────────────────────────────

    @tasks.loop(minutes=10, reconnect=True)
    async def status_log(self) -> None:
        try:
            status = self.container.process_registry.get_status()
            logger.info(
                LogTemplates.DIAGNOSTICS_PROCESS_SUMMARY,
                status.total_processes,
                status.total_guilds,
            )
            self.container.diagnostics.log_snapshot()
        except Exception as e:
            logger.exception(LogTemplates.DIAGNOSTICS_LOOP_FAILED, e)

    @status_log.before_loop
    async def _wait_ready(self) -> None:
        await self.bot.wait_until_ready()


async def setup(bot: commands.Bot) -> None:
    container = getattr(bot, "container", None)
    if container is None:
        raise RuntimeError(ErrorMessages.CONTAINER_NOT_FOUND)

    await bot.add_cog(DiagnosticsCog(bot, container))

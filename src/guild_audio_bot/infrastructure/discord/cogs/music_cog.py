"""Slash-command music cog delegating to the command router."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import discord
from discord import app_commands
from discord.ext import commands

from guild_audio_bot.application.commands.router import (
    AutoAdvanceMode,
    CommandKind,
    CommandRequest,
    CommandResponse,
)
from guild_audio_bot.domain.shared.messages import DiscordUIMessages, ErrorMessages

if TYPE_CHECKING:
    from ....config.container import Container
    from ....domain.session.rendering import RenderPayload

logger = logging.getLogger(__name__)


def panel_embed(payload: RenderPayload) -> discord.Embed:
    """Build the control-panel embed for a render payload."""
    title = DiscordUIMessages.PANEL_TITLE
    if payload.icon:
        title = f"{payload.icon} {title}"

    embed = discord.Embed(title=title, description=payload.primary_text, color=payload.color)
    if payload.time_display:
        embed.add_field(name=DiscordUIMessages.PANEL_FIELD_TIME, value=payload.time_display, inline=True)
    embed.add_field(name=DiscordUIMessages.PANEL_FIELD_VOLUME, value=payload.volume_display, inline=True)
    if payload.image_url:
        embed.set_thumbnail(url=payload.image_url)
    return embed


class MusicCog(commands.Cog):
    def __init__(self, bot: commands.Bot, container: Container) -> None:
        self.bot = bot
        self.container = container

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    async def _send_ephemeral(self, interaction: discord.Interaction, message: str) -> None:
        if interaction.response.is_done():
            await interaction.followup.send(message, ephemeral=True)
        else:
            await interaction.response.send_message(message, ephemeral=True)

    async def _respond(self, interaction: discord.Interaction, response: CommandResponse) -> None:
        kwargs: dict[str, Any] = {"ephemeral": response.ephemeral}
        if response.content:
            kwargs["content"] = response.content
        if response.payload is not None:
            kwargs["embed"] = panel_embed(response.payload)
        if "content" not in kwargs and "embed" not in kwargs:
            kwargs["content"] = DiscordUIMessages.ERROR_GENERIC

        if interaction.response.is_done():
            await interaction.followup.send(**kwargs)
        else:
            await interaction.response.send_message(**kwargs)

    async def _dispatch(
        self,
        interaction: discord.Interaction,
        kind: CommandKind,
        **args: Any,
    ) -> None:
        if interaction.guild is None:
            await self._send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
            return

        request = CommandRequest(guild_id=interaction.guild.id, kind=kind, args=args)
        response = await self.container.command_router.dispatch(request)
        await self._respond(interaction, response)

    async def _ensure_voice(self, interaction: discord.Interaction) -> bool:
        """Join the configured channel, or the caller's channel when none is set."""
        guild = interaction.guild
        if guild is None:
            await self._send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
            return False

        gateway = self.container.voice_gateway
        if gateway.is_connected(guild.id):
            return True

        channel_id = self.container.session_registry.configured_voice_channel(guild.id)
        if channel_id is None:
            user = interaction.user
            voice = getattr(user, "voice", None)
            if not isinstance(user, discord.Member) or voice is None or voice.channel is None:
                await self._send_ephemeral(interaction, DiscordUIMessages.STATE_NEED_TO_BE_IN_VOICE)
                return False
            channel_id = voice.channel.id

        if not await gateway.connect(guild.id, channel_id):
            await self._send_ephemeral(interaction, DiscordUIMessages.ERROR_COULD_NOT_JOIN_VOICE)
            return False
        return True

    # ─────────────────────────────────────────────────────────────────
    # Commands
    # ─────────────────────────────────────────────────────────────────

    @app_commands.command(name="play", description="Play a song by URL or search query.")
    @app_commands.describe(query="YouTube URL or search query")
    async def play(self, interaction: discord.Interaction, query: str) -> None:
        # Voice connection and lookup can exceed the 3-second interaction deadline.
        await interaction.response.defer()

        if not await self._ensure_voice(interaction):
            return
        assert interaction.guild is not None

        session = self.container.session_registry.get(interaction.guild.id)
        sink = self.container.voice_gateway.sink_for(
            interaction.guild.id, existing=session.sink if session else None
        )
        await self._dispatch(interaction, CommandKind.PLAY, query=query, sink=sink)

    @app_commands.command(name="skip", description="Skip the current track.")
    async def skip(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer()
        await self._dispatch(interaction, CommandKind.SKIP)

    @app_commands.command(name="stop", description="Stop playback, clear the queue, and leave.")
    async def stop(self, interaction: discord.Interaction) -> None:
        await self._dispatch(interaction, CommandKind.STOP)

    @app_commands.command(name="pause", description="Pause playback.")
    async def pause(self, interaction: discord.Interaction) -> None:
        await self._dispatch(interaction, CommandKind.PAUSE)

    @app_commands.command(name="resume", description="Resume paused playback.")
    async def resume(self, interaction: discord.Interaction) -> None:
        await self._dispatch(interaction, CommandKind.RESUME)

    @app_commands.command(name="volume-up", description="Raise the volume.")
    async def volume_up(self, interaction: discord.Interaction) -> None:
        await self._dispatch(interaction, CommandKind.VOLUME_UP)

    @app_commands.command(name="volume-down", description="Lower the volume.")
    async def volume_down(self, interaction: discord.Interaction) -> None:
        await self._dispatch(interaction, CommandKind.VOLUME_DOWN)

    @app_commands.command(name="mute", description="Toggle mute.")
    async def mute(self, interaction: discord.Interaction) -> None:
        await self._dispatch(interaction, CommandKind.MUTE)

    @app_commands.command(name="shuffle", description="Shuffle the queue.")
    async def shuffle(self, interaction: discord.Interaction) -> None:
        await self._dispatch(interaction, CommandKind.SHUFFLE)

    @app_commands.command(
        name="auto-advance",
        description="Control whether the next queued song plays automatically.",
    )
    @app_commands.describe(mode="What to do (default: show the current setting)")
    @app_commands.choices(
        mode=[
            app_commands.Choice(name="Enable", value=AutoAdvanceMode.ENABLE.value),
            app_commands.Choice(name="Disable", value=AutoAdvanceMode.DISABLE.value),
            app_commands.Choice(name="Show current setting", value=AutoAdvanceMode.STATUS.value),
        ]
    )
    async def auto_advance(
        self,
        interaction: discord.Interaction,
        mode: app_commands.Choice[str] | None = None,
    ) -> None:
        await self._dispatch(
            interaction,
            CommandKind.AUTO_ADVANCE,
            mode=mode.value if mode else AutoAdvanceMode.STATUS.value,
        )

    @app_commands.command(name="reset", description="Reset the player for this server.")
    async def reset(self, interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True)
        await self._dispatch(interaction, CommandKind.RESET)

    @app_commands.command(name="nowplaying", description="Show the player panel.")
    async def now_playing(self, interaction: discord.Interaction) -> None:
        await self._dispatch(interaction, CommandKind.NOW_PLAYING)

    @app_commands.command(
        name="set-voice-channel",
        description="Choose the voice channel the bot joins in this server.",
    )
    @app_commands.describe(channel="Voice channel to use")
    @app_commands.default_permissions(manage_guild=True)
    async def set_voice_channel(
        self,
        interaction: discord.Interaction,
        channel: discord.VoiceChannel,
    ) -> None:
        await self._dispatch(interaction, CommandKind.SET_VOICE_CHANNEL, channel_id=channel.id)


async def setup(bot: commands.Bot) -> None:
    container = getattr(bot, "container", None)
    if container is None:
        raise RuntimeError(ErrorMessages.CONTAINER_NOT_FOUND)

    await bot.add_cog(MusicCog(bot, container))

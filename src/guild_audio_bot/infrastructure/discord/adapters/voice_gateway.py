"""Discord voice gateway: connection upkeep and per-guild sink construction."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import discord

from guild_audio_bot.application.interfaces.voice_gateway import VoiceGateway
from guild_audio_bot.config.settings import AudioSettings
from guild_audio_bot.domain.shared.messages import LogTemplates
from guild_audio_bot.infrastructure.audio.discord_sink import DiscordAudioSink, TrackEndCallback

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT: float = 10.0


class DiscordVoiceGateway(VoiceGateway):
    def __init__(
        self,
        bot: discord.Client,
        settings: AudioSettings | None = None,
        on_track_end: TrackEndCallback | None = None,
    ) -> None:
        self._bot = bot
        self._settings = settings or AudioSettings()
        self._on_track_end = on_track_end

    def set_on_track_end(self, callback: TrackEndCallback) -> None:
        self._on_track_end = callback

    def _get_voice_client(self, guild_id: int) -> discord.VoiceClient | None:
        guild = self._bot.get_guild(guild_id)
        if not guild:
            return None

        vc = guild.voice_client
        return vc if isinstance(vc, discord.VoiceClient) else None

    async def connect(self, guild_id: int, channel_id: int) -> bool:
        """Join ``channel_id``, or move there if already connected elsewhere."""
        guild = self._bot.get_guild(guild_id)
        if not guild:
            return False

        channel = guild.get_channel(channel_id)
        if not isinstance(channel, discord.VoiceChannel | discord.StageChannel):
            return False

        vc = self._get_voice_client(guild_id)
        try:
            async with asyncio.timeout(CONNECT_TIMEOUT):
                if vc is not None and vc.is_connected():
                    if vc.channel is not None and vc.channel.id == channel_id:
                        return True
                    await vc.move_to(channel)
                else:
                    await channel.connect(self_deaf=True)
            return True
        except (TimeoutError, discord.ClientException, discord.Forbidden) as e:
            logger.warning(LogTemplates.VOICE_CONNECT_FAILED, guild_id, channel_id, e)
            return False

    async def disconnect(self, guild_id: int) -> bool:
        vc = self._get_voice_client(guild_id)
        if vc is None:
            return False

        await vc.disconnect(force=True)
        logger.info(LogTemplates.VOICE_DISCONNECTED, guild_id)
        return True

    def is_connected(self, guild_id: int) -> bool:
        vc = self._get_voice_client(guild_id)
        return vc is not None and vc.is_connected()

    def sink_for(self, guild_id: int, existing: Any = None) -> DiscordAudioSink | None:
        """Return a sink for the guild's current voice client.

        ``existing`` is reused when it is still bound to that same client, so a
        session keeps one sink (and one generation counter) per connection.
        """
        vc = self._get_voice_client(guild_id)
        if vc is None or not vc.is_connected():
            return None

        if isinstance(existing, DiscordAudioSink) and existing.voice_client is vc:
            return existing

        return DiscordAudioSink(
            guild_id,
            vc,
            loop=self._bot.loop,
            on_track_end=self._on_track_end,
            settings=self._settings,
        )

"""AudioSink bound to one guild's discord.py voice client."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import discord

from guild_audio_bot.application.interfaces.audio_sink import AudioSink, VolumeControl
from guild_audio_bot.config.settings import AudioSettings
from guild_audio_bot.domain.session.value_objects import SinkStatus
from guild_audio_bot.domain.shared.exceptions import CapabilityUnavailable
from guild_audio_bot.domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from guild_audio_bot.domain.session.entities import TrackDescriptor

logger = logging.getLogger(__name__)

TrackEndCallback = Callable[[int, Exception | None], Awaitable[None]]

FADE_IN_SECONDS: float = 0.5

# Matches yt-dlp's Android client user-agent to avoid YouTube 403 responses
ANDROID_USER_AGENT = "com.google.android.youtube/19.44.38 (Linux; U; Android 14) gzip"


class PCMVolumeControl(VolumeControl):
    """Adjusts gain on a live ``PCMVolumeTransformer``."""

    def __init__(self, voice_client: discord.VoiceClient, source: discord.PCMVolumeTransformer) -> None:
        self._voice_client = voice_client
        self._source = source

    def set_volume(self, percent: int) -> None:
        # The transformer may have been swapped out since this handle was issued.
        if self._voice_client.source is not self._source:
            raise CapabilityUnavailable("volume")
        self._source.volume = max(0, min(100, percent)) / 100


class DiscordAudioSink(AudioSink):
    """Plays tracks through FFmpeg on a connected ``discord.VoiceClient``.

    ``on_track_end`` fires only when a track runs out on its own. Each start
    or stop bumps a generation counter, and the FFmpeg ``after`` hook of an
    older generation is ignored.
    """

    def __init__(
        self,
        guild_id: int,
        voice_client: discord.VoiceClient,
        *,
        loop: asyncio.AbstractEventLoop,
        on_track_end: TrackEndCallback | None = None,
        settings: AudioSettings | None = None,
    ) -> None:
        self.guild_id = guild_id
        self.voice_client = voice_client
        self._loop = loop
        self._on_track_end = on_track_end
        self._settings = settings or AudioSettings()
        self._generation = 0
        self._starting = False

    # ─────────────────────────────────────────────────────────────────
    # Status
    # ─────────────────────────────────────────────────────────────────

    @property
    def is_connected(self) -> bool:
        return self.voice_client.is_connected()

    def status(self) -> SinkStatus:
        if not self.voice_client.is_connected():
            return SinkStatus.STOPPED
        if self.voice_client.is_paused():
            return SinkStatus.PAUSED
        if self.voice_client.is_playing():
            return SinkStatus.PLAYING
        if self._starting:
            return SinkStatus.BUFFERING
        return SinkStatus.IDLE

    def volume_control(self) -> VolumeControl | None:
        source = self.voice_client.source
        if isinstance(source, discord.PCMVolumeTransformer):
            return PCMVolumeControl(self.voice_client, source)
        return None

    # ─────────────────────────────────────────────────────────────────
    # Transport
    # ─────────────────────────────────────────────────────────────────

    async def start(self, track: TrackDescriptor, volume: int = 100) -> None:
        """Replace whatever is playing with ``track``.

        Raises:
            discord.ClientException: not connected, no stream URL, or discord.py
                refused the source.
        """
        if not self.voice_client.is_connected():
            raise discord.ClientException(ErrorMessages.SINK_NOT_CONNECTED)
        if not track.stream_url:
            raise discord.ClientException(ErrorMessages.SINK_NO_STREAM_URL.format(title=track.title))

        self._generation += 1
        generation = self._generation
        if self.voice_client.is_playing() or self.voice_client.is_paused():
            self.voice_client.stop()

        before_opts = self._settings.ffmpeg_options.get("before_options", "")
        before_opts = f'{before_opts} -headers "User-Agent: {ANDROID_USER_AGENT}"'
        base_opts = self._settings.ffmpeg_options.get("options", "")
        fade_opts = f'{base_opts} -af "afade=t=in:ss=0:d={FADE_IN_SECONDS}"'

        self._starting = True
        try:
            source = discord.FFmpegPCMAudio(
                track.stream_url,
                before_options=before_opts,
                options=fade_opts,
            )
            volume_source = discord.PCMVolumeTransformer(source, volume=max(0, min(100, volume)) / 100)
            self.voice_client.play(volume_source, after=self._after_callback(generation))
        finally:
            self._starting = False
        logger.info(LogTemplates.SINK_STARTED, self.guild_id, track.title)

    def stop(self) -> None:
        self._generation += 1
        if self.voice_client.is_playing() or self.voice_client.is_paused():
            self.voice_client.stop()

    def pause(self) -> bool:
        if not self.voice_client.is_playing():
            return False
        self.voice_client.pause()
        return True

    def resume(self) -> bool:
        if not self.voice_client.is_paused():
            return False
        self.voice_client.resume()
        return True

    # ─────────────────────────────────────────────────────────────────
    # Track end
    # ─────────────────────────────────────────────────────────────────

    def _after_callback(self, generation: int) -> Callable[[Exception | None], None]:
        """Build the FFmpeg ``after`` hook. Runs on discord.py's player thread."""

        def after(error: Exception | None = None) -> None:
            if error is not None:
                logger.warning(LogTemplates.SINK_STREAM_ERROR, self.guild_id, error)
            if generation != self._generation or self._on_track_end is None:
                return
            asyncio.run_coroutine_threadsafe(self._handle_track_end(generation, error), self._loop)

        return after

    async def _handle_track_end(self, generation: int, error: Exception | None) -> None:
        # A start/stop may have landed between the thread hook and this coroutine.
        if generation != self._generation or self._on_track_end is None:
            return
        try:
            await self._on_track_end(self.guild_id, error)
        except Exception as e:
            logger.exception(LogTemplates.SINK_CALLBACK_FAILED, self.guild_id, e)

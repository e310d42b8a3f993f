"""Audio infrastructure - yt-dlp process resolver and FFmpeg sink."""

from guild_audio_bot.infrastructure.audio.models import AudioFormatInfo, YtDlpMetadata
from guild_audio_bot.infrastructure.audio.ytdlp_process_resolver import YtDlpProcessResolver

__all__ = [
    "AudioFormatInfo",
    "YtDlpMetadata",
    "YtDlpProcessResolver",
]

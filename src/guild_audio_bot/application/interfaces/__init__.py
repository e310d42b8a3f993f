"""
Application Interfaces (Ports)

Contracts between the application layer and infrastructure adapters.
"""

from guild_audio_bot.application.interfaces.audio_sink import AudioSink, VolumeControl
from guild_audio_bot.application.interfaces.stream_resolver import ResolvedStream, StreamResolver
from guild_audio_bot.application.interfaces.voice_gateway import VoiceGateway

__all__ = [
    "AudioSink",
    "VolumeControl",
    "ResolvedStream",
    "StreamResolver",
    "VoiceGateway",
]

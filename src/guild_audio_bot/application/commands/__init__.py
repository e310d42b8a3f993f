"""
Application Commands

Command requests from the Discord layer and the router that serves them.
"""

from guild_audio_bot.application.commands.router import (
    CommandKind,
    CommandRequest,
    CommandResponse,
    CommandRouter,
)

__all__ = [
    "CommandKind",
    "CommandRequest",
    "CommandResponse",
    "CommandRouter",
]

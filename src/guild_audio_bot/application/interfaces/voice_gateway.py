"""Port interface for the voice transport. Connection upkeep is external."""

from __future__ import annotations

from abc import ABC, abstractmethod

from guild_audio_bot.domain.shared.types import DiscordSnowflake


class VoiceGateway(ABC):
    @abstractmethod
    async def disconnect(self, guild_id: DiscordSnowflake) -> bool:
        """Leave voice in ``guild_id``. Returns False if not connected."""
        ...

    @abstractmethod
    def is_connected(self, guild_id: DiscordSnowflake) -> bool:
        ...

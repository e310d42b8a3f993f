"""Explicit owner of every per-guild map.

One ``SessionStore`` is built by the DI container and injected into each
component that reads or writes guild state. All maps are keyed by guild id,
so a guild's whole footprint can be inspected and removed without suspending.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from guild_audio_bot.domain.session.entities import (
    ActiveQuery,
    AudioSession,
    ErrorRecord,
    PanelState,
    ProcessRecord,
)
from guild_audio_bot.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from guild_audio_bot.application.services.timeout_supervisor import ScheduledTask

logger = logging.getLogger(__name__)


@dataclass
class SessionStore:
    sessions: dict[int, AudioSession] = field(default_factory=dict)
    process_records: dict[int, list[ProcessRecord]] = field(default_factory=dict)
    active_queries: dict[int, ActiveQuery] = field(default_factory=dict)
    error_records: dict[int, ErrorRecord] = field(default_factory=dict)
    timeout_handles: dict[int, ScheduledTask] = field(default_factory=dict)
    voice_channels: dict[int, int] = field(default_factory=dict)
    panel_states: dict[int, PanelState] = field(default_factory=dict)

    def maps(self) -> dict[str, dict[int, Any]]:
        """Every per-guild map by name, in a stable order."""
        return {
            "sessions": self.sessions,
            "process_records": self.process_records,
            "active_queries": self.active_queries,
            "error_records": self.error_records,
            "timeout_handles": self.timeout_handles,
            "voice_channels": self.voice_channels,
            "panel_states": self.panel_states,
        }

    def known_guilds(self) -> set[int]:
        guilds: set[int] = set()
        for mapping in self.maps().values():
            guilds.update(mapping.keys())
        return guilds

    def guild_footprint(self, guild_id: int) -> list[str]:
        """Names of the maps that currently hold an entry for ``guild_id``."""
        return [name for name, mapping in self.maps().items() if guild_id in mapping]

    def clear(self) -> None:
        """Cancel armed timers and drop every entry. Used at shutdown."""
        for handle in list(self.timeout_handles.values()):
            handle.cancel()
        for mapping in self.maps().values():
            mapping.clear()
        logger.info(LogTemplates.STORE_CLEARED)

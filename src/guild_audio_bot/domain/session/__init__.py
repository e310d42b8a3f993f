"""
Session Bounded Context

Per-guild audio sessions, tracked processes, in-flight queries, and the
store that owns every per-guild map.
"""

from guild_audio_bot.domain.session.entities import (
    ActiveQuery,
    AudioSession,
    ErrorRecord,
    PanelState,
    ProcessRecord,
    TrackDescriptor,
)
from guild_audio_bot.domain.session.store import SessionStore
from guild_audio_bot.domain.session.value_objects import SinkStatus, TrackSource, UIState

__all__ = [
    # Entities
    "TrackDescriptor",
    "AudioSession",
    "ProcessRecord",
    "ActiveQuery",
    "ErrorRecord",
    "PanelState",
    # Value Objects
    "UIState",
    "SinkStatus",
    "TrackSource",
    # Store
    "SessionStore",
]

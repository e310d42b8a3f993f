"""
Shared Domain Kernel

Constrained types and exceptions shared across the session context.
"""

from guild_audio_bot.domain.shared.exceptions import (
    CapabilityUnavailable,
    DomainError,
    DuplicateRequestSignal,
    InvalidOperationError,
    ProcessSpawnFailure,
    ResolutionFailure,
    TimeoutFired,
)

__all__ = [
    "DomainError",
    "InvalidOperationError",
    "DuplicateRequestSignal",
    "ResolutionFailure",
    "ProcessSpawnFailure",
    "CapabilityUnavailable",
    "TimeoutFired",
]

"""
Domain Layer

Pure per-guild session logic:
- shared/: Constrained types, exceptions, and message constants
- session/: Session entities, the shared store, and panel rendering
"""

from guild_audio_bot.domain.shared.exceptions import DomainError

__all__ = [
    "DomainError",
]

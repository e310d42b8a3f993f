"""Reusable Pydantic Annotated types for domain-wide validation.

Every constrained type used across the session models is defined here once,
so models can simply annotate their fields::

    from guild_audio_bot.domain.shared.types import DiscordSnowflake, NonEmptyStr

    class MyModel(BaseModel):
        guild_id: DiscordSnowflake
        title: NonEmptyStr
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated

from pydantic import AfterValidator, Field

from guild_audio_bot.domain.shared.messages import ErrorMessages

# ── Numeric constraints ─────────────────────────────────────────────

DiscordSnowflake = Annotated[int, Field(gt=0, lt=2**64)]
"""Positive integer that fits a Discord snowflake (1 … 2^64-1)."""

NonNegativeInt = Annotated[int, Field(ge=0)]
"""Integer >= 0."""

PositiveInt = Annotated[int, Field(gt=0)]
"""Integer > 0."""

VolumePercent = Annotated[int, Field(ge=0, le=100)]
"""Playback volume as a percentage in [0, 100]."""

DurationMs = Annotated[int, Field(ge=0)]
"""Track duration in milliseconds."""


# ── String constraints ──────────────────────────────────────────────

NonEmptyStr = Annotated[str, Field(min_length=1)]
"""String with at least one character."""


# ── Datetime constraints ────────────────────────────────────────────


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        raise ValueError(ErrorMessages.TIMEZONE_REQUIRED_UTC_DATETIME)
    return value.astimezone(UTC)


UtcDatetimeField = Annotated[datetime, AfterValidator(_ensure_utc)]
"""Timezone-aware datetime normalized to UTC."""

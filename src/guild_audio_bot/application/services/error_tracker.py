"""Accumulates per-guild delivery errors for rate-aware messaging."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from guild_audio_bot.domain.session.entities import ErrorRecord
from guild_audio_bot.domain.shared.datetime_utils import utcnow
from guild_audio_bot.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from guild_audio_bot.domain.session.store import SessionStore

logger = logging.getLogger(__name__)


class ErrorTracker:
    def __init__(self, store: SessionStore) -> None:
        self._store = store

    def record(
        self,
        guild_id: int,
        *,
        channel_id: int | None = None,
        message_id: int | None = None,
    ) -> ErrorRecord:
        previous = self._store.error_records.get(guild_id)
        record = ErrorRecord(
            channel_id=channel_id if channel_id is not None else getattr(previous, "channel_id", None),
            message_id=message_id if message_id is not None else getattr(previous, "message_id", None),
            error_count=(previous.error_count if previous else 0) + 1,
            last_error_timestamp=utcnow(),
        )
        self._store.error_records[guild_id] = record
        logger.debug(LogTemplates.ERROR_RECORDED, guild_id, record.error_count)
        return record

    def get(self, guild_id: int) -> ErrorRecord | None:
        return self._store.error_records.get(guild_id)

    def clear(self, guild_id: int) -> bool:
        return self._store.error_records.pop(guild_id, None) is not None

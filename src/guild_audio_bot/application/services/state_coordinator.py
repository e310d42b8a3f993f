"""Per-guild UI state machine and render entry point."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Final

from guild_audio_bot.domain.session.entities import PanelState
from guild_audio_bot.domain.session.rendering import RenderPayload, TrackedState, render
from guild_audio_bot.domain.session.value_objects import UIState
from guild_audio_bot.domain.shared.datetime_utils import utcnow
from guild_audio_bot.domain.shared.exceptions import InvalidOperationError
from guild_audio_bot.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from guild_audio_bot.domain.session.store import SessionStore

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Final[dict[UIState, frozenset[UIState]]] = {
    UIState.IDLE: frozenset({UIState.LOADING, UIState.IDLE}),
    UIState.LOADING: frozenset({UIState.PLAYING, UIState.ERROR, UIState.IDLE}),
    UIState.PLAYING: frozenset({UIState.LOADING, UIState.PAUSED, UIState.IDLE}),
    UIState.PAUSED: frozenset({UIState.PLAYING, UIState.IDLE}),
    UIState.ERROR: frozenset({UIState.LOADING, UIState.IDLE}),
}


class StateCoordinator:
    def __init__(self, store: SessionStore) -> None:
        self._store = store

    def panel(self, guild_id: int) -> PanelState:
        return self._store.panel_states.get(guild_id) or PanelState()

    def current(self, guild_id: int) -> UIState:
        return self.panel(guild_id).state

    def can_transition(self, guild_id: int, target: UIState) -> bool:
        return target in ALLOWED_TRANSITIONS[self.current(guild_id)]

    def transition(
        self,
        guild_id: int,
        target: UIState,
        *,
        loading_title: str | None = None,
        error_message: str | None = None,
    ) -> PanelState:
        """Move ``guild_id`` to ``target``.

        Raises:
            InvalidOperationError: ``target`` is not reachable from the current state.
        """
        current = self.current(guild_id)
        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidOperationError(operation=f"transition to {target}", current_state=current)

        panel = PanelState(
            state=target,
            loading_title=loading_title,
            error_message=error_message,
        )
        self._store.panel_states[guild_id] = panel
        if current != target:
            logger.debug(LogTemplates.STATE_TRANSITION, guild_id, current, target)
        return panel

    def begin_loading(self, guild_id: int, title: str) -> PanelState:
        return self.transition(guild_id, UIState.LOADING, loading_title=title)

    def mark_playing(self, guild_id: int) -> PanelState:
        return self.transition(guild_id, UIState.PLAYING)

    def mark_paused(self, guild_id: int) -> PanelState:
        return self.transition(guild_id, UIState.PAUSED)

    def mark_error(self, guild_id: int, message: str) -> PanelState:
        return self.transition(guild_id, UIState.ERROR, error_message=message)

    def reset(self, guild_id: int) -> PanelState:
        return self.transition(guild_id, UIState.IDLE)

    def forget(self, guild_id: int) -> bool:
        return self._store.panel_states.pop(guild_id, None) is not None

    def render(self, guild_id: int, sink: Any = None, now: datetime | None = None) -> RenderPayload:
        session = self._store.sessions.get(guild_id)
        if sink is None and session is not None:
            sink = session.sink
        tracked = TrackedState(panel=self.panel(guild_id), session=session, now=now or utcnow())
        return render(guild_id, sink, tracked)

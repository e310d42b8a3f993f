"""Pure render functions turning tracked session state into a panel payload.

Nothing here touches the store or performs I/O; each renderer receives the
guild id, the bound sink handle (may be None), and a ``TrackedState``
snapshot, and returns a ``RenderPayload``.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from datetime import datetime
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field

from guild_audio_bot.domain.session.entities import AudioSession, PanelState, TrackDescriptor
from guild_audio_bot.domain.session.value_objects import UIState
from guild_audio_bot.domain.shared.datetime_utils import utcnow
from guild_audio_bot.domain.shared.messages import DiscordUIMessages, EmojiConstants

HOURS_THRESHOLD_SECONDS: Final[int] = 36_000
VOLUME_CELLS: Final[int] = 10
FILLED_CELL: Final[str] = "█"
EMPTY_CELL: Final[str] = "░"

STATE_COLORS: Final[dict[UIState, int]] = {
    UIState.IDLE: 0x506098,
    UIState.LOADING: 0xFFA500,
    UIState.PLAYING: 0x00FF00,
    UIState.PAUSED: 0xFFFF00,
    UIState.ERROR: 0xFF0000,
}

STATE_ICONS: Final[dict[UIState, str | None]] = {
    UIState.IDLE: None,
    UIState.LOADING: EmojiConstants.HOURGLASS,
    # The icon is the action the control button offers next.
    UIState.PLAYING: EmojiConstants.PAUSE,
    UIState.PAUSED: EmojiConstants.PLAY,
    UIState.ERROR: EmojiConstants.CROSS,
}


class TrackedState(BaseModel):
    """Everything a renderer may look at for one guild."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    panel: PanelState = Field(default_factory=PanelState)
    session: AudioSession | None = None
    now: datetime = Field(default_factory=utcnow)


class RenderPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    guild_id: int
    state: UIState
    primary_text: str
    title: str | None = None
    image_url: str | None = None
    time_display: str | None = None
    volume_display: str
    volume_bar: str
    muted: bool = False
    color: int
    icon: str | None = None


# ─────────────────────────────────────────────────────────────────────
# Formatting helpers
# ─────────────────────────────────────────────────────────────────────


def format_time(ms: int, total_ms: int | None = None) -> str:
    """Format ``ms`` as m:ss, or h:mm:ss when the total exceeds ten hours."""
    total_ms = ms if total_ms is None else total_ms
    seconds = max(ms, 0) // 1000

    if total_ms // 1000 > HOURS_THRESHOLD_SECONDS:
        hours, rem = divmod(seconds, 3600)
        minutes, secs = divmod(rem, 60)
        return f"{hours}:{minutes:02d}:{secs:02d}"

    minutes, secs = divmod(seconds, 60)
    return f"{minutes}:{secs:02d}"


def volume_bar(volume: int, muted: bool) -> str:
    if muted:
        return EMPTY_CELL * VOLUME_CELLS
    filled = min(VOLUME_CELLS, max(0, math.ceil(volume / 10)))
    return FILLED_CELL * filled + EMPTY_CELL * (VOLUME_CELLS - filled)


def volume_display(volume: int, muted: bool) -> str:
    bar = volume_bar(volume, muted)
    if muted:
        return f"{DiscordUIMessages.PANEL_MUTED} {bar}"
    return f"`{volume}%` {bar}"


def queue_line(session: AudioSession | None) -> str:
    if session is None:
        return DiscordUIMessages.PANEL_QUEUE_LINE.format(count=0)
    return DiscordUIMessages.PANEL_QUEUE_LINE.format(count=session.upcoming_count)


def choose_image(track: TrackDescriptor | None) -> str | None:
    if track is None:
        return None
    if track.is_spotify:
        return track.thumbnail_url or track.image_url
    return track.image_url or track.thumbnail_url


def playback_time_display(session: AudioSession | None, now: datetime) -> str | None:
    if session is None or session.current_track is None:
        return None
    total_ms = session.current_track.duration_ms
    if total_ms <= 0:
        return None
    elapsed_ms = 0
    if session.started_at is not None:
        elapsed_ms = int((now - session.started_at).total_seconds() * 1000)
    elapsed_ms = min(max(elapsed_ms, 0), total_ms)
    return f"{format_time(elapsed_ms, total_ms)} / {format_time(total_ms, total_ms)}"


def _is_connected(sink: Any) -> bool:
    return sink is not None and bool(sink.is_connected)


def _payload(
    guild_id: int,
    state: UIState,
    primary_text: str,
    tracked: TrackedState,
    *,
    track: TrackDescriptor | None = None,
    with_time: bool = False,
) -> RenderPayload:
    session = tracked.session
    volume = session.volume if session else 100
    muted = session.muted if session else False
    return RenderPayload(
        guild_id=guild_id,
        state=state,
        primary_text=primary_text,
        title=track.title if track else None,
        image_url=choose_image(track),
        time_display=playback_time_display(session, tracked.now) if with_time else None,
        volume_display=volume_display(volume, muted),
        volume_bar=volume_bar(volume, muted),
        muted=muted,
        color=STATE_COLORS[state],
        icon=STATE_ICONS[state],
    )


# ─────────────────────────────────────────────────────────────────────
# Per-state renderers
# ─────────────────────────────────────────────────────────────────────


def render_idle(guild_id: int, sink: Any, tracked: TrackedState) -> RenderPayload:
    session = tracked.session
    if not _is_connected(sink):
        text = DiscordUIMessages.PANEL_NOT_CONNECTED
    elif session is not None and session.upcoming_count:
        text = DiscordUIMessages.PANEL_READY_WITH_QUEUE.format(queue_line=queue_line(session))
    else:
        text = DiscordUIMessages.PANEL_READY
    return _payload(guild_id, UIState.IDLE, text, tracked)


def render_loading(guild_id: int, sink: Any, tracked: TrackedState) -> RenderPayload:
    title = tracked.panel.loading_title or DiscordUIMessages.PANEL_UNKNOWN_TITLE
    text = DiscordUIMessages.PANEL_LOADING.format(title=title)
    return _payload(guild_id, UIState.LOADING, text, tracked)


def _render_track(state: UIState, guild_id: int, tracked: TrackedState) -> RenderPayload:
    session = tracked.session
    track = session.current_track if session else None
    title = track.title if track else DiscordUIMessages.PANEL_UNKNOWN_TITLE
    text = DiscordUIMessages.PANEL_TRACK.format(title=title, queue_line=queue_line(session))
    return _payload(guild_id, state, text, tracked, track=track, with_time=True)


def render_playing(guild_id: int, sink: Any, tracked: TrackedState) -> RenderPayload:
    return _render_track(UIState.PLAYING, guild_id, tracked)


def render_paused(guild_id: int, sink: Any, tracked: TrackedState) -> RenderPayload:
    return _render_track(UIState.PAUSED, guild_id, tracked)


def render_error(guild_id: int, sink: Any, tracked: TrackedState) -> RenderPayload:
    message = tracked.panel.error_message or DiscordUIMessages.ERROR_GENERIC
    text = DiscordUIMessages.PANEL_ERROR.format(
        error=message, queue_line=queue_line(tracked.session)
    )
    return _payload(guild_id, UIState.ERROR, text, tracked)


Renderer = Callable[[int, Any, TrackedState], RenderPayload]

RENDERERS: Final[dict[UIState, Renderer]] = {
    UIState.IDLE: render_idle,
    UIState.LOADING: render_loading,
    UIState.PLAYING: render_playing,
    UIState.PAUSED: render_paused,
    UIState.ERROR: render_error,
}


def render(guild_id: int, sink: Any, tracked: TrackedState) -> RenderPayload:
    return RENDERERS[tracked.panel.state](guild_id, sink, tracked)

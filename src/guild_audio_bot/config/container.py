"""Dependency Injection Container

Owns the single ``SessionStore`` and wires every per-guild component around
it. Components are created on first access and cached for the process lifetime.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..domain.shared.messages import ErrorMessages

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from discord.ext.commands import Bot

    from ..application.commands.router import CommandRouter
    from ..application.interfaces.stream_resolver import StreamResolver
    from ..application.services.cleanup_coordinator import CleanupCoordinator
    from ..application.services.diagnostics import Diagnostics
    from ..application.services.error_tracker import ErrorTracker
    from ..application.services.playback_service import PlaybackService
    from ..application.services.query_deduplicator import QueryDeduplicator
    from ..application.services.session_registry import GuildSessionRegistry
    from ..application.services.state_coordinator import StateCoordinator
    from ..application.services.timeout_supervisor import TimeoutSupervisor
    from ..domain.session.store import SessionStore
    from ..infrastructure.discord.adapters.voice_gateway import DiscordVoiceGateway
    from ..infrastructure.processes.registry import ProcessRegistry
    from .settings import Settings


@dataclass
class Container:
    """Dependency injection container.

    Components are lazily initialized when first accessed.
    """

    settings: Settings
    _bot: Bot | None = None

    # Shared state
    _store: SessionStore | None = None

    # Infrastructure
    _process_registry: ProcessRegistry | None = None
    _stream_resolver: StreamResolver | None = None
    _voice_gateway: DiscordVoiceGateway | None = None

    # Application services
    _deduplicator: QueryDeduplicator | None = None
    _session_registry: GuildSessionRegistry | None = None
    _state_coordinator: StateCoordinator | None = None
    _timeout_supervisor: TimeoutSupervisor | None = None
    _error_tracker: ErrorTracker | None = None
    _cleanup_coordinator: CleanupCoordinator | None = None
    _diagnostics: Diagnostics | None = None
    _playback_service: PlaybackService | None = None
    _command_router: CommandRouter | None = None

    def set_bot(self, bot: Bot) -> None:
        """Set the Discord bot instance."""
        self._bot = bot

    @property
    def bot(self) -> Bot:
        if self._bot is None:
            raise RuntimeError(ErrorMessages.BOT_NOT_INITIALIZED)
        return self._bot

    # === Shared state ===

    @property
    def store(self) -> SessionStore:
        if self._store is None:
            from ..domain.session.store import SessionStore

            self._store = SessionStore()
        return self._store

    # === Infrastructure ===

    @property
    def process_registry(self) -> ProcessRegistry:
        if self._process_registry is None:
            from ..infrastructure.processes.registry import ProcessRegistry

            self._process_registry = ProcessRegistry(self.store)
        return self._process_registry

    @property
    def stream_resolver(self) -> StreamResolver:
        if self._stream_resolver is None:
            from ..infrastructure.audio.ytdlp_process_resolver import YtDlpProcessResolver

            self._stream_resolver = YtDlpProcessResolver(self.process_registry, self.settings.resolver)
        return self._stream_resolver

    @property
    def voice_gateway(self) -> DiscordVoiceGateway:
        """Requires ``set_bot()``. Also attaches itself to the playback service."""
        if self._voice_gateway is None:
            from ..infrastructure.discord.adapters.voice_gateway import DiscordVoiceGateway

            self._voice_gateway = DiscordVoiceGateway(
                self.bot,
                self.settings.audio,
                on_track_end=self.playback_service.on_track_end,
            )
            self.playback_service.set_voice_gateway(self._voice_gateway)
        return self._voice_gateway

    # === Application services ===

    @property
    def deduplicator(self) -> QueryDeduplicator:
        if self._deduplicator is None:
            from ..application.services.query_deduplicator import QueryDeduplicator

            self._deduplicator = QueryDeduplicator(self.store, self.stream_resolver)
        return self._deduplicator

    @property
    def session_registry(self) -> GuildSessionRegistry:
        if self._session_registry is None:
            from ..application.services.session_registry import GuildSessionRegistry

            self._session_registry = GuildSessionRegistry(
                self.store, default_volume=self.settings.audio.default_volume
            )
        return self._session_registry

    @property
    def state_coordinator(self) -> StateCoordinator:
        if self._state_coordinator is None:
            from ..application.services.state_coordinator import StateCoordinator

            self._state_coordinator = StateCoordinator(self.store)
        return self._state_coordinator

    @property
    def timeout_supervisor(self) -> TimeoutSupervisor:
        if self._timeout_supervisor is None:
            from ..application.services.timeout_supervisor import TimeoutSupervisor

            self._timeout_supervisor = TimeoutSupervisor(self.store, self.settings.timeouts)
        return self._timeout_supervisor

    @property
    def error_tracker(self) -> ErrorTracker:
        if self._error_tracker is None:
            from ..application.services.error_tracker import ErrorTracker

            self._error_tracker = ErrorTracker(self.store)
        return self._error_tracker

    @property
    def cleanup_coordinator(self) -> CleanupCoordinator:
        if self._cleanup_coordinator is None:
            from ..application.services.cleanup_coordinator import CleanupCoordinator

            self._cleanup_coordinator = CleanupCoordinator(
                store=self.store,
                sessions=self.session_registry,
                deduplicator=self.deduplicator,
                processes=self.process_registry,
                timeouts=self.timeout_supervisor,
                states=self.state_coordinator,
                settings=self.settings.cleanup,
            )
        return self._cleanup_coordinator

    @property
    def diagnostics(self) -> Diagnostics:
        if self._diagnostics is None:
            from ..application.services.diagnostics import Diagnostics

            self._diagnostics = Diagnostics(
                self.store,
                self.process_registry,
                sample_size=self.settings.diagnostics.sample_size,
            )
        return self._diagnostics

    @property
    def playback_service(self) -> PlaybackService:
        if self._playback_service is None:
            from ..application.services.playback_service import PlaybackService

            self._playback_service = PlaybackService(
                sessions=self.session_registry,
                deduplicator=self.deduplicator,
                states=self.state_coordinator,
                timeouts=self.timeout_supervisor,
                cleanup=self.cleanup_coordinator,
                errors=self.error_tracker,
            )
            self.timeout_supervisor.set_teardown(self._playback_service.handle_timeout)
        return self._playback_service

    @property
    def command_router(self) -> CommandRouter:
        if self._command_router is None:
            from ..application.commands.router import CommandRouter

            self._command_router = CommandRouter(
                playback=self.playback_service,
                sessions=self.session_registry,
                states=self.state_coordinator,
                processes=self.process_registry,
                diagnostics=self.diagnostics,
                volume_step=self.settings.audio.volume_step,
            )
        return self._command_router

    # === Lifecycle ===

    async def initialize(self) -> None:
        """Build the object graph eagerly so wiring errors surface at startup."""
        _ = self.playback_service
        _ = self.command_router
        if self._bot is not None:
            _ = self.voice_gateway

    async def shutdown(self) -> None:
        """Stop background work, kill resolver processes, and drop all guild state."""
        if self._cleanup_coordinator is not None and self._cleanup_coordinator.is_running:
            await self._cleanup_coordinator.stop()

        if self._timeout_supervisor is not None:
            self._timeout_supervisor.cancel_all()

        if self._process_registry is not None:
            self._process_registry.terminate_all()

        if self._store is not None:
            self._store.clear()


def create_container(settings: Settings) -> Container:
    """Create a new dependency injection container."""
    return Container(settings)

"""Base exception classes for domain-level errors and lifecycle signals."""

from __future__ import annotations


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class InvalidOperationError(DomainError):
    """Raised when an operation is invalid in the current state."""

    def __init__(self, operation: str, current_state: str, message: str | None = None) -> None:
        msg = message or f"Cannot perform '{operation}' in state '{current_state}'"
        super().__init__(msg, code="INVALID_OPERATION")
        self.operation = operation
        self.current_state = current_state


class DuplicateRequestSignal(DomainError):
    """A fetch is already in flight for this guild.

    This is a control signal rather than a fault: callers suppress the
    duplicate and tell the user the request is already being handled.
    """

    def __init__(self, guild_id: int, active_query: str, message: str | None = None) -> None:
        msg = message or f"Guild {guild_id} already has an in-flight query: '{active_query}'"
        super().__init__(msg, code="DUPLICATE_REQUEST")
        self.guild_id = guild_id
        self.active_query = active_query


class ResolutionFailure(DomainError):
    """The external resolver could not describe the requested query."""

    def __init__(self, query: str, reason: str) -> None:
        super().__init__(reason, code="RESOLUTION_FAILURE")
        self.query = query
        self.reason = reason


class ProcessSpawnFailure(DomainError):
    """The resolver process could not be launched. Not retried."""

    def __init__(self, guild_id: int, reason: str) -> None:
        super().__init__(f"Failed to spawn resolver process: {reason}", code="PROCESS_SPAWN_FAILURE")
        self.guild_id = guild_id
        self.reason = reason


class CapabilityUnavailable(DomainError):
    """The audio sink does not support the requested capability."""

    def __init__(self, capability: str) -> None:
        super().__init__(f"Audio sink does not support '{capability}'", code="CAPABILITY_UNAVAILABLE")
        self.capability = capability


class TimeoutFired(DomainError):
    """An inactivity timer elapsed for a guild."""

    def __init__(self, guild_id: int, delay_seconds: float) -> None:
        super().__init__(
            f"Inactivity timeout of {delay_seconds:g}s elapsed for guild {guild_id}",
            code="TIMEOUT_FIRED",
        )
        self.guild_id = guild_id
        self.delay_seconds = delay_seconds

"""Service exception types."""

from __future__ import annotations

from collections.abc import Sequence


class ServiceError(Exception):
    """Base class for every error raised by the service core."""


class RequestError(ServiceError):
    """Caller-domain failure that maps directly to a JSON error envelope.

    A single message produces ``{"api_status", "message"}``; several messages
    produce the batch shape ``{"api_status", "errors": [{"message"}]}``.
    """

    def __init__(
        self,
        messages: str | Exception | Sequence[str | Exception],
        *,
        status_code: int = 500,
        api_status: int = 0,
    ) -> None:
        if isinstance(messages, (str, Exception)):
            self.errors: list[str | Exception] = [messages]
            self.batch = False
        else:
            self.errors = list(messages)
            self.batch = True
        if not self.errors:
            raise ValueError("RequestError requires at least one message")
        self.status_code = status_code
        self.api_status = api_status
        super().__init__("; ".join(str(err) for err in self.errors))


class StateTransitionError(ServiceError):
    """Raised when the server lifecycle is asked to make an invalid transition."""

    def __init__(self, current_state: str, attempted_state: str, allowed_next_states: list[str]) -> None:
        self.current_state = current_state
        self.attempted_state = attempted_state
        self.allowed_next_states = allowed_next_states
        super().__init__(f"Invalid server state transition: {current_state} -> {attempted_state}")


class FatalServiceError(ServiceError):
    """Condition after which the process must terminate."""


class EnvelopeEncodingError(FatalServiceError):
    """Raised when an error envelope cannot be serialized."""


class ListenError(FatalServiceError):
    """Raised when the listen address is malformed or cannot be bound."""

    def __init__(self, address: str, reason: str) -> None:
        self.address = address
        self.reason = reason
        super().__init__(f"Could not listen: {address} ({reason})")


class ServeError(FatalServiceError):
    """Raised when the serve loop terminates."""


class ServerClosedError(ServeError):
    """Serve loop ended because the listener was closed by an interrupt."""


__all__ = [
    "EnvelopeEncodingError",
    "FatalServiceError",
    "ListenError",
    "RequestError",
    "ServeError",
    "ServerClosedError",
    "ServiceError",
    "StateTransitionError",
]

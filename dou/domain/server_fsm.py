"""Server lifecycle transition rules."""

from enum import StrEnum

from dou.errors import StateTransitionError


class ServerState(StrEnum):
    CREATED = "CREATED"
    LISTENING = "LISTENING"
    SHUTTING_DOWN = "SHUTTING_DOWN"
    STOPPED = "STOPPED"


_ALLOWED_TRANSITIONS: dict[ServerState, set[ServerState]] = {
    # CREATED -> STOPPED covers a failed bind.
    ServerState.CREATED: {ServerState.LISTENING, ServerState.STOPPED},
    # LISTENING -> STOPPED covers a serve loop that ends without an interrupt.
    ServerState.LISTENING: {ServerState.SHUTTING_DOWN, ServerState.STOPPED},
    ServerState.SHUTTING_DOWN: {ServerState.STOPPED},
    ServerState.STOPPED: set(),
}


def allowed_next_states(state: ServerState) -> list[ServerState]:
    """Return deterministically ordered allowed successors for a state."""
    return sorted(_ALLOWED_TRANSITIONS.get(state, set()), key=lambda s: s.value)


def ensure_transition(old_state: ServerState, new_state: ServerState) -> None:
    """Validate transition according to lifecycle rules."""
    if new_state not in _ALLOWED_TRANSITIONS.get(old_state, set()):
        raise StateTransitionError(old_state, new_state, allowed_next_states(old_state))

"""Connection ready-state machine.

CONNECTING ──[response accepted]──→ OPEN
    ↑  │                              │
    │  └─[attempt failed]─┐           │
    │                     v           │
    └──────────── CONNECTING ←─[stream failed]

Any state ──[close() / 204]──→ CLOSED (terminal)
"""

from __future__ import annotations

import enum

import structlog

log = structlog.get_logger()


class ReadyState(enum.IntEnum):
    CONNECTING = 0
    OPEN = 1
    CLOSED = 2


# Valid transitions: (from_state, to_state)
VALID_TRANSITIONS: set[tuple[ReadyState, ReadyState]] = {
    (ReadyState.CONNECTING, ReadyState.OPEN),
    (ReadyState.CONNECTING, ReadyState.CONNECTING),  # failed attempt, retry later
    (ReadyState.OPEN, ReadyState.CONNECTING),
    # Close from any state
    (ReadyState.CONNECTING, ReadyState.CLOSED),
    (ReadyState.OPEN, ReadyState.CLOSED),
    (ReadyState.CLOSED, ReadyState.CLOSED),
}


class InvalidTransition(Exception):
    """Raised when an invalid ready-state transition is attempted."""

    def __init__(self, from_state: ReadyState, to_state: ReadyState) -> None:
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Invalid transition: {from_state.name} → {to_state.name}")


def validate_transition(from_state: ReadyState, to_state: ReadyState) -> None:
    """Validate a state transition, raising InvalidTransition if not allowed."""
    if (from_state, to_state) not in VALID_TRANSITIONS:
        raise InvalidTransition(from_state, to_state)


def transition(
    current: ReadyState,
    target: ReadyState,
    url: str,
    trigger: str = "",
) -> ReadyState:
    """Execute a validated state transition, logging the change."""
    validate_transition(current, target)
    if current != target:
        log.debug(
            "ready_state_transition",
            url=url,
            from_state=current.name,
            to_state=target.name,
            trigger=trigger,
        )
    return target

"""Message status lattice.

Each side of a message (source and target) moves independently through
the same set of statuses. Only forward moves are permitted; repeating the
current status is a no-op.
"""

from __future__ import annotations

from .enums import MessageStatus
from .errors import InvariantViolationError

_FORWARD_TRANSITIONS: dict[MessageStatus, frozenset[MessageStatus]] = {
    MessageStatus.UNDECLARED: frozenset(
        {
            MessageStatus.DECLARED,
            MessageStatus.PROGRESSED,
            MessageStatus.REVOCATION_DECLARED,
            MessageStatus.REVOKED,
        }
    ),
    MessageStatus.DECLARED: frozenset(
        {
            MessageStatus.PROGRESSED,
            MessageStatus.REVOCATION_DECLARED,
            MessageStatus.REVOKED,
        }
    ),
    MessageStatus.REVOCATION_DECLARED: frozenset({MessageStatus.REVOKED}),
    # Terminal states
    MessageStatus.PROGRESSED: frozenset(),
    MessageStatus.REVOKED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, allowed in _FORWARD_TRANSITIONS.items() if not allowed
)


def is_forward_transition(current: MessageStatus, proposed: MessageStatus) -> bool:
    """Return True if *proposed* is *current* or reachable from it."""
    if current == proposed:
        return True
    return proposed in _FORWARD_TRANSITIONS[current]


def ensure_forward_transition(
    field: str,
    current: MessageStatus,
    proposed: MessageStatus,
) -> None:
    """Raise :class:`InvariantViolationError` unless the move is forward."""
    if not is_forward_transition(current, proposed):
        raise InvariantViolationError(field, current, proposed)

"""Custom exception hierarchy for the facilitator."""

from __future__ import annotations

from typing import Any


class FacilitatorError(Exception):
    """Base exception for all facilitator errors."""


# --- Configuration ---
class ConfigError(FacilitatorError):
    """Invalid or missing configuration."""


# --- Repositories ---
class RepositoryError(FacilitatorError):
    """A repository refused to persist an entity."""


class NonMonotonicUpdateError(RepositoryError):
    """An update would not strictly increase a monotonic field."""

    def __init__(self, field: str, current: Any, update: Any):
        self.field = field
        self.current = current
        self.update = update
        super().__init__(
            f"Failed to set {field} to {update} as the current value is {current}"
        )


class InvariantViolationError(RepositoryError):
    """A proposed status transition is not forward in the message lattice."""

    def __init__(self, field: str, current: Any, proposed: Any):
        self.field = field
        self.current = current
        self.proposed = proposed
        super().__init__(
            f"Invalid {field} transition: {_label(current)} -> {_label(proposed)}"
        )


class UniquenessViolationError(RepositoryError):
    """An entity with the same primary key already exists."""

    def __init__(self, entity: str, key: Any):
        self.entity = entity
        self.key = key
        super().__init__(
            f"Failed to create a {entity} as one with key {key!r} already exists"
        )


# --- Handlers ---
class HandlerError(FacilitatorError):
    """Event handling error."""


class PayloadValidationError(HandlerError):
    """An event record is missing a mandatory field or carries a malformed one."""

    def __init__(self, kind: str, errors: list[str]):
        self.kind = kind
        self.errors = errors
        super().__init__(f"Invalid {kind} record: {'; '.join(errors)}")


class HandlerNotFoundError(HandlerError):
    """No handler is registered for an event kind."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"Handler implementation not found for {kind}")


def _label(value: Any) -> str:
    return getattr(value, "value", str(value))

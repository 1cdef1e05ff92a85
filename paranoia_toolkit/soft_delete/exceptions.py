"""Exceptions for soft delete operations."""

from typing import Any, Optional


class SoftDeleteError(Exception):
    """Base exception for soft delete operations."""

    def __init__(self, message: str, entity_id: Optional[Any] = None):
        self.entity_id = entity_id
        super().__init__(message)


class NotFoundError(SoftDeleteError):
    """Raised when a record cannot be located in the expected state."""

    def __init__(
        self, entity_type: str, entity_id: Any, message: Optional[str] = None
    ):
        self.entity_type = entity_type
        super().__init__(
            message or f"Deleted {entity_type} with ID {entity_id} not found",
            entity_id=entity_id,
        )


class NotPersistedError(SoftDeleteError):
    """Raised when a lifecycle transition is invoked on a never-saved record."""

    def __init__(self, entity_type: str):
        self.entity_type = entity_type
        super().__init__(
            f"{entity_type} has never been saved and cannot change deletion state"
        )


class HookAbortError(SoftDeleteError):
    """Raised by a before/around hook to halt a transition.

    The dispatcher fills in ``transition`` when the hook did not name it.
    """

    def __init__(self, reason: Optional[str] = None, transition: Optional[str] = None):
        self.reason = reason
        self.transition = transition
        super().__init__(reason or "Transition aborted by hook")

    def __str__(self) -> str:
        name = self.transition or "transition"
        if self.reason:
            return f"'{name}' aborted by hook: {self.reason}"
        return f"'{name}' aborted by hook"


def abort(reason: Optional[str] = None) -> None:
    """Halt the running transition from inside a hook."""
    raise HookAbortError(reason)

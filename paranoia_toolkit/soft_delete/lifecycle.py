"""
Lifecycle controller for soft-deletable records.

One ``LifecycleController`` exists per enrolled model. It owns the marker
column name and the hook registry, and performs the state transitions:

    ACTIVE        --destroy-->       SOFT_DELETED
    ACTIVE        --hard_delete-->   GONE
    SOFT_DELETED  --destroy-->       GONE
    SOFT_DELETED  --restore-->       ACTIVE
    SOFT_DELETED  --hard_delete-->   GONE

Transitions use the record's own session and flush immediately. Committing is
left to the caller.
"""

import logging
from typing import Any, Optional

from sqlalchemy import inspect, update
from sqlalchemy.orm import InstanceState, Session
from sqlalchemy.orm.attributes import set_committed_value

from ..config import get_config
from .exceptions import NotFoundError, NotPersistedError, SoftDeleteError
from .hooks import DESTROY, HARD_DESTROY, RESTORE, SOFT_DESTROY, HookRegistry
from .models import LifecycleState, ParanoiaOptions

logger = logging.getLogger(__name__)


def identity_of(record: Any) -> Any:
    """Return the primary key of a record, unwrapped for single-column keys."""
    identity = inspect(record).identity
    if identity is None:
        return None
    if len(identity) == 1:
        return identity[0]
    return identity


class LifecycleController:
    """Executes soft delete transitions for one model."""

    def __init__(
        self,
        model: type,
        options: ParanoiaOptions,
        hooks: Optional[HookRegistry] = None,
    ):
        """
        Initialize the controller.

        Args:
            model: Mapped class this controller belongs to
            options: Enrollment options; immutable
            hooks: Hook registry, usually copied from a parent model
        """
        self.model = model
        self._options = options
        self.hooks = hooks if hooks is not None else HookRegistry()

    def __repr__(self) -> str:
        return f"<LifecycleController {self.model.__name__} column={self.column!r}>"

    @property
    def options(self) -> ParanoiaOptions:
        return self._options

    @property
    def column(self) -> str:
        """Name of the marker attribute."""
        return self._options.column

    def marker_attribute(self) -> Any:
        """Return the mapped marker attribute for use in SQL expressions."""
        return getattr(self.model, self.column)

    def is_destroyed(self, record: Any) -> bool:
        """Return True if the record carries a deletion timestamp."""
        session = inspect(record).session
        if session is None:
            return getattr(record, self.column) is not None
        # Loading an expired marker must not flush other pending changes
        with session.no_autoflush:
            return getattr(record, self.column) is not None

    def state(self, record: Any) -> LifecycleState:
        """Return the record's position in the deletion lifecycle."""
        instance_state = inspect(record)
        if instance_state.deleted or instance_state.was_deleted:
            return LifecycleState.GONE
        if self.is_destroyed(record):
            return LifecycleState.SOFT_DELETED
        return LifecycleState.ACTIVE

    def is_persisted(self, record: Any) -> bool:
        """Return True once the record has been saved, even if soft-deleted."""
        return inspect(record).has_identity

    def destroy(self, record: Any) -> Any:
        """
        Delete a record through its normal lifecycle.

        An active record is soft-deleted; a soft-deleted record is removed
        from storage. ``destroy`` hooks wrap the ``soft_destroy`` or
        ``hard_destroy`` hooks, chosen by the state before the call. The
        operation follows that choice even if a hook changes the marker.

        Returns:
            The record after a soft delete, None after a hard delete or when
            a hook halted the transition

        Raises:
            HookAbortError: A hook aborted the transition
            NotFoundError: The record was already removed from storage
            NotPersistedError: The record has never been saved
        """
        self._session_for(record)
        hard = self.is_destroyed(record)
        inner = HARD_DESTROY if hard else SOFT_DESTROY
        return self.hooks.run(
            [DESTROY, inner], record, lambda: self._dispatch(record, hard)
        )

    def delete(self, record: Any) -> Any:
        """
        Delete a record without running any hooks.

        Does nothing for a record that has never been saved.
        """
        if not inspect(record).has_identity:
            return None
        return self.soft_delete_or_hard_delete(record)

    def hard_delete(self, record: Any) -> None:
        """Remove a record from storage, running only ``hard_destroy`` hooks."""
        self._session_for(record)
        return self.hooks.run(HARD_DESTROY, record, lambda: self._remove(record))

    def restore(self, record: Any) -> Any:
        """
        Clear the deletion timestamp, running ``restore`` hooks.

        Restoring an active record is allowed: hooks run and the update
        changes nothing.
        """
        self._session_for(record)
        return self.hooks.run(RESTORE, record, lambda: self._touch(record, None))

    def soft_delete_or_hard_delete(self, record: Any) -> Any:
        """Hard delete a soft-deleted record, soft delete any other."""
        return self._dispatch(record, self.is_destroyed(record))

    def _dispatch(self, record: Any, hard: bool) -> Any:
        if hard:
            return self._remove(record)
        return self._touch(record, get_config().now())

    def _touch(self, record: Any, value: Any) -> Any:
        """Write only the marker column, bypassing the unit of work."""
        session = self._session_for(record)
        state: InstanceState[Any] = inspect(record)
        mapper = state.mapper
        column = mapper.get_property(self.column).columns[0]
        criteria = [pk == key for pk, key in zip(mapper.primary_key, state.identity)]

        statement = update(column.table).where(*criteria).values({column: value})
        with session.no_autoflush:
            session.execute(statement)
        set_committed_value(record, self.column, value)

        if get_config().log_transitions:
            action = "Restored" if value is None else "Soft-deleted"
            logger.debug(f"{action} {type(record).__name__} {identity_of(record)}")
        return record

    def _remove(self, record: Any) -> None:
        """Delete the row through the session's native delete."""
        session = self._session_for(record)
        entity_id = identity_of(record)
        session.delete(record)
        session.flush()

        if get_config().log_transitions:
            logger.debug(f"Hard-deleted {type(record).__name__} {entity_id}")
        return None

    def _session_for(self, record: Any) -> Session:
        state: InstanceState[Any] = inspect(record)
        entity_type = type(record).__name__

        if state.deleted or state.was_deleted:
            raise NotFoundError(entity_type, identity_of(record))
        if not state.has_identity:
            raise NotPersistedError(entity_type)

        session = state.session
        if session is None:
            entity_id = identity_of(record)
            raise SoftDeleteError(
                f"{entity_type} {entity_id} is not attached to a session",
                entity_id=entity_id,
            )
        return session

"""
SQLAlchemy mixins for soft delete functionality.

Subclassing ``ParanoidMixin`` enrolls a mapped class: it receives its own
``LifecycleController`` (as ``__paranoia__``), default queries skip its
soft-deleted rows, and the class gains hook registration entry points.

Usage:
    class Document(Base, SoftDeleteMixin):
        __tablename__ = "documents"
        id: Mapped[int] = mapped_column(primary_key=True)
        title: Mapped[str] = mapped_column(String(200))

    @Document.before_soft_destroy
    def refuse_locked(document):
        if document.locked:
            abort("locked documents cannot be deleted")

    document.destroy()                        # soft delete
    Document.restore(session, document.id)    # back again
"""

from datetime import datetime
from typing import Any, Callable, Optional, Sequence, Union

from sqlalchemy import DateTime, Select
from sqlalchemy.orm import Mapped, Session, declared_attr, mapped_column

from .hooks import (
    DESTROY,
    HARD_DESTROY,
    RESTORE,
    SOFT_DESTROY,
    Callback,
    Condition,
    HookPhase,
)
from .models import LifecycleState
from .scope import (
    controller_for,
    default_query,
    enroll,
    find,
    find_deleted,
    is_persisted,
    only_deleted,
)
from .scope import restore as restore_ids
from .scope import with_deleted


def _hook_entry_point(transition: str, phase: HookPhase) -> Any:
    def register(
        cls: Any,
        callback: Optional[Callback] = None,
        *,
        if_: Optional[Union[Condition, Sequence[Condition]]] = None,
        unless: Optional[Union[Condition, Sequence[Condition]]] = None,
    ) -> Any:
        hooks = controller_for(cls).hooks
        if callback is None:

            def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
                hooks.register(transition, phase, func, if_=if_, unless=unless)
                return func

            return decorator

        hooks.register(transition, phase, callback, if_=if_, unless=unless)
        return callback

    register.__name__ = f"{phase.value}_{transition}"
    register.__doc__ = (
        f"Register a {phase.value} hook for '{transition}'. "
        "Accepts a callable or method name, directly or as a decorator."
    )
    return classmethod(register)


class ParanoidMixin:
    """
    Capability interface for soft-deletable models.

    The model must map the marker column itself; set ``__paranoia_column__``
    to use a name other than the configured default. Use ``SoftDeleteMixin``
    to get a ``deleted_at`` column declared for you.
    """

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if cls.__dict__.get("__paranoia_abstract__", False):
            return
        column = cls.__dict__.get("__paranoia_column__")
        if column is None and getattr(cls, "__paranoia__", None) is None:
            column = getattr(cls, "__paranoia_column__", None)
        enroll(cls, column)

    # Hook registration
    before_destroy = _hook_entry_point(DESTROY, HookPhase.BEFORE)
    around_destroy = _hook_entry_point(DESTROY, HookPhase.AROUND)
    after_destroy = _hook_entry_point(DESTROY, HookPhase.AFTER)

    before_soft_destroy = _hook_entry_point(SOFT_DESTROY, HookPhase.BEFORE)
    around_soft_destroy = _hook_entry_point(SOFT_DESTROY, HookPhase.AROUND)
    after_soft_destroy = _hook_entry_point(SOFT_DESTROY, HookPhase.AFTER)

    before_hard_destroy = _hook_entry_point(HARD_DESTROY, HookPhase.BEFORE)
    around_hard_destroy = _hook_entry_point(HARD_DESTROY, HookPhase.AROUND)
    after_hard_destroy = _hook_entry_point(HARD_DESTROY, HookPhase.AFTER)

    before_restore = _hook_entry_point(RESTORE, HookPhase.BEFORE)
    around_restore = _hook_entry_point(RESTORE, HookPhase.AROUND)
    after_restore = _hook_entry_point(RESTORE, HookPhase.AFTER)

    # Queries
    @classmethod
    def is_soft_delete_enabled(cls) -> bool:
        return True

    @classmethod
    def default_query(cls) -> Select[Any]:
        """SELECT of active rows."""
        return default_query(cls)

    @classmethod
    def with_deleted(cls) -> Select[Any]:
        """SELECT of all rows, including soft-deleted ones."""
        return with_deleted(cls)

    @classmethod
    def only_deleted(cls) -> Select[Any]:
        """SELECT of soft-deleted rows."""
        return only_deleted(cls)

    @classmethod
    def deleted(cls) -> Select[Any]:
        """Alias of ``only_deleted``."""
        return only_deleted(cls)

    @classmethod
    def find(cls, session: Session, ident: Any) -> Any:
        """
        Load an active record by primary key.

        Use this rather than ``Session.get``, which returns records already
        loaded in the session even after they were soft-deleted.

        Raises:
            NotFoundError: If no active row has that key
        """
        return find(session, cls, ident)

    @classmethod
    def find_deleted(cls, session: Session, ident: Any) -> Any:
        """Load a soft-deleted record by primary key or raise NotFoundError."""
        return find_deleted(session, cls, ident)

    @classmethod
    def restore(cls, session: Session, id_or_ids: Any) -> Any:
        """
        Restore soft-deleted records by primary key.

        Args:
            session: Session to load and update through
            id_or_ids: A primary key, or a list of them

        Returns:
            The restored record, or a list of them

        Raises:
            NotFoundError: For the first key without a soft-deleted row;
                later keys in a list are not processed
        """
        return restore_ids(session, cls, id_or_ids)

    # Record state
    @property
    def is_destroyed(self) -> bool:
        """True if the record is soft-deleted."""
        return controller_for(self).is_destroyed(self)

    @property
    def is_deleted(self) -> bool:
        return self.is_destroyed

    @property
    def persisted(self) -> bool:
        """True once saved, including while soft-deleted."""
        return is_persisted(self)

    @property
    def lifecycle_state(self) -> LifecycleState:
        return controller_for(self).state(self)

    # Transitions
    def destroy(self) -> Any:
        """Soft delete an active record; hard delete a soft-deleted one."""
        return controller_for(self).destroy(self)

    def delete(self) -> Any:
        """Like ``destroy`` without hooks; no-op for unsaved records."""
        return controller_for(self).delete(self)

    def hard_delete(self) -> None:
        """Permanently remove the record, running ``hard_destroy`` hooks."""
        return controller_for(self).hard_delete(self)

    def restore_record(self) -> Any:
        """Clear the deletion timestamp, running ``restore`` hooks."""
        return controller_for(self).restore(self)


class SoftDeleteMixin(ParanoidMixin):
    """
    ``ParanoidMixin`` plus a ``deleted_at`` column.

    Usage:
        class MyModel(Base, SoftDeleteMixin):
            __tablename__ = 'my_table'
            id = Column(Integer, primary_key=True)
            name = Column(String)
    """

    __paranoia_abstract__ = True
    __paranoia_column__ = "deleted_at"

    @declared_attr
    def deleted_at(cls) -> Mapped[Optional[datetime]]:
        """Timestamp when the record was soft deleted."""
        return mapped_column(DateTime(timezone=True), nullable=True, index=True)

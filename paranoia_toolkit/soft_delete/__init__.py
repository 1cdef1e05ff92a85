"""
Soft Delete Module - recoverable deletion for SQLAlchemy models.

Provides the enrollment mixins, the lifecycle controller, the hook registry
and the query scoping that hides soft-deleted rows from default queries.
"""

from .exceptions import (
    HookAbortError,
    NotFoundError,
    NotPersistedError,
    SoftDeleteError,
    abort,
)
from .hooks import TRANSITIONS, Hook, HookPhase, HookRegistry
from .lifecycle import LifecycleController
from .mixins import ParanoidMixin, SoftDeleteMixin
from .models import LifecycleState, ParanoiaOptions
from .scope import (
    controller_for,
    default_query,
    deleted,
    enroll,
    enrolled_models,
    find,
    find_deleted,
    install_default_scope,
    is_persisted,
    is_soft_delete_enabled,
    only_deleted,
    remove_default_scope,
    restore,
    with_deleted,
)

__all__ = [
    # Mixins
    "ParanoidMixin",
    "SoftDeleteMixin",
    # Lifecycle
    "LifecycleController",
    "LifecycleState",
    "ParanoiaOptions",
    # Hooks
    "Hook",
    "HookPhase",
    "HookRegistry",
    "TRANSITIONS",
    # Scope
    "controller_for",
    "default_query",
    "deleted",
    "enroll",
    "enrolled_models",
    "find",
    "find_deleted",
    "install_default_scope",
    "is_persisted",
    "is_soft_delete_enabled",
    "only_deleted",
    "remove_default_scope",
    "restore",
    "with_deleted",
    # Exceptions
    "SoftDeleteError",
    "NotFoundError",
    "NotPersistedError",
    "HookAbortError",
    "abort",
]

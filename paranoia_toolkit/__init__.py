"""
Paranoia Toolkit - soft deletion for SQLAlchemy models.

Instead of removing a row, a "deleted at" timestamp is set. Default queries
leave marked rows out, while explicit escapes still reach them.

Key Features
------------
* **Default scoping**: every ORM SELECT skips soft-deleted rows
* **Explicit escapes**: ``with_deleted()``, ``only_deleted()``, ``restore()``
* **Lifecycle**: ``destroy`` soft deletes, a second ``destroy`` removes the row
* **Hooks**: before/around/after callbacks for each transition
* **CLI**: inspect, restore and purge soft-deleted rows

Quick Start
-----------
>>> from paranoia_toolkit import SoftDeleteMixin
>>>
>>> class Document(Base, SoftDeleteMixin):
...     __tablename__ = "documents"
...     id: Mapped[int] = mapped_column(primary_key=True)
>>>
>>> document.destroy()
>>> session.scalars(select(Document)).all()               # document not listed
>>> session.scalars(Document.with_deleted()).all()        # document listed
>>> Document.restore(session, document.id)

License
-------
MIT License - See LICENSE file for details.
"""

__version__ = "1.0.0"

from .config import ParanoiaConfig, configure, get_config, set_config
from .soft_delete import (
    HookAbortError,
    HookPhase,
    LifecycleController,
    NotFoundError,
    ParanoidMixin,
    SoftDeleteError,
    SoftDeleteMixin,
    abort,
    is_persisted,
    is_soft_delete_enabled,
)

__all__ = [
    # Soft Delete
    "ParanoidMixin",
    "SoftDeleteMixin",
    "LifecycleController",
    "HookPhase",
    "is_soft_delete_enabled",
    "is_persisted",
    "abort",
    # Exceptions
    "SoftDeleteError",
    "NotFoundError",
    "HookAbortError",
    # Configuration
    "ParanoiaConfig",
    "get_config",
    "set_config",
    "configure",
]

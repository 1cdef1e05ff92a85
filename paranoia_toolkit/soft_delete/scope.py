"""
Query scoping for soft-deletable models.

Every ORM ``SELECT`` executed through a ``Session`` is narrowed to rows whose
marker column is NULL, for each enrolled model taking part in the statement.
The filter is added by a ``do_orm_execute`` listener using
``with_loader_criteria``, so it also reaches joins, aliases and relationship
loads. Statements built by ``with_deleted()`` carry an execution option that
switches the filter off for that statement only.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import Select, event, inspect, select
from sqlalchemy.orm import Mapper, ORMExecuteState, Session, with_loader_criteria

from ..config import get_config
from .exceptions import NotFoundError, SoftDeleteError
from .lifecycle import LifecycleController
from .models import ParanoiaOptions

logger = logging.getLogger(__name__)

# Enrolled models in enrollment order
_controllers: Dict[type, LifecycleController] = {}


def enroll(model: type, column: Optional[str] = None) -> LifecycleController:
    """
    Enroll a model in soft delete and return its controller.

    A model enrolled below another enrolled model starts with a copy of the
    parent's hooks and, unless ``column`` is given, the parent's marker column.

    Args:
        model: Class to enroll
        column: Marker attribute name; defaults to the parent's column or the
            configured default

    Returns:
        The model's lifecycle controller

    Raises:
        SoftDeleteError: If the mapped model has no marker column
    """
    parent = getattr(model, "__paranoia__", None)
    if column is None:
        column = parent.column if parent is not None else get_config().default_column

    options = ParanoiaOptions(column=column)
    mapper = inspect(model, raiseerr=False)
    if mapper is not None:
        _check_marker(model, mapper, column)

    hooks = parent.hooks.copy() if parent is not None else None
    controller = LifecycleController(model, options, hooks)
    model.__paranoia__ = controller  # type: ignore[attr-defined]
    _controllers[model] = controller

    install_default_scope()
    logger.debug(f"Enrolled {model.__name__} in soft delete (column={column})")
    return controller


def enrolled_models() -> List[type]:
    """Return all enrolled classes."""
    return list(_controllers)


def controller_for(model: Union[type, Any]) -> LifecycleController:
    """
    Return the lifecycle controller of an enrolled class or instance.

    Raises:
        SoftDeleteError: If the model is not enrolled
    """
    cls = model if isinstance(model, type) else type(model)
    controller = getattr(cls, "__paranoia__", None)
    if controller is None:
        raise SoftDeleteError(f"{cls.__name__} is not enrolled in soft delete")
    return controller


def is_soft_delete_enabled(model: Union[type, Any]) -> bool:
    """Return True for enrolled classes and their instances."""
    cls = model if isinstance(model, type) else type(model)
    return getattr(cls, "__paranoia__", None) is not None


def is_persisted(record: Any) -> bool:
    """
    Report whether a record is persisted.

    Enrolled records count as persisted once saved, soft-deleted or not.
    Other records follow SQLAlchemy's ``persistent`` state.
    """
    if is_soft_delete_enabled(record):
        return controller_for(record).is_persisted(record)
    return inspect(record).persistent


def default_query(model: type) -> Select[Any]:
    """Return a SELECT of the model's active rows."""
    controller = controller_for(model)
    return select(model).where(controller.marker_attribute().is_(None))


def with_deleted(model: type) -> Select[Any]:
    """Return a SELECT of all rows, active and soft-deleted."""
    controller_for(model)
    option = get_config().include_deleted_option
    return select(model).execution_options(**{option: True})


def only_deleted(model: type) -> Select[Any]:
    """Return a SELECT of soft-deleted rows only."""
    controller = controller_for(model)
    return with_deleted(model).where(controller.marker_attribute().is_not(None))


deleted = only_deleted


def find(session: Session, model: type, ident: Any) -> Any:
    """
    Load an active record by primary key.

    Unlike ``Session.get``, a record already loaded in the session is checked
    as well, so soft-deleted records are never returned.

    Raises:
        NotFoundError: If no active row has that key
    """
    controller = controller_for(model)
    record = session.get(model, ident)
    if record is None or controller.is_destroyed(record):
        raise NotFoundError(
            model.__name__,
            ident,
            message=f"{model.__name__} with ID {ident} not found",
        )
    return record


def find_deleted(session: Session, model: type, ident: Any) -> Any:
    """
    Load a soft-deleted record by primary key.

    Raises:
        NotFoundError: If no soft-deleted row has that key
    """
    controller = controller_for(model)
    option = get_config().include_deleted_option
    record = session.get(model, ident, execution_options={option: True})
    if record is None or not controller.is_destroyed(record):
        raise NotFoundError(model.__name__, ident)
    return record


def restore(session: Session, model: type, id_or_ids: Any) -> Any:
    """
    Restore soft-deleted records by primary key.

    A list restores each key in order and returns the restored records. The
    first key that fails raises and the rest are not processed; records
    restored before it stay restored. Tuples are treated as one composite key.

    Raises:
        NotFoundError: If a key does not match a soft-deleted row
    """
    if isinstance(id_or_ids, list):
        return [restore(session, model, one_id) for one_id in id_or_ids]

    try:
        record = find_deleted(session, model, id_or_ids)
    except NotFoundError:
        logger.warning(f"Cannot restore {model.__name__} {id_or_ids}: not found")
        raise
    return controller_for(model).restore(record)


def install_default_scope() -> None:
    """Attach the deleted-row filter to all sessions. Safe to call repeatedly."""
    if not event.contains(Session, "do_orm_execute", _apply_default_scope):
        event.listen(Session, "do_orm_execute", _apply_default_scope)


def remove_default_scope() -> None:
    """Detach the deleted-row filter from all sessions."""
    if event.contains(Session, "do_orm_execute", _apply_default_scope):
        event.remove(Session, "do_orm_execute", _apply_default_scope)


def _apply_default_scope(execute_state: ORMExecuteState) -> None:
    if not execute_state.is_select or execute_state.is_column_load:
        return
    if not isinstance(execute_state.statement, Select):
        return
    if execute_state.execution_options.get(get_config().include_deleted_option):
        return

    criteria = []
    for model, controller in _controllers.items():
        mapper = inspect(model, raiseerr=False)
        # Unmapped subclasses, and models refused for lacking a marker
        if mapper is None or not mapper.has_property(controller.column):
            continue
        criteria.append(
            with_loader_criteria(
                model,
                controller.marker_attribute().is_(None),
                include_aliases=True,
            )
        )

    if criteria:
        execute_state.statement = execute_state.statement.options(*criteria)


def _check_marker(model: type, mapper: Mapper[Any], column: str) -> None:
    if not mapper.has_property(column):
        raise SoftDeleteError(
            f"{model.__name__} is enrolled in soft delete but has no mapped "
            f"marker column '{column}'"
        )


def _check_enrolled_mapper(mapper: Mapper[Any], class_: type) -> None:
    # Classic declarative maps a class after __init_subclass__ has enrolled it
    controller = _controllers.get(class_)
    if controller is None:
        return
    try:
        _check_marker(class_, mapper, controller.column)
    except SoftDeleteError:
        del _controllers[class_]
        if "__paranoia__" in class_.__dict__:
            delattr(class_, "__paranoia__")
        raise


event.listen(Mapper, "after_mapper_constructed", _check_enrolled_mapper)

"""
Hook registry and dispatcher for soft delete transitions.

Collaborators attach callbacks to the named transitions of an enrolled model
without the lifecycle code knowing about them. Each model owns one
``HookRegistry``; it is filled while the model class is being set up and only
read while a transition runs.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from .exceptions import HookAbortError

logger = logging.getLogger(__name__)

Callback = Union[Callable[..., Any], str]
Condition = Union[Callable[[Any], Any], str]

DESTROY = "destroy"
SOFT_DESTROY = "soft_destroy"
HARD_DESTROY = "hard_destroy"
RESTORE = "restore"

TRANSITIONS: Tuple[str, ...] = (DESTROY, SOFT_DESTROY, HARD_DESTROY, RESTORE)


class HookPhase(str, Enum):
    """Point at which a hook runs relative to its transition."""

    BEFORE = "before"
    AROUND = "around"
    AFTER = "after"


def _as_tuple(
    conditions: Optional[Union[Condition, Sequence[Condition]]]
) -> Tuple[Condition, ...]:
    if conditions is None:
        return ()
    if isinstance(conditions, (list, tuple)):
        return tuple(conditions)
    return (conditions,)


def _evaluate(record: Any, condition: Condition) -> bool:
    if isinstance(condition, str):
        value = getattr(record, condition)
        if callable(value):
            value = value()
        return bool(value)
    return bool(condition(record))


@dataclass(frozen=True)
class Hook:
    """A single registered callback.

    Attributes:
        phase: When the callback runs.
        callback: Callable, or the name of a method on the record.
        if_: Conditions that must all be truthy for the hook to run.
        unless: Conditions that must all be falsy for the hook to run.
    """

    phase: HookPhase
    callback: Callback
    if_: Tuple[Condition, ...] = field(default=())
    unless: Tuple[Condition, ...] = field(default=())

    def applies_to(self, record: Any) -> bool:
        """Check the hook's conditions against a record."""
        if not all(_evaluate(record, condition) for condition in self.if_):
            return False
        return not any(_evaluate(record, condition) for condition in self.unless)

    def invoke(self, record: Any, *args: Any) -> Any:
        """Call the callback; around hooks receive ``proceed`` as extra argument."""
        if isinstance(self.callback, str):
            return getattr(record, self.callback)(*args)
        return self.callback(record, *args)


class HookRegistry:
    """Ordered hooks per transition for one entity type."""

    def __init__(self) -> None:
        self._hooks: Dict[str, List[Hook]] = {name: [] for name in TRANSITIONS}

    def copy(self) -> "HookRegistry":
        """Return an independent registry holding the same hooks."""
        clone = HookRegistry()
        for name, hooks in self._hooks.items():
            clone._hooks[name] = list(hooks)
        return clone

    def register(
        self,
        transition: str,
        phase: Union[HookPhase, str],
        callback: Callback,
        if_: Optional[Union[Condition, Sequence[Condition]]] = None,
        unless: Optional[Union[Condition, Sequence[Condition]]] = None,
    ) -> Hook:
        """
        Register a callback for a transition.

        Registration order is execution order within a phase; for around hooks
        the first registered wraps all later ones.

        Args:
            transition: One of ``destroy``, ``soft_destroy``, ``hard_destroy``,
                ``restore``
            phase: ``before``, ``around`` or ``after``
            callback: Callable taking the record (and ``proceed`` for around
                hooks), or the name of a method on the record
            if_: Condition(s) that must hold for the hook to run
            unless: Condition(s) that must not hold for the hook to run

        Returns:
            The registered hook

        Raises:
            ValueError: If the transition or phase is unknown
        """
        self._check_transition(transition)
        hook = Hook(
            phase=HookPhase(phase),
            callback=callback,
            if_=_as_tuple(if_),
            unless=_as_tuple(unless),
        )
        self._hooks[transition].append(hook)
        return hook

    def hooks_for(
        self, transition: str, phase: Optional[Union[HookPhase, str]] = None
    ) -> Tuple[Hook, ...]:
        """Return the registered hooks of a transition, optionally for one phase."""
        self._check_transition(transition)
        hooks = self._hooks[transition]
        if phase is None:
            return tuple(hooks)
        wanted = HookPhase(phase)
        return tuple(hook for hook in hooks if hook.phase == wanted)

    def run(
        self,
        transition: Union[str, Sequence[str]],
        record: Any,
        operation: Callable[[], Any],
    ) -> Any:
        """
        Run ``operation`` wrapped in the hooks of one or more transitions.

        Before hooks run in order, then around hooks nest (outermost first)
        down to ``operation``, then after hooks run in order. An exception
        from a before or around hook stops the transition and propagates.
        An around hook that returns without calling ``proceed`` halts the
        transition: the operation and the after hooks are skipped. A hook's
        ``if_``/``unless`` conditions are checked when it is about to run, so
        after hooks see the record as the operation left it.

        Given several transitions, the first is the outermost: its before
        hooks run first, its around hooks wrap those of the next one, and its
        after hooks run last.

        Returns:
            The operation's result, or None if the transition was halted
        """
        names = [transition] if isinstance(transition, str) else list(transition)
        for name in names:
            self._check_transition(name)

        layers = [(name, list(self._hooks[name])) for name in names]
        outcome: Dict[str, Any] = {}

        def core() -> Any:
            outcome["result"] = operation()
            return outcome["result"]

        chain = core
        for name, hooks in reversed(layers):
            for hook in reversed([h for h in hooks if h.phase == HookPhase.AROUND]):
                chain = _wrap(hook, record, chain, name)

        current = names[0]
        try:
            for current, hooks in layers:
                for hook in hooks:
                    if hook.phase == HookPhase.BEFORE and hook.applies_to(record):
                        hook.invoke(record)
            chain()
            if "result" not in outcome:
                logger.debug(
                    f"Transition '{'/'.join(names)}' halted by around hook "
                    f"on {type(record).__name__}"
                )
                return None
            for current, hooks in reversed(layers):
                for hook in hooks:
                    if hook.phase == HookPhase.AFTER and hook.applies_to(record):
                        hook.invoke(record)
        except HookAbortError as e:
            if e.transition is None:
                e.transition = current
            logger.warning(
                f"Hook aborted '{e.transition}' on {type(record).__name__}: {e}"
            )
            raise

        return outcome["result"]

    @staticmethod
    def _check_transition(transition: str) -> None:
        if transition not in TRANSITIONS:
            raise ValueError(
                f"Unknown transition '{transition}'. "
                f"Expected one of: {', '.join(TRANSITIONS)}"
            )


def _wrap(
    hook: Hook, record: Any, inner: Callable[[], Any], transition: str
) -> Callable[[], Any]:
    def layer() -> Any:
        if not hook.applies_to(record):
            return inner()
        try:
            return hook.invoke(record, inner)
        except HookAbortError as e:
            if e.transition is None:
                e.transition = transition
            raise

    return layer

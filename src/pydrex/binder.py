from __future__ import annotations

import logging
from typing import Any, Callable

from . import config
from .error import DuplicateBindingKeyError

logger = logging.getLogger(__name__)

Scope = dict[str, Any]
"""An output object under construction. Values are strings, nested scopes or lists of scopes."""


class Binder:
    """Stack of output scopes under construction.

    The bottom of the stack is the root scope. Every open repeat iteration or group pushes
    a child scope on top; writes always go to the top (active) scope.

    Every write is journaled, so that `rollback` can erase all writes made after a `mark`.
    This is what keeps failed sequences, alternatives and repeat iterations from leaking partial
    results into the output.

    Writing a key that the active scope already has is not an error right away: the write may
    belong to an alternative or iteration that fails later and is rolled back. Such conflicts are
    journaled like writes and `check_conflicts` raises the first one that survived.

    """

    __slots__ = ("_stack", "_journal", "_conflicts")

    def __init__(self) -> None:
        self._stack: list[Scope] = [{}]
        self._journal: list[Callable[[], None]] = []
        self._conflicts: list[DuplicateBindingKeyError] = []

    @property
    def root(self) -> Scope:
        return self._stack[0]

    @property
    def active(self) -> Scope:
        return self._stack[-1]

    @property
    def depth(self) -> int:
        """Number of open scopes, including the root."""
        return len(self._stack)

    def push_scope(self) -> Scope:
        """Create a new empty scope and make it active."""
        scope: Scope = {}
        self._stack.append(scope)
        return scope

    def pop_scope(self) -> Scope:
        """Deactivate the active scope and return it.

        The caller decides whether the scope is attached to the parent or discarded.

        Raises:
            RuntimeError: if only the root scope is open

        """
        if len(self._stack) == 1:
            raise RuntimeError("Cannot pop the root scope")

        return self._stack.pop()

    def write_property(self, name: str, value: Any, *, path: str = "", position: int = -1) -> None:
        """Set a property on the active scope.

        If the active scope already has the property, the existing value is kept and the
        conflict is recorded for `check_conflicts`.

        Args:
            name: property name
            value: property value
            path: node path used for error reporting
            position: cursor position used for error reporting

        """
        scope = self._stack[-1]

        if name in scope:
            self._conflict(name, path, position)
            return

        scope[name] = value
        self._journal.append(lambda: scope.pop(name))

        if config.TRACE_LOGGING:
            logger.debug(f"Bound <{name}>={value!r} at depth {len(self._stack)}")

    def append_to_array(
        self, name: str, scope: Scope, *, path: str = "", position: int = -1
    ) -> None:
        """Append a completed child scope to the array `name` of the active scope.

        The array is created on first use. Appending to an array that already exists under the
        same name extends it. A non-array value under `name` is recorded as a conflict.

        """
        parent = self._stack[-1]
        arr = parent.get(name)

        if arr is None and name not in parent:
            arr = parent[name] = []
            self._journal.append(lambda: parent.pop(name))
        elif not isinstance(arr, list):
            self._conflict(name, path, position)
            return

        arr.append(scope)
        self._journal.append(arr.pop)

    def _conflict(self, name: str, path: str, position: int) -> None:
        if config.TRACE_LOGGING:
            logger.debug(f"Property <{name}> is already bound at depth {len(self._stack)}")

        self._conflicts.append(DuplicateBindingKeyError(name, path, position))
        self._journal.append(self._conflicts.pop)

    @property
    def conflicts(self) -> tuple[DuplicateBindingKeyError, ...]:
        """Duplicate writes that have not been rolled back, in the order they happened."""
        return tuple(self._conflicts)

    def check_conflicts(self) -> None:
        """Raise the first duplicate write that has not been rolled back.

        Raises:
            DuplicateBindingKeyError: if any scope was written twice under the same key

        """
        if self._conflicts:
            raise self._conflicts[0]

    def mark(self) -> int:
        """Get a token that `rollback` accepts to undo all writes made after this call."""
        return len(self._journal)

    def rollback(self, mark: int) -> None:
        """Undo, in reverse order, every write (and conflict) made since `mark` was taken."""
        journal = self._journal

        while len(journal) > mark:
            journal.pop()()

"""Recursive descent interpreter over a pattern tree.

Every `match_*` method either succeeds, leaving the cursor advanced and the bindings written,
or returns a `MatchFailure` after restoring the cursor and the binder to the state they had on
entry. So from the caller's point of view every node (and every element sequence) is atomic.

A non-productive repeat iteration raises `NonProductiveRepeatError`, which is never recovered
by an enclosing `Or` or `Repeat`. Duplicate writes are only recorded by the binder: they are
rolled back with the rest of a failed branch and raised once the whole document matched.

"""
from __future__ import annotations

import logging
from typing import NoReturn, Sequence

from . import config
from .binder import Binder
from .cursor import END_OF_INPUT, LineCursor
from .error import FailureKind, NonProductiveRepeatError
from .model import AnyLine, Group, LineMatch, Or, PatternNode, Repeat, RepeatKind
from .result import MatchFailure

logger = logging.getLogger(__name__)

_Checkpoint = tuple[int, int]


# Polyfill, instead of depending on typing-extensions
def _assert_never(arg: NoReturn, /) -> NoReturn:
    raise AssertionError(f"Unhandled pattern node type: {type(arg).__name__!r}")


class Matcher:
    """Matches pattern nodes against a cursor, writing captured values through a binder.

    A matcher (together with its cursor and binder) belongs to a single run.

    """

    __slots__ = ("_cursor", "_binder", "_regex_lines")

    def __init__(self, cursor: LineCursor, binder: Binder) -> None:
        self._cursor = cursor
        self._binder = binder

        # Positions of lines consumed by LineMatch nodes on the current path, ascending
        self._regex_lines: list[int] = []

    @property
    def lines_matched(self) -> int:
        """Number of lines consumed by regex line matchers on the current path."""
        return len(self._regex_lines)

    def _checkpoint(self) -> _Checkpoint:
        return self._cursor.checkpoint(), self._binder.mark()

    def _restore(self, checkpoint: _Checkpoint) -> None:
        pos, mark = checkpoint

        self._cursor.restore(pos)
        self._binder.rollback(mark)

        while self._regex_lines and self._regex_lines[-1] >= pos:
            self._regex_lines.pop()

    def _fail(
        self,
        kind: FailureKind,
        path: str,
        message: str,
        position: int | None = None,
        causes: tuple[MatchFailure, ...] = (),
    ) -> MatchFailure:
        if position is None:
            position = self._cursor.pos

        failure = MatchFailure(
            kind=kind, path=path, position=position, message=message, causes=causes
        )

        if config.TRACE_LOGGING:
            logger.debug(f"No match: {failure}")

        return failure

    def match_sequence(self, elements: Sequence[PatternNode], path: str) -> MatchFailure | None:
        """Match elements one after another. The first failing element fails the sequence.

        Args:
            elements: the elements to match
            path: path of the node owning the sequence, element paths are derived from it

        Returns:
            None on success, otherwise the failure of the first failing element

        """
        checkpoint = self._checkpoint()

        for i, element in enumerate(elements):
            failure = self.match_node(element, f"{path}/elements[{i}]")

            if failure is not None:
                self._restore(checkpoint)
                return failure

        return None

    def match_node(self, node: PatternNode, path: str) -> MatchFailure | None:
        if config.TRACE_LOGGING:
            logger.debug(
                f"Trying {node.__class__.__name__} at {path}, line {self._cursor.pos}"
            )

        match node:
            case LineMatch():
                return self._match_line(node, path)
            case AnyLine():
                return self._match_anyline(node, path)
            case Repeat():
                return self._match_repeat(node, path)
            case Or():
                return self._match_or(node, path)
            case Group():
                return self._match_group(node, path)
            case _ as unreachable:
                _assert_never(unreachable)

    def _match_line(self, node: LineMatch, path: str) -> MatchFailure | None:
        line = self._cursor.current()

        if line is END_OF_INPUT:
            return self._fail(
                FailureKind.END_OF_INPUT,
                path,
                f"Expected a line matching <{node.regex}>, reached end of input",
            )

        m = node.pattern.search(line)

        if m is None:
            return self._fail(
                FailureKind.REGEX_NO_MATCH,
                path,
                f"Line {line!r} does not match <{node.regex}>",
            )

        pos = self._cursor.pos
        self._cursor.advance()
        self._regex_lines.append(pos)

        for binding, value in zip(node.bindings, m.groups()):
            # Optional group that did not participate in the match
            if value is None:
                continue

            self._binder.write_property(
                binding.property, binding.apply(value), path=path, position=pos
            )

        return None

    def _match_anyline(self, node: AnyLine, path: str) -> MatchFailure | None:
        if self._cursor.exhausted:
            return self._fail(
                FailureKind.END_OF_INPUT, path, "Expected any line, reached end of input"
            )

        self._cursor.advance()

        return None

    def _match_repeat(self, node: Repeat, path: str) -> MatchFailure | None:
        checkpoint = self._checkpoint()
        max_count = node.mode.max_count
        count = 0
        last_failure: MatchFailure | None = None

        while max_count is None or count < max_count:
            start = self._cursor.pos

            self._binder.push_scope()
            try:
                last_failure = self.match_sequence(node.elements, path)
            finally:
                scope = self._binder.pop_scope()

            if last_failure is not None:
                break

            if self._cursor.pos == start:
                raise NonProductiveRepeatError(path, start)

            self._binder.append_to_array(node.bind_array, scope, path=path, position=start)
            count += 1

        if count >= node.mode.min_count:
            if config.TRACE_LOGGING:
                logger.debug(f"Repeat <{node.bind_array}> at {path} matched {count} time(s)")
            return None

        position = last_failure.position if last_failure is not None else self._cursor.pos
        self._restore(checkpoint)

        kind = (
            FailureKind.EXACT_COUNT_MISMATCH
            if node.mode.kind is RepeatKind.EXACTLY
            else FailureKind.REPEAT_UNSATISFIED
        )

        return self._fail(
            kind,
            path,
            f"Repeat <{node.bind_array}> matched {count} time(s), expected {node.mode}",
            position=position,
            causes=(last_failure,) if last_failure is not None else (),
        )

    def _match_or(self, node: Or, path: str) -> MatchFailure | None:
        failures: list[MatchFailure] = []

        # Each alternative is a sequence and restores its own entry checkpoint on failure,
        # which for all of them is the entry state of this node
        for i, alternative in enumerate(node.alternatives):
            failure = self.match_sequence(alternative, f"{path}/alternatives[{i}]")

            if failure is None:
                return None

            failures.append(failure)

        return self._fail(
            FailureKind.OR_EXHAUSTED,
            path,
            f"None of {len(node.alternatives)} alternative(s) matched",
            causes=tuple(failures),
        )

    def _match_group(self, node: Group, path: str) -> MatchFailure | None:
        start = self._cursor.pos

        self._binder.push_scope()
        try:
            failure = self.match_sequence(node.elements, path)
        finally:
            scope = self._binder.pop_scope()

        if failure is not None:
            return failure

        self._binder.write_property(node.bind_object, scope, path=path, position=start)

        return None

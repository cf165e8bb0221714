from __future__ import annotations

import logging
from typing import Iterable

from . import config
from .binder import Binder
from .cursor import LineCursor
from .error import DuplicateBindingKeyError, FailureKind, MatchError, NonProductiveRepeatError
from .file import split_lines
from .matcher import Matcher
from .model import PatternDocument
from .result import MatchFailure, MatchResult

logger = logging.getLogger(__name__)


def _fatal_failure(e: MatchError) -> MatchFailure:
    if isinstance(e, NonProductiveRepeatError):
        kind = FailureKind.NON_PRODUCTIVE_REPEAT
    elif isinstance(e, DuplicateBindingKeyError):
        kind = FailureKind.DUPLICATE_BINDING_KEY
    else:
        raise e

    return MatchFailure(kind=kind, path=e.path, position=e.position, message=e.message)


class Engine:
    """Runs a pattern document against input lines.

    The document is immutable, so one engine can be used for any number of runs, including
    concurrent runs on different threads.

    Args:
        document: a validated pattern document
        strict: if True, a successful match that does not consume all input is reported
            as a `TrailingInput` failure. Defaults to `config.STRICT`.

    """

    __slots__ = ("_document", "_strict")

    def __init__(self, document: PatternDocument, *, strict: bool | None = None) -> None:
        if not isinstance(document, PatternDocument):
            raise TypeError(f"Expected a PatternDocument, got {type(document).__name__}")

        self._document = document
        self._strict = config.STRICT if strict is None else strict

    @property
    def document(self) -> PatternDocument:
        return self._document

    @property
    def strict(self) -> bool:
        return self._strict

    def run(self, lines: Iterable[str]) -> MatchResult:
        """Match the document against the lines.

        Never raises for a failed match, the failure is described by the returned result.

        Args:
            lines: input lines without line terminators

        Returns:
            MatchResult: the result of the run

        """
        if isinstance(lines, str):
            raise TypeError("Expected a sequence of lines, got a string. Use `find_match` instead")

        doc = self._document
        cursor = LineCursor(lines)
        binder = Binder()
        matcher = Matcher(cursor, binder)

        if config.TRACE_LOGGING:
            logger.debug(f"Matching <{doc.name}> v{doc.version} against {cursor.len} line(s)")

        try:
            failure = matcher.match_sequence(doc.elements, "")
            if failure is None:
                binder.check_conflicts()
        except MatchError as e:
            logger.debug(f"Fatal error matching <{doc.name}>: {e}")
            failure = _fatal_failure(e)

        if failure is None and self._strict and not cursor.exhausted:
            failure = MatchFailure(
                kind=FailureKind.TRAILING_INPUT,
                path="",
                position=cursor.pos,
                message=f"{cursor.len - cursor.pos} line(s) left unconsumed",
            )

        if failure is not None:
            if config.TRACE_LOGGING:
                logger.debug(f"Pattern <{doc.name}> did not match: {failure}")

            return MatchResult.failed(failure, total_lines=cursor.len)

        data = binder.root
        if doc.bind_object is not None:
            data = {doc.bind_object: data}

        return MatchResult(
            success=True,
            data=data,
            position=cursor.pos,
            lines_matched=matcher.lines_matched,
            total_lines=cursor.len,
        )

    def find_match(self, document: str | Iterable[str]) -> MatchResult:
        """Same as `run`, but also accepts a whole text which is split into lines."""
        if isinstance(document, str):
            return self.run(split_lines(document))

        return self.run(document)

    def __repr__(self) -> str:
        return (
            f"Engine(pattern={self._document.name}, version={self._document.version}, "
            f"strict={self._strict})"
        )


def run(
    document: PatternDocument, lines: Iterable[str], *, strict: bool | None = None
) -> MatchResult:
    """Shortcut for `Engine(document, strict=strict).run(lines)`."""
    return Engine(document, strict=strict).run(lines)

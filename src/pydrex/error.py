from __future__ import annotations

import enum


class DrexError(Exception):
    """Base class for all pydrex errors."""

    def __init__(self, message: str, *args: object) -> None:
        super().__init__(message, *args)
        self.message = message

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message})"


class SchemaError(DrexError):
    """Raised when a pattern document is malformed.

    Always fatal to the document, no run is attempted against it.

    """

    def __init__(self, message: str, location: str | None = None) -> None:
        self.location = location
        if location:
            message = f"{message} (at {location})"
        super().__init__(message, location)


class MatchError(DrexError):
    """Base class for fatal run-time conditions.

    Unlike regular match failures, these are never recovered by an enclosing `or` or `repeat`.
    The engine reports them as failed results.

    """

    def __init__(self, message: str, path: str, position: int) -> None:
        self.path = path
        self.position = position
        super().__init__(message, path, position)


class NonProductiveRepeatError(MatchError):
    """Raised when a repeat iteration succeeds without consuming a line."""

    def __init__(self, path: str, position: int) -> None:
        super().__init__(
            "Repeat iteration matched without consuming input. "
            "Repeat body must consume at least one line per iteration",
            path,
            position,
        )


class DuplicateBindingKeyError(MatchError):
    """Raised when a property is bound twice into the same scope on the matched path."""

    def __init__(self, key: str, path: str, position: int) -> None:
        self.key = key
        super().__init__(
            f"Property <{key}> is already bound in the current scope",
            path,
            position,
        )


@enum.unique
class FailureKind(str, enum.Enum):
    END_OF_INPUT = "EndOfInput"
    REGEX_NO_MATCH = "RegexNoMatch"
    REPEAT_UNSATISFIED = "RepeatUnsatisfied"
    EXACT_COUNT_MISMATCH = "ExactCountMismatch"
    OR_EXHAUSTED = "OrExhausted"
    TRAILING_INPUT = "TrailingInput"
    NON_PRODUCTIVE_REPEAT = "NonProductiveRepeat"
    DUPLICATE_BINDING_KEY = "DuplicateBindingKey"

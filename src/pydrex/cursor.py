from __future__ import annotations

import enum
from typing import Final, Iterable, Literal


class _EndOfInput(enum.Enum):
    END_OF_INPUT = enum.auto()

    def __repr__(self) -> str:
        return "END_OF_INPUT"


END_OF_INPUT: Final = _EndOfInput.END_OF_INPUT
"""Sentinel returned by `LineCursor.current` when all lines have been consumed."""

EndOfInput = Literal[_EndOfInput.END_OF_INPUT]


class LineCursor:
    """Indexed, checkpointable view over a fully buffered sequence of input lines.

    The position is a plain integer, so checkpoints are just positions and both `checkpoint`
    and `restore` are O(1).

    """

    __slots__ = ("_lines", "_pos", "_len")

    def __init__(self, lines: Iterable[str]) -> None:
        self._lines = tuple(lines)
        self._pos = 0
        self._len = len(self._lines)

    @property
    def pos(self) -> int:
        """Get the current position, i.e. the number of consumed lines.

        Returns:
            int: the position

        """
        return self._pos

    @property
    def len(self) -> int:
        return self._len

    @property
    def lines(self) -> tuple[str, ...]:
        """Get a read-only view of all lines, consumed or not."""
        return self._lines

    @property
    def exhausted(self) -> bool:
        """True if there are no more lines to consume."""
        return self._pos >= self._len

    def current(self) -> str | EndOfInput:
        """Get the line at the current position without consuming it.

        Returns:
            str | EndOfInput: the line or `END_OF_INPUT` if the cursor is exhausted

        """
        if self._pos >= self._len:
            return END_OF_INPUT

        return self._lines[self._pos]

    def advance(self) -> str:
        """Consume the current line.

        Returns:
            str: the consumed line

        Raises:
            IndexError: if the cursor is exhausted

        """
        if self._pos >= self._len:
            raise IndexError("Cannot advance past the end of input")

        self._pos += 1

        return self._lines[self._pos - 1]

    def checkpoint(self) -> int:
        """Get an opaque token that `restore` accepts to roll back to the current position."""
        return self._pos

    def restore(self, token: int) -> None:
        """Roll back (or forward) to a previously taken checkpoint.

        Raises:
            ValueError: if the token is not a valid position of this cursor

        """
        if not 0 <= token <= self._len:
            raise ValueError(f"Invalid cursor checkpoint {token}, input has {self._len} lines")

        self._pos = token

    def __repr__(self) -> str:
        return f"LineCursor(pos={self._pos}, len={self._len})"

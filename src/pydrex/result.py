from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import orjson
from mashumaro.mixins.dict import DataClassDictMixin

from .error import FailureKind


def json_dumper_to_str(value: dict[str, Any], indent: bool = False) -> str:
    if indent:
        return orjson.dumps(value, option=orjson.OPT_INDENT_2).decode(encoding="utf-8")
    else:
        return orjson.dumps(value).decode(encoding="utf-8")


@dataclass(frozen=True)
class MatchFailure(DataClassDictMixin):
    """Describes why a node (and eventually a whole run) failed to match."""

    kind: FailureKind
    path: str
    """Path of the failing node, e.g. `/elements[1]/elements[0]`. Empty for the document itself."""
    position: int
    """Cursor position (0-based line index) at the moment of failure."""
    message: str
    causes: tuple[MatchFailure, ...] = field(default_factory=tuple)
    """Failures of the individual alternatives of an `or`, in order."""

    def __str__(self) -> str:
        where = self.path or "document"
        return f"{self.kind.value} at {where}, line {self.position}: {self.message}"


@dataclass(frozen=True)
class MatchResult(DataClassDictMixin):
    """Outcome of a single matching run."""

    success: bool
    data: dict[str, Any]
    """The output value tree. Empty if the match failed."""
    position: int
    """Final cursor position on success, or the cursor position at failure."""
    lines_matched: int
    """Number of lines consumed by regex line matchers on the successful path."""
    total_lines: int
    failure: MatchFailure | None = None

    @classmethod
    def failed(cls, failure: MatchFailure, total_lines: int) -> MatchResult:
        return cls(
            success=False,
            data={},
            position=failure.position,
            lines_matched=0,
            total_lines=total_lines,
            failure=failure,
        )

    @property
    def has_data(self) -> bool:
        return self.success and bool(self.data)

    @property
    def unconsumed(self) -> int:
        """Number of input lines after the final position."""
        return self.total_lines - self.position

    def to_json(self, indent: bool = False) -> str:
        """Serialize the output value tree to JSON. A failed result serializes as `{}`."""
        if not self.success:
            return "{}"

        return json_dumper_to_str(self.data, indent=indent)

    def __str__(self) -> str:
        if self.success:
            return (
                f"MatchResult(success=True, position={self.position}/{self.total_lines}, "
                f"lines_matched={self.lines_matched}, keys={list(self.data)})"
            )

        return f"MatchResult(success=False, error='{self.failure}')"

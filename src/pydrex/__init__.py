"""Declarative, regex based extraction of structured data from line-oriented text."""
from .engine import Engine, run
from .error import (
    DrexError,
    DuplicateBindingKeyError,
    FailureKind,
    MatchError,
    NonProductiveRepeatError,
    SchemaError,
)
from .loader import from_dict, load, loads, validate
from .model import (
    AnyLine,
    Group,
    LineMatch,
    Or,
    PatternDocument,
    PatternNode,
    PropertyBinding,
    Repeat,
    RepeatKind,
    RepeatMode,
)
from .result import MatchFailure, MatchResult

__all__ = [
    "AnyLine",
    "DrexError",
    "DuplicateBindingKeyError",
    "Engine",
    "FailureKind",
    "Group",
    "LineMatch",
    "MatchError",
    "MatchFailure",
    "MatchResult",
    "NonProductiveRepeatError",
    "Or",
    "PatternDocument",
    "PatternNode",
    "PropertyBinding",
    "Repeat",
    "RepeatKind",
    "RepeatMode",
    "SchemaError",
    "from_dict",
    "load",
    "loads",
    "run",
    "validate",
]

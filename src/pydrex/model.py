"""Immutable pattern model.

A pattern document is a tree of frozen dataclasses. All validation happens at construction time
(`__post_init__`), so any instance that exists is valid and can be shared read-only between any
number of concurrent matching runs.

Node kinds form a closed set, see `PatternNode`. Code that dispatches over nodes uses `match`
statements over these classes rather than methods on a common base.

"""
from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from rich.markup import escape
from rich.tree import Tree

from .error import SchemaError


def _collapse_ws(value: str) -> str:
    return " ".join(value.split())


def _strip_currency(value: str) -> str:
    return value.replace("$", "").replace(",", "")


def _as_captured(value: str) -> str:
    return value


FORMATTERS: Mapping[str, Callable[[str], str]] = {
    "trim": str.strip,
    "upper": str.upper,
    "lower": str.lower,
    "collapse": _collapse_ws,
    "currency": _strip_currency,
    # Dates are kept as captured, the argument (a date format) is accepted but not applied
    "parsedate": _as_captured,
}
"""Named string formatters that a property binding may apply to a captured value.

Names are case-insensitive and may be written with parentheses, e.g. `trim()` or
`parseDate(MM/dd/yyyy)`.

"""

_ARG_FORMATTERS = frozenset({"parsedate"})

_FORMAT_RE = re.compile(r"(?P<name>[A-Za-z_]\w*)\s*(?:\((?P<args>.*)\))?", re.DOTALL)


def _resolve_formatter(fmt: str, prop: str) -> Callable[[str], str]:
    m = _FORMAT_RE.fullmatch(fmt)
    name = m["name"].lower() if m is not None else None

    if name is None or name not in FORMATTERS:
        raise SchemaError(
            f"Unknown formatter <{fmt}> for property <{prop}>. "
            f"Known formatters: {', '.join(sorted(FORMATTERS))}"
        )

    if m is not None and (m["args"] or "").strip() and name not in _ARG_FORMATTERS:
        raise SchemaError(f"Formatter <{fmt}> for property <{prop}> does not take arguments")

    return FORMATTERS[name]


def _check_name(value: Any, what: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise SchemaError(f"{what} must be a non-empty string, got {value!r}")


def _as_elements(elements: Iterable[Any], what: str) -> tuple[PatternNode, ...]:
    if isinstance(elements, (str, bytes)) or not isinstance(elements, Iterable):
        raise SchemaError(f"{what} must be a sequence of pattern elements")

    ret = tuple(elements)

    for i, el in enumerate(ret):
        if not isinstance(el, _NODE_TYPES):
            raise SchemaError(
                f"{what}[{i}] is not a known pattern element kind: {type(el).__name__}"
            )

    return ret


@dataclass(frozen=True, slots=True)
class PropertyBinding:
    """Binds a regex capture group to a property of the current output scope."""

    property: str
    format: str | None = None
    """Optional formatter from `FORMATTERS` applied to the captured text, e.g. `currency()`."""
    formatter: Callable[[str], str] | None = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        _check_name(self.property, "Bound property name")
        object.__setattr__(self, "property", self.property.strip())

        fmt = (self.format.strip() or None) if self.format is not None else None
        object.__setattr__(self, "format", fmt)
        object.__setattr__(
            self, "formatter", _resolve_formatter(fmt, self.property) if fmt is not None else None
        )

    def apply(self, value: str) -> str:
        if self.formatter is None:
            return value

        return self.formatter(value)

    def __str__(self) -> str:
        if self.format is None:
            return self.property
        return f"{self.property}|{self.format}"


@enum.unique
class RepeatKind(str, enum.Enum):
    ZERO_OR_MORE = "zeroOrMore"
    ONE_OR_MORE = "oneOrMore"
    OPTIONAL = "optional"
    EXACTLY = "exactly"


@dataclass(frozen=True, slots=True)
class RepeatMode:
    """How many times a repeat body must match.

    Use the `zero_or_more`, `one_or_more`, `optional` and `exactly` constructors.

    """

    kind: RepeatKind
    count: int | None = None
    """Required iteration count. Only set (and always >= 1) for `EXACTLY`."""

    def __post_init__(self) -> None:
        if not isinstance(self.kind, RepeatKind):
            raise SchemaError(f"Unknown repeat mode: {self.kind!r}")

        if self.kind is RepeatKind.EXACTLY:
            if not isinstance(self.count, int) or isinstance(self.count, bool):
                raise SchemaError(f"Exact repeat count must be an integer, got {self.count!r}")
            if self.count < 1:
                raise SchemaError(f"Exact repeat count must be >= 1, got {self.count}")
        elif self.count is not None:
            raise SchemaError(f"Repeat mode <{self.kind.value}> does not take a count")

    @classmethod
    def zero_or_more(cls) -> RepeatMode:
        return cls(RepeatKind.ZERO_OR_MORE)

    @classmethod
    def one_or_more(cls) -> RepeatMode:
        return cls(RepeatKind.ONE_OR_MORE)

    @classmethod
    def optional(cls) -> RepeatMode:
        return cls(RepeatKind.OPTIONAL)

    @classmethod
    def exactly(cls, count: int) -> RepeatMode:
        return cls(RepeatKind.EXACTLY, count)

    @property
    def min_count(self) -> int:
        match self.kind:
            case RepeatKind.ZERO_OR_MORE | RepeatKind.OPTIONAL:
                return 0
            case RepeatKind.ONE_OR_MORE:
                return 1
            case RepeatKind.EXACTLY:
                return self.count  # type: ignore[return-value]

    @property
    def max_count(self) -> int | None:
        """Maximum number of iterations, None if unbounded."""
        match self.kind:
            case RepeatKind.ZERO_OR_MORE | RepeatKind.ONE_OR_MORE:
                return None
            case RepeatKind.OPTIONAL:
                return 1
            case RepeatKind.EXACTLY:
                return self.count

    def __str__(self) -> str:
        if self.kind is RepeatKind.EXACTLY:
            return f"exactly({self.count})"
        return self.kind.value


@dataclass(frozen=True, slots=True)
class LineMatch:
    """Matches one line with a regex (searched anywhere in the line) and binds its groups."""

    regex: str
    bindings: tuple[PropertyBinding, ...] = ()
    comment: str | None = field(default=None, kw_only=True)
    pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        _check_name(self.regex, "Line regex")

        try:
            object.__setattr__(self, "pattern", re.compile(self.regex))
        except re.error as e:
            raise SchemaError(f"Invalid regex <{self.regex}>: {e}") from None

        bindings = tuple(
            PropertyBinding(b) if isinstance(b, str) else b for b in self.bindings
        )
        for b in bindings:
            if not isinstance(b, PropertyBinding):
                raise SchemaError(f"Line bindings must be property bindings, got {b!r}")
        object.__setattr__(self, "bindings", bindings)

        if len(bindings) != self.pattern.groups:
            raise SchemaError(
                f"Regex <{self.regex}> has {self.pattern.groups} capture group(s) "
                f"but {len(bindings)} bound propert{'y' if len(bindings) == 1 else 'ies'}"
            )

        names = [b.property for b in bindings]
        dups = sorted({n for n in names if names.count(n) > 1})
        if dups:
            raise SchemaError(
                f"Regex <{self.regex}> binds the same property more than once: {', '.join(dups)}"
            )

    def __rich__(self) -> Tree:
        return render_tree(self)


@dataclass(frozen=True, slots=True)
class AnyLine:
    """Consumes any single line, binds nothing."""

    comment: str | None = field(default=None, kw_only=True)

    def __rich__(self) -> Tree:
        return render_tree(self)


@dataclass(frozen=True, slots=True)
class Repeat:
    """Matches its elements repeatedly. Every iteration binds a new object appended to
    `bind_array` in the enclosing scope."""

    bind_array: str
    mode: RepeatMode
    elements: tuple[PatternNode, ...]
    comment: str | None = field(default=None, kw_only=True)

    def __post_init__(self) -> None:
        _check_name(self.bind_array, "Repeat bindArray")
        object.__setattr__(self, "bind_array", self.bind_array.strip())

        if not isinstance(self.mode, RepeatMode):
            raise SchemaError(f"Unknown repeat mode: {self.mode!r}")

        object.__setattr__(self, "elements", _as_elements(self.elements, "Repeat elements"))

    def __rich__(self) -> Tree:
        return render_tree(self)


@dataclass(frozen=True, slots=True)
class Or:
    """Ordered choice. The first alternative sequence that matches wins."""

    alternatives: tuple[tuple[PatternNode, ...], ...]
    comment: str | None = field(default=None, kw_only=True)

    def __post_init__(self) -> None:
        if isinstance(self.alternatives, (str, bytes)) or not isinstance(
            self.alternatives, Iterable
        ):
            raise SchemaError("Or alternatives must be a sequence of element sequences")

        alts = tuple(
            _as_elements(alt, f"Or alternatives[{i}]") for i, alt in enumerate(self.alternatives)
        )

        if not alts:
            raise SchemaError("Or must have at least one alternative")

        object.__setattr__(self, "alternatives", alts)

    def __rich__(self) -> Tree:
        return render_tree(self)


@dataclass(frozen=True, slots=True)
class Group:
    """Matches its elements as a sequence and binds them into a nested object under
    `bind_object`."""

    bind_object: str
    elements: tuple[PatternNode, ...]
    comment: str | None = field(default=None, kw_only=True)

    def __post_init__(self) -> None:
        _check_name(self.bind_object, "Group bindObject")
        object.__setattr__(self, "bind_object", self.bind_object.strip())
        object.__setattr__(self, "elements", _as_elements(self.elements, "Group elements"))

    def __rich__(self) -> Tree:
        return render_tree(self)


PatternNode = LineMatch | AnyLine | Repeat | Or | Group

_NODE_TYPES = (LineMatch, AnyLine, Repeat, Or, Group)


@dataclass(frozen=True, slots=True)
class PatternDocument:
    """A validated pattern document: metadata plus the root element sequence."""

    version: str
    name: str
    elements: tuple[PatternNode, ...]
    bind_object: str | None = None
    """If set, the root scope is wrapped as `{bind_object: root}` in the output."""
    comment: str | None = None
    edit_distance: int = 0
    """Kept for compatibility with existing documents. Fuzzy matching is not supported, this value
    has no effect on matching."""

    def __post_init__(self) -> None:
        _check_name(self.version, "Document version")
        _check_name(self.name, "Document name")

        if self.bind_object is not None:
            _check_name(self.bind_object, "Document bindObject")
            object.__setattr__(self, "bind_object", self.bind_object.strip())

        if (
            not isinstance(self.edit_distance, int)
            or isinstance(self.edit_distance, bool)
            or self.edit_distance < 0
        ):
            raise SchemaError(
                f"Document editDistance must be a non-negative integer, got {self.edit_distance!r}"
            )

        object.__setattr__(self, "elements", _as_elements(self.elements, "Document elements"))

    def __rich__(self) -> Tree:
        return render_tree(self)


def _node_label(node: PatternNode | PatternDocument, prefix: str | None) -> str:
    kind = node.__class__.__name__
    if prefix is not None:
        kind = f"{prefix}({kind})"

    label = f":deciduous_tree:[bold green]{escape(kind)}[/bold green]"

    if node.comment:
        label += f" [dim]# {escape(node.comment)}[/dim]"

    return label


def _add_sequence(tree: Tree, name: str, elements: tuple[PatternNode, ...]) -> None:
    if not elements:
        tree.add(f":file_folder:[yellow]{name}[/]={escape('()')}")
        return

    subtree = tree.add(f":file_folder:[yellow]{name}[/]")
    for i, el in enumerate(elements):
        render_tree(el, subtree, str(i))


def render_tree(
    node: PatternNode | PatternDocument, parent: Tree | None = None, prefix: str | None = None
) -> Tree:
    """Render a pattern document or node as a `rich` tree widget.

    Args:
        node: The document or node to render.
        parent: If given, the rendered tree is added as a child of this tree.
        prefix: Optional label prefix (e.g. position in the parent sequence).

    Returns:
        The tree for the `node`.

    """
    name = _node_label(node, prefix)
    tree = parent.add(name) if parent is not None else Tree(name)

    match node:
        case PatternDocument():
            tree.add(f":spiral_notepad: [yellow]name[/]={escape(node.name)}")
            tree.add(f":spiral_notepad: [yellow]version[/]={escape(node.version)}")
            if node.bind_object is not None:
                tree.add(f":spiral_notepad: [yellow]bindObject[/]={escape(node.bind_object)}")
            _add_sequence(tree, "elements", node.elements)
        case LineMatch():
            tree.add(f":spiral_notepad: [yellow]regex[/]={escape(node.regex)}")
            if node.bindings:
                tree.add(
                    f":spiral_notepad: [yellow]bindings[/]="
                    f"{escape(', '.join(str(b) for b in node.bindings))}"
                )
        case AnyLine():
            pass
        case Repeat():
            tree.add(f":spiral_notepad: [yellow]bindArray[/]={escape(node.bind_array)}")
            tree.add(f":spiral_notepad: [yellow]mode[/]={escape(str(node.mode))}")
            _add_sequence(tree, "elements", node.elements)
        case Or():
            for i, alt in enumerate(node.alternatives):
                _add_sequence(tree, f"alternative[{i}]", alt)
        case Group():
            tree.add(f":spiral_notepad: [yellow]bindObject[/]={escape(node.bind_object)}")
            _add_sequence(tree, "elements", node.elements)
        case _ as unreachable:
            raise AssertionError(f"Unhandled pattern node type: {type(unreachable).__name__!r}")

    return tree

"""Load pattern documents from their external representation.

The external representation is a mapping (usually parsed from JSON or YAML):

    document  := { version, name, comment?, bindObject?, editDistance?, elements: [element] }
    element   := { line: line } | { repeat: repeat } | { or: or } | { anyline: {} }
                 | { group: group }
    line      := { regex, bindProperties: [{ property, format? }], comment? }
    repeat    := { bindArray, mode, elements: [element], comment? }
    mode      := "zeroOrMore" | "oneOrMore" | "optional" | "zeroOrOne" | { exactly: int }
    or        := { elements: [[element], ...], comment? }
    group     := { bindObject, elements: [element], comment? }

All errors are reported as `SchemaError` with the location of the offending value.

"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal, Mapping, Sequence

import orjson
import ruamel.yaml
from ruamel.yaml.error import YAMLError

from . import config
from .error import SchemaError
from .file import read_text_unknown_encoding
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

logger = logging.getLogger(__name__)

DocumentFormat = Literal["json", "yaml"]

_SUFFIX_FORMATS: dict[str, DocumentFormat] = {
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
}

_MODES = {
    "zeroOrMore": RepeatKind.ZERO_OR_MORE,
    "oneOrMore": RepeatKind.ONE_OR_MORE,
    "optional": RepeatKind.OPTIONAL,
    "zeroOrOne": RepeatKind.OPTIONAL,
}

_DOCUMENT_KEYS = frozenset({"version", "name", "comment", "bindObject", "editDistance", "elements"})
_ELEMENT_KEYS: dict[str, frozenset[str]] = {
    "line": frozenset({"regex", "bindProperties", "comment"}),
    "repeat": frozenset({"bindArray", "mode", "elements", "comment"}),
    "or": frozenset({"elements", "comment"}),
    "anyline": frozenset({"comment"}),
    "group": frozenset({"bindObject", "elements", "comment"}),
}

_DOCUMENT_CACHE: dict[tuple[str | bytes, DocumentFormat], PatternDocument] = {}

yaml = ruamel.yaml.YAML(typ="safe", pure=True)


def _type_name(value: Any) -> str:
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (str, bytes)):
        return "string"
    if isinstance(value, Sequence):
        return "array"
    return type(value).__name__


def _expect_mapping(value: Any, loc: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise SchemaError(f"Expected an object, got {_type_name(value)}", loc)
    return value


def _expect_list(value: Any, loc: str) -> Sequence[Any]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise SchemaError(f"Expected an array, got {_type_name(value)}", loc)
    return value


def _check_keys(obj: Mapping[str, Any], allowed: frozenset[str], loc: str) -> None:
    unknown = set(obj) - allowed
    if unknown:
        raise SchemaError(
            f"Unknown key(s): {', '.join(sorted(map(str, unknown)))}. "
            f"Allowed: {', '.join(sorted(allowed))}",
            loc,
        )


def _required(obj: Mapping[str, Any], key: str, loc: str) -> Any:
    if key not in obj:
        raise SchemaError(f"Missing required key <{key}>", loc)
    return obj[key]


def _optional_str(obj: Mapping[str, Any], key: str, loc: str) -> str | None:
    value = obj.get(key)
    if value is not None and not isinstance(value, str):
        raise SchemaError(f"<{key}> must be a string, got {_type_name(value)}", f"{loc}/{key}")
    return value


def _parse_binding(value: Any, loc: str) -> PropertyBinding:
    obj = _expect_mapping(value, loc)
    _check_keys(obj, frozenset({"property", "format"}), loc)

    try:
        return PropertyBinding(
            _required(obj, "property", loc), _optional_str(obj, "format", loc)
        )
    except SchemaError as e:
        if e.location is not None:
            raise
        raise SchemaError(e.message, loc) from None


def _parse_mode(value: Any, loc: str) -> RepeatMode:
    if isinstance(value, str):
        kind = _MODES.get(value)
        if kind is None:
            raise SchemaError(
                f"Unknown repeat mode <{value}>. Expected one of "
                f"{', '.join(_MODES)} or {{\"exactly\": n}}",
                loc,
            )
        return RepeatMode(kind)

    if isinstance(value, Mapping) and set(value) == {"exactly"}:
        try:
            return RepeatMode.exactly(value["exactly"])
        except SchemaError as e:
            raise SchemaError(e.message, f"{loc}/exactly") from None

    raise SchemaError(f"Invalid repeat mode: {value!r}", loc)


def _parse_elements(value: Any, loc: str) -> tuple[PatternNode, ...]:
    return tuple(
        _parse_element(el, f"{loc}/{i}") for i, el in enumerate(_expect_list(value, loc))
    )


def _parse_element(value: Any, loc: str) -> PatternNode:
    obj = _expect_mapping(value, loc)

    if len(obj) != 1:
        raise SchemaError(
            "Element must specify exactly one of: "
            f"{', '.join(_ELEMENT_KEYS)}. Got: {', '.join(map(str, obj)) or 'nothing'}",
            loc,
        )

    ((kind, body),) = obj.items()

    if kind not in _ELEMENT_KEYS:
        raise SchemaError(
            f"Unknown element kind <{kind}>. Expected one of: {', '.join(_ELEMENT_KEYS)}", loc
        )

    loc = f"{loc}/{kind}"
    body = _expect_mapping({} if body is None and kind == "anyline" else body, loc)
    _check_keys(body, _ELEMENT_KEYS[kind], loc)
    comment = _optional_str(body, "comment", loc)

    try:
        match kind:
            case "line":
                bindings = tuple(
                    _parse_binding(b, f"{loc}/bindProperties/{i}")
                    for i, b in enumerate(
                        _expect_list(body.get("bindProperties", []), f"{loc}/bindProperties")
                    )
                )
                return LineMatch(_required(body, "regex", loc), bindings, comment=comment)
            case "anyline":
                return AnyLine(comment=comment)
            case "repeat":
                mode = _parse_mode(_required(body, "mode", loc), f"{loc}/mode")
                elements = _parse_elements(_required(body, "elements", loc), f"{loc}/elements")
                return Repeat(
                    _required(body, "bindArray", loc), mode, elements, comment=comment
                )
            case "or":
                alternatives = tuple(
                    _parse_elements(alt, f"{loc}/elements/{i}")
                    for i, alt in enumerate(
                        _expect_list(_required(body, "elements", loc), f"{loc}/elements")
                    )
                )
                return Or(alternatives, comment=comment)
            case "group":
                elements = _parse_elements(_required(body, "elements", loc), f"{loc}/elements")
                return Group(_required(body, "bindObject", loc), elements, comment=comment)
            case _:
                raise AssertionError(f"Unhandled element kind: {kind!r}")
    except SchemaError as e:
        # Errors from nested elements already carry their own location
        if e.location is not None:
            raise
        raise SchemaError(e.message, loc) from None


def _metadata_str(obj: Mapping[str, Any], key: str) -> Any:
    value = _required(obj, key, "/")
    # YAML happily parses `version: 1.0` as a float
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def from_dict(document: Mapping[str, Any]) -> PatternDocument:
    """Build a validated pattern document from its external (mapping) representation.

    Args:
        document: The document mapping, e.g. parsed JSON.

    Returns:
        PatternDocument: the validated document

    Raises:
        SchemaError: if the document is malformed

    """
    obj = _expect_mapping(document, "/")
    _check_keys(obj, _DOCUMENT_KEYS, "/")

    elements = _parse_elements(_required(obj, "elements", "/"), "/elements")

    try:
        doc = PatternDocument(
            version=_metadata_str(obj, "version"),
            name=_metadata_str(obj, "name"),
            elements=elements,
            bind_object=obj.get("bindObject"),
            comment=_optional_str(obj, "comment", ""),
            edit_distance=obj.get("editDistance", 0),
        )
    except SchemaError as e:
        if e.location is not None:
            raise
        raise SchemaError(e.message, "/") from None

    if config.TRACE_LOGGING:
        logger.debug(f"Loaded pattern document <{doc.name}> v{doc.version}")

    return doc


def _parse_text(text: str | bytes, format: DocumentFormat) -> Any:
    match format:
        case "json":
            try:
                return orjson.loads(text)
            except orjson.JSONDecodeError as e:
                raise SchemaError(f"Invalid JSON: {e}") from None
        case "yaml":
            try:
                return yaml.load(text)
            except YAMLError as e:
                raise SchemaError(f"Invalid YAML: {e}") from None
        case _:
            raise ValueError(f"Unknown document format: {format!r}")


def loads(text: str | bytes, format: DocumentFormat = "json") -> PatternDocument:
    """Parse and validate a pattern document from JSON or YAML text.

    Documents are immutable, so parsed documents are cached by their source text.

    Raises:
        SchemaError: if the text can't be parsed or the document is malformed

    """
    key = (text, format)

    doc = _DOCUMENT_CACHE.get(key, None)

    if doc is not None:
        return doc

    try:
        doc = from_dict(_parse_text(text, format))
    except SchemaError:
        raise
    except Exception as e:
        if config.TRACE_LOGGING:
            logger.debug("Internal error loading pattern document", exc_info=True)

        raise SchemaError(
            "Failed to load a pattern document due to internal error. Please report it!"
        ) from e

    _DOCUMENT_CACHE[key] = doc

    return doc


def load(path: str | Path, format: DocumentFormat | None = None) -> PatternDocument:
    """Load a pattern document from a file.

    Args:
        path: path to the file
        format: `json` or `yaml`. If not given, picked by the file suffix.

    Raises:
        SchemaError: if the file can't be decoded or the document is malformed

    """
    path = Path(path)

    if format is None:
        format = _SUFFIX_FORMATS.get(path.suffix.lower())
        if format is None:
            raise ValueError(
                f"Can't guess the format of <{path}>, pass format='json' or format='yaml'"
            )

    text = read_text_unknown_encoding(path)

    if text is None:
        raise SchemaError(f"Could not decode pattern file <{path}>")

    return loads(text, format)


def validate(document: Mapping[str, Any]) -> tuple[bool, str]:
    """Validate a pattern document mapping without raising.

    Returns:
        A tuple of a boolean indicating whether the document is valid and a string
        containing the error message if the document is invalid.

    """
    try:
        from_dict(document)
    except SchemaError as e:
        return (False, str(e))
    except Exception:
        return False, "Incorrect pattern document. Unexpected error"

    return True, "Valid pattern document"

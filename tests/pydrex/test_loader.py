from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import orjson
import pytest
from pydrex.engine import Engine
from pydrex.error import SchemaError
from pydrex import loader
from pydrex.loader import from_dict, load, loads, validate
from pydrex.model import AnyLine, Group, LineMatch, Or, PatternDocument, Repeat, RepeatKind

INVOICE_YAML = r"""
version: "1.0"
name: SimpleInvoice
comment: Extracts an invoice id, its line items and the total
bindObject: invoice
elements:
  - line:
      regex: 'Invoice #(\d+)'
      bindProperties:
        - property: id
  - repeat:
      bindArray: items
      mode: oneOrMore
      elements:
        - line:
            regex: '(\S+)\s+(\d+)\s+([\d\.]+)'
            bindProperties:
              - property: name
              - property: qty
              - property: price
  - or:
      elements:
        - - line:
              regex: 'Total: ([\d\.]+)'
              bindProperties:
                - property: total
        - - anyline: {}
"""


def _with_element(element: Any) -> dict[str, Any]:
    return {"version": "1.0", "name": "Doc", "elements": [element]}


def test_from_dict(invoice_dict: dict, invoice_doc: PatternDocument) -> None:
    doc = from_dict(invoice_dict)

    assert doc == invoice_doc
    assert doc.comment == "Extracts an invoice id, its line items and the total"
    assert isinstance(doc.elements[0], LineMatch)
    assert isinstance(doc.elements[1], Repeat)
    assert doc.elements[1].mode.kind is RepeatKind.ONE_OR_MORE
    assert isinstance(doc.elements[2], Or)
    assert doc.elements[2].alternatives[1] == (AnyLine(),)


def test_loads_json_and_yaml_agree(invoice_dict: dict) -> None:
    from_json = loads(orjson.dumps(invoice_dict).decode(), "json")
    from_yaml = loads(INVOICE_YAML, "yaml")

    assert from_json == from_yaml == from_dict(invoice_dict)


def test_loads_caches_documents(invoice_dict: dict) -> None:
    text = orjson.dumps(invoice_dict)

    assert loads(text) is loads(text)


def test_load_file(tmp_path: Path, invoice_dict: dict, invoice_lines: list[str]) -> None:
    json_file = tmp_path / "invoice.json"
    json_file.write_bytes(orjson.dumps(invoice_dict))

    yaml_file = tmp_path / "invoice.YML"
    yaml_file.write_text(INVOICE_YAML, encoding="utf-8")

    assert load(json_file) == load(str(yaml_file))
    assert Engine(load(json_file)).run(invoice_lines).success

    with pytest.raises(ValueError, match="format"):
        load(tmp_path / "invoice.txt")

    txt_file = tmp_path / "invoice.txt"
    txt_file.write_text(INVOICE_YAML, encoding="utf-8")
    assert load(txt_file, format="yaml") == load(json_file)


def test_load_sample_document(invoice_lines: list[str]) -> None:
    sample = Path(__file__).parents[2] / "examples" / "invoice.json"

    result = Engine(load(sample)).run(invoice_lines)

    assert result.success
    assert result.data["invoice"]["total"] == "19.98"


@pytest.mark.parametrize(
    "mode, kind, count",
    [
        ("zeroOrMore", RepeatKind.ZERO_OR_MORE, None),
        ("oneOrMore", RepeatKind.ONE_OR_MORE, None),
        ("optional", RepeatKind.OPTIONAL, None),
        ("zeroOrOne", RepeatKind.OPTIONAL, None),
        ({"exactly": 3}, RepeatKind.EXACTLY, 3),
    ],
)
def test_repeat_modes(mode: Any, kind: RepeatKind, count: int | None) -> None:
    doc = from_dict(
        _with_element(
            {"repeat": {"bindArray": "rows", "mode": mode, "elements": [{"anyline": {}}]}}
        )
    )

    repeat = doc.elements[0]
    assert isinstance(repeat, Repeat)
    assert repeat.mode.kind is kind
    assert repeat.mode.count == count


def test_group_and_format() -> None:
    doc = from_dict(
        _with_element(
            {
                "group": {
                    "bindObject": "customer",
                    "comment": "Customer block",
                    "elements": [
                        {
                            "line": {
                                "regex": "Name: (.+)",
                                "bindProperties": [{"property": "name", "format": "upper"}],
                            }
                        }
                    ],
                }
            }
        )
    )

    group = doc.elements[0]
    assert isinstance(group, Group)
    assert group.comment == "Customer block"

    result = Engine(doc).run(["Name: acme"])
    assert result.data == {"customer": {"name": "ACME"}}


def test_anyline_accepts_null_body() -> None:
    assert from_dict(_with_element({"anyline": None})).elements == (AnyLine(),)


def test_line_without_bindings() -> None:
    doc = from_dict(_with_element({"line": {"regex": "^---$"}}))
    assert doc.elements == (LineMatch("^---$"),)


def test_yaml_numeric_version() -> None:
    doc = loads("version: 1.0\nname: Doc\nelements: []\n", "yaml")
    assert doc.version == "1.0"


@pytest.mark.parametrize(
    "element, location, message",
    [
        ({}, "/elements/0", "exactly one of"),
        (
            {"line": {"regex": "x"}, "anyline": {}},
            "/elements/0",
            "exactly one of",
        ),
        ({"lines": {"regex": "x"}}, "/elements/0", "Unknown element kind <lines>"),
        ("line", "/elements/0", "Expected an object, got string"),
        (
            {"line": {"regex": r"(\d+)", "bindProperties": []}},
            "/elements/0/line",
            "1 capture group(s) but 0 bound properties",
        ),
        (
            {"line": {"regex": r"(\d+)", "bindProperties": [{"property": "a"}, {"property": "b"}]}},
            "/elements/0/line",
            "capture group",
        ),
        ({"line": {"regex": "("}}, "/elements/0/line", "Invalid regex"),
        ({"line": {}}, "/elements/0/line", "Missing required key <regex>"),
        (
            {"line": {"regex": "x", "bind": []}},
            "/elements/0/line",
            "Unknown key(s): bind",
        ),
        (
            {"line": {"regex": "(x)", "bindProperties": [{"name": "a"}]}},
            "/elements/0/line/bindProperties/0",
            "Unknown key(s): name",
        ),
        (
            {"line": {"regex": "(x)", "bindProperties": [{"property": "a", "format": "money"}]}},
            "/elements/0/line/bindProperties/0",
            "Unknown formatter <money>",
        ),
        (
            {"line": {"regex": "x", "comment": 5}},
            "/elements/0/line/comment",
            "must be a string",
        ),
        (
            {"repeat": {"bindArray": "a", "mode": "often", "elements": []}},
            "/elements/0/repeat/mode",
            "Unknown repeat mode <often>",
        ),
        (
            {"repeat": {"bindArray": "a", "mode": {"exactly": 0}, "elements": []}},
            "/elements/0/repeat/mode/exactly",
            "must be >= 1",
        ),
        (
            {"repeat": {"bindArray": "a", "mode": {"exactly": "2"}, "elements": []}},
            "/elements/0/repeat/mode/exactly",
            "must be an integer",
        ),
        (
            {"repeat": {"bindArray": "a", "mode": {"atLeast": 2}, "elements": []}},
            "/elements/0/repeat/mode",
            "Invalid repeat mode",
        ),
        (
            {"repeat": {"bindArray": "", "mode": "optional", "elements": []}},
            "/elements/0/repeat",
            "bindArray",
        ),
        (
            {"repeat": {"bindArray": "a", "mode": "optional"}},
            "/elements/0/repeat",
            "Missing required key <elements>",
        ),
        (
            {
                "repeat": {
                    "bindArray": "a",
                    "mode": "optional",
                    "elements": [{"anyline": {}}, {"line": {"regex": "(x)"}}],
                }
            },
            "/elements/0/repeat/elements/1/line",
            "capture group",
        ),
        ({"or": {"elements": []}}, "/elements/0/or", "at least one alternative"),
        ({"or": {"elements": [{"anyline": {}}]}}, "/elements/0/or/elements/0", "Expected an array"),
        (
            {"or": {"elements": [[{"anyline": {}}], [{"bogus": {}}]]}},
            "/elements/0/or/elements/1/0",
            "Unknown element kind <bogus>",
        ),
        ({"anyline": {"regex": "x"}}, "/elements/0/anyline", "Unknown key(s): regex"),
        ({"group": {"elements": []}}, "/elements/0/group", "Missing required key <bindObject>"),
    ],
)
def test_schema_errors(element: Any, location: str, message: str) -> None:
    with pytest.raises(SchemaError) as excinfo:
        from_dict(_with_element(element))

    assert excinfo.value.location == location
    assert message in str(excinfo.value)


@pytest.mark.parametrize(
    "change, location, message",
    [
        (lambda d: d.pop("elements"), "/", "Missing required key <elements>"),
        (lambda d: d.pop("name"), "/", "Missing required key <name>"),
        (lambda d: d.update(version=""), "/", "Document version"),
        (lambda d: d.update(elements={}), "/elements", "Expected an array, got object"),
        (lambda d: d.update(bindObject=""), "/", "Document bindObject"),
        (lambda d: d.update(editDistance=-2), "/", "editDistance"),
        (lambda d: d.update(extra=1), "/", "Unknown key(s): extra"),
        (lambda d: d.update(comment=["x"]), "/comment", "must be a string"),
    ],
)
def test_document_schema_errors(invoice_dict: dict, change, location: str, message: str) -> None:
    d = copy.deepcopy(invoice_dict)
    change(d)

    with pytest.raises(SchemaError) as excinfo:
        from_dict(d)

    assert excinfo.value.location == location
    assert message in str(excinfo.value)


def test_document_must_be_object() -> None:
    with pytest.raises(SchemaError, match="Expected an object, got array"):
        from_dict([])  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "text, format",
    [
        ("{not json", "json"),
        ("version: [1.0\n", "yaml"),
        ("[]", "json"),
    ],
)
def test_loads_invalid_text(text: str, format) -> None:
    with pytest.raises(SchemaError):
        loads(text, format)


def test_validate(invoice_dict: dict) -> None:
    assert validate(invoice_dict) == (True, "Valid pattern document")

    ok, msg = validate(_with_element({"line": {"regex": r"(\d+)"}}))
    assert not ok
    assert "capture group" in msg


def test_formatters_in_call_syntax() -> None:
    doc = from_dict(
        _with_element(
            {
                "line": {
                    "regex": r"Total: (\S+) on (\S+)\s*$",
                    "bindProperties": [
                        {"property": "total", "format": "currency()"},
                        {"property": "date", "format": "parseDate(MM/dd/yyyy)"},
                    ],
                }
            }
        )
    )

    result = Engine(doc).run(["Total: $1,234.50 on 01/31/2024  "])

    assert result.data == {"total": "1234.50", "date": "01/31/2024"}


def test_cache_is_keyed_by_text_and_format() -> None:
    text = '{"version": "1.0", "name": "Flow", "elements": []}'

    from_json = loads(text, "json")
    from_yaml = loads(text, "yaml")

    assert from_json == from_yaml
    assert from_json is not from_yaml
    assert loader._DOCUMENT_CACHE[(text, "json")] is from_json
    assert loader._DOCUMENT_CACHE[(text, "yaml")] is from_yaml

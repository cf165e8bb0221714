from contextlib import AbstractContextManager, contextmanager
from typing import Generator, Protocol

import pytest
from pydrex import config
from pydrex.model import AnyLine, LineMatch, Or, PatternDocument, Repeat, RepeatMode


class ConfigFixtureProtocol(Protocol):
    def __call__(
        self,
        *,
        logging: bool = config.TRACE_LOGGING,
        strict: bool = config.STRICT,
    ) -> AbstractContextManager[None]:
        ...


@pytest.fixture
def pydrex_config() -> ConfigFixtureProtocol:
    @contextmanager
    def _with_config(
        *,
        logging: bool = config.TRACE_LOGGING,
        strict: bool = config.STRICT,
    ) -> Generator[None, None, None]:
        old_logging = config.TRACE_LOGGING
        old_strict = config.STRICT
        config.TRACE_LOGGING = logging
        config.STRICT = strict
        try:
            yield
        finally:
            config.TRACE_LOGGING = old_logging
            config.STRICT = old_strict

    return _with_config


INVOICE_DOC = {
    "version": "1.0",
    "name": "SimpleInvoice",
    "comment": "Extracts an invoice id, its line items and the total",
    "bindObject": "invoice",
    "elements": [
        {"line": {"regex": r"Invoice #(\d+)", "bindProperties": [{"property": "id"}]}},
        {
            "repeat": {
                "bindArray": "items",
                "mode": "oneOrMore",
                "elements": [
                    {
                        "line": {
                            "regex": r"(\S+)\s+(\d+)\s+([\d\.]+)",
                            "bindProperties": [
                                {"property": "name"},
                                {"property": "qty"},
                                {"property": "price"},
                            ],
                        }
                    }
                ],
            }
        },
        {
            "or": {
                "elements": [
                    [{"line": {"regex": r"Total: ([\d\.]+)", "bindProperties": [{"property": "total"}]}}],
                    [{"anyline": {}}],
                ]
            }
        },
    ],
}

INVOICE_LINES = ["Invoice #123", "Widget 2 9.99", "Gadget 5 3.50", "Total: 19.98"]


@pytest.fixture
def invoice_dict() -> dict:
    return INVOICE_DOC


@pytest.fixture
def invoice_lines() -> list[str]:
    return list(INVOICE_LINES)


@pytest.fixture
def invoice_doc() -> PatternDocument:
    return PatternDocument(
        version="1.0",
        name="SimpleInvoice",
        bind_object="invoice",
        comment="Extracts an invoice id, its line items and the total",
        elements=(
            LineMatch(r"Invoice #(\d+)", ("id",)),
            Repeat(
                "items",
                RepeatMode.one_or_more(),
                (LineMatch(r"(\S+)\s+(\d+)\s+([\d\.]+)", ("name", "qty", "price")),),
            ),
            Or(
                (
                    (LineMatch(r"Total: ([\d\.]+)", ("total",)),),
                    (AnyLine(),),
                )
            ),
        ),
    )

from pydrex.loader import from_dict
from pydrex.model import PatternDocument

INVOICE = {
    "version": "1.0",
    "name": "BenchInvoice",
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
                                {"property": "name", "format": "upper"},
                                {"property": "qty"},
                                {"property": "price"},
                            ],
                        }
                    },
                    {
                        "repeat": {
                            "bindArray": "notes",
                            "mode": "zeroOrMore",
                            "elements": [
                                {
                                    "line": {
                                        "regex": r"^\s+note: (.*)$",
                                        "bindProperties": [{"property": "text"}],
                                    }
                                }
                            ],
                        }
                    },
                ],
            }
        },
        {
            "or": {
                "elements": [
                    [
                        {
                            "line": {
                                "regex": r"Total: ([\d\.]+)",
                                "bindProperties": [{"property": "total"}],
                            }
                        }
                    ],
                    [{"anyline": {}}],
                ]
            }
        },
    ],
}


def gen_invoice_lines(items: int, notes_every: int = 3) -> list[str]:
    lines = ["Invoice #42"]

    for i in range(items):
        lines.append(f"item{i} {i % 9 + 1} {i % 100}.99")
        if i % notes_every == 0:
            lines.append(f"   note: fragile item {i}")

    lines.append("Total: 1234.56")
    return lines


def gen_invoice_doc() -> PatternDocument:
    return from_dict(INVOICE)

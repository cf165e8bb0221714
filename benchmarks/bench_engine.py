from __future__ import annotations

import timeit

from pydrex import config
from pydrex.engine import Engine
from sample_invoice import gen_invoice_doc, gen_invoice_lines


def run_benchmark():
    engine = Engine(gen_invoice_doc())

    for items in (100, 1000, 10000):
        lines = gen_invoice_lines(items)

        result = engine.run(lines)
        assert result.success, str(result)

        times = timeit.repeat(lambda: engine.run(lines), repeat=5, number=1)
        avg_time = sum(times) / len(times)
        print(
            f"{len(lines)} lines, {result.lines_matched} matched: "
            f"{avg_time:.6f} seconds ({len(lines) / avg_time:,.0f} lines/s)"
        )

    lines = gen_invoice_lines(1000)

    config.TRACE_LOGGING = True
    times = timeit.repeat(lambda: engine.run(lines), repeat=5, number=1)
    config.TRACE_LOGGING = False
    print(f"{len(lines)} lines with trace logging: {sum(times) / len(times):.6f} seconds")


if __name__ == "__main__":
    run_benchmark()

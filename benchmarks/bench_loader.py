from __future__ import annotations

import timeit

import orjson
from pydrex import loader
from sample_invoice import INVOICE


def run_benchmark():
    text = orjson.dumps(INVOICE)

    times = timeit.repeat(lambda: loader.from_dict(INVOICE), repeat=10, number=100)
    print(f"Average time to build a document from a dict: {min(times) / 100:.6f} seconds")

    loader._DOCUMENT_CACHE.clear()
    times = timeit.repeat(lambda: loader.loads(text), repeat=10, number=100)
    print(f"Average time to load a cached document: {min(times) / 100:.6f} seconds")


if __name__ == "__main__":
    run_benchmark()

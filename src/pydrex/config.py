TRACE_LOGGING = False
"""Emit debug logs for every node attempt while matching and while loading documents."""

STRICT = False
"""Default for `Engine(strict=...)`.

When True, a successful match that leaves unconsumed trailing input is reported as a failure.

"""

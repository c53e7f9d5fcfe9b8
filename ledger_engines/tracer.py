"""
ledger_engines.tracer -- one DEBUG record per engine call.

``@traced_engine`` wraps a pure report function and logs ``engine_trace``
with the engine name and version, how long the call took, how many rows
each sequence argument held, and a fingerprint of the arguments that select
the report (year, month, period, limit).  Two dashboard loads with the same
fingerprint and row counts looked at the same slice of the ledger.

Fingerprints are SHA-256 over a canonical text form, truncated to 16 hex
characters.  Mapping keys are sorted; lists and tuples hash alike.
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import time
from collections.abc import Callable, Mapping
from datetime import date
from decimal import Decimal
from typing import Any

from ledger_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")


def _canonicalize(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Mapping):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        return "{" + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _canonicalize(
            {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        )
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """SHA-256 prefix over the named arguments; absent ones count as null."""
    canonical = "|".join(
        f"{name}={_canonicalize(arguments.get(name))}" for name in fingerprint_fields
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def _row_counts(arguments: Mapping[str, Any]) -> dict[str, int]:
    return {
        name: len(value)
        for name, value in arguments.items()
        if isinstance(value, (list, tuple))
    }


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorator logging ``engine_trace`` for each call of a report engine.

    Arguments are bound against the function signature, so fields named in
    ``fingerprint_fields`` are found whether passed by position or keyword,
    and parameter defaults are included.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            bound = signature.bind(*args, **kwargs)
            bound.apply_defaults()
            arguments = bound.arguments

            t0 = time.monotonic()
            result = func(*args, **kwargs)
            duration_ms = round((time.monotonic() - t0) * 1000, 2)

            _logger.debug(
                "engine_trace",
                extra={
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": compute_input_fingerprint(
                        fingerprint_fields, arguments
                    ),
                    "row_counts": _row_counts(arguments),
                    "duration_ms": duration_ms,
                },
            )
            return result

        return wrapper

    return decorator

from __future__ import annotations

import hashlib
import logging

from logging_config import ContextualFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="services.analytics",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Computed analysis",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_cache_keys_are_shortened() -> None:
    key = hashlib.sha256(b"readings").hexdigest()
    formatter = ContextualFormatter(fmt="%(message)s")

    line = formatter.format(_record(cache_key=key, reading_count=5))

    assert line == f"Computed analysis | reading_count=5 cache_key={key[:12]}..."


def test_floats_are_rounded_and_missing_keys_skipped() -> None:
    formatter = ContextualFormatter(fmt="%(message)s", extra_keys=["status", "error"])

    assert formatter.format(_record(status=0.12345)) == "Computed analysis | status=0.123"
    assert formatter.format(_record()) == "Computed analysis"

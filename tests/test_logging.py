from __future__ import annotations

import json
import logging

from schemaledger.core.logging import (
    CorrelationFilter,
    _JsonFormatter,
    correlation_scope,
    get_correlation_context,
    setup_logging,
)


def _record(msg: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        name="schemaledger.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_correlation_filter_injects_fields() -> None:
    correlation_filter = CorrelationFilter()
    record = _record()

    with correlation_scope(run_id="run-1", migration="00001_init"):
        assert correlation_filter.filter(record) is True

    assert record.run_id == "run-1"
    assert record.migration == "00001_init"


def test_nested_scope_inherits_run_id_and_restores() -> None:
    baseline = get_correlation_context()

    with correlation_scope(run_id="run-outer"):
        outer = get_correlation_context()
        assert outer.migration is None

        with correlation_scope(migration="00002_custom_user_fields"):
            inner = get_correlation_context()
            assert inner.run_id == "run-outer"
            assert inner.migration == "00002_custom_user_fields"

        assert get_correlation_context() == outer

    assert get_correlation_context() == baseline


def test_json_formatter_payload() -> None:
    record = _record("Applied migration 00001_init")
    with correlation_scope(run_id="run-2", migration="00001_init"):
        CorrelationFilter().filter(record)

    payload = json.loads(_JsonFormatter().format(record))

    assert payload["message"] == "Applied migration 00001_init"
    assert payload["level"] == "INFO"
    assert payload["run_id"] == "run-2"
    assert payload["migration"] == "00001_init"


def test_setup_logging_installs_single_handler() -> None:
    setup_logging("debug", json_output=True)
    setup_logging("debug", json_output=True)

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, _JsonFormatter)

import logging

from walnut.logging import RequestIdFilter, request_id_var


def _record():
    return logging.LogRecord("walnut.test", logging.INFO, __file__, 1, "hello", None, None)


def test_request_id_filter_uses_context_value():
    token = request_id_var.set("req-42")
    try:
        record = _record()
        RequestIdFilter().filter(record)
    finally:
        request_id_var.reset(token)

    assert record.request_id == "req-42"


def test_request_id_filter_defaults_to_dash():
    record = _record()
    record.request_id = None

    RequestIdFilter().filter(record)

    assert record.request_id == "-"

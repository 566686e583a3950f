import json
import logging

import pytest

from tokenstore.core.logging import JSONFormatter, setup_logging


@pytest.fixture
def restore_tokenstore_logger():
    logger = logging.getLogger("tokenstore")
    saved = (logger.handlers[:], logger.level, logger.propagate)
    yield logger
    logger.handlers, logger.level, logger.propagate = saved


def _record(msg, *args, exc_info=None, **extra):
    record = logging.LogRecord(
        name="tokenstore.worker",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=args,
        exc_info=exc_info,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_fields():
    payload = json.loads(JSONFormatter().format(_record("removed %s rows", 3)))

    assert payload["level"] == "WARNING"
    assert payload["name"] == "tokenstore.worker"
    assert payload["message"] == "removed 3 rows"
    assert payload["timestamp"].endswith("+00:00")


def test_json_formatter_merges_props_and_exceptions():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        import sys

        record = _record("failed", exc_info=sys.exc_info(), props={"user_id": "u-1"})

    payload = json.loads(JSONFormatter().format(record))

    assert payload["user_id"] == "u-1"
    assert "RuntimeError: boom" in payload["exception"]


def test_setup_logging_installs_single_handler(restore_tokenstore_logger):
    logger = setup_logging("debug")
    setup_logging("debug")

    assert logger is restore_tokenstore_logger
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, JSONFormatter)
    assert logger.propagate is False


def test_setup_logging_plain_text(restore_tokenstore_logger):
    logger = setup_logging("warning", json_output=False)

    assert logger.level == logging.WARNING
    assert not isinstance(logger.handlers[0].formatter, JSONFormatter)

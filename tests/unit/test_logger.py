"""Test structured logging setup and batch correlation."""

import json
import logging

import pytest

from facilitator.observability.logger import (
    get_batch_id,
    get_logger,
    new_batch_id,
    set_batch_id,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    token_batch = get_batch_id()
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    set_batch_id(token_batch)


class TestBatchId:
    def test_new_batch_id_is_set(self):
        bid = new_batch_id()
        assert len(bid) == 32
        assert get_batch_id() == bid

    def test_set_batch_id(self):
        set_batch_id("batch-1")
        assert get_batch_id() == "batch-1"


class TestSetupLogging:
    def test_stdlib_records_rendered_as_json(self, capsys):
        setup_logging(level="INFO", format="json")
        set_batch_id("batch-42")

        logging.getLogger("facilitator.test").info("Anchor %s advanced", "0xA")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        entry = json.loads(line)
        assert entry["event"] == "Anchor 0xA advanced"
        assert entry["batch_id"] == "batch-42"
        assert entry["level"] == "info"
        assert entry["logger"] == "facilitator.test"

    def test_level_filters(self, capsys):
        setup_logging(level="WARNING", format="json")
        logging.getLogger("facilitator.test").info("hidden")
        assert capsys.readouterr().err == ""

    def test_console_format(self, capsys):
        setup_logging(level="DEBUG", format="console")
        logging.getLogger("facilitator.test").debug("visible")
        assert "visible" in capsys.readouterr().err

    def test_get_logger_returns_bound_logger(self):
        logger = get_logger("facilitator.test")
        assert hasattr(logger, "info")

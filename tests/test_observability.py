"""
Tests for logging setup and installation-key masking.
"""

import logging

import pytest

from pkgsync.core.observability import logging_config
from pkgsync.core.observability.logging_config import (
    SecretMaskFilter,
    _parse_level,
    register_secret,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _clear_secrets():
    saved = set(logging_config._secrets)
    logging_config._secrets.clear()
    yield
    logging_config._secrets.clear()
    logging_config._secrets.update(saved)


def _record(msg, *args):
    return logging.LogRecord("pkgsync.test", logging.INFO, __file__, 1, msg, args, None)


class TestSecretMaskFilter:
    def test_masks_registered_secret(self):
        register_secret("hunter2")
        record = _record("installing with key %s", "hunter2")
        assert SecretMaskFilter().filter(record)
        assert record.getMessage() == "installing with key ****"

    def test_untouched_without_secrets(self):
        record = _record("plain %s", "text")
        SecretMaskFilter().filter(record)
        assert record.args == ("text",)
        assert record.getMessage() == "plain text"

    def test_bad_format_args_do_not_raise(self):
        register_secret("hunter2")
        record = _record("value %s %s", "only-one")
        assert SecretMaskFilter().filter(record)
        assert record.args == ("only-one",)

    def test_bad_format_args_reach_handle_error(self, monkeypatch):
        register_secret("hunter2")
        errors = []
        handler = logging.StreamHandler()
        handler.addFilter(SecretMaskFilter())
        monkeypatch.setattr(handler, "handleError", errors.append)
        logger = logging.getLogger("pkgsync.test.badformat")
        logger.addHandler(handler)
        logger.propagate = False
        try:
            logger.warning("value %s %s", "only-one")
        finally:
            logger.removeHandler(handler)
            logger.propagate = True
        assert len(errors) == 1

    def test_empty_secret_ignored(self):
        register_secret("")
        assert logging_config._secrets == set()


class TestSetupLogging:
    def test_console_level(self):
        setup_logging("INFO")
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1

    def test_file_output_masked(self, tmp_path):
        log_file = tmp_path / "pkgsync.log"
        setup_logging("ERROR", log_file=str(log_file), log_file_level="DEBUG")
        register_secret("s3cret")

        logging.getLogger("pkgsync.test").info("key=%s", "s3cret")
        for handler in logging.getLogger().handlers:
            handler.flush()

        text = log_file.read_text()
        assert "key=****" in text
        assert "s3cret" not in text
        assert logging.getLogger().level == logging.DEBUG

    @pytest.mark.parametrize(
        "name, expected",
        [("debug", logging.DEBUG), ("WARNING", logging.WARNING), ("bogus", logging.WARNING), (None, logging.WARNING)],
    )
    def test_parse_level(self, name, expected):
        assert _parse_level(name) == expected

"""Tests for logging setup."""

import io
import logging

from rich.console import Console

from tax_gpt.utils import get_logger, safe_filename, setup_logger, text_stats
from tax_gpt.utils.logger import SensitiveDataFilter


def test_get_logger_is_namespaced():
    assert get_logger("tax_gpt.storage").name == "tax_gpt.storage"
    assert get_logger("tests").name == "tax_gpt.tests"


def test_sensitive_data_is_masked():
    record = logging.LogRecord("tax_gpt", logging.INFO, __file__, 1, "SSN %s on file", ("123-45-6789",), None)

    SensitiveDataFilter().filter(record)

    assert record.getMessage() == "SSN ***-**-**** on file"


def test_setup_logger_writes_file(tmp_path):
    log_file = tmp_path / "logs" / "tax_gpt.log"
    stream = io.StringIO()

    setup_logger(level="WARNING", log_file=log_file, console=Console(file=stream, width=120))
    logger = get_logger("tests")
    logger.debug("quiet detail")
    logger.warning("loud warning")
    for handler in logging.getLogger("tax_gpt").handlers:
        handler.flush()

    content = log_file.read_text()
    assert "quiet detail" in content
    assert "loud warning" in content
    assert "loud warning" in stream.getvalue()
    assert "quiet detail" not in stream.getvalue()


def test_safe_filename():
    assert safe_filename("2025 return") == "2025 return"
    assert safe_filename("a/b:c") == "a-b-c"
    assert safe_filename("...") == "session"


def test_text_stats():
    assert text_stats("a b\nc") == {"characters": 5, "lines": 2, "words": 3}

"""Tests for verbose logging."""

import logging
from pathlib import Path

from vouch.verbose import setup_logger


def test_logger_writes_to_debug_file(tmp_path: Path):
    """Logger should write timestamped messages to the debug file."""
    debug_file = tmp_path / "debug.log"
    logger = setup_logger(debug_file=debug_file, verbose=False)

    logger.debug("test message")

    assert logger.level == logging.DEBUG
    content = debug_file.read_text()
    assert "test message" in content
    assert "[" in content  # timestamp


def test_verbose_mode_adds_stderr_handler(tmp_path: Path):
    """Logger should have stderr handler when verbose=True."""
    logger = setup_logger(debug_file=tmp_path / "debug.log", verbose=True)

    handler_types = [type(h).__name__ for h in logger.handlers]
    assert sorted(handler_types) == ["FileHandler", "StreamHandler"]


def test_verbose_without_file_logs_to_stderr(capsys):
    logger = setup_logger(verbose=True)
    logger.debug("to stderr")
    assert "to stderr" in capsys.readouterr().err


def test_silent_logger_has_null_handler():
    logger = setup_logger()
    assert [type(h).__name__ for h in logger.handlers] == ["NullHandler"]
    assert logger.propagate is False


def test_logger_creates_parent_directories(tmp_path: Path):
    """Logger should create parent directories for debug file."""
    debug_file = tmp_path / "nested" / "dir" / "debug.log"
    setup_logger(debug_file=debug_file, verbose=False)

    assert debug_file.exists()


def test_reconfiguring_replaces_handlers(tmp_path: Path):
    first, second = tmp_path / "first.log", tmp_path / "second.log"
    setup_logger(first, verbose=False)
    logger = setup_logger(second, verbose=False)

    logger.debug("only in second")

    assert len(logger.handlers) == 1
    assert "only in second" not in first.read_text()
    assert "only in second" in second.read_text()


def test_unique_logger_names_are_isolated(tmp_path: Path):
    """Different logger names write to separate files."""
    log1, log2 = tmp_path / "one.log", tmp_path / "two.log"
    logger1 = setup_logger(log1, logger_name="vouch_one")
    logger2 = setup_logger(log2, logger_name="vouch_two")

    logger1.debug("Message from one")
    logger2.debug("Message from two")

    assert "Message from two" not in log1.read_text()
    assert "Message from one" not in log2.read_text()

"""Pytest configuration and fixtures."""

import logging
import textwrap

import pytest

from vouch.registry import Registry


@pytest.fixture(autouse=True)
def cleanup_loggers():
    """Clean up vouch loggers after each test to prevent handler leaks."""
    yield

    loggers_to_remove = [
        name
        for name in logging.Logger.manager.loggerDict.keys()
        if name.startswith("vouch")
    ]

    for name in loggers_to_remove:
        logger = logging.getLogger(name)
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()
        del logging.Logger.manager.loggerDict[name]


@pytest.fixture
def registry():
    return Registry()


@pytest.fixture
def write_file(tmp_path):
    """Write a dedented file under tmp_path and return its path."""

    def _write(relpath: str, content: str):
        path = tmp_path / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content))
        return path

    return _write

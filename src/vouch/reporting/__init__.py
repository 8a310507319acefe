"""Reporters consuming the executor's event stream."""

from vouch.reporting.console import (
    BaseReporter,
    EventLog,
    MinimalReporter,
    VerboseReporter,
    get_reporter,
)
from vouch.reporting.junit import JUnitReporter, write_junit

__all__ = [
    "BaseReporter",
    "EventLog",
    "JUnitReporter",
    "MinimalReporter",
    "VerboseReporter",
    "get_reporter",
    "write_junit",
]

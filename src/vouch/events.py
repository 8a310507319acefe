"""Events emitted by the executor and consumed by reporters.

A listener is any callable taking one event. Events for a single case are
always delivered together, and cases are delivered in declaration order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, ClassVar, Union

from vouch.expectations import ExpectationOutcome
from vouch.registry import TestCase
from vouch.results import LoadFailure, RunReport, TestResult


@dataclass(frozen=True)
class CaseStarted:
    kind: ClassVar[str] = "case_started"
    index: int
    case: TestCase


@dataclass(frozen=True)
class ExpectationRecorded:
    kind: ClassVar[str] = "expectation_recorded"
    index: int
    case: TestCase
    outcome: ExpectationOutcome


@dataclass(frozen=True)
class CaseFinished:
    kind: ClassVar[str] = "case_finished"
    index: int
    result: TestResult


@dataclass(frozen=True)
class FileErrored:
    kind: ClassVar[str] = "file_errored"
    failure: LoadFailure


@dataclass(frozen=True)
class RunFinished:
    kind: ClassVar[str] = "run_finished"
    report: RunReport


Event = Union[CaseStarted, ExpectationRecorded, CaseFinished, FileErrored, RunFinished]
Listener = Callable[[Event], None]

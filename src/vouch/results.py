from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import numpy as np

from vouch.expectations import ExpectationOutcome
from vouch.registry import TestCase


class Status(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    ERRORED = "errored"

    @property
    def symbol(self) -> str:
        return {"passed": ".", "failed": "F", "errored": "E"}[self.value]


@dataclass(frozen=True)
class TestResult:
    """Outcome of running one case once."""

    __test__ = False

    case: TestCase
    index: int
    outcomes: tuple[ExpectationOutcome, ...]
    status: Status
    duration: float
    error_detail: str | None = None

    @property
    def failures(self) -> list[ExpectationOutcome]:
        return [o for o in self.outcomes if not o.passed]

    def to_dict(self) -> dict[str, Any]:
        return {
            "context": self.case.context,
            "description": self.case.description,
            "status": self.status.value,
            "duration": self.duration,
            "outcomes": [o.to_dict() for o in self.outcomes],
            "error_detail": self.error_detail,
        }


@dataclass(frozen=True)
class LoadFailure:
    """A test file that could not be loaded."""

    path: Path
    error_detail: str


@dataclass(frozen=True)
class Totals:
    passed: int = 0
    failed: int = 0
    errored: int = 0

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.errored

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class DurationStatistics:
    """Statistics over per-case durations, in seconds."""

    avg: float | None
    min: float | None
    max: float | None
    stddev: float | None

    def to_dict(self) -> dict[str, float | None]:
        return asdict(self)


def compute_stats(values: list[float]) -> DurationStatistics:
    if not values:
        return DurationStatistics(avg=None, min=None, max=None, stddev=None)
    arr = np.array(values, dtype=float)
    return DurationStatistics(
        avg=float(np.mean(arr)),
        min=float(np.min(arr)),
        max=float(np.max(arr)),
        stddev=float(np.std(arr)),
    )


@dataclass
class RunReport:
    """Aggregate outcome of executing a set of cases once."""

    results: list[TestResult]
    wall_time: float
    load_failures: list[LoadFailure] = field(default_factory=list)
    interrupted: bool = False

    @property
    def totals(self) -> Totals:
        counts = {status: 0 for status in Status}
        for result in self.results:
            counts[result.status] += 1
        return Totals(
            passed=counts[Status.PASSED],
            failed=counts[Status.FAILED],
            errored=counts[Status.ERRORED],
        )

    @property
    def ok(self) -> bool:
        totals = self.totals
        return (
            totals.failed == 0
            and totals.errored == 0
            and not self.load_failures
            and not self.interrupted
        )

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

    def duration_stats(self) -> DurationStatistics:
        return compute_stats([r.duration for r in self.results])

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "totals": self.totals.to_dict(),
            "wall_time": self.wall_time,
            "duration_stats": self.duration_stats().to_dict(),
            "load_failures": [
                {"path": str(f.path), "error_detail": f.error_detail}
                for f in self.load_failures
            ],
            "interrupted": self.interrupted,
        }

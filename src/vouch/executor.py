from __future__ import annotations

import contextvars
import logging
import re
import threading
import time
import traceback
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Iterable, Sequence

from vouch.errors import ExpectationFailure
from vouch.events import (
    CaseFinished,
    CaseStarted,
    Event,
    ExpectationRecorded,
    FileErrored,
    Listener,
    RunFinished,
)
from vouch.expectations import CaseRecording, ExpectationOutcome, recording
from vouch.registry import Registry, TestCase
from vouch.results import LoadFailure, RunReport, Status, TestResult


@dataclass(frozen=True)
class CaseFilter:
    """Restricts a run to cases whose context, description or full name matches."""

    pattern: str
    regex: bool = False

    def __post_init__(self) -> None:
        if self.regex:
            re.compile(self.pattern)

    def matches(self, case: TestCase) -> bool:
        texts = (case.context, case.description, case.name)
        if self.regex:
            return any(re.search(self.pattern, text) for text in texts)
        return any(self.pattern in text for text in texts)


class _OrderedDispatch:
    """Delivers per-case event bundles to listeners in declaration order."""

    def __init__(self, listeners: Sequence[Listener]) -> None:
        self._listeners = list(listeners)
        self._lock = threading.Lock()
        self._pending: dict[int, list[Event]] = {}
        self._next = 0

    def emit(self, event: Event) -> None:
        for listener in self._listeners:
            listener(event)

    def case_done(self, index: int, events: list[Event]) -> None:
        with self._lock:
            self._pending[index] = events
            while self._next in self._pending:
                for event in self._pending.pop(self._next):
                    self.emit(event)
                self._next += 1

    def flush(self) -> None:
        """Deliver whatever is left, e.g. after an interrupted run."""
        with self._lock:
            for index in sorted(self._pending):
                for event in self._pending.pop(index):
                    self.emit(event)


class Executor:
    """Runs registered cases, isolating failures per case."""

    def __init__(
        self,
        listeners: Sequence[Listener] = (),
        parallel: int = 1,
        continue_on_failure: bool = False,
        tolerance: float | None = None,
        logger: logging.Logger | None = None,
    ):
        if parallel < 1:
            raise ValueError(f"parallel must be at least 1, got {parallel}")
        self.listeners = list(listeners)
        self.parallel = parallel
        self.continue_on_failure = continue_on_failure
        self.tolerance = tolerance
        self.logger = logger or logging.getLogger("vouch")
        self.interrupted = False

    def run(
        self,
        registry: Registry,
        case_filter: CaseFilter | None = None,
        load_failures: Iterable[LoadFailure] = (),
    ) -> RunReport:
        """Execute every selected case once and return the run report."""
        started = time.perf_counter()
        self.interrupted = False
        dispatch = _OrderedDispatch(self.listeners)
        failures = list(load_failures)
        for failure in failures:
            dispatch.emit(FileErrored(failure))

        cases = [case for _, case in registry.enumerate()]
        if case_filter is not None:
            cases = [case for case in cases if case_filter.matches(case)]
        self.logger.debug(f"Running {len(cases)} case(s) with parallelism {self.parallel}")

        if self.parallel == 1:
            results = self._run_sequential(cases, dispatch)
        else:
            results = self._run_parallel(cases, dispatch)

        report = RunReport(
            results=sorted(results, key=lambda r: r.index),
            wall_time=time.perf_counter() - started,
            load_failures=failures,
            interrupted=self.interrupted,
        )
        totals = report.totals
        self.logger.debug(
            f"Run finished: {totals.passed} passed, {totals.failed} failed, "
            f"{totals.errored} errored in {report.wall_time:.3f}s"
        )
        dispatch.emit(RunFinished(report))
        return report

    def _run_sequential(self, cases: list[TestCase], dispatch: _OrderedDispatch) -> list[TestResult]:
        results = []
        try:
            for index, case in enumerate(cases):
                result, events = self._run_isolated(index, case)
                results.append(result)
                dispatch.case_done(index, events)
        except KeyboardInterrupt:
            self.interrupted = True
            self.logger.warning(
                f"Run interrupted by user (Ctrl+C) after {len(results)} of {len(cases)} case(s)"
            )
        return results

    def _run_parallel(self, cases: list[TestCase], dispatch: _OrderedDispatch) -> list[TestResult]:
        results: list[TestResult] = []
        with ThreadPoolExecutor(max_workers=self.parallel) as pool:
            future_to_index: dict[Future, int] = {
                pool.submit(self._run_isolated, index, case): index
                for index, case in enumerate(cases)
            }
            try:
                for future in as_completed(future_to_index):
                    result, events = future.result()
                    results.append(result)
                    dispatch.case_done(future_to_index[future], events)
            except KeyboardInterrupt:
                self.interrupted = True
                self.logger.warning(
                    "Run interrupted by user (Ctrl+C). Cancelling pending cases..."
                )
                cancelled_count = sum(1 for future in future_to_index if future.cancel())
                self.logger.info(
                    f"Cancelled {cancelled_count} pending case(s). Running cases will complete naturally."
                )
                collected = {r.index for r in results}
                for future, index in future_to_index.items():
                    if index in collected or not future.done() or future.cancelled():
                        continue
                    result, events = future.result(timeout=0)
                    results.append(result)
                    dispatch.case_done(index, events)
                dispatch.flush()
        return results

    def _run_isolated(self, index: int, case: TestCase) -> tuple[TestResult, list[Event]]:
        # each case gets its own copy of the context so recordings and
        # output captures never leak between cases
        return contextvars.copy_context().run(self._run_case, index, case)

    def _run_case(self, index: int, case: TestCase) -> tuple[TestResult, list[Event]]:
        events: list[Event] = [CaseStarted(index, case)]

        def _on_outcome(outcome: ExpectationOutcome) -> None:
            events.append(ExpectationRecorded(index, case, outcome))

        rec = CaseRecording(
            on_outcome=_on_outcome,
            continue_on_failure=self.continue_on_failure,
            tolerance=self.tolerance,
        )
        status = Status.PASSED
        error_detail = None
        self.logger.debug(f"Running case '{case.name}'")
        started = time.perf_counter()
        with recording(rec):
            try:
                case.body()
            except ExpectationFailure as failure:
                status = Status.FAILED
                self.logger.debug(f"Case '{case.name}' failed: {failure}")
            except (Exception, SystemExit) as exc:
                status = Status.ERRORED
                error_detail = "".join(
                    traceback.format_exception(type(exc), exc, exc.__traceback__)
                )
                self.logger.debug(f"Case '{case.name}' errored: {exc!r}")
        duration = time.perf_counter() - started
        if status is Status.PASSED and rec.failed:
            status = Status.FAILED

        result = TestResult(
            case=case,
            index=index,
            outcomes=tuple(rec.outcomes),
            status=status,
            duration=duration,
            error_detail=error_detail,
        )
        events.append(CaseFinished(index, result))
        return result, events

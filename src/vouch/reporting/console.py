"""Textual reporters: a one-character-per-case stream and a full transcript."""

from __future__ import annotations

from typing import IO, Any

import typer

from vouch.events import CaseFinished, CaseStarted, Event, ExpectationRecorded, FileErrored, RunFinished
from vouch.results import RunReport, Status


class BaseReporter:
    """Dispatches each event to an ``on_<kind>`` method.

    Subclasses override only the hooks they care about.
    """

    def __init__(self, stream: IO[str] | None = None) -> None:
        self.stream = stream

    def __call__(self, event: Event) -> None:
        handler = getattr(self, f"on_{event.kind}", None)
        if handler is not None:
            handler(event)

    def write(self, text: str = "", nl: bool = True) -> None:
        typer.echo(text, file=self.stream, nl=nl)

    def on_case_started(self, event: CaseStarted) -> None:
        pass

    def on_expectation_recorded(self, event: ExpectationRecorded) -> None:
        pass

    def on_case_finished(self, event: CaseFinished) -> None:
        pass

    def on_file_errored(self, event: FileErrored) -> None:
        pass

    def on_run_finished(self, event: RunFinished) -> None:
        pass

    def write_problems(self, report: RunReport) -> None:
        for failure in report.load_failures:
            self.write(f"ERROR  could not load {failure.path}")
            self.write(_indent(failure.error_detail.rstrip()))
        for result in report.results:
            if result.status is Status.FAILED:
                self.write(f"FAIL   {result.case.name}")
                for outcome in result.failures:
                    self.write(f"    [{outcome.matcher_name}] {outcome.message}")
            elif result.status is Status.ERRORED:
                self.write(f"ERROR  {result.case.name}")
                self.write(_indent(result.error_detail.rstrip() if result.error_detail else ""))

    def write_summary(self, report: RunReport) -> None:
        totals = report.totals
        line = (
            f"{totals.passed} passed, {totals.failed} failed, {totals.errored} errored "
            f"in {report.wall_time:.2f}s"
        )
        if report.load_failures:
            line += f" ({len(report.load_failures)} file(s) failed to load)"
        if report.interrupted:
            line += " (interrupted)"
        self.write(line)


def _indent(text: str, prefix: str = "    ") -> str:
    return "\n".join(prefix + line for line in text.splitlines())


class MinimalReporter(BaseReporter):
    """``.`` per passed case, ``F`` per failure, ``E`` per error, then a summary."""

    def on_case_finished(self, event: CaseFinished) -> None:
        self.write(event.result.status.symbol, nl=False)

    def on_run_finished(self, event: RunFinished) -> None:
        report = event.report
        self.write()
        if not report.ok:
            self.write()
            self.write_problems(report)
        self.write_summary(report)


class VerboseReporter(BaseReporter):
    """Transcript of every case and expectation as it completes."""

    def __init__(self, stream: IO[str] | None = None) -> None:
        super().__init__(stream)
        self._context: str | None = None

    def on_file_errored(self, event: FileErrored) -> None:
        self.write(f"ERROR  could not load {event.failure.path}")

    def on_case_started(self, event: CaseStarted) -> None:
        if event.case.context != self._context:
            self._context = event.case.context
            self.write(f"{self._context}:")
        self.write(f"  {event.case.description}")

    def on_expectation_recorded(self, event: ExpectationRecorded) -> None:
        outcome = event.outcome
        mark = "ok  " if outcome.passed else "FAIL"
        self.write(f"      {mark} [{outcome.matcher_name}] {outcome.message}")

    def on_case_finished(self, event: CaseFinished) -> None:
        result = event.result
        label = {Status.PASSED: "PASS", Status.FAILED: "FAIL", Status.ERRORED: "ERROR"}[result.status]
        self.write(f"    {label} ({result.duration:.3f}s)")
        if result.status is Status.ERRORED and result.error_detail:
            self.write(_indent(result.error_detail.rstrip(), "      "))

    def on_run_finished(self, event: RunFinished) -> None:
        report = event.report
        self._context = None
        self.write()
        self.write_summary(report)
        stats = report.duration_stats()
        if stats.avg is not None:
            self.write(
                f"case duration: avg {stats.avg:.3f}s, min {stats.min:.3f}s, max {stats.max:.3f}s"
            )


class EventLog(BaseReporter):
    """Keeps every event, for custom consumers and tests."""

    def __init__(self) -> None:
        super().__init__(None)
        self.events: list[Event] = []

    def __call__(self, event: Event) -> None:
        self.events.append(event)

    @property
    def kinds(self) -> list[str]:
        return [e.kind for e in self.events]


_REPORTERS: dict[str, type[BaseReporter]] = {
    "minimal": MinimalReporter,
    "verbose": VerboseReporter,
}


def get_reporter(name: Any, stream: IO[str] | None = None) -> BaseReporter:
    key = getattr(name, "value", name)
    cls = _REPORTERS.get(key)
    if cls is None:
        raise ValueError(
            f"Unknown reporter: {key!r}. Available: {', '.join(sorted(_REPORTERS))}"
        )
    return cls(stream)

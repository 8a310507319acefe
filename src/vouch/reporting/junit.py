from __future__ import annotations

from pathlib import Path

from junitparser import Error, Failure, JUnitXml, TestSuite
from junitparser import TestCase as JUnitCase

from vouch.events import RunFinished
from vouch.reporting.console import BaseReporter
from vouch.results import RunReport, Status


def build_junit(report: RunReport) -> JUnitXml:
    """One test suite per context, one test case per declared case."""
    xml = JUnitXml()
    suites: dict[str, TestSuite] = {}

    for result in report.results:
        context = result.case.context
        suite = suites.get(context)
        if suite is None:
            suite = suites[context] = TestSuite(context)
        case = JUnitCase(result.case.description, classname=context, time=result.duration)
        if result.status is Status.FAILED:
            messages = [o.message for o in result.failures]
            failure = Failure(messages[0] if messages else "failed")
            failure.text = "\n".join(
                f"[{o.matcher_name}] {o.message}\n  actual: {o.actual_repr}\n  expected: {o.expected_repr}"
                for o in result.failures
            )
            case.result = [failure]
        elif result.status is Status.ERRORED:
            detail = result.error_detail or ""
            lines = detail.strip().splitlines()
            error = Error(lines[-1] if lines else "errored")
            error.text = detail
            case.result = [error]
        suite.add_testcase(case)

    if report.load_failures:
        suite = suites["load errors"] = TestSuite("load errors")
        for load_failure in report.load_failures:
            case = JUnitCase(str(load_failure.path), classname="load errors")
            lines = load_failure.error_detail.strip().splitlines()
            error = Error(lines[-1] if lines else "could not load")
            error.text = load_failure.error_detail
            case.result = [error]
            suite.add_testcase(case)

    for suite in suites.values():
        # add_testcase recomputes statistics, so set time afterwards
        suite.time = sum(float(c.time or 0.0) for c in suite)
        # append keeps the suite time, += would recompute it
        xml.append(suite)
    return xml


def write_junit(report: RunReport, path: Path) -> Path:
    """Write the report as JUnit XML, return path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    build_junit(report).write(str(path), pretty=True)
    return path


class JUnitReporter(BaseReporter):
    """Writes a JUnit XML file when the run finishes."""

    def __init__(self, path: Path) -> None:
        super().__init__(None)
        self.path = path

    def on_run_finished(self, event: RunFinished) -> None:
        write_junit(event.report, self.path)

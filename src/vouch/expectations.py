"""Expectation recorder and the ``expect_*`` helpers used in test bodies."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Iterator

from vouch.errors import ExpectationFailure
from vouch.matchers import Matcher, get_matcher, short_repr


@dataclass(frozen=True)
class ExpectationOutcome:
    """Structured result of evaluating one expectation."""

    matcher_name: str
    passed: bool
    message: str
    actual_repr: str
    expected_repr: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CaseRecording:
    """Bookkeeping for the case currently executing in this context.

    Attributes:
        outcomes: Outcomes in evaluation order.
        on_outcome: Called with every outcome as it is recorded.
        continue_on_failure: Keep running the body after a failed
            expectation instead of aborting it.
        tolerance: Default tolerance for tolerant matchers.
    """

    outcomes: list[ExpectationOutcome] = field(default_factory=list)
    on_outcome: Callable[[ExpectationOutcome], None] | None = None
    continue_on_failure: bool = False
    tolerance: float | None = None

    def append(self, outcome: ExpectationOutcome) -> None:
        self.outcomes.append(outcome)
        if self.on_outcome is not None:
            self.on_outcome(outcome)

    @property
    def failed(self) -> bool:
        return any(not o.passed for o in self.outcomes)


_active_recording: ContextVar[CaseRecording | None] = ContextVar(
    "vouch_active_recording", default=None
)


@contextmanager
def recording(rec: CaseRecording) -> Iterator[CaseRecording]:
    """Bind ``rec`` as the target of expectations made in this context."""
    token = _active_recording.set(rec)
    try:
        yield rec
    finally:
        _active_recording.reset(token)


def current_recording() -> CaseRecording | None:
    return _active_recording.get()


def record(
    actual_probe: Callable[[], Any],
    matcher: Matcher | str,
    expected: Any = None,
    **options: Any,
) -> ExpectationOutcome:
    """Evaluate an expectation and record its outcome.

    The outcome is appended to the active recording before anything else
    happens. A failed outcome raises ``ExpectationFailure`` unless the
    recording continues on failure.
    """
    if isinstance(matcher, str):
        matcher = get_matcher(matcher)
    rec = _active_recording.get()
    if matcher.tolerant and options.get("tolerance") is None:
        options.pop("tolerance", None)
        if rec is not None and rec.tolerance is not None:
            options["tolerance"] = rec.tolerance

    actual = actual_probe if matcher.takes_probe else actual_probe()
    verdict = matcher.evaluate(actual, expected, options)
    outcome = ExpectationOutcome(
        matcher_name=matcher.name,
        passed=verdict.passed,
        message=verdict.message,
        actual_repr=verdict.actual_repr if verdict.actual_repr is not None else short_repr(actual),
        expected_repr=short_repr(expected),
    )

    if rec is not None:
        rec.append(outcome)
    if not outcome.passed and (rec is None or not rec.continue_on_failure):
        raise ExpectationFailure(outcome)
    return outcome


def _value(actual: Any) -> Callable[[], Any]:
    return lambda: actual


def expect_that(actual: Any, matcher: Matcher | str, expected: Any = None, **options: Any) -> ExpectationOutcome:
    """Generic form: apply ``matcher`` (object or registered name) to ``actual``."""
    if isinstance(matcher, str):
        matcher = get_matcher(matcher)
    probe = actual if matcher.takes_probe else _value(actual)
    return record(probe, matcher, expected, **options)


def expect_equal(actual: Any, expected: Any, tolerance: float | None = None) -> ExpectationOutcome:
    return record(_value(actual), "tolerant-equals", expected, tolerance=tolerance)


def expect_identical(actual: Any, expected: Any) -> ExpectationOutcome:
    return record(_value(actual), "identical", expected)


def expect_equivalent(actual: Any, expected: Any, tolerance: float | None = None) -> ExpectationOutcome:
    return record(_value(actual), "equivalent", expected, tolerance=tolerance)


def expect_is(actual: Any, expected_type: Any) -> ExpectationOutcome:
    return record(_value(actual), "type-of", expected_type)


def expect_match(
    actual: Any, pattern: str, fixed: bool = False, ignore_case: bool = False, all: bool = True
) -> ExpectationOutcome:
    return record(
        _value(actual), "pattern-match", pattern, fixed=fixed, ignore_case=ignore_case, all=all
    )


def expect_output(
    probe: Callable[[], Any], pattern: str | None = None, fixed: bool = False, ignore_case: bool = False
) -> ExpectationOutcome:
    return record(probe, "prints", pattern, fixed=fixed, ignore_case=ignore_case)


def expect_warning(
    probe: Callable[[], Any],
    pattern: str | None = None,
    category: type[Warning] = Warning,
    fixed: bool = False,
) -> ExpectationOutcome:
    return record(probe, "emits-warning", pattern, category=category, fixed=fixed)


def expect_error(
    probe: Callable[[], Any],
    pattern: str | None = None,
    error_type: type[BaseException] = Exception,
    fixed: bool = False,
) -> ExpectationOutcome:
    return record(probe, "emits-error", pattern, error_type=error_type, fixed=fixed)


def expect_true(actual: Any) -> ExpectationOutcome:
    return record(_value(actual), "is-true", True)


def expect_false(actual: Any) -> ExpectationOutcome:
    return record(_value(actual), "is-false", False)

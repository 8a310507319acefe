"""Base data structures for the matcher library."""

from __future__ import annotations

import reprlib
from dataclasses import dataclass
from typing import Any, Callable

_repr = reprlib.Repr()
_repr.maxstring = 80
_repr.maxother = 80
_repr.maxlist = 10
_repr.maxdict = 10


def short_repr(value: Any) -> str:
    """Return a bounded ``repr`` suitable for failure messages."""
    return _repr.repr(value)


@dataclass(frozen=True)
class Verdict:
    """Result of applying a matcher to an actual value.

    Attributes:
        passed: Whether the actual value satisfied the expectation.
        message: Human-readable explanation. On failure it shows both the
            actual and expected representations.
        actual_repr: Overrides the representation of the actual value, used
            by matchers whose actual is a probe (captured output, warnings).
    """

    passed: bool
    message: str
    actual_repr: str | None = None


VerdictFn = Callable[[Any, Any, dict[str, Any]], Verdict]


@dataclass(frozen=True)
class Matcher:
    """A named comparison strategy.

    Attributes:
        name: Registry key, e.g. "tolerant-equals".
        verdict: ``(actual, expected, options) -> Verdict``.
        takes_probe: The matcher receives the zero-argument probe itself
            rather than the value it produces.
        tolerant: The matcher accepts a numeric ``tolerance`` option and
            picks up the run-wide default when none is given.
    """

    name: str
    verdict: VerdictFn
    takes_probe: bool = False
    tolerant: bool = False

    def evaluate(
        self, actual: Any, expected: Any = None, options: dict[str, Any] | None = None
    ) -> Verdict:
        return self.verdict(actual, expected, dict(options or {}))

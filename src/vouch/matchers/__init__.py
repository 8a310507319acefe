"""Matcher library: named verdict functions for expectations."""

from vouch.matchers.base import Matcher, Verdict, short_repr
from vouch.matchers.capture import (
    EMITS_ERROR,
    EMITS_WARNING,
    PRINTS,
    captured_stdout,
    intercepted_warnings,
)
from vouch.matchers.comparison import (
    DEFAULT_TOLERANCE,
    EQUIVALENT,
    IDENTICAL,
    IS_FALSE,
    IS_TRUE,
    PATTERN_MATCH,
    TOLERANT_EQUALS,
    TYPE_OF,
)

_MATCHERS: dict[str, Matcher] = {
    m.name: m
    for m in (
        TOLERANT_EQUALS,
        IDENTICAL,
        EQUIVALENT,
        TYPE_OF,
        PATTERN_MATCH,
        PRINTS,
        EMITS_WARNING,
        EMITS_ERROR,
        IS_TRUE,
        IS_FALSE,
    )
}


def get_matcher(name: str) -> Matcher:
    matcher = _MATCHERS.get(name)
    if matcher is None:
        raise ValueError(
            f"Unknown matcher: {name!r}. Available: {', '.join(sorted(_MATCHERS))}"
        )
    return matcher


def register_matcher(matcher: Matcher) -> Matcher:
    """Make a custom matcher available by name."""
    if matcher.name in _MATCHERS and _MATCHERS[matcher.name] is not matcher:
        raise ValueError(f"Matcher {matcher.name!r} is already registered")
    _MATCHERS[matcher.name] = matcher
    return matcher


def matcher_names() -> list[str]:
    return sorted(_MATCHERS)


__all__ = [
    "DEFAULT_TOLERANCE",
    "Matcher",
    "Verdict",
    "captured_stdout",
    "get_matcher",
    "intercepted_warnings",
    "matcher_names",
    "register_matcher",
    "short_repr",
]

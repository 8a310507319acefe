"""Test case registry and the declaration API used inside test files."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterator

DEFAULT_CONTEXT = "default"


@dataclass(frozen=True)
class TestCase:
    """A named, isolated unit of behaviour verification."""

    __test__ = False

    context: str
    description: str
    body: Callable[[], Any] = field(repr=False)
    source: Path | None = field(default=None, compare=False)

    @property
    def name(self) -> str:
        return f"{self.context} / {self.description}"


class Registry:
    """Contexts mapped to their cases, in declaration order."""

    def __init__(self) -> None:
        self._contexts: dict[str, list[TestCase]] = {}
        self._lock = threading.Lock()
        self.current_context = DEFAULT_CONTEXT
        self.current_source: Path | None = None

    def declare_context(self, name: str) -> str:
        """Make ``name`` the context for subsequent cases.

        Re-declaring an existing context is allowed; new cases are appended.
        """
        if not name:
            raise ValueError("context name must not be empty")
        with self._lock:
            self._contexts.setdefault(name, [])
        self.current_context = name
        return name

    def declare_case(
        self,
        context: str,
        description: str,
        body: Callable[[], Any],
        source: Path | None = None,
    ) -> TestCase:
        if not callable(body):
            raise TypeError(f"test body for {description!r} must be callable")
        case = TestCase(context=context, description=description, body=body, source=source)
        with self._lock:
            self._contexts.setdefault(context, []).append(case)
        return case

    def enumerate(self) -> list[tuple[str, TestCase]]:
        """All cases as ``(context, case)`` pairs in execution order."""
        with self._lock:
            return [(name, case) for name, cases in self._contexts.items() for case in cases]

    @property
    def contexts(self) -> list[str]:
        with self._lock:
            return list(self._contexts)

    def discard_source(self, source: Path) -> int:
        """Drop every case declared by ``source``; return how many were dropped."""
        dropped = 0
        with self._lock:
            for name in list(self._contexts):
                kept = [c for c in self._contexts[name] if c.source != source]
                dropped += len(self._contexts[name]) - len(kept)
                if kept:
                    self._contexts[name] = kept
                else:
                    del self._contexts[name]
        return dropped

    def clear(self) -> None:
        with self._lock:
            self._contexts.clear()
        self.current_context = DEFAULT_CONTEXT
        self.current_source = None

    def __len__(self) -> int:
        with self._lock:
            return sum(len(cases) for cases in self._contexts.values())

    @contextmanager
    def loading(self, source: Path, default_context: str | None = None) -> Iterator[Registry]:
        """Bind this registry as the declaration target while ``source`` loads."""
        previous = (self.current_context, self.current_source)
        self.current_context = default_context or source.stem
        self.current_source = source
        token = _active_registry.set(self)
        try:
            yield self
        finally:
            _active_registry.reset(token)
            self.current_context, self.current_source = previous


default_registry = Registry()

_active_registry: ContextVar[Registry | None] = ContextVar("vouch_active_registry", default=None)


def active_registry() -> Registry:
    registry = _active_registry.get()
    return registry if registry is not None else default_registry


def context(name: str) -> str:
    """Group the following cases of this file under ``name``."""
    return active_registry().declare_context(name)


def test_that(description: str, body: Callable[[], Any] | None = None) -> Any:
    """Declare a test case, either directly or as a decorator.

        test_that("adds", lambda: expect_equal(1 + 1, 2))

        @test_that("subtracts")
        def _():
            expect_equal(2 - 1, 1)
    """
    registry = active_registry()

    def _declare(fn: Callable[[], Any]) -> Callable[[], Any]:
        registry.declare_case(
            registry.current_context, description, fn, source=registry.current_source
        )
        return fn

    if body is None:
        return _declare
    _declare(body)
    return body


test_that.__test__ = False  # type: ignore[attr-defined]

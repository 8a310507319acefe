"""Side-effect matchers: printed output, warnings and raised errors.

Standard output and the warnings machinery are process-wide. Captures are
scoped to the current ``contextvars`` context so that cases running in
parallel worker threads never see each other's output.
"""

from __future__ import annotations

import io
import sys
import threading
import warnings
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Callable, Iterator

from vouch.errors import ExpectationFailure
from vouch.matchers.base import Matcher, Verdict, short_repr
from vouch.matchers.comparison import match_texts

Probe = Callable[[], Any]

_stdout_sink: ContextVar[io.StringIO | None] = ContextVar("vouch_stdout_sink", default=None)
_warning_sink: ContextVar[list[warnings.WarningMessage] | None] = ContextVar(
    "vouch_warning_sink", default=None
)


class _RoutingStdout:
    """Stand-in for ``sys.stdout`` that writes to the active context's buffer."""

    def __init__(self, fallback: Any) -> None:
        self.fallback = fallback

    def _target(self) -> Any:
        sink = _stdout_sink.get()
        return self.fallback if sink is None else sink

    def write(self, text: str) -> int:
        return self._target().write(text)

    def writelines(self, lines: Any) -> None:
        self._target().writelines(lines)

    def flush(self) -> None:
        self._target().flush()

    def __getattr__(self, name: str) -> Any:
        return getattr(self.fallback, name)


class _StdoutRouter:
    """Installs the routing proxy while at least one capture is open."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users = 0
        self._proxy: _RoutingStdout | None = None

    def acquire(self) -> None:
        with self._lock:
            if self._users == 0:
                self._proxy = _RoutingStdout(sys.stdout)
                sys.stdout = self._proxy
            self._users += 1

    def release(self) -> None:
        with self._lock:
            self._users -= 1
            if self._users == 0 and self._proxy is not None:
                # leave a stream installed by someone else in place
                if sys.stdout is self._proxy:
                    sys.stdout = self._proxy.fallback
                self._proxy = None


_router = _StdoutRouter()
_warnings_lock = threading.RLock()


@contextmanager
def captured_stdout() -> Iterator[io.StringIO]:
    """Collect everything the current context writes to ``sys.stdout``."""
    buffer = io.StringIO()
    _router.acquire()
    token = _stdout_sink.set(buffer)
    try:
        yield buffer
    finally:
        _stdout_sink.reset(token)
        _router.release()


@contextmanager
def intercepted_warnings() -> Iterator[list[warnings.WarningMessage]]:
    """Record warnings raised in the current context instead of showing them.

    Filter state is global, so interceptions are serialised; warnings from
    other contexts are passed through to the previous handler.
    """
    caught: list[warnings.WarningMessage] = []
    token = _warning_sink.set(caught)
    try:
        with _warnings_lock, warnings.catch_warnings():
            warnings.simplefilter("always")
            previous = warnings.showwarning

            def _route(message, category, filename, lineno, file=None, line=None):
                sink = _warning_sink.get()
                if sink is None:
                    previous(message, category, filename, lineno, file, line)
                    return
                sink.append(
                    warnings.WarningMessage(message, category, filename, lineno, file, line)
                )

            warnings.showwarning = _route
            yield caught
    finally:
        _warning_sink.reset(token)


def _check_probe(probe: Any, matcher: str) -> None:
    if not callable(probe):
        raise TypeError(f"{matcher} expects a zero-argument callable, got {short_repr(probe)}")


def prints(probe: Probe, expected: str | None, options: dict[str, Any]) -> Verdict:
    _check_probe(probe, "prints")
    with captured_stdout() as buffer:
        probe()
    output = buffer.getvalue()
    shown = short_repr(output)
    if expected is None:
        if output:
            return Verdict(True, f"printed {shown}", actual_repr=shown)
        return Verdict(False, "no output was printed", actual_repr=shown)
    passed, _ = match_texts([output], expected, options)
    if passed:
        return Verdict(True, f"printed {shown}, matching {expected!r}", actual_repr=shown)
    return Verdict(
        False, f"printed output {shown} does not match {expected!r}", actual_repr=shown
    )


def emits_warning(probe: Probe, expected: str | None, options: dict[str, Any]) -> Verdict:
    _check_probe(probe, "emits-warning")
    category = options.get("category", Warning)
    with intercepted_warnings() as caught:
        probe()
    relevant = [w for w in caught if issubclass(w.category, category)]
    messages = [str(w.message) for w in relevant]
    shown = short_repr(messages)
    if not relevant:
        return Verdict(False, f"no {category.__name__} was raised", actual_repr=shown)
    if expected is None:
        return Verdict(True, f"{category.__name__} raised: {shown}", actual_repr=shown)
    passed, _ = match_texts(messages, expected, {**options, "all": False})
    if passed:
        return Verdict(True, f"warning matching {expected!r} raised", actual_repr=shown)
    return Verdict(
        False, f"warnings {shown} do not match {expected!r}", actual_repr=shown
    )


def emits_error(probe: Probe, expected: str | None, options: dict[str, Any]) -> Verdict:
    _check_probe(probe, "emits-error")
    error_type = options.get("error_type", Exception)
    try:
        probe()
    except (ExpectationFailure, KeyboardInterrupt):
        raise
    except BaseException as exc:
        shown = f"{type(exc).__name__}({str(exc)!r})"
        if not isinstance(exc, error_type):
            return Verdict(
                False,
                f"raised {shown}, expected {error_type.__name__}",
                actual_repr=shown,
            )
        if expected is None:
            return Verdict(True, f"raised {shown}", actual_repr=shown)
        passed, _ = match_texts([str(exc)], expected, options)
        if passed:
            return Verdict(True, f"raised {shown}, matching {expected!r}", actual_repr=shown)
        return Verdict(
            False, f"error message {str(exc)!r} does not match {expected!r}", actual_repr=shown
        )
    return Verdict(False, f"no {error_type.__name__} was raised", actual_repr="None")


PRINTS = Matcher("prints", prints, takes_probe=True)
EMITS_WARNING = Matcher("emits-warning", emits_warning, takes_probe=True)
EMITS_ERROR = Matcher("emits-error", emits_error, takes_probe=True)

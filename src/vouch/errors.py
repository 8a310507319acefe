"""Error types raised by the framework."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vouch.expectations import ExpectationOutcome


class VouchError(Exception):
    """Base class for framework errors."""


class ExpectationFailure(VouchError):
    """A matcher verdict was false.

    Raised by the recorder and caught at the enclosing case boundary, where it
    turns the case result into ``failed`` instead of ``errored``.
    """

    def __init__(self, outcome: ExpectationOutcome) -> None:
        super().__init__(outcome.message)
        self.outcome = outcome


class DiscoveryError(VouchError):
    """A test file could not be loaded."""

    def __init__(self, path: Path, detail: str) -> None:
        lines = detail.strip().splitlines()
        summary = lines[-1] if lines else "unknown error"
        super().__init__(f"Could not load {path}: {summary}")
        self.path = path
        self.detail = detail


class WatchIOError(VouchError):
    """Observing the watched trees failed repeatedly."""

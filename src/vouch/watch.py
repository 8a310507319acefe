"""Re-running tests when the code or test tree changes.

The loop compares snapshots of ``(mtime_ns, size)`` for every Python file in
the watched trees. Filesystem notifications from watchdog only wake the wait
early; the snapshot comparison decides whether anything changed, so polling
alone is a complete fallback.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Any, Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from vouch.errors import WatchIOError

Snapshot = dict[str, tuple[int, int]]


class _WakeHandler(FileSystemEventHandler):
    def __init__(self, wake: threading.Event) -> None:
        self.wake = wake

    def on_any_event(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.wake.set()


def snapshot_tree(root: Path) -> Snapshot:
    """Modification state of every ``.py`` file under ``root``."""
    os.stat(root)  # raises if the tree is gone
    if root.is_file():
        files = [root]
    else:
        files = [f for f in root.rglob("*.py") if "__pycache__" not in f.parts]
    state: Snapshot = {}
    for f in files:
        try:
            st = f.stat()
        except FileNotFoundError:
            # deleted between listing and stat; the next snapshot sees it gone
            continue
        state[str(f)] = (st.st_mtime_ns, st.st_size)
    return state


def diff_snapshots(before: Snapshot, after: Snapshot) -> list[str]:
    """Paths added, removed or modified between two snapshots, sorted."""
    changed = {p for p in before.keys() | after.keys() if before.get(p) != after.get(p)}
    return sorted(changed)


class Watcher:
    """Runs ``on_change`` once up front and once per batch of file changes.

    ``cancel()`` may be called from any thread (or a signal handler); the
    loop notices it immediately, finishing any rerun already in progress.
    An exception from ``on_change`` is logged and the loop keeps watching.
    """

    def __init__(
        self,
        code_path: Path,
        test_path: Path,
        on_change: Callable[[], Any],
        poll_interval: float = 1.0,
        use_notifications: bool = True,
        max_failures: int = 5,
        logger: logging.Logger | None = None,
        cancel_event: threading.Event | None = None,
    ):
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        self.paths = [Path(code_path), Path(test_path)]
        self.on_change = on_change
        self.poll_interval = poll_interval
        self.settle_interval = min(poll_interval, 0.1)
        self.use_notifications = use_notifications
        self.max_failures = max_failures
        self.logger = logger or logging.getLogger("vouch")
        self.runs = 0
        self._wake = threading.Event()
        self._cancelled = cancel_event if cancel_event is not None else threading.Event()
        self._observer: Any = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()
        self._wake.set()

    def snapshot(self) -> Snapshot | None:
        """Snapshot both trees, retrying with backoff on filesystem errors.

        Returns None when cancelled while backing off.
        """
        failures = 0
        while True:
            try:
                state: Snapshot = {}
                for path in self.paths:
                    state.update(snapshot_tree(path))
                return state
            except OSError as e:
                failures += 1
                if failures >= self.max_failures:
                    raise WatchIOError(
                        f"Could not observe {', '.join(map(str, self.paths))} "
                        f"after {failures} attempts: {e}"
                    ) from e
                delay = min(self.poll_interval * 2 ** (failures - 1), 30.0)
                self.logger.warning(f"Snapshot failed ({e}); retrying in {delay:.2f}s")
                if self._cancelled.wait(delay):
                    return None

    def wait_for_change(self, before: Snapshot) -> Snapshot | None:
        """Block until the trees differ from ``before`` and settle.

        Returns the settled snapshot, or None once cancelled.
        """
        while not self.cancelled:
            self._wake.wait(self.poll_interval)
            self._wake.clear()
            if self.cancelled:
                return None
            current = self.snapshot()
            if current is None:
                return None
            if current == before:
                continue
            # absorb the rest of the batch (e.g. an editor writing several files)
            while True:
                if self._cancelled.wait(self.settle_interval):
                    return None
                settled = self.snapshot()
                if settled is None:
                    return None
                if settled == current:
                    self.logger.debug(
                        f"Detected changes: {', '.join(diff_snapshots(before, settled))}"
                    )
                    return settled
                current = settled
        return None

    def run(self, run_first: bool = True) -> int:
        """Loop until cancelled. Returns how many times ``on_change`` ran."""
        self._start_observer()
        try:
            state = self.snapshot()
            if state is None:
                return self.runs
            if run_first and not self.cancelled:
                self._invoke()
            while not self.cancelled:
                state = self.wait_for_change(state)
                if state is None:
                    break
                self._invoke()
        finally:
            self._stop_observer()
        self.logger.debug(f"Watch loop stopped after {self.runs} run(s)")
        return self.runs

    def _invoke(self) -> None:
        self.runs += 1
        try:
            self.on_change()
        except Exception as e:
            self.logger.error(f"Rerun {self.runs} failed: {e!r}", exc_info=True)

    def _start_observer(self) -> None:
        if not self.use_notifications:
            return
        observer = Observer()
        handler = _WakeHandler(self._wake)
        try:
            for path in self.paths:
                target = path if path.is_dir() else path.parent
                observer.schedule(handler, str(target), recursive=True)
            observer.start()
        except OSError as e:
            self.logger.warning(f"File notifications unavailable ({e}); polling instead")
            return
        self._observer = observer

    def _stop_observer(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=5)
        self._observer = None


def watch(
    code_path: Path,
    test_path: Path,
    on_change: Callable[[], Any],
    poll_interval: float = 1.0,
    use_notifications: bool = True,
    logger: logging.Logger | None = None,
    cancel_event: threading.Event | None = None,
) -> Watcher:
    """Run ``on_change`` now and after every batch of changes until cancelled.

    Blocks the calling thread until ``cancel_event`` is set, noticed within
    one poll interval, and returns the stopped watcher. Ctrl+C propagates.
    """
    watcher = Watcher(
        code_path,
        test_path,
        on_change,
        poll_interval=poll_interval,
        use_notifications=use_notifications,
        logger=logger,
        cancel_event=cancel_event,
    )
    watcher.run()
    return watcher

"""Tests for the change-watching rerun loop."""

import threading
import time

import pytest

from vouch.errors import WatchIOError
from vouch.watch import Watcher, diff_snapshots, snapshot_tree, watch


def _wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


@pytest.fixture
def trees(write_file, tmp_path):
    write_file("src/calc.py", "VALUE = 1\n")
    write_file("tests/test_calc.py", "# tests\n")
    return tmp_path / "src", tmp_path / "tests"


@pytest.fixture
def start_watcher():
    started = []

    def _start(watcher):
        thread = threading.Thread(target=watcher.run, daemon=True)
        thread.start()
        started.append((watcher, thread))
        return thread

    yield _start

    for watcher, thread in started:
        watcher.cancel()
        thread.join(timeout=5)


def test_snapshot_tree_tracks_python_files(trees, write_file):
    src, _ = trees
    write_file("src/notes.txt", "ignored")
    write_file("src/__pycache__/calc.cpython.py", "ignored")
    state = snapshot_tree(src)
    assert list(state) == [str(src / "calc.py")]


def test_snapshot_tree_missing_root(tmp_path):
    with pytest.raises(OSError):
        snapshot_tree(tmp_path / "gone")


def test_diff_snapshots():
    before = {"a": (1, 1), "b": (1, 1)}
    after = {"a": (1, 1), "b": (2, 3), "c": (1, 1)}
    assert diff_snapshots(before, after) == ["b", "c"]
    assert diff_snapshots(after, after) == []


def test_runs_once_up_front_and_once_per_change(trees):
    src, tests = trees
    runs = []
    watcher = Watcher(src, tests, lambda: runs.append(1), poll_interval=0.05, use_notifications=False)

    thread = threading.Thread(target=watcher.run, daemon=True)
    thread.start()
    try:
        assert _wait_until(lambda: len(runs) == 1)

        (src / "calc.py").write_text("VALUE = 2  # edited\n")
        assert _wait_until(lambda: len(runs) == 2)

        (src / "calc.py").write_text("VALUE = 3  # edited again, longer\n")
        (tests / "test_calc.py").write_text("# tests, edited in the same batch\n")
        assert _wait_until(lambda: len(runs) == 3)

        time.sleep(0.4)
        assert len(runs) == 3
    finally:
        watcher.cancel()
        thread.join(timeout=5)

    assert not thread.is_alive()
    assert watcher.runs == 3


def test_new_file_triggers_rerun(trees, start_watcher):
    src, tests = trees
    runs = []
    start_watcher(Watcher(src, tests, lambda: runs.append(1), poll_interval=0.05, use_notifications=False))
    assert _wait_until(lambda: len(runs) == 1)

    (tests / "test_more.py").write_text("# another\n")
    assert _wait_until(lambda: len(runs) == 2)


def test_cancel_stops_promptly(trees):
    src, tests = trees
    watcher = Watcher(src, tests, lambda: None, poll_interval=10, use_notifications=False)
    thread = threading.Thread(target=watcher.run, daemon=True)
    thread.start()
    assert _wait_until(lambda: watcher.runs == 1)

    started = time.monotonic()
    watcher.cancel()
    thread.join(timeout=5)
    assert not thread.is_alive()
    assert time.monotonic() - started < 2


def test_cancel_while_rerun_in_progress_finishes_it(trees):
    src, tests = trees
    in_run = threading.Event()
    release = threading.Event()
    finished = []

    def _slow():
        in_run.set()
        release.wait(timeout=5)
        finished.append(1)

    watcher = Watcher(src, tests, _slow, poll_interval=0.05, use_notifications=False)
    thread = threading.Thread(target=watcher.run, daemon=True)
    thread.start()
    assert in_run.wait(timeout=5)

    watcher.cancel()
    release.set()
    thread.join(timeout=5)
    assert finished == [1]
    assert watcher.runs == 1


def test_missing_tree_raises_after_retries(tmp_path):
    watcher = Watcher(
        tmp_path / "missing",
        tmp_path,
        lambda: None,
        poll_interval=0.01,
        use_notifications=False,
        max_failures=2,
    )
    with pytest.raises(WatchIOError, match="after 2 attempts"):
        watcher.run()
    assert watcher.runs == 0


def test_transient_snapshot_error_is_retried(trees, mocker):
    src, tests = trees
    real = snapshot_tree
    calls = {"n": 0}

    def _flaky(root):
        calls["n"] += 1
        if calls["n"] == 1:
            raise OSError("temporarily unavailable")
        return real(root)

    mocker.patch("vouch.watch.snapshot_tree", side_effect=_flaky)
    watcher = Watcher(src, tests, lambda: None, poll_interval=0.01, use_notifications=False)
    state = watcher.snapshot()
    assert str(src / "calc.py") in state


def test_rejects_non_positive_poll_interval(trees):
    src, tests = trees
    with pytest.raises(ValueError):
        Watcher(src, tests, lambda: None, poll_interval=0)


def test_notifications_wake_the_loop(trees, start_watcher):
    src, tests = trees
    runs = []
    start_watcher(Watcher(src, tests, lambda: runs.append(1), poll_interval=0.2))
    assert _wait_until(lambda: len(runs) == 1)

    (src / "calc.py").write_text("VALUE = 'changed through notifications'\n")
    assert _wait_until(lambda: len(runs) == 2)


def test_watch_function_stops_on_cancel_event(trees):
    src, tests = trees
    cancel = threading.Event()
    runs = []

    def _on_change():
        runs.append(1)
        cancel.set()

    watcher = watch(src, tests, _on_change, poll_interval=0.05, use_notifications=False, cancel_event=cancel)
    assert watcher.runs == 1
    assert runs == [1]


def test_failing_rerun_keeps_watching(trees, start_watcher):
    src, tests = trees
    runs = []

    def _on_change():
        runs.append(1)
        if len(runs) == 1:
            raise FileNotFoundError("test tree briefly missing")

    watcher = Watcher(src, tests, _on_change, poll_interval=0.05, use_notifications=False)
    thread = start_watcher(watcher)
    assert _wait_until(lambda: len(runs) == 1)

    (src / "calc.py").write_text("VALUE = 'after the failed run'\n")
    assert _wait_until(lambda: len(runs) == 2)
    assert thread.is_alive()

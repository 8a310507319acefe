"""Tests for test-file discovery and loading."""

import sys
from pathlib import Path

import pytest

from vouch.discovery import discover, is_test_file, load_test_file, make_predicate, module_name_for
from vouch.errors import DiscoveryError


def test_is_test_file():
    assert is_test_file(Path("test_math.py"))
    assert is_test_file(Path("math_test.py"))
    assert not is_test_file(Path("helpers.py"))
    assert not is_test_file(Path("test_data.txt"))


def test_discover_sorted_and_filtered(tmp_path, write_file):
    write_file("test_b.py", "")
    write_file("test_a.py", "")
    write_file("helpers.py", "")
    write_file("sub/test_c.py", "")
    write_file("__pycache__/test_cached.py", "")
    write_file(".hidden/test_hidden.py", "")

    found = [p.relative_to(tmp_path).as_posix() for p in discover(tmp_path)]
    assert found == ["sub/test_c.py", "test_a.py", "test_b.py"]


def test_discover_custom_predicate(tmp_path, write_file):
    write_file("check_one.py", "")
    write_file("test_two.py", "")
    found = [p.name for p in discover(tmp_path, make_predicate(r"^check_"))]
    assert found == ["check_one.py"]


def test_discover_single_file(write_file):
    path = write_file("anything.py", "")
    assert discover(path) == [path]


def test_discover_missing_path(tmp_path):
    with pytest.raises(FileNotFoundError):
        discover(tmp_path / "nope")


def test_module_name_is_unique_per_path(tmp_path):
    first = module_name_for(tmp_path / "a" / "test_x.py")
    second = module_name_for(tmp_path / "b" / "test_x.py")
    assert first != second
    assert first.startswith("_vouch_test_x_")


def test_load_declares_cases(registry, write_file):
    path = write_file(
        "test_math.py",
        """\
        from vouch import context, expect_equal, test_that

        test_that("default context", lambda: expect_equal(1, 1))

        context("addition")

        @test_that("adds")
        def _():
            expect_equal(1 + 1, 2)
        """,
    )
    load_test_file(path, registry)
    assert [(c.context, c.description) for _, c in registry.enumerate()] == [
        ("test_math", "default context"),
        ("addition", "adds"),
    ]


def test_load_failure_discards_partial_cases(registry, write_file):
    path = write_file(
        "test_broken.py",
        """\
        from vouch import test_that

        test_that("declared before the error", lambda: None)
        raise RuntimeError("broken at import")
        """,
    )
    with pytest.raises(DiscoveryError) as exc_info:
        load_test_file(path, registry)

    assert exc_info.value.path == path
    assert "RuntimeError: broken at import" in exc_info.value.detail
    assert "broken at import" in str(exc_info.value)
    assert len(registry) == 0
    assert module_name_for(path) not in sys.modules


def test_load_syntax_error(registry, write_file):
    path = write_file("test_syntax.py", "def broken(:\n")
    with pytest.raises(DiscoveryError, match="SyntaxError"):
        load_test_file(path, registry)


def test_load_base_exception_becomes_discovery_error(registry, write_file):
    path = write_file(
        "test_exits.py",
        """\
        import sys

        from vouch import test_that

        test_that("never kept", lambda: None)
        sys.exit(2)
        """,
    )
    with pytest.raises(DiscoveryError, match="SystemExit"):
        load_test_file(path, registry)
    assert len(registry) == 0


def test_load_keyboard_interrupt_propagates(registry, write_file):
    path = write_file("test_interrupt.py", "raise KeyboardInterrupt\n")
    with pytest.raises(KeyboardInterrupt):
        load_test_file(path, registry)
    assert module_name_for(path) not in sys.modules

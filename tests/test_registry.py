"""Tests for the test case registry and declaration API."""

import dataclasses

import pytest

from vouch.registry import Registry, TestCase, context, default_registry, test_that


def _noop():
    pass


def test_cases_enumerate_in_declaration_order(registry):
    registry.declare_case("a", "first", _noop)
    registry.declare_case("a", "second", _noop)
    registry.declare_case("b", "third", _noop)
    assert [(ctx, c.description) for ctx, c in registry.enumerate()] == [
        ("a", "first"),
        ("a", "second"),
        ("b", "third"),
    ]
    assert len(registry) == 3


def test_redeclared_context_merges(registry):
    registry.declare_context("a")
    registry.declare_case(registry.current_context, "a1", _noop)
    registry.declare_context("b")
    registry.declare_case(registry.current_context, "b1", _noop)
    registry.declare_context("a")
    registry.declare_case(registry.current_context, "a2", _noop)

    assert registry.contexts == ["a", "b"]
    assert [c.description for _, c in registry.enumerate()] == ["a1", "a2", "b1"]


def test_empty_context_name_rejected(registry):
    with pytest.raises(ValueError):
        registry.declare_context("")


def test_body_must_be_callable(registry):
    with pytest.raises(TypeError, match="must be callable"):
        registry.declare_case("a", "broken", None)


def test_test_case_is_immutable():
    case = TestCase("ctx", "desc", _noop)
    assert case.name == "ctx / desc"
    with pytest.raises(dataclasses.FrozenInstanceError):
        case.description = "other"


def test_declaration_api_targets_loading_registry(registry, tmp_path):
    source = tmp_path / "test_math.py"
    with registry.loading(source):
        test_that("uses file stem as default context", _noop)
        context("arithmetic")

        @test_that("decorated")
        def _():
            pass

    cases = [c for _, c in registry.enumerate()]
    assert [(c.context, c.description) for c in cases] == [
        ("test_math", "uses file stem as default context"),
        ("arithmetic", "decorated"),
    ]
    assert all(c.source == source for c in cases)
    assert len(default_registry) == 0


def test_loading_restores_previous_state(registry, tmp_path):
    registry.declare_context("outer")
    with registry.loading(tmp_path / "test_x.py"):
        context("inner")
    assert registry.current_context == "outer"
    assert registry.current_source is None


def test_declaration_outside_loading_uses_default_registry():
    try:
        test_that("standalone", _noop)
        assert [c.description for _, c in default_registry.enumerate()] == ["standalone"]
    finally:
        default_registry.clear()


def test_discard_source(registry, tmp_path):
    keep, drop = tmp_path / "keep.py", tmp_path / "drop.py"
    registry.declare_case("shared", "kept", _noop, source=keep)
    registry.declare_case("shared", "dropped", _noop, source=drop)
    registry.declare_case("only-drop", "dropped too", _noop, source=drop)

    assert registry.discard_source(drop) == 2
    assert registry.contexts == ["shared"]
    assert [c.description for _, c in registry.enumerate()] == ["kept"]


def test_clear(registry):
    registry.declare_context("a")
    registry.declare_case("a", "x", _noop)
    registry.clear()
    assert len(registry) == 0
    assert registry.contexts == []


def test_registries_are_independent():
    first, second = Registry(), Registry()
    first.declare_case("a", "x", _noop)
    assert len(second) == 0

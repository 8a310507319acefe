"""Value matchers: tolerance, identity, equivalence, type, pattern, truth."""

from __future__ import annotations

import cmath
import dataclasses
import math
import numbers
import re
from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np

from vouch.matchers.base import Matcher, Verdict, short_repr

DEFAULT_TOLERANCE = 1.5e-8


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Number) and not isinstance(value, (bool, np.bool_))


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _is_nan(value: Any) -> bool:
    try:
        return cmath.isnan(value) if isinstance(value, complex) else math.isnan(value)
    except OverflowError:
        # ints and fractions beyond float range are finite
        return False


def _is_finite(value: Any) -> bool:
    try:
        return cmath.isfinite(value) if isinstance(value, complex) else math.isfinite(value)
    except OverflowError:
        return True


def _where(path: str) -> str:
    return f"at {path}: " if path else ""


def _difference(actual: Any, expected: Any) -> Any:
    """``|actual - expected|``, falling back to floats for mixed types like Decimal and float."""
    try:
        return abs(actual - expected)
    except TypeError:
        return abs(float(actual) - float(expected))


def _format_number(value: Any) -> str:
    try:
        return f"{float(value):.6g}"
    except OverflowError:
        return short_repr(value)


def _number_mismatch(actual: Any, expected: Any, tolerance: float, path: str) -> str | None:
    # exact first: big ints, Decimal and Fraction compare without float conversion
    if actual == expected:
        return None
    if not (_is_finite(actual) and _is_finite(expected)):
        if _is_nan(actual) and _is_nan(expected):
            return None
        return f"{_where(path)}{actual!r} != {expected!r} (non-finite operand)"
    try:
        diff = _difference(actual, expected)
    except TypeError:
        return (
            f"{_where(path)}{type(actual).__name__} {short_repr(actual)} cannot be compared "
            f"with {type(expected).__name__} {short_repr(expected)}"
        )
    except OverflowError:
        return f"{_where(path)}{short_repr(actual)} != {short_repr(expected)} (difference exceeds float range)"
    if diff <= tolerance:
        return None
    return (
        f"{_where(path)}{short_repr(actual)} != {short_repr(expected)} "
        f"(difference {_format_number(diff)} exceeds tolerance {tolerance:.6g})"
    )


def tolerant_mismatch(actual: Any, expected: Any, tolerance: float, path: str = "") -> str | None:
    """Return a description of the first difference, or None when equal.

    Mappings, sequences and numpy arrays are walked recursively; numeric
    leaves compare within ``tolerance`` and every other leaf with ``==``.
    """
    if isinstance(actual, np.ndarray) or isinstance(expected, np.ndarray):
        actual_arr, expected_arr = np.asarray(actual), np.asarray(expected)
        if actual_arr.shape != expected_arr.shape:
            return f"{_where(path)}shape {actual_arr.shape} != {expected_arr.shape}"
        if actual_arr.ndim == 0:
            return tolerant_mismatch(actual_arr.item(), expected_arr.item(), tolerance, path)
        return tolerant_mismatch(actual_arr.tolist(), expected_arr.tolist(), tolerance, path)

    if isinstance(actual, Mapping) and isinstance(expected, Mapping):
        missing = [k for k in expected if k not in actual]
        unexpected = [k for k in actual if k not in expected]
        if missing or unexpected:
            return f"{_where(path)}keys differ (missing {missing!r}, unexpected {unexpected!r})"
        for key in expected:
            mismatch = tolerant_mismatch(actual[key], expected[key], tolerance, f"{path}[{key!r}]")
            if mismatch is not None:
                return mismatch
        return None

    if _is_sequence(actual) and _is_sequence(expected):
        if len(actual) != len(expected):
            return f"{_where(path)}length {len(actual)} != {len(expected)}"
        for i, (a, e) in enumerate(zip(actual, expected)):
            mismatch = tolerant_mismatch(a, e, tolerance, f"{path}[{i}]")
            if mismatch is not None:
                return mismatch
        return None

    if _is_number(actual) and _is_number(expected):
        return _number_mismatch(actual, expected, tolerance, path)

    if isinstance(actual, (Mapping, np.ndarray)) or _is_sequence(actual) or isinstance(
        expected, Mapping
    ) or _is_sequence(expected):
        return (
            f"{_where(path)}{type(actual).__name__} {short_repr(actual)} "
            f"is not comparable with {type(expected).__name__} {short_repr(expected)}"
        )

    if actual == expected:
        return None
    return f"{_where(path)}{short_repr(actual)} != {short_repr(expected)}"


def _tolerance(options: dict[str, Any]) -> float:
    tolerance = options.get("tolerance")
    if tolerance is None:
        return DEFAULT_TOLERANCE
    if tolerance < 0:
        raise ValueError(f"tolerance must be non-negative, got {tolerance!r}")
    return float(tolerance)


def tolerant_equals(actual: Any, expected: Any, options: dict[str, Any]) -> Verdict:
    mismatch = tolerant_mismatch(actual, expected, _tolerance(options))
    if mismatch is None:
        return Verdict(True, f"{short_repr(actual)} equals {short_repr(expected)}")
    return Verdict(
        False,
        f"{short_repr(actual)} not equal to {short_repr(expected)}: {mismatch}",
    )


def _same_float(a: float, b: float) -> bool:
    if math.isnan(a) and math.isnan(b):
        return True
    return a == b and math.copysign(1.0, a) == math.copysign(1.0, b)


def is_identical(actual: Any, expected: Any) -> bool:
    """Exact equality: no tolerance, no coercion, types equal at every level."""
    if actual is expected:
        return True
    if type(actual) is not type(expected):
        return False
    if isinstance(actual, float):
        return _same_float(actual, expected)
    if isinstance(actual, complex):
        return _same_float(actual.real, expected.real) and _same_float(actual.imag, expected.imag)
    if isinstance(actual, np.ndarray):
        return (
            actual.dtype == expected.dtype
            and actual.shape == expected.shape
            and bool(np.array_equal(actual, expected, equal_nan=actual.dtype.kind in "fc"))
        )
    if isinstance(actual, (list, tuple)):
        return len(actual) == len(expected) and all(
            is_identical(a, e) for a, e in zip(actual, expected)
        )
    if isinstance(actual, dict):
        return actual.keys() == expected.keys() and all(
            is_identical(actual[k], expected[k]) for k in actual
        )
    return bool(actual == expected)


def identical(actual: Any, expected: Any, options: dict[str, Any]) -> Verdict:
    if is_identical(actual, expected):
        return Verdict(True, f"{short_repr(actual)} is identical to {short_repr(expected)}")
    detail = ""
    if type(actual) is not type(expected):
        detail = f" (type {type(actual).__name__} != {type(expected).__name__})"
    return Verdict(
        False, f"{short_repr(actual)} not identical to {short_repr(expected)}{detail}"
    )


def strip_labels(value: Any) -> Any:
    """Drop labelling metadata, keeping only values and shape."""
    if isinstance(value, Mapping):
        return [strip_labels(v) for v in value.values()]
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return [strip_labels(getattr(value, f.name)) for f in dataclasses.fields(value)]
    if isinstance(value, np.ndarray):
        return value
    if _is_sequence(value):
        return [strip_labels(v) for v in value]
    return value


def equivalent(actual: Any, expected: Any, options: dict[str, Any]) -> Verdict:
    mismatch = tolerant_mismatch(
        strip_labels(actual), strip_labels(expected), _tolerance(options)
    )
    if mismatch is None:
        return Verdict(True, f"{short_repr(actual)} is equivalent to {short_repr(expected)}")
    return Verdict(
        False,
        f"{short_repr(actual)} not equivalent to {short_repr(expected)}: {mismatch}",
    )


def _type_names(expected: Any) -> str:
    if isinstance(expected, tuple):
        return " or ".join(_type_names(t) for t in expected)
    return expected if isinstance(expected, str) else expected.__name__


def type_of(actual: Any, expected: Any, options: dict[str, Any]) -> Verdict:
    if isinstance(expected, str):
        names = set()
        for cls in type(actual).__mro__:
            names.add(cls.__name__)
            names.add(f"{cls.__module__}.{cls.__qualname__}")
        passed = expected in names
    else:
        passed = isinstance(actual, expected)
    actual_type = type(actual).__name__
    if passed:
        return Verdict(True, f"{short_repr(actual)} is a {_type_names(expected)}")
    return Verdict(
        False,
        f"{short_repr(actual)} is a {actual_type}, not a {_type_names(expected)}",
        actual_repr=actual_type,
    )


def compile_pattern(pattern: str, options: dict[str, Any]) -> re.Pattern[str]:
    source = re.escape(pattern) if options.get("fixed") else pattern
    flags = re.IGNORECASE if options.get("ignore_case") else 0
    return re.compile(source, flags)


def match_texts(texts: list[str], pattern: str, options: dict[str, Any]) -> tuple[bool, list[str]]:
    """Match every text (or any, with ``all=False``); return non-matching texts."""
    regex = compile_pattern(pattern, options)
    misses = [t for t in texts if regex.search(t) is None]
    if not texts:
        return False, []
    if options.get("all", True):
        return not misses, misses
    return len(misses) < len(texts), misses


def pattern_match(actual: Any, expected: Any, options: dict[str, Any]) -> Verdict:
    if isinstance(actual, str):
        texts = [actual]
    elif _is_sequence(actual) and all(isinstance(a, str) for a in actual):
        texts = list(actual)
    else:
        texts = [str(actual)]
    if not texts:
        return Verdict(False, f"nothing to match against pattern {expected!r}")
    passed, misses = match_texts(texts, expected, options)
    if passed:
        return Verdict(True, f"{short_repr(actual)} matches {expected!r}")
    return Verdict(
        False,
        f"{short_repr(misses[0] if len(misses) == 1 else misses)} does not match {expected!r}",
    )


def is_true(actual: Any, expected: Any, options: dict[str, Any]) -> Verdict:
    want = True if expected is None else bool(expected)
    if bool(actual) == want:
        return Verdict(True, f"{short_repr(actual)} is {want}")
    return Verdict(False, f"{short_repr(actual)} is not {want}")


def is_false(actual: Any, expected: Any, options: dict[str, Any]) -> Verdict:
    return is_true(actual, False, options)


TOLERANT_EQUALS = Matcher("tolerant-equals", tolerant_equals, tolerant=True)
IDENTICAL = Matcher("identical", identical)
EQUIVALENT = Matcher("equivalent", equivalent, tolerant=True)
TYPE_OF = Matcher("type-of", type_of)
PATTERN_MATCH = Matcher("pattern-match", pattern_match)
IS_TRUE = Matcher("is-true", is_true)
IS_FALSE = Matcher("is-false", is_false)

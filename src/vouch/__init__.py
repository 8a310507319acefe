"""Expectation-based unit testing: declare cases, run them, report."""

from vouch.errors import DiscoveryError, ExpectationFailure, VouchError, WatchIOError
from vouch.expectations import (
    ExpectationOutcome,
    expect_equal,
    expect_equivalent,
    expect_error,
    expect_false,
    expect_identical,
    expect_is,
    expect_match,
    expect_output,
    expect_that,
    expect_true,
    expect_warning,
    record,
)
from vouch.registry import Registry, TestCase, context, test_that
from vouch.results import RunReport, Status, TestResult

__all__ = [
    "DiscoveryError",
    "ExpectationFailure",
    "ExpectationOutcome",
    "Registry",
    "RunReport",
    "Status",
    "TestCase",
    "TestResult",
    "VouchError",
    "WatchIOError",
    "context",
    "expect_equal",
    "expect_equivalent",
    "expect_error",
    "expect_false",
    "expect_identical",
    "expect_is",
    "expect_match",
    "expect_output",
    "expect_that",
    "expect_true",
    "expect_warning",
    "record",
    "test_that",
]

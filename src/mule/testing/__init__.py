"""Test discovery, harness generation and test execution."""

from .harness import TestBinaryResult, TestHarnessBuilder, TestSummary
from .registry import DuplicateTestError, TestCase, TestRegistry, collect_tests

__all__ = [
    "DuplicateTestError",
    "TestBinaryResult",
    "TestCase",
    "TestHarnessBuilder",
    "TestRegistry",
    "TestSummary",
    "collect_tests",
]

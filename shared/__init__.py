"""
Shared utilities for the eBill console.

This package aggregates common building blocks consumed by the console:

- config: Console configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- test_helpers: Test data and an in-process backend for tests

Do not import from ebill_console into shared/.
"""

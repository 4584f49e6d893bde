"""
Task-list sync policy test suite.

This package contains:
- unit/: Unit tests for the policy stages and primitives
- integration/: In-memory store and HTTP gateway tests
"""

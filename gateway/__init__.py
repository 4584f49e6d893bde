"""
Task-list sync gateway - development HTTP host for the sync policy.

Runs the sync policy over an in-memory document store so clients and
tests can exercise writes end to end without a replication server.
"""

from .app import create_app

__all__ = ["create_app"]

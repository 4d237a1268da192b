"""
In-memory document store for local development and tests.
"""

from .store import InMemoryDocumentStore, InMemorySubscription

__all__ = ["InMemoryDocumentStore", "InMemorySubscription"]

"""
Shared fixtures for unit tests.

Everything runs against the in-memory document store. The flaky variant
can be told to reject writes, either all of them or from the Nth write
of a batch onwards, to exercise failure paths without a real database.
"""

from datetime import date
from typing import Optional

import pytest

from playbook.core.errors import StoreWriteError
from playbook.infrastructure.memory import InMemoryDocumentStore


class FlakyDocumentStore(InMemoryDocumentStore):
    """In-memory store whose writes can be made to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_writes = False
        self.fail_from_write: Optional[int] = None
        self.writes_attempted = 0

    def _apply(self, documents, write) -> None:
        self.writes_attempted += 1
        if self.fail_writes:
            raise StoreWriteError("store offline")
        if self.fail_from_write is not None and self.writes_attempted >= self.fail_from_write:
            raise StoreWriteError("write rejected mid-batch")
        super()._apply(documents, write)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def flaky_store() -> FlakyDocumentStore:
    return FlakyDocumentStore()


@pytest.fixture
def today() -> date:
    return date(2024, 5, 1)

import os

import pytest
from cryptography.fernet import Fernet

from blob_store import InMemoryBlobStore
from models import Expense

# Ensure the encryption layer has a deterministic key in test environments so
# config.yaml is not mutated during test runs.
os.environ.setdefault("EXPENSE_TRACKER_ENCRYPTION_KEY", Fernet.generate_key().decode("utf-8"))


@pytest.fixture
def memory_store():
    """Provide an empty in-memory blob store."""
    return InMemoryBlobStore()


@pytest.fixture
def make_expense():
    """Factory for expenses with sensible defaults and sequential ids."""
    counter = {"next": 0}

    def _make(amount=10.0, category="Food", date="2024-03-15", title=None, **kwargs):
        counter["next"] += 1
        return Expense(
            id=kwargs.pop("id", f"exp-{counter['next']}"),
            title=title if title is not None else f"Expense {counter['next']}",
            amount=amount,
            category=category,
            date=date,
            **kwargs
        )

    return _make

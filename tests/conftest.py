"""Shared fixtures: a fixed clock and stores backed by in-memory storage."""

from datetime import datetime, timezone

import pytest

from mywallet.audit import AuditLogger
from mywallet.models import (
    DebtItem,
    Person,
    RelationType,
    Transaction,
    TransactionType,
)
from mywallet.services.persistence import serialize
from mywallet.services.storage import InMemoryStorage
from mywallet.store import FinanceStore

NOW = datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def audit_logger():
    return AuditLogger(trail_size=100)


@pytest.fixture
def store(storage, audit_logger):
    return FinanceStore(storage=storage, audit_logger=audit_logger, clock=lambda: NOW)


@pytest.fixture
def person():
    return Person(name="Ali", relation_type=RelationType.OWES_ME)


@pytest.fixture
def debt():
    return DebtItem(amount=1000, due_date=datetime(2024, 4, 1, tzinfo=timezone.utc))


@pytest.fixture
def make_transaction():
    def _make(amount, type=TransactionType.EXPENSE, category="Food & Drinks", when=NOW, **kwargs):
        return Transaction(amount=amount, type=type, category=category, date=when, **kwargs)
    return _make


@pytest.fixture
def seeded_store(storage, audit_logger):
    """A store loaded from storage that already holds the given people."""
    def _seed(*people):
        storage.set("people", serialize(people))
        return FinanceStore(storage=storage, audit_logger=audit_logger, clock=lambda: NOW)
    return _seed

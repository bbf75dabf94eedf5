"""Pytest bootstrap configuration.

Ensure environment variables are set before test collection and module
imports that depend on application settings.
"""
import os

# No real database or seeding during import of main / api modules
os.environ.setdefault("DATABASE__URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("SEED_PAYMENT_METHODS", "false")
os.environ.setdefault("DEBUG", "false")

import pytest  # noqa: E402

from fakes import InMemoryStore, StubGateway, seed_catalog  # noqa: E402


@pytest.fixture
def store() -> InMemoryStore:
    s = InMemoryStore()
    seed_catalog(s)
    return s


@pytest.fixture
def uow_factory(store):
    return store.uow_factory


@pytest.fixture
def gateway() -> StubGateway:
    return StubGateway()

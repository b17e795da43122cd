"""Pytest bootstrap configuration.

Ensure environment defaults are set before test collection and module
imports that depend on application settings.
"""
import os

os.environ.setdefault("DATABASE__URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest

from tests.fakes import FakeVerifier, InMemoryStore, RecordingNotifier, FakeUnitOfWorkFactory


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def uow_factory(store) -> FakeUnitOfWorkFactory:
    return FakeUnitOfWorkFactory(store)


@pytest.fixture
def verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()

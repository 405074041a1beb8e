# tests/conftest.py

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from student_records.main import create_app
from student_records.store import StoreConfig, StudentStore


class StepClock:
    """Returns a time one second later on every call."""

    def __init__(self, start=datetime(2025, 1, 1, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self):
        self.now = self.now + timedelta(seconds=1)
        return self.now


@pytest.fixture
def database():
    return AsyncMongoMockClient()["student_records_test"]


@pytest.fixture
def store(database):
    return StudentStore(database, StoreConfig(), clock=StepClock())


@pytest.fixture
async def indexed_store(store):
    await store.ensure_indexes()
    return store


@pytest.fixture
def client(store):
    with TestClient(create_app(store)) as test_client:
        yield test_client


@pytest.fixture
def sample_payload():
    return {
        "name": "Ada Lovelace",
        "email": "Ada@Example.com ",
        "enrollmentNumber": "E1001",
        "course": "CS",
    }

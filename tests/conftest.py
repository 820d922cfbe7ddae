"""
Shared fixtures for the Flight Tracker test suites.

Tests run without a MongoDB server: FakeDatabase implements the subset of the
motor collection API the backend adapter uses (find/sort/to_list, find_one,
insert_one, update_one with $set, replace_one, delete_one, delete_many,
create_index) and the query operators it sends ($ne, $lt, $gt, $lte, $gte, $in).
"""

import copy
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import jwt
import pytest
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

from config import get_settings
from database.backend import MongoBackend
from models.user import User
from services.connectivity import ConnectivityMonitor
from services.data_access import DataAccess, get_data_access
from services.retrier import Retrier, RetryPolicy


# ==================== IN-MEMORY MOTOR STAND-IN ====================

def _compare(value, op, expected):
    if op == "$ne":
        return value != expected
    if op == "$in":
        return value in expected
    if value is None or expected is None:
        return False
    if op == "$lt":
        return value < expected
    if op == "$lte":
        return value <= expected
    if op == "$gt":
        return value > expected
    if op == "$gte":
        return value >= expected
    raise NotImplementedError(op)


def matches(document, query):
    for key, condition in (query or {}).items():
        value = document.get(key)
        if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
            if not all(_compare(value, op, expected) for op, expected in condition.items()):
                return False
        elif value != condition:
            return False
    return True


class FakeCursor:
    def __init__(self, documents):
        self._documents = documents

    def sort(self, keys):
        # Apply the least significant key first; list.sort is stable
        for key, direction in reversed(keys):
            self._documents.sort(
                key=lambda d: (d.get(key) is not None, d.get(key)),
                reverse=direction < 0,
            )
        return self

    async def to_list(self, length=None):
        documents = [copy.deepcopy(d) for d in self._documents]
        return documents[:length] if length else documents


class FakeCollection:
    def __init__(self, name):
        self.name = name
        self.documents = []
        # Exceptions raised by the next calls, before touching the data
        self.failures = []
        # Exceptions raised by the next writes, after the data was written
        self.lost_acks = []
        self.calls = 0

    def _maybe_fail(self):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)

    def _maybe_lose_ack(self):
        if self.lost_acks:
            raise self.lost_acks.pop(0)

    def find(self, query=None):
        return FakeCursor([d for d in self.documents if matches(d, query)])

    async def find_one(self, query):
        self._maybe_fail()
        for document in self.documents:
            if matches(document, query):
                return copy.deepcopy(document)
        return None

    async def insert_one(self, document):
        self._maybe_fail()
        if any(d["_id"] == document["_id"] for d in self.documents):
            raise DuplicateKeyError(f"E11000 duplicate key error collection: {self.name}")
        self.documents.append(copy.deepcopy(document))
        self._maybe_lose_ack()
        return SimpleNamespace(inserted_id=document["_id"])

    async def update_one(self, query, update):
        self._maybe_fail()
        for document in self.documents:
            if matches(document, query):
                document.update(copy.deepcopy(update.get("$set", {})))
                self._maybe_lose_ack()
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def replace_one(self, query, replacement, upsert=False):
        self._maybe_fail()
        for index, document in enumerate(self.documents):
            if matches(document, query):
                self.documents[index] = copy.deepcopy(replacement)
                return SimpleNamespace(matched_count=1, upserted_id=None)
        if upsert:
            self.documents.append(copy.deepcopy(replacement))
            return SimpleNamespace(matched_count=0, upserted_id=replacement.get("_id"))
        return SimpleNamespace(matched_count=0, upserted_id=None)

    async def delete_one(self, query):
        self._maybe_fail()
        for index, document in enumerate(self.documents):
            if matches(document, query):
                del self.documents[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def delete_many(self, query):
        self._maybe_fail()
        kept = [d for d in self.documents if not matches(d, query)]
        deleted = len(self.documents) - len(kept)
        self.documents = kept
        return SimpleNamespace(deleted_count=deleted)

    async def create_index(self, keys, **kwargs):
        return kwargs.get("name")


class FakeDatabase:
    def __init__(self):
        self.collections = {}

    def __getitem__(self, name):
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]


class RecordingSleep:
    """Stand-in for asyncio.sleep that records the requested delays"""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


# ==================== FIXTURES ====================

@pytest.fixture
def ticking_clock(monkeypatch):
    """Backend clock advancing one second per reading, so created_at never ties"""
    moments = iter(datetime(2026, 3, 1, 9, 0) + timedelta(seconds=n) for n in range(100000))
    monkeypatch.setattr("database.backend.utcnow", lambda: next(moments))


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def backend(fake_db):
    return MongoBackend(fake_db)


@pytest.fixture
def sleeps():
    return RecordingSleep()


@pytest.fixture
def retrier(sleeps):
    return Retrier(policy=RetryPolicy(), connectivity=ConnectivityMonitor(), sleep=sleeps)


@pytest.fixture
def data(backend, retrier):
    return DataAccess(backend, retrier)


@pytest.fixture
def user():
    return User(id="user-1", email="dispatch@flightops.com")


@pytest.fixture
def other_user():
    return User(id="user-2", email="planner@flightops.com")


@pytest.fixture
def flight_payload():
    return {
        "tail_number": "N123AB",
        "start_date": datetime(2026, 3, 10, 8, 0),
        "end_date": datetime(2026, 3, 10, 12, 0),
        "start_airport": "KBOS",
        "end_airport": "KJFK",
        "notes": "Charter",
        "created_by": "user-1",
    }


@pytest.fixture
def client(data):
    from server import app

    app.dependency_overrides[get_data_access] = lambda: data
    yield TestClient(app)
    app.dependency_overrides.clear()


def issue_token(user, expires_in=timedelta(hours=1)):
    """Token as the auth backend would hand it out"""
    settings = get_settings()
    claims = {"sub": user.id, "email": user.email, "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _headers(user):
    return {"Authorization": f"Bearer {issue_token(user)}"}


@pytest.fixture
def auth_headers(user):
    return _headers(user)


@pytest.fixture
def other_headers(other_user):
    return _headers(other_user)


@pytest.fixture
def expired_headers(user):
    return {"Authorization": f"Bearer {issue_token(user, expires_in=timedelta(minutes=-5))}"}

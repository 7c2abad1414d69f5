"""
Pytest configuration and shared fixtures.
"""

import copy
from typing import Any, Dict, List, Optional

import pytest
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from services.credentials import CredentialService
from store import MongoDBManager, RecordStore

TEST_SECRET = "test-signing-secret"

COLLECTION_NAMES = {"account": "users", "book": "books", "review": "reviews"}


def _matches(document: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for field, expected in query.items():
        if field == "$and":
            if not all(_matches(document, sub) for sub in expected):
                return False
        elif document.get(field) != expected:
            return False
    return True


class InsertOneResult:
    def __init__(self, inserted_id):
        self.inserted_id = inserted_id


class FakeCursor:
    """Async iterator over a snapshot of matching documents."""

    def __init__(self, documents: List[Dict[str, Any]]):
        self._documents = documents

    def __aiter__(self):
        self._iter = iter(self._documents)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


class FakeCollection:
    """In-memory stand-in for the subset of the motor collection API the record store uses."""

    def __init__(self, name: str):
        self.name = name
        self.documents: List[Dict[str, Any]] = []
        self.unique_fields = set()
        self.indexes = []

    async def create_index(self, field, unique: bool = False):
        self.indexes.append((field, unique))
        if unique:
            self.unique_fields.add(field)
        return f"{field}_1"

    def find(self, query: Dict[str, Any]) -> FakeCursor:
        return FakeCursor([copy.deepcopy(d) for d in self.documents if _matches(d, query)])

    async def find_one(self, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        for document in self.documents:
            if _matches(document, query):
                return copy.deepcopy(document)
        return None

    async def insert_one(self, document: Dict[str, Any]) -> InsertOneResult:
        for field in self.unique_fields:
            if any(d.get(field) == document.get(field) for d in self.documents):
                raise DuplicateKeyError(f"E11000 duplicate key error collection: {self.name} index: {field}_1")
        stored = copy.deepcopy(document)
        stored.setdefault("_id", ObjectId())
        self.documents.append(stored)
        return InsertOneResult(stored["_id"])

    async def find_one_and_update(self, query, update, return_document=ReturnDocument.BEFORE):
        for document in self.documents:
            if _matches(document, query):
                before = copy.deepcopy(document)
                document.update(update.get("$set", {}))
                return copy.deepcopy(document) if return_document == ReturnDocument.AFTER else before
        return None

    async def find_one_and_delete(self, query):
        for index, document in enumerate(self.documents):
            if _matches(document, query):
                return self.documents.pop(index)
        return None

    async def count_documents(self, query: Dict[str, Any]) -> int:
        return sum(1 for d in self.documents if _matches(d, query))


class FakeDatabase:
    def __init__(self):
        self.collections: Dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]

    async def command(self, name: str):
        return {"ok": 1}


class FakeAdmin:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error

    async def command(self, name: str):
        if self.error:
            raise self.error
        return {"ok": 1}


class FakeClient:
    """Motor client double; every database name maps to the same in-memory database."""

    def __init__(self, database: FakeDatabase, error: Optional[Exception] = None):
        self.database = database
        self.admin = FakeAdmin(error)
        self.closed = False

    def __getitem__(self, name: str) -> FakeDatabase:
        return self.database

    def close(self):
        self.closed = True


@pytest.fixture
def fake_database():
    """Shared in-memory database."""
    return FakeDatabase()


@pytest.fixture
def client_factory(fake_database):
    """Client factory that records every client it builds."""
    created = []

    def factory(url, **kwargs):
        client = FakeClient(fake_database)
        created.append(client)
        return client

    factory.created = created
    return factory


@pytest.fixture
def db_manager(client_factory):
    """MongoDB manager backed by the in-memory database."""
    return MongoDBManager(
        connection_url="mongodb://localhost:27017",
        database_name="book_reviews_test",
        collection_names=COLLECTION_NAMES,
        client_factory=client_factory,
    )


@pytest.fixture
def record_store(db_manager):
    """Record store over the in-memory database."""
    return RecordStore(db_manager)


@pytest.fixture
def credential_service():
    """Credential service with the minimum bcrypt cost to keep tests fast."""
    return CredentialService(secret=TEST_SECRET, rounds=4)


@pytest.fixture
def account_a():
    return str(ObjectId())


@pytest.fixture
def account_b():
    return str(ObjectId())


@pytest.fixture
def sample_book():
    return {"title": "Dune", "author": "Herbert", "genre": "SciFi"}

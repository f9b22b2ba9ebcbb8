"""
Pytest configuration and shared fixtures.
"""

import uuid
from copy import deepcopy
from typing import Any, Dict, List, Optional

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from career_findr.core.auth import create_access_token
from career_findr.core.config import Settings
from career_findr.db.mongodb import LiveQuery, Snapshot
from career_findr.services.email_service import Mailer
from career_findr.services.realtime import RealtimeSubscriptionManager
from career_findr.services.user_service import UserService


def _matches(doc: dict, filters: Dict[str, Any]) -> bool:
    for key, expected in filters.items():
        actual = doc.get(key)
        if isinstance(actual, list):
            if expected not in actual:
                return False
        elif actual != expected:
            return False
    return True


class FakeListener:
    """A live query registered with the in-memory store."""

    def __init__(self, store, query, on_snapshot, on_error):
        self.store = store
        self.query = query
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.sequence = 0
        self.cancelled = False

    def push(self):
        self.sequence += 1
        self.on_snapshot(Snapshot(self.sequence, self.store.run_query(self.query)))

    def fail(self, exc: Exception):
        self.on_error(exc)

    def cancel(self):
        self.cancelled = True


class InMemoryDocumentStore:
    """
    Same interface as MongoDocumentStore, backed by dicts.

    Listeners get their first snapshot synchronously; later snapshots are
    pushed with `emit(collection)`.
    """

    def __init__(self):
        self.collections: Dict[str, Dict[str, dict]] = {}
        self.listeners: List[FakeListener] = []
        self.fail_listen = False
        # Called before every insert; raise from it to simulate a failed write
        self.insert_hook = None

    def _collection(self, name: str) -> Dict[str, dict]:
        return self.collections.setdefault(name, {})

    def insert(self, collection: str, data: dict) -> str:
        if self.insert_hook:
            self.insert_hook(collection, data)
        doc_id = uuid.uuid4().hex
        doc = deepcopy(data)
        doc.pop("id", None)
        self._collection(collection)[doc_id] = doc
        return doc_id

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        doc = self._collection(collection).get(doc_id)
        if doc is None:
            return None
        return {**deepcopy(doc), "id": doc_id}

    def update(self, collection: str, doc_id: str, fields: dict) -> bool:
        docs = self._collection(collection)
        if doc_id not in docs:
            return False
        docs[doc_id].update(deepcopy(fields))
        return True

    def delete(self, collection: str, doc_id: str) -> bool:
        return self._collection(collection).pop(doc_id, None) is not None

    def find(self, collection: str, filters=None, order_by=None, limit=None) -> List[dict]:
        docs = [
            {**deepcopy(doc), "id": doc_id}
            for doc_id, doc in self._collection(collection).items()
            if _matches(doc, filters or {})
        ]
        # Apply the least significant key first; sorts are stable
        for field, direction in reversed(list(order_by or ())):
            docs.sort(
                key=lambda d: (d.get(field) is None, d.get(field)),
                reverse=direction < 0,
            )
        if limit:
            docs = docs[:limit]
        return docs

    def run_query(self, query: LiveQuery) -> List[dict]:
        return self.find(query.collection, query.filters, query.order_by, query.limit)

    def listen(self, query: LiveQuery, on_snapshot, on_error):
        if self.fail_listen:
            raise ServerSelectionTimeoutError("store unreachable")
        listener = FakeListener(self, query, on_snapshot, on_error)
        self.listeners.append(listener)
        listener.push()
        return listener.cancel

    def emit(self, collection: str) -> None:
        """Deliver a fresh snapshot to every open listener on `collection`."""
        for listener in list(self.listeners):
            if not listener.cancelled and listener.query.collection == collection:
                listener.push()

    def count(self, collection: str) -> int:
        return len(self._collection(collection))


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def manager(store) -> RealtimeSubscriptionManager:
    return RealtimeSubscriptionManager(store)


@pytest.fixture
def users(store) -> UserService:
    return UserService(store)


@pytest.fixture
def make_user(users):
    """Factory for accounts: make_user("student", name="Ana", skills=[...])."""
    def factory(role: str, email: str = None, name: str = "", password_hash: str = "x", **profile):
        email = email or f"{role}-{uuid.uuid4().hex[:8]}@example.com"
        account = users.create_account(email, password_hash, role, name=name)
        if profile:
            users.store.update(users.collection, account.id, profile)
            account = users.get(account.id)
        return account
    return factory


@pytest.fixture
def student(make_user):
    return make_user("student", name="Sam Student", skills=["React", "Python"], experience_level="Senior Level")


@pytest.fixture
def company(make_user):
    return make_user("company", name="Acme Corp")


@pytest.fixture
def admin(make_user):
    return make_user("admin", name="Ada Admin")


@pytest.fixture
def auth_headers():
    """Bearer header for an account: auth_headers(user)."""
    def build(user) -> Dict[str, str]:
        token = create_access_token({"sub": user.id, "role": user.role})
        return {"Authorization": f"Bearer {token}"}
    return build


@pytest.fixture
def mailer() -> Mailer:
    """Mailer without SMTP; sent mail lands in `mailer.outbox`."""
    return Mailer(Settings(smtp_host=""))


@pytest.fixture
def client(store, manager, mailer):
    """TestClient wired to the in-memory store. Lifespan hooks are not run."""
    from fastapi.testclient import TestClient

    from career_findr.db.mongodb import get_document_store
    from career_findr.main import app
    from career_findr.services.email_service import get_mailer
    from career_findr.services.realtime import get_subscription_manager

    app.dependency_overrides[get_document_store] = lambda: store
    app.dependency_overrides[get_subscription_manager] = lambda: manager
    app.dependency_overrides[get_mailer] = lambda: mailer
    yield TestClient(app)
    app.dependency_overrides.clear()

import copy
import uuid

import pytest
from fastapi.testclient import TestClient
from google.api_core.exceptions import NotFound
from google.cloud.firestore_v1.transforms import Increment

from ohplus.core.security import get_current_user
from ohplus.db.firestore import get_db
from ohplus.main import app


def _lookup(data: dict, path: str):
    value = data
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value


def _assign(data: dict, path: str, value) -> None:
    parts = path.split(".")
    target = data
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    current = target.get(parts[-1])
    if isinstance(value, Increment):
        value = (current or 0) + value.value
    target[parts[-1]] = value


def _matches(data: dict, field: str, op: str, expected) -> bool:
    value = _lookup(data, field)
    if op == "==":
        return value == expected
    if op == "!=":
        return value != expected
    if op == "in":
        return value in expected
    if op == "array_contains":
        return isinstance(value, list) and expected in value
    if value is None:
        return False
    if op == "<":
        return value < expected
    if op == "<=":
        return value <= expected
    if op == ">":
        return value > expected
    if op == ">=":
        return value >= expected
    raise ValueError(f"unsupported operator {op}")


def _sort_key(value):
    return (-1, None) if value is None else (0, value)


class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeWatch:
    def __init__(self):
        self.active = True

    def unsubscribe(self):
        self.active = False


class FakeDocument:
    def __init__(self, db, collection: str, doc_id: str):
        self._db = db
        self._collection = collection
        self.id = doc_id

    @property
    def _docs(self) -> dict:
        return self._db.data.setdefault(self._collection, {})

    def get(self, transaction=None) -> FakeSnapshot:
        return FakeSnapshot(self, self._docs.get(self.id))

    def set(self, data: dict, merge: bool = False) -> None:
        if merge and self.id in self._docs:
            self._docs[self.id].update(copy.deepcopy(data))
        else:
            self._docs[self.id] = copy.deepcopy(data)

    def update(self, changes: dict) -> None:
        if self.id not in self._docs:
            raise NotFound(f"No document to update: {self._collection}/{self.id}")
        for key, value in changes.items():
            _assign(self._docs[self.id], key, copy.deepcopy(value))

    def delete(self) -> None:
        self._docs.pop(self.id, None)


class FakeBatch:
    def __init__(self):
        self._writes = []

    def set(self, ref, data, merge=False):
        self._writes.append(lambda: ref.set(data, merge=merge))

    def update(self, ref, changes):
        self._writes.append(lambda: ref.update(changes))

    def delete(self, ref):
        self._writes.append(ref.delete)

    def commit(self):
        for write in self._writes:
            write()
        self._writes = []


class FakeTransaction(FakeBatch):
    """Queues writes until commit, the way firestore.transactional drives it."""

    _read_only = False
    _max_attempts = 5

    def __init__(self):
        super().__init__()
        self._id = None

    def _clean_up(self):
        self._id = None
        self._writes = []

    def _begin(self, retry_id=None):
        self._id = b"txn"

    def _commit(self):
        self.commit()
        self._clean_up()
        return []

    def _rollback(self):
        self._clean_up()


class FakeQuery:
    def __init__(self, db, collection: str, filters=(), orders=(), limit=None, after=None):
        self._db = db
        self._collection = collection
        self._filters = tuple(filters)
        self._orders = tuple(orders)
        self._limit = limit
        self._after = after

    def _copy(self, **changes):
        state = {
            "filters": self._filters,
            "orders": self._orders,
            "limit": self._limit,
            "after": self._after,
        }
        state.update(changes)
        return FakeQuery(self._db, self._collection, **state)

    def where(self, field_path=None, op_string=None, value=None, filter=None):
        if filter is not None:
            field_path, op_string, value = filter.field_path, filter.op_string, filter.value
        return self._copy(filters=self._filters + ((field_path, op_string, value),))

    def order_by(self, field: str, direction: str = "ASCENDING"):
        return self._copy(orders=self._orders + ((field, direction),))

    def limit(self, count: int):
        return self._copy(limit=count)

    def start_after(self, snapshot):
        return self._copy(after=snapshot.id)

    def _results(self) -> list[FakeSnapshot]:
        docs = self._db.data.get(self._collection, {})
        rows = [
            (doc_id, data)
            for doc_id, data in docs.items()
            if all(_matches(data, f, op, v) for f, op, v in self._filters)
        ]
        for field, direction in reversed(self._orders):
            rows.sort(
                key=lambda row: _sort_key(_lookup(row[1], field)),
                reverse=direction == "DESCENDING",
            )
        if self._after is not None:
            ids = [doc_id for doc_id, _ in rows]
            if self._after in ids:
                rows = rows[ids.index(self._after) + 1 :]
        if self._limit is not None:
            rows = rows[: self._limit]
        return [
            FakeSnapshot(FakeDocument(self._db, self._collection, doc_id), copy.deepcopy(data))
            for doc_id, data in rows
        ]

    def stream(self):
        return iter(self._results())

    def get(self):
        return self._results()

    def on_snapshot(self, callback):
        watch = FakeWatch()
        self._db.watches.append((self, callback, watch))
        callback(self._results(), [], None)
        return watch


class FakeCollection(FakeQuery):
    def __init__(self, db, name: str):
        super().__init__(db, name)

    def document(self, doc_id: str | None = None) -> FakeDocument:
        return FakeDocument(self._db, self._collection, doc_id or uuid.uuid4().hex[:20])

    def add(self, data: dict):
        ref = self.document()
        ref.set(data)
        return None, ref


class FakeFirestore:
    def __init__(self):
        self.data: dict[str, dict[str, dict]] = {}
        self.watches: list = []

    def collection(self, name: str) -> FakeCollection:
        return FakeCollection(self, name)

    def transaction(self) -> FakeTransaction:
        return FakeTransaction()

    def batch(self) -> FakeBatch:
        return FakeBatch()

    def seed(self, collection: str, doc_id: str, data: dict) -> dict:
        self.collection(collection).document(doc_id).set(data)
        return {**data, "id": doc_id}

    def fire_watches(self) -> None:
        for query, callback, watch in list(self.watches):
            if watch.active:
                callback(query._results(), [], None)


@pytest.fixture()
def fake_db():
    return FakeFirestore()


@pytest.fixture()
def api_user():
    return {
        "uid": "user-1",
        "email": "ana@ohplus.ph",
        "first_name": "Ana",
        "last_name": "Reyes",
        "company_id": "company-1",
        "license_key": "LIC-1",
        "department": "Sales",
        "roles": ["sales"],
    }


@pytest.fixture()
def client(fake_db, api_user, monkeypatch, tmp_path):
    monkeypatch.delenv("RESEND_API_KEY", raising=False)
    monkeypatch.setenv("LOCAL_STORAGE", "1")
    monkeypatch.setenv("LOCAL_STORAGE_DIR", str(tmp_path / "storage"))
    app.dependency_overrides[get_db] = lambda: fake_db
    app.dependency_overrides[get_current_user] = lambda: api_user
    yield TestClient(app)
    app.dependency_overrides.clear()

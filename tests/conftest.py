"""Common utilities for tests."""

from __future__ import annotations

import datetime
import functools
import unittest
import unittest.mock
from copy import deepcopy
from typing import Any, Callable, Optional

from firebase_admin import firestore
from google.api_core.exceptions import NotFound
from mockfirestore import CollectionReference, MockFirestore, Query
from mockfirestore.document import DocumentReference, DocumentSnapshot

from brackethub.store import StoreClient

# Names of every collection opened below a document. mockfirestore keeps
# sub-collections inside the parent document's dict, so these keys are
# hidden from snapshots and preserved across writes.
SUBCOLLECTIONS: set[str] = set()


def _walk(data: dict[str, Any], path: list[str], create: bool = False) -> Any:
    node = data
    for key in path:
        if key not in node:
            if not create:
                raise KeyError(key)
            node[key] = {}
        node = node[key]
    return node


def _fields(raw: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in raw.items() if k not in SUBCOLLECTIONS}


def _subcollections(raw: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in raw.items() if k in SUBCOLLECTIONS}


def _resolve_timestamps(value: Any) -> Any:
    if value is firestore.SERVER_TIMESTAMP:
        return datetime.datetime.now(datetime.timezone.utc)
    if isinstance(value, dict):
        return {k: _resolve_timestamps(v) for k, v in value.items()}
    return value


def _apply_transform(existing: Any, value: Any) -> Any:
    """Evaluate a Firestore field transform against the stored value."""
    if isinstance(value, firestore.ArrayUnion):
        merged = list(existing) if isinstance(existing, list) else []
        for item in value.values:
            if item not in merged:
                merged.append(item)
        return merged
    if isinstance(value, firestore.ArrayRemove):
        current = list(existing) if isinstance(existing, list) else []
        return [item for item in current if item not in value.values]
    if isinstance(value, firestore.Increment):
        return (existing or 0) + value.value
    return deepcopy(_resolve_timestamps(value))


def patch_mockfirestore() -> None:
    """Apply monkeypatches to mockfirestore.

    Adds FieldFilter support, reference equality, transaction-aware reads,
    ArrayUnion/ArrayRemove/Increment/SERVER_TIMESTAMP and dotted field paths
    in updates, and sub-collections that survive writes to their parent.
    """

    def collection_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:  # noqa: E501
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(CollectionReference, "_where"):
        CollectionReference._where = CollectionReference.where
        CollectionReference.where = collection_where

    def query_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(Query, "_where"):
        Query._where = Query.where
        Query.where = query_where

    def doc_ref_eq(self: Any, other: Any) -> bool:
        if not isinstance(other, DocumentReference):
            return False
        return self._path == other._path

    if not hasattr(DocumentReference, "_orig_eq"):
        DocumentReference._orig_eq = DocumentReference.__eq__
        DocumentReference.__eq__ = doc_ref_eq
        DocumentReference.__hash__ = lambda self: hash(tuple(self._path))

    if hasattr(DocumentReference, "_orig_get"):
        return

    DocumentReference._orig_get = DocumentReference.get

    def doc_ref_get(self: Any, transaction: Any = None, **kwargs: Any) -> Any:
        """Handle the transaction argument and hide sub-collections."""
        try:
            raw = _walk(self._data, self._path)
        except KeyError:
            raw = {}
        return DocumentSnapshot(self, _fields(raw))

    def doc_ref_set(self: Any, data: dict[str, Any], merge: bool = False) -> None:
        raw = _walk(self._data, self._path, create=True)
        if merge:
            merged = _fields(raw)
            merged.update(deepcopy(_resolve_timestamps(data)))
            new_raw = merged
        else:
            new_raw = deepcopy(_resolve_timestamps(data))
        new_raw.update(_subcollections(raw))
        _walk(self._data, self._path[:-1], create=True)[self._path[-1]] = new_raw

    def doc_ref_update(self: Any, data: dict[str, Any]) -> None:
        raw = _walk(self._data, self._path, create=True)
        fields = _fields(raw)
        if not fields:
            raise NotFound(f"No document to update: {'/'.join(self._path)}")
        for key, value in data.items():
            *parents, leaf = key.split(".")
            node = _walk(fields, parents, create=True)
            node[leaf] = _apply_transform(node.get(leaf), value)
        fields.update(_subcollections(raw))
        _walk(self._data, self._path[:-1])[self._path[-1]] = fields

    def doc_ref_delete(self: Any) -> None:
        parent = _walk(self._data, self._path[:-1], create=True)
        parent.pop(self._path[-1], None)

    def doc_ref_collection(self: Any, name: str) -> CollectionReference:
        SUBCOLLECTIONS.add(name)
        _walk(self._data, self._path + [name], create=True)
        return CollectionReference(self._data, self._path + [name], parent=self)

    def collection_stream(self: Any, transaction: Any = None) -> Any:
        """Yield only documents that exist."""
        for key in sorted(_walk(self._data, self._path, create=True)):
            snapshot = self.document(key).get()
            if snapshot.exists:
                yield snapshot

    DocumentReference.get = doc_ref_get
    DocumentReference.set = doc_ref_set
    DocumentReference.update = doc_ref_update
    DocumentReference.delete = doc_ref_delete
    DocumentReference.collection = doc_ref_collection
    CollectionReference.stream = collection_stream


class MockBatch:
    """Queues writes and applies them in order on commit."""

    def __init__(self, db: Any) -> None:
        self.db = db
        self.writes: list[tuple[str, Any, Any]] = []
        self.commit = unittest.mock.MagicMock(side_effect=self._real_commit)

    def set(self, ref: Any, data: Any, merge: bool = False) -> None:
        self.writes.append(("set_merge" if merge else "set", ref, data))

    def update(self, ref: Any, data: Any) -> None:
        self.writes.append(("update", ref, data))

    def delete(self, ref: Any) -> None:
        self.writes.append(("delete", ref, None))

    def _real_commit(self) -> None:
        for op, ref, data in self.writes:
            if op == "delete":
                ref.delete()
            elif op == "set_merge":
                ref.set(data, merge=True)
            elif op == "set":
                ref.set(data)
            else:
                ref.update(data)


class MockTransaction(MockBatch):
    """Transaction whose writes are discarded unless the callback returns."""

    def __init__(self, db: Any) -> None:
        super().__init__(db)
        self.committed = False

    def _real_commit(self) -> None:
        super()._real_commit()
        self.committed = True


def mock_transactional(func: Callable[..., Any]) -> Callable[..., Any]:
    """Stand-in for firestore.transactional: run once, commit on success."""

    @functools.wraps(func)
    def wrapper(transaction: Any, *args: Any, **kwargs: Any) -> Any:
        result = func(transaction, *args, **kwargs)
        transaction.commit()
        return result

    return wrapper


def make_mock_db() -> MockFirestore:
    patch_mockfirestore()
    db = MockFirestore()
    db.transaction = unittest.mock.MagicMock(
        side_effect=lambda **kwargs: MockTransaction(db)
    )
    return db


class FirestoreTestCase(unittest.TestCase):
    """Base class giving each test a fresh mock database and StoreClient."""

    def setUp(self) -> None:
        SUBCOLLECTIONS.clear()
        self.db = make_mock_db()
        self.store = StoreClient(self.db)
        transactional = unittest.mock.patch(
            "brackethub.store.firestore.transactional", new=mock_transactional
        )
        transactional.start()
        self.addCleanup(transactional.stop)

    def add_user(self, uid: str, username: Optional[str] = None, **extra: Any) -> dict[str, Any]:
        """Create a profile document and its username reservation directly."""
        profile = {
            "uid": uid,
            "username": username or uid,
            "displayName": None,
            "email": f"{uid}@example.com",
            "photoURL": None,
            "activeTournamentId": None,
            "stats": {"tournamentsHosted": 0, "tournamentsPlayed": 0, "tournamentsWon": 0},
        }
        profile.update(extra)
        self.db.collection("users").document(uid).set(profile)
        self.db.collection("usernames").document(profile["username"]).set({"uid": uid})
        return profile

    def profile(self, uid: str) -> dict[str, Any]:
        return self.db.collection("users").document(uid).get().to_dict()

    def tournament(self, tournament_id: str) -> dict[str, Any]:
        return self.db.collection("tournaments").document(tournament_id).get().to_dict()

    def team(self, tournament_id: str, team_id: str) -> Optional[dict[str, Any]]:
        snapshot = (
            self.db.collection("tournaments")
            .document(tournament_id)
            .collection("teams")
            .document(team_id)
            .get()
        )
        return snapshot.to_dict() if snapshot.exists else None

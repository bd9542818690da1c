"""Explicit handle on the Firestore document store.

Services receive a ``StoreClient`` instead of reaching for a module level
``firestore.client()``. It owns error translation, transactions and
snapshot subscriptions so that call sites only describe document mutations.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable, Iterator

from firebase_admin import firestore
from flask import current_app
from google.api_core import exceptions as google_exceptions

from .errors import NotFoundError, StoreUnavailableError

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(action: str) -> Iterator[None]:
    """Translate Firestore client failures into application errors."""
    try:
        yield
    except google_exceptions.NotFound as e:
        raise NotFoundError(f"Document not found while trying to {action}.") from e
    except (google_exceptions.GoogleAPICallError, google_exceptions.RetryError) as e:
        logger.error(f"Store operation failed ({action}): {e}")
        raise StoreUnavailableError() from e


def snapshot_to_dict(snapshot: Any) -> dict[str, Any] | None:
    """Return the document data with its id, or None if it does not exist."""
    if snapshot is None or not snapshot.exists:
        return None
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    return data


class Subscription:
    """Handle for a live document listener. Call ``close`` to stop it."""

    def __init__(self, watch: Any) -> None:
        self._watch = watch

    @property
    def closed(self) -> bool:
        return self._watch is None

    def close(self) -> None:
        if self._watch is not None:
            self._watch.unsubscribe()
            self._watch = None

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class StoreClient:
    """Thin wrapper over a Firestore client."""

    def __init__(self, db: Client) -> None:
        self.db = db

    # Sentinels ---------------------------------------------------------

    @staticmethod
    def array_union(values: list[Any]) -> Any:
        return firestore.ArrayUnion(values)

    @staticmethod
    def array_remove(values: list[Any]) -> Any:
        return firestore.ArrayRemove(values)

    @staticmethod
    def increment(amount: int = 1) -> Any:
        return firestore.Increment(amount)

    @staticmethod
    def server_timestamp() -> Any:
        return firestore.SERVER_TIMESTAMP

    # References and reads ----------------------------------------------

    def document(self, *path: str) -> DocumentReference:
        """Build a document reference from alternating collection/document ids."""
        if not path or len(path) % 2:
            raise ValueError(f"Invalid document path: {path!r}")
        ref: Any = self.db
        for collection_id, document_id in zip(path[::2], path[1::2]):
            ref = ref.collection(collection_id).document(document_id)
        return ref

    def new_document(self, collection_id: str) -> DocumentReference:
        """Return a reference with a generated id in a top level collection."""
        return self.db.collection(collection_id).document()

    def get(self, ref: DocumentReference, transaction: Any = None) -> dict[str, Any] | None:
        """Read one document, optionally through a transaction."""
        with store_errors("read a document"):
            if transaction is not None:
                snapshot = ref.get(transaction=transaction)
            else:
                snapshot = ref.get()
        return snapshot_to_dict(snapshot)

    def where(self, query: Any, field: str, op: str, value: Any) -> Any:
        return query.where(filter=firestore.FieldFilter(field, op, value))

    def stream(self, query: Any) -> list[dict[str, Any]]:
        """Run a query and return every matching document as a dict."""
        with store_errors("run a query"):
            docs = list(query.stream())
        return [data for data in (snapshot_to_dict(doc) for doc in docs) if data]

    # Writes ------------------------------------------------------------

    def update(self, ref: DocumentReference, data: dict[str, Any]) -> None:
        with store_errors("update a document"):
            ref.update(data)

    def run_transaction(self, callback: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run ``callback(transaction, *args, **kwargs)`` atomically.

        Firestore retries the callback on contention, so it must only
        describe reads and writes through the transaction it is given.
        """
        transaction = self.db.transaction()
        with store_errors("commit a transaction"):
            return firestore.transactional(callback)(transaction, *args, **kwargs)

    # Subscriptions -----------------------------------------------------

    def subscribe(
        self,
        ref: DocumentReference,
        callback: Callable[[dict[str, Any] | None], None],
    ) -> Subscription:
        """Deliver the full document to ``callback`` on every change."""

        def on_snapshot(snapshots: list[Any], changes: Any, read_time: Any) -> None:
            # A deleted document arrives as an empty snapshot list.
            if not snapshots:
                callback(None)
            for snapshot in snapshots:
                callback(snapshot_to_dict(snapshot))

        with store_errors("subscribe to a document"):
            watch = ref.on_snapshot(on_snapshot)
        return Subscription(watch)


def get_store() -> StoreClient:
    """Return the StoreClient bound to the current application."""
    store = current_app.extensions.get("store")
    if store is None:
        store = StoreClient(firestore.client())
        current_app.extensions["store"] = store
    return store


def init_app(app: Any) -> None:
    """Register a pre-built StoreClient (tests) or defer to firestore.client()."""
    if app.config.get("STORE_CLIENT") is not None:
        app.extensions["store"] = app.config["STORE_CLIENT"]

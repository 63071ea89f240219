"""
In-memory document store.

Stands in for the managed document database the coaching app was built
on. It implements the DocumentStore protocol: keyed documents grouped in
collections, equality queries, ordered range listing and live
subscriptions that are notified whenever their collection changes.

Not a storage engine. Everything lives in a dictionary and disappears with
the process, which is what local development and tests want.
"""

import copy
import logging
import threading
from dataclasses import dataclass
from typing import Any, Mapping, Optional
from uuid import uuid4

from ...core.clients.accounts import Document, DocumentCallback

logger = logging.getLogger(__name__)


class DocumentStoreError(Exception):
    """Raised when a document store operation cannot be performed."""
    pass


def _sort_key(value: Any) -> tuple[bool, Any]:
    # Missing fields sort first, like nulls.
    return (value is not None, value)


@dataclass(eq=False)
class _Listener:
    collection: str
    callback: DocumentCallback
    field: Optional[str] = None
    value: Any = None
    order_by: Optional[str] = None
    descending: bool = False
    active: bool = True


class InMemorySubscription:
    """Handle returned by subscribe(); call unsubscribe() to stop updates."""

    def __init__(self, store: "InMemoryDocumentStore", listener: _Listener) -> None:
        self._store = store
        self._listener = listener

    def unsubscribe(self) -> None:
        self._store._remove_listener(self._listener)


class InMemoryDocumentStore:
    """
    Dictionary-backed document store.

    Storage layout: {collection: {key: data}}. Documents are copied on the
    way in and on the way out, so callers never share state with the store.
    Listener callbacks run synchronously after the write, outside the lock.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._listeners: list[_Listener] = []
        self._lock = threading.RLock()

        logger.info("Initialized in-memory document store")

    def get(self, collection: str, key: str) -> Optional[Document]:
        with self._lock:
            data = self._collections.get(collection, {}).get(key)
            return Document(key=key, data=copy.deepcopy(data)) if data is not None else None

    def set(self, collection: str, key: str, data: Mapping[str, Any]) -> Document:
        """Create or overwrite the document at key."""
        if not key:
            raise DocumentStoreError("Document key cannot be empty")
        with self._lock:
            self._collections.setdefault(collection, {})[key] = copy.deepcopy(dict(data))
        logger.debug("Document written", extra={"collection": collection, "key": key})
        self._notify(collection)
        return Document(key=key, data=copy.deepcopy(dict(data)))

    def add(self, collection: str, data: Mapping[str, Any]) -> Document:
        """Store a document under a generated key."""
        return self.set(collection, uuid4().hex, data)

    def delete(self, collection: str, key: str) -> bool:
        with self._lock:
            removed = self._collections.get(collection, {}).pop(key, None) is not None
        if removed:
            logger.debug("Document deleted", extra={"collection": collection, "key": key})
            self._notify(collection)
        return removed

    def where(self, collection: str, field: str, value: Any) -> list[Document]:
        """Documents whose field equals value, in insertion order."""
        with self._lock:
            return [
                Document(key=key, data=copy.deepcopy(data))
                for key, data in self._collections.get(collection, {}).items()
                if field in data and data[field] == value
            ]

    def list_range(
        self,
        collection: str,
        order_by: str,
        descending: bool = False,
        limit: Optional[int] = None,
        start_after: Any = None,
    ) -> list[Document]:
        """
        Documents ordered by a field.

        ``start_after`` skips everything up to and including that field
        value in the chosen direction; ``limit`` caps the page size.
        """
        with self._lock:
            documents = [
                Document(key=key, data=copy.deepcopy(data))
                for key, data in self._collections.get(collection, {}).items()
            ]
        documents = self._ordered(documents, order_by, descending)

        if start_after is not None:
            if descending:
                documents = [d for d in documents if d.data.get(order_by) is not None and d.data[order_by] < start_after]
            else:
                documents = [d for d in documents if d.data.get(order_by) is not None and d.data[order_by] > start_after]
        if limit is not None:
            documents = documents[:limit]
        return documents

    def subscribe(
        self,
        collection: str,
        callback: DocumentCallback,
        field: Optional[str] = None,
        value: Any = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> InMemorySubscription:
        """
        Watch a query's result set.

        The callback receives the full result set immediately and again
        after every write to the collection.
        """
        listener = _Listener(
            collection=collection,
            callback=callback,
            field=field,
            value=value,
            order_by=order_by,
            descending=descending,
        )
        with self._lock:
            self._listeners.append(listener)
        logger.debug("Subscription added", extra={"collection": collection, "field": field})
        callback(self._results(listener))
        return InMemorySubscription(self, listener)

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    @staticmethod
    def _ordered(documents: list[Document], order_by: str, descending: bool) -> list[Document]:
        return sorted(
            documents,
            key=lambda d: _sort_key(d.data.get(order_by)),
            reverse=descending,
        )

    def _results(self, listener: _Listener) -> list[Document]:
        if listener.field is not None:
            documents = self.where(listener.collection, listener.field, listener.value)
        else:
            with self._lock:
                documents = [
                    Document(key=key, data=copy.deepcopy(data))
                    for key, data in self._collections.get(listener.collection, {}).items()
                ]
        if listener.order_by is not None:
            documents = self._ordered(documents, listener.order_by, listener.descending)
        return documents

    def _notify(self, collection: str) -> None:
        with self._lock:
            listeners = [l for l in self._listeners if l.active and l.collection == collection]
        for listener in listeners:
            listener.callback(self._results(listener))

    def _remove_listener(self, listener: _Listener) -> None:
        with self._lock:
            listener.active = False
            if listener in self._listeners:
                self._listeners.remove(listener)


def create_document_store() -> InMemoryDocumentStore:
    """Factory for the application's document store."""
    return InMemoryDocumentStore()

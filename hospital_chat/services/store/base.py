"""
Document store interface.

Collections hold JSON-compatible documents keyed by id. Queries support
equality filters, ordering, limits and start-after cursors, evaluated over a
collection scan so every backend behaves the same way.
"""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from ...utils.ids import new_document_id

Document = Dict[str, Any]


class DocumentStore(ABC):
    """Abstract document store. Backends implement the five primitives."""

    @abstractmethod
    async def _insert(self, collection: str, doc_id: str, data: Document) -> None:
        ...

    @abstractmethod
    async def _fetch(self, collection: str, doc_id: str) -> Optional[Document]:
        ...

    @abstractmethod
    async def _write(self, collection: str, doc_id: str, data: Document) -> None:
        ...

    @abstractmethod
    async def _remove(self, collection: str, doc_id: str) -> bool:
        ...

    @abstractmethod
    async def _scan(self, collection: str) -> List[Tuple[str, Document]]:
        """All documents of a collection in insertion order."""
        ...

    def collection(self, name: str) -> "CollectionRef":
        return CollectionRef(self, name)

    async def close(self) -> None:
        """Release backend resources."""
        return None


class CollectionRef:
    """Handle on one named collection."""

    def __init__(self, store: DocumentStore, name: str):
        self.store = store
        self.name = name

    async def add(self, data: Document) -> str:
        """Insert with a generated id and return the id."""
        doc_id = new_document_id()
        await self.store._insert(self.name, doc_id, copy.deepcopy(data))
        return doc_id

    async def get(self, doc_id: str) -> Optional[Document]:
        """Return the document with its ``id`` or None."""
        if not doc_id:
            return None
        data = await self.store._fetch(self.name, doc_id)
        if data is None:
            return None
        return {"id": doc_id, **data}

    async def set(self, doc_id: str, data: Document, merge: bool = False) -> None:
        """Create or replace a document under a caller-chosen id."""
        payload = copy.deepcopy(data)
        payload.pop("id", None)
        if merge:
            existing = await self.store._fetch(self.name, doc_id)
            if existing is not None:
                existing.update(payload)
                payload = existing
        await self.store._write(self.name, doc_id, payload)

    async def update(self, doc_id: str, data: Document) -> bool:
        """Partial update of an existing document. Returns False when absent."""
        existing = await self.store._fetch(self.name, doc_id)
        if existing is None:
            return False
        payload = copy.deepcopy(data)
        payload.pop("id", None)
        existing.update(payload)
        await self.store._write(self.name, doc_id, existing)
        return True

    async def delete(self, doc_id: str) -> bool:
        return await self.store._remove(self.name, doc_id)

    def where(self, field: str, value: Any) -> "Query":
        return Query(self).where(field, value)

    def order_by(self, field: str, descending: bool = False) -> "Query":
        return Query(self).order_by(field, descending)

    def limit(self, count: int) -> "Query":
        return Query(self).limit(count)

    async def all(self) -> List[Document]:
        return await Query(self).get()


class Query:
    """Immutable chained query over a collection."""

    def __init__(
        self,
        ref: CollectionRef,
        filters: Tuple[Tuple[str, Any], ...] = (),
        ordering: Optional[Tuple[str, bool]] = None,
        count: Optional[int] = None,
        cursor: Optional[str] = None,
    ):
        self.ref = ref
        self.filters = filters
        self.ordering = ordering
        self.count = count
        self.cursor = cursor

    def _clone(self, **changes) -> "Query":
        params = {
            "filters": self.filters,
            "ordering": self.ordering,
            "count": self.count,
            "cursor": self.cursor,
        }
        params.update(changes)
        return Query(self.ref, **params)

    def where(self, field: str, value: Any) -> "Query":
        return self._clone(filters=self.filters + ((field, value),))

    def order_by(self, field: str, descending: bool = False) -> "Query":
        return self._clone(ordering=(field, descending))

    def limit(self, count: int) -> "Query":
        return self._clone(count=count)

    def start_after(self, doc_id: Optional[str]) -> "Query":
        """Resume after the document with this id in the query's order."""
        return self._clone(cursor=doc_id)

    def _matches(self, data: Document) -> bool:
        return all(data.get(field) == value for field, value in self.filters)

    async def get(self) -> List[Document]:
        rows = await self.ref.store._scan(self.ref.name)
        indexed = [
            (position, doc_id, data)
            for position, (doc_id, data) in enumerate(rows)
            if self._matches(data)
        ]

        if self.ordering is not None:
            field, descending = self.ordering

            def sort_key(item):
                position, _, data = item
                value = data.get(field)
                return (value is not None, value if value is not None else "", position)

            indexed.sort(key=sort_key, reverse=descending)

        if self.cursor:
            ids = [doc_id for _, doc_id, _ in indexed]
            if self.cursor in ids:
                indexed = indexed[ids.index(self.cursor) + 1:]

        if self.count is not None:
            indexed = indexed[: self.count]

        return [{"id": doc_id, **data} for _, doc_id, data in indexed]

    async def first(self) -> Optional[Document]:
        results = await self.limit(1).get()
        return results[0] if results else None

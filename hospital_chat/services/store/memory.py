"""
In-process document store.
"""

import copy
from typing import Dict, List, Optional, Tuple

from .base import Document, DocumentStore


class InMemoryDocumentStore(DocumentStore):
    """Dictionary-backed store used by default and in tests."""

    def __init__(self):
        self._collections: Dict[str, Dict[str, Document]] = {}

    def _bucket(self, collection: str) -> Dict[str, Document]:
        return self._collections.setdefault(collection, {})

    async def _insert(self, collection: str, doc_id: str, data: Document) -> None:
        self._bucket(collection)[doc_id] = copy.deepcopy(data)

    async def _fetch(self, collection: str, doc_id: str) -> Optional[Document]:
        data = self._bucket(collection).get(doc_id)
        return copy.deepcopy(data) if data is not None else None

    async def _write(self, collection: str, doc_id: str, data: Document) -> None:
        self._bucket(collection)[doc_id] = copy.deepcopy(data)

    async def _remove(self, collection: str, doc_id: str) -> bool:
        return self._bucket(collection).pop(doc_id, None) is not None

    async def _scan(self, collection: str) -> List[Tuple[str, Document]]:
        return [(doc_id, copy.deepcopy(data)) for doc_id, data in self._bucket(collection).items()]

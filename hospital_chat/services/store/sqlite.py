"""
SQLite-backed document store.
"""

import asyncio
import json
import sqlite3
from typing import List, Optional, Tuple

from .base import Document, DocumentStore
from ...core.exceptions import StoreError


class SQLiteDocumentStore(DocumentStore):
    """Stores each document as a JSON blob keyed by (collection, id)."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._lock = asyncio.Lock()
        self._ready = False

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    async def _ensure_table(self) -> None:
        """Ensure the documents table exists."""
        if self._ready:
            return

        def _create_table():
            conn = self._connect()
            try:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS documents (
                        seq INTEGER PRIMARY KEY AUTOINCREMENT,
                        collection TEXT NOT NULL,
                        doc_id TEXT NOT NULL,
                        data TEXT NOT NULL,
                        UNIQUE (collection, doc_id)
                    )
                    """
                )
                conn.commit()
            finally:
                conn.close()

        await asyncio.to_thread(_create_table)
        self._ready = True

    async def _run(self, fn):
        await self._ensure_table()
        async with self._lock:
            try:
                return await asyncio.to_thread(fn)
            except sqlite3.Error as exc:
                raise StoreError(f"SQLite store failure: {exc}") from exc

    async def _insert(self, collection: str, doc_id: str, data: Document) -> None:
        await self._write(collection, doc_id, data)

    async def _fetch(self, collection: str, doc_id: str) -> Optional[Document]:
        def _select() -> Optional[str]:
            conn = self._connect()
            try:
                cur = conn.execute(
                    "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
                    (collection, doc_id),
                )
                row = cur.fetchone()
            finally:
                conn.close()
            return row[0] if row else None

        raw = await self._run(_select)
        return json.loads(raw) if raw is not None else None

    async def _write(self, collection: str, doc_id: str, data: Document) -> None:
        encoded = json.dumps(data, ensure_ascii=False, default=str)

        def _upsert() -> None:
            conn = self._connect()
            try:
                conn.execute(
                    """
                    INSERT INTO documents (collection, doc_id, data) VALUES (?, ?, ?)
                    ON CONFLICT (collection, doc_id) DO UPDATE SET data = excluded.data
                    """,
                    (collection, doc_id, encoded),
                )
                conn.commit()
            finally:
                conn.close()

        await self._run(_upsert)

    async def _remove(self, collection: str, doc_id: str) -> bool:
        def _delete() -> bool:
            conn = self._connect()
            try:
                cur = conn.execute(
                    "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
                    (collection, doc_id),
                )
                conn.commit()
                return cur.rowcount > 0
            finally:
                conn.close()

        return await self._run(_delete)

    async def _scan(self, collection: str) -> List[Tuple[str, Document]]:
        def _select_all() -> List[Tuple[str, str]]:
            conn = self._connect()
            try:
                cur = conn.execute(
                    "SELECT doc_id, data FROM documents WHERE collection = ? ORDER BY seq",
                    (collection,),
                )
                return cur.fetchall()
            finally:
                conn.close()

        rows = await self._run(_select_all)
        return [(doc_id, json.loads(raw)) for doc_id, raw in rows]

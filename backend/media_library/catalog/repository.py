"""SQLite-backed record store for catalog items."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Any, Mapping, Sequence

import orjson

from media_library.core.errors import ItemNotFoundError
from media_library.db.sqlite import SQLiteDatabase
from media_library.models.entities import CatalogRecord, MediaType
from media_library.utils.ids import new_id
from media_library.utils.time import datetime_to_ms, ms_to_datetime, now_ms

_COLUMNS = "id, title, type, synopsis, keywords_json, metadata_json, notes, cover_image, created_at, updated_at"

_SORT_CLAUSES = {
    "createdAt": "created_at DESC",
    "title": "title COLLATE NOCASE ASC",
}

_UPDATABLE = ("title", "type", "synopsis", "keywords", "metadata", "notes", "cover_image")


class ItemRepository:
    """CRUD and sampling over the ``items`` table.

    Keywords and metadata are stored as JSON text. Every write commits before
    returning so index synchronization always observes committed state.
    """

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    def create(
        self,
        *,
        title: str,
        type: MediaType | str,
        synopsis: str,
        keywords: Sequence[str] | None = None,
        metadata: Mapping[str, Any] | None = None,
        notes: str | None = None,
        cover_image: str | None = None,
        item_id: str | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> CatalogRecord:
        now = now_ms()
        created = datetime_to_ms(created_at) if created_at else now
        updated = datetime_to_ms(updated_at) if updated_at else created
        record_id = item_id or new_id()
        with self.db.write() as conn:
            conn.execute(
                f"INSERT INTO items ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    record_id,
                    title,
                    MediaType(type).value,
                    synopsis,
                    _dumps(list(keywords or [])),
                    _dumps(dict(metadata or {})),
                    notes,
                    cover_image,
                    created,
                    updated,
                ],
            )
        return self.get(record_id)

    def get(self, item_id: str) -> CatalogRecord:
        row = self.db.query_one(f"SELECT {_COLUMNS} FROM items WHERE id = ?", [item_id])
        if row is None:
            raise ItemNotFoundError(item_id)
        return _row_to_record(row)

    def get_many(self, item_ids: Sequence[str]) -> list[CatalogRecord]:
        """Fetch records by id in one statement; result order is unspecified."""
        if not item_ids:
            return []
        placeholders = ",".join("?" for _ in item_ids)
        rows = self.db.query(
            f"SELECT {_COLUMNS} FROM items WHERE id IN ({placeholders})",
            list(item_ids),
        )
        return [_row_to_record(row) for row in rows]

    def list_items(
        self,
        search: str | None = None,
        media_type: str | None = None,
        sort_by: str = "createdAt",
    ) -> list[CatalogRecord]:
        clauses: list[str] = []
        params: list[Any] = []
        if search:
            clauses.append("title LIKE ?")
            params.append(f"%{search}%")
        if media_type and media_type != "ALL":
            clauses.append("type = ?")
            params.append(media_type)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        order = _SORT_CLAUSES.get(sort_by, _SORT_CLAUSES["createdAt"])
        rows = self.db.query(f"SELECT {_COLUMNS} FROM items{where} ORDER BY {order}", params)
        return [_row_to_record(row) for row in rows]

    def all(self) -> list[CatalogRecord]:
        rows = self.db.query(f"SELECT {_COLUMNS} FROM items ORDER BY created_at ASC, id ASC")
        return [_row_to_record(row) for row in rows]

    def update(self, item_id: str, changes: Mapping[str, Any]) -> CatalogRecord:
        self.get(item_id)
        updates: list[str] = []
        params: list[Any] = []
        for key in _UPDATABLE:
            if key not in changes:
                continue
            value = changes[key]
            if key == "keywords":
                updates.append("keywords_json = ?")
                params.append(_dumps(list(value or [])))
            elif key == "metadata":
                updates.append("metadata_json = ?")
                params.append(_dumps(dict(value or {})))
            elif key == "type":
                updates.append("type = ?")
                params.append(MediaType(value).value)
            else:
                updates.append(f"{key} = ?")
                params.append(value)
        if updates:
            updates.append("updated_at = ?")
            params.extend([now_ms(), item_id])
            with self.db.write() as conn:
                conn.execute(f"UPDATE items SET {', '.join(updates)} WHERE id = ?", params)
        return self.get(item_id)

    def delete(self, item_id: str) -> CatalogRecord:
        record = self.get(item_id)
        with self.db.write() as conn:
            conn.execute("DELETE FROM items WHERE id = ?", [item_id])
        return record

    def delete_all(self) -> int:
        with self.db.write() as conn:
            return conn.execute("DELETE FROM items").rowcount

    def count(self) -> int:
        row = self.db.query_one("SELECT COUNT(*) AS count FROM items")
        return int(row["count"]) if row else 0

    def sample(self, offset: int) -> CatalogRecord | None:
        """Return the record at ``offset`` in creation order, used for random picks."""
        row = self.db.query_one(
            f"SELECT {_COLUMNS} FROM items ORDER BY created_at ASC, id ASC LIMIT 1 OFFSET ?",
            [offset],
        )
        return _row_to_record(row) if row else None


def _dumps(value: Any) -> str:
    return orjson.dumps(value).decode("utf-8")


def _row_to_record(row: sqlite3.Row) -> CatalogRecord:
    return CatalogRecord(
        id=row["id"],
        title=row["title"],
        type=MediaType(row["type"]),
        synopsis=row["synopsis"],
        keywords=orjson.loads(row["keywords_json"]) if row["keywords_json"] else [],
        metadata=orjson.loads(row["metadata_json"]) if row["metadata_json"] else {},
        notes=row["notes"],
        cover_image=row["cover_image"],
        created_at=ms_to_datetime(row["created_at"]),
        updated_at=ms_to_datetime(row["updated_at"]),
    )


__all__ = ["ItemRepository"]

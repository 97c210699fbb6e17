"""Document-store adapters.

Every record type lives in its own collection. A collection stores plain
dict documents and stamps ``_id``, ``createdAt`` and ``updatedAt`` itself;
callers never supply those fields. Two backends are provided: an in-process
``MemoryStore`` and a ``SQLiteStore`` that keeps one JSON document per row.
"""

from __future__ import annotations

import functools
import json
import logging
import re
import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any
from urllib.parse import urlparse

import aiosqlite

from records_api.config import DATABASE_PATH, DATABASE_URL
from records_api.errors import StoreUnavailable

logger = logging.getLogger(__name__)

RESERVED_FIELDS = ("_id", "createdAt", "updatedAt")

Filter = dict[str, Any]


@dataclass(frozen=True)
class Contains:
    """Case-insensitive substring match on a string field."""

    term: str


@dataclass(frozen=True)
class Either:
    """Logical OR over ``(field, matcher)`` pairs.

    The key an ``Either`` is stored under in a filter is only a label; the
    fields it tests come from its clauses.
    """

    clauses: tuple[tuple[str, Any], ...]


def contains_ci(value: Any, term: Any) -> bool:
    """Unicode-aware case-insensitive substring test, shared by both backends."""
    if not isinstance(value, str) or not isinstance(term, str):
        return False
    return term.casefold() in value.casefold()


def _match_value(value: Any, expected: Any) -> bool:
    if isinstance(expected, Contains):
        return contains_ci(value, expected.term)
    return value == expected


def matches(document: dict, query: Filter | None) -> bool:
    """Return True when ``document`` satisfies every entry of ``query``."""
    for key, expected in (query or {}).items():
        if isinstance(expected, Either):
            if not any(_match_value(document.get(f), m) for f, m in expected.clauses):
                return False
        elif not _match_value(document.get(key), expected):
            return False
    return True


def _now() -> datetime:
    return datetime.now(UTC)


def _new_id() -> str:
    return uuid.uuid4().hex


def _writable(fields: dict) -> dict:
    return {k: v for k, v in fields.items() if k not in RESERVED_FIELDS}


class Collection:
    name: str

    async def insert(self, fields: dict) -> dict:  # pragma: no cover - interface
        raise NotImplementedError

    async def find_by_id(self, record_id: str) -> dict | None:  # pragma: no cover - interface
        raise NotImplementedError

    async def find(self, query: Filter | None = None) -> list[dict]:  # pragma: no cover - interface
        raise NotImplementedError

    async def update_by_id(self, record_id: str, fields: dict) -> dict | None:  # pragma: no cover - interface
        raise NotImplementedError

    async def delete_by_id(self, record_id: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def count(self, query: Filter | None = None) -> int:  # pragma: no cover - interface
        raise NotImplementedError


class DocumentStore:
    engine: str

    def collection(self, name: str) -> Collection:  # pragma: no cover - interface
        raise NotImplementedError

    async def close(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError


# --- In-memory backend ---


@dataclass
class MemoryCollection(Collection):
    name: str
    documents: dict[str, dict] = field(default_factory=dict)

    async def insert(self, fields: dict) -> dict:
        now = _now()
        document = {"_id": _new_id(), **_writable(fields), "createdAt": now, "updatedAt": now}
        self.documents[document["_id"]] = document
        return dict(document)

    async def find_by_id(self, record_id: str) -> dict | None:
        document = self.documents.get(record_id)
        return dict(document) if document is not None else None

    async def find(self, query: Filter | None = None) -> list[dict]:
        return [dict(d) for d in self.documents.values() if matches(d, query)]

    async def update_by_id(self, record_id: str, fields: dict) -> dict | None:
        document = self.documents.get(record_id)
        if document is None:
            return None
        document.update(_writable(fields))
        document["updatedAt"] = _now()
        return dict(document)

    async def delete_by_id(self, record_id: str) -> None:
        self.documents.pop(record_id, None)

    async def count(self, query: Filter | None = None) -> int:
        return sum(1 for d in self.documents.values() if matches(d, query))


class MemoryStore(DocumentStore):
    engine = "memory"

    def __init__(self) -> None:
        self._collections: dict[str, MemoryCollection] = {}

    def collection(self, name: str) -> MemoryCollection:
        if name not in self._collections:
            self._collections[name] = MemoryCollection(name)
        return self._collections[name]

    async def close(self) -> None:
        return


# --- SQLite backend ---

_COLLECTION_NAME = re.compile(r"^[a-z][a-z0-9_]*$")


def _json_default(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"Cannot store value of type {type(value).__name__}")


def _sql_value(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    return value


def _compile_match(field_name: str, expected: Any) -> tuple[str, list]:
    path = f"$.{field_name}"
    if isinstance(expected, Contains):
        return "contains_ci(json_extract(doc, ?), ?)", [path, expected.term]
    return "json_extract(doc, ?) = ?", [path, _sql_value(expected)]


def compile_filter(query: Filter | None) -> tuple[str, list]:
    """Translate a filter into a SQL ``WHERE`` expression and its parameters."""
    clauses: list[str] = []
    params: list = []
    for key, expected in (query or {}).items():
        if isinstance(expected, Either):
            parts = []
            for field_name, matcher in expected.clauses:
                sql, p = _compile_match(field_name, matcher)
                parts.append(sql)
                params.extend(p)
            clauses.append("(" + " OR ".join(parts) + ")")
        else:
            sql, p = _compile_match(key, expected)
            clauses.append(sql)
            params.extend(p)
    return (" AND ".join(clauses) or "1"), params


def _store_errors(func):
    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except (sqlite3.Error, ValueError) as exc:
            # aiosqlite raises ValueError once the connection has been closed
            raise StoreUnavailable(f"{self.name}: {exc}") from exc

    return wrapper


@dataclass
class SQLiteCollection(Collection):
    conn: aiosqlite.Connection
    name: str
    _ready: bool = False

    async def _ensure_table(self) -> None:
        if self._ready:
            return
        await self.conn.execute(
            f"""CREATE TABLE IF NOT EXISTS "{self.name}" (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                doc TEXT NOT NULL
            )"""
        )
        await self.conn.commit()
        self._ready = True

    @staticmethod
    def _load(raw: str) -> dict:
        document = json.loads(raw)
        for key in ("createdAt", "updatedAt"):
            if isinstance(document.get(key), str):
                document[key] = datetime.fromisoformat(document[key])
        return document

    async def _fetch_doc(self, record_id: str) -> dict | None:
        cursor = await self.conn.execute(
            f'SELECT doc FROM "{self.name}" WHERE id = ?', (record_id,)
        )
        row = await cursor.fetchone()
        return self._load(row["doc"]) if row else None

    @_store_errors
    async def insert(self, fields: dict) -> dict:
        await self._ensure_table()
        now = _now()
        document = {"_id": _new_id(), **_writable(fields), "createdAt": now, "updatedAt": now}
        await self.conn.execute(
            f'INSERT INTO "{self.name}" (id, doc) VALUES (?, ?)',
            (document["_id"], json.dumps(document, default=_json_default)),
        )
        await self.conn.commit()
        return document

    @_store_errors
    async def find_by_id(self, record_id: str) -> dict | None:
        await self._ensure_table()
        return await self._fetch_doc(record_id)

    @_store_errors
    async def find(self, query: Filter | None = None) -> list[dict]:
        await self._ensure_table()
        where, params = compile_filter(query)
        cursor = await self.conn.execute(
            f'SELECT doc FROM "{self.name}" WHERE {where} ORDER BY seq', params
        )
        rows = await cursor.fetchall()
        return [self._load(row["doc"]) for row in rows]

    @_store_errors
    async def update_by_id(self, record_id: str, fields: dict) -> dict | None:
        await self._ensure_table()
        patch = {**_writable(fields), "updatedAt": _now()}
        cursor = await self.conn.execute(
            f'UPDATE "{self.name}" SET doc = json_patch(doc, ?) WHERE id = ?',
            (json.dumps(patch, default=_json_default), record_id),
        )
        await self.conn.commit()
        if cursor.rowcount == 0:
            return None
        return await self._fetch_doc(record_id)

    @_store_errors
    async def delete_by_id(self, record_id: str) -> None:
        await self._ensure_table()
        await self.conn.execute(f'DELETE FROM "{self.name}" WHERE id = ?', (record_id,))
        await self.conn.commit()

    @_store_errors
    async def count(self, query: Filter | None = None) -> int:
        await self._ensure_table()
        where, params = compile_filter(query)
        cursor = await self.conn.execute(
            f'SELECT COUNT(*) AS count FROM "{self.name}" WHERE {where}', params
        )
        row = await cursor.fetchone()
        return row["count"] if row else 0


class SQLiteStore(DocumentStore):
    engine = "sqlite"

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn
        self._collections: dict[str, SQLiteCollection] = {}

    @classmethod
    async def connect(cls, path: str) -> "SQLiteStore":
        conn = await aiosqlite.connect(path)
        conn.row_factory = aiosqlite.Row
        await conn.create_function("contains_ci", 2, contains_ci, deterministic=True)
        logger.info("Connected to SQLite database at %s", path)
        return cls(conn)

    def collection(self, name: str) -> SQLiteCollection:
        if not _COLLECTION_NAME.match(name):
            raise ValueError(f"Invalid collection name: {name!r}")
        if name not in self._collections:
            self._collections[name] = SQLiteCollection(self.conn, name)
        return self._collections[name]

    async def close(self) -> None:
        await self.conn.close()


def _sqlite_path_from_url(url: str) -> str:
    parsed = urlparse(url)
    path = parsed.path or ""
    if not path or path == "/":
        return ""
    # sqlite:////absolute/path.db -> keep absolute path
    if url.startswith("sqlite:////"):
        return "/" + path.lstrip("/")
    # sqlite:///relative.db -> strip leading slash
    if path.startswith("/"):
        return path[1:]
    return path


async def open_store(url: str | None = None, path: str | None = None) -> DocumentStore:
    """Open the store selected by ``DATABASE_URL``/``DATABASE_PATH``."""
    url = DATABASE_URL if url is None else url
    path = DATABASE_PATH if path is None else path

    if url.startswith("memory"):
        logger.info("Using in-memory document store")
        return MemoryStore()
    if url:
        if not url.startswith("sqlite"):
            raise ValueError(f"Unsupported DATABASE_URL scheme: {url}")
        path = _sqlite_path_from_url(url) or path
    try:
        return await SQLiteStore.connect(path)
    except sqlite3.Error as exc:
        raise StoreUnavailable(f"Cannot open SQLite database at {path}: {exc}") from exc

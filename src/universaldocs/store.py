"""SQLite document store with a synchronised FTS5 search index.

Documents are keyed by (url, version). Each document owns a set of chunks;
``chunks_fts`` is an external-content FTS5 table kept in lockstep with
``chunks`` by triggers, so every chunk insert/update/delete is mirrored inside
the same transaction and the index can never lag the chunk table.

Reads catch ``aiosqlite.Error`` and degrade (``None``, ``[]`` or ``0``) so a
broken database never turns a search into a crash; errors are logged with
``exc_info=True``. Writes are different: a failed write rolls back and raises
``UniversalDocsError(STORAGE_CONSTRAINT_VIOLATION)`` so the crawler can skip
that one page.

The connection is owned by the caller (opened in the server lifespan, or an
in-memory connection in tests). Writes are serialised with an asyncio lock so
workers sharing the connection never interleave two transactions.
"""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime

import aiosqlite
import structlog

from universaldocs.errors import ErrorCode, UniversalDocsError
from universaldocs.models.documents import (
    CacheHeaders,
    Chunk,
    DocumentRecord,
    SearchResult,
    StoreStats,
)

log = structlog.get_logger()

DEFAULT_RESULT_LIMIT = 20

_CREATE_DOCUMENTS_TABLE = """
CREATE TABLE IF NOT EXISTS documents (
    url           TEXT NOT NULL,
    version       TEXT NOT NULL DEFAULT 'latest',
    domain        TEXT NOT NULL,
    title         TEXT NOT NULL,
    markdown      TEXT NOT NULL,
    etag          TEXT,
    last_modified TEXT,
    crawled_at    TEXT NOT NULL,
    PRIMARY KEY (url, version)
)
"""

_CREATE_CHUNKS_TABLE = """
CREATE TABLE IF NOT EXISTS chunks (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    url          TEXT NOT NULL,
    version      TEXT NOT NULL,
    heading_path TEXT NOT NULL,
    content      TEXT NOT NULL,
    FOREIGN KEY (url, version) REFERENCES documents (url, version) ON DELETE CASCADE
)
"""

_CREATE_CHUNKS_INDEX = "CREATE INDEX IF NOT EXISTS idx_chunks_doc ON chunks(url, version)"

_CREATE_FTS_TABLE = """
CREATE VIRTUAL TABLE IF NOT EXISTS chunks_fts USING fts5(
    url,
    version,
    heading_path,
    content,
    content='chunks',
    content_rowid='id'
)
"""

_CREATE_FTS_TRIGGERS = [
    """
    CREATE TRIGGER IF NOT EXISTS chunks_ai AFTER INSERT ON chunks BEGIN
        INSERT INTO chunks_fts (rowid, url, version, heading_path, content)
        VALUES (new.id, new.url, new.version, new.heading_path, new.content);
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS chunks_ad AFTER DELETE ON chunks BEGIN
        INSERT INTO chunks_fts (chunks_fts, rowid, url, version, heading_path, content)
        VALUES ('delete', old.id, old.url, old.version, old.heading_path, old.content);
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS chunks_au AFTER UPDATE ON chunks BEGIN
        INSERT INTO chunks_fts (chunks_fts, rowid, url, version, heading_path, content)
        VALUES ('delete', old.id, old.url, old.version, old.heading_path, old.content);
        INSERT INTO chunks_fts (rowid, url, version, heading_path, content)
        VALUES (new.id, new.url, new.version, new.heading_path, new.content);
    END
    """,
]

_SEARCH_SQL = """
SELECT
    c.url,
    c.version,
    COALESCE(NULLIF(d.title, ''), c.url) AS title,
    c.heading_path,
    c.content,
    -bm25(chunks_fts) AS score
FROM chunks_fts
JOIN chunks c ON chunks_fts.rowid = c.id
LEFT JOIN documents d ON d.url = c.url AND d.version = c.version
WHERE chunks_fts MATCH ?
{version_clause}
ORDER BY score DESC
LIMIT ?
"""


def build_fts_query(query: str) -> str:
    """Quote each whitespace token so user text is never parsed as FTS5 syntax.

    Space-separated phrases are an implicit AND in FTS5.
    """
    tokens = query.split()
    return " ".join('"' + token.replace('"', '""') + '"' for token in tokens)


def _decode_heading_path(raw: str) -> list[str]:
    try:
        value = json.loads(raw)
    except ValueError:
        return []
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]


def _write_error(
    message: str,
    suggestion: str = "Check that the database file is writable and not corrupted.",
) -> UniversalDocsError:
    return UniversalDocsError(
        code=ErrorCode.STORAGE_CONSTRAINT_VIOLATION,
        message=message,
        suggestion=suggestion,
        recoverable=False,
    )


class Store:
    """Versioned document + chunk persistence with BM25 search."""

    def __init__(self, db: aiosqlite.Connection, *, result_limit: int = DEFAULT_RESULT_LIMIT) -> None:
        self._db = db
        self._result_limit = result_limit
        self._write_lock = asyncio.Lock()

    async def init_db(self) -> None:
        """Create tables, FTS index and triggers. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute("PRAGMA foreign_keys = ON")
        await self._db.execute(_CREATE_DOCUMENTS_TABLE)
        await self._db.execute(_CREATE_CHUNKS_TABLE)
        await self._db.execute(_CREATE_CHUNKS_INDEX)
        await self._db.execute(_CREATE_FTS_TABLE)
        for trigger in _CREATE_FTS_TRIGGERS:
            await self._db.execute(trigger)
        await self._db.commit()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def upsert_document(
        self,
        url: str,
        version: str,
        domain: str,
        title: str,
        markdown: str,
        etag: str | None = None,
        last_modified: str | None = None,
    ) -> bool:
        """Insert or overwrite a document. Returns False (and writes nothing) if
        the stored etag equals the supplied one."""
        async with self._write_lock:
            try:
                if await self._etag_matches(url, version, etag):
                    return False
                await self._write_document_row(url, version, domain, title, markdown, etag, last_modified)
                await self._db.commit()
            except aiosqlite.Error as exc:
                await self._rollback()
                raise _write_error(f"Failed to store document {url} ({version}): {exc}") from exc
        return True

    async def replace_chunks(self, url: str, version: str, chunks: list[Chunk]) -> None:
        """Atomically swap the full chunk set of a document.

        The delete, the inserts and the trigger-driven FTS updates all commit
        together or not at all.
        """
        async with self._write_lock:
            try:
                await self._write_chunk_rows(url, version, chunks)
                await self._db.commit()
            except aiosqlite.Error as exc:
                await self._rollback()
                raise _write_error(
                    f"Failed to store chunks for {url} ({version}): {exc}",
                    suggestion="Chunks can only be stored for a document that exists.",
                ) from exc
        log.debug("chunks_replaced", url=url, version=version, chunk_count=len(chunks))

    async def save_page(
        self,
        url: str,
        version: str,
        domain: str,
        title: str,
        markdown: str,
        chunks: list[Chunk],
        etag: str | None = None,
        last_modified: str | None = None,
    ) -> bool:
        """Store a document and its chunk set in a single transaction.

        Returns False (and writes nothing) if the stored etag equals the
        supplied one. On failure neither the document row nor its chunks
        change, so a later crawl sees the old etag and retries the page.
        """
        async with self._write_lock:
            try:
                if await self._etag_matches(url, version, etag):
                    return False
                await self._write_document_row(url, version, domain, title, markdown, etag, last_modified)
                await self._write_chunk_rows(url, version, chunks)
                await self._db.commit()
            except aiosqlite.Error as exc:
                await self._rollback()
                raise _write_error(f"Failed to store page {url} ({version}): {exc}") from exc
        log.debug("page_saved", url=url, version=version, chunk_count=len(chunks))
        return True

    async def _etag_matches(self, url: str, version: str, etag: str | None) -> bool:
        cursor = await self._db.execute(
            "SELECT etag FROM documents WHERE url = ? AND version = ?",
            (url, version),
        )
        row = await cursor.fetchone()
        if row is not None and etag and row[0] == etag:
            log.debug("document_unchanged", url=url, version=version, etag=etag)
            return True
        return False

    async def _write_document_row(
        self,
        url: str,
        version: str,
        domain: str,
        title: str,
        markdown: str,
        etag: str | None,
        last_modified: str | None,
    ) -> None:
        # ON CONFLICT DO UPDATE keeps the row (and its chunks) in place;
        # INSERT OR REPLACE would cascade-delete them.
        await self._db.execute(
            "INSERT INTO documents "
            "(url, version, domain, title, markdown, etag, last_modified, crawled_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(url, version) DO UPDATE SET "
            "domain = excluded.domain, "
            "title = excluded.title, "
            "markdown = excluded.markdown, "
            "etag = excluded.etag, "
            "last_modified = excluded.last_modified, "
            "crawled_at = excluded.crawled_at",
            (
                url,
                version,
                domain,
                title,
                markdown,
                etag,
                last_modified,
                datetime.now(UTC).isoformat(),
            ),
        )

    async def _write_chunk_rows(self, url: str, version: str, chunks: list[Chunk]) -> None:
        await self._db.execute(
            "DELETE FROM chunks WHERE url = ? AND version = ?",
            (url, version),
        )
        await self._insert_chunk_rows(url, version, chunks)

    async def _insert_chunk_rows(self, url: str, version: str, chunks: list[Chunk]) -> None:
        await self._db.executemany(
            "INSERT INTO chunks (url, version, heading_path, content) VALUES (?, ?, ?, ?)",
            [(url, version, json.dumps(chunk.heading_path), chunk.content) for chunk in chunks],
        )

    async def _rollback(self) -> None:
        try:
            await self._db.rollback()
        except aiosqlite.Error:
            log.warning("store_rollback_error", exc_info=True)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_document(self, url: str, version: str) -> DocumentRecord | None:
        """Read one document. Returns ``None`` if absent or on read failure."""
        try:
            cursor = await self._db.execute(
                "SELECT url, version, domain, title, markdown, etag, last_modified, crawled_at "
                "FROM documents WHERE url = ? AND version = ?",
                (url, version),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error:
            log.warning("store_read_error", key=f"document:{url}:{version}", exc_info=True)
            return None
        if row is None:
            return None
        return DocumentRecord(
            url=row[0],
            version=row[1],
            domain=row[2],
            title=row[3],
            markdown=row[4],
            etag=row[5],
            last_modified=row[6],
            crawled_at=datetime.fromisoformat(row[7]),
        )

    async def get_cache_headers(self, url: str, version: str) -> CacheHeaders | None:
        """Stored validators for a document, or ``None`` if it was never crawled."""
        try:
            cursor = await self._db.execute(
                "SELECT etag, last_modified FROM documents WHERE url = ? AND version = ?",
                (url, version),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error:
            log.warning("store_read_error", key=f"headers:{url}:{version}", exc_info=True)
            return None
        if row is None:
            return None
        return CacheHeaders(etag=row[0], last_modified=row[1])

    async def search(self, query: str, version: str | None = None) -> list[SearchResult]:
        """BM25-ranked chunk search. All query tokens must match.

        Results are ordered by descending score and capped at the result
        limit. No match (or an empty query) is an empty list.
        """
        fts_query = build_fts_query(query)
        if not fts_query:
            return []

        params: list[str | int] = [fts_query]
        version_clause = ""
        if version is not None:
            version_clause = "AND c.version = ?"
            params.append(version)
        params.append(self._result_limit)

        try:
            cursor = await self._db.execute(
                _SEARCH_SQL.format(version_clause=version_clause), params
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error:
            log.warning("store_search_error", query=query, exc_info=True)
            return []

        return [
            SearchResult(
                url=row[0],
                version=row[1],
                title=row[2],
                heading_path=_decode_heading_path(row[3]),
                content=row[4],
                score=row[5],
            )
            for row in rows
        ]

    async def count_documents(self) -> int:
        return await self._count("documents")

    async def count_chunks(self) -> int:
        return await self._count("chunks")

    async def _count(self, table: str) -> int:
        try:
            cursor = await self._db.execute(f"SELECT COUNT(*) FROM {table}")  # noqa: S608
            row = await cursor.fetchone()
        except aiosqlite.Error:
            log.warning("store_count_error", table=table, exc_info=True)
            return 0
        return row[0] if row is not None else 0

    async def stats(self) -> StoreStats:
        return StoreStats(
            document_count=await self.count_documents(),
            chunk_count=await self.count_chunks(),
        )

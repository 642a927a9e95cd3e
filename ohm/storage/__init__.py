"""
Traffic Store Layer

RESPONSIBILITY: Capture persistence, host filtering, sorting, pagination
ALLOWED INPUTS: Capture documents (mappings), host patterns, page windows
OUTPUTS: TrafficQueryResult with explicit error states

WHAT THIS LAYER MUST NOT DO:
============================
- Build or interpret topology
- Raise store failures to callers (they become Error values)
- Fail a whole query because one document is undecodable

BOUNDARY ENFORCEMENT:
=====================
- Backends hold raw capture documents verbatim
- Only method/host/path are ever projected out
- Host filters are case-insensitive regular-expression searches
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional
import json
import logging
import os
import re
import sqlite3

from ..contracts.base import (
    Error, ErrorCode, MalformedRecordError, TrafficRecord, TrafficQueryResult
)

logger = logging.getLogger(__name__)


class StoreBackendError(Exception):
    """A backend could not complete a read, write or health check."""


def _host_sort_key(document: Any):
    host = document.get("host") if isinstance(document, Mapping) else None
    if not isinstance(host, str):
        return (0, "")
    return (1, host)


def check_window(skip: int, limit: Optional[int]) -> None:
    """Reject a negative skip or limit before it reaches a backend."""
    if skip < 0:
        raise ValueError(f"skip must be non-negative, got {skip}")
    if limit is not None and limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")


# =============================================================================
# STORE INTERFACES (Dependency Inversion)
# =============================================================================

class TrafficStoreBackend:
    """
    Abstract traffic store backend.

    `find` returns raw stored documents; decoding into TrafficRecord is
    the engine's job so that one bad document never poisons a query.
    """

    def insert(self, documents: List[Mapping[str, Any]]) -> int:
        """Append capture documents. Returns the number written."""
        raise NotImplementedError

    def find(
        self,
        host_pattern: Optional[str] = None,
        sort_by_host: bool = False,
        skip: int = 0,
        limit: Optional[int] = None
    ) -> List[Any]:
        """Return raw documents whose host matches `host_pattern`."""
        raise NotImplementedError

    def ping(self) -> None:
        """Raise StoreBackendError when the store is unreachable."""
        raise NotImplementedError


# =============================================================================
# IN-MEMORY BACKEND (Reference Implementation)
# =============================================================================

class InMemoryTrafficBackend(TrafficStoreBackend):
    """
    In-memory traffic store.

    Suitable for testing and for serving a capture loaded at startup.
    """

    def __init__(self, documents: Optional[Iterable[Any]] = None):
        self._documents: List[Any] = []
        if documents is not None:
            self.insert(list(documents))

    def insert(self, documents: List[Mapping[str, Any]]) -> int:
        for document in documents:
            self._documents.append(
                dict(document) if isinstance(document, Mapping) else document
            )
        return len(documents)

    def find(
        self,
        host_pattern: Optional[str] = None,
        sort_by_host: bool = False,
        skip: int = 0,
        limit: Optional[int] = None
    ) -> List[Any]:
        check_window(skip, limit)
        try:
            matcher = (
                re.compile(host_pattern, re.IGNORECASE)
                if host_pattern is not None else None
            )
        except re.error as e:
            raise StoreBackendError(f"invalid host pattern: {e}") from e

        matches = []
        for document in self._documents:
            if matcher is not None:
                host = document.get("host") if isinstance(document, Mapping) else None
                if not isinstance(host, str) or not matcher.search(host):
                    continue
            matches.append(document)

        if sort_by_host:
            matches.sort(key=_host_sort_key)

        end = skip + limit if limit is not None else None
        return matches[skip:end]

    def ping(self) -> None:
        return None


# =============================================================================
# SQLITE BACKEND
# =============================================================================

def _regexp(pattern: str, value: Optional[str]) -> bool:
    if not isinstance(value, str):
        return False
    return re.search(pattern, value, re.IGNORECASE) is not None


class SQLiteTrafficBackend(TrafficStoreBackend):
    """
    SQLite-backed traffic store.

    Each capture is kept as a JSON document; the host is copied into its
    own column for filtering and sorting.
    """

    def __init__(self, db_path: str):
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        """Initialize database schema."""
        with self._get_conn() as conn:
            conn.executescript('''
                CREATE TABLE IF NOT EXISTS traffic (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    host TEXT,
                    document TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_traffic_host ON traffic(host);
            ''')

    @contextmanager
    def _get_conn(self):
        """Get database connection."""
        conn = sqlite3.connect(self._db_path)
        conn.create_function("REGEXP", 2, _regexp)
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def insert(self, documents: List[Mapping[str, Any]]) -> int:
        rows = []
        for document in documents:
            host = document.get("host") if isinstance(document, Mapping) else None
            try:
                payload = json.dumps(document)
            except (TypeError, ValueError) as e:
                raise StoreBackendError(f"document is not JSON serializable: {e}") from e
            rows.append((host if isinstance(host, str) else None, payload))

        try:
            with self._get_conn() as conn:
                conn.executemany(
                    'INSERT INTO traffic (host, document) VALUES (?, ?)', rows
                )
        except sqlite3.Error as e:
            raise StoreBackendError(str(e)) from e
        return len(rows)

    def find(
        self,
        host_pattern: Optional[str] = None,
        sort_by_host: bool = False,
        skip: int = 0,
        limit: Optional[int] = None
    ) -> List[Any]:
        check_window(skip, limit)
        sql = 'SELECT document FROM traffic'
        params: List[Any] = []
        if host_pattern is not None:
            sql += ' WHERE host REGEXP ?'
            params.append(host_pattern)
        sql += ' ORDER BY host ASC, id ASC' if sort_by_host else ' ORDER BY id ASC'
        sql += ' LIMIT ? OFFSET ?'
        params.extend([limit if limit is not None else -1, skip])

        try:
            with self._get_conn() as conn:
                return [row[0] for row in conn.execute(sql, params)]
        except sqlite3.Error as e:
            raise StoreBackendError(str(e)) from e

    def ping(self) -> None:
        try:
            with self._get_conn() as conn:
                conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
        except sqlite3.Error as e:
            raise StoreBackendError(str(e)) from e


# =============================================================================
# TRAFFIC STORE ENGINE (Orchestrates store operations)
# =============================================================================

@dataclass
class TrafficStoreConfig:
    """Configuration for the traffic store."""
    backend_type: str = "memory"  # "memory" or "sqlite"
    database_path: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> TrafficStoreConfig:
        environ = os.environ if environ is None else environ
        return cls(
            backend_type=environ.get("OHM_STORE_BACKEND", "memory"),
            database_path=environ.get(
                "OHM_DATABASE_PATH", os.path.join("data", "ohm.db")
            ),
        )


class TrafficStoreEngine:
    """
    Traffic Store Engine.

    BOUNDARY ENFORCEMENT:
    - Store failures come back as failed TrafficQueryResult values
    - Undecodable documents are dropped and counted, never raised
    - Results are projected to method/host/path
    """

    def __init__(
        self,
        config: Optional[TrafficStoreConfig] = None,
        backend: Optional[TrafficStoreBackend] = None
    ):
        self._config = config or TrafficStoreConfig()
        self._backend = backend or self._create_backend()

    def _create_backend(self) -> TrafficStoreBackend:
        """Create store backend based on configuration."""
        if self._config.backend_type == "sqlite" and self._config.database_path:
            logger.info("Opening SQLite traffic store at %s", self._config.database_path)
            return SQLiteTrafficBackend(self._config.database_path)
        logger.info("Using in-memory traffic store")
        return InMemoryTrafficBackend()

    @property
    def backend(self) -> TrafficStoreBackend:
        return self._backend

    # =========================================================================
    # QUERIES
    # =========================================================================

    def find_records(
        self,
        host_pattern: Optional[str] = None,
        sort_by_host: bool = False,
        skip: int = 0,
        limit: Optional[int] = None
    ) -> TrafficQueryResult:
        """
        Query projected traffic records.

        Invalid host patterns and negative windows fail with INVALID_QUERY;
        backend failures with STORE_UNAVAILABLE.
        """
        try:
            check_window(skip, limit)
        except ValueError as e:
            return TrafficQueryResult.failure(Error(
                code=ErrorCode.INVALID_QUERY,
                message=str(e),
            ))

        if host_pattern is not None:
            try:
                re.compile(host_pattern)
            except re.error as e:
                return TrafficQueryResult.failure(Error(
                    code=ErrorCode.INVALID_QUERY,
                    message=f"invalid host pattern '{host_pattern}': {e}",
                ))

        try:
            raw_documents = self._backend.find(
                host_pattern=host_pattern,
                sort_by_host=sort_by_host,
                skip=skip,
                limit=limit,
            )
        except StoreBackendError as e:
            logger.error("Traffic store query failed: %s", e)
            return TrafficQueryResult.failure(Error(
                code=ErrorCode.STORE_UNAVAILABLE,
                message=str(e),
            ))

        records = []
        dropped = 0
        for raw in raw_documents:
            try:
                records.append(self._decode(raw))
            except MalformedRecordError as e:
                dropped += 1
                logger.warning("Dropping undecodable traffic document: %s", e)

        return TrafficQueryResult.ok(tuple(records), dropped=dropped)

    def find_for_graph(
        self,
        host_pattern: Optional[str],
        limit: int
    ) -> TrafficQueryResult:
        """Records feeding a graph build: store order, capped at `limit`."""
        return self.find_records(host_pattern=host_pattern, limit=limit)

    def find_page(
        self,
        host_pattern: Optional[str],
        page: int,
        size: int
    ) -> TrafficQueryResult:
        """One page of records sorted by host ascending."""
        return self.find_records(
            host_pattern=host_pattern,
            sort_by_host=True,
            skip=page * size,
            limit=size,
        )

    @staticmethod
    def _decode(raw: Any) -> TrafficRecord:
        if isinstance(raw, (str, bytes)):
            try:
                raw = json.loads(raw)
            except ValueError as e:
                raise MalformedRecordError(f"invalid JSON document: {e}") from e
        return TrafficRecord.from_document(raw)

    # =========================================================================
    # WRITES & HEALTH
    # =========================================================================

    def insert_documents(self, documents: Iterable[Mapping[str, Any]]) -> int:
        """Append capture documents. Raises StoreBackendError on failure."""
        return self._backend.insert(list(documents))

    def load_jsonl(self, path: str) -> int:
        """
        Load one JSON capture per line from `path`.

        Blank lines are skipped; lines that are not JSON objects are logged
        and skipped. Returns the number of documents inserted.
        """
        documents = []
        with open(path, 'r', encoding='utf-8') as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    document = json.loads(line)
                except ValueError as e:
                    logger.warning("Skipping %s:%d: %s", path, line_number, e)
                    continue
                if not isinstance(document, dict):
                    logger.warning("Skipping %s:%d: not a JSON object", path, line_number)
                    continue
                documents.append(document)

        inserted = self.insert_documents(documents)
        logger.info("Loaded %d traffic documents from %s", inserted, path)
        return inserted

    def ping(self) -> bool:
        """Reachability check."""
        try:
            self._backend.ping()
        except StoreBackendError as e:
            logger.warning("Traffic store health check failed: %s", e)
            return False
        return True

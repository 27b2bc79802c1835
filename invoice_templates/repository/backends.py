"""
Key-value backends for template blobs.

The store only needs get/set of an opaque string per issuer key. Both
calls are coroutines so a slow backend suspends the caller instead of
blocking unrelated work.

Backends:
- MemoryBackend: process-local dict (tests, ephemeral use)
- SQLiteBackend: local SQLite file, blocking calls run in a thread pool
"""

import asyncio
import logging
import sqlite3
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from invoice_templates.errors import TemplateBackendError

logger = logging.getLogger(__name__)


class TemplateBackend(ABC):
    """Durable, string-keyed store of opaque template blobs."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the blob stored under key, or None if there is none."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous blob."""

    def close(self) -> None:
        """Release backend resources."""


class MemoryBackend(TemplateBackend):
    """In-memory backend. Nothing survives the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def __len__(self) -> int:
        return len(self._data)


class SQLiteBackend(TemplateBackend):
    """
    Local SQLite storage for template blobs.

    One row per issuer key. Every operation opens its own connection, so
    worker threads never share one. A write is a single upsert in one
    transaction: the new blob is committed or the old one stays intact.
    """

    def __init__(self, db_path: str = "data/company_templates.db", max_workers: int = 4):
        """
        Initialize SQLite backend.

        Args:
            db_path: Path to the SQLite database file
            max_workers: Threads used for blocking sqlite calls
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="template-db"
        )
        try:
            self._init_db()
        except sqlite3.Error as e:
            self._executor.shutdown(wait=False)
            raise TemplateBackendError(f"Failed to initialize {self.db_path}: {e}") from e

    @contextmanager
    def _get_connection(self):
        """Get database connection with context manager."""
        conn = sqlite3.connect(str(self.db_path))
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self):
        """Initialize database schema."""
        with self._get_connection() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("""
                CREATE TABLE IF NOT EXISTS company_templates (
                    issuer_key TEXT PRIMARY KEY,
                    blob TEXT NOT NULL,
                    updated_at TEXT
                )
            """)

    def _get_sync(self, key: str) -> Optional[str]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT blob FROM company_templates WHERE issuer_key = ?", (key,)
            ).fetchone()
        return row[0] if row else None

    def _set_sync(self, key: str, value: str) -> None:
        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO company_templates (issuer_key, blob, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(issuer_key) DO UPDATE SET
                    blob = excluded.blob,
                    updated_at = excluded.updated_at
            """, (key, value, datetime.utcnow().isoformat()))

    async def get(self, key: str) -> Optional[str]:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._executor, self._get_sync, key)
        except sqlite3.Error as e:
            raise TemplateBackendError(f"Failed to read template '{key}': {e}") from e

    async def set(self, key: str, value: str) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(self._executor, self._set_sync, key, value)
        except sqlite3.Error as e:
            raise TemplateBackendError(f"Failed to write template '{key}': {e}") from e
        logger.debug(f"Wrote template blob for '{key}' ({len(value)} bytes)")

    def close(self) -> None:
        self._executor.shutdown(wait=True)

# --- File: core/sqlite_repository.py ---
import logging
import re
import sqlite3
import threading
from typing import List, Optional, Type

import config
from core.repository import ModelT, Repository

logger = logging.getLogger(__name__)

_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# --- Durable Storage (SQLite) ---

class SQLiteRepository(Repository[ModelT]):
    """
    Stores each aggregate as a JSON document in its own SQLite table.
    Rows are upserted in place, so rowid order is insertion order and
    a stored document's verification state survives restarts unchanged.
    """
    def __init__(self, model_cls: Type[ModelT], table: str, db_path: str = config.SQLITE_DB_PATH):
        if not _TABLE_NAME_RE.match(table):
            raise ValueError(f"Invalid table name: {table!r}")
        self.model_cls = model_cls
        self.table = table
        self.db_path = db_path
        self._lock = threading.Lock()
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self._initialize_table()

    def _initialize_table(self):
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    id TEXT PRIMARY KEY,
                    payload TEXT NOT NULL -- model JSON
                )
            """)
            self.conn.commit()
        logger.info(f"SQLite repository table '{self.table}' initialized at {self.db_path}")

    def get(self, key: str) -> Optional[ModelT]:
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(f"SELECT payload FROM {self.table} WHERE id = ?", (key,))
            row = cursor.fetchone()
        if not row:
            return None
        return self.model_cls.model_validate_json(row[0])

    def list(self) -> List[ModelT]:
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(f"SELECT payload FROM {self.table} ORDER BY rowid")
            rows = cursor.fetchall()
        return [self.model_cls.model_validate_json(row[0]) for row in rows]

    def upsert(self, key: str, item: ModelT) -> None:
        payload = item.model_dump_json()
        with self._lock:
            try:
                cursor = self.conn.cursor()
                cursor.execute(f"""
                    INSERT INTO {self.table} (id, payload) VALUES (?, ?)
                    ON CONFLICT(id) DO UPDATE SET payload = excluded.payload
                """, (key, payload))
                self.conn.commit()
            except sqlite3.Error as e:
                self.conn.rollback()
                logger.error(f"Error saving '{key}' to SQLite table '{self.table}': {e}")
                raise
        logger.debug(f"Saved '{key}' to SQLite table '{self.table}'.")

    def close(self) -> None:
        with self._lock:
            if self.conn:
                self.conn.close()
                logger.info(f"SQLite connection for table '{self.table}' closed.")
                self.conn = None

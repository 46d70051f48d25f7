"""
Key-Value Persistence Module

This module implements the persistence contract used for user configuration:
- KeyValueStore: sqlite3-backed store (app_config table)
- MemoryStore: dict-backed store with the same interface

Values are plain strings; callers JSON-encode structured data.
See core/settings.py for typed accessors (DNT terms, glossary, TMX memories).
"""

import os
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

APP_HOME = Path(os.environ.get("LINGOSHIELD_HOME", Path.home() / ".lingoshield"))
DB_FILE = APP_HOME / "lingoshield.db"


class KeyValueStore:
    """sqlite3 key-value store backed by the app_config table."""

    def __init__(self, db_file: Path = DB_FILE):
        self.db_file = Path(db_file)
        self._initialized = False

    def get_connection(self) -> sqlite3.Connection:
        """Get a database connection, creating the table on first use."""
        if not self._initialized:
            self.initialize()
        return sqlite3.connect(self.db_file)

    def initialize(self):
        """Create the database file and the app_config table if missing."""
        self.db_file.parent.mkdir(parents=True, exist_ok=True)
        with sqlite3.connect(self.db_file) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS app_config (
                    key TEXT PRIMARY KEY,
                    value TEXT,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.commit()
        self._initialized = True

    def get(self, key: str) -> Optional[str]:
        """Get a value by key, None if absent."""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT value FROM app_config WHERE key = ?", (key,))
            row = cursor.fetchone()
            return row[0] if row else None

    def set(self, key: str, value: str):
        """Insert or replace a value."""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT OR REPLACE INTO app_config (key, value, updated_at)
                VALUES (?, ?, ?)
            """, (key, value, datetime.now().isoformat()))
            conn.commit()

    def delete(self, key: str) -> bool:
        """Delete a key. Returns True if a row was removed."""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM app_config WHERE key = ?", (key,))
            conn.commit()
            return cursor.rowcount > 0

    def get_all(self) -> Dict[str, str]:
        """Get all key/value pairs."""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT key, value FROM app_config")
            return {row[0]: row[1] for row in cursor.fetchall()}


class MemoryStore:
    """In-process store with the KeyValueStore interface."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str):
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def get_all(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._data)

"""
Core module - Persistence utilities

This module provides:
- database: key-value stores (sqlite3 and in-memory)
- settings: typed accessors for DNT terms, glossary entries and TMX memories
"""

from lingoshield.core.database import (
    APP_HOME,
    DB_FILE,
    KeyValueStore,
    MemoryStore,
)

"""
Typed accessors for the data kept in the key-value store.

- dnt_terms: JSON list of strings
- glossary: JSON list of {"translations": {code: value}}
- tmx_index: JSON list of memory names; each memory lives under "tmx:<name>"

Every function takes the store explicitly; nothing here caches or reads
global state.
"""

import json
from typing import Any, List, Optional

from lingoshield.logger import get_logger
from lingoshield.protection.glossary import GlossaryEntry
from lingoshield.tmx.models import TmxMemory

logger = get_logger(__name__)

DNT_KEY = "dnt_terms"
GLOSSARY_KEY = "glossary"
TMX_INDEX_KEY = "tmx_index"
TMX_KEY_PREFIX = "tmx:"


def _load_json(store, key: str, default: Any) -> Any:
    raw = store.get(key)
    if not raw:
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.error(f"Stored value for '{key}' is not valid JSON: {e}")
        return default


def _save_json(store, key: str, value: Any):
    store.set(key, json.dumps(value, ensure_ascii=False))


# ---------------------------------------------------------------------------
# Do-Not-Translate terms
# ---------------------------------------------------------------------------

def get_dnt_terms(store) -> List[str]:
    terms = _load_json(store, DNT_KEY, [])
    if not isinstance(terms, list):
        return []
    return [term for term in terms if isinstance(term, str) and term.strip()]


def set_dnt_terms(store, terms: List[str]) -> List[str]:
    """Save DNT terms, dropping blanks and case-insensitive duplicates. Returns what was saved."""
    seen = set()
    cleaned: List[str] = []
    for term in terms:
        if not isinstance(term, str) or not term.strip():
            continue
        term = term.strip()
        if term.lower() in seen:
            continue
        seen.add(term.lower())
        cleaned.append(term)
    _save_json(store, DNT_KEY, cleaned)
    logger.info(f"Saved {len(cleaned)} DNT terms")
    return cleaned


# ---------------------------------------------------------------------------
# Glossary
# ---------------------------------------------------------------------------

def get_glossary(store) -> List[GlossaryEntry]:
    data = _load_json(store, GLOSSARY_KEY, [])
    if not isinstance(data, list):
        return []
    return [GlossaryEntry.from_dict(item) for item in data if isinstance(item, dict)]


def set_glossary(store, entries: List[GlossaryEntry]) -> int:
    """Save glossary entries that have at least one translation. Returns the count saved."""
    kept = [entry.to_dict() for entry in entries if entry.translations]
    _save_json(store, GLOSSARY_KEY, kept)
    logger.info(f"Saved {len(kept)} glossary entries")
    return len(kept)


# ---------------------------------------------------------------------------
# Translation memories
# ---------------------------------------------------------------------------

def _tmx_names(store) -> List[str]:
    names = _load_json(store, TMX_INDEX_KEY, [])
    return [name for name in names if isinstance(name, str)] if isinstance(names, list) else []


def list_tmx_memories(store) -> List[TmxMemory]:
    memories = []
    for name in _tmx_names(store):
        memory = get_tmx_memory(store, name)
        if memory is not None:
            memories.append(memory)
    return memories


def get_tmx_memory(store, name: str) -> Optional[TmxMemory]:
    data = _load_json(store, TMX_KEY_PREFIX + name, None)
    if not isinstance(data, dict):
        return None
    return TmxMemory.from_dict(data)


def save_tmx_memory(store, memory: TmxMemory):
    """Store a memory under its name, replacing any memory with the same name."""
    _save_json(store, TMX_KEY_PREFIX + memory.name, memory.to_dict())
    names = _tmx_names(store)
    if memory.name not in names:
        names.append(memory.name)
        _save_json(store, TMX_INDEX_KEY, names)
    logger.info(f"Saved TMX memory '{memory.name}' ({len(memory.units)} units)")


def delete_tmx_memory(store, name: str) -> bool:
    names = _tmx_names(store)
    if name not in names:
        return False
    names.remove(name)
    _save_json(store, TMX_INDEX_KEY, names)
    store.delete(TMX_KEY_PREFIX + name)
    logger.info(f"Deleted TMX memory '{name}'")
    return True

import copy
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from lingoshield.core import settings
from lingoshield.core.database import DB_FILE, KeyValueStore
from lingoshield.logger import get_logger
from lingoshield.protection.encoder import ProtectionOptions
from lingoshield.protection.glossary import GlossaryEntry
from lingoshield.subtitles.models import SubtitleSettings
from lingoshield.tmx.models import TmxMemory

logger = get_logger(__name__)

CONFIG_KEY = "config"

# Provider configuration constants
BUILTIN_PROVIDERS = ["echo", "openai", "deepseek"]

PROVIDER_NAME_PATTERN = r"^[a-zA-Z0-9_-]+$"

DEFAULT_SYSTEM_MESSAGE = "You are a professional translator. Return only the translated text."

# Default configuration template
DEFAULT_CONFIG = {
    "ai_provider": "echo",
    "openai": {
        "api_key": "YOUR_API_KEY_HERE",
        "models": ["gpt-4o-mini", "gpt-4o"],  # First is default
        "timeout": 120,
        "api_url": "https://api.openai.com/v1/chat/completions"
    },
    "deepseek": {
        "api_key": "YOUR_API_KEY_HERE",
        "models": ["deepseek-chat"],
        "timeout": 120,
        "api_url": "https://api.deepseek.com/chat/completions"
    },
    "translation": {
        "glossary_case_sensitive": True,
        "dnt_case_sensitive": False,
        "fuzzy_threshold": 70,
        "near_exact_cutoff": 95,
        "tmx_auto_apply_threshold": 95,
        "max_workers": 1,
        "system_message": DEFAULT_SYSTEM_MESSAGE
    },
    "subtitles": {
        "max_chars_per_line": 37,
        "max_lines": 2,
        "min_gap_ms": 100,
        "overlap_resolution": "warn",
        "min_reading_speed": 15,
        "max_reading_speed": 21,
        "line_break_strategy": "preserve",
        "include_bom": False
    },
    "log_mode": "off"
}


def _merge_defaults(defaults: Dict[str, Any], stored: Dict[str, Any]) -> Dict[str, Any]:
    """Fill keys missing from a stored config with their defaults (one level of nesting)."""
    merged = copy.deepcopy(defaults)
    for key, value in stored.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key].update(value)
        else:
            merged[key] = value
    return merged


def get_default_store() -> KeyValueStore:
    """Return the sqlite store at the default location."""
    return KeyValueStore(DB_FILE)


def load_config(store=None) -> Dict[str, Any]:
    """Load the configuration from the key-value store."""
    store = store if store is not None else get_default_store()
    try:
        config_json = store.get(CONFIG_KEY)
    except Exception as e:
        logger.error(f"Failed to load config from store: {e}")
        logger.warning("Using default configuration")
        return copy.deepcopy(DEFAULT_CONFIG)

    if not config_json:
        logger.info("No config in store, using defaults")
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        stored = json.loads(config_json)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse stored config: {e}")
        logger.warning("Using default configuration")
        return copy.deepcopy(DEFAULT_CONFIG)

    if not isinstance(stored, dict):
        logger.warning("Stored config is not an object, using default configuration")
        return copy.deepcopy(DEFAULT_CONFIG)

    logger.debug("Configuration loaded from store")
    return _merge_defaults(DEFAULT_CONFIG, stored)


def save_config(config: Dict[str, Any], store=None):
    """Save the configuration to the key-value store."""
    store = store if store is not None else get_default_store()
    try:
        store.set(CONFIG_KEY, json.dumps(config, ensure_ascii=False))
        logger.info("Configuration saved to store")
    except Exception as e:
        logger.error(f"Failed to save config to store: {e}")
        raise

    from lingoshield.logger import set_log_mode
    set_log_mode(config.get("log_mode", "off"))


def initialize_app(store=None):
    """
    Initialize the application.

    Creates the store and writes the default configuration when none exists.
    """
    store = store if store is not None else get_default_store()
    logger.info("Initializing application...")

    if hasattr(store, "initialize"):
        store.initialize()

    if not store.get(CONFIG_KEY):
        logger.info("No config in store, saving default config")
        save_config(copy.deepcopy(DEFAULT_CONFIG), store)
    else:
        logger.debug("Config already exists in store")

    logger.info("Application initialization complete")


@dataclass
class PipelineConfig:
    """
    Explicit configuration passed into every pipeline entry point.

    Nothing in the pipeline reads global state; everything it needs about
    DNT terms, glossary, translation memories and thresholds lives here.
    """
    source_language: str = "en-US"
    dnt_terms: List[str] = field(default_factory=list)
    glossary: List[GlossaryEntry] = field(default_factory=list)
    tmx_memories: List[TmxMemory] = field(default_factory=list)
    protection: ProtectionOptions = field(default_factory=ProtectionOptions)
    fuzzy_threshold: float = 70
    near_exact_cutoff: float = 95
    tmx_auto_apply_threshold: float = 95
    use_tmx: bool = True
    max_workers: int = 1
    subtitles: SubtitleSettings = field(default_factory=SubtitleSettings)

    @classmethod
    def from_dict(cls, config: Dict[str, Any], **overrides) -> "PipelineConfig":
        """Build from a config dict shaped like DEFAULT_CONFIG."""
        translation = config.get("translation", {})
        pipeline = cls(
            protection=ProtectionOptions(
                glossary_case_sensitive=bool(translation.get("glossary_case_sensitive", True)),
                dnt_case_sensitive=bool(translation.get("dnt_case_sensitive", False)),
            ),
            fuzzy_threshold=float(translation.get("fuzzy_threshold", 70)),
            near_exact_cutoff=float(translation.get("near_exact_cutoff", 95)),
            tmx_auto_apply_threshold=float(translation.get("tmx_auto_apply_threshold", 95)),
            max_workers=max(1, int(translation.get("max_workers", 1))),
            subtitles=SubtitleSettings.from_dict(config.get("subtitles", {})),
        )
        for key, value in overrides.items():
            setattr(pipeline, key, value)
        return pipeline


def build_pipeline_config(store=None, source_language: Optional[str] = None) -> PipelineConfig:
    """Assemble a PipelineConfig from everything persisted in the store."""
    store = store if store is not None else get_default_store()
    pipeline = PipelineConfig.from_dict(
        load_config(store),
        dnt_terms=settings.get_dnt_terms(store),
        glossary=settings.get_glossary(store),
        tmx_memories=settings.list_tmx_memories(store),
    )
    if source_language:
        pipeline.source_language = source_language
    logger.debug(
        f"Pipeline config built: {len(pipeline.dnt_terms)} DNT terms, "
        f"{len(pipeline.glossary)} glossary entries, {len(pipeline.tmx_memories)} TMX memories"
    )
    return pipeline

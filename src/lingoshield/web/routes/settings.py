"""Settings management API routes: configuration, DNT terms and glossary."""

from __future__ import annotations

import base64
import binascii
import re
from pathlib import Path
from typing import Any, Dict

from flask import Blueprint, Response, jsonify, request

import lingoshield.config as config
from lingoshield.config import BUILTIN_PROVIDERS, PROVIDER_NAME_PATTERN
from lingoshield.core import settings as store_settings
from lingoshield.logger import LOG_FILE, LOG_MODES, get_logger
from lingoshield.protection import (
    GlossaryEntry,
    detect_dnt_candidates,
    export_glossary_csv,
    import_glossary_csv,
    import_glossary_xlsx,
)
from lingoshield.subtitles.models import OVERLAP_RESOLUTIONS, LINE_BREAK_STRATEGIES

from ..context import get_config, get_store

settings_bp = Blueprint("settings", __name__)
logger = get_logger(__name__)

TOP_LEVEL_KEYS = ("ai_provider", "log_mode", "translation", "subtitles")


@settings_bp.get("/")
def get_settings():
    """Return current system configuration with default values merged."""
    current_config = get_config()
    logger.debug("Settings retrieved with defaults merged")
    return jsonify({
        "config": current_config,
        "meta": {
            "builtin_providers": list(BUILTIN_PROVIDERS),
            "provider_name_pattern": PROVIDER_NAME_PATTERN,
            "log_modes": list(LOG_MODES),
        },
    })


@settings_bp.put("/")
def update_settings():
    """Update system configuration."""
    data = request.get_json(silent=True)
    if not data or "config" not in data:
        return jsonify({"error": "Request body must contain a 'config' object"}), 400

    new_config = data["config"]
    validation_error = validate_config(new_config)
    if validation_error:
        return jsonify({"error": validation_error}), 400

    # Merge with existing config to preserve any fields not in the request
    current_config = get_config()
    for key, value in new_config.items():
        if isinstance(value, dict) and isinstance(current_config.get(key), dict):
            current_config[key].update(value)
        else:
            current_config[key] = value

    try:
        config.save_config(current_config, get_store())
    except Exception as e:
        logger.error(f"Failed to update settings: {e}")
        return jsonify({"error": "Failed to update settings", "details": str(e)}), 500

    logger.info("Settings updated successfully")
    return jsonify({"message": "Settings updated successfully", "config": current_config})


def validate_config(config_dict: Dict[str, Any]) -> str | None:
    """Validate configuration structure and return error message if invalid."""
    if not isinstance(config_dict, dict):
        return "Configuration must be an object"

    if "ai_provider" in config_dict:
        provider = config_dict["ai_provider"]
        if not isinstance(provider, str) or not re.match(PROVIDER_NAME_PATTERN, provider):
            return f"Invalid AI provider name: {provider}. Only letters, numbers, hyphens, and underscores allowed."

    if "log_mode" in config_dict and config_dict["log_mode"] not in LOG_MODES:
        return f"log_mode must be one of: {', '.join(LOG_MODES)}"

    for key, value in config_dict.items():
        if key in TOP_LEVEL_KEYS:
            continue
        # Everything else is a provider section
        if not re.match(PROVIDER_NAME_PATTERN, key):
            return f"Invalid custom provider name: {key}. Only letters, numbers, hyphens, and underscores allowed."
        if not isinstance(value, dict):
            return f"{key} config must be an object"
        if "api_url" in value and value["api_url"] and not isinstance(value["api_url"], str):
            return f"{key} api_url must be a string"
        if "models" in value:
            models = value["models"]
            if not isinstance(models, list):
                return f"{key} models must be an array"
            value["models"] = [m for m in models if m and isinstance(m, str)]
        if "timeout" in value:
            timeout = value["timeout"]
            if not isinstance(timeout, (int, float)) or timeout <= 0:
                return f"{key} timeout must be a positive number"

    translation = config_dict.get("translation")
    if translation is not None:
        if not isinstance(translation, dict):
            return "translation config must be an object"
        for threshold in ("fuzzy_threshold", "near_exact_cutoff", "tmx_auto_apply_threshold"):
            if threshold in translation:
                value = translation[threshold]
                if not isinstance(value, (int, float)) or not 0 <= value <= 100:
                    return f"{threshold} must be a number between 0 and 100"
        if "max_workers" in translation:
            workers = translation["max_workers"]
            if not isinstance(workers, int) or workers < 1:
                return "max_workers must be at least 1"

    subtitles = config_dict.get("subtitles")
    if subtitles is not None:
        if not isinstance(subtitles, dict):
            return "subtitles config must be an object"
        if subtitles.get("overlap_resolution", "warn") not in OVERLAP_RESOLUTIONS:
            return f"overlap_resolution must be one of: {', '.join(OVERLAP_RESOLUTIONS)}"
        if subtitles.get("line_break_strategy", "preserve") not in LINE_BREAK_STRATEGIES:
            return f"line_break_strategy must be one of: {', '.join(LINE_BREAK_STRATEGIES)}"

    return None


@settings_bp.get("/dnt")
def get_dnt_terms():
    return jsonify({"terms": store_settings.get_dnt_terms(get_store())})


@settings_bp.put("/dnt")
def update_dnt_terms():
    """Replace the DNT list. Duplicates (ignoring case) are dropped."""
    data = request.get_json(silent=True) or {}
    terms = data.get("terms")
    if not isinstance(terms, list) or not all(isinstance(term, str) for term in terms):
        return jsonify({"error": "terms must be an array of strings"}), 400

    saved = store_settings.set_dnt_terms(get_store(), terms)
    return jsonify({"message": f"Saved {len(saved)} DNT terms", "terms": saved})


@settings_bp.post("/dnt/detect")
def detect_dnt():
    """Suggest DNT candidates found in the posted source texts."""
    data = request.get_json(silent=True) or {}
    texts = data.get("texts")
    if isinstance(texts, str):
        texts = [texts]
    if not isinstance(texts, list) or not texts:
        return jsonify({"error": "texts must be a non-empty array of strings"}), 400

    result = detect_dnt_candidates(
        [text for text in texts if isinstance(text, str)],
        existing_dnt=store_settings.get_dnt_terms(get_store()),
    )
    return jsonify({
        "candidates": [candidate.to_dict() for candidate in result.candidates],
        "total_scanned": result.total_scanned,
    })


@settings_bp.get("/glossary")
def get_glossary():
    entries = store_settings.get_glossary(get_store())
    return jsonify({"entries": [entry.to_dict() for entry in entries], "count": len(entries)})


@settings_bp.put("/glossary")
def update_glossary():
    """Replace the glossary with the posted entries."""
    data = request.get_json(silent=True) or {}
    entries = data.get("entries")
    if not isinstance(entries, list):
        return jsonify({"error": "entries must be an array"}), 400

    parsed = [GlossaryEntry.from_dict(entry) for entry in entries if isinstance(entry, dict)]
    count = store_settings.set_glossary(get_store(), parsed)
    return jsonify({"message": f"Saved {count} glossary entries", "count": count})


@settings_bp.post("/glossary/import")
def import_glossary():
    """
    Import a glossary CSV or XLSX workbook.

    Body: {"content": "<csv>" or base64 workbook, "format": "csv"|"xlsx",
           "languages": [...optional target codes], "mode": "replace"|"append"}
    """
    data = request.get_json(silent=True) or {}
    content = data.get("content")
    if not isinstance(content, str) or not content.strip():
        return jsonify({"error": "content must be a non-empty string"}), 400

    file_format = data.get("format", "csv")
    if file_format == "xlsx":
        try:
            workbook = base64.b64decode(content, validate=True)
        except (binascii.Error, ValueError):
            return jsonify({"error": "xlsx content must be base64 encoded"}), 400
        entries, warnings = import_glossary_xlsx(workbook, data.get("languages"))
    elif file_format == "csv":
        entries, warnings = import_glossary_csv(content, data.get("languages"))
    else:
        return jsonify({"error": "format must be 'csv' or 'xlsx'"}), 400

    store = get_store()
    if data.get("mode") == "append":
        entries = store_settings.get_glossary(store) + entries
    count = store_settings.set_glossary(store, entries)
    logger.info(f"Glossary import: {count} entries saved, {len(warnings)} warnings")
    return jsonify({"message": f"Imported glossary ({count} entries)", "count": count, "warnings": warnings})


@settings_bp.get("/glossary/export")
def export_glossary():
    entries = store_settings.get_glossary(get_store())
    if not entries:
        return jsonify({"error": "No glossary entries to export"}), 404
    return Response(
        export_glossary_csv(entries),
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=glossary.csv"},
    )


@settings_bp.delete("/logs")
def clear_logs():
    """Delete all log files to free up disk space."""
    try:
        log_file = Path(LOG_FILE)
        deleted_count = 0

        log_dir = log_file.parent
        if log_dir.exists():
            for log_path in log_dir.glob("*.log"):
                log_path.unlink()
                deleted_count += 1

        if deleted_count > 0:
            logger.info("Log files deleted")
            return jsonify({"message": f"Successfully deleted {deleted_count} log file(s)"})
        return jsonify({"message": "No log files found to delete"})
    except OSError as e:
        logger.error(f"Failed to delete logs: {e}")
        return jsonify({"error": "Failed to delete logs", "details": str(e)}), 500

"""Translation memory API routes."""

from __future__ import annotations

from flask import Blueprint, Response, jsonify, request

from lingoshield.core import settings as store_settings
from lingoshield.logger import get_logger
from lingoshield.tmx import TmxMatcher, export_memory, get_tmx_statistics, parse_tmx

from ..context import get_config, get_store

tmx_bp = Blueprint("tmx", __name__)
logger = get_logger(__name__)


@tmx_bp.get("/")
def list_memories():
    memories = store_settings.list_tmx_memories(get_store())
    return jsonify({"memories": [get_tmx_statistics(memory) for memory in memories]})


@tmx_bp.post("/")
def import_memory():
    """
    Import a TMX file.

    Body: {"name": "memory.tmx", "content": "<tmx ...>"}
    """
    data = request.get_json(silent=True) or {}
    content = data.get("content")
    if not isinstance(content, str) or not content.strip():
        return jsonify({"error": "content must be a non-empty TMX document"}), 400
    name = str(data.get("name") or "memory.tmx")

    # MalformedInputError becomes a 400 through the app error handler
    memory = parse_tmx(content, name)
    store_settings.save_tmx_memory(get_store(), memory)
    logger.info(f"Imported TMX memory {name} with {len(memory.units)} units")
    return jsonify({"message": f"Imported {len(memory.units)} units", "memory": get_tmx_statistics(memory)}), 201


@tmx_bp.get("/<name>/export")
def export(name: str):
    memory = store_settings.get_tmx_memory(get_store(), name)
    if memory is None:
        return jsonify({"error": "Memory not found"}), 404
    filename = name if name.lower().endswith(".tmx") else f"{name}.tmx"
    return Response(
        export_memory(memory),
        mimetype="application/xml",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@tmx_bp.delete("/<name>")
def delete_memory(name: str):
    if not store_settings.delete_tmx_memory(get_store(), name):
        return jsonify({"error": "Memory not found"}), 404
    return jsonify({"message": f"Deleted memory {name}"})


@tmx_bp.post("/match")
def match():
    """
    Look up a source text in every stored memory.

    Body: {"text": "...", "target_lang": "fr-FR", "threshold": optional, "limit": optional}
    """
    data = request.get_json(silent=True) or {}
    text = data.get("text")
    target_lang = data.get("target_lang")
    if not isinstance(text, str) or not isinstance(target_lang, str) or not target_lang:
        return jsonify({"error": "text and target_lang are required"}), 400

    translation_config = get_config().get("translation", {})
    threshold = data.get("threshold", translation_config.get("fuzzy_threshold", 70))
    if not isinstance(threshold, (int, float)) or not 0 <= threshold <= 100:
        return jsonify({"error": "threshold must be a number between 0 and 100"}), 400
    limit = data.get("limit")
    if limit is not None and (not isinstance(limit, int) or limit < 1):
        return jsonify({"error": "limit must be a positive integer"}), 400

    matcher = TmxMatcher(near_exact_cutoff=translation_config.get("near_exact_cutoff", 95))
    matches = matcher.find_matches(
        text,
        store_settings.list_tmx_memories(get_store()),
        target_lang,
        fuzzy_threshold=threshold,
        limit=limit,
    )
    return jsonify({"matches": [item.to_dict() for item in matches]})

"""Content extraction API routes."""

from __future__ import annotations

import base64
import binascii

from flask import Blueprint, jsonify, request

from lingoshield.core import settings as store_settings
from lingoshield.logger import get_logger
from lingoshield.translation.extractor import CONTENT_TYPES, ContentExtractor
from lingoshield.translation.reconstruction import ReconstructionEngine
from lingoshield.translation.utils import text_stats
from lingoshield.translation.workbook import read_workbook

from ..context import get_store

extract_bp = Blueprint("extract", __name__)
logger = get_logger(__name__)


@extract_bp.post("/extract")
def extract_content():
    """
    Classify content and return its template and text segments.

    Body: {"content": "...", "content_type": optional "html"|"json"|"plain"}
    """
    data = request.get_json(silent=True) or {}
    content = data.get("content")
    if not isinstance(content, str):
        return jsonify({"error": "content must be a string"}), 400
    hint = data.get("content_type")
    if hint is not None and hint not in CONTENT_TYPES:
        return jsonify({"error": f"content_type must be one of: {', '.join(CONTENT_TYPES)}"}), 400

    extraction = ContentExtractor().extract(content, hint, store_settings.get_dnt_terms(get_store()))
    payload = extraction.to_dict()
    payload["stats"] = text_stats(content)
    payload["translation_units"] = [unit.to_dict() for unit in extraction.translation_units()]
    logger.debug(f"Extracted {len(extraction.items)} segments as {extraction.content_type}")
    return jsonify(payload)


@extract_bp.post("/rebuild")
def rebuild_content():
    """
    Extract content, then rebuild it with the posted per-item translations.

    Body: {"content": "...", "translations": {"T1": "..."}, "target_locale": optional}
    """
    data = request.get_json(silent=True) or {}
    content = data.get("content")
    translations = data.get("translations")
    if not isinstance(content, str):
        return jsonify({"error": "content must be a string"}), 400
    if not isinstance(translations, dict):
        return jsonify({"error": "translations must be an object of item id -> text"}), 400

    extraction = ContentExtractor().extract(
        content, data.get("content_type"), store_settings.get_dnt_terms(get_store())
    )
    output = ReconstructionEngine().rebuild(
        extraction,
        {str(key): str(value) for key, value in translations.items()},
        data.get("target_locale"),
    )
    return jsonify({"content_type": extraction.content_type, "output": output})


@extract_bp.post("/workbook/inspect")
def inspect_workbook():
    """
    Read a workbook: detected source language, existing language columns and
    the column D text of every row.

    Body: {"content": base64 .xlsx file, "name": optional file name}
    """
    data = request.get_json(silent=True) or {}
    content = data.get("content")
    if not isinstance(content, str) or not content.strip():
        return jsonify({"error": "content must be a non-empty string"}), 400
    try:
        workbook_data = base64.b64decode(content, validate=True)
    except (binascii.Error, ValueError):
        return jsonify({"error": "content must be a base64 encoded .xlsx file"}), 400

    workbook = read_workbook(workbook_data, str(data.get("name") or "workbook.xlsx"))
    return jsonify(workbook.to_dict())

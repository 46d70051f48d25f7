"""Translation job API routes."""

from __future__ import annotations

import base64
import binascii
from typing import Any, Dict, List

from flask import Blueprint, Response, jsonify, request

import lingoshield.language_codes as lc
from lingoshield.ai.service import create_provider
from lingoshield.logger import get_logger
from lingoshield.subtitles.validator import validate_file_size
from lingoshield.translation.utils import format_text_for_download
from lingoshield.translation.workbook import (
    OVERWRITE_MODES,
    XLSX_MIMETYPE,
    output_workbook_name,
    read_workbook,
)

from ..context import get_config, get_pipeline_config
from ..tasks import (
    JOB_KINDS,
    KIND_DOCUMENTS,
    KIND_SUBTITLES,
    KIND_WORKBOOK,
    cancel_job,
    create_translation_job,
    get_job,
    pause_job,
    resume_job,
    serialize_job,
)

jobs_bp = Blueprint("jobs", __name__)
logger = get_logger(__name__)


def _parse_documents(data: Dict[str, Any]) -> List[Dict[str, Any]] | str:
    documents = data.get("documents")
    if documents is None and isinstance(data.get("content"), str):
        documents = [{"name": data.get("name") or "text", "content": data["content"],
                      "content_type": data.get("content_type")}]
    if not isinstance(documents, list) or not documents:
        return "documents must be a non-empty array"

    parsed = []
    seen = set()
    for index, document in enumerate(documents):
        if not isinstance(document, dict) or not isinstance(document.get("content"), str):
            return f"documents[{index}] must be an object with a string content"
        name = str(document.get("name") or f"document_{index + 1}")
        if name in seen:
            return f"Duplicate document name: {name}"
        seen.add(name)
        parsed.append({"name": name, "content": document["content"],
                       "content_type": document.get("content_type")})
    return parsed


@jobs_bp.post("/")
def create_job():
    """
    Start a background translation job.

    Body: {"documents": [{"name", "content", "content_type"}], "languages": [...],
           "kind": "documents"|"subtitles"|"workbook", "ai_provider": optional,
           "source_language": optional, "overwrite_mode": optional (workbook)}

    Workbook documents carry base64 .xlsx content; without a source_language
    the language named in the first workbook's column D header is used.
    """
    data = request.get_json(silent=True) or {}

    languages = data.get("languages")
    if not isinstance(languages, list) or not languages:
        return jsonify({"error": "languages must be a non-empty array"}), 400
    invalid = [code for code in languages if not isinstance(code, str) or not lc.is_valid_language_code(code)]
    if invalid:
        return jsonify({"error": "Invalid language codes", "details": invalid}), 400

    kind = data.get("kind", KIND_DOCUMENTS)
    if kind not in JOB_KINDS:
        return jsonify({"error": f"kind must be one of: {', '.join(JOB_KINDS)}"}), 400

    documents = _parse_documents(data)
    if isinstance(documents, str):
        return jsonify({"error": documents}), 400

    if kind == KIND_SUBTITLES:
        oversized = [
            issue.to_dict()
            for document in documents
            for issue in validate_file_size(len(document["content"].encode("utf-8")))
        ]
        if oversized:
            return jsonify({"error": "Subtitle file too large", "details": oversized}), 400

    source_language = data.get("source_language")
    options: Dict[str, Any] = {}
    if kind == KIND_WORKBOOK:
        overwrite_mode = data.get("overwrite_mode", OVERWRITE_MODES[0])
        if overwrite_mode not in OVERWRITE_MODES:
            return jsonify({"error": f"overwrite_mode must be one of: {', '.join(OVERWRITE_MODES)}"}), 400
        options["overwrite_mode"] = overwrite_mode
        for index, document in enumerate(documents):
            try:
                content = base64.b64decode(document["content"], validate=True)
            except (binascii.Error, ValueError):
                return jsonify({"error": f"documents[{index}] must be a base64 encoded .xlsx file"}), 400
            # Unreadable workbooks surface as 400 through the app error handler
            workbook = read_workbook(content, document["name"])
            if index == 0 and not source_language:
                source_language = workbook.source_language

    # Configuration errors surface here as 400 through the app error handler
    provider = create_provider(get_config(), data.get("ai_provider"))
    pipeline_config = get_pipeline_config(source_language)

    job = create_translation_job(
        pipeline_config,
        provider,
        documents,
        languages,
        kind=kind,
        ai_provider=getattr(provider, "name", None),
        run_async=bool(data.get("async", True)),
        options=options,
    )
    return jsonify(serialize_job(job)), 202


@jobs_bp.get("/<job_id>")
def get_job_status(job_id: str):
    job = get_job(job_id)
    if not job:
        return jsonify({"error": "Job not found"}), 404
    return jsonify(serialize_job(job))


@jobs_bp.post("/<job_id>/pause")
def pause(job_id: str):
    if not pause_job(job_id):
        return jsonify({"error": "Job not found or already finished"}), 409
    return jsonify({"message": "Job paused", "job_id": job_id})


@jobs_bp.post("/<job_id>/resume")
def resume(job_id: str):
    if not resume_job(job_id):
        return jsonify({"error": "Job not found or not paused"}), 409
    return jsonify({"message": "Job resumed", "job_id": job_id})


@jobs_bp.post("/<job_id>/cancel")
def cancel(job_id: str):
    if not cancel_job(job_id):
        return jsonify({"error": "Job not found or already finished"}), 409
    return jsonify({"message": "Cancellation requested", "job_id": job_id})


@jobs_bp.get("/<job_id>/download")
def download(job_id: str):
    """
    Download one output (?name=...).

    Workbook jobs return the translated .xlsx file; other jobs return plain
    text of one document across every completed language.
    """
    job = get_job(job_id)
    if not job or not job.result:
        return jsonify({"error": "Job not found or not finished"}), 404

    if job.kind == KIND_WORKBOOK:
        return _download_workbook(job)

    outputs = job.result.get("outputs", {})
    output_files = job.result.get("output_files", {})
    name = request.args.get("name") or (job.documents[0]["name"] if job.documents else "")
    per_language = {}
    for lang_code, docs in outputs.items():
        if name in docs:
            per_language[lang_code] = docs[name]
            continue
        # Subtitle outputs are renamed per language; an input file name picks its first output
        renamed = output_files.get(lang_code, {}).get(name)
        if renamed:
            per_language[lang_code] = docs[renamed[0]]
    if not per_language:
        return jsonify({"error": f"No output for document: {name}"}), 404

    return Response(
        format_text_for_download(per_language),
        mimetype="text/plain; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={name}_translations.txt"},
    )


def _download_workbook(job):
    workbooks = job.result.get("workbooks", {})
    name = request.args.get("name") or (job.documents[0]["name"] if job.documents else "")
    if name not in workbooks:
        name = output_workbook_name(name)
    if name not in workbooks:
        return jsonify({"error": f"No translated workbook: {name}"}), 404

    return Response(
        base64.b64decode(workbooks[name]),
        mimetype=XLSX_MIMETYPE,
        headers={"Content-Disposition": f"attachment; filename={name}"},
    )

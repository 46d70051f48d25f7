"""Subtitle validation API routes."""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from lingoshield.exceptions import MalformedInputError
from lingoshield.logger import get_logger
from lingoshield.subtitles import (
    analyze_timing_issues,
    get_timing_issue_summary,
    parse_subtitle_file,
    validate_file_size,
    validate_subtitle_batch,
)
from lingoshield.subtitles.models import SubtitleSettings

from ..context import get_config

subtitles_bp = Blueprint("subtitles", __name__)
logger = get_logger(__name__)


@subtitles_bp.post("/validate")
def validate_subtitles():
    """
    Parse and validate SRT/VTT files.

    Body: {"files": [{"file_name": "a.srt", "content": "..."}]} or a single
    {"file_name", "content"}. Settings from the stored configuration can be
    overridden with a "settings" object.
    """
    data = request.get_json(silent=True) or {}
    files = data.get("files")
    if files is None and isinstance(data.get("content"), str):
        files = [{"file_name": data.get("file_name") or "subtitles.srt", "content": data["content"]}]
    if not isinstance(files, list) or not files:
        return jsonify({"error": "files must be a non-empty array"}), 400

    settings_data = dict(get_config().get("subtitles", {}))
    if isinstance(data.get("settings"), dict):
        settings_data.update(data["settings"])
    settings = SubtitleSettings.from_dict(settings_data)

    parsed = []
    file_results = {}
    for index, item in enumerate(files):
        if not isinstance(item, dict) or not isinstance(item.get("content"), str):
            return jsonify({"error": f"files[{index}] must be an object with a string content"}), 400
        file_name = str(item.get("file_name") or f"file_{index + 1}.srt")
        size_issues = validate_file_size(len(item["content"].encode("utf-8")))
        if size_issues:
            file_results[file_name] = {
                "format": None,
                "cue_count": 0,
                "validation_issues": [issue.to_dict() for issue in size_issues],
                "timing_issues": [],
                "timing_summary": get_timing_issue_summary([]),
            }
            continue
        try:
            subtitle_file = parse_subtitle_file(item["content"], file_name)
        except MalformedInputError as e:
            file_results[file_name] = {"error": str(e), "code": e.code}
            continue
        subtitle_file.timing_issues = analyze_timing_issues(subtitle_file.cues, settings)
        parsed.append(subtitle_file)

    batch = validate_subtitle_batch(parsed, settings)
    for subtitle_file in parsed:
        issues = batch["all_issues"].get(subtitle_file.file_name, [])
        file_results[subtitle_file.file_name] = {
            "format": subtitle_file.format,
            "encoding": subtitle_file.encoding,
            "cue_count": len(subtitle_file.cues),
            "validation_issues": [issue.to_dict() for issue in issues],
            "timing_issues": [issue.to_dict() for issue in subtitle_file.timing_issues],
            "timing_summary": get_timing_issue_summary(subtitle_file.timing_issues),
        }

    batch_issues = [issue.to_dict() for issue in batch["all_issues"].get("__batch__", [])]
    has_errors = batch["has_errors"] or any(
        "error" in result or any(issue["severity"] == "error" for issue in result["validation_issues"])
        for result in file_results.values()
    )
    logger.info(f"Validated {len(files)} subtitle files ({batch['total_subtitles']} cues, errors={has_errors})")
    return jsonify({
        "files": file_results,
        "batch_issues": batch_issues,
        "has_errors": has_errors,
        "total_subtitles": batch["total_subtitles"],
        "settings": settings.to_dict(),
    })

"""
Subtitle Validator Module

Structural checks that produce ValidationIssue findings:
- HTML tag balance inside one cue (explicit stack, reset per cue)
- Characters per line and lines per cue
- Per-file and per-batch performance limits

Imbalanced markup is reported, never repaired.
"""

from typing import Any, Dict, List

from lingoshield.logger import get_logger
from lingoshield.patterns import ANY_TAG_PATTERN, NAMED_TAG_PATTERN
from lingoshield.subtitles.helpers import count_chars_without_tags
from lingoshield.subtitles.models import (
    ISSUE_FILE_TOO_LARGE,
    ISSUE_INVALID_FORMAT,
    ISSUE_MALFORMED_HTML,
    ISSUE_TOO_MANY_SUBTITLES,
    PERFORMANCE_LIMITS,
    SEVERITY_ERROR,
    SEVERITY_WARNING,
    SubtitleFile,
    SubtitleSettings,
    ValidationIssue,
)

logger = get_logger(__name__)

BATCH_KEY = "__batch__"


def validate_subtitle_html(text: str, subtitle_index: int) -> List[ValidationIssue]:
    """
    Check that the tags in one cue are balanced.

    Opening tags are pushed, self-closing ones such as <br/> are skipped, and
    a closing tag must match the top of the stack.
    A closing tag with an empty stack, a mismatched closing tag and every tag
    left open at the end each produce one error.

    Args:
        text: Cue text
        subtitle_index: Index of the cue the findings belong to

    Returns:
        List of malformed-html issues (empty when balanced or tag-free)
    """
    issues: List[ValidationIssue] = []
    if not ANY_TAG_PATTERN.search(text):
        return issues

    stack = []
    for match in NAMED_TAG_PATTERN.finditer(text):
        full = match.group(0)
        tag = match.group(1).lower()
        position = match.start()

        if full.endswith('/>'):
            continue
        if not full.startswith('</'):
            stack.append((tag, position, full))
            continue

        if not stack:
            issues.append(ValidationIssue(
                type=ISSUE_MALFORMED_HTML,
                subtitle_index=subtitle_index,
                message=f"Closing tag {full} has no matching opening tag",
                severity=SEVERITY_ERROR,
                html_snippet=text[max(0, position - 20):position + 30],
                suggested_fix=f"Remove {full} or add opening <{tag}> before it",
            ))
            continue

        open_tag, open_position, _ = stack[-1]
        if open_tag != tag:
            issues.append(ValidationIssue(
                type=ISSUE_MALFORMED_HTML,
                subtitle_index=subtitle_index,
                message=f"Mismatched HTML tags: <{open_tag}> closed with </{tag}>",
                severity=SEVERITY_ERROR,
                html_snippet=text[open_position:position + len(full)],
                suggested_fix=f"Change </{tag}> to </{open_tag}> or change <{open_tag}> to <{tag}>",
            ))
        stack.pop()

    for tag, position, full in stack:
        issues.append(ValidationIssue(
            type=ISSUE_MALFORMED_HTML,
            subtitle_index=subtitle_index,
            message=f"Unclosed HTML tag: {full}",
            severity=SEVERITY_ERROR,
            html_snippet=text[position:min(len(text), position + 50)],
            suggested_fix=f"Add </{tag}> at the end or remove {full}",
        ))

    return issues


def validate_subtitle_file(subtitle_file: SubtitleFile, settings: SubtitleSettings) -> List[ValidationIssue]:
    """Parser issues plus cue-count, line-length and line-count checks."""
    issues = list(subtitle_file.validation_issues)
    limit = PERFORMANCE_LIMITS["max_subtitles_per_file"]

    if len(subtitle_file.cues) > limit:
        issues.append(ValidationIssue(
            type=ISSUE_TOO_MANY_SUBTITLES,
            subtitle_index=0,
            message=f"File contains {len(subtitle_file.cues)} subtitles, exceeding limit of {limit}",
            severity=SEVERITY_ERROR,
        ))

    for cue in subtitle_file.cues:
        lines = cue.text.split('\n')
        for line_number, line in enumerate(lines, start=1):
            char_count = count_chars_without_tags(line)
            if char_count > settings.max_chars_per_line:
                issues.append(ValidationIssue(
                    type=ISSUE_INVALID_FORMAT,
                    subtitle_index=cue.index,
                    message=(
                        f"Line {line_number} exceeds character limit: {char_count} chars "
                        f"(max: {settings.max_chars_per_line})"
                    ),
                    severity=SEVERITY_WARNING,
                ))
        if len(lines) > settings.max_lines_per_subtitle:
            issues.append(ValidationIssue(
                type=ISSUE_INVALID_FORMAT,
                subtitle_index=cue.index,
                message=(
                    f"Subtitle has {len(lines)} lines, exceeding limit of "
                    f"{settings.max_lines_per_subtitle} lines"
                ),
                severity=SEVERITY_WARNING,
            ))

    return issues


def validate_subtitle_batch(files: List[SubtitleFile], settings: SubtitleSettings) -> Dict[str, Any]:
    """
    Validate several files together.

    Returns:
        Dict with all_issues (file name -> issues, batch-level issues under
        "__batch__"), has_errors and total_subtitles
    """
    all_issues: Dict[str, List[ValidationIssue]] = {}
    has_errors = False
    total = 0

    max_files = PERFORMANCE_LIMITS["max_files_in_batch"]
    if len(files) > max_files:
        all_issues[BATCH_KEY] = [ValidationIssue(
            type=ISSUE_INVALID_FORMAT,
            subtitle_index=0,
            message=f"Too many files: {len(files)} (max: {max_files})",
            severity=SEVERITY_ERROR,
        )]
        has_errors = True

    for subtitle_file in files:
        file_issues = validate_subtitle_file(subtitle_file, settings)
        total += len(subtitle_file.cues)
        if file_issues:
            all_issues[subtitle_file.file_name] = file_issues
            if any(issue.severity == SEVERITY_ERROR for issue in file_issues):
                has_errors = True

    max_total = PERFORMANCE_LIMITS["max_total_subtitles"]
    if total > max_total:
        all_issues.setdefault(BATCH_KEY, []).append(ValidationIssue(
            type=ISSUE_TOO_MANY_SUBTITLES,
            subtitle_index=0,
            message=f"Total subtitles across all files: {total} (max: {max_total})",
            severity=SEVERITY_ERROR,
        ))
        has_errors = True

    if has_errors:
        logger.warning(f"Subtitle batch of {len(files)} files has blocking errors")
    return {"all_issues": all_issues, "has_errors": has_errors, "total_subtitles": total}


def validate_file_size(size_bytes: int) -> List[ValidationIssue]:
    """One file-too-large error when the file exceeds the size limit."""
    max_mb = PERFORMANCE_LIMITS["max_file_size_mb"]
    if size_bytes <= max_mb * 1024 * 1024:
        return []
    return [ValidationIssue(
        type=ISSUE_FILE_TOO_LARGE,
        subtitle_index=0,
        message=f"File size {size_bytes / 1024 / 1024:.2f}MB exceeds limit of {max_mb}MB",
        severity=SEVERITY_ERROR,
    )]

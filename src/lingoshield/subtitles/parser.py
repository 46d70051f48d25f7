"""
SRT / WebVTT Reader Module

Parses subtitle text into cues. Imperfect input never raises: every defect
becomes a ValidationIssue on the returned SubtitleFile and the valid cues are
kept, so the rest of the file can still be translated.
"""

import re
from typing import List

from lingoshield.exceptions import MalformedInputError
from lingoshield.logger import get_logger
from lingoshield.patterns import ANY_TAG_PATTERN
from lingoshield.subtitles.helpers import (
    detect_encoding,
    detect_subtitle_format,
    extract_voice_tag,
    strip_bom,
    timecode_to_ms,
)
from lingoshield.subtitles.models import (
    FORMAT_SRT,
    FORMAT_VTT,
    ISSUE_INVALID_FORMAT,
    ISSUE_MALFORMED_TIMECODE,
    ISSUE_MISSING_INDEX,
    SEVERITY_ERROR,
    SEVERITY_WARNING,
    SubtitleCue,
    SubtitleFile,
    ValidationIssue,
    VttCue,
    VttMetadata,
)
from lingoshield.subtitles.validator import validate_subtitle_html

logger = get_logger(__name__)

_BLOCK_SEPARATOR = re.compile(r'\n\s*\n')
_SRT_TIMING_LINE = re.compile(r'^(\d{2}:\d{2}:\d{2},\d{3})\s*-->\s*(\d{2}:\d{2}:\d{2},\d{3})$')
_VTT_TIMING_LINE = re.compile(r'^(\d{2}:\d{2}:\d{2}\.\d{3})\s*-->\s*(\d{2}:\d{2}:\d{2}\.\d{3})(.*)$')


def _blocks(content: str) -> List[str]:
    normalized = strip_bom(content).replace('\r\n', '\n').replace('\r', '\n')
    return [block.strip() for block in _BLOCK_SEPARATOR.split(normalized) if block.strip()]


def _timing_issue(start: str, end: str, subtitle_index: int):
    """Error when a cue does not end after it starts, None otherwise."""
    if timecode_to_ms(start) < timecode_to_ms(end):
        return None
    return ValidationIssue(
        type=ISSUE_MALFORMED_TIMECODE,
        subtitle_index=subtitle_index,
        message=f'End time "{end}" is not after start time "{start}"',
        severity=SEVERITY_ERROR,
        suggested_fix="Check timecodes",
    )


def _text_issues(text: str, subtitle_index: int, empty_message: str) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    if not text.strip():
        issues.append(ValidationIssue(
            type=ISSUE_INVALID_FORMAT,
            subtitle_index=subtitle_index,
            message=empty_message,
            severity=SEVERITY_WARNING,
        ))
    if ANY_TAG_PATTERN.search(text):
        issues.extend(validate_subtitle_html(text, subtitle_index))
    return issues


def parse_srt(content: str, file_name: str = "subtitles.srt") -> SubtitleFile:
    """
    Parse SRT content.

    Each block is "index / start --> end / text lines". Blocks that cannot be
    read (fewer than three lines, non-numeric index, malformed timecode, end
    not after start) are skipped with an error; empty text and duplicate
    indices are warnings.
    """
    result = SubtitleFile(file_name=file_name, format=FORMAT_SRT, encoding=detect_encoding(content))

    for block_number, block in enumerate(_blocks(content), start=1):
        lines = block.split('\n')
        if len(lines) < 3:
            result.validation_issues.append(ValidationIssue(
                type=ISSUE_INVALID_FORMAT,
                subtitle_index=block_number,
                message="Block has less than 3 lines (expected: index, timecode, text)",
                severity=SEVERITY_ERROR,
            ))
            continue

        index_line = lines[0].strip()
        try:
            index = int(index_line)
        except ValueError:
            result.validation_issues.append(ValidationIssue(
                type=ISSUE_MISSING_INDEX,
                subtitle_index=block_number,
                message=f'Invalid or missing subtitle index: "{index_line}"',
                severity=SEVERITY_ERROR,
            ))
            continue

        timing_line = lines[1].strip()
        match = _SRT_TIMING_LINE.match(timing_line)
        if not match:
            result.validation_issues.append(ValidationIssue(
                type=ISSUE_MALFORMED_TIMECODE,
                subtitle_index=index,
                message=(
                    f'Invalid timecode format: "{timing_line}" '
                    f'(expected format: 00:00:00,000 --> 00:00:00,000)'
                ),
                severity=SEVERITY_ERROR,
            ))
            continue

        start, end = match.group(1), match.group(2)
        timing_issue = _timing_issue(start, end, index)
        if timing_issue:
            result.validation_issues.append(timing_issue)
            continue

        text_lines = lines[2:]
        text = '\n'.join(text_lines)
        result.validation_issues.extend(_text_issues(text, index, "Subtitle has no text content"))
        result.cues.append(SubtitleCue(
            index=index, start_time=start, end_time=end, text=text, original_lines=text_lines,
        ))

    seen = set()
    for cue in result.cues:
        if cue.index in seen:
            result.validation_issues.append(ValidationIssue(
                type=ISSUE_INVALID_FORMAT,
                subtitle_index=cue.index,
                message=f"Duplicate subtitle index: {cue.index}",
                severity=SEVERITY_WARNING,
            ))
        seen.add(cue.index)

    logger.debug(f"Parsed SRT '{file_name}': {len(result.cues)} cues, {len(result.validation_issues)} issues")
    return result


def parse_vtt(content: str, file_name: str = "subtitles.vtt") -> SubtitleFile:
    """
    Parse WebVTT content.

    NOTE and STYLE blocks are kept in the metadata. A cue may start with an
    identifier line; anything after the end timecode is kept as cue settings.
    A leading <v Speaker> tag is split into voice_tag. Cues are numbered
    sequentially from 1.
    """
    result = SubtitleFile(file_name=file_name, format=FORMAT_VTT, encoding=detect_encoding(content))
    normalized = strip_bom(content).replace('\r\n', '\n').replace('\r', '\n')
    header = normalized.split('\n', 1)[0].strip()
    result.vtt_metadata = VttMetadata(header=header or "WEBVTT")

    if not header.startswith('WEBVTT'):
        result.validation_issues.append(ValidationIssue(
            type=ISSUE_INVALID_FORMAT,
            subtitle_index=0,
            message="File does not start with WEBVTT header",
            severity=SEVERITY_ERROR,
        ))
        return result

    for block_number, block in enumerate(_blocks(content), start=1):
        lines = block.split('\n')
        first = lines[0]
        if first.startswith('WEBVTT'):
            continue
        if first.startswith('NOTE'):
            result.vtt_metadata.note_blocks.append(block)
            continue
        if first.startswith('STYLE'):
            result.vtt_metadata.style_blocks.append(block)
            continue

        line_index = 0
        cue_identifier = None
        if len(lines) > 1 and '-->' not in first:
            cue_identifier = first.strip()
            line_index = 1
        elif '-->' not in first:
            result.validation_issues.append(ValidationIssue(
                type=ISSUE_INVALID_FORMAT,
                subtitle_index=block_number,
                message="Missing timecode line",
                severity=SEVERITY_ERROR,
            ))
            continue

        timing_line = lines[line_index].strip()
        match = _VTT_TIMING_LINE.match(timing_line)
        if not match:
            result.validation_issues.append(ValidationIssue(
                type=ISSUE_MALFORMED_TIMECODE,
                subtitle_index=block_number,
                message=(
                    f'Invalid VTT timecode format: "{timing_line}" '
                    f'(expected format: 00:00:00.000 --> 00:00:00.000)'
                ),
                severity=SEVERITY_ERROR,
            ))
            continue

        start, end = match.group(1), match.group(2)
        timing_issue = _timing_issue(start, end, block_number)
        if timing_issue:
            result.validation_issues.append(timing_issue)
            continue

        text_lines = lines[line_index + 1:]
        text = '\n'.join(text_lines)
        result.validation_issues.extend(_text_issues(text, block_number, "Cue has no text content"))

        voice_tag, text_without_tag = extract_voice_tag(text)
        result.cues.append(VttCue(
            index=len(result.cues) + 1,
            start_time=start,
            end_time=end,
            text=text_without_tag if voice_tag else text,
            original_lines=text_lines,
            cue_identifier=cue_identifier,
            cue_settings=match.group(3).strip() or None,
            voice_tag=voice_tag,
        ))

    logger.debug(f"Parsed VTT '{file_name}': {len(result.cues)} cues, {len(result.validation_issues)} issues")
    return result


def parse_subtitle_file(content: str, file_name: str) -> SubtitleFile:
    """
    Parse SRT or VTT content, picking the reader from the extension or the content.

    Raises:
        MalformedInputError: If the content is neither SRT nor VTT
    """
    lowered = file_name.lower()
    if lowered.endswith('.srt'):
        return parse_srt(content, file_name)
    if lowered.endswith('.vtt'):
        return parse_vtt(content, file_name)

    detected = detect_subtitle_format(content)
    if detected == FORMAT_SRT:
        return parse_srt(content, file_name)
    if detected == FORMAT_VTT:
        return parse_vtt(content, file_name)
    raise MalformedInputError(
        f"Unrecognised subtitle format: {file_name}", code="subtitle_unknown_format"
    )

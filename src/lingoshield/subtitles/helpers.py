"""
Subtitle helper functions: timecodes, format/encoding detection, character
counts, voice tags and line breaking.
"""

import re
from typing import Optional, Tuple

from lingoshield.patterns import ANY_TAG_PATTERN
from lingoshield.subtitles.models import FORMAT_SRT, FORMAT_VTT

UTF8_BOM = "\ufeff"

_SRT_DETECT = re.compile(r'^\d+\s*\n\d{2}:\d{2}:\d{2},\d{3}\s*-->\s*\d{2}:\d{2}:\d{2},\d{3}', re.MULTILINE)
_VTT_DETECT = re.compile(r'\d{2}:\d{2}:\d{2}\.\d{3}\s*-->\s*\d{2}:\d{2}:\d{2}\.\d{3}', re.MULTILINE)

_VOICE_WRAPPED = re.compile(r'^<v\s+([^>]+)>(.*)</v>$', re.IGNORECASE | re.DOTALL)
_VOICE_OPEN = re.compile(r'^<v\s+([^>]+)>(.*)', re.IGNORECASE | re.DOTALL)


def timecode_to_ms(timecode: str) -> int:
    """
    Parse an SRT (comma) or VTT (period) timecode to milliseconds.

    Returns 0 for anything that is not HH:MM:SS[.,]mmm.
    """
    parts = timecode.strip().replace(',', '.').split(':')
    if len(parts) != 3:
        return 0
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
        seconds_part, _, millis_part = parts[2].partition('.')
        seconds = int(seconds_part)
        millis = int(millis_part) if millis_part else 0
    except ValueError:
        return 0
    return (hours * 3600 + minutes * 60 + seconds) * 1000 + millis


def _format_ms(ms: int, separator: str) -> str:
    ms = max(0, int(ms))
    hours, rest = divmod(ms, 3600000)
    minutes, rest = divmod(rest, 60000)
    seconds, millis = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}{separator}{millis:03d}"


def ms_to_srt_timecode(ms: int) -> str:
    return _format_ms(ms, ',')


def ms_to_vtt_timecode(ms: int) -> str:
    return _format_ms(ms, '.')


def convert_timecode(timecode: str, target_format: str) -> str:
    """Rewrite a timecode with the separator of the target format."""
    ms = timecode_to_ms(timecode)
    return ms_to_vtt_timecode(ms) if target_format == FORMAT_VTT else ms_to_srt_timecode(ms)


def detect_subtitle_format(content: str) -> Optional[str]:
    """Return "srt", "vtt" or None."""
    trimmed = content.lstrip(UTF8_BOM).strip()
    if trimmed.startswith('WEBVTT'):
        return FORMAT_VTT
    if _SRT_DETECT.search(trimmed):
        return FORMAT_SRT
    if _VTT_DETECT.search(trimmed):
        return FORMAT_VTT
    return None


def detect_encoding(content: str) -> str:
    return "UTF-8-BOM" if content.startswith(UTF8_BOM) else "UTF-8"


def strip_bom(content: str) -> str:
    return content[1:] if content.startswith(UTF8_BOM) else content


def count_chars_without_tags(text: str) -> int:
    return len(ANY_TAG_PATTERN.sub('', text))


def calculate_reading_speed(text: str, duration_ms: int) -> float:
    """Characters (tags excluded) per second; 0 for a zero duration."""
    if duration_ms == 0:
        return 0.0
    return count_chars_without_tags(text) / (duration_ms / 1000)


def extract_voice_tag(text: str) -> Tuple[Optional[str], str]:
    """
    Split a leading <v Speaker> tag from cue text.

    Returns:
        (speaker or None, text without the voice tag)
    """
    match = _VOICE_WRAPPED.match(text) or _VOICE_OPEN.match(text)
    if not match:
        return None, text
    return match.group(1).strip(), match.group(2).strip()


def apply_voice_tag(text: str, voice_tag: Optional[str]) -> str:
    if not voice_tag:
        return text
    return f"<v {voice_tag}>{text}</v>"


def apply_line_break_strategy(text: str, strategy: str, max_chars_per_line: int) -> str:
    """
    Apply a line break strategy to cue text.

    - preserve: unchanged
    - single: every line break becomes a space
    - auto: greedy word wrap at max_chars_per_line
    """
    if strategy == "preserve":
        return text
    if strategy == "single":
        return text.replace('\n', ' ')

    lines = []
    current = ''
    for word in text.replace('\n', ' ').split(' '):
        if not word:
            continue
        if len(current) + len(word) + 1 <= max_chars_per_line:
            current = f"{current} {word}" if current else word
        else:
            if current:
                lines.append(current)
            current = word
    if current:
        lines.append(current)
    return '\n'.join(lines)

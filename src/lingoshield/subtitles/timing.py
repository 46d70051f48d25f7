"""
Subtitle Timing Analyzer Module

Pure checks over an ordered cue list:
- Overlap with the next cue (suggested fix depends on the overlap resolution)
- Gap to the next cue below the configured minimum
- Reading speed (characters without tags per second) outside min/max
- Length overflow of translated text (characters per line, lines per cue)

Cues are never modified; every finding is a TimingIssue.
"""

import math
from typing import Dict, List, Optional, Sequence

from lingoshield.subtitles.helpers import calculate_reading_speed, count_chars_without_tags, timecode_to_ms
from lingoshield.subtitles.models import (
    TIMING_GAP_TOO_SMALL,
    TIMING_LENGTH_OVERFLOW,
    TIMING_OVERLAP,
    TIMING_TOO_FAST,
    TIMING_TOO_SLOW,
    SubtitleCue,
    SubtitleSettings,
    TimingIssue,
)


def _overlap_fix(resolution: str, overlap_ms: int) -> str:
    if resolution == "shorten-prev":
        return f"Shorten end time by {overlap_ms}ms"
    if resolution == "delay-next":
        return f"Delay next subtitle by {overlap_ms}ms"
    return "Manual review required"


def analyze_timing_issues(cues: Sequence[SubtitleCue], settings: SubtitleSettings) -> List[TimingIssue]:
    """
    Run the overlap, gap and reading-speed checks.

    Args:
        cues: Cues in file order
        settings: Limits and the overlap resolution policy

    Returns:
        Findings in cue order
    """
    issues: List[TimingIssue] = []

    for position, cue in enumerate(cues):
        start_ms = timecode_to_ms(cue.start_time)
        end_ms = timecode_to_ms(cue.end_time)
        duration_ms = end_ms - start_ms

        if duration_ms <= 0:
            issues.append(TimingIssue(
                type=TIMING_OVERLAP,
                subtitle_index=cue.index,
                details="Invalid duration: start time is after or equal to end time",
                suggested_fix="Check timecodes",
            ))
            continue

        if settings.enable_overlap_detection and position < len(cues) - 1:
            next_cue = cues[position + 1]
            gap = timecode_to_ms(next_cue.start_time) - end_ms
            if gap < 0:
                overlap = abs(gap)
                issues.append(TimingIssue(
                    type=TIMING_OVERLAP,
                    subtitle_index=cue.index,
                    next_subtitle_index=next_cue.index,
                    details=f"Overlaps with next subtitle by {overlap}ms",
                    suggested_fix=_overlap_fix(settings.overlap_resolution, overlap),
                ))
            elif gap < settings.min_gap_between_cues:
                issues.append(TimingIssue(
                    type=TIMING_GAP_TOO_SMALL,
                    subtitle_index=cue.index,
                    next_subtitle_index=next_cue.index,
                    details=f"Gap is {gap}ms (minimum: {settings.min_gap_between_cues}ms)",
                    suggested_fix=f"Increase gap by {settings.min_gap_between_cues - gap}ms",
                ))

        if settings.enable_reading_speed_check:
            speed = calculate_reading_speed(cue.text, duration_ms)
            chars = count_chars_without_tags(cue.text)
            if speed > settings.max_chars_per_second:
                target = math.ceil(chars / settings.max_chars_per_second * 1000)
                issues.append(TimingIssue(
                    type=TIMING_TOO_FAST,
                    subtitle_index=cue.index,
                    details=f"Reading speed: {speed:.1f} chars/sec (max: {settings.max_chars_per_second:g})",
                    suggested_fix=f"Increase duration to {target}ms or split subtitle",
                ))
            elif 0 < speed < settings.min_chars_per_second:
                target = math.ceil(chars / settings.min_chars_per_second * 1000)
                issues.append(TimingIssue(
                    type=TIMING_TOO_SLOW,
                    subtitle_index=cue.index,
                    details=f"Reading speed: {speed:.1f} chars/sec (min: {settings.min_chars_per_second:g})",
                    suggested_fix=f"Decrease duration to {target}ms",
                ))

    return issues


def check_length_overflow(
    translated_text: str,
    settings: SubtitleSettings,
    subtitle_index: int,
) -> Optional[TimingIssue]:
    """First line over the character limit, else too many lines, else None."""
    lines = translated_text.split('\n')
    for line_number, line in enumerate(lines, start=1):
        char_count = count_chars_without_tags(line)
        if char_count > settings.max_chars_per_line:
            return TimingIssue(
                type=TIMING_LENGTH_OVERFLOW,
                subtitle_index=subtitle_index,
                details=f"Line {line_number}: {char_count} chars (max: {settings.max_chars_per_line})",
                char_count=char_count,
                translated_text=translated_text,
                suggested_fix="Split into multiple lines or abbreviate",
            )

    if len(lines) > settings.max_lines_per_subtitle:
        return TimingIssue(
            type=TIMING_LENGTH_OVERFLOW,
            subtitle_index=subtitle_index,
            details=f"{len(lines)} lines (max: {settings.max_lines_per_subtitle})",
            translated_text=translated_text,
            suggested_fix="Combine or abbreviate lines",
        )
    return None


def get_timing_issue_summary(issues: Sequence[TimingIssue]) -> Dict[str, int]:
    """Issue counts per type plus the total."""
    counts = {issue_type: 0 for issue_type in (
        TIMING_OVERLAP, TIMING_TOO_FAST, TIMING_TOO_SLOW, TIMING_GAP_TOO_SMALL, TIMING_LENGTH_OVERFLOW,
    )}
    for issue in issues:
        counts[issue.type] = counts.get(issue.type, 0) + 1
    return {
        "overlap_count": counts[TIMING_OVERLAP],
        "too_fast_count": counts[TIMING_TOO_FAST],
        "too_slow_count": counts[TIMING_TOO_SLOW],
        "gap_too_small_count": counts[TIMING_GAP_TOO_SMALL],
        "length_overflow_count": counts[TIMING_LENGTH_OVERFLOW],
        "total_count": len(issues),
    }

"""
Subtitles module - SRT and WebVTT handling

This module provides:
- models: cues, findings and subtitle settings
- parser: SRT/VTT readers that report defects instead of raising
- validator: HTML tag balance, line limits, batch limits
- timing: overlap, gap, reading speed and length overflow analysis
- writer: SRT/VTT generation and output file naming
"""

from lingoshield.subtitles.models import (
    PERFORMANCE_LIMITS,
    SubtitleCue,
    SubtitleFile,
    SubtitleSettings,
    TimingIssue,
    ValidationIssue,
    VttCue,
    VttMetadata,
)
from lingoshield.subtitles.parser import parse_srt, parse_subtitle_file, parse_vtt
from lingoshield.subtitles.validator import (
    validate_file_size,
    validate_subtitle_batch,
    validate_subtitle_file,
    validate_subtitle_html,
)
from lingoshield.subtitles.timing import analyze_timing_issues, check_length_overflow, get_timing_issue_summary
from lingoshield.subtitles.writer import generate_srt_content, generate_subtitle_outputs, generate_vtt_content

"""
Subtitle Data Classes

Contains cues, findings, settings and the parsed-file container used by the
SRT/VTT readers, the validators and the writers.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

FORMAT_SRT = "srt"
FORMAT_VTT = "vtt"

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"

# ValidationIssue types
ISSUE_MALFORMED_TIMECODE = "malformed-timecode"
ISSUE_MISSING_INDEX = "missing-index"
ISSUE_ENCODING_ERROR = "encoding-error"
ISSUE_INVALID_FORMAT = "invalid-format"
ISSUE_FILE_TOO_LARGE = "file-too-large"
ISSUE_TOO_MANY_SUBTITLES = "too-many-subtitles"
ISSUE_MALFORMED_HTML = "malformed-html"

# TimingIssue types
TIMING_OVERLAP = "overlap"
TIMING_TOO_FAST = "too-fast"
TIMING_TOO_SLOW = "too-slow"
TIMING_GAP_TOO_SMALL = "gap-too-small"
TIMING_LENGTH_OVERFLOW = "length-overflow"

OVERLAP_RESOLUTIONS = ("warn", "shorten-prev", "delay-next")
LINE_BREAK_STRATEGIES = ("preserve", "auto", "single")
OUTPUT_FORMATS = ("match-input", "srt", "vtt", "both")

PERFORMANCE_LIMITS = {
    "max_file_size_mb": 5,
    "max_subtitles_per_file": 2000,
    "max_files_in_batch": 10,
    "max_total_subtitles": 5000,
}


@dataclass
class SubtitleCue:
    """One timed subtitle block."""
    index: int
    start_time: str
    end_time: str
    text: str
    original_lines: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class VttCue(SubtitleCue):
    """A WebVTT cue with its optional identifier, settings and voice tag."""
    cue_identifier: Optional[str] = None
    cue_settings: Optional[str] = None
    voice_tag: Optional[str] = None


@dataclass
class VttMetadata:
    header: str = "WEBVTT"
    note_blocks: List[str] = field(default_factory=list)
    style_blocks: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ValidationIssue:
    """A structural finding attached to a cue. Never modifies the cue."""
    type: str
    subtitle_index: int
    message: str
    severity: str = SEVERITY_ERROR
    html_snippet: Optional[str] = None
    suggested_fix: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass(frozen=True)
class TimingIssue:
    """A temporal or length finding attached to a cue."""
    type: str
    subtitle_index: int
    details: str
    suggested_fix: Optional[str] = None
    next_subtitle_index: Optional[int] = None
    char_count: Optional[int] = None
    translated_text: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass
class SubtitleSettings:
    """
    Subtitle rules. Defaults follow the BBC subtitle guidelines
    (37 characters per line, 2 lines, 15-21 characters per second).
    """
    max_chars_per_line: int = 37
    max_lines_per_subtitle: int = 2
    enable_overlap_detection: bool = True
    min_gap_between_cues: int = 100
    overlap_resolution: str = "warn"
    enable_reading_speed_check: bool = True
    min_chars_per_second: float = 15
    max_chars_per_second: float = 21
    preserve_html_tags: bool = True
    line_break_strategy: str = "preserve"
    preserve_vtt_note_blocks: bool = True
    preserve_vtt_style_blocks: bool = False
    preserve_vtt_cue_settings: bool = False
    treat_voice_tags_as_dnt: bool = True
    output_format: str = "match-input"
    output_encoding: str = "UTF-8"
    add_language_code_to_filename: bool = True

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SubtitleSettings":
        """
        Build settings from the "subtitles" section of the app config.

        Unknown or invalid choices fall back to the defaults.
        """
        data = data or {}
        settings = cls()
        settings.max_chars_per_line = int(data.get("max_chars_per_line", settings.max_chars_per_line))
        settings.max_lines_per_subtitle = int(data.get("max_lines", settings.max_lines_per_subtitle))
        settings.min_gap_between_cues = int(data.get("min_gap_ms", settings.min_gap_between_cues))
        settings.min_chars_per_second = float(data.get("min_reading_speed", settings.min_chars_per_second))
        settings.max_chars_per_second = float(data.get("max_reading_speed", settings.max_chars_per_second))
        settings.enable_overlap_detection = bool(data.get("overlap_detection", True))
        settings.enable_reading_speed_check = bool(data.get("reading_speed_check", True))
        settings.treat_voice_tags_as_dnt = bool(data.get("voice_tags_as_dnt", True))
        settings.preserve_vtt_note_blocks = bool(data.get("preserve_note_blocks", True))
        settings.preserve_vtt_style_blocks = bool(data.get("preserve_style_blocks", False))
        settings.preserve_vtt_cue_settings = bool(data.get("preserve_cue_settings", False))
        settings.add_language_code_to_filename = bool(data.get("add_language_code_to_filename", True))

        if data.get("overlap_resolution") in OVERLAP_RESOLUTIONS:
            settings.overlap_resolution = data["overlap_resolution"]
        if data.get("line_break_strategy") in LINE_BREAK_STRATEGIES:
            settings.line_break_strategy = data["line_break_strategy"]
        if data.get("output_format") in OUTPUT_FORMATS:
            settings.output_format = data["output_format"]
        if data.get("include_bom"):
            settings.output_encoding = "UTF-8-BOM"
        return settings

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SubtitleFile:
    """A parsed subtitle file: its cues plus everything found while reading it."""
    file_name: str
    format: str
    encoding: str = "UTF-8"
    cues: List[SubtitleCue] = field(default_factory=list)
    validation_issues: List[ValidationIssue] = field(default_factory=list)
    timing_issues: List[TimingIssue] = field(default_factory=list)
    vtt_metadata: Optional[VttMetadata] = None

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == SEVERITY_ERROR for issue in self.validation_issues)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_name": self.file_name,
            "format": self.format,
            "encoding": self.encoding,
            "cues": [cue.to_dict() for cue in self.cues],
            "validation_issues": [issue.to_dict() for issue in self.validation_issues],
            "timing_issues": [issue.to_dict() for issue in self.timing_issues],
            "vtt_metadata": asdict(self.vtt_metadata) if self.vtt_metadata else None,
        }

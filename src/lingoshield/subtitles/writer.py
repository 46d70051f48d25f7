"""
Subtitle Output Module

Generates SRT and WebVTT text from (translated) cues and names the output
files. Timecodes are rewritten with the separator of the output format, so
an SRT input can be written as VTT and the other way round.
"""

import re
from typing import Dict, List, Optional, Sequence

from lingoshield.subtitles.helpers import UTF8_BOM, apply_line_break_strategy, apply_voice_tag, convert_timecode
from lingoshield.subtitles.models import FORMAT_SRT, FORMAT_VTT, SubtitleCue, SubtitleSettings, VttMetadata

_SUBTITLE_EXTENSION = re.compile(r'\.(srt|vtt)$', re.IGNORECASE)


def generate_srt_content(cues: Sequence[SubtitleCue], settings: SubtitleSettings) -> str:
    """SRT document, one block per cue, blocks separated by a blank line."""
    blocks: List[str] = []
    for cue in cues:
        text = apply_line_break_strategy(cue.text, settings.line_break_strategy, settings.max_chars_per_line)
        start = convert_timecode(cue.start_time, FORMAT_SRT)
        end = convert_timecode(cue.end_time, FORMAT_SRT)
        blocks.append(f"{cue.index}\n{start} --> {end}\n{text}\n\n")
    return "".join(blocks)


def generate_vtt_content(
    cues: Sequence[SubtitleCue],
    metadata: Optional[VttMetadata],
    settings: SubtitleSettings,
) -> str:
    """
    WebVTT document.

    NOTE and STYLE blocks, and cue settings, are written only when the
    matching preserve_* setting is on. Voice tags are put back around the text.
    """
    parts: List[str] = [f"{metadata.header if metadata else 'WEBVTT'}\n\n"]

    if metadata and settings.preserve_vtt_note_blocks:
        parts.extend(f"{block}\n\n" for block in metadata.note_blocks)
    if metadata and settings.preserve_vtt_style_blocks:
        parts.extend(f"{block}\n\n" for block in metadata.style_blocks)

    for cue in cues:
        identifier = getattr(cue, "cue_identifier", None)
        if identifier:
            parts.append(f"{identifier}\n")
        timing = f"{convert_timecode(cue.start_time, FORMAT_VTT)} --> {convert_timecode(cue.end_time, FORMAT_VTT)}"
        cue_settings = getattr(cue, "cue_settings", None)
        if settings.preserve_vtt_cue_settings and cue_settings:
            timing += f" {cue_settings}"
        text = apply_line_break_strategy(cue.text, settings.line_break_strategy, settings.max_chars_per_line)
        text = apply_voice_tag(text, getattr(cue, "voice_tag", None))
        parts.append(f"{timing}\n{text}\n\n")

    return "".join(parts)


def apply_encoding(content: str, encoding: str) -> str:
    """Prefix a UTF-8 BOM when the output encoding asks for one."""
    if encoding == "UTF-8-BOM" and not content.startswith(UTF8_BOM):
        return UTF8_BOM + content
    return content


def output_formats(input_format: str, settings: SubtitleSettings) -> List[str]:
    if settings.output_format == "both":
        return [FORMAT_SRT, FORMAT_VTT]
    if settings.output_format in (FORMAT_SRT, FORMAT_VTT):
        return [settings.output_format]
    return [input_format]


def output_file_name(file_name: str, language: str, output_format: str, settings: SubtitleSettings) -> str:
    """
    Name of a translated file: "<base>_<lang>.<ext>".

    Example:
        >>> output_file_name("episode1.srt", "fr-FR", "srt", SubtitleSettings())
        'episode1_fr-FR.srt'
    """
    base = _SUBTITLE_EXTENSION.sub("", file_name)
    if settings.add_language_code_to_filename:
        base = f"{base}_{language}"
    return f"{base}.{output_format}"


def generate_subtitle_outputs(
    file_name: str,
    input_format: str,
    cues: Sequence[SubtitleCue],
    language: str,
    settings: SubtitleSettings,
    metadata: Optional[VttMetadata] = None,
) -> Dict[str, str]:
    """
    Render translated cues for one language.

    Returns:
        Dict of output file name -> file content
    """
    outputs: Dict[str, str] = {}
    for output_format in output_formats(input_format, settings):
        if output_format == FORMAT_SRT:
            content = generate_srt_content(cues, settings)
        else:
            content = generate_vtt_content(cues, metadata, settings)
        outputs[output_file_name(file_name, language, output_format, settings)] = apply_encoding(
            content, settings.output_encoding
        )
    return outputs

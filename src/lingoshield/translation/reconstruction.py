"""
Reconstruction Engine Module

Puts translated text back into an extraction template:
- JSON: TemplateToken leaves (or "{T<n>}" strings) replaced by translations,
  any "locale" key overwritten with the target locale
- HTML: text runs replaced per run, or one translated string split over
  the original runs in proportion to their trimmed lengths
- Plain: original leading/trailing whitespace kept around the translation

Missing translations leave the token in place and are logged; they are
never filled in silently.
"""

import json
import math
from typing import Any, Dict, List, Optional

from lingoshield.logger import get_logger
from lingoshield.patterns import TEMPLATE_TOKEN_PATTERN
from lingoshield.translation.extractor import (
    CONTENT_HTML,
    CONTENT_JSON,
    HTML_UNIT_ID,
    Extraction,
    HtmlStructure,
    PlainTemplate,
    TemplateToken,
)

logger = get_logger(__name__)

MAX_BREAK_SEARCH_RADIUS = 15
BREAK_SEARCH_RATIO = 0.3


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def split_proportionally(translated_text: str, lengths: List[int]) -> List[str]:
    """
    Cut a translated string into len(lengths) pieces sized like the originals.

    For every boundary but the last, the cut goes at round(L * share); a
    space is then searched forward (up to min(15, 30% of the piece length)
    characters), then backward, so words are not split. The last piece takes
    whatever is left. Pieces are trimmed.

    Args:
        translated_text: Text to split (trimmed first)
        lengths: Original trimmed lengths, all > 0

    Returns:
        Pieces in order
    """
    if not lengths:
        return []
    total = sum(lengths)
    text = translated_text.strip()
    if len(lengths) == 1 or total == 0:
        return [text] + [""] * (len(lengths) - 1)

    size = len(text)
    pieces: List[str] = []
    position = 0

    for index, length in enumerate(lengths):
        if index == len(lengths) - 1:
            pieces.append(text[position:].strip())
            break

        target = _round_half_up(size * length / total)
        end = position + target
        radius = min(MAX_BREAK_SEARCH_RADIUS, int(target * BREAK_SEARCH_RATIO))
        cut = end

        forward = next((j for j in range(end, min(size - 1, end + radius) + 1) if text[j] == " "), None)
        if forward is not None:
            cut = forward
        else:
            backward = next(
                (j for j in range(end, max(position + 1, end - radius) - 1, -1) if 0 <= j < size and text[j] == " "),
                None,
            )
            if backward is not None:
                cut = backward

        pieces.append(text[position:cut].strip())
        position = cut + 1 if cut < size and text[cut] == " " else cut
        while position < size and text[position] == " ":
            position += 1

    return pieces


def redistribute(translated_text: str, structure: HtmlStructure) -> List[str]:
    """
    Spread one translated string over the text runs of an HTML structure.

    Whitespace-only runs keep their original content and take no share of the
    translation. Every other run gets its proportional piece, wrapped in the
    run's original leading and trailing whitespace.

    Returns:
        New text runs, aligned with structure.text_segments
    """
    runs = list(structure.text_segments)
    content_indexes = [i for i, text in enumerate(runs) if text.strip()]
    if not content_indexes:
        return runs

    pieces = split_proportionally(translated_text, [len(runs[i].strip()) for i in content_indexes])
    for run_index, piece in zip(content_indexes, pieces):
        original = runs[run_index]
        leading = original[:len(original) - len(original.lstrip())]
        trailing = original[len(original.rstrip()):]
        runs[run_index] = f"{leading}{piece}{trailing}"
    return runs


def _rebuild_html(structure: HtmlStructure, translations: Dict[str, str]) -> str:
    parts = []
    for segment in structure.segments:
        if segment.type == "tag":
            parts.append(segment.content)
            continue
        token_id = f"T{segment.text_index + 1}"
        original = structure.text_segments[segment.text_index]
        if not original.strip():
            parts.append(original)
        elif token_id in translations:
            parts.append(translations[token_id])
        else:
            logger.warning(f"No translation for HTML text run {token_id}; token left in place")
            parts.append("{" + token_id + "}")
    return "".join(parts)


def _rebuild_json(template: Any, translations: Dict[str, str], target_locale: Optional[str]) -> Any:
    def rebuild(value: Any) -> Any:
        if isinstance(value, TemplateToken):
            if value.id in translations:
                return translations[value.id]
            logger.warning(f"No translation for JSON token {value.id}; token left in place")
            return str(value)
        if isinstance(value, str):
            match = TEMPLATE_TOKEN_PATTERN.match(value)
            if match and match.group(1) in translations:
                return translations[match.group(1)]
            return value
        if isinstance(value, list):
            return [rebuild(child) for child in value]
        if isinstance(value, dict):
            result = {}
            for key, child in value.items():
                if key == "locale" and target_locale:
                    result[key] = target_locale
                else:
                    result[key] = rebuild(child)
            return result
        return value

    return rebuild(template)


class ReconstructionEngine:
    """Rebuilds output documents from extraction templates."""

    def rebuild(
        self,
        extraction: Extraction,
        translations: Dict[str, str],
        target_locale: Optional[str] = None,
    ) -> str:
        """
        Rebuild from per-item translations (item id -> text).

        With translations equal to each item's own text the output is the
        original input, byte for byte (JSON is re-serialised with 2-space
        indentation).

        Args:
            extraction: Result of ContentExtractor.extract
            translations: Item id -> translated text
            target_locale: Value forced into every JSON "locale" key

        Returns:
            Rebuilt document text
        """
        template = extraction.template
        if extraction.content_type == CONTENT_JSON:
            rebuilt = _rebuild_json(template, translations, target_locale)
            return json.dumps(rebuilt, indent=2, ensure_ascii=False)
        if isinstance(template, HtmlStructure):
            return _rebuild_html(template, translations)
        if isinstance(template, PlainTemplate):
            if not extraction.items:
                return f"{template.leading}{template.trailing}"
            item = extraction.items[0]
            text = translations.get(item.id)
            if text is None:
                logger.warning(f"No translation for plain text item {item.id}; token left in place")
                text = "{" + item.id + "}"
            return f"{template.leading}{text}{template.trailing}"
        raise TypeError(f"Unsupported template type: {type(template).__name__}")

    def rebuild_from_units(
        self,
        extraction: Extraction,
        unit_translations: Dict[str, str],
        target_locale: Optional[str] = None,
    ) -> str:
        """
        Rebuild from translations of Extraction.translation_units().

        For HTML the single joined unit is redistributed over the text runs.
        """
        if extraction.content_type != CONTENT_HTML:
            return self.rebuild(extraction, unit_translations, target_locale)

        structure = extraction.template
        if HTML_UNIT_ID not in unit_translations:
            return structure.original()
        runs = redistribute(unit_translations[HTML_UNIT_ID], structure)
        per_run = {f"T{index + 1}": text for index, text in enumerate(runs)}
        return _rebuild_html(structure, per_run)


def rebuild(extraction: Extraction, translations: Dict[str, str], target_locale: Optional[str] = None) -> str:
    """Module-level shortcut for ReconstructionEngine().rebuild(...)."""
    return ReconstructionEngine().rebuild(extraction, translations, target_locale)

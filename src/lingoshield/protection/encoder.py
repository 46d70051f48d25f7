"""
Protection Encoder Module

Replaces spans that must survive the external translator with markers:
- Curly-brace placeholders detected in the text ({name})
- User Do-Not-Translate terms
- Glossary terms (the marker restores the known target translation)

All candidates from all sources are merged, sorted longest first and matched
in a single forward scan, so overlapping rules resolve deterministically.
The text/marker association is returned as a structured list; marker tokens
only exist inside the flat string handed to the translator.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from lingoshield.logger import get_logger
from lingoshield.patterns import PLACEHOLDER_PATTERN
from lingoshield.protection.glossary import GlossaryEntry, glossary_pairs

logger = get_logger(__name__)

KIND_PLACEHOLDER = "placeholder"
KIND_DNT = "dnt"
KIND_GLOSSARY = "glossary"

# Lower rank wins when two sources propose the same term
_PRECEDENCE = {KIND_PLACEHOLDER: 0, KIND_DNT: 1, KIND_GLOSSARY: 2}

MARKER_PATTERN = re.compile(r'__(?:DNT|GLOSS)_\d+__')


@dataclass
class ProtectionOptions:
    """Matching rules for the encoder."""
    glossary_case_sensitive: bool = True
    dnt_case_sensitive: bool = False
    detect_placeholders: bool = True


@dataclass(frozen=True)
class ProtectionMarker:
    """One substituted span: the marker and the value restored in its place."""
    marker: str
    original: str
    kind: str
    source_text: str


@dataclass
class EncodedText:
    """Result of one encoding pass."""
    processed_text: str
    substitutions: List[ProtectionMarker] = field(default_factory=list)
    full_match: Optional[str] = None

    @property
    def is_full_match(self) -> bool:
        return self.full_match is not None

    def substitution_map(self) -> Dict[str, str]:
        return {item.marker: item.original for item in self.substitutions}


@dataclass(frozen=True)
class _Candidate:
    term: str
    kind: str
    value: Optional[str]
    case_sensitive: bool


def _term_regex(candidate: _Candidate) -> str:
    escaped = re.escape(candidate.term)
    # Single-word glossary terms only match whole words
    if candidate.kind == KIND_GLOSSARY and not re.search(r'\s', candidate.term):
        if re.match(r'\w', candidate.term):
            escaped = r'(?<!\w)' + escaped
        if re.search(r'\w$', candidate.term):
            escaped = escaped + r'(?!\w)'
    if not candidate.case_sensitive:
        escaped = f'(?i:{escaped})'
    return escaped


def _dedupe_dnt(terms: Iterable[str]) -> List[str]:
    """Drop blank terms and case-insensitive duplicates, keeping the first spelling."""
    seen = set()
    unique = []
    for term in terms:
        if not term or not term.strip():
            continue
        lowered = term.lower()
        if lowered not in seen:
            seen.add(lowered)
            unique.append(term)
    return unique


class ProtectionEncoder:
    """
    Encodes text for the external translator and restores the result.

    Example:
        >>> encoder = ProtectionEncoder()
        >>> encoded = encoder.encode("Open {url} in Chrome", ["Chrome"])
        >>> encoded.processed_text
        'Open __DNT_0__ in __DNT_1__'
        >>> encoder.restore("Ouvrez __DNT_0__ dans __DNT_1__", encoded.substitutions)
        'Ouvrez {url} dans Chrome'
    """

    def __init__(self, options: Optional[ProtectionOptions] = None):
        self.options = options or ProtectionOptions()

    def find_full_match(
        self,
        text: str,
        glossary: List[GlossaryEntry],
        source_lang: str,
        target_lang: str,
    ) -> Optional[str]:
        """Return the target translation when the whole trimmed text is a glossary source value."""
        trimmed = text.strip()
        if not trimmed:
            return None
        for source_value, target_value in glossary_pairs(glossary, source_lang, target_lang):
            candidate = source_value.strip()
            if self.options.glossary_case_sensitive:
                if candidate == trimmed:
                    return target_value
            elif candidate.lower() == trimmed.lower():
                return target_value
        return None

    def _collect_candidates(
        self,
        text: str,
        dnt_terms: List[str],
        glossary: List[GlossaryEntry],
        source_lang: str,
        target_lang: str,
    ) -> List[_Candidate]:
        candidates: List[_Candidate] = []
        if self.options.detect_placeholders:
            for placeholder in dict.fromkeys(PLACEHOLDER_PATTERN.findall(text)):
                candidates.append(_Candidate(placeholder, KIND_PLACEHOLDER, None, True))
        for term in _dedupe_dnt(dnt_terms):
            candidates.append(_Candidate(term, KIND_DNT, None, self.options.dnt_case_sensitive))
        if glossary and source_lang and target_lang:
            for source_value, target_value in glossary_pairs(glossary, source_lang, target_lang):
                candidates.append(_Candidate(
                    source_value, KIND_GLOSSARY, target_value, self.options.glossary_case_sensitive
                ))

        # Same term proposed twice: the higher-precedence source keeps it
        unique: Dict[str, _Candidate] = {}
        for candidate in sorted(candidates, key=lambda c: _PRECEDENCE[c.kind]):
            unique.setdefault(candidate.term, candidate)

        # Longest first across all sources. On equal length the higher-precedence
        # source comes first in the alternation and wins at that position.
        return sorted(unique.values(), key=lambda c: (-len(c.term), _PRECEDENCE[c.kind]))

    def encode(
        self,
        text: str,
        dnt_terms: Optional[List[str]] = None,
        glossary: Optional[List[GlossaryEntry]] = None,
        source_lang: str = "",
        target_lang: str = "",
    ) -> EncodedText:
        """
        Replace protected spans with markers.

        Args:
            text: Text to encode
            dnt_terms: Do-Not-Translate terms
            glossary: Glossary entries; only entries with both a source and
                a target value take part
            source_lang: Source language code
            target_lang: Target language code

        Returns:
            EncodedText. When the whole text is a glossary entry, full_match
            holds the target translation and nothing is substituted.
        """
        glossary = glossary or []
        full_match = self.find_full_match(text, glossary, source_lang, target_lang)
        if full_match is not None:
            logger.debug(f"Full glossary match for: {text[:50]}")
            return EncodedText(processed_text=text, full_match=full_match)

        candidates = self._collect_candidates(text, dnt_terms or [], glossary, source_lang, target_lang)
        if not candidates:
            return EncodedText(processed_text=text)

        combined = re.compile('|'.join(f'({_term_regex(c)})' for c in candidates))
        substitutions: List[ProtectionMarker] = []
        counter = 0

        def _mint(match: re.Match) -> str:
            nonlocal counter
            candidate = candidates[match.lastindex - 1]
            matched = match.group(0)
            if candidate.kind == KIND_GLOSSARY:
                marker = f"__GLOSS_{counter}__"
                restored = candidate.value
            else:
                marker = f"__DNT_{counter}__"
                restored = matched
            counter += 1
            substitutions.append(ProtectionMarker(marker, restored, candidate.kind, matched))
            return marker

        processed = combined.sub(_mint, text)
        if substitutions:
            logger.debug(f"Protected {len(substitutions)} spans: {text[:50]} -> {processed[:50]}")
        return EncodedText(processed_text=processed, substitutions=substitutions)

    @staticmethod
    def restore(translated_text: str, substitutions: List[ProtectionMarker]) -> str:
        """
        Put protected values back in place of their markers.

        Each marker gets one global replace, so the order of markers in the
        translated text does not matter.
        """
        if not substitutions:
            return translated_text
        restored = translated_text
        for item in substitutions:
            restored = restored.replace(item.marker, item.original)
        return restored

    @staticmethod
    def missing_markers(translated_text: str, substitutions: List[ProtectionMarker]) -> List[ProtectionMarker]:
        """Markers the translator dropped or altered."""
        return [item for item in substitutions if item.marker not in translated_text]


def encode(
    text: str,
    dnt_terms: Optional[List[str]] = None,
    glossary: Optional[List[GlossaryEntry]] = None,
    source_lang: str = "",
    target_lang: str = "",
    options: Optional[ProtectionOptions] = None,
) -> EncodedText:
    """Module-level shortcut for ProtectionEncoder(options).encode(...)."""
    return ProtectionEncoder(options).encode(text, dnt_terms, glossary, source_lang, target_lang)


def restore(translated_text: str, substitutions: List[ProtectionMarker]) -> str:
    """Module-level shortcut for ProtectionEncoder.restore(...)."""
    return ProtectionEncoder.restore(translated_text, substitutions)


def protect_terms(text: str, terms: List[str]) -> Tuple[str, Dict[str, str]]:
    """
    Protect a plain list of terms, returning the processed text and a marker map.

    Used where a caller only has DNT terms and wants a dict back.
    """
    encoded = ProtectionEncoder(ProtectionOptions(detect_placeholders=False)).encode(text, terms)
    return encoded.processed_text, encoded.substitution_map()

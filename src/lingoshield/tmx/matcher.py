"""
Translation Memory Matcher Module

Scores a source segment against translation memories:
- Exact: trimmed, case-sensitive equality (score 100)
- Fuzzy/partial: normalized Levenshtein similarity on lower-cased,
  tag-stripped, whitespace-collapsed text

Results are ranked by score, then unit quality, then usage count, then the
order in which units appear in the memories.
"""

import re
from typing import Dict, Iterable, List, Optional, Union

from rapidfuzz.distance import Levenshtein

from lingoshield import language_codes as lc
from lingoshield.logger import get_logger
from lingoshield.tmx.models import MATCH_EXACT, MATCH_FUZZY, MATCH_PARTIAL, TmxMatch, TmxMemory

logger = get_logger(__name__)

DEFAULT_FUZZY_THRESHOLD = 70
DEFAULT_NEAR_EXACT_CUTOFF = 95
DEFAULT_AUTO_APPLY_THRESHOLD = 95

# Highest score a non-identical segment can get, so exact matches always rank first
MAX_NON_EXACT_SCORE = 99.0

_TAG = re.compile(r'<[^>]+>')
_WHITESPACE = re.compile(r'\s+')


def normalize_for_matching(text: str) -> str:
    """Lower-case, strip tags and collapse whitespace."""
    return _WHITESPACE.sub(' ', _TAG.sub('', text or '')).strip().lower()


def similarity(a: str, b: str) -> float:
    """0-100 similarity: (longer - edit distance) / longer * 100."""
    if not a and not b:
        return 100.0
    return Levenshtein.normalized_similarity(a, b) * 100.0


class TmxMatcher:
    """
    Finds translation memory matches for source segments.

    Args:
        near_exact_cutoff: Scores above this (and below 100) are "fuzzy";
            scores at or below it are "partial"
    """

    def __init__(self, near_exact_cutoff: float = DEFAULT_NEAR_EXACT_CUTOFF):
        self.near_exact_cutoff = near_exact_cutoff

    def _classify(self, score: float) -> str:
        if score >= 100:
            return MATCH_EXACT
        if score > self.near_exact_cutoff:
            return MATCH_FUZZY
        return MATCH_PARTIAL

    def find_matches(
        self,
        source_text: str,
        memories: Union[TmxMemory, Iterable[TmxMemory]],
        target_lang: str,
        fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
        limit: Optional[int] = None,
    ) -> List[TmxMatch]:
        """
        Find matches for one source segment.

        Args:
            source_text: Segment to look up
            memories: One memory or several, searched in order
            target_lang: Requested target language (region variants of the
                same base language also qualify)
            fuzzy_threshold: Minimum score for non-exact matches
            limit: Optional maximum number of results

        Returns:
            Matches sorted best first; empty when nothing reaches the threshold
        """
        if isinstance(memories, TmxMemory):
            memories = [memories]

        trimmed = (source_text or '').strip()
        if not trimmed:
            return []
        normalized = normalize_for_matching(trimmed)

        matches: List[TmxMatch] = []
        order = 0
        for memory in memories:
            for unit in memory.units:
                order += 1
                if not lc.languages_match(unit.target_lang, target_lang):
                    continue
                if not unit.target_text:
                    continue

                if unit.source_text.strip() == trimmed:
                    score = 100.0
                else:
                    score = min(similarity(normalized, normalize_for_matching(unit.source_text)),
                                MAX_NON_EXACT_SCORE)
                    if score < fuzzy_threshold:
                        continue

                matches.append(TmxMatch(unit=unit, match_score=score,
                                        match_type=self._classify(score), order=order))

        matches.sort(key=lambda m: (
            -m.match_score,
            -(m.unit.quality or 0),
            -(m.unit.usage_count or 0),
            m.order,
        ))
        if limit is not None:
            matches = matches[:limit]
        return matches

    def find_best_match(
        self,
        source_text: str,
        memories: Union[TmxMemory, Iterable[TmxMemory]],
        target_lang: str,
        fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
    ) -> Optional[TmxMatch]:
        """Best match or None."""
        matches = self.find_matches(source_text, memories, target_lang, fuzzy_threshold, limit=1)
        return matches[0] if matches else None

    def apply_tmx_translations(
        self,
        texts: Iterable[str],
        memories: Union[TmxMemory, Iterable[TmxMemory]],
        target_lang: str,
        auto_apply_threshold: float = DEFAULT_AUTO_APPLY_THRESHOLD,
    ) -> Dict[str, TmxMatch]:
        """
        Pick a memory translation for every text whose best match is good enough.

        Returns:
            Dict of text -> applied match
        """
        if isinstance(memories, TmxMemory):
            memories = [memories]
        memories = list(memories)

        applied: Dict[str, TmxMatch] = {}
        for text in texts:
            best = self.find_best_match(text, memories, target_lang, fuzzy_threshold=auto_apply_threshold)
            if best is not None:
                applied[text] = best

        if applied:
            logger.info(f"TMX pre-filled {len(applied)} segments for {target_lang}")
        return applied


def find_matches(
    source_text: str,
    memories: Union[TmxMemory, Iterable[TmxMemory]],
    target_lang: str,
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
    near_exact_cutoff: float = DEFAULT_NEAR_EXACT_CUTOFF,
) -> List[TmxMatch]:
    """Module-level shortcut for TmxMatcher(near_exact_cutoff).find_matches(...)."""
    return TmxMatcher(near_exact_cutoff).find_matches(source_text, memories, target_lang, fuzzy_threshold)


def get_tmx_statistics(memory: TmxMemory) -> Dict[str, object]:
    """Unit counts per target language and average quality."""
    per_language: Dict[str, int] = {}
    qualities = []
    for unit in memory.units:
        per_language[unit.target_lang] = per_language.get(unit.target_lang, 0) + 1
        if unit.quality is not None:
            qualities.append(unit.quality)
    return {
        "name": memory.name,
        "source_lang": memory.source_lang,
        "total_units": len(memory.units),
        "target_langs": list(memory.target_langs),
        "units_per_language": per_language,
        "average_quality": round(sum(qualities) / len(qualities), 2) if qualities else None,
    }

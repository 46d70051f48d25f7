"""
Do-Not-Translate Auto-Detection Module

Scans source texts for spans that are usually left untranslated and suggests
them as DNT candidates with a confidence score and a rationale.

Detection is rule based. Each DetectionRule pairs a regex with a base pattern
score; the scoring function is separate so it can be swapped or tested on its
own. Categories follow the protected-term groups used elsewhere:
brand, technical, url, code.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from lingoshield import patterns as pl
from lingoshield.logger import get_logger

logger = get_logger(__name__)

COMMON_WORDS = {
    'The', 'This', 'That', 'These', 'Those', 'There', 'Then', 'They', 'Their',
    'When', 'Where', 'What', 'Which', 'While', 'Who', 'Why', 'How', 'With',
    'From', 'Into', 'Your', 'You', 'Our', 'We', 'And', 'But', 'For', 'Not',
    'All', 'Any', 'Each', 'Every', 'Some', 'Many', 'Most', 'More', 'Other',
    'Please', 'Click', 'Select', 'Enter', 'Choose', 'Open', 'Close', 'Save',
    'Cancel', 'Next', 'Back', 'Done', 'Yes', 'Welcome', 'Hello', 'Thank',
    'Thanks', 'Here', 'Also', 'After', 'Before', 'About', 'Again', 'Only',
    'Just', 'Very', 'Well', 'Good', 'Great', 'New', 'First', 'Last', 'Today',
    'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday',
    'January', 'February', 'March', 'April', 'May', 'June', 'July', 'August',
    'September', 'October', 'November', 'December',
}

FONT_NAMES = {
    'arial', 'helvetica', 'verdana', 'tahoma', 'calibri', 'cambria', 'georgia',
    'garamond', 'courier', 'roboto', 'segoe', 'times', 'inter', 'lato', 'montserrat',
}

JSON_KEYS = {
    'id', 'name', 'type', 'value', 'label', 'title', 'description', 'content',
    'text', 'data', 'items', 'locale', 'true', 'false', 'null',
}


@dataclass
class DntCandidate:
    """A suggested Do-Not-Translate term."""
    term: str
    reason: str
    pattern: str
    category: str
    frequency: int
    confidence: str
    score: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "term": self.term,
            "reason": self.reason,
            "pattern": self.pattern,
            "category": self.category,
            "frequency": self.frequency,
            "confidence": self.confidence,
            "score": self.score,
        }


@dataclass
class DetectionRule:
    """A regex-driven heuristic with its base score."""
    name: str
    reason: str
    pattern_label: str
    category: str
    pattern_score: int
    finder: Callable[[str], Iterable[str]]


@dataclass
class DetectionResult:
    candidates: List[DntCandidate] = field(default_factory=list)
    total_scanned: int = 0


def should_exclude_term(term: str) -> bool:
    """Terms never suggested: font names, JSON keys, colours, e-mails and plain integers."""
    stripped = term.strip()
    if len(stripped) < 2:
        return True
    lowered = stripped.lower()
    if lowered in FONT_NAMES or lowered in JSON_KEYS:
        return True
    if pl.HEX_COLOR_PATTERN.match(stripped):
        return True
    if pl.EMAIL_PATTERN.match(stripped):
        return True
    if stripped.isdigit():
        return True
    return False


def calculate_confidence(frequency: int, pattern_score: int, length: int) -> Tuple[int, str]:
    """
    Score a candidate.

    score = min(frequency * 10, 50) + pattern_score + length bonus
    (10 for 8+ characters, 5 for 4+). 70 and above is high confidence,
    40 and above medium, anything else low.

    Returns:
        Tuple of (score, confidence)
    """
    length_bonus = 10 if length >= 8 else 5 if length >= 4 else 0
    score = min(frequency * 10, 50) + pattern_score + length_bonus
    if score >= 70:
        confidence = 'high'
    elif score >= 40:
        confidence = 'medium'
    else:
        confidence = 'low'
    return score, confidence


def _finditer(pattern) -> Callable[[str], Iterable[str]]:
    return lambda text: pattern.findall(text)


def _proper_names(text: str) -> Iterable[str]:
    return [m for m in pl.PROPER_NAME_PATTERN.findall(text) if m.split(' ')[0] not in COMMON_WORDS]


def _tokens(predicate: Callable[[str], bool]) -> Callable[[str], Iterable[str]]:
    return lambda text: [w for w in pl.WORD_TOKEN_PATTERN.findall(text) if predicate(w)]


DEFAULT_RULES: List[DetectionRule] = [
    DetectionRule('placeholder', 'Placeholder variable', '{variable}', 'code', 50,
                  _finditer(pl.PLACEHOLDER_PATTERN)),
    DetectionRule('url', 'Full URL', 'https://...', 'url', 50,
                  _finditer(pl.URL_PATTERN)),
    DetectionRule('domain', 'Domain name', 'domain.com', 'url', 45,
                  lambda text: [m.group(0) for m in pl.DOMAIN_PATTERN.finditer(text)]),
    DetectionRule('proper_name', 'Multi-word proper name', 'Name Name', 'brand', 50,
                  _proper_names),
    DetectionRule('version', 'Version number', 'v1.2.3', 'technical', 40,
                  _finditer(pl.VERSION_PATTERN)),
    DetectionRule('handle', 'Social media handle', '@handle', 'brand', 45,
                  _finditer(pl.HANDLE_PATTERN)),
    DetectionRule('hashtag', 'Hashtag', '#tag', 'brand', 40,
                  _finditer(pl.HASHTAG_PATTERN)),
    DetectionRule('constant', 'ALL_CAPS constant', 'CONSTANT_NAME', 'code', 45,
                  _tokens(lambda w: bool(pl.CONSTANT_PATTERN.match(w)) and '_' in w and len(w) >= 3)),
    DetectionRule('acronym', 'ALL_CAPS acronym', 'ACRONYM', 'technical', 40,
                  _tokens(lambda w: bool(pl.ACRONYM_PATTERN.match(w)))),
    DetectionRule('pascal_case', 'PascalCase identifier', 'PascalCase', 'brand', 45,
                  _tokens(lambda w: bool(pl.PASCAL_CASE_PATTERN.match(w)) and len(w) >= 3
                          and not pl.ACRONYM_PATTERN.match(w) and not pl.CONSTANT_PATTERN.match(w))),
    DetectionRule('camel_case', 'camelCase identifier', 'camelCase', 'code', 40,
                  _tokens(lambda w: bool(pl.CAMEL_CASE_PATTERN.match(w)) and len(w) >= 3)),
]


def _capitalized_words(text: str) -> Dict[str, Tuple[int, int]]:
    """Count capitalised words: word -> (total, seen mid-sentence)."""
    stats: Dict[str, Tuple[int, int]] = {}
    for match in pl.CAPITALIZED_IN_CONTEXT_PATTERN.finditer(text):
        preceding, word = match.group(1), match.group(2)
        stripped = preceding.strip()
        mid_sentence = bool(stripped) and stripped[0] not in '.!?'
        total, mid = stats.get(word, (0, 0))
        stats[word] = (total + 1, mid + (1 if mid_sentence else 0))
    return stats


def detect_dnt_candidates(
    texts: Iterable[str],
    existing_dnt: Optional[Iterable[str]] = None,
    rules: Optional[List[DetectionRule]] = None,
    scorer: Callable[[int, int, int], Tuple[int, str]] = calculate_confidence,
) -> DetectionResult:
    """
    Suggest DNT terms found in source texts.

    Args:
        texts: Source strings to scan
        existing_dnt: Terms already protected (never suggested again)
        rules: Detection rules, DEFAULT_RULES when omitted
        scorer: Function (frequency, pattern_score, length) -> (score, confidence)

    Returns:
        DetectionResult with candidates sorted by frequency, then score
    """
    existing = set(existing_dnt or [])
    rules = DEFAULT_RULES if rules is None else rules
    found: Dict[str, Dict[str, object]] = {}
    total_scanned = 0

    for raw in texts:
        text = (raw or '').strip()
        total_scanned += 1
        if not text:
            continue

        for rule in rules:
            for term in rule.finder(text):
                if term in existing or should_exclude_term(term):
                    continue
                entry = found.get(term)
                if entry is None:
                    entry = {'rule': rule, 'count': 0}
                    found[term] = entry
                if entry['rule'] is rule:
                    entry['count'] += 1

        # Capitalised words: keep when frequent or proven proper nouns
        for word, (total, mid) in _capitalized_words(text).items():
            if word in existing or word in found or word in COMMON_WORDS or should_exclude_term(word):
                continue
            if len(word) < 4:
                continue
            if total >= 3 or mid > 0:
                found[word] = {
                    'rule': DetectionRule(
                        'capitalized',
                        'High-frequency proper noun' if total >= 3 else 'Mid-sentence proper noun',
                        'Capitalized', 'brand', 30, _finditer(pl.CAPITALIZED_IN_CONTEXT_PATTERN),
                    ),
                    'count': total,
                }

    candidates = []
    for term, entry in found.items():
        rule = entry['rule']
        score, confidence = scorer(entry['count'], rule.pattern_score, len(term))
        candidates.append(DntCandidate(
            term=term,
            reason=rule.reason,
            pattern=rule.pattern_label,
            category=rule.category,
            frequency=entry['count'],
            confidence=confidence,
            score=score,
        ))

    candidates.sort(key=lambda c: (-c.frequency, -c.score))
    logger.info(f"Auto-detection scanned {total_scanned} texts, {len(candidates)} candidates")
    return DetectionResult(candidates=candidates, total_scanned=total_scanned)

"""
Translation utility functions for text statistics and plain text output.
"""

import re
from typing import Dict

_CJK_PATTERN = re.compile(r'[\u4e00-\u9fff\u3040-\u309f\u30a0-\u30ff\uac00-\ud7a3]')


def count_words(text: str) -> int:
    """
    Count words in text: English/European languages by whitespace, CJK languages by characters.

    Args:
        text: Text to count words for

    Returns:
        Word count (words for English, characters for CJK)
    """
    if not text:
        return 0

    if _CJK_PATTERN.search(text):
        # Count all characters for CJK languages
        return len(text)
    return len(text.split())


def text_stats(text: str) -> Dict[str, int]:
    """Word and character counts for a source text."""
    return {
        "word_count": count_words(text),
        "char_count": len(text or ""),
    }


def format_text_for_download(translations: Dict[str, str]) -> str:
    """
    Format translations as one paste-ready text file.

    A single language is returned as is. Several languages each get a
    "[lang]" line, their text, then a blank line.

    Example:
        >>> format_text_for_download({"fr": "Bonjour", "de": "Hallo"})
        '[fr]\\nBonjour\\n\\n[de]\\nHallo\\n'
    """
    if len(translations) == 1:
        return next(iter(translations.values()))

    lines = []
    for lang_code, text in translations.items():
        lines.append(f"[{lang_code}]")
        lines.append(text)
        lines.append("")
    return "\n".join(lines)

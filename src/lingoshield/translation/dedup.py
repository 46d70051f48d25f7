"""
Deduplication Module

Groups extracted items from one or many files by their trimmed text so each
distinct text is translated once per language, then fans the translations
back out to every occurrence. Pure grouping, no side effects.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from lingoshield.translation.extractor import ExtractedItem


@dataclass(frozen=True)
class Occurrence:
    """Where a text was found: file position, item position within the file, item id."""
    file_index: int
    row_index: int
    id: str


@dataclass
class DedupResult:
    unique_text_map: Dict[str, List[Occurrence]] = field(default_factory=dict)
    total_items: int = 0

    @property
    def unique_strings(self) -> List[str]:
        return list(self.unique_text_map)

    @property
    def occurrence_count(self) -> int:
        return sum(len(occurrences) for occurrences in self.unique_text_map.values())

    @property
    def duplicate_count(self) -> int:
        return self.total_items - len(self.unique_text_map)

    def stats(self) -> Dict[str, int]:
        return {
            "total_items": self.total_items,
            "unique_count": len(self.unique_text_map),
            "duplicate_count": self.duplicate_count,
        }


class Deduplicator:
    """
    Builds the text -> occurrences index.

    Keys are compared exactly after trimming: "Hello" and "hello" stay apart.

    Example:
        >>> files = [[ExtractedItem("T1", "$.a", "Hi")], [ExtractedItem("T1", "$.b", " Hi ")]]
        >>> result = Deduplicator().build(files)
        >>> result.unique_strings, result.duplicate_count
        (['Hi'], 1)
    """

    @staticmethod
    def build(files: Sequence[Sequence[ExtractedItem]]) -> DedupResult:
        result = DedupResult()
        for file_index, items in enumerate(files):
            for row_index, item in enumerate(items):
                key = item.text.strip()
                result.unique_text_map.setdefault(key, []).append(Occurrence(file_index, row_index, item.id))
                result.total_items += 1
        return result

    @staticmethod
    def fan_out(result: DedupResult, translations: Dict[str, str], file_count: int) -> List[Dict[str, str]]:
        """
        Route translations (unique text -> translation) back to their occurrences.

        Returns:
            One dict per file: item id -> translation. Texts without a
            translation are left out.
        """
        per_file: List[Dict[str, str]] = [{} for _ in range(file_count)]
        for text, occurrences in result.unique_text_map.items():
            if text not in translations:
                continue
            for occurrence in occurrences:
                per_file[occurrence.file_index][occurrence.id] = translations[text]
        return per_file

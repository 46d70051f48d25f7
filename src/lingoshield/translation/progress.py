"""
Translation Progress Data Class

Contains the TranslationProgress dataclass for tracking translation progress.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional


@dataclass
class TranslationProgress:
    """Progress information for ongoing translation."""
    current_language: str
    current_language_name: str
    total_languages: int
    completed_languages: int
    current_item: int
    total_items: int
    current_text: str
    success_count: int
    failure_count: int
    phase: str = "translating"       # "extracting", "tmx", "translating", "rebuilding", "completed", "cancelled"
    unique_count: int = 0            # Distinct texts after deduplication
    duplicate_count: int = 0         # Occurrences saved by deduplication
    tmx_count: int = 0               # Texts pre-filled from translation memory
    estimated_time_remaining: Optional[float] = None
    # Failed items for the current language (only populated when phase is "completed")
    failed_items: Optional[List[Dict[str, Any]]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

"""
Translation module - Core translation functionality

This module provides:
- ContentExtractor: HTML / JSON / plain text extraction into templates
- ReconstructionEngine: rebuilding documents, proportional HTML redistribution
- Deduplicator: one translation per unique text
- TranslationManager: Main translation workflow coordinator
- TranslationController: cooperative pause/resume/cancel
- TranslationProgress: Progress tracking dataclass
"""

from lingoshield.translation.controller import TranslationController
from lingoshield.translation.dedup import Deduplicator, DedupResult, Occurrence
from lingoshield.translation.extractor import ContentExtractor, Extraction, ExtractedItem, extract
from lingoshield.translation.manager import TranslationDocument, TranslationManager
from lingoshield.translation.progress import TranslationProgress
from lingoshield.translation.reconstruction import ReconstructionEngine, rebuild, split_proportionally
from lingoshield.translation.validator import is_translation_valid

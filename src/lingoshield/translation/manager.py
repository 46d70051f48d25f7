"""
Translation Manager Module

Main TranslationManager class that coordinates the translation workflow:
- Extract every document into translation units
- Deduplicate units across documents
- Pre-fill from translation memory
- Protect, translate and restore each unique text per language
- Fan results back out and rebuild every document, subtitle file or
  workbook
"""

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import lingoshield.language_codes as lc
from lingoshield.config import PipelineConfig
from lingoshield.exceptions import TranslationError
from lingoshield.logger import get_logger
from lingoshield.patterns import ANY_TAG_PATTERN
from lingoshield.protection.encoder import MARKER_PATTERN, ProtectionEncoder
from lingoshield.subtitles.helpers import apply_line_break_strategy
from lingoshield.subtitles.models import SubtitleFile
from lingoshield.subtitles.timing import check_length_overflow
from lingoshield.subtitles.writer import generate_subtitle_outputs
from lingoshield.tmx.matcher import TmxMatcher
from lingoshield.translation.controller import TranslationController
from lingoshield.translation.dedup import Deduplicator, DedupResult
from lingoshield.translation.extractor import (
    CONTENT_HTML,
    CONTENT_PLAIN,
    ContentExtractor,
    Extraction,
)
from lingoshield.translation.progress import TranslationProgress
from lingoshield.translation.reconstruction import ReconstructionEngine
from lingoshield.translation.validator import is_translation_valid, leftover_markers
from lingoshield.translation.workbook import (
    OVERWRITE_FILL_EMPTY,
    SourceWorkbook,
    output_workbook_name,
    write_workbook,
)

logger = get_logger(__name__)

SOURCE_GLOSSARY = "glossary"
SOURCE_TMX = "tmx"
SOURCE_PROTECTED = "protected"
SOURCE_PROVIDER = "provider"

ProgressCallback = Callable[[TranslationProgress], Optional[bool]]

# (marker protection on, trimmed text)
UnitKey = Tuple[bool, str]


@dataclass
class TranslationDocument:
    """One input document: a name for the output plus its raw content."""
    name: str
    content: str
    content_type: Optional[str] = None


@dataclass
class _UnitOutcome:
    key: UnitKey
    translated: Optional[str] = None
    source: str = SOURCE_PROVIDER
    error: Optional[Dict[str, Any]] = None
    skipped: bool = False


@dataclass
class _Plan:
    """Extractions plus the two dedup indexes (with and without marker protection)."""
    extractions: List[Extraction]
    protected: DedupResult
    unprotected: DedupResult
    units: List[List[Any]] = field(default_factory=list)

    def unit_keys(self) -> List[UnitKey]:
        keys = [(True, text) for text in self.protected.unique_strings]
        keys.extend((False, text) for text in self.unprotected.unique_strings)
        return keys


def _rewrap(original: str, translated: str) -> str:
    """Keep the whitespace that surrounded the original text."""
    stripped = original.strip()
    if not stripped:
        return original
    start = original.index(stripped)
    return f"{original[:start]}{translated}{original[start + len(stripped):]}"


class TranslationManager:
    """
    Manages translation jobs over documents and subtitle files.

    Features:
    - One provider call per unique text per language
    - Glossary full matches and TMX matches bypass the provider
    - Provider failures are reported per unit and never abort the job
    - Cooperative pause/resume/cancel through a TranslationController
    - Progress callbacks; returning True from the callback cancels

    Args:
        config: Pipeline configuration (DNT terms, glossary, memories, thresholds)
        provider: Object with translate(text, target_lang, source_lang)
        controller: Optional shared controller
    """

    def __init__(self, config: PipelineConfig, provider, controller: Optional[TranslationController] = None):
        self.config = config
        self.provider = provider
        self.controller = controller or TranslationController()
        self.extractor = ContentExtractor()
        self.encoder = ProtectionEncoder(config.protection)
        self.reconstruction = ReconstructionEngine()
        self.tmx_matcher = TmxMatcher(near_exact_cutoff=config.near_exact_cutoff)
        self.failed_items: List[Dict[str, Any]] = []
        self.stats: Dict[str, int] = {}
        self.start_time: Optional[float] = None

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def _plan(self, extractions: List[Extraction]) -> _Plan:
        units = [extraction.translation_units() for extraction in extractions]
        protected = Deduplicator.build([
            file_units if extraction.protects_markers else []
            for extraction, file_units in zip(extractions, units)
        ])
        unprotected = Deduplicator.build([
            [] if extraction.protects_markers else file_units
            for extraction, file_units in zip(extractions, units)
        ])
        plan = _Plan(extractions=extractions, protected=protected, unprotected=unprotected, units=units)

        total_items = protected.total_items + unprotected.total_items
        unique_count = len(protected.unique_text_map) + len(unprotected.unique_text_map)
        self.stats.update({
            "documents": len(extractions),
            "total_items": total_items,
            "unique_count": unique_count,
            "duplicate_count": total_items - unique_count,
        })
        logger.info(
            f"Extracted {total_items} units from {len(extractions)} documents "
            f"({unique_count} unique, {total_items - unique_count} duplicates)"
        )
        return plan

    # ------------------------------------------------------------------
    # One unit of work
    # ------------------------------------------------------------------

    def _failure(self, key: UnitKey, lang_code: str, message: str, code: str) -> _UnitOutcome:
        return _UnitOutcome(key=key, error={
            "text": key[1],
            "language_code": lang_code,
            "error": message,
            "code": code,
        })

    def _translate_unit(self, key: UnitKey, lang_code: str, dnt_terms: List[str]) -> _UnitOutcome:
        """Translate one unique text into one language. Never raises for provider problems."""
        if not self.controller.wait_if_paused():
            return _UnitOutcome(key=key, skipped=True)

        protect, text = key
        source_lang = self.config.source_language
        full_match = self.encoder.find_full_match(text, self.config.glossary, source_lang, lang_code)
        if full_match is not None:
            return _UnitOutcome(key=key, translated=full_match, source=SOURCE_GLOSSARY)

        substitutions = []
        outgoing = text
        if protect:
            encoded = self.encoder.encode(text, dnt_terms, self.config.glossary, source_lang, lang_code)
            outgoing = encoded.processed_text
            substitutions = encoded.substitutions
            # Nothing left to translate once the protected spans are taken out
            if substitutions and not MARKER_PATTERN.sub('', outgoing).strip():
                return _UnitOutcome(
                    key=key,
                    translated=ProtectionEncoder.restore(outgoing, substitutions),
                    source=SOURCE_PROTECTED,
                )

        try:
            raw = self.provider.translate(outgoing, lang_code, source_lang)
        except TranslationError as e:
            logger.error(f"Provider failed for {lang_code}: {e}")
            return self._failure(key, lang_code, str(e), e.code or "provider_error")
        except Exception as e:
            logger.error(f"Provider failed for {lang_code}: {e}")
            return self._failure(key, lang_code, str(e), "provider_error")

        is_valid, reason = is_translation_valid(outgoing, raw, substitutions)
        if not is_valid:
            logger.warning(f"Invalid translation for {lang_code} ({reason}): {text[:50]}")
            return self._failure(key, lang_code, f"Invalid translation: {reason}", "invalid_translation")

        restored = ProtectionEncoder.restore(raw, substitutions)
        leftovers = leftover_markers(restored)
        if leftovers:
            logger.warning(f"Unknown markers left in {lang_code} translation: {leftovers}")
        return _UnitOutcome(key=key, translated=restored, source=SOURCE_PROVIDER)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def _build_result(
        self,
        outputs: Dict[str, Any],
        completed_languages: List[str],
        translated_count: int,
        cancelled: bool = False,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Build the result dictionary."""
        elapsed_time = time.time() - self.start_time if self.start_time else 0
        failure_count = len(self.failed_items)

        result = {
            "success": failure_count == 0 and not cancelled,
            "cancelled": cancelled,
            "outputs": outputs,
            "completed_languages": completed_languages,
            "total_translated": translated_count,
            "total_failed": failure_count,
            "failed_items": self.failed_items,
            "stats": dict(self.stats),
            "elapsed_time": elapsed_time,
        }
        if extra:
            result.update(extra)

        logger.info(
            "Translation %s in %.1f seconds (languages=%d, translated=%d, failed=%d)",
            "cancelled" if cancelled else "completed",
            elapsed_time,
            len(completed_languages),
            translated_count,
            failure_count,
        )
        return result

    def _stop_requested(self, cancel_check: Optional[Callable[[], bool]]) -> bool:
        if self.controller.cancelled:
            return True
        if cancel_check and cancel_check():
            logger.info("Translation cancelled by user request")
            self.controller.cancel()
            return True
        return False

    def _estimate_remaining(self, done: int, total: int) -> Optional[float]:
        if not self.start_time or done <= 0 or total <= done:
            return None
        elapsed = time.time() - self.start_time
        return elapsed / done * (total - done)

    # ------------------------------------------------------------------
    # Core loop
    # ------------------------------------------------------------------

    def _run_language(
        self,
        plan: _Plan,
        lang_code: str,
        dnt_terms: List[str],
        report: Callable[..., bool],
        cancel_check: Optional[Callable[[], bool]],
    ) -> Optional[Dict[UnitKey, str]]:
        """
        Translate every unique unit into one language.

        Returns:
            Unit key -> translation, or None when the language was cancelled
        """
        translations: Dict[UnitKey, str] = {}
        keys = plan.unit_keys()

        if self.config.use_tmx and self.config.tmx_memories and keys:
            applied = self.tmx_matcher.apply_tmx_translations(
                [text for _, text in keys],
                self.config.tmx_memories,
                lang_code,
                auto_apply_threshold=self.config.tmx_auto_apply_threshold,
            )
            for key in keys:
                match = applied.get(key[1])
                if match is not None:
                    translations[key] = match.target_text
            counter = f"{SOURCE_TMX}_count"
            self.stats[counter] = self.stats.get(counter, 0) + len(translations)
            if report(phase="tmx", tmx_count=len(translations), success=len(translations)):
                self.controller.cancel()

        pending = [key for key in keys if key not in translations]
        total = len(pending)
        done = 0

        def record(outcome: _UnitOutcome) -> bool:
            nonlocal done
            done += 1
            if outcome.error is not None:
                self.failed_items.append(outcome.error)
            elif outcome.translated is not None:
                # Write-once per unique text per language
                translations.setdefault(outcome.key, outcome.translated)
                counter = f"{outcome.source}_count"
                self.stats[counter] = self.stats.get(counter, 0) + 1
            return bool(report(
                phase="translating",
                current_item=done,
                total_items=total,
                current_text=outcome.key[1][:100],
                success=len(translations),
            ))

        if self.config.max_workers <= 1:
            for key in pending:
                if self._stop_requested(cancel_check):
                    break
                outcome = self._translate_unit(key, lang_code, dnt_terms)
                if outcome.skipped:
                    break
                if record(outcome):
                    self.controller.cancel()
        else:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
                futures = [executor.submit(self._translate_unit, key, lang_code, dnt_terms) for key in pending]
                for future in as_completed(futures):
                    outcome = future.result()
                    if not outcome.skipped and record(outcome):
                        self.controller.cancel()
                    if self._stop_requested(cancel_check):
                        for other in futures:
                            other.cancel()
                        break

        if self.controller.cancelled:
            return None
        return translations

    def _rebuild_language(
        self,
        plan: _Plan,
        translations: Dict[UnitKey, str],
        lang_code: str,
    ) -> List[str]:
        """Fan translations out to every occurrence and rebuild each document."""
        file_count = len(plan.extractions)
        protected = Deduplicator.fan_out(
            plan.protected,
            {text: value for (protect, text), value in translations.items() if protect},
            file_count,
        )
        unprotected = Deduplicator.fan_out(
            plan.unprotected,
            {text: value for (protect, text), value in translations.items() if not protect},
            file_count,
        )

        rebuilt = []
        for index, extraction in enumerate(plan.extractions):
            per_unit = protected[index] if extraction.protects_markers else unprotected[index]
            unit_translations = {}
            for unit in plan.units[index]:
                translated = per_unit.get(unit.id)
                if translated is not None:
                    unit_translations[unit.id] = _rewrap(unit.text, translated)
                elif extraction.content_type != CONTENT_HTML:
                    # Failed units keep their source text; HTML falls back to the original markup
                    unit_translations[unit.id] = unit.text
            rebuilt.append(self.reconstruction.rebuild_from_units(
                extraction, unit_translations, lang_code
            ))
        return rebuilt

    def _translate_extractions(
        self,
        extractions: List[Extraction],
        target_languages: Sequence[str],
        dnt_terms: List[str],
        progress_callback: Optional[ProgressCallback],
        cancel_check: Optional[Callable[[], bool]],
    ) -> Tuple[Dict[str, List[str]], bool]:
        """
        Shared driver for documents and subtitles.

        Returns:
            (language -> rebuilt documents in input order, cancelled)
        """
        plan = self._plan(extractions)
        languages = list(target_languages)
        rebuilt_by_language: Dict[str, List[str]] = {}

        for lang_idx, lang_code in enumerate(languages):
            if self._stop_requested(cancel_check):
                break

            lang_name = lc.get_language_name(lang_code) or lang_code
            failed_before = len(self.failed_items)

            def report(phase: str, current_item: int = 0, total_items: int = 0,
                       current_text: str = "", tmx_count: int = 0, success: int = 0,
                       completed: int = lang_idx, failed=None) -> bool:
                if not progress_callback:
                    return False
                progress = TranslationProgress(
                    current_language=lang_code,
                    current_language_name=lang_name,
                    total_languages=len(languages),
                    completed_languages=completed,
                    current_item=current_item,
                    total_items=total_items,
                    current_text=current_text,
                    success_count=success,
                    failure_count=len(self.failed_items) - failed_before,
                    phase=phase,
                    unique_count=self.stats.get("unique_count", 0),
                    duplicate_count=self.stats.get("duplicate_count", 0),
                    tmx_count=tmx_count,
                    estimated_time_remaining=self._estimate_remaining(current_item, total_items),
                    failed_items=failed,
                )
                return bool(progress_callback(progress))

            logger.info(f"Translating into {lang_name} ({lang_code})...")
            translations = self._run_language(plan, lang_code, dnt_terms, report, cancel_check)
            if translations is None:
                logger.info(f"Translation into {lang_code} cancelled; its output is omitted")
                break

            rebuilt_by_language[lang_code] = self._rebuild_language(plan, translations, lang_code)
            lang_failed = self.failed_items[failed_before:]
            logger.info(
                f"Translation completed for {lang_name} ({lang_code}): "
                f"{len(translations)} succeeded, {len(lang_failed)} failed"
            )
            if report(phase="completed", completed=lang_idx + 1,
                      success=len(translations), failed=lang_failed or None):
                self.controller.cancel()

        return rebuilt_by_language, self.controller.cancelled

    def _translated_count(self) -> int:
        return sum(
            self.stats.get(f"{source}_count", 0)
            for source in (SOURCE_GLOSSARY, SOURCE_TMX, SOURCE_PROTECTED, SOURCE_PROVIDER)
        )

    def _reset(self):
        self.start_time = time.time()
        self.failed_items = []
        self.stats = {}

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def translate_documents(
        self,
        documents: Sequence[TranslationDocument],
        target_languages: Sequence[str],
        progress_callback: Optional[ProgressCallback] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> Dict[str, Any]:
        """
        Translate documents (HTML, JSON or plain text) into every target language.

        Args:
            documents: Input documents
            target_languages: Language codes, processed in order
            progress_callback: Receives TranslationProgress; return True to cancel
            cancel_check: Optional function to check for cancellation

        Returns:
            Dict with success, cancelled, outputs ({lang: {document name: text}}),
            completed_languages, counts, failed_items, stats and elapsed_time.
            A language cancelled part-way is left out of outputs.
        """
        self._reset()
        logger.info(f"Starting translation of {len(documents)} documents into {len(target_languages)} languages")

        extractions = [
            self.extractor.extract(document.content, document.content_type, self.config.dnt_terms)
            for document in documents
        ]
        rebuilt, cancelled = self._translate_extractions(
            extractions, target_languages, list(self.config.dnt_terms), progress_callback, cancel_check
        )

        outputs = {
            lang_code: {document.name: text for document, text in zip(documents, texts)}
            for lang_code, texts in rebuilt.items()
        }
        translated_count = self._translated_count()
        return self._build_result(
            outputs,
            list(rebuilt),
            translated_count,
            cancelled=cancelled,
            extra={"content_types": {
                document.name: extraction.content_type
                for document, extraction in zip(documents, extractions)
            }},
        )

    def translate_text(
        self,
        text: str,
        target_languages: Sequence[str],
        content_type: Optional[str] = None,
    ) -> Dict[str, str]:
        """
        Translate a single string.

        Returns:
            Dict of language code -> translated text (completed languages only)
        """
        result = self.translate_documents(
            [TranslationDocument(name="text", content=text, content_type=content_type)],
            target_languages,
        )
        return {lang_code: docs["text"] for lang_code, docs in result["outputs"].items()}

    def translate_subtitles(
        self,
        files: Sequence[SubtitleFile],
        target_languages: Sequence[str],
        progress_callback: Optional[ProgressCallback] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> Dict[str, Any]:
        """
        Translate parsed subtitle files.

        Cue text with inline tags is translated as one joined unit and
        redistributed over its text runs; voice tag speakers are protected
        as DNT terms when the settings ask for it. Timecodes are never
        touched.

        Returns:
            Same shape as translate_documents; outputs map language code to
            {output file name: content}. length_issues maps language code to
            {file name: [TimingIssue dicts]}. output_files maps language code
            to {input file name: [output file names]}.
        """
        self._reset()
        settings = self.config.subtitles
        logger.info(f"Starting subtitle translation of {len(files)} files into {len(target_languages)} languages")

        dnt_terms = list(self.config.dnt_terms)
        if settings.treat_voice_tags_as_dnt:
            for subtitle_file in files:
                for cue in subtitle_file.cues:
                    voice = getattr(cue, "voice_tag", None)
                    if voice and voice not in dnt_terms:
                        dnt_terms.append(voice)

        extractions = []
        positions: List[Tuple[int, int]] = []
        for file_index, subtitle_file in enumerate(files):
            for cue_index, cue in enumerate(subtitle_file.cues):
                hint = CONTENT_HTML if ANY_TAG_PATTERN.search(cue.text) else CONTENT_PLAIN
                extractions.append(self.extractor.extract(cue.text, hint))
                positions.append((file_index, cue_index))

        rebuilt, cancelled = self._translate_extractions(
            extractions, target_languages, dnt_terms, progress_callback, cancel_check
        )

        outputs: Dict[str, Dict[str, str]] = {}
        length_issues: Dict[str, Dict[str, List[Dict[str, Any]]]] = {}
        output_files: Dict[str, Dict[str, List[str]]] = {}
        for lang_code, texts in rebuilt.items():
            cue_texts: Dict[Tuple[int, int], str] = dict(zip(positions, texts))
            outputs[lang_code] = {}
            output_files[lang_code] = {}
            for file_index, subtitle_file in enumerate(files):
                cues = []
                issues = []
                for cue_index, cue in enumerate(subtitle_file.cues):
                    text = apply_line_break_strategy(
                        cue_texts[(file_index, cue_index)],
                        settings.line_break_strategy,
                        settings.max_chars_per_line,
                    )
                    overflow = check_length_overflow(text, settings, cue.index)
                    if overflow is not None:
                        issues.append(overflow.to_dict())
                    cues.append(replace(cue, text=text))
                if issues:
                    length_issues.setdefault(lang_code, {})[subtitle_file.file_name] = issues
                rendered = generate_subtitle_outputs(
                    subtitle_file.file_name,
                    subtitle_file.format,
                    cues,
                    lang_code,
                    settings,
                    subtitle_file.vtt_metadata,
                )
                outputs[lang_code].update(rendered)
                output_files[lang_code][subtitle_file.file_name] = list(rendered)

        translated_count = self._translated_count()
        return self._build_result(
            outputs,
            list(rebuilt),
            translated_count,
            cancelled=cancelled,
            extra={"length_issues": length_issues, "output_files": output_files},
        )


    def translate_workbooks(
        self,
        workbooks: Sequence[SourceWorkbook],
        target_languages: Sequence[str],
        progress_callback: Optional[ProgressCallback] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
        overwrite_mode: str = OVERWRITE_FILL_EMPTY,
    ) -> Dict[str, Any]:
        """
        Translate the column D text of spreadsheets.

        Every text cell is extracted like a document (HTML or plain text), so
        a cell repeated across rows or workbooks is translated once.

        Returns:
            Same shape as translate_documents; outputs map language code to
            {workbook name: {row number: text}}. workbooks maps each output
            file name to .xlsx bytes holding every completed language, and
            is empty when no language completed.
        """
        self._reset()
        logger.info(f"Starting translation of {len(workbooks)} workbooks into {len(target_languages)} languages")

        dnt_terms = list(self.config.dnt_terms)
        extractions = []
        positions: List[Tuple[int, int]] = []
        for book_index, workbook in enumerate(workbooks):
            for row in workbook.rows():
                extractions.append(self.extractor.extract(row.text, None, dnt_terms))
                positions.append((book_index, row.row_index))

        rebuilt, cancelled = self._translate_extractions(
            extractions, target_languages, dnt_terms, progress_callback, cancel_check
        )

        outputs: Dict[str, Dict[str, Dict[int, str]]] = {}
        for lang_code, texts in rebuilt.items():
            outputs[lang_code] = {workbook.name: {} for workbook in workbooks}
            for (book_index, row_index), text in zip(positions, texts):
                outputs[lang_code][workbooks[book_index].name][row_index] = text

        files: Dict[str, bytes] = {}
        if rebuilt:
            for workbook in workbooks:
                translations = {lang_code: outputs[lang_code][workbook.name] for lang_code in rebuilt}
                files[output_workbook_name(workbook.name)] = write_workbook(workbook, translations, overwrite_mode)

        translated_count = self._translated_count()
        return self._build_result(
            outputs,
            list(rebuilt),
            translated_count,
            cancelled=cancelled,
            extra={"workbooks": files},
        )

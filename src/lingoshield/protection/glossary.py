"""
Glossary Module

Glossary entries map language codes to a term in that language. No column is
designated as "source": any language can be the source of a lookup, and a
term is present for a language when its value is non-empty.

Includes CSV and XLSX import plus CSV export (header row = language codes or names).
"""

import csv
import io
import zipfile
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from lingoshield import language_codes as lc
from lingoshield.exceptions import MalformedInputError
from lingoshield.logger import get_logger

logger = get_logger(__name__)

UTF8_BOM = "\ufeff"


@dataclass
class GlossaryEntry:
    """One glossary row: language code -> term."""
    translations: Dict[str, str] = field(default_factory=dict)

    def get(self, language: str) -> Optional[str]:
        """
        Get the non-empty term for a language.

        Exact code first, then case-insensitive code, then the first entry
        with the same base language.
        """
        if not language:
            return None
        value = self.translations.get(language)
        if value and value.strip():
            return value
        lowered = language.lower()
        for code, value in self.translations.items():
            if code.lower() == lowered and value and value.strip():
                return value
        for code, value in self.translations.items():
            if lc.languages_match(code, language) and value and value.strip():
                return value
        return None

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {"translations": dict(self.translations)}

    @classmethod
    def from_dict(cls, data: Dict) -> "GlossaryEntry":
        translations = data.get("translations", data) if isinstance(data, dict) else {}
        return cls(translations={
            str(code): str(value) for code, value in translations.items()
            if isinstance(value, str)
        })


def glossary_pairs(entries: List[GlossaryEntry], source_lang: str, target_lang: str) -> List[Tuple[str, str]]:
    """Return (source term, target term) for entries present in both languages."""
    pairs = []
    for entry in entries:
        source_value = entry.get(source_lang)
        target_value = entry.get(target_lang)
        if source_value and target_value:
            pairs.append((source_value, target_value))
    return pairs


def _entries_from_rows(
    rows: List[List[str]],
    available_languages: Optional[List[str]],
) -> Tuple[List[GlossaryEntry], List[str]]:
    """Map a header row of language labels plus data rows to entries."""
    warnings: List[str] = []
    header = [cell.strip() for cell in rows[0]]
    column_codes: List[Optional[str]] = []
    for label in header:
        if not label:
            column_codes.append(None)
        elif available_languages:
            matched = lc.match_glossary_language(label, available_languages)
            if not matched:
                warnings.append(f"Column '{label}' does not match any selected language")
            column_codes.append(matched)
        else:
            column_codes.append(label)

    entries: List[GlossaryEntry] = []
    skipped_rows = 0
    for row in rows[1:]:
        translations: Dict[str, str] = {}
        has_any_value = False
        for index, code in enumerate(column_codes):
            value = row[index].strip() if index < len(row) else ""
            if not value:
                continue
            has_any_value = True
            if code:
                translations[code] = value
        if translations:
            entries.append(GlossaryEntry(translations=translations))
        elif has_any_value:
            skipped_rows += 1

    if skipped_rows:
        warnings.append(f"Skipped {skipped_rows} rows with no matching language codes")
    return entries, warnings


def _require_data_row(rows: List[List[str]], kind: str):
    if len(rows) < 2:
        raise MalformedInputError(
            f"{kind} must have at least a header row and one data row",
            code=f"glossary_{kind.lower()}_too_short",
        )


def import_glossary_csv(
    content: str,
    available_languages: Optional[List[str]] = None,
) -> Tuple[List[GlossaryEntry], List[str]]:
    """
    Parse a glossary CSV.

    Args:
        content: CSV text; the header row lists language codes or names
        available_languages: Optional target codes; when given, each column is
            mapped to one of them with match_glossary_language() and columns
            that match nothing are dropped

    Returns:
        Tuple of (entries, warnings)

    Raises:
        MalformedInputError: If there is no header and data row
    """
    if content.startswith(UTF8_BOM):
        content = content[1:]

    rows = [row for row in csv.reader(io.StringIO(content.strip())) if any(cell.strip() for cell in row)]
    _require_data_row(rows, "CSV")

    entries, warnings = _entries_from_rows(rows, available_languages)
    logger.info(f"Imported {len(entries)} glossary entries ({len(warnings)} warnings)")
    return entries, warnings


def import_glossary_xlsx(
    data: bytes,
    available_languages: Optional[List[str]] = None,
) -> Tuple[List[GlossaryEntry], List[str]]:
    """
    Parse the first worksheet of a glossary workbook.

    Same layout and column mapping as import_glossary_csv(). Numbers and
    dates are read as their string form; empty cells are skipped.

    Raises:
        MalformedInputError: If the workbook cannot be opened or has no data row
    """
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        raise MalformedInputError(f"Invalid XLSX file: {e}", code="glossary_xlsx_invalid") from e

    try:
        sheet = workbook.worksheets[0]
        rows = []
        for values in sheet.iter_rows(values_only=True):
            row = ["" if value is None else str(value) for value in values]
            if any(cell.strip() for cell in row):
                rows.append(row)
    finally:
        workbook.close()

    _require_data_row(rows, "XLSX")
    entries, warnings = _entries_from_rows(rows, available_languages)
    logger.info(f"Imported {len(entries)} glossary entries from workbook ({len(warnings)} warnings)")
    return entries, warnings


def export_glossary_csv(entries: List[GlossaryEntry], include_bom: bool = True) -> str:
    """
    Export entries to CSV with one sorted column per language.

    Raises:
        ValueError: If there are no entries
    """
    if not entries:
        raise ValueError("No glossary entries to export")

    codes = sorted({code for entry in entries for code in entry.translations})
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    buffer.write(",".join(codes) + "\n")
    for entry in entries:
        writer.writerow([entry.translations.get(code, "") for code in codes])

    output = buffer.getvalue().rstrip("\n")
    return (UTF8_BOM + output) if include_bom else output

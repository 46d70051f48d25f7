"""
Workbook Module

Spreadsheet input and output on openpyxl. Only the first worksheet is used,
read as a matrix whose first row is the header:
- Column D holds the source text; its header names the source language
- Later columns whose header names a language hold existing translations
- Every row below the header is one item, keyed by its worksheet row number

Writing returns that sheet with one column per target language, reusing an
existing language column or appending a new one headed with the locale.
"""

import io
import zipfile
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Dict, List, Optional

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

import lingoshield.language_codes as lc
from lingoshield.exceptions import MalformedInputError
from lingoshield.logger import get_logger
from lingoshield.translation.extractor import ExtractedItem

logger = get_logger(__name__)

SOURCE_COLUMN_INDEX = 3  # column D
FIRST_DATA_ROW = 2

OVERWRITE_FILL_EMPTY = "fill-empty"
OVERWRITE_ALL = "overwrite"
OVERWRITE_MODES = (OVERWRITE_FILL_EMPTY, OVERWRITE_ALL)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


@dataclass
class WorkbookRow:
    row_index: int  # worksheet row number, the header is row 1
    text: str


@dataclass
class SourceWorkbook:
    """First worksheet of an uploaded workbook, plus what its header says."""
    name: str
    sheet_title: str
    matrix: List[List[Any]]
    source_language: Optional[str] = None
    language_columns: Dict[str, int] = field(default_factory=dict)  # locale -> 0-based column

    @property
    def header(self) -> List[Any]:
        return self.matrix[0]

    def rows(self) -> List[WorkbookRow]:
        """Data rows whose column D holds text; numbers, dates and blanks are skipped."""
        rows = []
        for offset, values in enumerate(self.matrix[1:]):
            value = values[SOURCE_COLUMN_INDEX]
            if isinstance(value, str) and value.strip():
                rows.append(WorkbookRow(row_index=offset + FIRST_DATA_ROW, text=value))
        return rows

    def items(self) -> List[ExtractedItem]:
        return [
            ExtractedItem(id=f"R{row.row_index}", path=f"row:{row.row_index}", text=row.text)
            for row in self.rows()
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "sheet": self.sheet_title,
            "row_count": len(self.matrix) - 1,
            "source_language": self.source_language,
            "existing_languages": list(self.language_columns),
            "items": [item.to_dict() for item in self.items()],
        }


def read_workbook(data: bytes, name: str = "workbook.xlsx") -> SourceWorkbook:
    """
    Open a workbook and read its first worksheet.

    Formula cells are read as their cached values, so a formula Excel never
    calculated reads as an empty cell. Short rows are padded with None.

    Args:
        data: .xlsx file content
        name: File name, used to name the output

    Returns:
        SourceWorkbook

    Raises:
        MalformedInputError: If the file is not a workbook, no row reaches
            column D, or there is no data row under the header
    """
    try:
        workbook = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        raise MalformedInputError(f"Invalid workbook: {e}", code="workbook_invalid") from e

    try:
        sheet = workbook.worksheets[0]
        sheet_title = sheet.title
        matrix = [list(values) for values in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()

    while matrix and all(_is_blank(value) for value in matrix[-1]):
        matrix.pop()

    width = max((len(row) for row in matrix), default=0)
    if width <= SOURCE_COLUMN_INDEX:
        raise MalformedInputError(
            "Workbook has no source text column (column D)", code="workbook_no_source_column"
        )
    if len(matrix) < 2:
        raise MalformedInputError(
            "Workbook needs a header row and at least one data row", code="workbook_too_short"
        )
    matrix = [row + [None] * (width - len(row)) for row in matrix]

    header = matrix[0]
    language_columns: Dict[str, int] = {}
    for column in range(SOURCE_COLUMN_INDEX + 1, width):
        code = lc.language_from_header(header[column])
        if code and code not in language_columns:
            language_columns[code] = column

    source = SourceWorkbook(
        name=name,
        sheet_title=sheet_title,
        matrix=matrix,
        source_language=lc.language_from_header(header[SOURCE_COLUMN_INDEX]),
        language_columns=language_columns,
    )
    logger.info(
        f"Read workbook {name}: {len(matrix) - 1} rows, source language "
        f"{source.source_language or 'unknown'}, existing languages {list(language_columns)}"
    )
    return source


def write_workbook(
    source: SourceWorkbook,
    translations: Dict[str, Dict[int, str]],
    overwrite_mode: str = OVERWRITE_FILL_EMPTY,
) -> bytes:
    """
    Write translations into a copy of the source sheet.

    Each language lands in its existing column, or in a new column headed
    with the locale. In fill-empty mode only blank cells are written. Rows
    without source text get a copy of their column D value, so numbers and
    other non-text cells carry over to every language.

    Args:
        source: Workbook returned by read_workbook()
        translations: Locale -> {worksheet row number: translated text}
        overwrite_mode: "fill-empty" or "overwrite"

    Returns:
        The .xlsx file content
    """
    if overwrite_mode not in OVERWRITE_MODES:
        raise ValueError(f"Unknown overwrite mode: {overwrite_mode}")

    matrix = [list(row) for row in source.matrix]
    for lang_code, by_row in translations.items():
        column = source.language_columns.get(lang_code)
        if column is None:
            column = len(matrix[0])
            for row in matrix:
                row.append(None)
            matrix[0][column] = lang_code

        written = 0
        for offset, row in enumerate(matrix[1:]):
            value = by_row.get(offset + FIRST_DATA_ROW)
            if value is None:
                value = row[SOURCE_COLUMN_INDEX]
                if _is_blank(value):
                    continue
            if overwrite_mode == OVERWRITE_FILL_EMPTY and not _is_blank(row[column]):
                continue
            row[column] = value
            written += 1
        logger.debug(f"Workbook {source.name}: {written} cells written for {lang_code}")

    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = source.sheet_title
    for row in matrix:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def output_workbook_name(file_name: str) -> str:
    """
    Name of a translated workbook.

    Example:
        >>> output_workbook_name("course.xlsx")
        'course_translated.xlsx'
    """
    return f"{PurePath(file_name).stem}_translated.xlsx"

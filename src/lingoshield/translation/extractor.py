"""
Content Extractor Module

Classifies raw content and splits it into a template plus the text that
needs translating:
- JSON: documents matching a registered schema; translatable leaves become
  TemplateToken objects in a copy of the parsed tree
- HTML: a single linear scan into tag and text runs; every text run,
  whitespace included, is tracked so reconstruction is byte-exact
- Plain: the trimmed string is the only segment; surrounding whitespace
  stays in the template

Classification never fails for text input: a schema that cannot be walked
demotes the content to plain text.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

from lingoshield.exceptions import ExtractionError
from lingoshield.logger import get_logger
from lingoshield.patterns import (
    HTML_DETECT_PATTERN,
    TAG_OR_TEXT_PATTERN,
    JsonSchema,
    SCHEMA_REGISTRY,
    detect_schema,
)

logger = get_logger(__name__)

CONTENT_HTML = "html"
CONTENT_JSON = "json"
CONTENT_PLAIN = "plain"
CONTENT_TYPES = (CONTENT_HTML, CONTENT_JSON, CONTENT_PLAIN)

HTML_UNIT_ID = "H"


@dataclass(frozen=True)
class ExtractedItem:
    """One piece of text taken out of a document. `path` is for traceability only."""
    id: str
    path: str
    text: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "path": self.path, "text": self.text}


@dataclass(frozen=True)
class TemplateToken:
    """Stands in a JSON template where an extracted leaf used to be."""
    id: str

    def __str__(self) -> str:
        return "{" + self.id + "}"


@dataclass
class HtmlSegment:
    type: str  # "tag" | "text"
    content: str
    text_index: Optional[int] = None


@dataclass
class HtmlStructure:
    """
    Tag/text runs of an HTML fragment.

    Concatenating `content` over `segments` gives back the original markup;
    `text_index` points into `text_segments`.
    """
    segments: List[HtmlSegment] = field(default_factory=list)
    text_segments: List[str] = field(default_factory=list)

    @property
    def pure_text(self) -> str:
        """Non-blank text runs, trimmed and joined with single spaces."""
        return " ".join(text.strip() for text in self.text_segments if text.strip())

    def original(self) -> str:
        return "".join(segment.content for segment in self.segments)


@dataclass
class PlainTemplate:
    leading: str = ""
    trailing: str = ""


Template = Union[HtmlStructure, PlainTemplate, Any]


@dataclass
class Extraction:
    """Result of one extraction pass."""
    content_type: str
    template: Template
    items: List[ExtractedItem] = field(default_factory=list)
    schema_name: Optional[str] = None
    source_locale: Optional[str] = None

    @property
    def text_segments(self) -> List[str]:
        return [item.text for item in self.items]

    @property
    def protects_markers(self) -> bool:
        """JSON leaves go to the translator without protection markers."""
        return self.content_type != CONTENT_JSON

    def translation_units(self) -> List[ExtractedItem]:
        """
        What is actually sent for translation.

        JSON and plain content send their items. HTML sends one unit holding
        the joined text runs, which is redistributed over the runs afterwards.
        """
        if self.content_type != CONTENT_HTML:
            return [item for item in self.items if item.text.strip()]
        pure_text = self.template.pure_text
        if not pure_text:
            return []
        return [ExtractedItem(id=HTML_UNIT_ID, path="$html", text=pure_text)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content_type": self.content_type,
            "schema": self.schema_name,
            "source_locale": self.source_locale,
            "template": render_template(self),
            "items": [item.to_dict() for item in self.items],
        }


def _dnt_literals(dnt_terms: Optional[Iterable[str]]) -> set:
    return {term.strip().lower() for term in (dnt_terms or []) if term and term.strip()}


def extract_html(html: str) -> Extraction:
    """
    Split HTML into tag and text runs with one regex scan.

    Example:
        >>> extraction = extract_html("<b>Bold</b> and <u>under</u>")
        >>> extraction.text_segments
        ['Bold', ' and ', 'under']
    """
    structure = HtmlStructure()
    items: List[ExtractedItem] = []
    for match in TAG_OR_TEXT_PATTERN.finditer(html):
        if match.group(1):
            structure.segments.append(HtmlSegment(type="tag", content=match.group(1)))
        else:
            text = match.group(2)
            text_index = len(structure.text_segments)
            structure.segments.append(HtmlSegment(type="text", content=text, text_index=text_index))
            structure.text_segments.append(text)
            items.append(ExtractedItem(id=f"T{text_index + 1}", path=f"$html[{text_index}]", text=text))

    # A '<' opening a tag that never closes matches neither branch
    if structure.original() != html:
        logger.debug("HTML contains unmatched '<'; treating the fragment as plain text")
        return extract_plain(html)
    if not any(segment.type == "tag" for segment in structure.segments):
        return extract_plain(html)

    return Extraction(content_type=CONTENT_HTML, template=structure, items=items)


def extract_plain(text: str) -> Extraction:
    trimmed = text.strip()
    if not trimmed:
        return Extraction(content_type=CONTENT_PLAIN, template=PlainTemplate(leading=text))
    start = text.index(trimmed)
    template = PlainTemplate(leading=text[:start], trailing=text[start + len(trimmed):])
    return Extraction(
        content_type=CONTENT_PLAIN,
        template=template,
        items=[ExtractedItem(id="T1", path="$text", text=trimmed)],
    )


def extract_json(raw: str, schema: JsonSchema, dnt_terms: Optional[Iterable[str]] = None) -> Extraction:
    """
    Walk a JSON document and pull out the leaves the schema marks as translatable.

    Leaves that are blank, or that are exactly a DNT term, stay in the template.

    Raises:
        ExtractionError: If the document cannot be parsed or walked
    """
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise ExtractionError(f"Failed to parse JSON: {e}", code="json_invalid") from e

    dnt = _dnt_literals(dnt_terms)
    items: List[ExtractedItem] = []

    def walk(value: Any, path: str) -> Any:
        if isinstance(value, dict):
            return {key: walk(child, f"{path}.{key}") for key, child in value.items()}
        if isinstance(value, list):
            return [walk(child, f"{path}[{index}]") for index, child in enumerate(value)]
        if isinstance(value, str):
            if value.strip() and value.strip().lower() not in dnt and schema.is_translatable(path):
                item = ExtractedItem(id=f"T{len(items) + 1}", path=path, text=value)
                items.append(item)
                return TemplateToken(item.id)
            return value
        # numbers, booleans and null pass through
        return value

    try:
        template = walk(parsed, "$")
    except RecursionError as e:
        raise ExtractionError("JSON document is nested too deeply", code="json_too_deep") from e

    source_locale = None
    if isinstance(parsed, dict) and isinstance(parsed.get("locale"), str):
        source_locale = parsed["locale"]

    return Extraction(
        content_type=CONTENT_JSON,
        template=template,
        items=items,
        schema_name=schema.name,
        source_locale=source_locale,
    )


def _json_schema_for(raw: str, schemas: Optional[List[JsonSchema]]) -> Optional[JsonSchema]:
    try:
        json.loads(raw)
    except (json.JSONDecodeError, TypeError, RecursionError):
        return None
    return detect_schema(raw, schemas)


class ContentExtractor:
    """
    Classifies content and extracts its translatable text.

    Args:
        schemas: JSON schemas to try, defaults to the registered ones
    """

    def __init__(self, schemas: Optional[List[JsonSchema]] = None):
        self.schemas = schemas if schemas is not None else list(SCHEMA_REGISTRY.values())

    def detect_content_type(self, raw: str) -> str:
        if _json_schema_for(raw, self.schemas):
            return CONTENT_JSON
        if HTML_DETECT_PATTERN.search(raw):
            return CONTENT_HTML
        return CONTENT_PLAIN

    def extract(
        self,
        raw: str,
        hint: Optional[str] = None,
        dnt_terms: Optional[Iterable[str]] = None,
    ) -> Extraction:
        """
        Extract a document.

        Detection order is JSON (valid JSON matching a schema), then HTML,
        then plain text. A hint of "html" or "plain" skips detection; a hint
        of "json" still needs a matching schema.

        Args:
            raw: Document text
            hint: Optional content type hint
            dnt_terms: DNT terms; JSON leaves equal to one are not extracted

        Returns:
            Extraction
        """
        if hint == CONTENT_PLAIN:
            return extract_plain(raw)
        if hint == CONTENT_HTML:
            return extract_html(raw)

        schema = _json_schema_for(raw, self.schemas)
        if schema is not None:
            try:
                extraction = extract_json(raw, schema, dnt_terms)
                logger.debug(f"JSON schema '{schema.name}' matched, {len(extraction.items)} leaves extracted")
                return extraction
            except ExtractionError as e:
                logger.warning(f"JSON extraction failed, falling back to plain text: {e}")
                return extract_plain(raw)

        if hint == CONTENT_JSON:
            logger.warning("Content was expected to be JSON but matches no schema")
        if HTML_DETECT_PATTERN.search(raw):
            return extract_html(raw)
        return extract_plain(raw)


def render_template(extraction: Extraction) -> Any:
    """
    Flat rendering of a template with {T<id>} tokens.

    Only for display and transport: JSON templates become plain data, HTML and
    plain templates become strings.
    """
    template = extraction.template
    if isinstance(template, HtmlStructure):
        return "".join(
            segment.content if segment.type == "tag" else "{T" + str(segment.text_index + 1) + "}"
            for segment in template.segments
        )
    if isinstance(template, PlainTemplate):
        token = "{T1}" if extraction.items else ""
        return f"{template.leading}{token}{template.trailing}"

    def render(value: Any) -> Any:
        if isinstance(value, TemplateToken):
            return str(value)
        if isinstance(value, dict):
            return {key: render(child) for key, child in value.items()}
        if isinstance(value, list):
            return [render(child) for child in value]
        return value

    return render(template)


def extract(raw: str, hint: Optional[str] = None, dnt_terms: Optional[Iterable[str]] = None) -> Extraction:
    """Module-level shortcut for ContentExtractor().extract(...)."""
    return ContentExtractor().extract(raw, hint, dnt_terms)

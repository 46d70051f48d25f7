"""
Pattern Library

Regex definitions shared by extraction, protection and detection:
- Placeholder, HTML and subtitle tag patterns
- Auto-DNT heuristic patterns (URLs, domains, proper names, identifiers)
- JSON schema registry with JSON-path patterns for translatable leaves
"""

import json
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from lingoshield.logger import get_logger

logger = get_logger(__name__)

# Curly-brace placeholders: {name}, {0}, {url}
PLACEHOLDER_PATTERN = re.compile(r'\{[^}]+\}')

# Anything that looks like an HTML tag (used for content classification)
HTML_DETECT_PATTERN = re.compile(r'</?[a-z][\s\S]*>', re.IGNORECASE)

# Any tag at all, for "does this text contain markup"
ANY_TAG_PATTERN = re.compile(r'<[^>]+>')

# Linear tag/text scanner: group 1 is a tag, group 2 a text run.
# A '<' that does not open a named tag, comment or doctype is text.
TAG_OR_TEXT_PATTERN = re.compile(r'(<(?:/?[A-Za-z]|!)[^>]*>)|((?:[^<]|<(?!/?[A-Za-z]|!))+)')

# Named tags for balance checking: group 1 is the lower-cased tag name
NAMED_TAG_PATTERN = re.compile(r'</?([a-z][a-z0-9]*)[^>]*>', re.IGNORECASE)

# Extraction placeholder token in templates
TEMPLATE_TOKEN_PATTERN = re.compile(r'^\{(T\d+)\}$')

# Auto-DNT heuristics
URL_PATTERN = re.compile(r'https?://[^\s<>"]+', re.IGNORECASE)
DOMAIN_PATTERN = re.compile(r'\b[a-zA-Z0-9][a-zA-Z0-9-]*\.(?:com|org|net|io|app|dev|co|edu|gov)\b', re.IGNORECASE)
EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
PROPER_NAME_PATTERN = re.compile(r'\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+\b')
VERSION_PATTERN = re.compile(r'\bv?\d+\.\d+(?:\.\d+)?\b', re.IGNORECASE)
HANDLE_PATTERN = re.compile(r'@[a-zA-Z0-9_]+')
HASHTAG_PATTERN = re.compile(r'#[a-zA-Z0-9_]+')
HEX_COLOR_PATTERN = re.compile(r'^#[0-9a-fA-F]{3,8}$')
CAPITALIZED_IN_CONTEXT_PATTERN = re.compile(r'(^|[.!?]\s+|[^.!?]\s+)([A-Z][a-z]+)')
WORD_TOKEN_PATTERN = re.compile(r'[a-zA-Z0-9_]+')
CONSTANT_PATTERN = re.compile(r'^[A-Z][A-Z0-9_]+$')
ACRONYM_PATTERN = re.compile(r'^[A-Z]{2,}$')
PASCAL_CASE_PATTERN = re.compile(r'^[A-Z][a-z]*[A-Z]')
CAMEL_CASE_PATTERN = re.compile(r'^[a-z]+[A-Z]')


@dataclass
class JsonSchema:
    """A known JSON document shape and the paths in it that get translated."""
    name: str
    display_name: str
    detect_pattern: re.Pattern
    translatable_paths: List[str] = field(default_factory=list)
    locale_field: str = "$.locale"

    def matches(self, raw: str) -> bool:
        return bool(self.detect_pattern.search(raw))

    def is_translatable(self, path: str) -> bool:
        return any(matches_path(path, pattern) for pattern in self.translatable_paths)


_SLIDE_CONTENT = "$.episodes[*].slides[*].content"

META_SKILLS_SCHEMA = JsonSchema(
    name="meta_skills",
    display_name="Meta-Skills Avatar AI",
    detect_pattern=re.compile(
        r'^\s*\{[\s\S]*"name"\s*:\s*"[^"]*"[\s\S]*"episodes"\s*:\s*\[',
        re.MULTILINE,
    ),
    translatable_paths=[
        "$.name",
        "$.episodes[*].name",
        "$.episodes[*].description",
        "$.episodes[*].slides[*].name",
        f"{_SLIDE_CONTENT}.intro.title",
        f"{_SLIDE_CONTENT}.intro.description",
        f"{_SLIDE_CONTENT}.openingLine",
        f"{_SLIDE_CONTENT}.instruction",
        f"{_SLIDE_CONTENT}.placeholderText",
        f"{_SLIDE_CONTENT}.title",
        f"{_SLIDE_CONTENT}.description",
        f"{_SLIDE_CONTENT}.feedbackPoints[*].title",
        f"{_SLIDE_CONTENT}.feedbackPoints[*].prompt",
    ],
)

SCHEMA_REGISTRY: Dict[str, JsonSchema] = {
    META_SKILLS_SCHEMA.name: META_SKILLS_SCHEMA,
}

_path_regex_cache: Dict[str, re.Pattern] = {}


def _normalize_path(path: str) -> str:
    """Make sure a JSON path starts with '$'."""
    if path.startswith("$"):
        return path
    if path.startswith("[") or path.startswith("."):
        return "$" + path
    return "$." + path


def _compile_path_pattern(pattern: str) -> re.Pattern:
    compiled = _path_regex_cache.get(pattern)
    if compiled is None:
        normalized = _normalize_path(pattern)
        regex = re.escape(normalized)
        # re.escape turns "[*]" into "\[\*\]" and "*" into "\*"
        regex = regex.replace(r"\[\*\]", r"\[\d+\]").replace(r"\*", ".*")
        compiled = re.compile(f"^{regex}$")
        _path_regex_cache[pattern] = compiled
    return compiled


def matches_path(path: str, pattern: str) -> bool:
    """
    Check a concrete JSON path against a path pattern.

    Patterns support '[*]' (any array index) and '*' (any run of characters).

    Examples:
        >>> matches_path("$.episodes[2].name", "$.episodes[*].name")
        True
        >>> matches_path("episodes[0].name", "$.episodes[*].name")
        True
        >>> matches_path("$.episodes[0].slides[0].name", "$.episodes[*].name")
        False
    """
    return bool(_compile_path_pattern(pattern).match(_normalize_path(path)))


def register_schema(schema: JsonSchema) -> None:
    """Add or replace a schema in the registry."""
    SCHEMA_REGISTRY[schema.name] = schema
    logger.debug(f"Registered JSON schema: {schema.name}")


def detect_schema(raw: str, schemas: Optional[List[JsonSchema]] = None) -> Optional[JsonSchema]:
    """Return the first registered schema whose detection pattern matches the raw text."""
    for schema in (schemas if schemas is not None else SCHEMA_REGISTRY.values()):
        if schema.matches(raw):
            return schema
    return None


def source_locale_from_json(raw: str) -> Optional[str]:
    """Read a top-level string 'locale' from a JSON document, None otherwise."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return None
    if isinstance(data, dict) and isinstance(data.get("locale"), str):
        return data["locale"]
    return None

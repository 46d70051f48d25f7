"""
Language code mappings and utilities.

Standards:
- ISO 639-1: 2-letter language codes (en, fr, pt)
- CKLS codes: language + region locale identifiers (en-US, fr-FR, pt-BR)

Glossary files, TMX memories and JSON documents each name languages in their
own way ("fr", "fr-FR", "French"); match_glossary_language() resolves such a
label to one of the requested target codes.
"""

import re
from typing import Any, Dict, Iterable, Optional

# Base language names, keyed by ISO 639-1 code
LANGUAGE_NAMES = {
    'ar': 'Arabic',
    'bg': 'Bulgarian',
    'cs': 'Czech',
    'da': 'Danish',
    'de': 'German',
    'en': 'English',
    'es': 'Spanish',
    'et': 'Estonian',
    'fi': 'Finnish',
    'fr': 'French',
    'hu': 'Hungarian',
    'id': 'Indonesian',
    'it': 'Italian',
    'ja': 'Japanese',
    'ko': 'Korean',
    'lt': 'Lithuanian',
    'lv': 'Latvian',
    'ms': 'Malay',
    'nb': 'Norwegian Bokmal',
    'nl': 'Dutch',
    'pl': 'Polish',
    'pt': 'Portuguese',
    'ro': 'Romanian',
    'ru': 'Russian',
    'sk': 'Slovak',
    'sl': 'Slovenian',
    'sv': 'Swedish',
    'th': 'Thai',
    'tr': 'Turkish',
    'uk': 'Ukrainian',
    'vi': 'Vietnamese',
    'zh': 'Chinese',
}

# Supported CKLS locale codes
CKLS_CODES = [
    'ar-EG', 'ar-KW', 'ar-SA', 'bg-BG', 'cs-CZ', 'da-DK', 'de-DE', 'en-GB', 'en-US',
    'es-CO', 'es-ES', 'et-EE', 'fi-FI', 'fr-FR', 'fr-CA', 'hu-HU', 'id-ID', 'it-IT',
    'ja-JP', 'ko-KR', 'lt-LT', 'lv-LV', 'ms-MY', 'nb-NO', 'nl-NL', 'pl-PL', 'pt-BR',
    'pt-PT', 'ro-RO', 'ru-RU', 'sk-SK', 'sl-SI', 'sv-SE', 'th-TH', 'tr-TR', 'uk-UA',
    'vi-VN', 'zh-CHS', 'zh-CN',
]

# Default CKLS locale for a bare or vendor-specific code
DEFAULT_LOCALE_FOR = {
    'ar': 'ar-SA', 'bg': 'bg-BG', 'cs': 'cs-CZ', 'da': 'da-DK', 'de': 'de-DE',
    'en': 'en-GB', 'es': 'es-ES', 'et': 'et-EE', 'fi': 'fi-FI', 'fr': 'fr-FR',
    'fr-ca': 'fr-CA', 'pt': 'pt-BR', 'pt-br': 'pt-BR', 'pt-pt': 'pt-PT',
    'hu': 'hu-HU', 'id': 'id-ID', 'it': 'it-IT', 'ja': 'ja-JP', 'ko': 'ko-KR',
    'lt': 'lt-LT', 'lv': 'lv-LV', 'ms': 'ms-MY', 'nb': 'nb-NO', 'nl': 'nl-NL',
    'pl': 'pl-PL', 'ro': 'ro-RO', 'ru': 'ru-RU', 'sk': 'sk-SK', 'sl': 'sl-SI',
    'sv': 'sv-SE', 'th': 'th-TH', 'tr': 'tr-TR', 'uk': 'uk-UA', 'vi': 'vi-VN',
    'zh': 'zh-CN', 'zh-chs': 'zh-CHS', 'zh-hans': 'zh-CN',
}

_SEPARATOR = re.compile(r'[-_]')
_LOCALE_IN_LABEL = re.compile(r'\b([a-z]{2,3})[-_]([a-z]{2,4})\b', re.IGNORECASE)


def is_valid_language_code(code: str) -> bool:
    """
    Check if a code is a supported CKLS code or a known base language.

    Examples:
        >>> is_valid_language_code('fr-FR')
        True
        >>> is_valid_language_code('fr')
        True
        >>> is_valid_language_code('xx-YY')
        False
    """
    return code in CKLS_CODES or code.lower() in LANGUAGE_NAMES


def extract_base_language(code: str) -> str:
    """
    Extract base language from code (remove region).

    Examples:
        >>> extract_base_language('fr-FR')
        'fr'
        >>> extract_base_language('zh_CN')
        'zh'
    """
    return _SEPARATOR.split(str(code or '').strip())[0].lower()


def get_language_name(code: str) -> Optional[str]:
    """
    Get the display name for a language code.

    Region codes get the region appended, e.g. 'fr-CA' -> 'French (CA)'.

    Returns:
        Language name or None if the base language is unknown
    """
    base = extract_base_language(code)
    name = LANGUAGE_NAMES.get(base)
    if not name:
        return None
    parts = _SEPARATOR.split(code.strip())
    if len(parts) > 1 and parts[1]:
        return f"{name} ({parts[1]})"
    return name


def languages_match(code1: str, code2: str, strict: bool = False) -> bool:
    """
    Check if two language codes match.

    Args:
        code1: First language code
        code2: Second language code
        strict: If True, must match exactly (case-insensitive). If False, base language match is ok.

    Examples:
        >>> languages_match('fr', 'fr-FR')
        True
        >>> languages_match('fr-FR', 'fr-CA', strict=True)
        False
    """
    if not code1 or not code2:
        return False
    if strict:
        return code1.strip().lower() == code2.strip().lower()
    return extract_base_language(code1) == extract_base_language(code2)


def default_locale_for(code: str) -> Optional[str]:
    """Return the default CKLS locale for a bare or vendor code ('pt' -> 'pt-BR')."""
    normalized = str(code or '').strip().lower()
    return DEFAULT_LOCALE_FOR.get(normalized) or DEFAULT_LOCALE_FOR.get(extract_base_language(normalized))


def language_from_header(label: Any) -> Optional[str]:
    """
    Resolve a worksheet column header to a CKLS locale.

    A supported locale written anywhere in the header wins; otherwise the
    whole header is read as a base code or an English language name and
    mapped to that language's default locale.

    Examples:
        >>> language_from_header('Translation (FR-fr)')
        'fr-FR'
        >>> language_from_header('German')
        'de-DE'
        >>> language_from_header('Comments') is None
        True
    """
    text = str(label or '').strip()
    if not text:
        return None

    for match in _LOCALE_IN_LABEL.finditer(text):
        candidate = f"{match.group(1)}-{match.group(2)}".lower()
        for code in CKLS_CODES:
            if code.lower() == candidate:
                return code

    lowered = text.lower()
    if lowered in LANGUAGE_NAMES:
        return default_locale_for(lowered)
    for iso_code, name in LANGUAGE_NAMES.items():
        if name.lower() == lowered:
            return default_locale_for(iso_code)
    return None


def match_glossary_language(
    label: str,
    targets: Iterable[str],
    language_names: Optional[Dict[str, str]] = None,
) -> Optional[str]:
    """
    Resolve a language label from a glossary header to one of the target codes.

    Tried in order:
    1. Exact code match (case-insensitive): 'fr-fr' -> 'fr-FR'
    2. Base language match: 'fr' -> 'fr-FR'
    3. Language name match: 'French' -> 'fr-FR'
    4. Default locale mapping: 'pt' -> 'pt-BR' when 'pt-BR' is a target

    Args:
        label: Language code or name as written in the file
        targets: Requested target codes
        language_names: Optional ISO code -> name map (defaults to LANGUAGE_NAMES)

    Returns:
        The matching target code or None
    """
    targets = list(targets)
    if not label or not targets:
        return None

    normalized = label.strip().lower()
    names = language_names or LANGUAGE_NAMES

    for target in targets:
        if target.lower() == normalized:
            return target

    base = extract_base_language(normalized)
    for target in targets:
        if target.lower().startswith(base + '-'):
            return target

    for iso_code, name in names.items():
        if name.lower() == normalized:
            for target in targets:
                if target.lower().startswith(iso_code.lower() + '-') or target.lower() == iso_code.lower():
                    return target

    mapped = default_locale_for(normalized)
    if mapped:
        for target in targets:
            if target.lower() == mapped.lower():
                return target

    return None

"""
TMX Reader/Writer Module

Reads and writes TMX 1.4 translation memories:
- parse_tmx: header attributes, units, quality/usage/context metadata
- export_tmx: document with one <tu> per source segment

Parsing uses lxml with entity resolution and network access disabled.
"""

import re
from datetime import datetime, timezone
from typing import Dict, List, Optional, Union

from lxml import etree

from lingoshield.exceptions import MalformedInputError
from lingoshield.logger import get_logger
from lingoshield.tmx.models import TmxMemory, TmxUnit

logger = get_logger(__name__)

XML_LANG = "{http://www.w3.org/XML/1998/namespace}lang"
CREATION_TOOL = "LingoShield"
CREATION_TOOL_VERSION = "2.0"

_XML_DECLARATION = re.compile(r'^\s*<\?xml[^>]*\?>')
_SEG_OPEN = re.compile(r'^<seg\b[^>]*>')
_SEG_CLOSE = re.compile(r'</seg>\s*$')


def _parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=True)


def _tuv_lang(tuv) -> str:
    return (tuv.get(XML_LANG) or tuv.get("lang") or "").strip()


def _segment_text(tuv) -> str:
    """Inner markup of a tuv's <seg>, with &lt; &gt; &amp; decoded."""
    seg = tuv.find("seg")
    if seg is None:
        return ""
    markup = etree.tostring(seg, encoding="unicode", with_tail=False)
    if markup.endswith("/>"):
        return ""
    inner = _SEG_CLOSE.sub("", _SEG_OPEN.sub("", markup, count=1), count=1)
    return inner.replace("&lt;", "<").replace("&gt;", ">").replace("&amp;", "&").strip()


def _int_or_none(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value not in (None, "") else None
    except ValueError:
        return None


def parse_tmx(content: Union[str, bytes], name: str = "memory.tmx") -> TmxMemory:
    """
    Parse a TMX document into a TmxMemory.

    Units with fewer than two <tuv> elements or without a source-language
    <tuv> are skipped. One TmxUnit is produced per target <tuv>.

    Args:
        content: TMX text or bytes
        name: Name stored on the memory (usually the file name)

    Raises:
        MalformedInputError: If the document is not well-formed XML or has no <tmx> root
    """
    try:
        if isinstance(content, bytes):
            root = etree.fromstring(content, parser=_parser())
        else:
            text = _XML_DECLARATION.sub("", content.lstrip("\ufeff"), count=1)
            root = etree.fromstring(text, parser=_parser())
    except etree.XMLSyntaxError as e:
        raise MalformedInputError(f"Invalid TMX file format: {e}", code="tmx_invalid_xml") from e

    if root is None or etree.QName(root).localname != "tmx":
        raise MalformedInputError("Invalid TMX file format: missing <tmx> root", code="tmx_invalid_root")

    header = root.find("header")
    source_lang = (header.get("srclang") if header is not None else None) or "en-US"
    memory = TmxMemory(
        name=name,
        source_lang=source_lang.strip(),
        header={
            "creation_tool": header.get("creationtool") if header is not None else None,
            "creation_date": header.get("creationdate") if header is not None else None,
            "segtype": header.get("segtype") if header is not None else None,
        },
    )

    skipped = 0
    for tu in root.iter("tu"):
        tuvs = tu.findall("tuv")
        if len(tuvs) < 2:
            skipped += 1
            continue

        source_tuv = next((tuv for tuv in tuvs if _tuv_lang(tuv) == memory.source_lang), None)
        if source_tuv is None:
            skipped += 1
            continue

        quality = None
        context: List[str] = []
        for prop in tu.findall("prop"):
            prop_type = prop.get("type") or ""
            if "Quality" in prop_type and quality is None:
                quality = _int_or_none((prop.text or "").strip())
            elif prop_type == "x-ContextContent":
                context.append(prop.text or "")

        source_text = _segment_text(source_tuv)
        for tuv in tuvs:
            lang = _tuv_lang(tuv)
            if lang == memory.source_lang:
                continue
            memory.add_unit(TmxUnit(
                source_text=source_text,
                target_text=_segment_text(tuv),
                source_lang=memory.source_lang,
                target_lang=lang,
                quality=quality,
                usage_count=_int_or_none(tu.get("usagecount")) or 0,
                context=context or None,
                creation_date=tu.get("creationdate"),
                change_date=tu.get("changedate"),
            ))

    logger.info(
        f"Parsed TMX '{name}': {len(memory.units)} units, "
        f"{len(memory.target_langs)} target languages ({skipped} units skipped)"
    )
    return memory


def escape_xml(text: str) -> str:
    """Escape & < > \" ' for XML text and attribute values."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def export_tmx(
    source_segments: List[str],
    translations: Dict[str, List[str]],
    source_lang: str,
    datatype: str = "plaintext",
    timestamp: Optional[str] = None,
) -> str:
    """
    Build a TMX 1.4 document.

    Args:
        source_segments: Source texts, one <tu> each
        translations: Target language -> list aligned with source_segments;
            empty or missing entries produce no <tuv>
        source_lang: Source language code (srclang and adminlang)
        datatype: Header datatype attribute
        timestamp: Creation date, defaults to now in TMX basic format

    Returns:
        TMX document as a string
    """
    stamp = timestamp or datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    lang = escape_xml(source_lang)
    lines = [
        '<?xml version="1.0" encoding="utf-8"?>',
        '<tmx version="1.4">',
        f'  <header creationtool="{CREATION_TOOL}" creationtoolversion="{CREATION_TOOL_VERSION}" '
        f'datatype="{escape_xml(datatype)}" segtype="sentence" adminlang="{lang}" '
        f'srclang="{lang}" o-tmf="{CREATION_TOOL}" creationdate="{stamp}"/>',
        '  <body>',
    ]

    for index, source_text in enumerate(source_segments):
        lines.append(f'    <tu creationdate="{stamp}">')
        lines.append(f'      <tuv xml:lang="{lang}">')
        lines.append(f'        <seg>{escape_xml(source_text)}</seg>')
        lines.append('      </tuv>')
        for target_lang, targets in translations.items():
            if index < len(targets) and targets[index]:
                lines.append(f'      <tuv xml:lang="{escape_xml(target_lang)}">')
                lines.append(f'        <seg>{escape_xml(targets[index])}</seg>')
                lines.append('      </tuv>')
        lines.append('    </tu>')

    lines.append('  </body>')
    lines.append('</tmx>')
    return "\n".join(lines)


def export_memory(memory: TmxMemory) -> str:
    """Export a whole TmxMemory, grouping units that share a source text."""
    order: List[str] = []
    by_lang: Dict[str, Dict[str, str]] = {}
    for unit in memory.units:
        if unit.source_text not in order:
            order.append(unit.source_text)
        by_lang.setdefault(unit.target_lang, {})[unit.source_text] = unit.target_text
    translations = {
        lang: [targets.get(source, "") for source in order]
        for lang, targets in by_lang.items()
    }
    return export_tmx(order, translations, memory.source_lang)

"""
TMX module - Translation memories

This module provides:
- models: TmxUnit, TmxMemory, TmxMatch
- parser: TMX 1.4 import/export
- matcher: exact and fuzzy lookup
"""

from lingoshield.tmx.models import TmxMatch, TmxMemory, TmxUnit
from lingoshield.tmx.parser import export_memory, export_tmx, parse_tmx
from lingoshield.tmx.matcher import TmxMatcher, find_matches, get_tmx_statistics

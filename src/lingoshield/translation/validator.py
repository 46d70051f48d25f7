"""
Translation Validation Module

Checks a provider result before it is accepted:
- Not empty
- Every protection marker sent to the provider came back
"""

from typing import List, Optional, Tuple

from lingoshield.logger import get_logger
from lingoshield.protection.encoder import MARKER_PATTERN, ProtectionEncoder, ProtectionMarker

logger = get_logger(__name__)


def is_translation_valid(
    source_text: str,
    translated_text: str,
    substitutions: Optional[List[ProtectionMarker]] = None,
) -> Tuple[bool, Optional[str]]:
    """
    Validate a raw provider result (markers not yet restored).

    Args:
        source_text: Text that was sent, markers included
        translated_text: Text the provider returned
        substitutions: Markers from the encoding pass

    Returns:
        Tuple of (is_valid, error_reason)
    """
    if not translated_text or not translated_text.strip():
        return False, "empty"

    if substitutions:
        missing = ProtectionEncoder.missing_markers(translated_text, substitutions)
        if missing:
            logger.debug(f"Markers lost for: {source_text[:50]}")
            return False, f"protected_term_lost:{','.join(item.original for item in missing)}"

    return True, None


def leftover_markers(text: str) -> List[str]:
    """Marker-shaped tokens still present after restoration."""
    return MARKER_PATTERN.findall(text)

"""
Protection module - Do-Not-Translate and glossary handling

This module provides:
- encoder: marker substitution and restoration (ProtectionEncoder)
- glossary: glossary entries, CSV/XLSX import and CSV export
- autodetect: heuristic DNT candidate detection
"""

from lingoshield.protection.glossary import (
    GlossaryEntry,
    glossary_pairs,
    import_glossary_csv,
    import_glossary_xlsx,
    export_glossary_csv,
)

from lingoshield.protection.encoder import (
    EncodedText,
    ProtectionEncoder,
    ProtectionMarker,
    ProtectionOptions,
    encode,
    restore,
)

from lingoshield.protection.autodetect import (
    DntCandidate,
    DetectionRule,
    calculate_confidence,
    detect_dnt_candidates,
)

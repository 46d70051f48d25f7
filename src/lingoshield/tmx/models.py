"""
Translation Memory Data Classes

Contains TmxUnit, TmxMemory and TmxMatch.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

MATCH_EXACT = "exact"
MATCH_FUZZY = "fuzzy"
MATCH_PARTIAL = "partial"


@dataclass
class TmxUnit:
    """One aligned source/target segment pair."""
    source_text: str
    target_text: str
    source_lang: str
    target_lang: str
    quality: Optional[float] = None
    usage_count: Optional[int] = None
    context: Optional[List[str]] = None
    creation_date: Optional[str] = None
    change_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TmxUnit":
        return cls(
            source_text=data.get("source_text", ""),
            target_text=data.get("target_text", ""),
            source_lang=data.get("source_lang", ""),
            target_lang=data.get("target_lang", ""),
            quality=data.get("quality"),
            usage_count=data.get("usage_count"),
            context=data.get("context"),
            creation_date=data.get("creation_date"),
            change_date=data.get("change_date"),
        )


@dataclass
class TmxMemory:
    """A translation memory: its units and the target languages seen in them."""
    name: str
    source_lang: str = "en-US"
    units: List[TmxUnit] = field(default_factory=list)
    target_langs: List[str] = field(default_factory=list)
    header: Dict[str, Optional[str]] = field(default_factory=dict)

    def add_unit(self, unit: TmxUnit) -> None:
        self.units.append(unit)
        if unit.target_lang and unit.target_lang not in self.target_langs:
            self.target_langs.append(unit.target_lang)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "source_lang": self.source_lang,
            "target_langs": list(self.target_langs),
            "header": dict(self.header),
            "units": [unit.to_dict() for unit in self.units],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TmxMemory":
        memory = cls(
            name=data.get("name", ""),
            source_lang=data.get("source_lang", "en-US"),
            header=dict(data.get("header") or {}),
        )
        for unit in data.get("units", []):
            memory.add_unit(TmxUnit.from_dict(unit))
        for lang in data.get("target_langs", []):
            if lang not in memory.target_langs:
                memory.target_langs.append(lang)
        return memory


@dataclass
class TmxMatch:
    """A candidate translation found in a memory. Derived, never stored."""
    unit: TmxUnit
    match_score: float
    match_type: str
    order: int = 0

    @property
    def source_text(self) -> str:
        return self.unit.source_text

    @property
    def target_text(self) -> str:
        return self.unit.target_text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_text": self.unit.source_text,
            "target_text": self.unit.target_text,
            "target_lang": self.unit.target_lang,
            "match_score": round(self.match_score, 2),
            "match_type": self.match_type,
            "quality": self.unit.quality,
            "usage_count": self.unit.usage_count,
        }

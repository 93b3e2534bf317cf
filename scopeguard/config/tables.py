"""Configuration tables that drive extraction, scoping, severity and cost.

These tables are externally supplied: the defaults below ship with the
package, and any of them can be replaced by a versioned JSON file loaded
with ``load_tables``. No stage embeds its own vocabulary or prices.

JSON shape (all keys optional except where noted):

    {
      "version": "2024.1",
      "vocabulary": [{"pattern": "...", "attribute": "voltage",
                      "value": "\\\\1V", "category": "ELECTRICAL_SCOPE"}],
      "location_patterns": ["pit\\\\s*\\\\d+[a-z]?"],
      "note_patterns": ["note\\\\s*#?\\\\s*(?P<number>\\\\d+)"],
      "location_aliases": {"svc": "service"},
      "scope_keywords": ["sump pump"],
      "severity_weights": {"voltage": "CRITICAL"},
      "default_severity": "WARNING",
      "cost_rules": [{"category": "...", "attribute": "...",
                      "description": "...", "amount": "1850.00"}],
      "overhead": [{"category": "...", "description": "...", "amount": "650.00"}]
    }
"""

import re
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

from scopeguard.models.enums import Severity

logger = structlog.get_logger(__name__)


def _check_pattern(pattern: str) -> None:
    try:
        re.compile(pattern)
    except re.error as e:
        raise ValueError(f"Invalid pattern {pattern!r}: {e}") from e


# =============================================================================
# Table Entry Models
# =============================================================================

class VocabularyEntry(BaseModel):
    """A phrase pattern mapped to (attribute name, normalized value).

    ``value`` is a regex expansion template, so ``\\1V`` turns a match of
    ``208 volts`` into ``208V``.
    """

    model_config = ConfigDict(frozen=True)

    pattern: str
    attribute: str
    value: str
    category: str

    @field_validator("pattern")
    @classmethod
    def _pattern_compiles(cls, v: str) -> str:
        _check_pattern(v)
        return v


class CostRule(BaseModel):
    """Base cost for a changed attribute within a category."""

    model_config = ConfigDict(frozen=True)

    category: str
    attribute: str
    description: str
    amount: Decimal = Field(..., ge=0)


class OverheadItem(BaseModel):
    """Fixed line item charged when a category carries a CRITICAL conflict."""

    model_config = ConfigDict(frozen=True)

    category: str
    description: str
    amount: Decimal = Field(..., ge=0)


# =============================================================================
# Default Tables
# =============================================================================

DEFAULT_VOCABULARY = [
    # Electrical service characteristics
    VocabularyEntry(pattern=r"\b(\d{3})\s*V(?:olts?|AC)?\b", attribute="voltage",
                    value=r"\1V", category="ELECTRICAL_SCOPE"),
    VocabularyEntry(pattern=r"\b([13])\s*-?\s*(?:phase|ph)\b", attribute="phase",
                    value=r"\1-Phase", category="ELECTRICAL_SCOPE"),
    VocabularyEntry(pattern=r"\bsingle[\s-]phase\b", attribute="phase",
                    value="1-Phase", category="ELECTRICAL_SCOPE"),
    VocabularyEntry(pattern=r"\bthree[\s-]phase\b", attribute="phase",
                    value="3-Phase", category="ELECTRICAL_SCOPE"),
    VocabularyEntry(pattern=r"\b(50|60)\s*Hz\b", attribute="frequency",
                    value=r"\1Hz", category="ELECTRICAL_SCOPE"),
    VocabularyEntry(pattern=r"\b(\d{2,3})\s*(?:A|AMPS?)\b", attribute="amperage",
                    value=r"\1A", category="ELECTRICAL_SCOPE"),
    VocabularyEntry(pattern=r"\b(\d+(?:\.\d+)?|\d+/\d+)\s*HP\b", attribute="horsepower",
                    value=r"\1 HP", category="ELECTRICAL_SCOPE"),
    VocabularyEntry(pattern=r"\b(non-fused|fused)\s+disconnect\b", attribute="disconnect",
                    value=r"\1 disconnect", category="ELECTRICAL_SCOPE"),
    VocabularyEntry(pattern=r"\bGFCI\b", attribute="gfci_protection",
                    value="GFCI", category="ELECTRICAL_SCOPE"),
    VocabularyEntry(pattern=r"\b(\d+)\s*(?:FC|foot-?candles?)\b", attribute="illuminance",
                    value=r"\1 FC", category="ELECTRICAL_SCOPE"),
    VocabularyEntry(pattern=r"\b(\d+)\"\s*AFF\b", attribute="mounting_height",
                    value=r'\1" AFF', category="ELECTRICAL_SCOPE"),
    # Pit mechanical
    VocabularyEntry(pattern=r"\b(\d+)\s*GPM\b", attribute="capacity",
                    value=r"\1 GPM", category="MECHANICAL_SCOPE"),
    VocabularyEntry(pattern=r"\b(\d+)\s*gal(?:lons?)?\b", attribute="sump_volume",
                    value=r"\1 gal", category="MECHANICAL_SCOPE"),
    # Hoistway construction
    VocabularyEntry(pattern=r"\b(\d)\s*-?\s*(?:HR|hour)\b", attribute="fire_rating",
                    value=r"\1-HR", category="ARCHITECTURAL_SCOPE"),
]

DEFAULT_LOCATION_PATTERNS = [
    r"(?:elevator\s+)?pit(?:\s*(?:no\.?|#)?\s*\d+[a-z]?)?(?:\s*\([^)]*\))?",
    r"(?:elevator\s+)?machine\s+room(?:\s*(?:no\.?|#)?\s*\d+[a-z]?)?(?:\s*\([^)]*\))?",
    r"hoistway(?:\s*(?:no\.?|#)?\s*\d+[a-z]?)?(?:\s*\([^)]*\))?",
    r"(?:elevator|car)\s*(?:no\.?|#)?\s*\d+[a-z]?"
    r"(?:\s+(?:pit|machine\s+room|hoistway))?(?:\s*\([^)]*\))?",
    r"(?:service|passenger|freight)\s+car(?:\s+pit)?(?:\s*\([^)]*\))?",
    r"location\s*:\s*(?P<label>.+)",
]

DEFAULT_NOTE_PATTERNS = [
    r"\bnote\s*#?\s*(?P<number>\d+)\b",
]

DEFAULT_LOCATION_ALIASES = {
    "svc": "service",
    "serv": "service",
    "elev": "elevator",
    "mach": "machine",
    "rm": "room",
    "no": "",
    "number": "",
}

DEFAULT_SCOPE_KEYWORDS = [
    "elevator",
    "pit",
    "hoistway",
    "machine room",
    "sump pump",
    "pit lighting",
    "feeder circuit",
    "service car",
]

DEFAULT_SEVERITY_WEIGHTS = {
    "voltage": Severity.CRITICAL,
    "phase": Severity.CRITICAL,
    "frequency": Severity.CRITICAL,
    "horsepower": Severity.CRITICAL,
    "amperage": Severity.WARNING,
    "disconnect": Severity.WARNING,
    "gfci_protection": Severity.WARNING,
    "capacity": Severity.WARNING,
    "sump_volume": Severity.WARNING,
    "fire_rating": Severity.WARNING,
    "illuminance": Severity.INFO,
    "mounting_height": Severity.INFO,
    "note": Severity.INFO,
}

DEFAULT_COST_RULES = [
    CostRule(category="ELECTRICAL_SCOPE", attribute="voltage",
             description="New {new} pump motor", amount=Decimal("1850.00")),
    CostRule(category="ELECTRICAL_SCOPE", attribute="horsepower",
             description="Motor upsize to {new}", amount=Decimal("1200.00")),
    CostRule(category="ELECTRICAL_SCOPE", attribute="amperage",
             description="Breaker and disconnect swap to {new}", amount=Decimal("420.00")),
    CostRule(category="ELECTRICAL_SCOPE", attribute="disconnect",
             description="Replace {old} with {new}", amount=Decimal("380.00")),
    CostRule(category="MECHANICAL_SCOPE", attribute="capacity",
             description="Resize sump pump to {new}", amount=Decimal("950.00")),
    CostRule(category="ARCHITECTURAL_SCOPE", attribute="fire_rating",
             description="Rework hoistway enclosure for {new} rating", amount=Decimal("600.00")),
]

DEFAULT_OVERHEAD = [
    OverheadItem(category="ELECTRICAL_SCOPE",
                 description="Restocking fee for returned equipment", amount=Decimal("650.00")),
    OverheadItem(category="ELECTRICAL_SCOPE",
                 description="Expedited shipping", amount=Decimal("350.00")),
    OverheadItem(category="MECHANICAL_SCOPE",
                 description="Restocking fee for returned equipment", amount=Decimal("650.00")),
    OverheadItem(category="MECHANICAL_SCOPE",
                 description="Expedited shipping", amount=Decimal("350.00")),
]


# =============================================================================
# Table Bundle
# =============================================================================

class ConfigTables(BaseModel):
    """All configuration tables, versioned together."""

    model_config = ConfigDict(frozen=True)

    version: str = "2024.1"
    vocabulary: list[VocabularyEntry] = Field(default_factory=lambda: list(DEFAULT_VOCABULARY))
    location_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_LOCATION_PATTERNS)
    )
    note_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_NOTE_PATTERNS))
    location_aliases: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_LOCATION_ALIASES)
    )
    scope_keywords: list[str] = Field(default_factory=lambda: list(DEFAULT_SCOPE_KEYWORDS))
    severity_weights: dict[str, Severity] = Field(
        default_factory=lambda: dict(DEFAULT_SEVERITY_WEIGHTS)
    )
    default_severity: Severity = Severity.WARNING
    cost_rules: list[CostRule] = Field(default_factory=lambda: list(DEFAULT_COST_RULES))
    overhead: list[OverheadItem] = Field(default_factory=lambda: list(DEFAULT_OVERHEAD))

    @field_validator("location_patterns", "note_patterns")
    @classmethod
    def _patterns_compile(cls, v: list[str]) -> list[str]:
        for pattern in v:
            _check_pattern(pattern)
        return v

    def severity_for(self, attribute: str) -> Severity:
        """Configured weight for an attribute, falling back to the default."""
        return self.severity_weights.get(attribute, self.default_severity)

    def cost_rule_for(self, category: str, attribute: str) -> Optional[CostRule]:
        for rule in self.cost_rules:
            if rule.category == category and rule.attribute == attribute:
                return rule
        return None

    def overhead_for(self, category: str) -> list[OverheadItem]:
        return [item for item in self.overhead if item.category == category]


@lru_cache
def default_tables() -> ConfigTables:
    """Get the shipped default tables."""
    return ConfigTables()


def load_tables(path: str | Path) -> ConfigTables:
    """Load configuration tables from a JSON file.

    Keys missing from the file keep their shipped defaults.

    Raises:
        FileNotFoundError: If the file does not exist.
        pydantic.ValidationError: If the file does not describe valid tables.
    """
    path = Path(path)
    tables = ConfigTables.model_validate_json(path.read_text(encoding="utf-8"))
    logger.info(
        "config_tables_loaded",
        path=str(path),
        version=tables.version,
        vocabulary_entries=len(tables.vocabulary),
        cost_rules=len(tables.cost_rules),
    )
    return tables

"""Runtime settings and externally supplied configuration tables."""

from .settings import Settings, get_settings
from .tables import (
    ConfigTables,
    CostRule,
    OverheadItem,
    VocabularyEntry,
    default_tables,
    load_tables,
)

__all__ = [
    "Settings",
    "get_settings",
    "ConfigTables",
    "CostRule",
    "OverheadItem",
    "VocabularyEntry",
    "default_tables",
    "load_tables",
]

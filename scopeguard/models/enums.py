"""Enumeration types for the pipeline models."""

from enum import Enum


class Severity(str, Enum):
    """Conflict severity, ordered INFO < WARNING < CRITICAL."""

    CRITICAL = "CRITICAL"
    WARNING = "WARNING"
    INFO = "INFO"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.INFO: 0,
    Severity.WARNING: 1,
    Severity.CRITICAL: 2,
}


class Discipline(str, Enum):
    """Drawing discipline of a sheet."""

    ARCHITECTURAL = "architectural"
    ELECTRICAL = "electrical"
    MECHANICAL = "mechanical"
    UNKNOWN = "unknown"


class StageName(str, Enum):
    """Stages that report progress to the display layer, in run order."""

    INGEST = "INGEST"
    EXTRACT = "EXTRACT"
    FILTER = "FILTER"
    CROSS_REFERENCE = "CROSS_REFERENCE"
    CLASSIFY = "CLASSIFY"
    COST_ESTIMATE = "COST_ESTIMATE"


PIPELINE_STAGES: tuple[StageName, ...] = tuple(StageName)


class DocumentState(str, Enum):
    """Per-document pipeline state."""

    PENDING = "PENDING"
    INGESTED = "INGESTED"
    EXTRACTED = "EXTRACTED"
    FILTERED = "FILTERED"
    CROSS_REFERENCED = "CROSS_REFERENCED"
    CLASSIFIED = "CLASSIFIED"
    ESTIMATED = "ESTIMATED"
    DRAFTED = "DRAFTED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class ReferenceStatus(str, Enum):
    """Outcome of cross-referencing one element against the baseline."""

    MATCHED = "MATCHED"
    UNCOORDINATED_NEW_SCOPE = "UNCOORDINATED_NEW_SCOPE"
    NEEDS_MANUAL_REVIEW = "NEEDS_MANUAL_REVIEW"

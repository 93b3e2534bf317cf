"""Pydantic data models for the pipeline."""

from .enums import (
    PIPELINE_STAGES,
    Discipline,
    DocumentState,
    ReferenceStatus,
    Severity,
    StageName,
)
from .document import Document, Page, TextToken
from .specification import (
    AlignedPair,
    BaselineRecord,
    SpecificationElement,
    format_attributes,
)
from .conflict import (
    Conflict,
    Contact,
    CostLineItem,
    RecipientInfo,
    RFIDraft,
)
from .progress import ProgressEvent

__all__ = [
    # Enums
    "Severity",
    "Discipline",
    "StageName",
    "PIPELINE_STAGES",
    "DocumentState",
    "ReferenceStatus",
    # Documents
    "Document",
    "Page",
    "TextToken",
    # Specifications
    "SpecificationElement",
    "BaselineRecord",
    "AlignedPair",
    "format_attributes",
    # Conflicts
    "Conflict",
    "CostLineItem",
    "Contact",
    "RecipientInfo",
    "RFIDraft",
    # Progress
    "ProgressEvent",
]

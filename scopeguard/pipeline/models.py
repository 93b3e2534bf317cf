"""Intermediate data models for the conflict-detection pipeline.

These models define the contracts between pipeline stages.

Stage Flow:
1. Extraction          -> list[SpecificationElement]
2. Scope Filter        -> list[SpecificationElement]
3. Cross-Reference     -> CrossReferenceResult
4. Classification      -> list[Conflict]
5. Cost Estimation     -> list[Conflict] (priced)
6. RFI Drafting        -> list[RFIDraft]
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from scopeguard.models import (
    AlignedPair,
    Conflict,
    DocumentState,
    ProgressEvent,
    ReferenceStatus,
    RFIDraft,
    SpecificationElement,
)


# =============================================================================
# Stage 3: Cross-Reference
# =============================================================================

class ScopeFinding(BaseModel):
    """An element that could not be aligned with a single baseline record."""

    element: SpecificationElement
    status: ReferenceStatus
    reason: str = ""
    candidate_record_ids: list[str] = Field(default_factory=list)


class CrossReferenceResult(BaseModel):
    """Complete output of cross-referencing one document."""

    pairs: list[AlignedPair] = Field(default_factory=list)
    uncoordinated: list[ScopeFinding] = Field(
        default_factory=list,
        description="Elements with no prior baseline record (informational)",
    )
    needs_review: list[ScopeFinding] = Field(
        default_factory=list,
        description="Elements whose baseline match was ambiguous",
    )


# =============================================================================
# Pipeline State
# =============================================================================

_TRANSITIONS: dict[DocumentState, tuple[DocumentState, ...]] = {
    DocumentState.PENDING: (DocumentState.INGESTED,),
    DocumentState.INGESTED: (DocumentState.EXTRACTED,),
    DocumentState.EXTRACTED: (DocumentState.FILTERED,),
    DocumentState.FILTERED: (DocumentState.CROSS_REFERENCED,),
    DocumentState.CROSS_REFERENCED: (DocumentState.CLASSIFIED,),
    DocumentState.CLASSIFIED: (DocumentState.ESTIMATED,),
    DocumentState.ESTIMATED: (DocumentState.DRAFTED,),
    DocumentState.DRAFTED: (),
    DocumentState.FAILED: (),
    DocumentState.CANCELLED: (),
}

_TERMINAL = (DocumentState.FAILED, DocumentState.CANCELLED)


class InvalidTransitionError(ValueError):
    """A document state change that skips or reverses a stage."""

    pass


class PipelineRunState(BaseModel):
    """Complete state of one document's pipeline run."""

    # Input
    document_id: str
    source_file: str
    project_id: str
    status: DocumentState = DocumentState.PENDING

    # Stage outputs
    elements: list[SpecificationElement] = Field(default_factory=list)
    scoped_elements: list[SpecificationElement] = Field(default_factory=list)
    cross_reference: Optional[CrossReferenceResult] = None
    conflicts: list[Conflict] = Field(default_factory=list)
    rfi_drafts: list[RFIDraft] = Field(default_factory=list)

    # Inspectable stage traces (dataclasses stored as dicts)
    extraction_trace: Optional[dict] = None
    scope_trace: Optional[dict] = None
    cross_reference_trace: Optional[dict] = None
    classification_trace: Optional[dict] = None
    cost_trace: Optional[dict] = None

    # Processing metadata
    events: list[ProgressEvent] = Field(default_factory=list)
    processing_start: Optional[datetime] = None
    processing_end: Optional[datetime] = None
    stage_durations: dict[str, float] = Field(default_factory=dict)
    tables_version: Optional[str] = None
    errors: list[dict] = Field(default_factory=list)
    warnings: list[dict] = Field(default_factory=list)

    def advance(self, new_status: DocumentState) -> None:
        """Move to the next state, refusing skipped or reversed stages."""
        allowed = _TRANSITIONS[self.status]
        if new_status in _TERMINAL and self.status not in _TERMINAL:
            self.status = new_status
            return
        if new_status not in allowed:
            raise InvalidTransitionError(
                f"Cannot move document {self.document_id} from {self.status.value} "
                f"to {new_status.value}"
            )
        self.status = new_status

    @property
    def total_cost_impact(self) -> Decimal:
        return sum((c.cost_impact for c in self.conflicts), start=Decimal("0.00"))

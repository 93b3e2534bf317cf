"""Conflict-detection pipeline: stage orchestration and concurrent ingestion."""

from scopeguard.pipeline.models import (
    CrossReferenceResult,
    InvalidTransitionError,
    PipelineRunState,
    ScopeFinding,
)
from scopeguard.pipeline.orchestrator import CancellationToken, run_document_pipeline
from scopeguard.pipeline.manager import DocumentOutcome, IngestionManager

__all__ = [
    "run_document_pipeline",
    "CancellationToken",
    "IngestionManager",
    "DocumentOutcome",
    "PipelineRunState",
    "CrossReferenceResult",
    "ScopeFinding",
    "InvalidTransitionError",
]

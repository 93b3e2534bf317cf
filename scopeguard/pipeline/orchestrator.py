"""Pipeline Orchestrator - runs one document through every stage.

Each stage runs to completion, records its duration and trace on the run
state, advances the document's state machine and emits one progress event.
Cancellation is checked before each stage starts. Any stage failure is
attributed to the document and stage and aborts the run with no partial
output.
"""

import threading
import time
from dataclasses import asdict
from datetime import date, datetime, timezone
from typing import Callable, Optional

import structlog

from scopeguard.baseline.resilience import call_with_retry
from scopeguard.baseline.store import BaselineStore
from scopeguard.config.settings import Settings, get_settings
from scopeguard.config.tables import ConfigTables, default_tables
from scopeguard.errors import PipelineCancelled, PipelineStageError
from scopeguard.models import (
    PIPELINE_STAGES,
    Document,
    DocumentState,
    ProgressEvent,
    RecipientInfo,
    StageName,
)
from scopeguard.pipeline.models import PipelineRunState
from scopeguard.pipeline.stages import (
    classify_pairs,
    cross_reference,
    draft_rfi,
    estimate_costs,
    extract_specifications,
    filter_scope,
)
from scopeguard.pipeline.stages.scope_filter import DisciplinePredicate

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]

DRAFT_STAGE = "DRAFT"


class CancellationToken:
    """Thread-safe flag checked at stage boundaries."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def run_document_pipeline(
    document: Document,
    store: BaselineStore,
    project_id: str,
    tables: Optional[ConfigTables] = None,
    settings: Optional[Settings] = None,
    on_progress: Optional[ProgressCallback] = None,
    cancel_token: Optional[CancellationToken] = None,
    recipient: Optional[RecipientInfo] = None,
    scope_predicate: Optional[DisciplinePredicate] = None,
    today: Optional[date] = None,
) -> PipelineRunState:
    """Run the complete conflict-detection pipeline on one document.

    Args:
        document: The ingested bulletin.
        store: Baseline Store; read through one transaction for this run.
        project_id: Project whose approved baseline is checked.
        tables: Configuration tables; shipped defaults when omitted.
        settings: Runtime settings.
        on_progress: Receives one ProgressEvent per completed stage, in order.
        cancel_token: Checked before each stage begins.
        recipient: When given, an RFI is drafted for every conflict.
        scope_predicate: Discipline-inclusion predicate for the scope filter.
        today: Reference date for RFI deadlines.

    Returns:
        PipelineRunState with all stage outputs.

    Raises:
        PipelineCancelled: If the token was cancelled at a stage boundary.
        PipelineStageError: If a stage failed; carries document and stage.
    """
    tables = tables or default_tables()
    settings = settings or get_settings()

    state = PipelineRunState(
        document_id=document.document_id,
        source_file=document.source_filename,
        project_id=project_id,
        processing_start=datetime.now(timezone.utc),
        tables_version=tables.version,
    )

    logger.info(
        "pipeline_start",
        document_id=document.document_id,
        source=document.source_filename,
        project_id=project_id,
    )

    runners: dict[StageName, Callable[[], None]] = {
        StageName.INGEST: lambda: _run_ingest(state, document),
        StageName.EXTRACT: lambda: _run_extraction(state, document, tables, settings),
        StageName.FILTER: lambda: _run_scope_filter(state, tables, scope_predicate),
        StageName.CROSS_REFERENCE: lambda: _run_cross_reference(state, store, tables, settings),
        StageName.CLASSIFY: lambda: _run_classification(state, tables),
        StageName.COST_ESTIMATE: lambda: _run_cost_estimation(state, tables),
    }

    for index, stage in enumerate(PIPELINE_STAGES, start=1):
        _check_cancelled(state, cancel_token, stage.value)
        _run_stage(state, stage.value, runners[stage])
        _emit_progress(state, stage, index, on_progress)

    if recipient is not None:
        _check_cancelled(state, cancel_token, DRAFT_STAGE)
        _run_stage(state, DRAFT_STAGE, lambda: _run_drafting(state, recipient, today))

    state.processing_end = datetime.now(timezone.utc)
    logger.info(
        "pipeline_complete",
        document_id=state.document_id,
        status=state.status.value,
        conflicts=len(state.conflicts),
        uncoordinated=len(state.cross_reference.uncoordinated) if state.cross_reference else 0,
        needs_review=len(state.cross_reference.needs_review) if state.cross_reference else 0,
        total_cost=str(state.total_cost_impact),
        duration_seconds=round((state.processing_end - state.processing_start).total_seconds(), 3),
    )
    return state


# =============================================================================
# Stage Plumbing
# =============================================================================

def _check_cancelled(
    state: PipelineRunState,
    cancel_token: Optional[CancellationToken],
    stage: str,
) -> None:
    if cancel_token is not None and cancel_token.cancelled:
        state.advance(DocumentState.CANCELLED)
        state.processing_end = datetime.now(timezone.utc)
        logger.warning("pipeline_cancelled", document_id=state.document_id, before_stage=stage)
        raise PipelineCancelled(state.document_id, stage)


def _run_stage(state: PipelineRunState, stage: str, runner: Callable[[], None]) -> None:
    stage_start = time.perf_counter()
    logger.info("stage_start", document_id=state.document_id, stage=stage)

    try:
        runner()
    except Exception as e:
        state.errors.append({"stage": stage, "error": str(e), "type": type(e).__name__})
        state.advance(DocumentState.FAILED)
        state.processing_end = datetime.now(timezone.utc)
        logger.error("stage_failed", document_id=state.document_id, stage=stage, error=str(e))
        raise PipelineStageError(state.document_id, stage, str(e)) from e

    state.stage_durations[stage] = round(time.perf_counter() - stage_start, 6)


def _emit_progress(
    state: PipelineRunState,
    stage: StageName,
    index: int,
    on_progress: Optional[ProgressCallback],
) -> None:
    event = ProgressEvent(
        document_id=state.document_id,
        stage_name=stage,
        stage_index=index,
        total_stages=len(PIPELINE_STAGES),
        timestamp=datetime.now(timezone.utc),
    )
    state.events.append(event)
    if on_progress is not None:
        on_progress(event)


# =============================================================================
# Stage Runners
# =============================================================================

def _run_ingest(state: PipelineRunState, document: Document) -> None:
    """INGEST: accept the document and record what arrived."""
    logger.info(
        "ingesting",
        document_id=document.document_id,
        source=document.source_filename,
        size_mb=round(document.byte_size / (1024 * 1024), 1),
        pages=document.total_pages,
    )
    for page in document.pages:
        logger.debug(
            "sheet_received",
            sheet=page.sheet_code,
            discipline=page.discipline.value,
            tokens=len(page.tokens),
        )
    state.advance(DocumentState.INGESTED)


def _run_extraction(
    state: PipelineRunState,
    document: Document,
    tables: ConfigTables,
    settings: Settings,
) -> None:
    """EXTRACT: positioned text to specification elements."""
    elements, trace = extract_specifications(document, tables, settings)
    state.elements = elements
    state.extraction_trace = asdict(trace)
    state.advance(DocumentState.EXTRACTED)

    if not elements:
        state.warnings.append({"stage": StageName.EXTRACT.value, "warning": "No specification facts found"})


def _run_scope_filter(
    state: PipelineRunState,
    tables: ConfigTables,
    scope_predicate: Optional[DisciplinePredicate],
) -> None:
    """FILTER: keep elevator-relevant elements."""
    scoped, trace = filter_scope(state.elements, tables.scope_keywords, scope_predicate)
    state.scoped_elements = scoped
    state.scope_trace = asdict(trace)
    state.advance(DocumentState.FILTERED)


def _run_cross_reference(
    state: PipelineRunState,
    store: BaselineStore,
    tables: ConfigTables,
    settings: Settings,
) -> None:
    """CROSS_REFERENCE: align with the approved baseline in one read transaction.

    A store failure retries the whole stage in a fresh transaction.
    """

    def _attempt():
        with store.read_transaction() as reader:
            return cross_reference(
                state.scoped_elements,
                reader,
                state.project_id,
                aliases=tables.location_aliases,
                threshold=settings.location_match_threshold,
            )

    result, trace = call_with_retry(_attempt, settings)
    state.cross_reference = result
    state.cross_reference_trace = asdict(trace)
    state.advance(DocumentState.CROSS_REFERENCED)

    for finding in result.needs_review:
        state.warnings.append({
            "stage": StageName.CROSS_REFERENCE.value,
            "warning": "needs_manual_review",
            "element_id": finding.element.element_id,
            "record_ids": finding.candidate_record_ids,
        })


def _run_classification(state: PipelineRunState, tables: ConfigTables) -> None:
    """CLASSIFY: raise conflicts from aligned pairs."""
    pairs = state.cross_reference.pairs if state.cross_reference else []
    conflicts, trace = classify_pairs(pairs, state.document_id, tables)
    state.conflicts = conflicts
    state.classification_trace = asdict(trace)
    state.advance(DocumentState.CLASSIFIED)


def _run_cost_estimation(state: PipelineRunState, tables: ConfigTables) -> None:
    """COST_ESTIMATE: price every conflict."""
    priced, trace = estimate_costs(state.conflicts, tables)
    state.conflicts = priced
    state.cost_trace = asdict(trace)
    state.advance(DocumentState.ESTIMATED)


def _run_drafting(
    state: PipelineRunState,
    recipient: RecipientInfo,
    today: Optional[date],
) -> None:
    """Draft one RFI per conflict for the caller's recipient."""
    state.rfi_drafts = [draft_rfi(conflict, recipient, today) for conflict in state.conflicts]
    state.advance(DocumentState.DRAFTED)

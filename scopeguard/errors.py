"""Error taxonomy for the conflict-detection pipeline."""

from typing import Optional


class ScopeGuardError(Exception):
    """Base class for all pipeline errors."""

    pass


class ExtractionError(ScopeGuardError):
    """A document is malformed or has no pages to extract from."""

    pass


class AmbiguousBaselineError(ScopeGuardError):
    """Several equally recent baseline records match one element."""

    def __init__(self, element_id: str, record_ids: list[str], message: Optional[str] = None):
        self.element_id = element_id
        self.record_ids = record_ids
        super().__init__(
            message
            or f"Element {element_id} matches {len(record_ids)} baseline records "
            f"approved on the same date: {', '.join(record_ids)}"
        )


class BaselineStoreUnavailable(ScopeGuardError):
    """The Baseline Store could not be read. Transient; callers retry."""

    pass


class BaselineStoreCorrupt(ScopeGuardError):
    """The Baseline Store was read but its contents are invalid. Not retried."""

    pass


class PipelineCancelled(ScopeGuardError):
    """A document's run was cancelled at a stage boundary."""

    def __init__(self, document_id: str, stage: str):
        self.document_id = document_id
        self.stage = stage
        super().__init__(f"Pipeline for {document_id} cancelled before stage {stage}")


class PipelineStageError(ScopeGuardError):
    """A stage failed for one document. Always attributed to document and stage."""

    def __init__(self, document_id: str, stage: str, message: str):
        self.document_id = document_id
        self.stage = stage
        super().__init__(f"[{document_id}] stage {stage} failed: {message}")

"""Ingestion Manager - runs many documents concurrently.

Each document runs its stages strictly in order on one worker; different
documents run on separate workers up to a configured limit. Progress events
from all workers reach the caller's callback one at a time.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

import structlog

from scopeguard.baseline.store import BaselineStore
from scopeguard.config.settings import Settings, get_settings
from scopeguard.config.tables import ConfigTables, default_tables
from scopeguard.errors import PipelineCancelled, PipelineStageError
from scopeguard.models import Document, ProgressEvent, RecipientInfo
from scopeguard.pipeline.models import PipelineRunState
from scopeguard.pipeline.orchestrator import (
    CancellationToken,
    ProgressCallback,
    run_document_pipeline,
)

logger = structlog.get_logger(__name__)


@dataclass
class DocumentOutcome:
    """Result of one document's run: a state or an attributed error."""

    document_id: str
    state: Optional[PipelineRunState] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.state is not None

    @property
    def cancelled(self) -> bool:
        return isinstance(self.error, PipelineCancelled)


class IngestionManager:
    """Accepts documents and runs each through the pipeline.

    Every run gets a fresh cancellation token that is dropped when the run
    ends. Cancelling a document that is not running marks it pending; the
    next run of that document consumes the mark and stops at its first
    stage boundary.
    """

    def __init__(
        self,
        store: BaselineStore,
        project_id: str,
        tables: Optional[ConfigTables] = None,
        settings: Optional[Settings] = None,
        on_progress: Optional[ProgressCallback] = None,
        recipient: Optional[RecipientInfo] = None,
        today: Optional[date] = None,
    ):
        self.store = store
        self.project_id = project_id
        self.tables = tables or default_tables()
        self.settings = settings or get_settings()
        self.recipient = recipient
        self.today = today
        self._on_progress = on_progress
        self._progress_lock = threading.Lock()
        self._active: dict[str, list[CancellationToken]] = {}
        self._pending_cancels: set[str] = set()
        self._cancel_lock = threading.Lock()

    @property
    def active_documents(self) -> set[str]:
        with self._cancel_lock:
            return set(self._active)

    @property
    def pending_cancels(self) -> set[str]:
        with self._cancel_lock:
            return set(self._pending_cancels)

    def cancel(self, document_id: str) -> None:
        """Cancel a document; takes effect at its next stage boundary."""
        with self._cancel_lock:
            tokens = self._active.get(document_id)
            if tokens:
                for token in tokens:
                    token.cancel()
            else:
                self._pending_cancels.add(document_id)
        logger.info("cancel_requested", document_id=document_id, running=bool(tokens))

    def _start_run(self, document_id: str) -> CancellationToken:
        token = CancellationToken()
        with self._cancel_lock:
            if document_id in self._pending_cancels:
                self._pending_cancels.discard(document_id)
                token.cancel()
            self._active.setdefault(document_id, []).append(token)
        return token

    def _finish_run(self, document_id: str, token: CancellationToken) -> None:
        with self._cancel_lock:
            tokens = self._active.get(document_id, [])
            if token in tokens:
                tokens.remove(token)
            if not tokens:
                self._active.pop(document_id, None)

    def _deliver(self, event: ProgressEvent) -> None:
        if self._on_progress is None:
            return
        with self._progress_lock:
            self._on_progress(event)

    def run_document(self, document: Document) -> DocumentOutcome:
        """Run one document, capturing any error as the outcome."""
        document_id = document.document_id
        token = self._start_run(document_id)
        try:
            state = run_document_pipeline(
                document,
                self.store,
                self.project_id,
                tables=self.tables,
                settings=self.settings,
                on_progress=self._deliver,
                cancel_token=token,
                recipient=self.recipient,
                today=self.today,
            )
        except (PipelineStageError, PipelineCancelled) as e:
            return DocumentOutcome(document_id=document_id, error=e)
        except Exception as e:
            logger.exception("document_run_unexpected_error", document_id=document_id)
            return DocumentOutcome(document_id=document_id, error=e)
        finally:
            self._finish_run(document_id, token)
        return DocumentOutcome(document_id=document_id, state=state)

    def run_all(self, documents: Iterable[Document]) -> list[DocumentOutcome]:
        """Run documents concurrently.

        Returns:
            One outcome per document, in input order. A failure in one
            document never affects the others.
        """
        documents = list(documents)

        workers = max(1, min(self.settings.max_concurrent_documents, len(documents) or 1))
        logger.info("ingestion_batch_start", documents=len(documents), workers=workers)

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="document") as pool:
            futures = [pool.submit(self.run_document, document) for document in documents]
            outcomes = [future.result() for future in futures]

        logger.info(
            "ingestion_batch_complete",
            succeeded=sum(1 for o in outcomes if o.succeeded),
            failed=sum(1 for o in outcomes if not o.succeeded and not o.cancelled),
            cancelled=sum(1 for o in outcomes if o.cancelled),
        )
        return outcomes

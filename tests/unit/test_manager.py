"""Unit tests for concurrent document ingestion."""

from decimal import Decimal

from scopeguard.errors import PipelineCancelled, PipelineStageError
from scopeguard.models import DocumentState, StageName
from scopeguard.pipeline import IngestionManager


class TestIngestionManager:
    """Tests for IngestionManager."""

    def test_outcomes_in_input_order(self, page_factory, document_factory, store, tables, settings):
        documents = [
            document_factory(f"asi-{n:02d}", page_factory(1, "E-501", "Pit 2 (Service Car)", "208V", "3-Phase"))
            for n in range(1, 6)
        ]
        manager = IngestionManager(store, "riverside", tables, settings)

        outcomes = manager.run_all(documents)

        assert [o.document_id for o in outcomes] == [d.document_id for d in documents]
        assert all(o.succeeded for o in outcomes)
        assert all(o.state.conflicts[0].cost_impact == Decimal("2850.00") for o in outcomes)

    def test_failure_is_isolated(self, bulletin_document, document_factory, store, tables, settings):
        manager = IngestionManager(store, "riverside", tables, settings)

        outcomes = manager.run_all([document_factory("blank"), bulletin_document])

        failed, ok = outcomes
        assert not failed.succeeded
        assert isinstance(failed.error, PipelineStageError)
        assert failed.error.document_id == "blank"
        assert failed.error.stage == "EXTRACT"
        assert ok.succeeded
        assert ok.state.status == DocumentState.ESTIMATED

    def test_progress_per_document_in_stage_order(self, page_factory, document_factory, store, tables, settings):
        events = []
        documents = [
            document_factory(f"doc-{n}", page_factory(1, "E-501", "Pit 2 (Service Car)", "208V"))
            for n in range(4)
        ]
        manager = IngestionManager(store, "riverside", tables, settings, on_progress=events.append)

        manager.run_all(documents)

        assert len(events) == 24
        for document in documents:
            stages = [e.stage_name for e in events if e.document_id == document.document_id]
            assert stages == list(StageName)

    def test_cancel_before_run(self, bulletin_document, document_factory, page_factory, store, tables, settings):
        other = document_factory("asi-09", page_factory(1, "E-501", "Pit 2 (Service Car)", "208V"))
        manager = IngestionManager(store, "riverside", tables, settings)
        manager.cancel("asi-09")

        outcomes = manager.run_all([bulletin_document, other])

        assert outcomes[0].succeeded
        assert outcomes[1].cancelled
        assert isinstance(outcomes[1].error, PipelineCancelled)

    def test_pending_cancel_is_consumed_once(self, bulletin_document, store, tables, settings):
        manager = IngestionManager(store, "riverside", tables, settings)
        manager.cancel("asi-04")

        first = manager.run_document(bulletin_document)
        second = manager.run_document(bulletin_document)

        assert first.cancelled
        assert second.succeeded
        assert manager.pending_cancels == set()
        assert manager.active_documents == set()

    def test_cancel_while_running(self, bulletin_document, store, tables, settings):
        holder = {}

        def _on_progress(event):
            if event.stage_name == StageName.EXTRACT:
                holder["manager"].cancel(event.document_id)

        manager = IngestionManager(store, "riverside", tables, settings, on_progress=_on_progress)
        holder["manager"] = manager

        outcome = manager.run_document(bulletin_document)

        assert outcome.cancelled
        assert outcome.error.stage == "FILTER"
        assert manager.pending_cancels == set()
        assert manager.run_document(bulletin_document).succeeded

    def test_finished_runs_are_forgotten(self, page_factory, document_factory, store, tables, settings):
        documents = [
            document_factory(f"asi-{n:02d}", page_factory(1, "E-501", "Pit 2 (Service Car)", "208V"))
            for n in range(1, 4)
        ]
        manager = IngestionManager(store, "riverside", tables, settings)

        manager.run_all(documents)
        manager.run_all(documents)

        assert manager.active_documents == set()
        assert manager.pending_cancels == set()

    def test_callback_error_is_isolated(self, bulletin_document, page_factory, document_factory, store, tables, settings):
        bad = document_factory("bad", page_factory(1, "E-501", "Pit 2 (Service Car)", "208V"))

        def _on_progress(event):
            if event.document_id == "bad":
                raise RuntimeError("display closed")

        manager = IngestionManager(store, "riverside", tables, settings, on_progress=_on_progress)

        good_outcome, bad_outcome = manager.run_all([bulletin_document, bad])

        assert good_outcome.succeeded
        assert not bad_outcome.succeeded
        assert not bad_outcome.cancelled
        assert isinstance(bad_outcome.error, RuntimeError)
        assert manager.active_documents == set()

    def test_recipient_drafts_rfis(self, bulletin_document, store, tables, settings, recipient):
        manager = IngestionManager(store, "riverside", tables, settings, recipient=recipient)

        outcome = manager.run_all([bulletin_document])[0]

        assert outcome.state.status == DocumentState.DRAFTED
        assert len(outcome.state.rfi_drafts) == 1

    def test_empty_batch(self, store, tables, settings):
        assert IngestionManager(store, "riverside", tables, settings).run_all([]) == []

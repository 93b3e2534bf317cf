"""Unit tests for Baseline Store access and retry policy."""

import json
from datetime import date

import pytest

from scopeguard.baseline import (
    InMemoryBaselineStore,
    JsonBaselineStore,
    SnapshotReader,
    baseline_retrying,
    call_with_retry,
)
from scopeguard.errors import BaselineStoreCorrupt, BaselineStoreUnavailable


def _record_dict(record_id, approved_on="2024-08-15", project_id="riverside", category="ELECTRICAL_SCOPE"):
    return {
        "record_id": record_id,
        "project_id": project_id,
        "submittal_id": f"Submittal {record_id}",
        "approved_on": approved_on,
        "category": category,
        "location": "Pit 2",
        "attributes": {"voltage": "120V"},
    }


class TestSnapshotReader:
    """Tests for record lookup."""

    def test_filters_and_orders(self, baseline_record):
        older = baseline_record.model_copy(update={"record_id": "BR-9", "approved_on": date(2024, 1, 5)})
        other = baseline_record.model_copy(update={"record_id": "X", "project_id": "elsewhere"})
        reader = SnapshotReader([older, other, baseline_record])

        found = reader.lookup("riverside", "ELECTRICAL_SCOPE", "Pit 2")

        assert [r.record_id for r in found] == ["BR-14-1", "BR-9"]

    def test_no_match(self, baseline_record):
        reader = SnapshotReader([baseline_record])
        assert reader.lookup("riverside", "MECHANICAL_SCOPE", "Pit 2") == ()


class TestInMemoryBaselineStore:
    """Tests for the in-memory store."""

    def test_transaction_snapshot(self, store):
        with store.read_transaction() as reader:
            assert len(reader.lookup("riverside", "ELECTRICAL_SCOPE", "Pit 2")) == 1
        assert len(store) == 1

    def test_empty(self):
        with InMemoryBaselineStore().read_transaction() as reader:
            assert reader.lookup("riverside", "ELECTRICAL_SCOPE", "Pit 2") == ()


class TestJsonBaselineStore:
    """Tests for the JSON file store."""

    def test_list_format(self, tmp_path):
        path = tmp_path / "baseline.json"
        path.write_text(json.dumps([_record_dict("R1"), _record_dict("R2", project_id="x")]))

        with JsonBaselineStore(path).read_transaction() as reader:
            records = reader.lookup("riverside", "ELECTRICAL_SCOPE", "Pit 2")

        assert [r.record_id for r in records] == ["R1"]
        assert records[0].approved_on == date(2024, 8, 15)

    def test_records_key_format(self, tmp_path):
        path = tmp_path / "baseline.json"
        path.write_text(json.dumps({"records": [_record_dict("R1")]}))

        with JsonBaselineStore(path).read_transaction() as reader:
            assert len(reader.lookup("riverside", "ELECTRICAL_SCOPE", "Pit 2")) == 1

    def test_missing_file_is_unavailable(self, tmp_path):
        store = JsonBaselineStore(tmp_path / "missing.json")
        with pytest.raises(BaselineStoreUnavailable):
            with store.read_transaction():
                pass

    def test_malformed_records_are_corrupt(self, tmp_path):
        path = tmp_path / "baseline.json"
        path.write_text(json.dumps([{"record_id": "R1"}]))
        with pytest.raises(BaselineStoreCorrupt):
            with JsonBaselineStore(path).read_transaction():
                pass

    def test_invalid_json_is_corrupt(self, tmp_path):
        path = tmp_path / "baseline.json"
        path.write_text('[{"record_id": "R1",')
        with pytest.raises(BaselineStoreCorrupt):
            with JsonBaselineStore(path).read_transaction():
                pass


class TestRetry:
    """Tests for bounded exponential backoff."""

    def test_recovers_after_transient_failures(self, baseline_record, settings, flaky_store):
        flaky = flaky_store([baseline_record], failures=2)

        def _read():
            with flaky.read_transaction() as reader:
                return reader.lookup("riverside", "ELECTRICAL_SCOPE", "Pit 2")

        assert len(call_with_retry(_read, settings)) == 1
        assert flaky.attempts == 3

    def test_gives_up_after_max_attempts(self, baseline_record, settings, flaky_store):
        flaky = flaky_store([baseline_record], failures=10)

        def _read():
            with flaky.read_transaction() as reader:
                return reader.lookup("riverside", "ELECTRICAL_SCOPE", "Pit 2")

        with pytest.raises(BaselineStoreUnavailable):
            call_with_retry(_read, settings)
        assert flaky.attempts == settings.baseline_max_attempts

    def test_corrupt_store_not_retried(self, baseline_record, settings, flaky_store):
        flaky = flaky_store([baseline_record], failures=10, error=BaselineStoreCorrupt)

        def _read():
            with flaky.read_transaction() as reader:
                return reader.lookup("riverside", "ELECTRICAL_SCOPE", "Pit 2")

        with pytest.raises(BaselineStoreCorrupt):
            call_with_retry(_read, settings)
        assert flaky.attempts == 1

    def test_other_errors_not_retried(self, settings):
        calls = []

        def _boom():
            calls.append(1)
            raise KeyError("bad")

        with pytest.raises(KeyError):
            baseline_retrying(settings)(_boom)
        assert len(calls) == 1

"""Read-only access to approved submittal baselines.

The Baseline Store is an external collaborator. The pipeline only ever
reads from it, and each document run reads through its own transaction so
concurrent runs never observe each other.
"""

import json
from contextlib import contextmanager
from pathlib import Path
from typing import ContextManager, Iterable, Iterator, Protocol, Sequence

import structlog
from pydantic import TypeAdapter, ValidationError

from scopeguard.errors import BaselineStoreCorrupt, BaselineStoreUnavailable
from scopeguard.models import BaselineRecord

logger = structlog.get_logger(__name__)

_RECORDS_ADAPTER = TypeAdapter(list[BaselineRecord])


class BaselineReader(Protocol):
    """A read view of the store, valid for the lifetime of one transaction."""

    def lookup(self, project_id: str, category: str, location: str) -> Sequence[BaselineRecord]:
        ...


class BaselineStore(Protocol):
    """Source of read transactions."""

    def read_transaction(self) -> ContextManager[BaselineReader]:
        ...


class SnapshotReader:
    """Reader over a frozen tuple of records.

    ``lookup`` returns every record of the project and category, most recent
    approval first. Deciding which location actually matches is the
    cross-referencer's job, so the location argument is only used for logging.
    """

    def __init__(self, records: Iterable[BaselineRecord]):
        self._records = tuple(records)

    def lookup(self, project_id: str, category: str, location: str) -> Sequence[BaselineRecord]:
        matches = [
            record
            for record in self._records
            if record.project_id == project_id and record.category == category
        ]
        matches.sort(key=lambda r: (-r.approved_on.toordinal(), r.record_id))
        logger.debug(
            "baseline_lookup",
            project_id=project_id,
            category=category,
            location=location,
            candidates=len(matches),
        )
        return tuple(matches)


class InMemoryBaselineStore:
    """Baseline Store backed by a list held in memory."""

    def __init__(self, records: Iterable[BaselineRecord] = ()):
        self._records = tuple(records)

    @contextmanager
    def read_transaction(self) -> Iterator[SnapshotReader]:
        yield SnapshotReader(self._records)

    def __len__(self) -> int:
        return len(self._records)


class JsonBaselineStore:
    """Baseline Store backed by a JSON file.

    The file holds either a list of records or ``{"records": [...]}``. It is
    re-read at the start of every transaction, so each transaction sees one
    consistent snapshot. An unreadable file is BaselineStoreUnavailable and
    may be retried; a file that is not valid records is BaselineStoreCorrupt.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    @contextmanager
    def read_transaction(self) -> Iterator[SnapshotReader]:
        yield SnapshotReader(self._load())

    def _load(self) -> list[BaselineRecord]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("baseline_store_read_failed", path=str(self.path), error=str(e))
            raise BaselineStoreUnavailable(f"Cannot read baseline store {self.path}: {e}") from e

        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error("baseline_store_corrupt", path=str(self.path), error=str(e))
            raise BaselineStoreCorrupt(f"Baseline store {self.path} is not valid JSON: {e}") from e

        if isinstance(raw, dict):
            raw = raw.get("records", [])

        try:
            records = _RECORDS_ADAPTER.validate_python(raw)
        except ValidationError as e:
            logger.error("baseline_store_corrupt", path=str(self.path), error_count=e.error_count())
            raise BaselineStoreCorrupt(f"Baseline store {self.path} is malformed: {e}") from e

        logger.debug("baseline_snapshot_loaded", path=str(self.path), records=len(records))
        return records

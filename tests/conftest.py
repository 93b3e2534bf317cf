"""Pytest configuration and fixtures."""

from contextlib import contextmanager
from datetime import date

import pytest

from scopeguard.baseline import InMemoryBaselineStore, SnapshotReader
from scopeguard.config import Settings, default_tables
from scopeguard.errors import BaselineStoreUnavailable
from scopeguard.models import (
    BaselineRecord,
    Contact,
    Discipline,
    Document,
    Page,
    RecipientInfo,
    TextToken,
)


def make_page(page_number: int, sheet_code: str, *texts: str, discipline=Discipline.ELECTRICAL) -> Page:
    """Build a page whose tokens are laid out top to bottom."""
    return Page(
        page_number=page_number,
        sheet_code=sheet_code,
        discipline=discipline,
        tokens=[TextToken(text=t, x0=72.0, top=100.0 + 14.0 * i) for i, t in enumerate(texts)],
    )


def make_document(document_id: str, *pages: Page) -> Document:
    return Document(
        document_id=document_id,
        source_filename=f"{document_id}.pdf",
        byte_size=15 * 1024 * 1024,
        pages=list(pages),
    )


@pytest.fixture
def tables():
    """Shipped default configuration tables."""
    return default_tables()


@pytest.fixture
def settings() -> Settings:
    """Settings with near-zero retry waits so tests stay fast."""
    return Settings(
        extraction_max_workers=4,
        baseline_max_attempts=3,
        baseline_retry_min_seconds=0.001,
        baseline_retry_max_seconds=0.002,
        max_concurrent_documents=2,
    )


@pytest.fixture
def bulletin_page() -> Page:
    """Sheet E-501 revising the service car pit sump pump feeder."""
    return make_page(
        1,
        "E-501",
        "ELECTRICAL PLAN - LEVEL B1",
        "Pit 2 (Service Car)",
        "Note 4",
        "208V",
        "3-Phase",
    )


@pytest.fixture
def bulletin_document(bulletin_page) -> Document:
    """ASI #04 bulletin with one revised sheet."""
    return make_document("asi-04", bulletin_page)


@pytest.fixture
def baseline_record() -> BaselineRecord:
    """Approved sump pump motor specification."""
    return BaselineRecord(
        record_id="BR-14-1",
        project_id="riverside",
        submittal_id="Submittal #14",
        approved_on=date(2024, 8, 15),
        category="ELECTRICAL_SCOPE",
        location="Pit 2 (Service Car)",
        attributes={"voltage": "120V", "phase": "1-Phase", "frequency": "60Hz"},
        description="Sump Pump Motor Specification",
    )


@pytest.fixture
def store(baseline_record) -> InMemoryBaselineStore:
    return InMemoryBaselineStore([baseline_record])


@pytest.fixture
def recipient() -> RecipientInfo:
    return RecipientInfo(
        project_name="Riverside Tower",
        bulletin_id="ASI #04",
        gc_contact=Contact(name="Mike Torres", email="mike.torres@gc.example"),
        cc=[Contact(name="Sarah Chen", email="schen@arch.example")],
    )


@pytest.fixture
def page_factory():
    """Builder for pages from plain token strings."""
    return make_page


@pytest.fixture
def document_factory():
    """Builder for documents from pages."""
    return make_document


class FlakyStore:
    """Store that fails a fixed number of transactions before succeeding."""

    def __init__(self, records, failures: int, error=BaselineStoreUnavailable):
        self.records = records
        self.failures = failures
        self.error = error
        self.attempts = 0

    @contextmanager
    def read_transaction(self):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise self.error("baseline read failed")
        yield SnapshotReader(self.records)


@pytest.fixture
def flaky_store():
    """Builder for stores with transient read failures."""
    return FlakyStore

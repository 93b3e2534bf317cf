"""Load documents handed off by the OCR collaborator as JSON."""

import uuid
from pathlib import Path

import structlog
from pydantic import ValidationError

from scopeguard.errors import ExtractionError
from scopeguard.models import Discipline, Document

logger = structlog.get_logger(__name__)

_DISCIPLINE_PREFIXES = {
    "A": Discipline.ARCHITECTURAL,
    "E": Discipline.ELECTRICAL,
    "M": Discipline.MECHANICAL,
}


def generate_document_id() -> str:
    return uuid.uuid4().hex[:12]


def discipline_for_sheet(sheet_code: str) -> Discipline:
    """Infer the drawing discipline from a sheet designation's prefix letter."""
    prefix = sheet_code.strip()[:1].upper()
    return _DISCIPLINE_PREFIXES.get(prefix, Discipline.UNKNOWN)


def load_document_json(path: str | Path) -> Document:
    """Read a serialized Document.

    Raises:
        ExtractionError: If the file is missing or is not a valid Document.
    """
    path = Path(path)
    if not path.exists():
        raise ExtractionError(f"Document file not found: {path}")

    try:
        document = Document.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        raise ExtractionError(f"Invalid document file {path}: {e}") from e

    logger.info(
        "document_loaded",
        path=str(path),
        document_id=document.document_id,
        pages=document.total_pages,
        tokens=document.total_tokens,
    )
    return document

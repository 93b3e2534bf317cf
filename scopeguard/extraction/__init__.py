"""Document ingestion adapters."""

from .loaders import discipline_for_sheet, generate_document_id, load_document_json
from .pdf_loader import load_document_pdf

__all__ = [
    "load_document_json",
    "load_document_pdf",
    "discipline_for_sheet",
    "generate_document_id",
]

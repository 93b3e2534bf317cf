"""PDF text adapter using pdfplumber.

Each text line on a page becomes one positioned token. This reads embedded
text only; scanned sheets need the OCR collaborator.
"""

import re
from pathlib import Path
from typing import Optional

import pdfplumber
import structlog

from scopeguard.errors import ExtractionError
from scopeguard.extraction.loaders import discipline_for_sheet, generate_document_id
from scopeguard.models import Document, Page, TextToken

logger = structlog.get_logger(__name__)

SHEET_CODE_PATTERN = re.compile(r"\b([AEM]-\d{3}[A-Z]?)\b")


def load_document_pdf(pdf_path: str | Path, document_id: Optional[str] = None) -> Document:
    """Extract positioned text lines from a PDF.

    Args:
        pdf_path: Path to the PDF file.
        document_id: Identifier to assign; generated when omitted.

    Returns:
        Document with one Page per PDF page.

    Raises:
        ExtractionError: If the file is missing, not a PDF, or unreadable.
    """
    pdf_path = Path(pdf_path)

    if not pdf_path.exists():
        raise ExtractionError(f"PDF file not found: {pdf_path}")

    if not pdf_path.suffix.lower() == ".pdf":
        raise ExtractionError(f"File is not a PDF: {pdf_path}")

    logger.info("extracting_pdf", path=str(pdf_path))

    pages: list[Page] = []

    try:
        with pdfplumber.open(pdf_path) as pdf:
            logger.info("pdf_opened", total_pages=len(pdf.pages))

            for page_num, pdf_page in enumerate(pdf.pages, start=1):
                tokens = [
                    TextToken(text=line["text"].strip(), x0=line["x0"], top=line["top"])
                    for line in pdf_page.extract_text_lines()
                    if line["text"].strip()
                ]
                sheet_code = _infer_sheet_code(tokens, page_num)
                pages.append(
                    Page(
                        page_number=page_num,
                        sheet_code=sheet_code,
                        discipline=discipline_for_sheet(sheet_code),
                        tokens=tokens,
                    )
                )
                logger.debug("page_extracted", page=page_num, sheet=sheet_code, lines=len(tokens))

    except Exception as e:
        logger.error("pdf_extraction_failed", error=str(e))
        raise ExtractionError(f"Failed to extract PDF: {e}") from e

    document = Document(
        document_id=document_id or generate_document_id(),
        source_filename=pdf_path.name,
        byte_size=pdf_path.stat().st_size,
        pages=pages,
    )

    logger.info(
        "pdf_extraction_complete",
        pages=document.total_pages,
        tokens=document.total_tokens,
    )
    return document


def _infer_sheet_code(tokens: list[TextToken], page_number: int) -> str:
    """First sheet designation on the page, or a positional fallback."""
    for token in tokens:
        match = SHEET_CODE_PATTERN.search(token.text)
        if match:
            return match.group(1)
    return f"P-{page_number}"

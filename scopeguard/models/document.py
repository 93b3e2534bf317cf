"""Models for ingested revision documents."""

from pydantic import BaseModel, ConfigDict, Field

from .enums import Discipline


class TextToken(BaseModel):
    """A positioned run of text produced by the OCR/text collaborator."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Token text as read from the sheet")
    x0: float = Field(default=0.0, description="Left edge in page coordinates")
    top: float = Field(default=0.0, description="Top edge in page coordinates")


class Page(BaseModel):
    """One sheet within a Document."""

    model_config = ConfigDict(frozen=True)

    page_number: int = Field(..., ge=1, description="1-indexed position in the document")
    sheet_code: str = Field(..., description="Sheet designation, e.g. 'E-501'")
    discipline: Discipline = Field(
        default=Discipline.UNKNOWN, description="Drawing discipline of the sheet"
    )
    tokens: list[TextToken] = Field(
        default_factory=list, description="Text tokens in reading order"
    )


class Document(BaseModel):
    """An ingested revision artifact (bulletin, ASI, addendum)."""

    model_config = ConfigDict(frozen=True)

    document_id: str = Field(..., description="Unique identifier for this document")
    source_filename: str = Field(..., description="Original file name")
    byte_size: int = Field(default=0, ge=0, description="Size of the source file in bytes")
    pages: list[Page] = Field(default_factory=list, description="Sheets in document order")

    @property
    def total_pages(self) -> int:
        return len(self.pages)

    @property
    def total_tokens(self) -> int:
        return sum(len(page.tokens) for page in self.pages)

"""Conflict records and the RFI drafts rendered from them."""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import Severity
from .specification import format_attributes


class CostLineItem(BaseModel):
    """One priced line in a conflict's cost estimate."""

    model_config = ConfigDict(frozen=True)

    description: str
    amount: Decimal = Field(..., ge=0)


class Conflict(BaseModel):
    """A disagreement between an approved submittal and a bulletin revision.

    This is the payload the display layer renders; field names are part of
    the contract.
    """

    model_config = ConfigDict(frozen=True)

    conflict_id: str = Field(..., description="Identifier, e.g. 'C-001'")
    document_id: str = Field(..., description="Bulletin the conflict was found in")
    severity: Severity
    category: str
    location: str
    old_spec: dict[str, str] = Field(..., description="Approved baseline attributes")
    new_spec: dict[str, str] = Field(..., description="Bulletin attributes")
    differing_attributes: list[str] = Field(..., min_length=1)
    sheet_ref: str = Field(..., description="Bulletin sheet reference, e.g. 'E-501, Note 4'")
    submittal_id: str
    approved_on: date
    baseline_description: Optional[str] = None
    cost_impact: Decimal = Field(default=Decimal("0.00"), ge=0)
    cost_line_items: list[CostLineItem] = Field(default_factory=list)
    reasoning: str = ""

    @property
    def old_spec_text(self) -> str:
        return format_attributes(self.old_spec)

    @property
    def new_spec_text(self) -> str:
        return format_attributes(self.new_spec)


class Contact(BaseModel):
    """A named email recipient."""

    name: str
    email: Optional[str] = None

    def __str__(self) -> str:
        if self.email:
            return f"{self.name} <{self.email}>"
        return self.name


class RecipientInfo(BaseModel):
    """Caller-supplied addressing and project context for an RFI."""

    project_name: str
    bulletin_id: str = Field(..., description="Bulletin identifier, e.g. 'ASI #04'")
    gc_contact: Contact
    cc: list[Contact] = Field(default_factory=list)
    sender_name: str = "[Your Name]"
    sender_title: str = "Elevator Project Manager"


class RFIDraft(BaseModel):
    """A rendered Request For Information, ready for copy/send."""

    model_config = ConfigDict(frozen=True)

    conflict_id: str
    subject: str
    to: str
    cc: list[str] = Field(default_factory=list)
    body: str
    response_due: date

    def as_text(self) -> str:
        """Full clipboard text: header lines followed by the body."""
        return (
            f"Subject: {self.subject}\n"
            f"To: {self.to}\n"
            f"CC: {', '.join(self.cc)}\n\n"
            f"{self.body}"
        )

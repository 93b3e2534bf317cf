"""Specification facts: extracted elements, baseline records and their alignment."""

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import Discipline


def format_attributes(attributes: dict[str, str]) -> str:
    """Render an attribute mapping the way sheets write it: '208V / 3-Phase'."""
    return " / ".join(attributes.values())


class SpecificationElement(BaseModel):
    """A normalized engineering fact extracted from one Page."""

    model_config = ConfigDict(frozen=True)

    element_id: str = Field(..., description="Deterministic id, e.g. 'E-501-p1-e001'")
    category: str = Field(..., description="Specification category, e.g. 'ELECTRICAL_SCOPE'")
    location: str = Field(..., description="Location label taken from the nearest marker")
    attributes: dict[str, str] = Field(
        default_factory=dict, description="Attribute name to normalized value"
    )
    sheet_code: str = Field(..., description="Sheet the fact was read from")
    page_number: int = Field(..., ge=1, description="Page the fact was read from")
    note_ref: Optional[str] = Field(None, description="Nearest preceding note marker, e.g. 'Note 4'")
    discipline: Discipline = Field(default=Discipline.UNKNOWN)
    confidence: float = Field(
        default=1.0, ge=0.0, le=1.0, description="Extraction confidence"
    )

    @property
    def sheet_ref(self) -> str:
        if self.note_ref:
            return f"{self.sheet_code}, {self.note_ref}"
        return self.sheet_code


class BaselineRecord(BaseModel):
    """An approved specification from a prior submittal."""

    model_config = ConfigDict(frozen=True)

    record_id: str = Field(..., description="Unique identifier within the store")
    project_id: str = Field(..., description="Project the submittal belongs to")
    submittal_id: str = Field(..., description="Submittal identifier, e.g. 'Submittal #14'")
    approved_on: date = Field(..., description="Approval date of the submittal")
    category: str
    location: str
    attributes: dict[str, str] = Field(default_factory=dict)
    description: Optional[str] = Field(
        None, description="Equipment description, e.g. 'Sump Pump Motor Specification'"
    )


class AlignedPair(BaseModel):
    """A baseline record matched to a newly extracted element."""

    model_config = ConfigDict(frozen=True)

    baseline: BaselineRecord
    element: SpecificationElement
    match_confidence: float = Field(..., ge=0.0, le=1.0)
    matching_key: tuple[str, str] = Field(
        ..., description="(category, normalized location) used for the match"
    )

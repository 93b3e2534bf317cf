"""Progress notifications for the display layer."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .enums import StageName


class ProgressEvent(BaseModel):
    """Emitted after a pipeline stage completes for one document."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    stage_name: StageName
    stage_index: int = Field(..., ge=1, description="1-based position of the stage")
    total_stages: int = Field(..., ge=1)
    timestamp: datetime

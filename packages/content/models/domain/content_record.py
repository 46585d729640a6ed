from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class ContentRecord(BaseModel):
    """
    The byte-countable view of a knowledge item.

    Missing text reads as empty, so a half-processed item still meters.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    title: str = ""
    content: str = ""
    transcription_text: str = ""
    analysis_summary: str = ""
    analysis_key_points: list[str] = []
    duration_seconds: Optional[float] = None
    created_at: Optional[datetime] = None

    @field_validator(
        "title", "content", "transcription_text", "analysis_summary", mode="before"
    )
    @classmethod
    def _none_as_empty_text(cls, value):
        return "" if value is None else value

    @field_validator("analysis_key_points", mode="before")
    @classmethod
    def _none_as_empty_list(cls, value):
        if value is None:
            return []
        if not isinstance(value, (list, tuple)):
            raise ValueError("analysis_key_points must be a list")
        return [str(point) for point in value]


class ContentRecordCreateModel(BaseModel):
    tenant_id: int
    title: Optional[str] = None
    content: Optional[str] = None
    transcription_text: Optional[str] = None
    analysis_summary: Optional[str] = None
    analysis_key_points: Optional[list[str]] = None
    duration_seconds: Optional[float] = None
    created_at: Optional[datetime] = None

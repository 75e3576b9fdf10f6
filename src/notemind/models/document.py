"""
Document models.
Represents the notes and video transcripts the engine searches over.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from notemind.core.utils.datetime_utils import ensure_utc
from notemind.models.base import FrozenModel


class SourceType(str, Enum):
    """Supported document kinds."""

    NOTE = "note"  # Typed or pasted text
    VIDEO = "video"  # Transcript of a video


class Document(FrozenModel):
    """
    A note or transcript in the caller's knowledge base.

    Read-only snapshot; the engine never mutates documents.
    """

    id: str = Field(..., min_length=1, description="Stable document id")
    title: str = Field("", description="Document title")
    content: Optional[str] = Field(None, description="Full text, may be missing")
    source_type: SourceType = Field(SourceType.NOTE, description="note or video")
    created_at: datetime = Field(..., description="UTC creation timestamp")

    # Video metadata
    channel_name: Optional[str] = Field(None, description="Publishing channel (videos)")
    video_id: Optional[str] = Field(None, description="Platform video id")
    source_url: Optional[str] = Field(None, description="Where the content came from")

    @field_validator("created_at")
    @classmethod
    def _to_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def is_transcription(self) -> bool:
        return self.source_type == SourceType.VIDEO

    @property
    def text(self) -> str:
        """Content or empty string."""
        return self.content or ""

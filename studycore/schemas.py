"""
Pydantic models for data entering the engine from outside.

Card content arrives from the content-generation pipeline; checkpoints arrive
from the study UI when a learner leaves mid-session.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class CardContent(BaseModel):
    """Front/back text of a generated flashcard."""
    front: str = Field(..., min_length=1, description="Question side")
    back: str = Field(..., min_length=1, description="Answer side")
    subject: Optional[str] = Field(None, description="Subject tag within the exam track")

    @field_validator("front", "back")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class SessionCheckpoint(BaseModel):
    """Progress reported by the client when saving a session for later."""
    current_index: int = Field(..., ge=0)
    completed_ids: list[str] = Field(default_factory=list)

from pydantic import BaseModel, Field, field_validator

from discussion_engine.types import DiscussionType


class DiscussionSetupRequest(BaseModel):
    """Request model for creating a new discussion."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    type: DiscussionType = DiscussionType.PROS_CONS
    category: str = Field(..., min_length=1, max_length=50)
    allow_observers: bool = True
    max_participants: int | None = Field(default=None, ge=2, le=10)
    time_limit: int | None = Field(default=None, description="Minutes, free and one-on-one only")
    phase_time_limit: int | None = Field(default=None, description="Minutes per phase, pros-cons only")

    @field_validator("title", "description", "category")
    @classmethod
    def strip_text(cls, v: str) -> str:
        """Reject fields that are only whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

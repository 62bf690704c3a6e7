from pydantic import BaseModel, Field

from discussion_engine.types import DebatePhase, ParticipantRole, VoteChoice


class JoinRequest(BaseModel):
    """Request model for joining a discussion on a side."""

    role: ParticipantRole


class AdvancePhaseRequest(BaseModel):
    """Request model for the creator's manual phase advance."""

    expected_phase: DebatePhase | None = Field(
        default=None, description="Phase the creator is advancing from"
    )


class SendMessageRequest(BaseModel):
    """Request model for posting a message."""

    content: str = Field(..., min_length=1)
    reply_to: int | None = None


class VoteRequest(BaseModel):
    """Request model for an observer's final vote."""

    vote: VoteChoice
    reasoning: str | None = Field(default=None, max_length=1000)

"""Data models for the discussion engine."""

from collections import Counter
from datetime import datetime

from pydantic import BaseModel, Field

from .types import (
    DebatePhase,
    DiscussionMode,
    DiscussionStatus,
    DiscussionType,
    MessageType,
    ParticipantRole,
    VoteChoice,
)


class UserIdentity(BaseModel):
    """Opaque identity issued by the identity provider."""

    id: str
    display_name: str


class Participant(BaseModel):
    """A debater on the roster of a discussion."""

    user_id: str
    username: str
    role: ParticipantRole
    joined_at: datetime
    is_team_leader: bool = False  # first joiner of a side


class Message(BaseModel):
    """A single chat/argument entry in a discussion."""

    id: int | None = None
    discussion_id: str
    user_id: str
    username: str
    content: str
    timestamp: datetime
    role: ParticipantRole
    phase: DebatePhase | None = None  # None for legacy, untagged messages
    message_type: MessageType
    reply_to: int | None = None
    likes: int = 0
    liked_by: list[str] = Field(default_factory=list)


class FinalVote(BaseModel):
    """An observer's final verdict."""

    user_id: str
    vote: VoteChoice
    timestamp: datetime
    reasoning: str | None = None


class Discussion(BaseModel):
    """Durable state of one discussion."""

    id: str
    title: str
    description: str
    type: DiscussionType
    status: DiscussionStatus = DiscussionStatus.WAITING
    current_phase: DebatePhase | None = None
    category: str
    created_by: str
    created_at: datetime
    started_at: datetime | None = None
    ended_at: datetime | None = None
    allow_observers: bool = True
    max_participants: int | None = None
    time_limit: int | None = None  # minutes, legacy mode
    phase_time_limit: int | None = None  # minutes, structured mode
    phase_start_time: datetime | None = None
    participants: list[Participant] = Field(default_factory=list)
    observers: list[str] = Field(default_factory=list)
    final_votes: dict[str, FinalVote] = Field(default_factory=dict)
    winner: VoteChoice | None = None

    @property
    def mode(self) -> DiscussionMode:
        """Structured when the record carries phase state, legacy otherwise."""
        if self.current_phase is not None:
            return DiscussionMode.STRUCTURED
        if self.type == DiscussionType.PROS_CONS and self.phase_time_limit is not None:
            return DiscussionMode.STRUCTURED
        return DiscussionMode.LEGACY

    @property
    def is_structured(self) -> bool:
        return self.mode == DiscussionMode.STRUCTURED

    def get_participant(self, user_id: str) -> Participant | None:
        for participant in self.participants:
            if participant.user_id == user_id:
                return participant
        return None

    def is_observer(self, user_id: str) -> bool:
        return user_id in self.observers

    def is_member(self, user_id: str) -> bool:
        """True if the user is already on the roster or watching."""
        return self.get_participant(user_id) is not None or self.is_observer(user_id)

    def side_count(self, role: ParticipantRole) -> int:
        return sum(1 for p in self.participants if p.role == role)

    def vote_tally(self) -> dict[str, int]:
        """Count votes per choice; every choice is present."""
        counts = Counter(v.vote for v in self.final_votes.values())
        return {choice.value: counts.get(choice, 0) for choice in VoteChoice}

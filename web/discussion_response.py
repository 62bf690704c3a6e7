from datetime import datetime

from pydantic import BaseModel

from discussion_engine.models import Discussion, FinalVote, Participant
from discussion_engine.phases import is_timed, phase_label, remaining_seconds


class DiscussionResponse(BaseModel):
    """Response model for discussion information."""

    id: str
    title: str
    description: str
    type: str
    mode: str
    status: str
    category: str
    created_by: str
    created_at: datetime
    started_at: datetime | None = None
    ended_at: datetime | None = None
    allow_observers: bool
    max_participants: int | None = None
    time_limit: int | None = None
    # Structured debates only
    current_phase: str | None = None
    current_phase_name: str | None = None
    phase_time_limit: int | None = None
    phase_start_time: datetime | None = None
    phase_remaining_seconds: float | None = None
    participants: list[Participant]
    observers: list[str]
    final_votes: list[FinalVote]
    vote_tally: dict[str, int]
    winner: str | None = None

    @classmethod
    def from_discussion(cls, discussion: Discussion, now: datetime) -> "DiscussionResponse":
        phase = discussion.current_phase
        return cls(
            id=discussion.id,
            title=discussion.title,
            description=discussion.description,
            type=discussion.type.value,
            mode=discussion.mode.value,
            status=discussion.status.value,
            category=discussion.category,
            created_by=discussion.created_by,
            created_at=discussion.created_at,
            started_at=discussion.started_at,
            ended_at=discussion.ended_at,
            allow_observers=discussion.allow_observers,
            max_participants=discussion.max_participants,
            time_limit=discussion.time_limit,
            current_phase=phase.value if phase else None,
            current_phase_name=phase_label(phase) if phase else None,
            phase_time_limit=discussion.phase_time_limit,
            phase_start_time=discussion.phase_start_time,
            phase_remaining_seconds=(
                remaining_seconds(discussion.phase_start_time, discussion.phase_time_limit, now)
                if phase and is_timed(phase)
                else None
            ),
            participants=discussion.participants,
            observers=discussion.observers,
            final_votes=list(discussion.final_votes.values()),
            vote_tally=discussion.vote_tally(),
            winner=discussion.winner.value if discussion.winner else None,
        )

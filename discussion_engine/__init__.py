"""Discussion state, phase state machine and commands."""

from .types import (
    DebatePhase,
    DiscussionMode,
    DiscussionStatus,
    DiscussionType,
    MessageType,
    ParticipantRole,
    VoteChoice,
)
from .models import Discussion, FinalVote, Message, Participant, UserIdentity
from .exceptions import (
    DiscussionError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    StaleStateError,
    StoreUnavailableError,
)

__all__ = [
    "DebatePhase",
    "DiscussionMode",
    "DiscussionStatus",
    "DiscussionType",
    "MessageType",
    "ParticipantRole",
    "VoteChoice",
    "Discussion",
    "FinalVote",
    "Message",
    "Participant",
    "UserIdentity",
    "DiscussionError",
    "InvalidStateError",
    "NotFoundError",
    "PermissionDeniedError",
    "StaleStateError",
    "StoreUnavailableError",
]

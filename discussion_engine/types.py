"""Shared types and enums for the discussion engine."""

from enum import Enum
from typing import Any, TypedDict


class DiscussionType(Enum):
    """Kinds of discussion a user can create."""

    PROS_CONS = "pros-cons"
    FREE = "free"
    ONE_ON_ONE = "one-on-one"


class DiscussionStatus(Enum):
    """Lifecycle status of a discussion."""

    WAITING = "waiting"
    ACTIVE = "active"
    ENDED = "ended"


class DiscussionMode(Enum):
    """Which timer mechanism drives a discussion."""

    STRUCTURED = "structured"  # phase state machine, phase_time_limit
    LEGACY = "legacy"  # single overall time_limit


class DebatePhase(Enum):
    """Phases of a structured pros-cons debate, in order."""

    WAITING = "waiting"
    OPENING_PROS = "opening_pros"
    OPENING_CONS = "opening_cons"
    STRATEGY_PROS = "strategy_pros"
    STRATEGY_CONS = "strategy_cons"
    REBUTTAL_PROS = "rebuttal_pros"
    REBUTTAL_CONS = "rebuttal_cons"
    CLOSING_PROS = "closing_pros"
    CLOSING_CONS = "closing_cons"
    VOTING = "voting"
    ENDED = "ended"


class ParticipantRole(Enum):
    """Side a participant debates on."""

    PROS = "pros"
    CONS = "cons"
    PARTICIPANT = "participant"


class MessageType(Enum):
    """Kind of message, derived from the phase it was written in."""

    OPENING = "opening"
    STRATEGY = "strategy"
    REBUTTAL = "rebuttal"
    CLOSING = "closing"
    COMMENT = "comment"
    ARGUMENT = "argument"


class VoteChoice(Enum):
    """Final vote options, also used for the winner."""

    PROS = "pros"
    CONS = "cons"
    DRAW = "draw"


class DiscussionUpdatedEventData(TypedDict):
    """Payload pushed to subscribers after every discussion change."""

    type: str
    discussion: dict[str, Any]


class NewMessageEventData(TypedDict):
    """Payload pushed to subscribers when a message is appended."""

    type: str
    discussion_id: str
    message: dict[str, Any]

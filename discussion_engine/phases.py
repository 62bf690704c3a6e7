"""Phase state machine for structured pros-cons debates.

Phases follow one fixed order with no branches, cycles or skips::

    waiting -> opening_pros -> opening_cons -> strategy_pros -> strategy_cons
    -> rebuttal_pros -> rebuttal_cons -> closing_pros -> closing_cons
    -> voting -> ended

Every phase except ``waiting`` and ``ended`` lasts ``phase_time_limit``
minutes from ``phase_start_time``. When that elapses the discussion advances
exactly one step, the same mutation the creator's manual advance performs.
"""

from datetime import datetime, timedelta
from typing import Iterable

from .models import Message, Participant
from .types import DebatePhase, MessageType, ParticipantRole

PHASE_ORDER: tuple[DebatePhase, ...] = (
    DebatePhase.WAITING,
    DebatePhase.OPENING_PROS,
    DebatePhase.OPENING_CONS,
    DebatePhase.STRATEGY_PROS,
    DebatePhase.STRATEGY_CONS,
    DebatePhase.REBUTTAL_PROS,
    DebatePhase.REBUTTAL_CONS,
    DebatePhase.CLOSING_PROS,
    DebatePhase.CLOSING_CONS,
    DebatePhase.VOTING,
    DebatePhase.ENDED,
)

INITIAL_PHASE = DebatePhase.WAITING
FIRST_DEBATE_PHASE = DebatePhase.OPENING_PROS
TERMINAL_PHASE = DebatePhase.ENDED

# Who may post in each phase: (side, team leaders only)
_AUTHOR_RULES: dict[DebatePhase, tuple[ParticipantRole, bool]] = {
    DebatePhase.OPENING_PROS: (ParticipantRole.PROS, True),
    DebatePhase.OPENING_CONS: (ParticipantRole.CONS, True),
    DebatePhase.STRATEGY_PROS: (ParticipantRole.PROS, False),
    DebatePhase.STRATEGY_CONS: (ParticipantRole.CONS, False),
    DebatePhase.REBUTTAL_PROS: (ParticipantRole.PROS, False),
    DebatePhase.REBUTTAL_CONS: (ParticipantRole.CONS, False),
    DebatePhase.CLOSING_PROS: (ParticipantRole.PROS, True),
    DebatePhase.CLOSING_CONS: (ParticipantRole.CONS, True),
}

_MESSAGE_TYPES: dict[DebatePhase, MessageType] = {
    DebatePhase.OPENING_PROS: MessageType.OPENING,
    DebatePhase.OPENING_CONS: MessageType.OPENING,
    DebatePhase.STRATEGY_PROS: MessageType.STRATEGY,
    DebatePhase.STRATEGY_CONS: MessageType.STRATEGY,
    DebatePhase.REBUTTAL_PROS: MessageType.REBUTTAL,
    DebatePhase.REBUTTAL_CONS: MessageType.REBUTTAL,
    DebatePhase.CLOSING_PROS: MessageType.CLOSING,
    DebatePhase.CLOSING_CONS: MessageType.CLOSING,
}

_PHASE_LABELS: dict[DebatePhase, str] = {
    DebatePhase.WAITING: "Waiting",
    DebatePhase.OPENING_PROS: "Pros Opening Statement",
    DebatePhase.OPENING_CONS: "Cons Opening Statement",
    DebatePhase.STRATEGY_PROS: "Pros Strategy Time",
    DebatePhase.STRATEGY_CONS: "Cons Strategy Time",
    DebatePhase.REBUTTAL_PROS: "Pros Rebuttal",
    DebatePhase.REBUTTAL_CONS: "Cons Rebuttal",
    DebatePhase.CLOSING_PROS: "Pros Closing Argument",
    DebatePhase.CLOSING_CONS: "Cons Closing Argument",
    DebatePhase.VOTING: "Observer Voting",
    DebatePhase.ENDED: "Ended",
}


def phase_index(phase: DebatePhase) -> int:
    return PHASE_ORDER.index(phase)


def is_terminal(phase: DebatePhase) -> bool:
    return phase == TERMINAL_PHASE


def next_phase(phase: DebatePhase) -> DebatePhase:
    """Return the phase that follows ``phase``.

    Raises:
        ValueError: if ``phase`` is terminal
    """
    if is_terminal(phase):
        raise ValueError(f"Phase {phase.value} is terminal and has no successor")
    return PHASE_ORDER[phase_index(phase) + 1]


def is_timed(phase: DebatePhase) -> bool:
    """Phases that run on the phase clock."""
    return phase not in (INITIAL_PHASE, TERMINAL_PHASE)


def phase_deadline(phase_start_time: datetime, phase_time_limit: int) -> datetime:
    return phase_start_time + timedelta(minutes=phase_time_limit)


def is_phase_expired(
    phase_start_time: datetime | None, phase_time_limit: int | None, now: datetime
) -> bool:
    """True once ``now`` is strictly past the phase deadline."""
    if phase_start_time is None or not phase_time_limit:
        return False
    return now > phase_deadline(phase_start_time, phase_time_limit)


def remaining_seconds(
    phase_start_time: datetime | None, phase_time_limit: int | None, now: datetime
) -> float | None:
    """Seconds left in the current phase, floored at zero."""
    if phase_start_time is None or not phase_time_limit:
        return None
    left = (phase_deadline(phase_start_time, phase_time_limit) - now).total_seconds()
    return max(0.0, left)


def author_rule(phase: DebatePhase) -> tuple[ParticipantRole, bool] | None:
    """(side, team leaders only) allowed to post in ``phase``, or None."""
    return _AUTHOR_RULES.get(phase)


def eligible_author(participant: Participant, phase: DebatePhase) -> bool:
    """Whether ``participant`` may post a message while ``phase`` is current."""
    rule = author_rule(phase)
    if rule is None:
        return False
    side, leaders_only = rule
    if participant.role != side:
        return False
    return participant.is_team_leader or not leaders_only


def message_type_for_phase(phase: DebatePhase) -> MessageType:
    try:
        return _MESSAGE_TYPES[phase]
    except KeyError:
        raise ValueError(f"No messages are written during phase {phase.value}")


def phase_label(phase: DebatePhase) -> str:
    return _PHASE_LABELS[phase]


def visible_messages(
    messages: Iterable[Message], current_phase: DebatePhase | None
) -> list[Message]:
    """Messages shown for the current phase; untagged messages always show."""
    if current_phase is None:
        return list(messages)
    return [m for m in messages if m.phase is None or m.phase == current_phase]


def describe_phases() -> list[dict[str, object]]:
    """Phase listing for clients: order, label, timing and who may post."""
    described = []
    for phase in PHASE_ORDER:
        rule = author_rule(phase)
        described.append(
            {
                "phase": phase.value,
                "name": phase_label(phase),
                "timed": is_timed(phase),
                "authors": rule[0].value if rule else None,
                "team_leaders_only": rule[1] if rule else False,
            }
        )
    return described

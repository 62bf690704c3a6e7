"""Structured pros-cons debate format implementation."""

from discussion_engine.models import Discussion, Participant
from discussion_engine.phases import (
    PHASE_ORDER,
    author_rule,
    eligible_author,
    is_timed,
    phase_label,
)
from discussion_engine.types import DebatePhase, DiscussionMode, ParticipantRole
from .base import DiscussionFormat, FormatPhase

_INSTRUCTIONS: dict[DebatePhase, str] = {
    DebatePhase.WAITING: "Waiting for both sides to join and the creator to start.",
    DebatePhase.OPENING_PROS: "The pros team leader presents the case for the motion.",
    DebatePhase.OPENING_CONS: "The cons team leader presents the case against the motion.",
    DebatePhase.STRATEGY_PROS: "The pros team confers and prepares its rebuttal.",
    DebatePhase.STRATEGY_CONS: "The cons team confers and prepares its rebuttal.",
    DebatePhase.REBUTTAL_PROS: "Pros debaters answer the cons arguments.",
    DebatePhase.REBUTTAL_CONS: "Cons debaters answer the pros arguments.",
    DebatePhase.CLOSING_PROS: "The pros team leader sums up the case for the motion.",
    DebatePhase.CLOSING_CONS: "The cons team leader sums up the case against the motion.",
    DebatePhase.VOTING: "Observers cast their final votes.",
    DebatePhase.ENDED: "The debate is over.",
}


class ProsConsFormat(DiscussionFormat):
    """Two teams argue for and against a motion through fixed timed phases."""

    @property
    def name(self) -> str:
        return "pros-cons"

    @property
    def display_name(self) -> str:
        return "Pros & Cons"

    @property
    def description(self) -> str:
        return "Structured debate split into pros and cons teams, with opening, strategy, rebuttal and closing phases followed by an observer vote"

    @property
    def mode(self) -> DiscussionMode:
        return DiscussionMode.STRUCTURED

    def allowed_roles(self) -> list[ParticipantRole]:
        return [ParticipantRole.PROS, ParticipantRole.CONS]

    def side_capacity(
        self, role: ParticipantRole, max_participants: int | None
    ) -> int | None:
        """Each side may hold half of max_participants when a cap is set."""
        if max_participants is None:
            return None
        return max_participants // 2

    def validate_start(self, participants: list[Participant]) -> None:
        roles = {p.role for p in participants}
        if ParticipantRole.PROS not in roles or ParticipantRole.CONS not in roles:
            raise ValueError("Pros-cons debates need at least one participant on each side")

    def get_phases(self) -> list[FormatPhase]:
        phases = []
        for phase in PHASE_ORDER:
            side, leaders_only = author_rule(phase) or (None, False)
            phases.append(
                FormatPhase(
                    phase=phase,
                    name=phase_label(phase),
                    instruction=_INSTRUCTIONS[phase],
                    authors=side,
                    team_leaders_only=leaders_only,
                    timed=is_timed(phase),
                )
            )
        return phases

    def can_author(self, discussion: Discussion, participant: Participant) -> bool:
        if discussion.current_phase is None:
            return False
        return eligible_author(participant, discussion.current_phase)

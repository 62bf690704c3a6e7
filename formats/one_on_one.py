"""One-on-one debate format implementation."""

from discussion_engine.models import Participant
from discussion_engine.types import DiscussionMode, ParticipantRole
from .base import DiscussionFormat


class OneOnOneFormat(DiscussionFormat):
    """Two debaters, one per side, arguing freely against an overall clock."""

    @property
    def name(self) -> str:
        return "one-on-one"

    @property
    def display_name(self) -> str:
        return "1:1 Match"

    @property
    def description(self) -> str:
        return "Two people take opposite sides and trade rebuttals head to head"

    @property
    def mode(self) -> DiscussionMode:
        return DiscussionMode.LEGACY

    def allowed_roles(self) -> list[ParticipantRole]:
        return [ParticipantRole.PROS, ParticipantRole.CONS]

    def side_capacity(
        self, role: ParticipantRole, max_participants: int | None
    ) -> int | None:
        """Exactly one debater per side, whatever max_participants says."""
        return 1

    def validate_start(self, participants: list[Participant]) -> None:
        roles = [p.role for p in participants]
        if roles.count(ParticipantRole.PROS) != 1 or roles.count(ParticipantRole.CONS) != 1:
            raise ValueError("One-on-one debates need exactly one participant on each side")

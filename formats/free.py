"""Free discussion format implementation."""

from discussion_engine.models import Participant
from discussion_engine.types import DiscussionMode, ParticipantRole
from .base import DiscussionFormat


class FreeFormat(DiscussionFormat):
    """Open discussion without sides or phases."""

    @property
    def name(self) -> str:
        return "free"

    @property
    def display_name(self) -> str:
        return "Free Discussion"

    @property
    def description(self) -> str:
        return "An open discussion where anyone can share their opinion freely"

    @property
    def mode(self) -> DiscussionMode:
        return DiscussionMode.LEGACY

    def allowed_roles(self) -> list[ParticipantRole]:
        return [ParticipantRole.PARTICIPANT]

    def side_capacity(
        self, role: ParticipantRole, max_participants: int | None
    ) -> int | None:
        return max_participants

    def validate_start(self, participants: list[Participant]) -> None:
        if not participants:
            raise ValueError("At least one participant is required to start")

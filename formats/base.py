"""Base classes and interfaces for discussion formats."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from discussion_engine.models import Discussion, Participant
from discussion_engine.types import DebatePhase, DiscussionMode, ParticipantRole


@dataclass
class FormatPhase:
    """A phase within a specific discussion format."""

    phase: DebatePhase
    name: str
    instruction: str
    authors: ParticipantRole | None  # side allowed to post, None for nobody
    team_leaders_only: bool = False
    timed: bool = True


class DiscussionFormat(ABC):
    """Abstract base class for discussion formats."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Format name, equal to the discussion type value."""
        pass

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable format name for display in UI."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Format description."""
        pass

    @property
    @abstractmethod
    def mode(self) -> DiscussionMode:
        """Timer mechanism used by discussions of this format."""
        pass

    @abstractmethod
    def allowed_roles(self) -> list[ParticipantRole]:
        """Roles a participant may join with."""
        pass

    @abstractmethod
    def side_capacity(
        self, role: ParticipantRole, max_participants: int | None
    ) -> int | None:
        """How many participants ``role`` may hold; None means unlimited."""
        pass

    @abstractmethod
    def validate_start(self, participants: list[Participant]) -> None:
        """Raise ValueError if the roster is not enough to start."""
        pass

    def get_phases(self) -> list[FormatPhase]:
        """Phases of the format; legacy formats have none."""
        return []

    def can_author(self, discussion: Discussion, participant: Participant) -> bool:
        """Legacy formats let any participant post while the discussion runs."""
        return True

    def uses_team_leaders(self) -> bool:
        return ParticipantRole.PROS in self.allowed_roles()

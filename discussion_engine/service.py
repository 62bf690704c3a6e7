"""Discussion commands: the single owner of discussion state transitions."""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from config.settings import DiscussionConfig
from formats import format_registry
from formats.base import DiscussionFormat

from .database import DatabaseManager
from .exceptions import (
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    StaleStateError,
)
from .models import Discussion, FinalVote, Message, Participant, UserIdentity
from .phases import (
    FIRST_DEBATE_PHASE,
    INITIAL_PHASE,
    TERMINAL_PHASE,
    is_phase_expired,
    is_timed,
    message_type_for_phase,
    next_phase,
    visible_messages,
)
from .types import (
    DebatePhase,
    DiscussionMode,
    DiscussionStatus,
    DiscussionType,
    MessageType,
    ParticipantRole,
    VoteChoice,
)

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def decide_winner(tally: dict[str, int]) -> VoteChoice | None:
    """Plurality of pros vs cons votes; a tie or a draw plurality is a draw."""
    if not any(tally.values()):
        return None
    pros = tally.get(VoteChoice.PROS.value, 0)
    cons = tally.get(VoteChoice.CONS.value, 0)
    draw = tally.get(VoteChoice.DRAW.value, 0)
    if pros > cons and pros > draw:
        return VoteChoice.PROS
    if cons > pros and cons > draw:
        return VoteChoice.CONS
    return VoteChoice.DRAW


class DiscussionService:
    """Validates and applies every discussion command.

    Each command reads the current record, checks permissions and state, and
    then writes. Phase and status changes are conditional on the value that
    was read, so two racing writers cannot both move a discussion forward.
    """

    def __init__(
        self,
        db: DatabaseManager,
        config: DiscussionConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.config = config or DiscussionConfig()
        self.clock = clock

    # Queries

    def get_discussion(self, discussion_id: str) -> Discussion:
        discussion = self.db.get_discussion(discussion_id)
        if discussion is None:
            raise NotFoundError(f"Discussion {discussion_id} not found")
        return discussion

    def list_discussions(self, limit: int | None = None, offset: int = 0) -> list[Discussion]:
        return self.db.list_discussions(limit, offset)

    def list_messages(
        self, discussion_id: str, current_phase_only: bool = False
    ) -> list[Message]:
        discussion = self.get_discussion(discussion_id)
        messages = self.db.list_messages(discussion_id)
        if current_phase_only:
            return visible_messages(messages, discussion.current_phase)
        return messages

    def active_discussion_ids(self) -> list[str]:
        return self.db.list_discussion_ids_by_status(DiscussionStatus.ACTIVE)

    def get_format(self, discussion: Discussion) -> DiscussionFormat:
        return format_registry.get_format(discussion.type)

    # Lifecycle

    def create_discussion(
        self,
        actor: UserIdentity,
        title: str,
        description: str,
        type: DiscussionType,
        category: str,
        allow_observers: bool = True,
        max_participants: int | None = None,
        time_limit: int | None = None,
        phase_time_limit: int | None = None,
    ) -> Discussion:
        """Create a discussion in waiting status with an empty roster."""
        if not title.strip() or not description.strip():
            raise InvalidStateError("Title and description are required")
        if not category.strip():
            raise InvalidStateError("Category is required")
        if max_participants is not None and max_participants < 2:
            raise InvalidStateError("max_participants must be at least 2")

        debate_format = format_registry.get_format(type)
        structured = debate_format.mode == DiscussionMode.STRUCTURED

        if structured:
            phase_time_limit = phase_time_limit or self.config.default_phase_time_limit
            self._check_time_limit(phase_time_limit, "phase_time_limit")
            time_limit = None
        else:
            if time_limit is not None:
                self._check_time_limit(time_limit, "time_limit")
            phase_time_limit = None

        discussion = Discussion(
            id=str(uuid.uuid4()),
            title=title.strip(),
            description=description.strip(),
            type=type,
            status=DiscussionStatus.WAITING,
            current_phase=INITIAL_PHASE if structured else None,
            category=category.strip(),
            created_by=actor.id,
            created_at=self.clock(),
            allow_observers=allow_observers,
            max_participants=max_participants,
            time_limit=time_limit,
            phase_time_limit=phase_time_limit,
        )
        self.db.create_discussion(discussion)
        return discussion

    def _check_time_limit(self, minutes: int, field: str) -> None:
        if not self.config.min_time_limit <= minutes <= self.config.max_time_limit:
            raise InvalidStateError(
                f"{field} must be between {self.config.min_time_limit} and "
                f"{self.config.max_time_limit} minutes"
            )

    def join(
        self, discussion_id: str, actor: UserIdentity, role: ParticipantRole
    ) -> Discussion:
        """Add the actor to the roster on the requested side."""
        discussion = self.get_discussion(discussion_id)
        debate_format = self.get_format(discussion)

        if discussion.is_member(actor.id):
            raise InvalidStateError("You are already part of this discussion")
        if discussion.status != DiscussionStatus.WAITING:
            raise InvalidStateError("Participants can only join before the discussion starts")
        if role not in debate_format.allowed_roles():
            allowed = ", ".join(r.value for r in debate_format.allowed_roles())
            raise InvalidStateError(
                f"Role {role.value} is not available in {debate_format.display_name}; choose {allowed}"
            )

        occupied = (
            discussion.side_count(role)
            if debate_format.uses_team_leaders()
            else len(discussion.participants)
        )
        capacity = debate_format.side_capacity(role, discussion.max_participants)
        if capacity is not None and occupied >= capacity:
            raise InvalidStateError(f"The {role.value} side is full")

        participant = Participant(
            user_id=actor.id,
            username=actor.display_name,
            role=role,
            joined_at=self.clock(),
            is_team_leader=debate_format.uses_team_leaders() and occupied == 0,
        )
        if not self.db.add_participant(discussion_id, participant):
            raise StaleStateError("You are already part of this discussion")

        logger.info(
            f"{actor.id} joined {discussion_id} as {role.value}"
            + (" (team leader)" if participant.is_team_leader else "")
        )
        return self.get_discussion(discussion_id)

    def observe(self, discussion_id: str, actor: UserIdentity) -> Discussion:
        discussion = self.get_discussion(discussion_id)
        if discussion.is_member(actor.id):
            raise InvalidStateError("You are already part of this discussion")
        if not discussion.allow_observers:
            raise PermissionDeniedError("This discussion does not allow observers")

        if not self.db.add_observer(discussion_id, actor.id, self.clock()):
            raise StaleStateError("You are already observing this discussion")
        logger.info(f"{actor.id} is observing {discussion_id}")
        return self.get_discussion(discussion_id)

    def start(self, discussion_id: str, actor: UserIdentity) -> Discussion:
        """Creator starts the discussion; structured debates enter opening_pros."""
        discussion = self.get_discussion(discussion_id)
        self._require_creator(discussion, actor, "start")
        if discussion.status != DiscussionStatus.WAITING:
            raise InvalidStateError("Discussion has already started")

        debate_format = self.get_format(discussion)
        try:
            debate_format.validate_start(discussion.participants)
        except ValueError as e:
            raise InvalidStateError(str(e))

        now = self.clock()
        fields: dict = {"started_at": now}
        if discussion.is_structured:
            fields["current_phase"] = FIRST_DEBATE_PHASE
            fields["phase_start_time"] = now

        if not self.db.update_status(
            discussion_id, DiscussionStatus.WAITING, DiscussionStatus.ACTIVE, **fields
        ):
            raise StaleStateError("Discussion was started by another request")
        return self.get_discussion(discussion_id)

    def advance_phase(
        self,
        discussion_id: str,
        actor: UserIdentity,
        expected_phase: DebatePhase | None = None,
    ) -> Discussion:
        """Creator moves a structured debate to its next phase.

        ``expected_phase`` pins the phase the creator was looking at; if the
        debate has moved on since (for example the timer fired first), the
        request is rejected instead of skipping a phase.
        """
        discussion = self.get_discussion(discussion_id)
        self._require_creator(discussion, actor, "advance")
        if not discussion.is_structured:
            raise InvalidStateError("Only pros-cons debates have phases")
        if discussion.status != DiscussionStatus.ACTIVE:
            raise InvalidStateError("Discussion is not active")

        current = discussion.current_phase
        if expected_phase is not None and expected_phase != current:
            raise StaleStateError(
                f"Discussion is in phase {current.value if current else None}, "
                f"not {expected_phase.value}"
            )
        if current is None or current in (INITIAL_PHASE, TERMINAL_PHASE):
            raise InvalidStateError("Discussion has no phase to advance from")

        if not self._apply_advance(discussion_id, current):
            raise StaleStateError("Phase changed before the advance was applied")
        return self.get_discussion(discussion_id)

    def end_discussion(self, discussion_id: str, actor: UserIdentity) -> Discussion:
        """Creator ends a legacy discussion."""
        discussion = self.get_discussion(discussion_id)
        self._require_creator(discussion, actor, "end")
        if discussion.is_structured:
            raise InvalidStateError("Pros-cons debates end by advancing through their phases")
        if discussion.status != DiscussionStatus.ACTIVE:
            raise InvalidStateError("Discussion is not active")

        if not self._apply_end(discussion_id):
            raise StaleStateError("Discussion already ended")
        return self.get_discussion(discussion_id)

    def check_timers(self, discussion_id: str) -> Discussion | None:
        """Apply the timer rule once; return the updated record if it fired.

        Structured debates advance one phase when the current timed phase has
        expired. Legacy discussions end once ``time_limit`` minutes have passed
        since they started. Losing a conditional update to another writer is
        not an error here: someone else already performed the transition.
        """
        discussion = self.db.get_discussion(discussion_id)
        if discussion is None or discussion.status != DiscussionStatus.ACTIVE:
            return None
        now = self.clock()

        if discussion.is_structured:
            phase = discussion.current_phase
            if phase is None or not is_timed(phase):
                return None
            if not is_phase_expired(
                discussion.phase_start_time, discussion.phase_time_limit, now
            ):
                return None
            if not self._apply_advance(discussion_id, phase):
                logger.debug(f"Timer advance for {discussion_id} lost to another writer")
                return None
            logger.info(f"Phase timer expired for {discussion_id} in {phase.value}")
            return self.get_discussion(discussion_id)

        if not discussion.time_limit:
            return None
        # Overall limit counts from the start; records without one use creation time
        started = discussion.started_at or discussion.created_at
        if now <= started + timedelta(minutes=discussion.time_limit):
            return None
        if not self._apply_end(discussion_id):
            return None
        logger.info(f"Time limit reached for {discussion_id}")
        return self.get_discussion(discussion_id)

    def _apply_advance(self, discussion_id: str, current: DebatePhase) -> bool:
        target = next_phase(current)
        now = self.clock()
        updated = self.db.update_phase(
            discussion_id,
            expected_phase=current,
            new_phase=target,
            phase_start_time=now,
            ended_at=now if target == TERMINAL_PHASE else None,
        )
        if updated and target == TERMINAL_PHASE:
            self._refresh_winner(discussion_id)
        return updated

    def _apply_end(self, discussion_id: str) -> bool:
        return self.db.update_status(
            discussion_id,
            DiscussionStatus.ACTIVE,
            DiscussionStatus.ENDED,
            ended_at=self.clock(),
        )

    # Messages

    def send_message(
        self,
        discussion_id: str,
        actor: UserIdentity,
        content: str,
        reply_to: int | None = None,
    ) -> Message:
        """Append a message if the actor may speak right now."""
        discussion = self.get_discussion(discussion_id)
        participant = discussion.get_participant(actor.id)
        if participant is None:
            raise PermissionDeniedError("Only participants can send messages")
        if discussion.status != DiscussionStatus.ACTIVE:
            raise InvalidStateError("Messages can only be sent while the discussion is active")

        content = content.strip()
        if not content:
            raise InvalidStateError("Message cannot be empty")
        if len(content) > self.config.max_message_length:
            raise InvalidStateError(
                f"Message exceeds {self.config.max_message_length} characters"
            )

        debate_format = self.get_format(discussion)
        if discussion.is_structured and not debate_format.can_author(discussion, participant):
            phase = discussion.current_phase.value if discussion.current_phase else "current"
            raise PermissionDeniedError(f"You cannot speak during the {phase} phase")

        if reply_to is not None:
            parent = self.db.get_message(reply_to)
            if parent is None or parent.discussion_id != discussion_id:
                raise NotFoundError(f"Message {reply_to} not found in this discussion")

        if discussion.is_structured:
            phase = discussion.current_phase
            message_type = message_type_for_phase(phase)
        else:
            phase = None
            message_type = MessageType.ARGUMENT

        message = Message(
            discussion_id=discussion_id,
            user_id=actor.id,
            username=participant.username,
            content=content,
            timestamp=self.clock(),
            role=participant.role,
            phase=phase,
            message_type=message_type,
            reply_to=reply_to,
        )
        message.id = self.db.add_message(message)
        return message

    def like_message(self, message_id: int, actor: UserIdentity) -> Message:
        """Add the actor to a message's likers; liking twice changes nothing."""
        message = self.db.get_message(message_id)
        if message is None:
            raise NotFoundError(f"Message {message_id} not found")
        discussion = self.get_discussion(message.discussion_id)
        if not discussion.is_member(actor.id):
            raise PermissionDeniedError("Join or observe the discussion to like messages")
        if message.user_id == actor.id:
            raise InvalidStateError("You cannot like your own message")

        self.db.add_like(message_id, actor.id, self.clock())
        updated = self.db.get_message(message_id)
        if updated is None:
            raise NotFoundError(f"Message {message_id} not found")
        return updated

    # Voting

    def cast_vote(
        self,
        discussion_id: str,
        actor: UserIdentity,
        choice: VoteChoice,
        reasoning: str | None = None,
    ) -> Discussion:
        """Record an observer's vote; voting again replaces the earlier vote."""
        discussion = self.get_discussion(discussion_id)
        if not discussion.is_observer(actor.id):
            raise PermissionDeniedError("Only observers can vote")

        if discussion.is_structured:
            if discussion.current_phase != DebatePhase.VOTING:
                raise InvalidStateError("Voting is only open during the voting phase")
        elif discussion.status != DiscussionStatus.ENDED:
            raise InvalidStateError("Voting opens once the discussion has ended")

        replaced = actor.id in discussion.final_votes
        self.db.upsert_vote(
            discussion_id,
            FinalVote(
                user_id=actor.id,
                vote=choice,
                timestamp=self.clock(),
                reasoning=reasoning.strip() if reasoning and reasoning.strip() else None,
            ),
        )
        logger.info(
            f"{actor.id} {'changed vote' if replaced else 'voted'} {choice.value} in {discussion_id}"
        )
        return self._refresh_winner(discussion_id)

    def _refresh_winner(self, discussion_id: str) -> Discussion:
        discussion = self.get_discussion(discussion_id)
        winner = decide_winner(discussion.vote_tally())
        if winner != discussion.winner:
            self.db.set_winner(discussion_id, winner)
            discussion.winner = winner
        return discussion

    def _require_creator(self, discussion: Discussion, actor: UserIdentity, action: str) -> None:
        if discussion.created_by != actor.id:
            raise PermissionDeniedError(f"Only the creator can {action} this discussion")

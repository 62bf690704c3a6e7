"""Live discussion fan-out and server-side phase timers."""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from fastapi import WebSocket

from config.settings import SchedulerConfig
from discussion_engine.exceptions import DiscussionError
from discussion_engine.models import Discussion, Message, UserIdentity
from discussion_engine.service import DiscussionService
from discussion_engine.types import (
    DebatePhase,
    DiscussionStatus,
    DiscussionUpdatedEventData,
    NewMessageEventData,
    ParticipantRole,
    VoteChoice,
)
from web.discussion_response import DiscussionResponse
from web.message_response import MessageResponse

logger = logging.getLogger(__name__)


class DiscussionManager:
    """Runs discussion commands and pushes every change to subscribers.

    Owns one timer task per active discussion, so each auto-transition has a
    single author no matter how many clients are watching.
    """

    def __init__(
        self,
        service: DiscussionService,
        scheduler_config: SchedulerConfig | None = None,
    ):
        self.service = service
        self.scheduler_config = scheduler_config or SchedulerConfig()
        self.connections: dict[str, list[WebSocket]] = {}
        self.timer_tasks: dict[str, asyncio.Task[None]] = {}

    def snapshot(self, discussion: Discussion) -> DiscussionResponse:
        return DiscussionResponse.from_discussion(discussion, self.service.clock())

    # Commands

    async def create_discussion(self, actor: UserIdentity, **fields: Any) -> Discussion:
        discussion = self.service.create_discussion(actor, **fields)
        logger.info(f"Created discussion {discussion.id}: {discussion.title}")
        return discussion

    async def join(
        self, discussion_id: str, actor: UserIdentity, role: ParticipantRole
    ) -> Discussion:
        discussion = self.service.join(discussion_id, actor, role)
        await self.publish(discussion)
        return discussion

    async def observe(self, discussion_id: str, actor: UserIdentity) -> Discussion:
        discussion = self.service.observe(discussion_id, actor)
        await self.publish(discussion)
        return discussion

    async def start(self, discussion_id: str, actor: UserIdentity) -> Discussion:
        discussion = self.service.start(discussion_id, actor)
        self.schedule_timer(discussion_id)
        await self.publish(discussion)
        return discussion

    async def advance_phase(
        self,
        discussion_id: str,
        actor: UserIdentity,
        expected_phase: DebatePhase | None = None,
    ) -> Discussion:
        discussion = self.service.advance_phase(discussion_id, actor, expected_phase)
        await self.publish(discussion)
        return discussion

    async def end_discussion(self, discussion_id: str, actor: UserIdentity) -> Discussion:
        discussion = self.service.end_discussion(discussion_id, actor)
        await self.publish(discussion)
        return discussion

    async def send_message(
        self,
        discussion_id: str,
        actor: UserIdentity,
        content: str,
        reply_to: int | None = None,
    ) -> Message:
        message = self.service.send_message(discussion_id, actor, content, reply_to)
        await self.publish_message(message)
        return message

    async def like_message(self, message_id: int, actor: UserIdentity) -> Message:
        message = self.service.like_message(message_id, actor)
        await self.publish_message(message, "message_updated")
        return message

    async def cast_vote(
        self,
        discussion_id: str,
        actor: UserIdentity,
        choice: VoteChoice,
        reasoning: str | None = None,
    ) -> Discussion:
        discussion = self.service.cast_vote(discussion_id, actor, choice, reasoning)
        await self.publish(discussion)
        return discussion

    # Timers

    def schedule_timer(self, discussion_id: str) -> None:
        """Start the timer task for a discussion unless one is already running."""
        if not self.scheduler_config.enabled:
            return
        task = self.timer_tasks.get(discussion_id)
        if task and not task.done():
            return
        self.timer_tasks[discussion_id] = asyncio.create_task(
            self._run_timer(discussion_id)
        )
        logger.info(f"Timer scheduled for discussion {discussion_id}")

    def resume_timers(self) -> int:
        """Schedule timers for every discussion that was active at shutdown."""
        discussion_ids = self.service.active_discussion_ids()
        for discussion_id in discussion_ids:
            self.schedule_timer(discussion_id)
        if discussion_ids:
            logger.info(f"Resumed {len(discussion_ids)} discussion timers")
        return len(discussion_ids)

    async def _run_timer(self, discussion_id: str) -> None:
        """Tick until the discussion ends, applying the timer rule each time."""
        try:
            while True:
                await asyncio.sleep(self.scheduler_config.tick_seconds)
                if await self.tick(discussion_id):
                    break
        except asyncio.CancelledError:
            logger.info(f"Timer for {discussion_id} cancelled")
            raise
        finally:
            self.timer_tasks.pop(discussion_id, None)

    async def tick(self, discussion_id: str) -> bool:
        """Run one timer check; return True once the discussion is no longer active."""
        try:
            updated = self.service.check_timers(discussion_id)
        except DiscussionError as e:
            logger.error(f"Timer check failed for {discussion_id}: {e}")
            return False
        except Exception:
            logger.exception(f"Unexpected timer error for {discussion_id}")
            return False

        if updated is not None:
            await self.publish(updated)
            return updated.status != DiscussionStatus.ACTIVE

        discussion = self.service.db.get_discussion(discussion_id)
        return discussion is None or discussion.status != DiscussionStatus.ACTIVE

    async def shutdown(self) -> None:
        """Cancel all timer tasks."""
        tasks = list(self.timer_tasks.values())
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.timer_tasks.clear()
        logger.info("Discussion timers stopped")

    # Subscriptions

    async def publish(self, discussion: Discussion) -> None:
        """Send the full discussion state to every subscriber."""
        event: DiscussionUpdatedEventData = {
            "type": "discussion_updated",
            "discussion": self.snapshot(discussion).model_dump(mode="json"),
        }
        await self._broadcast_to_discussion(discussion.id, event)

    async def publish_message(self, message: Message, event_type: str = "new_message") -> None:
        event: NewMessageEventData = {
            "type": event_type,
            "discussion_id": message.discussion_id,
            "message": MessageResponse.from_message(message).model_dump(mode="json"),
        }
        await self._broadcast_to_discussion(message.discussion_id, event)

    async def _broadcast_to_discussion(
        self, discussion_id: str, message: Mapping[str, Any]
    ) -> None:
        """Broadcast message to all connected clients for a discussion."""
        if discussion_id not in self.connections:
            return

        dead_connections = []
        for websocket in list(self.connections[discussion_id]):
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.debug(f"WebSocket send failed: {e}")
                dead_connections.append(websocket)

        for conn in dead_connections:
            self.remove_connection(discussion_id, conn)

    def add_connection(self, discussion_id: str, websocket: WebSocket) -> None:
        """Add WebSocket connection for a discussion."""
        if discussion_id not in self.connections:
            self.connections[discussion_id] = []
        self.connections[discussion_id].append(websocket)

    def remove_connection(self, discussion_id: str, websocket: WebSocket) -> None:
        """Remove WebSocket connection."""
        if discussion_id in self.connections and websocket in self.connections[discussion_id]:
            self.connections[discussion_id].remove(websocket)
            if not self.connections[discussion_id]:
                del self.connections[discussion_id]

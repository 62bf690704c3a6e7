"""Discussion management and WebSocket endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect

from discussion_engine.exceptions import DiscussionError
from web.auth_utils import actor_from_user, get_current_user
from web.discussion_manager import DiscussionManager
from web.discussion_requests import (
    AdvancePhaseRequest,
    JoinRequest,
    SendMessageRequest,
    VoteRequest,
)
from web.discussion_response import DiscussionResponse
from web.discussion_setup_request import DiscussionSetupRequest
from web.message_response import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")
ws_router = APIRouter()


def setup_discussion_manager() -> DiscussionManager:
    """Get or create the global discussion manager."""
    # Import here to avoid circular imports
    from web import api
    return api.get_discussion_manager()


def _http_error(e: DiscussionError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/discussions", response_model=DiscussionResponse)
async def create_discussion(
    setup: DiscussionSetupRequest,
    current_user: dict[str, Any] = Depends(get_current_user),
    manager: DiscussionManager = Depends(setup_discussion_manager),
):
    """Create a new discussion in waiting status."""
    try:
        discussion = await manager.create_discussion(
            actor_from_user(current_user), **setup.model_dump()
        )
        return manager.snapshot(discussion)
    except DiscussionError as e:
        raise _http_error(e)


@router.get("/discussions")
async def list_discussions(
    page: int = 1,
    limit: int = 20,
    manager: DiscussionManager = Depends(setup_discussion_manager),
):
    """Paginated discussion list, newest first."""
    if page < 1:
        page = 1
    if limit < 1 or limit > 100:
        limit = 20
    offset = (page - 1) * limit

    try:
        discussions = manager.service.list_discussions(limit=limit, offset=offset)
        total_count = manager.service.db.count_discussions()
    except DiscussionError as e:
        raise _http_error(e)

    return {
        "discussions": [manager.snapshot(d).model_dump(mode="json") for d in discussions],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total_count,
            "total_pages": (total_count + limit - 1) // limit,
            "has_next": offset + limit < total_count,
            "has_prev": page > 1,
        },
    }


@router.get("/discussions/{discussion_id}", response_model=DiscussionResponse)
async def get_discussion(
    discussion_id: str,
    manager: DiscussionManager = Depends(setup_discussion_manager),
):
    """Get discussion state."""
    try:
        return manager.snapshot(manager.service.get_discussion(discussion_id))
    except DiscussionError as e:
        raise _http_error(e)


@router.post("/discussions/{discussion_id}/join", response_model=DiscussionResponse)
async def join_discussion(
    discussion_id: str,
    request: JoinRequest,
    current_user: dict[str, Any] = Depends(get_current_user),
    manager: DiscussionManager = Depends(setup_discussion_manager),
):
    """Join as a debater on the requested side."""
    try:
        discussion = await manager.join(discussion_id, actor_from_user(current_user), request.role)
        return manager.snapshot(discussion)
    except DiscussionError as e:
        raise _http_error(e)


@router.post("/discussions/{discussion_id}/observe", response_model=DiscussionResponse)
async def observe_discussion(
    discussion_id: str,
    current_user: dict[str, Any] = Depends(get_current_user),
    manager: DiscussionManager = Depends(setup_discussion_manager),
):
    """Join as an observer."""
    try:
        discussion = await manager.observe(discussion_id, actor_from_user(current_user))
        return manager.snapshot(discussion)
    except DiscussionError as e:
        raise _http_error(e)


@router.post("/discussions/{discussion_id}/start", response_model=DiscussionResponse)
async def start_discussion(
    discussion_id: str,
    current_user: dict[str, Any] = Depends(get_current_user),
    manager: DiscussionManager = Depends(setup_discussion_manager),
):
    """Start a discussion (creator only)."""
    try:
        discussion = await manager.start(discussion_id, actor_from_user(current_user))
        return manager.snapshot(discussion)
    except DiscussionError as e:
        raise _http_error(e)


@router.post("/discussions/{discussion_id}/advance", response_model=DiscussionResponse)
async def advance_phase(
    discussion_id: str,
    request: AdvancePhaseRequest | None = None,
    current_user: dict[str, Any] = Depends(get_current_user),
    manager: DiscussionManager = Depends(setup_discussion_manager),
):
    """Move a pros-cons debate to its next phase (creator only)."""
    expected_phase = request.expected_phase if request else None
    try:
        discussion = await manager.advance_phase(
            discussion_id, actor_from_user(current_user), expected_phase
        )
        return manager.snapshot(discussion)
    except DiscussionError as e:
        raise _http_error(e)


@router.post("/discussions/{discussion_id}/end", response_model=DiscussionResponse)
async def end_discussion(
    discussion_id: str,
    current_user: dict[str, Any] = Depends(get_current_user),
    manager: DiscussionManager = Depends(setup_discussion_manager),
):
    """End a free or one-on-one discussion (creator only)."""
    try:
        discussion = await manager.end_discussion(discussion_id, actor_from_user(current_user))
        return manager.snapshot(discussion)
    except DiscussionError as e:
        raise _http_error(e)


@router.get("/discussions/{discussion_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    discussion_id: str,
    current_phase_only: bool = False,
    manager: DiscussionManager = Depends(setup_discussion_manager),
):
    """Messages in chat order, optionally limited to the current phase."""
    try:
        messages = manager.service.list_messages(discussion_id, current_phase_only)
        return [MessageResponse.from_message(m) for m in messages]
    except DiscussionError as e:
        raise _http_error(e)


@router.post("/discussions/{discussion_id}/messages", response_model=MessageResponse)
async def send_message(
    discussion_id: str,
    request: SendMessageRequest,
    current_user: dict[str, Any] = Depends(get_current_user),
    manager: DiscussionManager = Depends(setup_discussion_manager),
):
    """Post a message if the current phase allows it."""
    try:
        message = await manager.send_message(
            discussion_id, actor_from_user(current_user), request.content, request.reply_to
        )
        return MessageResponse.from_message(message)
    except DiscussionError as e:
        raise _http_error(e)


@router.post("/messages/{message_id}/like", response_model=MessageResponse)
async def like_message(
    message_id: int,
    current_user: dict[str, Any] = Depends(get_current_user),
    manager: DiscussionManager = Depends(setup_discussion_manager),
):
    """Like a message."""
    try:
        message = await manager.like_message(message_id, actor_from_user(current_user))
        return MessageResponse.from_message(message)
    except DiscussionError as e:
        raise _http_error(e)


@router.post("/discussions/{discussion_id}/votes", response_model=DiscussionResponse)
async def cast_vote(
    discussion_id: str,
    request: VoteRequest,
    current_user: dict[str, Any] = Depends(get_current_user),
    manager: DiscussionManager = Depends(setup_discussion_manager),
):
    """Cast or change an observer's final vote."""
    try:
        discussion = await manager.cast_vote(
            discussion_id, actor_from_user(current_user), request.vote, request.reasoning
        )
        return manager.snapshot(discussion)
    except DiscussionError as e:
        raise _http_error(e)


@router.get("/discussions/{discussion_id}/votes")
async def get_votes(
    discussion_id: str,
    manager: DiscussionManager = Depends(setup_discussion_manager),
):
    """Vote tally and current winner."""
    try:
        discussion = manager.service.get_discussion(discussion_id)
    except DiscussionError as e:
        raise _http_error(e)
    return {
        "discussion_id": discussion_id,
        "tally": discussion.vote_tally(),
        "total": len(discussion.final_votes),
        "winner": discussion.winner.value if discussion.winner else None,
    }


@ws_router.websocket("/ws/discussions/{discussion_id}")
async def websocket_endpoint(
    websocket: WebSocket,
    discussion_id: str,
    manager: DiscussionManager = Depends(setup_discussion_manager),
):
    """WebSocket endpoint for live discussion updates."""
    await websocket.accept()
    manager.add_connection(discussion_id, websocket)

    try:
        try:
            discussion = manager.service.get_discussion(discussion_id)
        except DiscussionError as e:
            await websocket.send_json({"type": "error", "message": e.message})
            await websocket.close()
            manager.remove_connection(discussion_id, websocket)
            return

        await websocket.send_json(
            {
                "type": "connected",
                "discussion_id": discussion_id,
                "discussion": manager.snapshot(discussion).model_dump(mode="json"),
            }
        )

        # Keep connection alive
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        manager.remove_connection(discussion_id, websocket)

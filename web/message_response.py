from pydantic import BaseModel

from discussion_engine.models import Message


class MessageResponse(BaseModel):
    """Response model for discussion messages."""

    id: int
    discussion_id: str
    user_id: str
    username: str
    role: str
    phase: str | None
    message_type: str
    content: str
    timestamp: str
    reply_to: int | None
    likes: int
    liked_by: list[str]

    @classmethod
    def from_message(cls, message: Message) -> "MessageResponse":
        return cls(
            id=message.id or 0,
            discussion_id=message.discussion_id,
            user_id=message.user_id,
            username=message.username,
            role=message.role.value,
            phase=message.phase.value if message.phase else None,
            message_type=message.message_type.value,
            content=message.content,
            timestamp=message.timestamp.isoformat(),
            reply_to=message.reply_to,
            likes=message.likes,
            liked_by=message.liked_by,
        )

import uuid
from typing import Dict, List

from sqlalchemy import select, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import models
from app.core.schemas import ChatRole


def new_id() -> str:
    return uuid.uuid4().hex


class ConversationStore:
    """
    Append-only persistence of chat turns.

    Every read is filtered by user_id as well as conversation_id, so a
    conversation id guessed from another user never yields their messages.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def save_message(
        self, user_id: str, conversation_id: str, role: ChatRole, content: str
    ) -> models.ChatMessage:
        message = models.ChatMessage(
            id=new_id(),
            user_id=user_id,
            conversation_id=conversation_id,
            role=role.value,
            content=content,
        )
        self.db.add(message)
        await self.db.commit()
        return message

    async def belongs_to_other_user(self, user_id: str, conversation_id: str) -> bool:
        query = (
            select(models.ChatMessage.id)
            .where(
                models.ChatMessage.conversation_id == conversation_id,
                models.ChatMessage.user_id != user_id,
            )
            .limit(1)
        )
        result = await self.db.execute(query)
        return result.first() is not None

    async def recent_turns(
        self, user_id: str, conversation_id: str, limit: int = 10
    ) -> List[Dict[str, str]]:
        """Most recent user/assistant turns, returned oldest first."""
        query = (
            select(models.ChatMessage)
            .where(
                models.ChatMessage.user_id == user_id,
                models.ChatMessage.conversation_id == conversation_id,
                models.ChatMessage.role.in_(
                    [ChatRole.USER.value, ChatRole.ASSISTANT.value]
                ),
            )
            .order_by(desc(models.ChatMessage.created_at))
            .limit(limit)
        )
        result = await self.db.execute(query)
        messages = result.scalars().all()
        return [{"role": m.role, "content": m.content} for m in reversed(messages)]

    async def list_conversations(self, user_id: str) -> List[Dict]:
        """One row per conversation with its latest message, newest first."""
        latest = (
            select(
                models.ChatMessage.conversation_id,
                func.max(models.ChatMessage.created_at).label("last_at"),
            )
            .where(models.ChatMessage.user_id == user_id)
            .group_by(models.ChatMessage.conversation_id)
            .subquery()
        )

        query = (
            select(
                models.ChatMessage.conversation_id,
                models.ChatMessage.content,
                models.ChatMessage.created_at,
            )
            .join(
                latest,
                (models.ChatMessage.conversation_id == latest.c.conversation_id)
                & (models.ChatMessage.created_at == latest.c.last_at),
            )
            .where(models.ChatMessage.user_id == user_id)
            .order_by(desc(models.ChatMessage.created_at))
        )
        result = await self.db.execute(query)

        conversations = []
        seen = set()
        for row in result.all():
            # Two turns stored in the same instant would both match max()
            if row.conversation_id in seen:
                continue
            seen.add(row.conversation_id)
            conversations.append(
                {
                    "conversation_id": row.conversation_id,
                    "last_message": row.content,
                    "created_at": row.created_at,
                }
            )
        return conversations

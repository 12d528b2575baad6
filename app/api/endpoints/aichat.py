import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, status, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import schemas
from app.core.database import get_db
from app.core.security import get_current_user_id
from app.chat_gateway.llm_client import ModelClient, get_model_client
from app.chat_gateway.service import ChatGateway
from app.chat_gateway.store import ConversationStore

router = APIRouter(prefix="/aichat", tags=["AI Chat"])

# Identity is resolved first so unauthenticated calls never reach the store
user_dep = Annotated[str, Depends(get_current_user_id)]
db_dep = Annotated[AsyncSession, Depends(get_db)]
model_dep = Annotated[ModelClient, Depends(get_model_client)]


@router.post("/completions", response_model=schemas.CompletionEnvelope)
async def chat_completion(
    user_id: user_dep,
    payload: schemas.ChatCompletionRequest,
    db: db_dep,
    client: model_dep,
):
    """
    Answer a finance question about the current user's data.

    Pipeline failures come back as a normal assistant reply; only a fault the
    gateway cannot absorb (store down at the first insert) is a 500.
    """
    try:
        gateway = ChatGateway(db, client)
        reply = await gateway.handle(user_id, payload.message, payload.conversation_id)
    except Exception as error:
        await db.rollback()
        logging.error(f"Chat API error: {error}")
        raise HTTPException(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
        )

    return {
        "data": schemas.ChatCompletionResponse(
            response=reply.response,
            conversation_id=reply.conversation_id,
            message_id=reply.message_id,
        )
    }


@router.get("/conversations", response_model=schemas.ConversationListResponse)
async def list_conversations(user_id: user_dep, db: db_dep):
    """One entry per conversation of the current user, newest first."""
    conversations = await ConversationStore(db).list_conversations(user_id)
    return {"data": conversations}

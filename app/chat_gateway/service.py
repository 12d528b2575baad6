"""Chat gateway orchestration.

Flow:
1. Persist the user turn
2. Classify relevance (off-topic -> canned reply)
3. Load and normalize history
4. Synthesize a candidate SQL query
5. Extract and repair it
6. Execute it under the read-only, user-scoped policy
7. Narrate the rows
8. Persist the assistant turn

Every stage after classification can fail; each failure ends in its own
terminal state with a persisted assistant reply instead of an HTTP error.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.schemas import ChatRole
from app.chat_gateway.classifier import RelevanceClassifier, default_classifier
from app.chat_gateway.errors import (
    MalformedQuery,
    ModelUnavailable,
    QueryExecutionError,
    RejectedQuery,
)
from app.chat_gateway.executor import execute_safe_query
from app.chat_gateway.history import normalize_history
from app.chat_gateway.llm_client import ModelClient
from app.chat_gateway.narrator import ResponseNarrator, fallback_summary
from app.chat_gateway.sql_extractor import extract_sql
from app.chat_gateway.store import ConversationStore, new_id
from app.chat_gateway.synthesizer import QuerySynthesizer

logger = logging.getLogger(__name__)


class GatewayState(str, Enum):
    """Pipeline states; the last six are terminal."""

    RECEIVED = "received"
    CLASSIFIED = "classified"
    HISTORY_LOADED = "history_loaded"
    QUERY_SYNTHESIZED = "query_synthesized"
    EXTRACTED = "extracted"
    EXECUTED = "executed"
    NARRATED = "narrated"

    ANSWERED = "answered"
    OFF_TOPIC = "off_topic"
    MODEL_UNAVAILABLE = "model_unavailable"
    MALFORMED_QUERY = "malformed_query"
    EXECUTION_ERROR = "execution_error"
    NARRATION_FALLBACK = "narration_fallback"


OFF_TOPIC_REPLY = (
    "I'm a financial assistant designed to help you analyze your transactions, "
    "accounts, and spending patterns. I can help you with:\n\n"
    "• Viewing your transaction history\n"
    "• Analyzing spending by category\n"
    "• Checking account balances\n"
    "• Understanding your income and expenses\n"
    "• Creating financial reports\n\n"
    "Please ask me something about your finances!"
)
MODEL_UNAVAILABLE_REPLY = (
    "I'm having trouble processing your request. "
    "Please try asking your question again."
)
MALFORMED_QUERY_REPLY = (
    "I couldn't generate a proper query for your request. "
    "Please try rephrasing your question."
)
EXECUTION_ERROR_REPLY = (
    "I encountered an error while fetching your data. "
    "Please try rephrasing your question."
)


@dataclass
class ChatReply:
    response: str
    conversation_id: str
    message_id: str
    state: GatewayState


class ChatGateway:
    """
    Runs one chat request through the pipeline.

    Stateless across requests: a gateway is built per request around that
    request's session and model client.
    """

    def __init__(
        self,
        db: AsyncSession,
        client: ModelClient,
        classifier: Optional[RelevanceClassifier] = None,
        history_limit: Optional[int] = None,
    ):
        self.store = ConversationStore(db)
        self.db = db
        self.classifier = classifier or default_classifier
        self.synthesizer = QuerySynthesizer(client)
        self.narrator = ResponseNarrator(client)
        self.history_limit = history_limit or settings.CHAT_HISTORY_LIMIT
        self.trail: List[GatewayState] = []

    def _enter(self, state: GatewayState):
        self.trail.append(state)

    async def _reply(
        self, state: GatewayState, user_id: str, conversation_id: str, text: str
    ) -> ChatReply:
        """The single terminal action: persist one assistant turn and return it."""
        self._enter(state)
        message = await self.store.save_message(
            user_id, conversation_id, ChatRole.ASSISTANT, text
        )
        return ChatReply(
            response=text,
            conversation_id=conversation_id,
            message_id=message.id,
            state=state,
        )

    async def _load_history(
        self, user_id: str, conversation_id: str, is_new: bool
    ) -> List[Dict[str, str]]:
        # A new conversation only holds the turn just saved
        if is_new:
            return []
        turns = await self.store.recent_turns(
            user_id, conversation_id, limit=self.history_limit
        )
        return normalize_history(turns)

    async def handle(
        self, user_id: str, message: str, conversation_id: Optional[str] = None
    ) -> ChatReply:
        is_new = not conversation_id
        if conversation_id and await self.store.belongs_to_other_user(
            user_id, conversation_id
        ):
            # Conversation ids are never shared between users
            logger.warning(
                f"User {user_id} sent a foreign conversation id, starting a new one"
            )
            is_new = True
            conversation_id = None
        conversation_id = conversation_id or new_id()

        await self.store.save_message(user_id, conversation_id, ChatRole.USER, message)
        self._enter(GatewayState.RECEIVED)

        verdict = self.classifier.classify(message)
        self._enter(GatewayState.CLASSIFIED)
        if not verdict.is_relevant:
            logger.info(
                f"Off-topic message in conversation {conversation_id} "
                f"(confidence {verdict.confidence})"
            )
            return await self._reply(
                GatewayState.OFF_TOPIC, user_id, conversation_id, OFF_TOPIC_REPLY
            )

        history = await self._load_history(user_id, conversation_id, is_new)
        self._enter(GatewayState.HISTORY_LOADED)

        try:
            candidate = await self.synthesizer.synthesize(user_id, history, message)
        except ModelUnavailable as error:
            logger.error(f"Query synthesis failed: {error.message}")
            return await self._reply(
                GatewayState.MODEL_UNAVAILABLE,
                user_id,
                conversation_id,
                MODEL_UNAVAILABLE_REPLY,
            )
        self._enter(GatewayState.QUERY_SYNTHESIZED)

        try:
            query = extract_sql(candidate)
        except MalformedQuery as error:
            logger.error(f"SQL extraction error: {error.message}")
            return await self._reply(
                GatewayState.MALFORMED_QUERY,
                user_id,
                conversation_id,
                MALFORMED_QUERY_REPLY,
            )
        self._enter(GatewayState.EXTRACTED)

        try:
            rows = await execute_safe_query(self.db, query, user_id)
        except RejectedQuery as error:
            logger.warning(f"Generated query rejected: {error.message}")
            return await self._reply(
                GatewayState.EXECUTION_ERROR,
                user_id,
                conversation_id,
                EXECUTION_ERROR_REPLY,
            )
        except QueryExecutionError as error:
            logger.error(f"SQL execution error: {error.message}")
            return await self._reply(
                GatewayState.EXECUTION_ERROR,
                user_id,
                conversation_id,
                EXECUTION_ERROR_REPLY,
            )
        self._enter(GatewayState.EXECUTED)

        try:
            answer = await self.narrator.narrate(message, rows)
        except ModelUnavailable as error:
            logger.error(f"Narration failed, falling back to raw rows: {error.message}")
            return await self._reply(
                GatewayState.NARRATION_FALLBACK,
                user_id,
                conversation_id,
                fallback_summary(rows),
            )
        self._enter(GatewayState.NARRATED)

        return await self._reply(GatewayState.ANSWERED, user_id, conversation_id, answer)

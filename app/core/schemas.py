from datetime import datetime
from typing import Optional, List, Generic, TypeVar
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


# =========================
# Enums
# =========================
class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


# =========================
# Envelope
# =========================
class CamelModel(BaseModel):
    # The chat widget speaks camelCase, Python code keeps snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DataResponse(BaseModel, Generic[T]):
    data: T


# =========================
# AI CHAT
# =========================
class ChatCompletionRequest(CamelModel):
    message: str = Field(min_length=1)
    conversation_id: Optional[str] = None


class ChatCompletionResponse(CamelModel):
    response: str
    conversation_id: str
    message_id: str


class ConversationSummary(CamelModel):
    conversation_id: str
    last_message: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


ConversationListResponse = DataResponse[List[ConversationSummary]]
CompletionEnvelope = DataResponse[ChatCompletionResponse]

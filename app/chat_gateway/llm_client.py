"""
Model Client - the one capability both model calls of the chat pipeline use.

Speaks the OpenAI-compatible chat completions protocol
(request {model, messages, temperature, max_tokens, stream}, response
{choices: [{message: {content}}]}). Every failure mode surfaces as
ModelUnavailable so callers only handle one fault.
"""
import logging
from typing import Dict, List, Optional

import httpx

from app.core.config import settings
from app.chat_gateway.errors import ModelUnavailable

logger = logging.getLogger(__name__)


class ModelClient:
    """
    Chat completion client for the hosted language model.

    Args:
        api_url: Full chat completions URL.
        api_key: Bearer token for the model provider.
        model: Model name sent with every request.
        timeout: Seconds before an HTTP call is abandoned.
        max_tokens: Default output budget.
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        max_tokens: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url or settings.AI_API_URL
        self.api_key = api_key or settings.AI_API_KEY
        self.model = model or settings.AI_MODEL
        self.timeout = timeout or settings.AI_TIMEOUT_SECONDS
        self.max_tokens = max_tokens or settings.AI_MAX_TOKENS
        self.transport = transport

    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.1,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Send a chat completion request and return the assistant content.

        Raises:
            ModelUnavailable: non-2xx response, transport failure, or a body
                without choices[0].message.content.
        """
        shape = [(m["role"], len(m["content"])) for m in messages]
        logger.debug(f"Model request (role, content length): {shape}")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                resp = await client.post(
                    self.api_url,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "model": self.model,
                        "messages": messages,
                        "temperature": temperature,
                        "max_tokens": max_tokens or self.max_tokens,
                        "stream": False,
                    },
                )
        except httpx.HTTPError as error:
            logger.error(f"Model request failed: {error!r}")
            raise ModelUnavailable(f"Model request failed: {error}") from error

        if not resp.is_success:
            logger.error(
                f"Model API error: status={resp.status_code} body={resp.text[:500]}"
            )
            raise ModelUnavailable(
                f"Model API returned {resp.status_code}", status_code=resp.status_code
            )

        try:
            data = resp.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as error:
            logger.error(f"Unexpected model response shape: {error!r}")
            raise ModelUnavailable("Unexpected model response") from error

        if not isinstance(content, str):
            raise ModelUnavailable("Model returned no content")
        return content


def get_model_client() -> ModelClient:
    """FastAPI dependency, overridden in tests with a scripted client."""
    return ModelClient()

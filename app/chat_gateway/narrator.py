import json
from typing import Any, Dict, List, Sequence

from app.core.config import settings
from app.chat_gateway.llm_client import ModelClient


NARRATION_SYSTEM_PROMPT = """You are a friendly financial assistant. Convert database query results into clear, conversational responses.

Guidelines:
- Format currency with {currency} symbol and 2 decimal places
- Use clear, simple language
- Highlight key insights
- If the result is empty, provide a helpful message
- Keep responses concise but informative"""


def rows_to_json(rows: Any, indent=None) -> str:
    # Dates and Decimals come back from the driver as objects
    return json.dumps(rows, indent=indent, default=str, ensure_ascii=False)


def build_narration_messages(
    message: str, rows: Sequence[Dict[str, Any]]
) -> List[Dict[str, str]]:
    return [
        {
            "role": "system",
            "content": NARRATION_SYSTEM_PROMPT.format(currency=settings.CURRENCY_SYMBOL),
        },
        {
            "role": "user",
            "content": (
                f'User asked: "{message}"\n\n'
                f"Query results: {rows_to_json(list(rows), indent=2)}\n\n"
                "Provide a natural, helpful response based on this data."
            ),
        },
    ]


def fallback_summary(rows: Sequence[Dict[str, Any]]) -> str:
    """Deterministic answer used when the narration call fails."""
    summary = f"I found {len(rows)} result(s) for your query."
    if rows:
        summary += f" {rows_to_json(rows[0])}"
    return summary


class ResponseNarrator:
    """Turns query rows back into prose with a second model call."""

    def __init__(self, client: ModelClient):
        self.client = client

    async def narrate(self, message: str, rows: Sequence[Dict[str, Any]]) -> str:
        return await self.client.complete(
            build_narration_messages(message, rows),
            temperature=settings.AI_NARRATION_TEMPERATURE,
            max_tokens=settings.AI_MAX_TOKENS,
        )

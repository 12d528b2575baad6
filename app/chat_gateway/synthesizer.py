from typing import Dict, List, Sequence

from app.core.config import settings
from app.chat_gateway.llm_client import ModelClient


SQL_SYSTEM_PROMPT = """You are a financial database query generator. You MUST generate PostgreSQL queries for this schema:

TABLES:
- accounts (id, name, user_id)
- categories (id, name, user_id)
- transactions (id, amount, payee, notes, date, account_id, category_id)

CRITICAL REQUIREMENTS:
1. Generate EXACTLY ONE SELECT query - never multiple queries
2. ALWAYS include WHERE clause with user_id = '{user_id}'
3. When joining tables, ensure proper user_id filters on ALL joined tables
4. Amount is stored in cents (integer), divide by 100 for dollars
5. Use proper PostgreSQL syntax with correct clause order: SELECT ... FROM ... JOIN ... WHERE ... GROUP BY ... ORDER BY ... LIMIT
6. NEVER duplicate WHERE clauses
7. DO NOT include markdown formatting, backticks, or code blocks
8. Return ONLY the raw SQL query text - no explanations
9. Never include semicolons at the end
10. Response must be a single line with no line breaks

IMPORTANT SQL RULES:
- WHERE clause comes AFTER all JOINs and BEFORE GROUP BY
- Only ONE WHERE clause per query
- When joining multiple tables, put all conditions in a single WHERE clause using AND
- For transactions table, join accounts table and filter: WHERE a.user_id = '{user_id}'
- For categories table when joined, add: AND c.user_id = '{user_id}'

Example query:
- Expenses by category: SELECT c.name as category, SUM(t.amount)/100.0 as total FROM transactions t JOIN accounts a ON t.account_id = a.id JOIN categories c ON t.category_id = c.id WHERE a.user_id = '{user_id}' AND c.user_id = '{user_id}' AND t.amount < 0 GROUP BY c.name ORDER BY total DESC

REMEMBER: Return EXACTLY ONE syntactically correct SQL query."""


def build_query_messages(
    user_id: str, history: Sequence[Dict[str, str]], message: str
) -> List[Dict[str, str]]:
    """System instruction scoped to the user, then prior turns, then the new question."""
    return [
        {"role": "system", "content": SQL_SYSTEM_PROMPT.format(user_id=user_id)},
        *history,
        {"role": "user", "content": message},
    ]


class QuerySynthesizer:
    """Asks the model to translate a question into one candidate SELECT."""

    def __init__(self, client: ModelClient):
        self.client = client

    async def synthesize(
        self, user_id: str, history: Sequence[Dict[str, str]], message: str
    ) -> str:
        # ModelUnavailable propagates to the gateway
        content = await self.client.complete(
            build_query_messages(user_id, history, message),
            temperature=settings.AI_QUERY_TEMPERATURE,
            max_tokens=settings.AI_MAX_TOKENS,
        )
        return content.strip()

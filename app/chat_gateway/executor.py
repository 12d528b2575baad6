import logging
from typing import Any, Dict, List

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.chat_gateway.errors import QueryExecutionError, RejectedQuery
from app.chat_gateway.sql_extractor import strip_code_fences

logger = logging.getLogger(__name__)


FORBIDDEN_KEYWORDS = (
    "insert",
    "update",
    "delete",
    "drop",
    "create",
    "alter",
    "truncate",
    "exec",
    "execute",
)


def check_query_policy(query: str, user_id: str) -> str:
    """
    Apply the read-only, user-scoped policy and return the statement to run.

    The user check is a literal substring test: it proves the caller's id
    appears somewhere in the text, not that every table is filtered by it.

    Raises:
        RejectedQuery: first violated rule wins.
    """
    clean_query = strip_code_fences(query)
    lower_query = clean_query.lower()

    if not lower_query.startswith("select"):
        raise RejectedQuery("Only SELECT queries are allowed")

    # Substring match on purpose: also catches keywords inside aliases
    for keyword in FORBIDDEN_KEYWORDS:
        if keyword in lower_query:
            raise RejectedQuery(f"Forbidden operation: {keyword}")

    if user_id not in clean_query:
        raise RejectedQuery("Query must include user_id filter for security")

    return clean_query


async def execute_safe_query(
    db: AsyncSession, query: str, user_id: str
) -> List[Dict[str, Any]]:
    """
    Run a generated SELECT for one user and return the rows as dicts.

    On PostgreSQL the statement runs in a READ ONLY transaction. The
    transaction is always rolled back so nothing the statement did survives
    and the session is clean for the next insert.

    Raises:
        RejectedQuery: the statement fails the policy check, nothing is run.
        QueryExecutionError: the store failed while running it.
    """
    clean_query = check_query_policy(query, user_id)
    logger.info(f"Executing generated query: {clean_query}")

    # SET TRANSACTION must be the first statement of its transaction
    if db.in_transaction():
        await db.commit()

    try:
        bind = db.bind
        if bind is not None and bind.dialect.name == "postgresql":
            await db.execute(text("SET TRANSACTION READ ONLY"))

        # Escaped so ":word" inside literals is not read as a bind parameter
        result = await db.execute(text(clean_query.replace(":", r"\:")))
        rows = [dict(row._mapping) for row in result]
    except SQLAlchemyError as error:
        logger.error(f"Query execution error: {error}")
        raise QueryExecutionError(f"Query execution failed: {error}") from error
    finally:
        await db.rollback()

    return rows

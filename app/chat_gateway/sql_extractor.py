import re
import logging
from typing import Dict

from app.chat_gateway.errors import MalformedQuery

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# SQL EXTRACTOR / REPAIRER
# Purpose: reduce raw model output to one clause-ordered SELECT statement.
# Not a parser: it accepts a narrow dialect and drops everything else.
# Pure string -> string, no store or model needed to test it.
# -----------------------------------------------------------------------------

FENCE_OPEN = re.compile(r"^```(?:sql)?\s*", re.IGNORECASE)
FENCE_CLOSE = re.compile(r"\s*```$")

SELECT_BOUNDARY = re.compile(r"(?=\bSELECT\b)", re.IGNORECASE)

CONTINUATION = (
    r"(?:FROM|WHERE|JOIN|INNER|LEFT|RIGHT|FULL|GROUP|ORDER|HAVING"
    r"|LIMIT|OFFSET|UNION|INTERSECT|EXCEPT)\b"
)

# Where trailing prose starts, tried in order
END_PATTERNS = (
    re.compile(r"\n(?!\s*" + CONTINUATION + ")", re.IGNORECASE),
    re.compile(r";.*", re.DOTALL),
    re.compile(
        r"(?<=\))[ \t]*\n(?!\s*" + CONTINUATION + ").*", re.IGNORECASE | re.DOTALL
    ),
)

STRICT_SELECT = re.compile(r"^(SELECT[^;]+(?:;|$))", re.IGNORECASE)

JOIN_START = r"\b(?:(?:INNER|LEFT|RIGHT|FULL)\s+(?:OUTER\s+)?)?JOIN\b"
CLAUSE_FLAGS = re.IGNORECASE | re.DOTALL


def _until(*keywords: str) -> str:
    return r".*?(?=" + "|".join(keywords) + r"|$)"


WHERE, GROUP, ORDER, LIMIT = r"\bWHERE\b", r"\bGROUP\b", r"\bORDER\b", r"\bLIMIT\b"

# Each fragment stops where any other clause starts; canonical order is the dict order
CLAUSE_PATTERNS: Dict[str, re.Pattern] = {
    "select": re.compile(r"^SELECT\s+.*?(?=\bFROM\b)", CLAUSE_FLAGS),
    "from": re.compile(
        r"\bFROM\s+" + _until(JOIN_START, WHERE, GROUP, ORDER, LIMIT), CLAUSE_FLAGS
    ),
    "join": re.compile(
        r"(?:"
        + JOIN_START
        + r"\s+"
        + _until(JOIN_START, WHERE, GROUP, ORDER, LIMIT)
        + ")+",
        CLAUSE_FLAGS,
    ),
    "where": re.compile(
        r"\bWHERE\s+" + _until(JOIN_START, GROUP, ORDER, LIMIT), CLAUSE_FLAGS
    ),
    "group_by": re.compile(r"\bGROUP\s+BY\s+" + _until(WHERE, ORDER, LIMIT), CLAUSE_FLAGS),
    "order_by": re.compile(r"\bORDER\s+BY\s+" + _until(WHERE, GROUP, LIMIT), CLAUSE_FLAGS),
    "limit": re.compile(r"\bLIMIT\s+\d+", CLAUSE_FLAGS),
}


def strip_code_fences(text: str) -> str:
    text = text.strip()
    text = FENCE_OPEN.sub("", text)
    text = FENCE_CLOSE.sub("", text)
    return text.strip()


def first_select_statement(sql: str) -> str:
    """Keep the first segment that starts with SELECT, trimmed of trailing prose."""
    segments = [s.strip() for s in SELECT_BOUNDARY.split(sql) if s.strip()]
    if not segments:
        return sql

    sql = next(
        (s for s in segments if s.lower().startswith("select")), segments[0]
    )

    for pattern in END_PATTERNS:
        match = pattern.search(sql)
        if match and match.start():
            sql = sql[: match.start()]
            break

    return sql


def drop_where_after_order_by(sql: str) -> str:
    """Models sometimes repeat the user filter after ORDER BY; cut it off."""
    lower_sql = sql.lower()
    order_by_index = lower_sql.rfind("order by")
    if order_by_index > -1:
        where_index = lower_sql.find("where", order_by_index)
        if where_index > -1:
            return sql[:where_index]
    return sql


def reorder_clauses(sql: str) -> str:
    """
    Rebuild the statement from its SELECT, FROM, JOIN, WHERE, GROUP BY,
    ORDER BY and LIMIT fragments in canonical order.

    Anything outside these fragments is discarded.
    """
    fragments = []
    for pattern in CLAUSE_PATTERNS.values():
        match = pattern.search(sql)
        if match and match.group(0).strip():
            fragments.append(match.group(0).strip())
    return " ".join(fragments)


def extract_sql(raw_output: str) -> str:
    """
    Extract one well-formed SELECT from raw model output.

    Idempotent on canonical single-line input. The result starts with SELECT
    and contains the select keyword exactly once.

    Raises:
        MalformedQuery: when no SELECT can be recovered.
    """
    sql = strip_code_fences(raw_output)
    sql = first_select_statement(sql)

    strict = STRICT_SELECT.match(sql)
    if strict:
        sql = strict.group(1).strip()
        if sql.endswith(";"):
            sql = sql[:-1]
    else:
        first_line = sql.split("\n")[0]
        if first_line.lower().startswith("select"):
            sql = first_line

    sql = drop_where_after_order_by(sql)
    sql = reorder_clauses(sql).strip()

    if not sql.lower().startswith("select"):
        logger.warning("Model output did not contain a usable SELECT statement")
        raise MalformedQuery("Invalid query format - must start with SELECT")

    # A nested or second statement survives reordering inside a fragment
    second_select = sql.lower().find("select", 6)
    if second_select > 0:
        sql = sql[:second_select].strip()

    return sql

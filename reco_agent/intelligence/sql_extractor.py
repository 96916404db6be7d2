"""
Extraction of SQL statements embedded in free-form model answers.

Extraction tries an ordered list of matchers and keeps the first hit:
a ```sql fenced block, then any fenced block, then the first bare
statement terminated by a semicolon. A looser matcher (first SELECT up to
the end of the text) is only used when all of those fail.
"""

import logging
import re
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

Matcher = Callable[[str], Optional[str]]

SQL_FENCE_PATTERN = re.compile(r"```sql\s*([\s\S]*?)```", re.IGNORECASE)
CODE_FENCE_PATTERN = re.compile(r"```\s*([\s\S]*?)```")
STATEMENT_PATTERN = re.compile(r"\b(?:SELECT|INSERT|UPDATE|DELETE)\b[\s\S]*?;", re.IGNORECASE)
LOOSE_SELECT_PATTERN = re.compile(r"\bSELECT\b[\s\S]*", re.IGNORECASE)


def _captured(pattern: re.Pattern, group: int = 1) -> Matcher:
    def match(text: str) -> Optional[str]:
        found = pattern.search(text)
        if not found:
            return None
        captured = found.group(group).strip()
        return captured or None

    return match


match_sql_fence = _captured(SQL_FENCE_PATTERN)
match_code_fence = _captured(CODE_FENCE_PATTERN)
match_statement = _captured(STATEMENT_PATTERN, group=0)
match_loose_select = _captured(LOOSE_SELECT_PATTERN, group=0)

PRIMARY_MATCHERS: List[Matcher] = [match_sql_fence, match_code_fence, match_statement]


def extract_sql(text: str) -> Optional[str]:
    """
    Find the first SQL statement in a model answer.

    Args:
        text: Free-form answer text

    Returns:
        The trimmed statement, or None when no pattern matches
    """
    if not text:
        return None
    for matcher in PRIMARY_MATCHERS:
        sql = matcher(text)
        if sql:
            return sql
    return None


def fallback_extract_sql(text: str) -> Optional[str]:
    """Take everything from the first SELECT keyword to the end of the text."""
    if not text:
        return None
    return match_loose_select(text)


def extract_candidate_sql(text: str) -> Optional[str]:
    """Primary extraction, then the loose fallback."""
    sql = extract_sql(text)
    if sql is None:
        sql = fallback_extract_sql(text)
        if sql is not None:
            logger.info("SQL recovered by loose extraction (no terminator)")
    return sql

"""
Safety gate applied to candidate SQL before execution.
Rejects statements the model visibly truncated with ellipsis markers.
"""

import logging
from typing import List, Optional

import sqlparse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ValidatorConfig(BaseModel):
    """SQL validator configuration."""
    # Markers left behind when the model abbreviates instead of writing SQL
    forbidden_markers: List[str] = ["..", "…"]
    single_statement: bool = False


class SQLValidator:
    """Lightweight textual checks on candidate SQL. Does not parse SQL grammar."""

    def __init__(self, config: Optional[ValidatorConfig] = None):
        self.config = config or ValidatorConfig()

    def validate(self, sql: str) -> tuple[bool, Optional[str]]:
        """
        Validate a candidate SQL statement.

        Args:
            sql: Candidate SQL statement

        Returns:
            Tuple of (is_valid, rejection_reason)
        """
        if not sql or not sql.strip():
            return False, "SQL query is empty"

        for marker in self.config.forbidden_markers:
            if marker in sql:
                logger.warning(f"Candidate SQL contains truncation marker {marker!r}")
                return False, "The SQL query contains ellipses (…)."

        if self.config.single_statement:
            statements = [s for s in sqlparse.split(sql) if s.strip().strip(";").strip()]
            if len(statements) > 1:
                logger.warning(f"Candidate SQL holds {len(statements)} statements")
                return False, f"Expected a single SQL statement, found {len(statements)}"

        return True, None

"""
Conversion of query results into recommended formation ids.
"""

import json
import logging
import math
from decimal import Decimal
from typing import Any, List, Optional

from ..data.models import ExecuteQueryResponse

logger = logging.getLogger(__name__)


def _to_int(value: Any) -> Optional[int]:
    """Truncate a numeric value (or numeric-looking string) toward zero."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        if isinstance(value, Decimal) and not value.is_finite():
            return None
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return _to_int(float(text))
        except ValueError:
            return None
    return None


def _first_column(row: Any) -> Any:
    # Rows are positional, as decoded by ExecuteQueryResponse.from_payload
    if isinstance(row, (list, tuple)) and row:
        return row[0]
    return None


def parse_first_column_ids(response: ExecuteQueryResponse) -> List[int]:
    """
    Read the first column of every row as an integer id.

    Rows whose first column is missing or non-numeric are skipped.

    Args:
        response: Result of a query execution

    Returns:
        Ordered list of ids, empty when there are no usable rows
    """
    ids = []
    skipped = 0
    for row in response.rows or []:
        value = _to_int(_first_column(row))
        if value is None:
            skipped += 1
            continue
        ids.append(value)

    if skipped:
        logger.debug(f"Skipped {skipped} row(s) without a numeric first column")
    return ids


def _stringify(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    if isinstance(value, dict):
        return json.dumps(value, sort_keys=True, ensure_ascii=False, separators=(",", ":"), default=str)
    if isinstance(value, (list, tuple)):
        return json.dumps(list(value), ensure_ascii=False, separators=(",", ":"), default=str)
    return str(value)


def stringify_results(response: ExecuteQueryResponse) -> List[List[str]]:
    """Render rows as text for diagnostic display."""
    if not response.rows:
        if response.message:
            return [[response.message]]
        if response.changes is not None:
            return [[f"{response.changes} row(s) affected"]]
        return []
    return [
        [_stringify(value) for value in row] if isinstance(row, (list, tuple)) else [_stringify(row)]
        for row in response.rows
    ]

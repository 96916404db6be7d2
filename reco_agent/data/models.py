"""
Wire model of the Query Execution Service response.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ExecuteQueryResponse:
    """Rows returned by a query, plus the backend's optional message/changes."""
    rows: List[List[Any]] = field(default_factory=list)
    message: Optional[str] = None
    changes: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ExecuteQueryResponse":
        """
        Build a response from the decoded JSON body.

        Args:
            payload: Decoded body, e.g. {"results": [[1, "x"]], "message": null}

        Raises:
            ValueError: If the payload does not have the expected shape
        """
        if not isinstance(payload, dict):
            raise ValueError(f"expected a JSON object, got {type(payload).__name__}")

        results = payload.get("results")
        if results is None:
            results = []
        if not isinstance(results, list) or not all(isinstance(r, list) for r in results):
            raise ValueError("'results' must be a list of rows")

        message = payload.get("message")
        if message is not None and not isinstance(message, str):
            raise ValueError("'message' must be a string")

        changes = payload.get("changes")
        if changes is not None and (isinstance(changes, bool) or not isinstance(changes, int)):
            raise ValueError("'changes' must be an integer")

        return cls(rows=results, message=message, changes=changes)

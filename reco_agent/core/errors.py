"""
Error taxonomy for the recommendation pipeline.
Every failure a stage can produce is one of these, tagged with an ErrorKind.
"""

from enum import Enum
from typing import List, Optional


class ErrorKind(Enum):
    """Kinds of failure an attempt can end with."""
    NO_SQL_FOUND = "no_sql_found"
    ELLIPSIS_REJECTED = "ellipsis_rejected"
    EMPTY_RESULT = "empty_result"
    SERVICE_ERROR = "service_error"
    FALLBACK_EXHAUSTED = "fallback_exhausted"


class RecommendationError(Exception):
    """Base class for pipeline failures."""

    kind: ErrorKind = ErrorKind.SERVICE_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class NoSQLFoundError(RecommendationError):
    kind = ErrorKind.NO_SQL_FOUND

    def __init__(self, message: str = "No SQL query found in the answer."):
        super().__init__(message)


class EllipsisRejectedError(RecommendationError):
    kind = ErrorKind.ELLIPSIS_REJECTED

    def __init__(self, message: str = "The SQL query contains ellipses (…)."):
        super().__init__(message)


class EmptyResultError(RecommendationError):
    kind = ErrorKind.EMPTY_RESULT

    def __init__(self, message: str = "Empty result (no formation recommended)."):
        super().__init__(message)


class FallbackExhaustedError(RecommendationError):
    kind = ErrorKind.FALLBACK_EXHAUSTED

    def __init__(self, message: str = "Fallback SQL returned 0 rows."):
        super().__init__(message)


class ServiceError(RecommendationError):
    """
    Transport or backend failure from an external service.

    The message carries the backend's own error text so the retry policy
    can classify it.
    """
    kind = ErrorKind.SERVICE_ERROR

    @classmethod
    def unreachable(cls, service: str, candidates: List[str]) -> "ServiceError":
        return cls(f"{service} not reachable. Tried: {', '.join(candidates)}")

    @classmethod
    def bad_status(cls, status_code: int, body: str) -> "ServiceError":
        return cls(f"HTTP {status_code}: {body}")

    @classmethod
    def decode_failed(cls, why: str, payload: Optional[str]) -> "ServiceError":
        return cls(f"Decode failed: {why}\nPayload:\n{payload}")


class ServiceTimeoutError(ServiceError):
    """A service call did not complete within its time budget."""

    def __init__(self, operation: str, timeout: float):
        super().__init__(f"{operation} timed out after {timeout:g}s")
        self.operation = operation
        self.timeout = timeout

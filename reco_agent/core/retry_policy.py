"""
Retry classification for failed recommendation attempts.
Decides whether a failure deserves a second, guided attempt or should go
straight to the deterministic fallback query.
"""

import logging
from typing import Iterable, List, Optional

from .errors import ErrorKind, RecommendationError

logger = logging.getLogger(__name__)


# Known backend/type-system errors that a better prompt usually fixes
DEFAULT_RETRYABLE_SIGNATURES: List[str] = [
    "jsonb_array_elements_text(json) does not exist",
    "function jsonb_array_elements_text",
    "could not identify an equality operator for type json",
    'syntax error at or near ".."',
    "syntax error at or near '…'",
    "unterminated",
    "bad request",
    "timed out",
]


class RetryPolicy:
    """
    Matches failure messages against a configurable set of error signatures.

    Only service failures are matched. No-SQL, ellipsis and empty-result
    failures never retry, whatever signatures are configured.
    """

    # Failure kinds checked against the signatures
    RETRYABLE_KINDS = {ErrorKind.SERVICE_ERROR}

    def __init__(self, signatures: Optional[Iterable[str]] = None):
        """
        Initialize the retry policy.

        Args:
            signatures: Case-insensitive substrings marking a retryable error.
                Defaults to DEFAULT_RETRYABLE_SIGNATURES.
        """
        if signatures is None:
            signatures = DEFAULT_RETRYABLE_SIGNATURES
        self.signatures = [s.lower() for s in signatures if s and s.strip()]

    def matches(self, message: str) -> Optional[str]:
        """Return the first signature found in `message`, if any."""
        lower = message.lower()
        for signature in self.signatures:
            if signature in lower:
                return signature
        return None

    def should_retry(self, error: RecommendationError) -> bool:
        """
        Decide whether a first-attempt failure escalates to a guided retry.

        Args:
            error: The failure raised by the attempt

        Returns:
            True for a retryable service failure, False to go to fallback
        """
        if error.kind not in self.RETRYABLE_KINDS:
            logger.info(f"Not retrying {error.kind.value} failure")
            return False

        signature = self.matches(str(error))
        if signature:
            logger.info(f"Retryable error signature matched: {signature!r}")
            return True

        logger.info("Service error did not match any retryable signature")
        return False

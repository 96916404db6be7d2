"""Core application logic."""
from .agent import RecommendationAgent
from .errors import (
    EllipsisRejectedError,
    EmptyResultError,
    ErrorKind,
    FallbackExhaustedError,
    NoSQLFoundError,
    RecommendationError,
    ServiceError,
    ServiceTimeoutError,
)
from .models import AttemptRecord, AttemptStage, RecommendationOutcome, RecommendationRequest
from .retry_policy import DEFAULT_RETRYABLE_SIGNATURES, RetryPolicy

__all__ = [
    'RecommendationAgent',
    'RecommendationRequest',
    'RecommendationOutcome',
    'AttemptRecord',
    'AttemptStage',
    'RetryPolicy',
    'DEFAULT_RETRYABLE_SIGNATURES',
    'ErrorKind',
    'RecommendationError',
    'NoSQLFoundError',
    'EllipsisRejectedError',
    'EmptyResultError',
    'ServiceError',
    'ServiceTimeoutError',
    'FallbackExhaustedError',
]

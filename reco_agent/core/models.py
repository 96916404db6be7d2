"""
Request, outcome and attempt records for the recommendation agent.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .errors import ErrorKind


class AttemptStage(Enum):
    """Stages a single recommendation run may pass through."""
    SIMPLE = "simple"
    GUIDED = "guided"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class RecommendationRequest:
    """Ask for `top_k` formations for user `user_id`."""
    user_id: int
    top_k: int

    def __post_init__(self):
        if isinstance(self.user_id, bool) or not isinstance(self.user_id, int):
            raise ValueError(f"user_id must be an integer, got {self.user_id!r}")
        if isinstance(self.top_k, bool) or not isinstance(self.top_k, int):
            raise ValueError(f"top_k must be an integer, got {self.top_k!r}")
        if self.top_k < 1:
            raise ValueError(f"top_k must be >= 1, got {self.top_k}")


@dataclass
class AttemptRecord:
    """Diagnostic trace of one stage."""
    stage: AttemptStage
    sql: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error_kind is None


@dataclass
class RecommendationOutcome:
    """
    Result of one orchestration run.

    After a completed run exactly one of `recommended_ids` (non-empty)
    or `error` is populated.
    """
    recommended_ids: List[int] = field(default_factory=list)
    last_answer_text: Optional[str] = None
    last_sql: Optional[str] = None
    error: Optional[str] = None
    attempts: List[AttemptRecord] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return bool(self.recommended_ids) and self.error is None

    @property
    def final_stage(self) -> Optional[AttemptStage]:
        return self.attempts[-1].stage if self.attempts else None

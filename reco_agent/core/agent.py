"""
Recommendation agent.
Orchestrates prompt building, completion, SQL extraction, validation, execution
and result parsing, escalating to a guided retry and then to a deterministic
fallback query when generated SQL is unusable.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, Callable, List, Optional, Tuple

from ..intelligence.fallback_query import FallbackQueryBuilder
from ..intelligence.prompts import build_guided_prompt, build_retry_prompt, build_simple_prompt
from ..intelligence.result_parser import parse_first_column_ids
from ..intelligence.sql_extractor import extract_candidate_sql
from ..security.sql_validator import SQLValidator
from .errors import (
    EllipsisRejectedError,
    EmptyResultError,
    FallbackExhaustedError,
    NoSQLFoundError,
    RecommendationError,
    ServiceError,
    ServiceTimeoutError,
)
from .models import AttemptRecord, AttemptStage, RecommendationOutcome, RecommendationRequest
from .retry_policy import RetryPolicy

logger = logging.getLogger(__name__)

ALREADY_RUNNING_MESSAGE = "A recommendation is already in progress"


class RecommendationAgent:
    """
    Formation recommendation agent for one logical session.

    Runs are strictly sequential: Attempt 1 (simple prompt), Attempt 2
    (guided prompt with the first error as a hint, only for retryable
    failures), then the fallback scoring query. A second run cannot start
    while one is in flight.
    """

    def __init__(
        self,
        completion_service,
        query_service,
        retry_policy: Optional[RetryPolicy] = None,
        validator: Optional[SQLValidator] = None,
        fallback_builder: Optional[FallbackQueryBuilder] = None,
        ping_timeout: Optional[float] = 12.0,
        ask_timeout: Optional[float] = 600.0,
        sql_timeout: Optional[float] = 300.0,
    ):
        """
        Initialize the recommendation agent.

        Args:
            completion_service: Prompt-Completion Service (connect() and ask(prompt))
            query_service: Query Execution Service (connect() and execute_sql(sql))
            retry_policy: Classifier for retryable first-attempt failures
            validator: Safety gate applied to candidate SQL
            fallback_builder: Builder of the deterministic fallback query
            ping_timeout: Time budget per candidate endpoint when connecting (None = unbounded)
            ask_timeout: Time budget for one completion call (None = unbounded)
            sql_timeout: Time budget for one query execution (None = unbounded)
        """
        self.completion_service = completion_service
        self.query_service = query_service
        self.retry_policy = retry_policy or RetryPolicy()
        self.validator = validator or SQLValidator()
        self.fallback_builder = fallback_builder or FallbackQueryBuilder()
        self.ping_timeout = ping_timeout
        self.ask_timeout = ask_timeout
        self.sql_timeout = sql_timeout

        self.is_connected = False
        self.endpoints: Optional[Tuple[Any, Any]] = None

        self._in_flight = threading.Lock()
        self._listeners: List[Callable[[RecommendationOutcome], None]] = []
        self._runner = ThreadPoolExecutor(max_workers=2, thread_name_prefix="reco-run")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._in_flight.locked()

    def add_listener(self, listener: Callable[[RecommendationOutcome], None]):
        """Register a callback invoked with every completed outcome."""
        self._listeners.append(listener)

    def connect(self) -> Tuple[Any, Any]:
        """
        Establish connectivity to both services.

        Returns:
            Tuple of (completion endpoint, query endpoint)

        Raises:
            ServiceError: If either service is unreachable
        """
        completion_endpoint = self._call(
            self.completion_service.connect,
            timeout=self._connect_timeout(self.completion_service),
            operation="connect completion service",
        )
        query_endpoint = self._call(
            self.query_service.connect,
            timeout=self._connect_timeout(self.query_service),
            operation="connect query service",
        )
        self.endpoints = (completion_endpoint, query_endpoint)
        self.is_connected = True
        logger.info(f"Connected. Completion: {completion_endpoint}, Query: {query_endpoint}")
        return self.endpoints

    def recommend(self, request: RecommendationRequest, simple_prompt: bool = True) -> RecommendationOutcome:
        """
        Recommend formations for a user.

        Args:
            request: User id and number of formations wanted
            simple_prompt: Start with the simple prompt (False forces the guided one)

        Returns:
            RecommendationOutcome with either recommended ids or an error
        """
        if not self._in_flight.acquire(blocking=False):
            logger.warning("Recommendation requested while another run is in flight")
            return RecommendationOutcome(error=ALREADY_RUNNING_MESSAGE)

        try:
            outcome = self._run(request, simple_prompt)
        finally:
            self._in_flight.release()

        self._publish(outcome)
        return outcome

    def submit(self, request: RecommendationRequest, simple_prompt: bool = True) -> "Future[RecommendationOutcome]":
        """Run `recommend` in the background and return a future of its outcome."""
        return self._runner.submit(self.recommend, request, simple_prompt)

    def close(self):
        """Stop background workers."""
        self._runner.shutdown(wait=False)

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _run(self, request: RecommendationRequest, simple_prompt: bool) -> RecommendationOutcome:
        outcome = RecommendationOutcome()
        logger.info(f"Recommending {request.top_k} formation(s) for user {request.user_id}")

        if not self.is_connected:
            try:
                self.connect()
            except RecommendationError as e:
                logger.error(f"Connectivity check failed: {e}")
                self.is_connected = False
                outcome.error = str(e)
                return outcome

        if simple_prompt:
            first_stage = AttemptStage.SIMPLE
            first_prompt = build_simple_prompt(request.user_id, request.top_k)
        else:
            first_stage = AttemptStage.GUIDED
            first_prompt = build_guided_prompt(request.user_id, request.top_k)

        try:
            self._attempt(outcome, first_stage, first_prompt)
            return outcome
        except RecommendationError as first_error:
            if self.retry_policy.should_retry(first_error):
                retry_prompt = build_retry_prompt(request.user_id, request.top_k, str(first_error))
                try:
                    self._attempt(outcome, AttemptStage.GUIDED, retry_prompt)
                    return outcome
                except RecommendationError:
                    logger.info("Guided retry failed, using fallback query")
            else:
                logger.info("First attempt not retryable, using fallback query")

        try:
            self._run_fallback(request, outcome)
        except RecommendationError as e:
            logger.error(f"Recommendation failed for user {request.user_id}: {e}")
            outcome.recommended_ids = []
            outcome.error = str(e)
        return outcome

    def _attempt(self, outcome: RecommendationOutcome, stage: AttemptStage, prompt: str):
        """One pass: ask, extract, validate, execute, parse. Raises on failure."""
        record = AttemptRecord(stage=stage)
        outcome.attempts.append(record)
        logger.info(f"Attempt ({stage.value}) started")

        try:
            answer = self._call(self.completion_service.ask, prompt, timeout=self.ask_timeout, operation="ask")
            outcome.last_answer_text = answer

            sql = extract_candidate_sql(answer)
            if sql is None:
                raise NoSQLFoundError()
            record.sql = sql

            is_valid, reason = self.validator.validate(sql)
            if not is_valid:
                raise EllipsisRejectedError(reason)
            outcome.last_sql = sql

            ids = self._execute(sql)
            if not ids:
                raise EmptyResultError()
        except RecommendationError as e:
            record.error_kind = e.kind
            record.error = str(e)
            logger.warning(f"Attempt ({stage.value}) failed [{e.kind.value}]: {e}")
            raise

        outcome.recommended_ids = ids
        logger.info(f"Attempt ({stage.value}) succeeded with {len(ids)} id(s)")

    def _run_fallback(self, request: RecommendationRequest, outcome: RecommendationOutcome):
        record = AttemptRecord(stage=AttemptStage.FALLBACK)
        outcome.attempts.append(record)

        sql = self.fallback_builder.build(request.user_id, request.top_k)
        record.sql = sql
        outcome.last_sql = sql

        try:
            ids = self._execute(sql)
        except ServiceError as e:
            error = FallbackExhaustedError(f"Fallback SQL failed: {e}")
        else:
            error = None if ids else FallbackExhaustedError()

        if error is not None:
            record.error_kind = error.kind
            record.error = str(error)
            raise error

        outcome.recommended_ids = ids
        logger.info(f"Fallback query succeeded with {len(ids)} id(s)")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _execute(self, sql: str) -> List[int]:
        response = self._call(self.query_service.execute_sql, sql, timeout=self.sql_timeout, operation="execute SQL")
        return parse_first_column_ids(response)

    def _connect_timeout(self, service) -> Optional[float]:
        # Endpoint discovery may probe every candidate, each up to ping_timeout
        if self.ping_timeout is None:
            return None
        candidates = getattr(service, "candidates", None) or [None]
        return self.ping_timeout * len(candidates)

    def _call(self, fn: Callable, *args, timeout: Optional[float], operation: str):
        """
        Call a service with a time budget, normalising failures to ServiceError.

        Each call gets its own daemon thread, so a call abandoned after its
        timeout never delays later calls.
        """
        future: Future = Future()

        def run():
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(fn(*args))
            except BaseException as e:
                future.set_exception(e)

        threading.Thread(target=run, name=f"reco-call-{operation}", daemon=True).start()
        try:
            return future.result(timeout=timeout)
        except FuturesTimeoutError as e:
            logger.warning(f"Abandoning {operation} after {timeout}s")
            raise ServiceTimeoutError(operation, timeout) from e
        except RecommendationError:
            raise
        except Exception as e:
            raise ServiceError(f"{operation} failed: {e}") from e

    def _publish(self, outcome: RecommendationOutcome):
        for listener in list(self._listeners):
            try:
                listener(outcome)
            except Exception:
                logger.exception("Outcome listener raised")

"""
HTTP client for the Query Execution Service.
Executes raw SQL against the dataset pool configured on the query server.
"""

import logging
from typing import List, Optional

import httpx

from ..core.errors import ServiceError
from .http_transport import EndpointResolver, join_url, send
from .models import ExecuteQueryResponse

logger = logging.getLogger(__name__)


class HTTPQueryClient:
    """Client for a query server exposing /get-schema/{uuid} and /execute-query."""

    def __init__(
        self,
        candidates: List[str],
        dataset_uuid: str = "default",
        ping_timeout: float = 12.0,
        sql_timeout: float = 300.0,
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the query client.

        Args:
            candidates: Base URLs to try, in order
            dataset_uuid: Dataset pool identifier on the server
            ping_timeout: Timeout for the connectivity probe
            sql_timeout: Timeout for query execution
            client: httpx client to use (one is created if omitted)
        """
        self.dataset_uuid = dataset_uuid
        self.ping_timeout = ping_timeout
        self.sql_timeout = sql_timeout
        self.client = client or httpx.Client()
        self._endpoint = EndpointResolver("Query server", candidates)

    @property
    def candidates(self) -> List[str]:
        return self._endpoint.candidates

    def connect(self) -> str:
        """Resolve the first reachable server and return its base URL."""
        return self._endpoint.resolve(self._ping)

    def _ping(self, base: str) -> bool:
        url = join_url(base, f"get-schema/{self.dataset_uuid}")
        try:
            send(self.client, "GET", url, timeout=self.ping_timeout)
            return True
        except ServiceError as e:
            logger.debug(f"Ping failed for {base}: {e}")
            return False

    def execute_sql(self, sql: str) -> ExecuteQueryResponse:
        """
        Execute a SQL query on the server.

        Args:
            sql: SQL query to execute

        Returns:
            ExecuteQueryResponse with the returned rows

        Raises:
            ServiceError: On transport failure, error status or bad payload
        """
        base = self.connect()
        url = join_url(base, "execute-query")
        response = send(
            self.client,
            "POST",
            url,
            timeout=self.sql_timeout,
            body={"uuid": self.dataset_uuid, "query": sql},
        )
        try:
            result = ExecuteQueryResponse.from_payload(response.json())
        except ValueError as e:
            raise ServiceError.decode_failed(str(e), response.text) from e

        logger.info(f"Query executed successfully, returned {len(result.rows)} rows")
        return result

    def schema_preview(self) -> str:
        """Fetch the human-readable schema text of the dataset."""
        base = self.connect()
        url = join_url(base, f"get-schema/{self.dataset_uuid}")
        response = send(self.client, "GET", url, timeout=20.0)
        try:
            return response.json()["schema"]
        except (ValueError, KeyError, TypeError) as e:
            raise ServiceError.decode_failed(str(e), response.text) from e

    def close(self):
        self.client.close()

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

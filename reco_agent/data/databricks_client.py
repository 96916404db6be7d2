"""
Databricks SQL warehouse as a Query Execution Service.
"""

import logging
import threading
from typing import Optional

from databricks import sql

from ..core.errors import ServiceError
from .models import ExecuteQueryResponse

logger = logging.getLogger(__name__)


class DatabricksClient:
    """Client for executing recommendation queries on a Databricks SQL warehouse."""

    def __init__(
        self,
        server_hostname: str,
        http_path: str,
        access_token: str,
        socket_timeout: Optional[float] = None,
    ):
        """
        Initialize Databricks client.

        Args:
            server_hostname: Databricks workspace hostname
            http_path: SQL warehouse HTTP path
            access_token: Personal access token for authentication
            socket_timeout: Socket timeout in seconds (optional)
        """
        self.server_hostname = server_hostname
        self.http_path = http_path
        self.access_token = access_token
        self.socket_timeout = socket_timeout
        self.connection = None
        self._lock = threading.Lock()

    def connect(self) -> str:
        """Establish the connection (once) and return the workspace hostname."""
        with self._lock:
            if self.connection is not None:
                return self.server_hostname
            try:
                kwargs = {}
                if self.socket_timeout is not None:
                    kwargs["_socket_timeout"] = self.socket_timeout
                self.connection = sql.connect(
                    server_hostname=self.server_hostname,
                    http_path=self.http_path,
                    access_token=self.access_token,
                    **kwargs,
                )
                logger.info("Successfully connected to Databricks")
            except Exception as e:
                logger.error(f"Failed to connect to Databricks: {e}")
                raise ServiceError(f"Databricks not reachable at {self.server_hostname}: {e}") from e
        return self.server_hostname

    def disconnect(self):
        """Close the Databricks connection."""
        with self._lock:
            if self.connection:
                self.connection.close()
                self.connection = None
                logger.info("Disconnected from Databricks")

    def execute_sql(self, sql_query: str) -> ExecuteQueryResponse:
        """
        Execute a SQL query and return positional rows.

        Args:
            sql_query: SQL query to execute

        Returns:
            ExecuteQueryResponse whose rows keep the select-list order

        Raises:
            ServiceError: With the warehouse's error text on failure
        """
        self.connect()

        try:
            with self.connection.cursor() as cursor:
                cursor.execute(sql_query)
                rows = [list(row) for row in cursor.fetchall()] if cursor.description else []
                changes = cursor.rowcount if not cursor.description and cursor.rowcount >= 0 else None
        except Exception as e:
            logger.error(f"Error executing query: {e}")
            raise ServiceError(str(e)) from e

        logger.info(f"Query executed successfully, returned {len(rows)} rows")
        return ExecuteQueryResponse(rows=rows, changes=changes)

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()

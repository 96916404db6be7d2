"""
Shared HTTP helpers for the service clients.
Translates httpx failures into the agent's ServiceError hierarchy.
"""

import logging
import threading
from typing import Any, Callable, List, Optional

import httpx

from ..core.errors import ServiceError, ServiceTimeoutError

logger = logging.getLogger(__name__)


def join_url(base: str, path: str) -> str:
    return f"{base.rstrip('/')}/{path.lstrip('/')}"


def send(
    client: httpx.Client,
    method: str,
    url: str,
    timeout: float,
    body: Optional[Any] = None,
    tolerate_all_status: bool = False,
) -> httpx.Response:
    """
    Send a request with a per-request timeout.

    Args:
        client: httpx client to send with
        method: HTTP method
        url: Absolute URL
        timeout: Timeout in seconds for this request
        body: JSON-serialisable body (optional)
        tolerate_all_status: Return non-2xx responses instead of raising

    Returns:
        The httpx response

    Raises:
        ServiceTimeoutError: If the request timed out
        ServiceError: On transport failure or unexpected status
    """
    try:
        response = client.request(method, url, json=body, timeout=timeout)
    except httpx.TimeoutException as e:
        raise ServiceTimeoutError(f"{method} {url}", timeout) from e
    except httpx.HTTPError as e:
        raise ServiceError(f"{method} {url} failed: {e}") from e

    if not tolerate_all_status and not response.is_success:
        raise ServiceError.bad_status(response.status_code, response.text)
    return response


class EndpointResolver:
    """Finds and caches the first reachable base URL among candidates."""

    def __init__(self, service: str, candidates: List[str]):
        self.service = service
        self.candidates = list(candidates)
        self.resolved: Optional[str] = None
        self._lock = threading.Lock()

    def resolve(self, probe: Callable[[str], bool]) -> str:
        """
        Return the cached endpoint, probing candidates in order if needed.

        Raises:
            ServiceError: If no candidate answers the probe
        """
        with self._lock:
            if self.resolved is not None:
                return self.resolved

            for base in self.candidates:
                if probe(base):
                    self.resolved = base
                    logger.info(f"{self.service} reachable at {base}")
                    return base
                logger.debug(f"{self.service} not reachable at {base}")

            logger.error(f"No reachable {self.service} endpoint")
            raise ServiceError.unreachable(self.service, self.candidates)

"""HTTP client for the Roam Research backend query API.

Runs Datalog queries against a hosted graph. The API answers the first
request with a redirect to the peer serving the graph; the peer URL is
remembered for the lifetime of the client.
"""

from __future__ import annotations

import logging
import time
from typing import Any
from urllib.parse import urljoin

import requests

from roam_query.exceptions import GraphAuthError, GraphConnectionError, GraphError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.roamresearch.com"

_USER_AGENT = "roam-query/0.1"
_REQUEST_TIMEOUT = 30
_MAX_RETRIES = 5
_MAX_REDIRECTS = 3
_BACKOFF_BASE = 2.0  # seconds


class RoamGraphClient:
    """Client for one Roam graph.

    Instances are callable as ``client(query, args)`` so they can be
    handed straight to a QueryExecutor.

    The executor calls one client from several threads. They share one
    ``requests.Session``: its urllib3 connection pool is thread-safe, and
    the session's headers and adapters are only changed before the first
    request. Every redirected thread stores the same peer URL.

    Args:
        graph: Graph name.
        token: Backend API token (``roam-graph-token-...``).
        base_url: API host, overridable for testing.
    """

    def __init__(self, graph: str, token: str, base_url: str = DEFAULT_BASE_URL) -> None:
        self.graph = graph
        self.base_url = base_url.rstrip("/")
        self._peer_url: str | None = None
        self._session = requests.Session()
        self._session.headers.update(
            {
                "User-Agent": _USER_AGENT,
                "Content-Type": "application/json; charset=utf-8",
                "Authorization": f"Bearer {token}",
                "x-authorization": f"Bearer {token}",
            }
        )

    def __call__(self, query: str, args: list[Any]) -> list[list[Any]]:
        return self.q(query, args)

    @property
    def query_url(self) -> str:
        return f"{self._peer_url or self.base_url}/api/graph/{self.graph}/q"

    def q(self, query: str, args: list[Any] | None = None) -> list[list[Any]]:
        """Run a Datalog query with positional ``:in`` arguments.

        Args:
            query: Datalog query text.
            args: Values for the ``:in`` variables after ``$``.

        Returns:
            The result rows.

        Raises:
            GraphAuthError: If the token is rejected.
            GraphConnectionError: If the API cannot be reached.
            GraphError: For any other API failure.
        """
        payload = {"query": query, "args": list(args or [])}
        resp = self._post(payload)
        try:
            data = resp.json()
        except ValueError as e:
            raise GraphError(f"Invalid JSON from graph '{self.graph}': {e}") from e
        return data.get("result", [])

    def _post(self, payload: dict[str, Any]) -> requests.Response:
        """POST to the query endpoint with redirect, retry and backoff handling.

        Redirects are followed by hand: requests drops the Authorization
        header when a redirect changes host.
        """
        redirects = 0
        attempt = 0
        while attempt < _MAX_RETRIES:
            url = self.query_url
            try:
                resp = self._session.post(
                    url, json=payload, timeout=_REQUEST_TIMEOUT, allow_redirects=False
                )
            except requests.RequestException as e:
                attempt += 1
                if attempt == _MAX_RETRIES:
                    raise GraphConnectionError(
                        f"Request to {url} failed after {_MAX_RETRIES} attempts: {e}"
                    ) from e
                wait = _BACKOFF_BASE * (2 ** (attempt - 1))
                logger.warning("Request failed, retrying in %.1fs: %s", wait, e)
                time.sleep(wait)
                continue

            if resp.status_code in (307, 308) and "Location" in resp.headers:
                redirects += 1
                if redirects > _MAX_REDIRECTS:
                    raise GraphError(f"Too many redirects for graph '{self.graph}'")
                self._remember_peer(url, resp.headers["Location"])
                continue

            if resp.status_code in (401, 403):
                raise GraphAuthError(self.graph)

            if resp.status_code in (429, 503):
                attempt += 1
                if attempt == _MAX_RETRIES:
                    raise GraphError(
                        f"Rate limited by Roam after {_MAX_RETRIES} retries. Try again later."
                    )
                wait = self._retry_wait(resp, attempt)
                logger.warning(
                    "Roam rate limit detected (HTTP %d), waiting %.1fs...",
                    resp.status_code,
                    wait,
                )
                time.sleep(wait)
                continue

            if resp.status_code >= 400:
                raise GraphError(
                    f"Query against graph '{self.graph}' failed "
                    f"(HTTP {resp.status_code}): {resp.text[:200]}"
                )
            return resp

        raise GraphError(f"Request to {self.query_url} failed after {_MAX_RETRIES} attempts")

    def _remember_peer(self, url: str, location: str) -> None:
        target = urljoin(url, location)
        marker = "/api/graph/"
        self._peer_url = target.split(marker, 1)[0] if marker in target else target.rstrip("/")
        logger.debug("Graph '%s' served by peer %s", self.graph, self._peer_url)

    @staticmethod
    def _retry_wait(resp: requests.Response, attempt: int) -> float:
        retry_after = resp.headers.get("Retry-After")
        if retry_after:
            try:
                return max(float(retry_after), _BACKOFF_BASE)
            except ValueError:
                pass
        return _BACKOFF_BASE * (2 ** (attempt - 1))

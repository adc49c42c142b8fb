"""Synchronous HTTP client that authorizes every request from a token cache.

:class:`AuthorizedClient` wraps :class:`httpx.Client` and layers on:

- **Per-request auth** -- asks the
  :class:`~satoken.auth.cache.CredentialCache` for a token on *every*
  request and sends it as ``Authorization: Bearer <token>``.  The client
  never keeps a token of its own, so refresh timing stays in the cache.
- **401 recovery** -- if the API rejects the token, the cache is
  invalidated and the request is replayed once with a freshly issued token.
- **Retry with backoff** -- retries on 5xx and network errors with
  exponential delay (1 s, 2 s, 4 s, ...).
- **Error mapping** -- HTTP failures become
  :class:`~satoken.exceptions.SatokenError` subclasses.

A :class:`~satoken.exceptions.RefreshError` raised by the cache is not
retried here; it propagates so the caller can fail its own request.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import httpx

from satoken.auth.cache import CredentialCache
from satoken.exceptions import AuthError, ConnectionError_, NotFoundError, ServerError

logger = logging.getLogger(__name__)


class AuthorizedClient:
    """Blocking HTTP client for a protected API.

    Must be used as a context manager so that the underlying transport is
    properly opened and closed.

    Args:
        cache: Token cache shared with other clients and threads.
        base_url: Prefix for relative request paths.
        timeout: Per-request timeout in seconds.
        max_retries: Extra attempts on 5xx responses and network errors.
        transport: Optional :class:`httpx.BaseTransport`, mainly for tests.

    Example::

        with AuthorizedClient(cache, base_url="https://api.example.com") as client:
            response = client.post("/v1/predict", json_body={"instances": []})
    """

    def __init__(
        self,
        cache: CredentialCache,
        base_url: str = "",
        timeout: float = 30.0,
        max_retries: int = 2,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._cache = cache
        self._base_url = base_url
        self._timeout = timeout
        self._max_retries = max_retries
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    def __enter__(self) -> AuthorizedClient:
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=True,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    def request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        json_body: Optional[Any] = None,
        body: Optional[str] = None,
    ) -> httpx.Response:
        """Send an authorized request, retrying and mapping errors.

        Args:
            method: HTTP method.
            path: URL path (joined to ``base_url``) or absolute URL.
            params: Query parameters.
            headers: Extra request headers.  An ``Authorization`` header
                here is overwritten.
            json_body: JSON-serialisable body.
            body: Raw string body.

        Returns:
            The successful :class:`httpx.Response`.

        Raises:
            RefreshError: If a token cannot be obtained.
            AuthError: On 401 (after one re-authorised replay) or 403.
            NotFoundError: On 404.
            ServerError: On 5xx after all retries are exhausted.
            ConnectionError_: On network / timeout errors after all retries.
        """
        response = self._execute_with_retry(method, path, params, headers, json_body, body)
        if response.status_code == 401:
            logger.info("%s %s returned 401; retrying with a new token", method.upper(), path)
            self._cache.invalidate()
            response = self._execute_with_retry(method, path, params, headers, json_body, body)
        self._map_response_error(response)
        return response

    def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs: Any) -> httpx.Response:
        return self.request("PUT", path, **kwargs)

    def patch(self, path: str, **kwargs: Any) -> httpx.Response:
        return self.request("PATCH", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> httpx.Response:
        return self.request("DELETE", path, **kwargs)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _execute_with_retry(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]],
        headers: Optional[dict[str, str]],
        json_body: Optional[Any],
        body: Optional[str],
    ) -> httpx.Response:
        """Execute the request, retrying 5xx and transport errors with backoff."""
        if self._client is None:
            raise RuntimeError("AuthorizedClient must be used as a context manager")

        last_exc: Optional[Exception] = None
        response: Optional[httpx.Response] = None

        for attempt in range(self._max_retries + 1):
            if attempt > 0:
                delay = 2 ** (attempt - 1)
                logger.debug("Retry %d/%d after %ds", attempt, self._max_retries, delay)
                time.sleep(delay)

            # Fresh token per attempt; the cache decides whether to refresh.
            merged_headers = {"Accept": "application/json", **(headers or {})}
            merged_headers.update(self._cache.authorization_header())

            kwargs: dict[str, Any] = {"params": params, "headers": merged_headers}
            if json_body is not None:
                kwargs["json"] = json_body
            elif body is not None:
                kwargs["content"] = body

            try:
                response = self._client.request(method.upper(), path, **kwargs)
            except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError) as exc:
                last_exc = exc
                continue

            if response.status_code < 500:
                return response

        if response is not None:
            return response
        raise ConnectionError_(
            f"Request failed after {self._max_retries + 1} attempts: {last_exc}"
        ) from last_exc

    @staticmethod
    def _map_response_error(response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        detail = response.text[:500]
        if status in (401, 403):
            raise AuthError(f"API rejected credentials (HTTP {status}): {detail}")
        if status == 404:
            raise NotFoundError(f"Not found (HTTP 404): {detail}")
        if status >= 500:
            raise ServerError(f"Server error (HTTP {status}): {detail}")
        # Other 4xx are returned for the caller to inspect

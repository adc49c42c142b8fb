"""Token endpoint exchange -- POST a grant, get back an access token.

:class:`TokenEndpoint` speaks the fixed OAuth2 token-endpoint contract: a
form-encoded POST, answered by a JSON object that carries at least
``access_token`` and ``expires_in``.  Every failure mode (timeout, transport
error, non-2xx status, unparseable or incomplete body) is reported as a
single :class:`~satoken.exceptions.RefreshError` so that the token cache
has exactly one thing to handle.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from satoken.exceptions import RefreshError
from satoken.models import TokenResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class TokenEndpoint:
    """Blocking client for an OAuth2 token endpoint.

    Args:
        timeout: Seconds allowed for each phase of the request (connect,
            write, each read, pool wait), not for the exchange as a whole.
            The cache holds its lock while waiting, so a slow endpoint
            blocks concurrent callers for at least this long.
        transport: Optional :class:`httpx.BaseTransport`, mainly for tests
            (``httpx.MockTransport``).

    Example::

        endpoint = TokenEndpoint(timeout=10)
        token = endpoint.exchange(
            "https://oauth2.googleapis.com/token",
            {"grant_type": "refresh_token", ...},
        )
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    @property
    def timeout(self) -> float:
        return self._timeout

    def exchange(self, token_url: str, form: dict[str, str]) -> TokenResponse:
        """POST *form* to *token_url* and validate the token response.

        Args:
            token_url: Absolute URL of the token endpoint.
            form: Form fields for the grant (``grant_type`` and friends).

        Returns:
            The validated :class:`~satoken.models.TokenResponse`.

        Raises:
            RefreshError: On an unusable URL, timeout, transport failure,
                non-2xx status, or a body that is not a JSON object with a
                non-empty ``access_token`` and positive integer
                ``expires_in``.
        """
        grant_type = form.get("grant_type", "?")
        logger.debug("POST %s (grant_type=%s)", token_url, grant_type)
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.post(
                    token_url,
                    data=form,
                    headers={"Accept": "application/json"},
                )
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise RefreshError(
                f"Token request to {token_url} timed out after {self._timeout}s",
                cause=exc,
            ) from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise RefreshError(
                f"Token request failed with status {status}: {_error_detail(exc.response)}",
                cause=exc,
                status_code=status,
            ) from exc
        except httpx.HTTPError as exc:
            raise RefreshError(f"Token request failed: {exc}", cause=exc) from exc
        except httpx.InvalidURL as exc:
            raise RefreshError(
                f"Invalid token endpoint URL '{token_url}': {exc}", cause=exc
            ) from exc

        return _parse_token_response(response)


def _parse_token_response(response: httpx.Response) -> TokenResponse:
    try:
        data: Any = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise RefreshError("Token response is not valid JSON", cause=exc) from exc
    if not isinstance(data, dict):
        raise RefreshError(
            f"Token response must be a JSON object, got {type(data).__name__}"
        )
    try:
        return TokenResponse.model_validate(data)
    except ValidationError as exc:
        fields = ", ".join(str(err["loc"][0]) for err in exc.errors() if err["loc"])
        raise RefreshError(
            f"Token response missing or invalid field(s): {fields}", cause=exc
        ) from exc


def _error_detail(response: httpx.Response) -> str:
    """Pull the OAuth ``error``/``error_description`` out of an error body."""
    try:
        body = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text[:200]
    if isinstance(body, dict) and "error" in body:
        description = body.get("error_description")
        return f"{body['error']}: {description}" if description else str(body["error"])
    return response.text[:200]

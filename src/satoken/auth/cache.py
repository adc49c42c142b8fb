"""In-memory access-token cache with expiry-aware, serialized refresh.

:class:`CredentialCache` holds one live ``(token, expiry)`` pair per
credential and hands the token to any number of threads.  The whole
"is it stale? refresh if so. return it." sequence runs under one
:class:`threading.Lock`:

- while a refresh is in flight, every other caller blocks on the lock and
  then reads the token that refresh produced, so a burst of callers against
  an empty cache costs exactly one round trip to the token endpoint;
- refreshes are totally ordered, never concurrent;
- the pair is replaced by a single assignment of an immutable
  :class:`CachedToken`, so no reader sees a token with someone else's
  expiry.

A token is usable only while ``now + refresh_margin < expiry``.  The margin
(60 s by default) absorbs clock skew and request latency so a token never
expires mid-call.

Failures are not retried here.  A :class:`~satoken.exceptions.RefreshError`
leaves the previous pair untouched and propagates to the caller; the next
call tries again.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Union

from satoken.auth.base import TokenGrant
from satoken.auth.exchange import DEFAULT_TIMEOUT, TokenEndpoint
from satoken.auth.manager import create_grant
from satoken.exceptions import RefreshError
from satoken.models import Credential

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_MARGIN = 60

Clock = Callable[[], float]


@dataclass(frozen=True)
class CachedToken:
    """An access token and the Unix time at which it expires."""

    token: str
    expiry: float

    def is_fresh(self, now: float, margin: float = DEFAULT_REFRESH_MARGIN) -> bool:
        return now + margin < self.expiry


class CredentialCache:
    """Thread-safe access-token cache for one credential.

    Args:
        credential: A loaded :data:`~satoken.models.Credential`, or an
            already-built :class:`~satoken.auth.base.TokenGrant`.
        endpoint: Token endpoint client.  Defaults to a
            :class:`~satoken.auth.exchange.TokenEndpoint` with *timeout*.
        clock: Returns the current Unix time in seconds.  Inject a fake in
            tests instead of sleeping.
        refresh_margin: Seconds before expiry at which a token counts as
            stale.
        timeout: Token endpoint timeout, used only when *endpoint* is not
            given.

    Raises:
        InvalidKeyError: If a service-account key cannot be parsed.

    Example::

        cache = CredentialCache(load_credential("file:sa.json"))
        token = cache.get_access_token()
    """

    def __init__(
        self,
        credential: Union[Credential, TokenGrant],
        endpoint: Optional[TokenEndpoint] = None,
        clock: Clock = time.time,
        refresh_margin: float = DEFAULT_REFRESH_MARGIN,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        if isinstance(credential, TokenGrant):
            self._grant = credential
        else:
            self._grant = create_grant(credential)
        self._endpoint = endpoint or TokenEndpoint(timeout=timeout)
        self._clock = clock
        self._margin = refresh_margin
        self._lock = threading.Lock()
        self._cached: Optional[CachedToken] = None
        self._refresh_count = 0

    @property
    def grant(self) -> TokenGrant:
        return self._grant

    @property
    def refresh_count(self) -> int:
        """Number of successful exchanges performed so far."""
        return self._refresh_count

    def get_access_token(self) -> str:
        """Return a token valid for at least ``refresh_margin`` more seconds.

        Returns:
            The access token string.  Call this again for every outbound
            request rather than holding on to the result.

        Raises:
            RefreshError: If the token endpoint exchange fails.
            SigningError: If the assertion cannot be signed.
        """
        with self._lock:
            now = self._clock()
            cached = self._cached
            if cached is not None and cached.is_fresh(now, self._margin):
                logger.debug("Access token cache hit (expires in %ds)", cached.expiry - now)
                return cached.token
            self._cached = cached = self._refresh(now)
            return cached.token

    def authorization_header(self) -> dict[str, str]:
        """Return ``{"Authorization": "Bearer <token>"}`` with a fresh token."""
        return {"Authorization": f"Bearer {self.get_access_token()}"}

    def invalidate(self) -> None:
        """Drop the cached token so the next call performs an exchange."""
        with self._lock:
            self._cached = None
        logger.debug("Access token invalidated")

    def peek(self) -> Optional[CachedToken]:
        """Return the current ``(token, expiry)`` pair without refreshing."""
        with self._lock:
            return self._cached

    def _refresh(self, now: float) -> CachedToken:
        """Exchange the grant for a new token.  Caller must hold the lock."""
        logger.info("Refreshing access token via %s grant", self._grant.grant_type)
        try:
            response = self._endpoint.exchange(
                self._grant.token_url, self._grant.form_data(now)
            )
        except RefreshError as exc:
            logger.warning("Access token refresh failed: %s", exc)
            raise
        self._refresh_count += 1
        expiry = now + response.expires_in
        logger.info("Access token refreshed (expires in %ds)", response.expires_in)
        return CachedToken(token=response.access_token, expiry=expiry)

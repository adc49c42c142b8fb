"""OAuth2 access-token acquisition and caching.

The main entry points are:

- :class:`CredentialCache` -- owns one live access token per credential and
  refreshes it under a lock when it is missing or close to expiry.
- :class:`TokenGrant` -- abstract base class for grant strategies;
  :class:`JWTBearerGrant` and :class:`RefreshTokenGrant` are built in.
- :class:`GrantRegistry` / :func:`create_grant` -- map a credential's
  ``grant_type`` to its grant.
- :class:`TokenEndpoint` -- the form-POST exchange with the token endpoint.
- :func:`build_assertion` -- RS256 JWT assertion for the JWT-bearer grant.

Typical usage::

    from satoken.auth import CredentialCache

    cache = CredentialCache(credential)
    headers = cache.authorization_header()
"""

from satoken.auth.assertion import build_assertion, load_private_key
from satoken.auth.base import TokenGrant
from satoken.auth.cache import CachedToken, CredentialCache
from satoken.auth.exchange import TokenEndpoint
from satoken.auth.grants import JWTBearerGrant, RefreshTokenGrant
from satoken.auth.manager import GrantRegistry, create_default_registry, create_grant

__all__ = [
    "CachedToken",
    "CredentialCache",
    "GrantRegistry",
    "JWTBearerGrant",
    "RefreshTokenGrant",
    "TokenEndpoint",
    "TokenGrant",
    "build_assertion",
    "create_default_registry",
    "create_grant",
    "load_private_key",
]

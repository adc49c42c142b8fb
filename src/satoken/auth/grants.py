"""Built-in token grants: JWT bearer and refresh token.

- :class:`JWTBearerGrant` -- service-account flow (:rfc:`7523`).  Signs a
  fresh assertion for every refresh and posts it as
  ``grant_type=urn:ietf:params:oauth:grant-type:jwt-bearer``.
- :class:`RefreshTokenGrant` -- :rfc:`6749` section 6.  Posts the stored
  refresh token together with the OAuth client id and secret.
"""

from __future__ import annotations

from satoken.auth.assertion import build_assertion, load_private_key
from satoken.auth.base import TokenGrant
from satoken.models import RefreshTokenCredential, ServiceAccountCredential

JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"


class JWTBearerGrant(TokenGrant):
    """Exchange a signed service-account assertion for an access token.

    The private key is parsed once at construction, so a malformed key
    fails at startup with :class:`~satoken.exceptions.InvalidKeyError`
    instead of on the first outbound call.

    Args:
        credential: The service-account identity.
    """

    def __init__(self, credential: ServiceAccountCredential) -> None:
        load_private_key(credential.private_key.get_secret_value())
        self._credential = credential

    @property
    def grant_type(self) -> str:
        return "jwt_bearer"

    @property
    def token_url(self) -> str:
        return self._credential.token_uri

    def assertion(self, now: float) -> str:
        """Build a new signed assertion for *now*."""
        cred = self._credential
        return build_assertion(
            cred.issuer,
            cred.private_key.get_secret_value(),
            cred.scope,
            cred.audience,
            now,
        )

    def form_data(self, now: float) -> dict[str, str]:
        return {
            "grant_type": JWT_BEARER_GRANT_TYPE,
            "assertion": self.assertion(now),
        }

    def describe(self) -> dict[str, str]:
        details = super().describe()
        details["issuer"] = self._credential.issuer
        details["audience"] = self._credential.audience
        details["scope"] = self._credential.scope
        if self._credential.private_key_id:
            details["private_key_id"] = self._credential.private_key_id
        return details


class RefreshTokenGrant(TokenGrant):
    """Exchange a stored refresh token for an access token."""

    def __init__(self, credential: RefreshTokenCredential) -> None:
        self._credential = credential

    @property
    def grant_type(self) -> str:
        return "refresh_token"

    @property
    def token_url(self) -> str:
        return self._credential.token_uri

    def form_data(self, now: float) -> dict[str, str]:
        cred = self._credential
        return {
            "grant_type": "refresh_token",
            "client_id": cred.client_id,
            "client_secret": cred.client_secret.get_secret_value(),
            "refresh_token": cred.refresh_token.get_secret_value(),
        }

    def describe(self) -> dict[str, str]:
        details = super().describe()
        details["client_id"] = self._credential.client_id
        return details

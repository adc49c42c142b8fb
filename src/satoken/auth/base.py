"""Abstract base class for token grants.

A *grant* knows how to turn one credential into the form body of a token
request.  The :class:`~satoken.auth.cache.CredentialCache` owns the timing
and the locking; the grant only answers "what do I POST, and where?".

To add a grant type, subclass :class:`TokenGrant`, implement
:attr:`~TokenGrant.grant_type`, :attr:`~TokenGrant.token_url` and
:meth:`~TokenGrant.form_data`, and register a factory with
:class:`~satoken.auth.manager.GrantRegistry`.

See Also:
    :mod:`satoken.auth.grants` for the built-in grants.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class TokenGrant(ABC):
    """Abstract base class for OAuth2 grants used to obtain access tokens."""

    @property
    @abstractmethod
    def grant_type(self) -> str:
        """Return the credential discriminant this grant handles.

        Returns:
            ``"jwt_bearer"`` or ``"refresh_token"`` for the built-in grants.
        """
        ...

    @property
    @abstractmethod
    def token_url(self) -> str:
        """Return the token endpoint the form is posted to."""
        ...

    @abstractmethod
    def form_data(self, now: float) -> dict[str, str]:
        """Build the form fields for one token request.

        Called once per refresh.  Implementations must not reuse anything
        time-bound (such as a signed assertion) between calls.

        Args:
            now: Current Unix time in seconds, from the cache's clock.

        Returns:
            Form fields including ``grant_type``.

        Raises:
            SigningError: If a signed assertion cannot be produced.
        """
        ...

    def describe(self) -> dict[str, str]:
        """Return non-secret details about the credential for display.

        The default implementation reports the grant type and token URL.
        """
        return {"grant_type": self.grant_type, "token_url": self.token_url}

"""Grant registry -- maps credential types to grant implementations.

The :class:`GrantRegistry` is the dispatcher between a loaded
:data:`~satoken.models.Credential` and the :class:`~satoken.auth.base.TokenGrant`
that knows how to exchange it.  Lookup is keyed on the credential's explicit
``grant_type`` field.

For most use cases, call :func:`create_grant`, which uses a registry
pre-loaded with the built-in grants.

See Also:
    :class:`~satoken.auth.cache.CredentialCache` -- consumes the grant.
"""

from __future__ import annotations

from typing import Any, Callable

from satoken.auth.base import TokenGrant
from satoken.exceptions import ConfigError
from satoken.models import Credential

GrantFactory = Callable[[Any], TokenGrant]


class GrantRegistry:
    """Registry of grant factories keyed by ``grant_type``.

    Example::

        registry = GrantRegistry()
        registry.register("jwt_bearer", JWTBearerGrant)
        grant = registry.create(credential)
    """

    def __init__(self) -> None:
        self._factories: dict[str, GrantFactory] = {}

    def register(self, grant_type: str, factory: GrantFactory) -> None:
        """Register *factory* for *grant_type*, replacing any previous one."""
        self._factories[grant_type] = factory

    def create(self, credential: Credential) -> TokenGrant:
        """Build the grant for *credential*.

        Args:
            credential: A loaded credential.

        Returns:
            A ready-to-use :class:`~satoken.auth.base.TokenGrant`.

        Raises:
            ConfigError: If no grant is registered for the credential's
                ``grant_type``.
            InvalidKeyError: If a service-account key cannot be parsed.
        """
        factory = self._factories.get(credential.grant_type)
        if factory is None:
            available = ", ".join(self.list_types()) or "(none)"
            raise ConfigError(
                f"No grant registered for type '{credential.grant_type}'. "
                f"Available types: {available}"
            )
        return factory(credential)

    def list_types(self) -> list[str]:
        """Return the registered grant types, sorted."""
        return sorted(self._factories)


def create_default_registry() -> GrantRegistry:
    """Create a :class:`GrantRegistry` with ``jwt_bearer`` and ``refresh_token``."""
    from satoken.auth.grants import JWTBearerGrant, RefreshTokenGrant

    registry = GrantRegistry()
    registry.register("jwt_bearer", JWTBearerGrant)
    registry.register("refresh_token", RefreshTokenGrant)
    return registry


def create_grant(credential: Credential) -> TokenGrant:
    """Build the built-in grant matching *credential*'s ``grant_type``."""
    return create_default_registry().create(credential)

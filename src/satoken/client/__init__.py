"""HTTP client for calling a protected API with cached bearer tokens.

Provides :class:`AuthorizedClient`, a blocking client backed by
:class:`httpx.Client` that pulls a token from a
:class:`~satoken.auth.cache.CredentialCache` for every request.

Example::

    from satoken.client import AuthorizedClient

    with AuthorizedClient(cache, base_url="https://api.example.com") as client:
        resp = client.get("/v1/models")
"""

from satoken.client.sync_client import AuthorizedClient

__all__ = ["AuthorizedClient"]

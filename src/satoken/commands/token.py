"""Token commands -- print tokens, headers, and credential details.

Typical use from a shell script::

    curl -H "$(satoken header)" https://example.googleapis.com/v1/...
    TOKEN=$(satoken token --credentials ~/sa-key.json)

Each invocation is a fresh process, so these commands always perform one
token exchange; the caching pays off for long-lived consumers that share a
:class:`~satoken.auth.cache.CredentialCache`.
"""

from __future__ import annotations

import time

import typer

from satoken.commands import handle_errors, settings_from_context
from satoken.output import print_data, print_table, suggest


def token_command(ctx: typer.Context) -> None:
    """Print a valid access token to stdout.

    Example::

        satoken token
        satoken --credentials ~/sa-key.json token
    """
    from satoken.config import create_cache

    with handle_errors():
        cache = create_cache(settings_from_context(ctx))
        print_data(cache.get_access_token())


def header_command(ctx: typer.Context) -> None:
    """Print an ``Authorization: Bearer <token>`` header line.

    Example::

        curl -H "$(satoken header)" https://example.com/v1/items
    """
    from satoken.config import create_cache

    with handle_errors():
        cache = create_cache(settings_from_context(ctx))
        for name, value in cache.authorization_header().items():
            print_data(f"{name}: {value}")


def assertion_command(ctx: typer.Context) -> None:
    """Print one signed JWT-bearer assertion (for debugging the token endpoint).

    Only available for service-account credentials.  The assertion is valid
    for one hour from now.
    """
    from satoken.auth.grants import JWTBearerGrant
    from satoken.auth.manager import create_grant
    from satoken.config import load_configured_credential
    from satoken.exceptions import InvalidUsageError

    with handle_errors():
        grant = create_grant(load_configured_credential(settings_from_context(ctx)))
        if not isinstance(grant, JWTBearerGrant):
            raise InvalidUsageError(
                f"Assertions require a service account; credential uses {grant.grant_type}"
            )
        print_data(grant.assertion(time.time()))


def inspect_command(ctx: typer.Context) -> None:
    """Show non-secret details of the configured credential.

    Example::

        satoken inspect
        satoken --json inspect
    """
    from satoken.auth.manager import create_grant
    from satoken.config import load_configured_credential

    with handle_errors():
        grant = create_grant(load_configured_credential(settings_from_context(ctx)))
        rows = [[key, value] for key, value in grant.describe().items()]
        print_table(["Field", "Value"], rows, title="Credential")
        suggest("Run 'satoken token' to fetch an access token.")

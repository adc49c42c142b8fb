"""satoken -- service-account OAuth2 access tokens for outbound API calls.

This package keeps a single, always-fresh OAuth2 access token for a service
account (JWT-bearer grant) or a stored refresh token, and hands it out to any
number of concurrent callers.  Callers embed the token as
``Authorization: Bearer <token>`` on every outbound request.

Typical usage::

    from satoken.auth import CredentialCache
    from satoken.config import load_credential

    cache = CredentialCache(load_credential("file:~/sa-key.json"))
    headers = cache.authorization_header()

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models for credentials, token responses and config.
    config: XDG-aware configuration and credential loading.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"

"""Exception hierarchy for satoken.

All exceptions inherit from :class:`SatokenError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`satoken.exit_codes`.
The top-level error handler in :func:`satoken.app.main` catches
``SatokenError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    SatokenError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- AuthError           (exit 3)
    +-- NotFoundError       (exit 4)
    +-- ServerError         (exit 5)
    +-- ConnectionError_    (exit 6)
    +-- InvalidKeyError     (exit 7)
    +-- SigningError        (exit 8)
    +-- RefreshError        (exit 9)
    +-- ConfigError         (exit 1)

``InvalidKeyError`` and ``SigningError`` are fatal: retrying will not help.
``RefreshError`` is transient; the token cache never retries on its own and
the next call to :meth:`~satoken.auth.cache.CredentialCache.get_access_token`
attempts a fresh exchange.
"""

from __future__ import annotations

from typing import Optional

from satoken.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_KEY,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_REFRESH_FAILURE,
    EXIT_SERVER_ERROR,
    EXIT_SIGNING_ERROR,
)


class SatokenError(Exception):
    """Base exception for all satoken errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`satoken.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SatokenError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(SatokenError):
    """Raised when the protected API rejects the bearer token (HTTP 401/403)."""

    exit_code = EXIT_AUTH_FAILURE


class NotFoundError(SatokenError):
    """Raised when the API returns HTTP 404 (resource not found)."""

    exit_code = EXIT_NOT_FOUND


class ServerError(SatokenError):
    """Raised when the API returns an HTTP 5xx server error."""

    exit_code = EXIT_SERVER_ERROR


class ConnectionError_(SatokenError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class InvalidKeyError(SatokenError):
    """Raised when a PEM private key cannot be parsed into a usable RSA key."""

    exit_code = EXIT_INVALID_KEY


class SigningError(SatokenError):
    """Raised when the RSA-SHA256 signing operation itself fails."""

    exit_code = EXIT_SIGNING_ERROR


class RefreshError(SatokenError):
    """Raised when exchanging a grant for an access token fails.

    Covers transport failures and timeouts, non-2xx responses, and token
    responses that are not JSON or lack ``access_token`` / ``expires_in``.

    Args:
        message: Human-readable error description.
        cause: The underlying exception, if any.
        status_code: HTTP status returned by the token endpoint, when the
            failure was an HTTP error response.
    """

    exit_code = EXIT_REFRESH_FAILURE

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.cause = cause
        self.status_code = status_code


class ConfigError(SatokenError):
    """Raised for configuration problems (unreadable key files, invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE

"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~satoken.exceptions.SatokenError` subclass.
Shell wrappers can inspect the exit code to tell a transient token-endpoint
outage (retry later) from a broken key file (fix the deployment).

Example::

    $ satoken token
    $ echo $?
    9   # EXIT_REFRESH_FAILURE -- the token endpoint could not be reached
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""The protected API rejected the bearer token."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The remote API returned an HTTP 5xx server error."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_INVALID_KEY = 7
"""The service-account private key could not be parsed."""

EXIT_SIGNING_ERROR = 8
"""The assertion could not be signed."""

EXIT_REFRESH_FAILURE = 9
"""The token endpoint exchange failed."""

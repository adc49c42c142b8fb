"""RS256 JWT assertions for the OAuth2 JWT-bearer grant (:rfc:`7523`).

A service account proves its identity to the token endpoint by sending a
short-lived JWT signed with its RSA private key.  This module builds that
JWT.  An assertion is single-use: a new one is built for every refresh and
it is discarded once submitted, whatever the outcome.

Wire format::

    base64url(header) "." base64url(payload) "." base64url(signature)

where every segment is base64url (:rfc:`4648` section 5) with the trailing
``=`` padding stripped, the header is ``{"alg":"RS256","typ":"JWT"}`` and
the payload carries ``iss``, ``scope``, ``aud``, ``iat`` and ``exp`` in that
order.

See Also:
    :class:`~satoken.auth.grants.JWTBearerGrant` -- submits the assertion.
"""

from __future__ import annotations

import base64
import json
from typing import Any

from cryptography.exceptions import InternalError, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from satoken.exceptions import InvalidKeyError, SigningError

ASSERTION_LIFETIME = 3600
"""Seconds between the ``iat`` and ``exp`` claims of every assertion."""

_HEADER = {"alg": "RS256", "typ": "JWT"}


def b64url_encode(data: bytes) -> str:
    """Encode *data* as unpadded base64url text."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(text: str) -> bytes:
    """Decode unpadded base64url text produced by :func:`b64url_encode`."""
    padded = text + "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _compact_json(data: dict[str, Any]) -> bytes:
    return json.dumps(data, separators=(",", ":")).encode("utf-8")


def load_private_key(private_key_pem: str | bytes) -> rsa.RSAPrivateKey:
    """Parse an unencrypted PEM private key and check that it is RSA.

    Args:
        private_key_pem: PKCS#8 (``BEGIN PRIVATE KEY``) or PKCS#1
            (``BEGIN RSA PRIVATE KEY``) PEM text.

    Returns:
        The parsed RSA private key.

    Raises:
        InvalidKeyError: If the PEM is malformed, password-protected, or
            holds a non-RSA key.
    """
    if isinstance(private_key_pem, str):
        private_key_pem = private_key_pem.encode("utf-8")
    try:
        key = serialization.load_pem_private_key(private_key_pem, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise InvalidKeyError(f"Cannot parse service account private key: {exc}") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise InvalidKeyError(
            f"Service account key must be RSA, got {type(key).__name__}"
        )
    return key


def build_assertion(
    issuer: str,
    private_key_pem: str | bytes,
    scope: str,
    audience: str,
    now: float,
) -> str:
    """Build and sign a JWT-bearer assertion.

    Args:
        issuer: Service account email, used as the ``iss`` claim.
        private_key_pem: PEM-encoded RSA private key.
        scope: Space-separated OAuth scopes being requested.
        audience: Token endpoint URL, used as the ``aud`` claim.
        now: Current Unix time in seconds.  Fractions are truncated.

    Returns:
        The ``header.payload.signature`` string.

    Raises:
        InvalidKeyError: If *private_key_pem* is not a usable RSA key.
        SigningError: If the signing operation fails.

    Example::

        assertion = build_assertion(
            "robot@proj.iam.gserviceaccount.com", pem,
            "https://www.googleapis.com/auth/cloud-platform",
            "https://oauth2.googleapis.com/token", time.time(),
        )
    """
    key = load_private_key(private_key_pem)

    iat = int(now)
    payload = {
        "iss": issuer,
        "scope": scope,
        "aud": audience,
        "iat": iat,
        "exp": iat + ASSERTION_LIFETIME,
    }
    signing_input = f"{b64url_encode(_compact_json(_HEADER))}.{b64url_encode(_compact_json(payload))}"

    try:
        signature = key.sign(
            signing_input.encode("ascii"), padding.PKCS1v15(), hashes.SHA256()
        )
    except (ValueError, TypeError, UnsupportedAlgorithm, InternalError) as exc:
        raise SigningError(f"Failed to sign assertion: {exc}") from exc

    return f"{signing_input}.{b64url_encode(signature)}"


def decode_assertion(assertion: str) -> tuple[dict[str, Any], dict[str, Any]]:
    """Decode the header and payload of an assertion without verifying it.

    Args:
        assertion: A ``header.payload.signature`` string.

    Returns:
        ``(header, payload)`` as dicts.

    Raises:
        ValueError: If *assertion* does not have three segments or a segment
            is not base64url-encoded JSON.
    """
    parts = assertion.split(".")
    if len(parts) != 3:
        raise ValueError(f"Expected 3 dot-separated segments, got {len(parts)}")
    header = json.loads(b64url_decode(parts[0]))
    payload = json.loads(b64url_decode(parts[1]))
    return header, payload

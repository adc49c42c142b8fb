"""Tests for credential, wire and config models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from satoken.exceptions import (
    ConfigError,
    InvalidKeyError,
    RefreshError,
    SatokenError,
    SigningError,
)
from satoken.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_KEY,
    EXIT_REFRESH_FAILURE,
    EXIT_SIGNING_ERROR,
)
from satoken.models import (
    DEFAULT_TOKEN_URI,
    GlobalConfig,
    RefreshTokenCredential,
    ServiceAccountCredential,
    TokenResponse,
    credential_adapter,
)


class TestCredentials:
    def test_audience_defaults_to_token_uri(self) -> None:
        credential = ServiceAccountCredential(
            issuer="robot@example.com",
            private_key="pem",
            token_uri="https://oauth2.example.com/token",
        )
        assert credential.audience == "https://oauth2.example.com/token"

    def test_audience_default_without_token_uri(self) -> None:
        credential = ServiceAccountCredential(issuer="robot@example.com", private_key="pem")
        assert credential.token_uri == DEFAULT_TOKEN_URI
        assert credential.audience == DEFAULT_TOKEN_URI

    def test_private_key_hidden_in_repr(self) -> None:
        credential = ServiceAccountCredential(issuer="robot@example.com", private_key="pem-body")
        assert "pem-body" not in repr(credential)

    def test_frozen(self) -> None:
        credential = ServiceAccountCredential(issuer="robot@example.com", private_key="pem")
        with pytest.raises(ValidationError):
            credential.issuer = "other@example.com"

    def test_discriminated_union(self) -> None:
        credential = credential_adapter.validate_python(
            {
                "grant_type": "refresh_token",
                "client_id": "cid",
                "client_secret": "cs",
                "refresh_token": "rt",
            }
        )
        assert isinstance(credential, RefreshTokenCredential)

    def test_unknown_grant_type(self) -> None:
        with pytest.raises(ValidationError):
            credential_adapter.validate_python({"grant_type": "password"})

    @pytest.mark.parametrize(
        "token_uri",
        ["http://[::1/token", "ftp://oauth2.example.com/token", "oauth2.example.com/token"],
    )
    def test_token_uri_must_be_http_url(self, token_uri: str) -> None:
        with pytest.raises(ValidationError, match=r"http\(s\) URL"):
            ServiceAccountCredential(
                issuer="robot@example.com", private_key="pem", token_uri=token_uri
            )
        with pytest.raises(ValidationError, match=r"http\(s\) URL"):
            RefreshTokenCredential(
                client_id="cid", client_secret="cs", refresh_token="rt", token_uri=token_uri
            )

    def test_token_uri_kept_verbatim(self) -> None:
        credential = ServiceAccountCredential(
            issuer="robot@example.com", private_key="pem", token_uri="https://sts.example.com"
        )
        assert credential.token_uri == "https://sts.example.com"


class TestTokenResponse:
    def test_minimal(self) -> None:
        response = TokenResponse.model_validate({"access_token": "t", "expires_in": 3600})
        assert response.token_type == "Bearer"

    def test_numeric_string_expires_in(self) -> None:
        assert TokenResponse.model_validate({"access_token": "t", "expires_in": "3600"}).expires_in == 3600

    def test_boolean_expires_in_rejected(self) -> None:
        with pytest.raises(ValidationError, match="boolean"):
            TokenResponse.model_validate({"access_token": "t", "expires_in": True})

    @pytest.mark.parametrize("expires_in", [0, -5])
    def test_non_positive_lifetime_rejected(self, expires_in: int) -> None:
        with pytest.raises(ValidationError):
            TokenResponse.model_validate({"access_token": "t", "expires_in": expires_in})


class TestGlobalConfig:
    def test_defaults(self) -> None:
        cfg = GlobalConfig()
        assert (cfg.timeout, cfg.refresh_margin, cfg.max_retries) == (30.0, 60, 2)

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            GlobalConfig(timeout=0)


class TestExceptions:
    @pytest.mark.parametrize(
        ("exc", "code"),
        [
            (ConfigError("x"), EXIT_GENERIC_FAILURE),
            (InvalidKeyError("x"), EXIT_INVALID_KEY),
            (SigningError("x"), EXIT_SIGNING_ERROR),
            (RefreshError("x"), EXIT_REFRESH_FAILURE),
        ],
    )
    def test_exit_codes(self, exc: SatokenError, code: int) -> None:
        assert exc.exit_code == code

    def test_exit_code_override(self) -> None:
        assert SatokenError("x", exit_code=42).exit_code == 42

    def test_refresh_error_details(self) -> None:
        cause = TimeoutError("slow")
        err = RefreshError("timed out", cause=cause, status_code=None)
        assert err.cause is cause
        assert err.status_code is None

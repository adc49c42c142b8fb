"""Tests for the built-in grants and the grant registry."""

from __future__ import annotations

import pytest

from satoken.auth.assertion import decode_assertion
from satoken.auth.base import TokenGrant
from satoken.auth.grants import JWT_BEARER_GRANT_TYPE, JWTBearerGrant, RefreshTokenGrant
from satoken.auth.manager import GrantRegistry, create_default_registry, create_grant
from satoken.exceptions import ConfigError, InvalidKeyError
from satoken.models import ServiceAccountCredential


class TestJWTBearerGrant:
    def test_form_data(self, service_account) -> None:
        grant = JWTBearerGrant(service_account)
        form = grant.form_data(1_700_000_000)

        assert set(form) == {"grant_type", "assertion"}
        assert form["grant_type"] == JWT_BEARER_GRANT_TYPE
        _, payload = decode_assertion(form["assertion"])
        assert payload["iss"] == service_account.issuer
        assert payload["aud"] == service_account.token_uri
        assert payload["iat"] == 1_700_000_000

    def test_new_assertion_per_refresh(self, service_account) -> None:
        grant = JWTBearerGrant(service_account)
        first = grant.form_data(1000)["assertion"]
        second = grant.form_data(5000)["assertion"]
        assert first != second
        assert decode_assertion(second)[1]["exp"] == 5000 + 3600

    def test_token_url(self, service_account) -> None:
        assert JWTBearerGrant(service_account).token_url == service_account.token_uri

    def test_invalid_key_fails_at_construction(self) -> None:
        credential = ServiceAccountCredential(
            issuer="robot@example.com", private_key="not a pem"
        )
        with pytest.raises(InvalidKeyError):
            JWTBearerGrant(credential)

    def test_describe_omits_private_key(self, service_account, private_key_pem) -> None:
        details = JWTBearerGrant(service_account).describe()
        assert details == {
            "grant_type": "jwt_bearer",
            "token_url": service_account.token_uri,
            "issuer": service_account.issuer,
            "audience": service_account.token_uri,
            "scope": service_account.scope,
        }
        assert private_key_pem not in str(details)

    def test_describe_includes_key_id(self, private_key_pem) -> None:
        credential = ServiceAccountCredential(
            issuer="robot@example.com", private_key=private_key_pem, private_key_id="abc123"
        )
        assert JWTBearerGrant(credential).describe()["private_key_id"] == "abc123"


class TestRefreshTokenGrant:
    def test_form_data(self, refresh_credential) -> None:
        form = RefreshTokenGrant(refresh_credential).form_data(0)
        assert form == {
            "grant_type": "refresh_token",
            "client_id": "client-123.apps.example.com",
            "client_secret": "s3cret",
            "refresh_token": "1//refresh-token",
        }

    def test_describe_omits_secrets(self, refresh_credential) -> None:
        details = RefreshTokenGrant(refresh_credential).describe()
        assert details["client_id"] == "client-123.apps.example.com"
        assert "s3cret" not in str(details)
        assert "1//refresh-token" not in str(details)


class TestGrantRegistry:
    def test_default_types(self) -> None:
        assert create_default_registry().list_types() == ["jwt_bearer", "refresh_token"]

    def test_create_dispatches_on_grant_type(self, service_account, refresh_credential) -> None:
        assert isinstance(create_grant(service_account), JWTBearerGrant)
        assert isinstance(create_grant(refresh_credential), RefreshTokenGrant)

    def test_unknown_type(self, refresh_credential) -> None:
        registry = GrantRegistry()
        registry.register("jwt_bearer", JWTBearerGrant)
        with pytest.raises(ConfigError, match="No grant registered for type 'refresh_token'"):
            registry.create(refresh_credential)

    def test_empty_registry_message(self, refresh_credential) -> None:
        with pytest.raises(ConfigError, match=r"\(none\)"):
            GrantRegistry().create(refresh_credential)

    def test_register_replaces(self, refresh_credential) -> None:
        class StaticGrant(TokenGrant):
            def __init__(self, credential) -> None:
                self.credential = credential

            @property
            def grant_type(self) -> str:
                return "refresh_token"

            @property
            def token_url(self) -> str:
                return "https://static.example.com/token"

            def form_data(self, now: float) -> dict[str, str]:
                return {"grant_type": "static"}

        registry = create_default_registry()
        registry.register("refresh_token", StaticGrant)
        grant = registry.create(refresh_credential)
        assert isinstance(grant, StaticGrant)
        assert grant.describe() == {
            "grant_type": "refresh_token",
            "token_url": "https://static.example.com/token",
        }

"""Tests for AuthorizedClient: bearer headers, 401 replay, retries, error mapping."""

from __future__ import annotations

import json

import httpx
import pytest

from satoken.auth.cache import CredentialCache
from satoken.client import AuthorizedClient
from satoken.exceptions import (
    AuthError,
    ConnectionError_,
    NotFoundError,
    RefreshError,
    ServerError,
)
from satoken.models import TokenResponse

BASE_URL = "https://api.example.com"


class SequentialEndpoint:
    def __init__(self) -> None:
        self.calls = 0
        self.error: RefreshError | None = None

    def exchange(self, token_url, form):
        if self.error is not None:
            raise self.error
        self.calls += 1
        return TokenResponse(access_token=f"T{self.calls}", expires_in=3600)


@pytest.fixture
def endpoint() -> SequentialEndpoint:
    return SequentialEndpoint()


@pytest.fixture
def cache(refresh_credential, endpoint, clock) -> CredentialCache:
    return CredentialCache(refresh_credential, endpoint=endpoint, clock=clock)


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    recorded: list[float] = []
    monkeypatch.setattr("satoken.client.sync_client.time.sleep", recorded.append)
    return recorded


def _client(cache, handler, max_retries: int = 2) -> AuthorizedClient:
    return AuthorizedClient(
        cache,
        base_url=BASE_URL,
        max_retries=max_retries,
        transport=httpx.MockTransport(handler),
    )


class TestAuthorization:
    def test_sends_bearer_token(self, cache) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        with _client(cache, handler) as client:
            response = client.get("/v1/items", params={"page": "2"})

        assert response.json() == {"ok": True}
        assert seen[0].headers["authorization"] == "Bearer T1"
        assert seen[0].url == "https://api.example.com/v1/items?page=2"

    def test_reuses_cached_token(self, cache, endpoint) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200)

        with _client(cache, handler) as client:
            client.get("/a")
            client.get("/b")
        assert endpoint.calls == 1

    def test_caller_cannot_override_authorization(self, cache) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        with _client(cache, handler) as client:
            client.get("/", headers={"Authorization": "Bearer stolen", "X-Trace": "1"})
        assert seen[0].headers["authorization"] == "Bearer T1"
        assert seen[0].headers["x-trace"] == "1"

    def test_json_body(self, cache) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        with _client(cache, handler) as client:
            client.post("/v1/predict", json_body={"instances": [1, 2]})
        assert json.loads(seen[0].content) == {"instances": [1, 2]}

    def test_refresh_error_propagates(self, cache, endpoint) -> None:
        endpoint.error = RefreshError("Token request failed with status 401: invalid_grant")

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("API must not be called without a token")

        with _client(cache, handler) as client, pytest.raises(RefreshError):
            client.get("/")

    def test_requires_context_manager(self, cache) -> None:
        client = AuthorizedClient(cache, base_url=BASE_URL)
        with pytest.raises(RuntimeError, match="context manager"):
            client.get("/")


class TestUnauthorizedReplay:
    def test_401_invalidates_and_replays_once(self, cache, endpoint) -> None:
        tokens: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            tokens.append(request.headers["authorization"])
            if len(tokens) == 1:
                return httpx.Response(401)
            return httpx.Response(200, json={"ok": True})

        with _client(cache, handler) as client:
            response = client.get("/")

        assert response.status_code == 200
        assert tokens == ["Bearer T1", "Bearer T2"]
        assert endpoint.calls == 2

    def test_persistent_401_raises_auth_error(self, cache) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(401, text="token revoked")

        with _client(cache, handler) as client, pytest.raises(AuthError, match="HTTP 401"):
            client.get("/")
        assert len(calls) == 2

    def test_403_not_replayed(self, cache) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(403, text="forbidden")

        with _client(cache, handler) as client, pytest.raises(AuthError, match="HTTP 403"):
            client.get("/")
        assert len(calls) == 1


class TestRetries:
    def test_retries_5xx_with_backoff(self, cache, sleeps) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={"ok": True})

        with _client(cache, handler) as client:
            response = client.get("/")

        assert response.status_code == 200
        assert len(calls) == 3
        assert sleeps == [1, 2]

    def test_server_error_after_retries(self, cache, sleeps) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="internal")

        with _client(cache, handler, max_retries=1) as client:
            with pytest.raises(ServerError, match="HTTP 500"):
                client.get("/")
        assert sleeps == [1]

    def test_connection_error_after_retries(self, cache, sleeps) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with _client(cache, handler) as client:
            with pytest.raises(ConnectionError_, match="after 3 attempts"):
                client.get("/")
        assert sleeps == [1, 2]

    def test_no_retries(self, cache, sleeps) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with _client(cache, handler, max_retries=0) as client:
            with pytest.raises(ConnectionError_):
                client.get("/")
        assert sleeps == []


class TestErrorMapping:
    def test_404(self, cache) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, text="no such model")

        with _client(cache, handler) as client, pytest.raises(NotFoundError, match="no such model"):
            client.get("/missing")

    def test_other_4xx_returned(self, cache) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(422, json={"error": "bad input"})

        with _client(cache, handler) as client:
            response = client.post("/", json_body={})
        assert response.status_code == 422

"""Shared test fixtures for satoken.

Provides RSA key material, ready-made credentials, a controllable clock,
isolated config directories and a CLI runner.  These fixtures are
automatically discovered by pytest and available to all test modules.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from satoken.models import RefreshTokenCredential, ServiceAccountCredential
from satoken.output import reset_output

ISSUER = "robot@example-project.iam.gserviceaccount.com"
TOKEN_URI = "https://oauth2.example.com/token"
SCOPE = "https://www.googleapis.com/auth/cloud-platform"


class FakeClock:
    """Callable clock for :class:`~satoken.auth.cache.CredentialCache`."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Global state reset
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; CliRunner swaps those streams per invocation.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _restore_root_logger() -> None:
    """Undo ``logging.basicConfig(force=True)`` done by the CLI callback."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


# ---------------------------------------------------------------------------
# Key material
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    """A 2048-bit RSA key shared by the whole session (generation is slow)."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_private_key: rsa.RSAPrivateKey) -> str:
    """PKCS#8 PEM for :func:`rsa_private_key`, as found in key files."""
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture
def service_account(private_key_pem: str) -> ServiceAccountCredential:
    return ServiceAccountCredential(
        issuer=ISSUER,
        private_key=private_key_pem,
        token_uri=TOKEN_URI,
        scope=SCOPE,
    )


@pytest.fixture
def refresh_credential() -> RefreshTokenCredential:
    return RefreshTokenCredential(
        client_id="client-123.apps.example.com",
        client_secret="s3cret",
        refresh_token="1//refresh-token",
        token_uri=TOKEN_URI,
    )


@pytest.fixture
def service_account_info(private_key_pem: str) -> dict[str, Any]:
    """Contents of a Google-style ``service_account`` key file."""
    return {
        "type": "service_account",
        "project_id": "example-project",
        "private_key_id": "abc123",
        "private_key": private_key_pem,
        "client_email": ISSUER,
        "client_id": "1234567890",
        "token_uri": TOKEN_URI,
    }


@pytest.fixture
def key_file(tmp_path: Path, service_account_info: dict[str, Any]) -> Path:
    """A service-account key file written to disk."""
    path = tmp_path / "sa-key.json"
    path.write_text(json.dumps(service_account_info), encoding="utf-8")
    return path


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points the XDG directories at tmp_path, clears every variable that
    :func:`~satoken.config.resolve_config` reads, and changes the working
    directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("satoken.config._is_xdg_platform", lambda: True)

    for var in [
        "GOOGLE_APPLICATION_CREDENTIALS",
        "SATOKEN_CREDENTIALS",
        "SATOKEN_SCOPE",
        "SATOKEN_TOKEN_URL",
        "SATOKEN_TIMEOUT",
        "SATOKEN_GRANT_TYPE",
        "SATOKEN_ISSUER",
        "SATOKEN_PRIVATE_KEY",
        "SATOKEN_PRIVATE_KEY_FILE",
        "SATOKEN_CLIENT_ID",
        "SATOKEN_CLIENT_SECRET",
        "SATOKEN_REFRESH_TOKEN",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()

"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for satoken:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.satoken/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- A single :class:`~satoken.models.GlobalConfig`
  JSON file storing defaults (credential source, scope, timeouts).
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables and global config into the effective configuration.
* **Credential loading** -- :func:`load_credential` reads a JSON key file
  from a source descriptor; :func:`credential_from_env` assembles one from
  individual ``SATOKEN_*`` variables.  Either way the grant type is an
  explicit field, never guessed.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import getpass
import json
import logging
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping, Optional

import dotenv
from pydantic import ValidationError

from satoken.exceptions import ConfigError
from satoken.models import (
    DEFAULT_SCOPE,
    DEFAULT_TOKEN_URI,
    Credential,
    GlobalConfig,
    credential_adapter,
)

if TYPE_CHECKING:
    from satoken.auth.cache import CredentialCache

logger = logging.getLogger(__name__)

_APP_NAME = "satoken"
_CONFIG_FILENAME = "config.json"

# Key-file "type" values and the grant each one selects.
_KEY_FILE_TYPES = {
    "service_account": "jwt_bearer",
    "authorized_user": "refresh_token",
}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform uses XDG Base Directory paths (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/satoken/`` (default ``~/.config/satoken/``).
    On macOS/Windows: ``~/.satoken/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_CONFIG_HOME", (".config",))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/satoken/`` (default ``~/.local/share/satoken/``).
    On macOS/Windows: ``~/.satoken/logs/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_DATA_HOME", (".local", "share"))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~satoken.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk.

    Args:
        config: The configuration to save.
    """
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def load_dotenv(path: Optional[str | Path] = None) -> bool:
    """Load ``KEY=VALUE`` pairs from a ``.env`` file into ``os.environ``.

    Variables already present in the environment win.  A missing file is
    not an error.

    Args:
        path: File to read; defaults to ``./.env``.

    Returns:
        ``True`` if at least one variable was read from the file.
    """
    dotenv_path = Path(path) if path is not None else Path.cwd() / ".env"
    if not dotenv_path.is_file():
        return False
    logger.debug("Loading environment from %s", dotenv_path)
    return dotenv.load_dotenv(dotenv_path, override=False)


def resolve_config(
    cli_credentials: Optional[str] = None,
    cli_scope: Optional[str] = None,
    cli_timeout: Optional[float] = None,
) -> GlobalConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_credentials``, ``cli_scope``, ``cli_timeout``)
        2. Environment variables (``SATOKEN_CREDENTIALS``, ``SATOKEN_SCOPE``,
           ``SATOKEN_TOKEN_URL``, ``SATOKEN_TIMEOUT``)
        3. ``GOOGLE_APPLICATION_CREDENTIALS`` (credential source only)
        4. User config (``~/.config/satoken/config.json``)
        5. Defaults

    Returns:
        The effective :class:`~satoken.models.GlobalConfig`.

    Raises:
        ConfigError: If the global config is invalid or ``SATOKEN_TIMEOUT``
            is not a positive number.
    """
    # 5 + 4. Load base global config (fills in defaults automatically)
    cfg = load_global_config()
    updates: dict[str, Any] = {}

    # 3. Well-known Google variable, below our own
    gac = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    if gac:
        updates["credentials"] = gac

    # 2. Environment variables
    env_credentials = os.environ.get("SATOKEN_CREDENTIALS")
    if env_credentials:
        updates["credentials"] = env_credentials
    env_scope = os.environ.get("SATOKEN_SCOPE")
    if env_scope:
        updates["scope"] = env_scope
    env_token_url = os.environ.get("SATOKEN_TOKEN_URL")
    if env_token_url:
        updates["token_url"] = env_token_url
    env_timeout = os.environ.get("SATOKEN_TIMEOUT")
    if env_timeout:
        updates["timeout"] = env_timeout

    # 1. CLI flags (highest precedence)
    if cli_credentials is not None:
        updates["credentials"] = cli_credentials
    if cli_scope is not None:
        updates["scope"] = cli_scope
    if cli_timeout is not None:
        updates["timeout"] = cli_timeout

    if not updates:
        return cfg
    try:
        return GlobalConfig.model_validate({**cfg.model_dump(), **updates})
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration override: {exc}") from exc


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a secret from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts user interactively (requires a TTY)

    Args:
        source: The source descriptor string.

    Returns:
        The resolved credential string.

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        file_path = source[5:]
        path = Path(file_path).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(
                "Cannot prompt for credentials: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Enter credential: ")

    raise ConfigError(f"Unknown credential source format: {source}")


def parse_key_file(
    data: Mapping[str, Any],
    scope: Optional[str] = None,
    token_url: Optional[str] = None,
) -> Credential:
    """Build a credential from a parsed JSON key file.

    Recognises Google-style key files (``"type": "service_account"`` with
    ``client_email``/``private_key``, and ``"type": "authorized_user"`` with
    ``client_id``/``client_secret``/``refresh_token``) as well as files that
    already use satoken's own field names with an explicit ``grant_type``.

    Args:
        data: The decoded JSON object.
        scope: Scope override for service accounts.
        token_url: Token endpoint override.

    Returns:
        A validated :data:`~satoken.models.Credential`.

    Raises:
        ConfigError: If neither ``grant_type`` nor a known ``type`` is
            present, or required fields are missing.
    """
    grant_type = data.get("grant_type") or _KEY_FILE_TYPES.get(str(data.get("type")))
    if grant_type is None:
        raise ConfigError(
            "Key file must declare 'grant_type' (jwt_bearer, refresh_token) or "
            f"'type' ({', '.join(sorted(_KEY_FILE_TYPES))}); got type={data.get('type')!r}"
        )

    fields: dict[str, Any] = {"grant_type": grant_type}
    if grant_type == "jwt_bearer":
        fields["issuer"] = data.get("issuer") or data.get("client_email")
        fields["private_key"] = data.get("private_key")
        fields["private_key_id"] = data.get("private_key_id")
        fields["audience"] = data.get("audience")
        fields["scope"] = scope or data.get("scope") or DEFAULT_SCOPE
    else:
        for name in ("client_id", "client_secret", "refresh_token"):
            fields[name] = data.get(name)
    fields["token_uri"] = token_url or data.get("token_uri") or DEFAULT_TOKEN_URI
    if token_url and grant_type == "jwt_bearer" and not data.get("audience"):
        fields["audience"] = token_url

    try:
        return credential_adapter.validate_python(fields)
    except ValidationError as exc:
        raise ConfigError(f"Invalid {grant_type} credential: {exc}") from exc


def load_credential(
    source: str,
    scope: Optional[str] = None,
    token_url: Optional[str] = None,
) -> Credential:
    """Load a credential from a key-file source descriptor.

    Args:
        source: ``file:/path/key.json``, ``env:VAR`` (the variable holds the
            JSON document) or a bare filesystem path.
        scope: Scope override for service accounts.
        token_url: Token endpoint override.

    Returns:
        A validated :data:`~satoken.models.Credential`.

    Raises:
        ConfigError: If the source cannot be read or does not hold a valid
            key file.
    """
    if not source.startswith(("env:", "file:")) and source != "prompt":
        source = f"file:{source}"
    text = resolve_credential(source)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Credential source {source} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Credential source {source} must hold a JSON object")
    credential = parse_key_file(data, scope=scope, token_url=token_url)
    logger.debug("Loaded %s credential from %s", credential.grant_type, source)
    return credential


def credential_from_env(
    environ: Optional[Mapping[str, str]] = None,
    scope: Optional[str] = None,
    token_url: Optional[str] = None,
) -> Credential:
    """Assemble a credential from individual ``SATOKEN_*`` variables.

    ``SATOKEN_GRANT_TYPE`` must be set to ``jwt_bearer`` or
    ``refresh_token``.  The JWT-bearer grant reads ``SATOKEN_ISSUER`` and
    ``SATOKEN_PRIVATE_KEY`` (or ``SATOKEN_PRIVATE_KEY_FILE``); the
    refresh-token grant reads ``SATOKEN_CLIENT_ID``,
    ``SATOKEN_CLIENT_SECRET`` and ``SATOKEN_REFRESH_TOKEN``.  Both honour
    ``SATOKEN_TOKEN_URL`` and ``SATOKEN_SCOPE``.

    Raises:
        ConfigError: If ``SATOKEN_GRANT_TYPE`` is missing or the remaining
            variables do not form a valid credential.
    """
    env = os.environ if environ is None else environ
    grant_type = env.get("SATOKEN_GRANT_TYPE")
    if not grant_type:
        raise ConfigError("SATOKEN_GRANT_TYPE must be set to 'jwt_bearer' or 'refresh_token'")

    data: dict[str, Any] = {
        "grant_type": grant_type,
        "token_uri": env.get("SATOKEN_TOKEN_URL"),
        "scope": env.get("SATOKEN_SCOPE"),
    }
    if grant_type == "jwt_bearer":
        data["issuer"] = env.get("SATOKEN_ISSUER")
        private_key = env.get("SATOKEN_PRIVATE_KEY")
        key_file = env.get("SATOKEN_PRIVATE_KEY_FILE")
        if not private_key and key_file:
            private_key = resolve_credential(f"file:{key_file}")
        # Escaped newlines survive single-line .env files
        data["private_key"] = private_key.replace("\\n", "\n") if private_key else None
    else:
        data["client_id"] = env.get("SATOKEN_CLIENT_ID")
        data["client_secret"] = env.get("SATOKEN_CLIENT_SECRET")
        data["refresh_token"] = env.get("SATOKEN_REFRESH_TOKEN")
    return parse_key_file(data, scope=scope, token_url=token_url)


def load_configured_credential(config: GlobalConfig) -> Credential:
    """Load the credential named by *config*, falling back to ``SATOKEN_*`` variables.

    Raises:
        ConfigError: If no credential source is configured, or it cannot
            be loaded.
    """
    if config.credentials:
        return load_credential(config.credentials, scope=config.scope, token_url=config.token_url)
    if os.environ.get("SATOKEN_GRANT_TYPE"):
        return credential_from_env(scope=config.scope, token_url=config.token_url)
    raise ConfigError(
        "No credentials configured. Pass --credentials, set SATOKEN_CREDENTIALS "
        "or GOOGLE_APPLICATION_CREDENTIALS, or set SATOKEN_GRANT_TYPE and friends."
    )


def create_cache(config: GlobalConfig) -> CredentialCache:
    """Build a :class:`~satoken.auth.cache.CredentialCache` from *config*.

    Raises:
        ConfigError: If the credential cannot be loaded.
        InvalidKeyError: If a service-account key cannot be parsed.
    """
    from satoken.auth.cache import CredentialCache

    credential = load_configured_credential(config)
    return CredentialCache(
        credential,
        refresh_margin=config.refresh_margin,
        timeout=config.timeout,
    )

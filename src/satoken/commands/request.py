"""Request command -- call a protected API with a cached bearer token.

Example::

    satoken request POST \\
        https://us-central1-aiplatform.googleapis.com/v1/projects/p/locations/us-central1/publishers/google/models/gemini-2.0-flash-001:predict \\
        --data @payload.json
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import typer

from satoken.commands import handle_errors, settings_from_context
from satoken.exceptions import InvalidUsageError
from satoken.output import format_response, warning


def _read_body(data: Optional[str]) -> Any:
    """Load ``--data``: inline JSON, ``@file``, or ``@-`` for stdin."""
    if data is None:
        return None
    if data.startswith("@"):
        source = data[1:]
        if source == "-":
            text = typer.get_text_stream("stdin").read()
        else:
            path = Path(source).expanduser()
            if not path.is_file():
                raise InvalidUsageError(f"Data file not found: {path}")
            text = path.read_text(encoding="utf-8")
    else:
        text = data
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidUsageError(f"--data is not valid JSON: {exc}") from exc


def _parse_headers(raw: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for item in raw:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            raise InvalidUsageError(f"Header must look like 'Name: value', got '{item}'")
        headers[name.strip()] = value.strip()
    return headers


def request_command(
    ctx: typer.Context,
    method: str = typer.Argument(help="HTTP method (GET, POST, ...)."),
    url: str = typer.Argument(help="Absolute URL of the protected API."),
    data: Optional[str] = typer.Option(
        None, "--data", "-d", help="JSON body, '@file.json', or '@-' for stdin."
    ),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Extra header 'Name: value' (repeatable)."
    ),
) -> None:
    """Send one authorized request and print the response body."""
    from satoken.client import AuthorizedClient
    from satoken.config import create_cache

    with handle_errors():
        body = _read_body(data)
        headers = _parse_headers(header or [])
        settings = settings_from_context(ctx)
        cache = create_cache(settings)
        with AuthorizedClient(
            cache, timeout=settings.timeout, max_retries=settings.max_retries
        ) as client:
            response = client.request(method, url, headers=headers, json_body=body)

        try:
            format_response(response.json())
        except ValueError:
            format_response(response.text)
        if response.is_error:
            warning(f"HTTP {response.status_code}")
            raise typer.Exit(code=1)

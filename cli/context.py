"""Persistent state management for the modelmatch CLI.

Caches one access token per tenant so consecutive commands do not hit the
identity provider every time.  Stored in `~/.modelmatch/context.json`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from functools import wraps
from pathlib import Path
from typing import Any, Callable

import typer

from modelmatch.api.client import ApiClient, create_client
from modelmatch.api.token import AccessToken, request_token
from modelmatch.config import settings
from modelmatch.errors import ClientError, ModelMatchError

logger = logging.getLogger(__name__)

EXIT_ERROR = 1
EXIT_PARTIAL = 2
EXIT_INTERRUPTED = 130


@dataclass
class CliContext:
    tokens: dict[str, dict[str, Any]] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)

    @classmethod
    def from_json(cls, data: str) -> CliContext:
        try:
            raw = json.loads(data)
            return cls(**raw)
        except (json.JSONDecodeError, TypeError):
            return cls()

    def cached_token(self, tenant: str) -> AccessToken | None:
        entry = self.tokens.get(tenant)
        if not entry:
            return None
        try:
            return AccessToken(value=entry["token"], expires_at=float(entry["expires_at"]))
        except (KeyError, TypeError, ValueError):
            return None

    def store_token(self, tenant: str, token: AccessToken) -> None:
        self.tokens[tenant] = {"token": token.value, "expires_at": token.expires_at}

    def forget_token(self, tenant: str) -> bool:
        return self.tokens.pop(tenant, None) is not None


def _get_context_path() -> Path:
    """Return the path to the context JSON file."""
    return settings.cli_config_dir / "context.json"


def load_context() -> CliContext:
    """Load the CLI context from disk. Returns defaults if missing/corrupt."""
    path = _get_context_path()
    if not path.exists():
        return CliContext()

    try:
        return CliContext.from_json(path.read_text(encoding="utf-8"))
    except OSError:
        return CliContext()


def save_context(ctx: CliContext) -> None:
    """Save the CLI context to disk."""
    settings.ensure_config_dir()
    _get_context_path().write_text(ctx.to_json(), encoding="utf-8")


# ---------------------------------------------------------------------------
# Tenant / token / client
# ---------------------------------------------------------------------------

def require_tenant() -> str:
    if not settings.tenant:
        raise ClientError("No tenant configured (set MODELMATCH_TENANT or pass --tenant)")
    return settings.tenant


def get_access_token(tenant: str) -> str:
    """Return a usable access token for *tenant*.

    A static ``MODELMATCH_ACCESS_TOKEN`` wins; otherwise the cached token is
    reused until it expires, then a new one is requested and cached.
    """
    if settings.access_token:
        return settings.access_token

    ctx = load_context()
    cached = ctx.cached_token(tenant)
    if cached and cached.is_valid():
        return cached.value

    logger.debug("No valid cached token for tenant %s", tenant)
    token = request_token()
    ctx.store_token(tenant, token)
    save_context(ctx)
    return token.value


def invalidate_token(tenant: str) -> bool:
    """Drop the cached token of *tenant*. Returns whether one was cached."""
    ctx = load_context()
    removed = ctx.forget_token(tenant)
    if removed:
        save_context(ctx)
    return removed


def open_client() -> ApiClient:
    tenant = require_tenant()
    return create_client(get_access_token(tenant), tenant)


def handle_errors(func: Callable) -> Callable:
    """Decorator mapping library errors to a stderr message and exit code.

    ``ModelMatchError`` exits with 1, ``KeyboardInterrupt`` with 130.  An
    interrupt cancels queued calls, but the ones already sent are not
    aborted, so the exit can lag by up to ``settings.request_timeout``.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ModelMatchError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(code=EXIT_ERROR)
        except KeyboardInterrupt:
            typer.echo(
                "Interrupted; no output written. Requests already sent finish or time "
                f"out (up to {settings.request_timeout:g}s, MODELMATCH_REQUEST_TIMEOUT) "
                "before the process exits.",
                err=True,
            )
            raise typer.Exit(code=EXIT_INTERRUPTED)

    return wrapper

"""Access-token commands."""

import typer

from cli.context import get_access_token, handle_errors, invalidate_token, require_tenant


@handle_errors
def token() -> None:
    """Print a valid access token for the tenant."""
    typer.echo(get_access_token(require_tenant()))


@handle_errors
def invalidate() -> None:
    """Forget the cached access token of the tenant."""
    tenant = require_tenant()
    if invalidate_token(tenant):
        typer.echo(f"Cached token for {tenant} removed.")
    else:
        typer.echo(f"No cached token for {tenant}.")

"""The label-folder command."""

from typing import List, Optional

import typer

from cli.context import EXIT_PARTIAL, handle_errors, open_client
from cli.rendering import render_propagation
from modelmatch.labels import LabelPropagator


@handle_errors
def label_folder(
    folder: Optional[List[str]] = typer.Option(
        None, "--folder", "-d", help="Folder name (repeat for several; default: all)."
    ),
    threshold: float = typer.Option(
        ..., "--threshold", "-t", min=0.0, max=1.0, help="Minimum match score (0-1)."
    ),
    property_name: str = typer.Option(..., "--property", "-p", help="Metadata property to propagate."),
    exclusive: bool = typer.Option(
        False, "--exclusive", help="Only take evidence from models inside the folders."
    ),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Only label models matching this term."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report decisions without writing them."),
) -> None:
    """Propagate a property from the best-matching labeled models (one pass).

    On Ctrl-C, requests already sent finish or time out
    (MODELMATCH_REQUEST_TIMEOUT) before the command exits.
    """
    if not property_name.strip():
        raise typer.BadParameter("must not be empty", param_hint="--property")

    with open_client() as client:
        folder_ids = client.resolve_folder_ids(folder) if folder else None
        report = LabelPropagator(client).propagate(
            folder_ids,
            threshold,
            property_name,
            exclusive=exclusive,
            search=search,
            apply=not dry_run,
        )

    for line in report.warnings():
        typer.echo(line, err=True)
    typer.echo(render_propagation(report))
    if report.has_failures:
        raise typer.Exit(code=EXIT_PARTIAL)

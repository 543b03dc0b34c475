"""Read-only commands: folders, assembly trees, single-model matches."""

import typer

from cli.context import handle_errors, open_client
from cli.rendering import render_candidates, render_tree
from modelmatch.assembly import AssemblyResolver, collect_warnings


@handle_errors
def folders() -> None:
    """List the folders of the tenant."""
    with open_client() as client:
        items = client.list_folders()
    if not items:
        typer.echo("No folders found.")
        return
    for folder in sorted(items, key=lambda f: f.name.casefold()):
        typer.echo(f"  {folder.id:>6}  {folder.name}")


@handle_errors
def assembly_tree(
    uuid: str = typer.Option(..., "--uuid", "-u", help="Top-level assembly UUID."),
) -> None:
    """Resolve an assembly and print its component tree."""
    with open_client() as client:
        root = AssemblyResolver(client).resolve(uuid)
    typer.echo(render_tree(root))

    warnings = collect_warnings(root)
    for w in warnings:
        typer.echo(f"Warning: {w.model_id} (under {w.parent_id}): {w.reason}", err=True)
    stubs = len(root.stubs())
    typer.echo(f"Components: {sum(1 for _ in root.walk())}  Unresolved: {stubs}")


@handle_errors
def match_model(
    uuid: str = typer.Option(..., "--uuid", "-u", help="The model UUID."),
    threshold: float = typer.Option(
        ..., "--threshold", "-t", min=0.0, max=1.0, help="Minimum match score (0-1)."
    ),
) -> None:
    """Print the ranked match candidates of one model."""
    with open_client() as client:
        candidates = client.match_model(uuid, threshold)
    candidates = [c for c in candidates if c.model.id != uuid and c.score >= threshold]
    typer.echo(render_candidates(candidates))

"""The match-report command: duplicate report, graph and dictionary."""

from pathlib import Path
from typing import List

import typer

from cli.context import EXIT_PARTIAL, handle_errors, open_client
from cli.rendering import render_build_summary
from modelmatch.assembly import AssemblyResolver, collect_warnings
from modelmatch.graph import MatchGraphBuilder, write_match_report


@handle_errors
def match_report(
    uuid: List[str] = typer.Option(
        ..., "--uuid", "-u", help="Top-level assembly UUID (repeat for several)."
    ),
    threshold: float = typer.Option(
        ..., "--threshold", "-t", min=0.0, max=1.0, help="Minimum match score (0-1)."
    ),
    duplicates: Path = typer.Option(..., "--duplicates", "-d", help="Duplicate report CSV path."),
    graph: Path = typer.Option(..., "--graph", "-g", help="Graphviz DOT output path."),
    dictionary: Path = typer.Option(..., "--dictionary", help="Index-to-model JSON output path."),
    meta: bool = typer.Option(False, "--meta", help="Add model metadata columns to the CSV."),
) -> None:
    """Match every component of one or more assemblies and write the report.

    On Ctrl-C, requests already sent finish or time out
    (MODELMATCH_REQUEST_TIMEOUT) before the command exits.
    """
    with open_client() as client:
        folder_names = {f.id: f.name for f in client.list_folders()}
        resolver = AssemblyResolver(client)
        roots = [resolver.resolve(model_id) for model_id in dict.fromkeys(uuid)]
        match_graph, table = MatchGraphBuilder(client, folders=folder_names).build(
            roots, threshold, include_meta=meta
        )

    write_match_report(match_graph, table, duplicates, graph, dictionary)

    for root in roots:
        for w in collect_warnings(root):
            typer.echo(f"Warning: {w.model_id} (under {w.parent_id}): {w.reason}", err=True)
    typer.echo(render_build_summary(match_graph, table))
    typer.echo(f"Wrote {duplicates}, {graph}, {dictionary}")

    if table.skipped:
        raise typer.Exit(code=EXIT_PARTIAL)

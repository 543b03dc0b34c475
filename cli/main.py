"""modelmatch CLI: entry-point for all client operations.

Usage:
    python cli/main.py --help

Commands:
    folders        list the folders of the tenant
    assembly-tree  print the resolved component tree of an assembly
    match-model    ranked match candidates of one model
    match-report   duplicate report, graph and dictionary for assemblies
    label-folder   propagate a metadata property across a folder
    token          print an access token
    invalidate     forget the cached access token
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that
# `from modelmatch.xxx import ...` works when the CLI is invoked as
# `python cli/main.py` from any working directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import logging
from typing import Optional

import typer

from cli.commands import auth, catalog, labels, report
from modelmatch.config import settings

app = typer.Typer(
    name="modelmatch",
    help="3D model match-report and label-propagation client.",
    no_args_is_help=True,
)


def configure_logging(verbose: bool = False) -> None:
    """Send all log records to stderr so they never mix with command output."""
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


@app.callback()
def main(
    tenant: Optional[str] = typer.Option(None, "--tenant", help="Tenant to operate on (overrides MODELMATCH_TENANT)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Global options."""
    configure_logging(verbose)
    if tenant:
        settings.tenant = tenant


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------
app.command("folders")(catalog.folders)
app.command("assembly-tree")(catalog.assembly_tree)
app.command("match-model")(catalog.match_model)

# ---------------------------------------------------------------------------
# Match report / label propagation
# ---------------------------------------------------------------------------
app.command("match-report")(report.match_report)
app.command("label-folder")(labels.label_folder)

# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------
app.command("token")(auth.token)
app.command("invalidate")(auth.invalidate)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()

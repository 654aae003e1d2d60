from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from fourd_test_explorer.cli.reporting import render_tags, render_tree
from fourd_test_explorer.core.session import TestSession

console = Console()

WorkspaceArg = Annotated[Path, typer.Argument(help="Workspace root or a single .4dm file.")]


def discover(workspace: WorkspaceArg = Path(".")) -> None:
    """List the test functions and assertions found in the workspace."""
    session = TestSession(workspace)
    roots = session.discover(workspace)
    if not roots:
        console.print(f"[yellow]No tests found under {workspace}[/yellow]")
        raise typer.Exit(1)
    render_tree(console, str(workspace), roots)
    console.print(f"({len(session.headings())} tests in {len(roots)} files)")


def tags(workspace: WorkspaceArg = Path(".")) -> None:
    """List the tags used by the discovered tests."""
    session = TestSession(workspace)
    session.discover(workspace)
    render_tags(console, session.tag_counts())

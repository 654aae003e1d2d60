import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from fourd_test_explorer.cli.reporting import ConsoleTestRun, render_results
from fourd_test_explorer.config import RunnerSettings
from fourd_test_explorer.core.entities import suite_name
from fourd_test_explorer.core.orchestrator import RunRequest, run_tests, select_functions
from fourd_test_explorer.core.ports.hierarchy import TestNode
from fourd_test_explorer.core.session import TestSession

console = Console()


def _resolve_selection(session: TestSession, names: list[str]) -> list[TestNode]:
    """Turn ``Suite`` or ``Suite.test_name`` strings into hierarchy nodes."""
    nodes: list[TestNode] = []
    for name in names:
        suite, _, function = name.partition(".")
        if function:
            heading = session.find_heading(suite, function)
            if heading is None:
                console.print(f"[red]Unknown test {name}[/red]")
                raise typer.Exit(1)
            nodes.append(heading)
            continue
        files = [root for root in session.hierarchy.roots() if suite_name(root) == suite]
        if not files:
            console.print(f"[red]Unknown suite {name}[/red]")
            raise typer.Exit(1)
        nodes.extend(files)
    return nodes


def run(
    workspace: Annotated[Path, typer.Argument(help="Workspace root the runner is started in.")] = Path("."),
    tag: Annotated[str | None, typer.Option(help="Run only the tests carrying this tag.")] = None,
    test: Annotated[
        list[str] | None, typer.Option("--test", "-t", help="Suite or Suite.test_name to run; repeatable.")
    ] = None,
    runner: Annotated[
        str | None, typer.Option(help="Runner command, defaults to $FOURD_TEST_RUNNER or 'make'.")
    ] = None,
) -> None:
    """Run tests through the external runner and report the results."""
    session = TestSession(workspace, settings=RunnerSettings.from_env(runner))
    session.discover()
    request = RunRequest(include=_resolve_selection(session, test) if test else None, tag=tag)
    selected = select_functions(session, request)

    reporter = ConsoleTestRun(console=console)
    summary = asyncio.run(run_tests(session, request, reporter))
    if summary is None:
        raise typer.Exit(1)

    render_results(console, reporter, selected)
    if not summary.ok:
        if summary.payload_error is None:
            console.print(f"[red]{summary.failed} failed[/red], {summary.passed} passed")
        raise typer.Exit(1)
    console.print(f"[green]{summary.passed} passed[/green]")

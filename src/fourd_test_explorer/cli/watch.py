import asyncio
import contextlib
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from fourd_test_explorer.core.ports.watcher import FileWatcherPort
from fourd_test_explorer.core.session import TestSession
from fourd_test_explorer.watcher.watchfiles_adapter import WatchfilesWatcher

console = Console()


def watch(
    workspace: Annotated[Path, typer.Argument(help="Workspace root to watch.")] = Path("."),
) -> None:
    """Re-parse test files whenever they change."""
    session = TestSession(workspace)
    roots = session.discover()
    console.print(f"Watching {len(roots)} test file(s), press Ctrl+C to stop")

    async def _on_change(paths: set[Path]) -> None:
        for path in sorted(paths):
            node = session.refresh(path)
            if node is None:
                console.print(f"[yellow]{path.name}[/yellow]: no tests")
            else:
                console.print(f"[green]{path.name}[/green]: {len(node.children)} test(s)")

    directory = session.workspace / session.settings.sources_dir
    watcher: FileWatcherPort = WatchfilesWatcher(directory if directory.is_dir() else session.workspace, _on_change)

    async def _run() -> None:
        await watcher.start()
        try:
            await watcher.wait()
        finally:
            await watcher.stop()

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(_run())

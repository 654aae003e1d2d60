from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from fourd_test_explorer.core.line_mapping import map_file_line

console = Console()


def map_line(
    file: Annotated[Path, typer.Argument(help="4D class file.")],
    function: Annotated[str, typer.Argument(help="Function name, optionally qualified (Class.function).")],
    offset: Annotated[int, typer.Argument(help="Line number reported by the runner, relative to the function.")],
) -> None:
    """Print the file line (1-based) of a runner-reported function line."""
    line = map_file_line(file, function, offset)
    if line is None:
        console.print(f"[red]Line {offset} of {function} not found in {file}[/red]")
        raise typer.Exit(1)
    console.print(line + 1)

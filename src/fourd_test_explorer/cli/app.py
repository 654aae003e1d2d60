import logging
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from fourd_test_explorer.cli.discover import discover, tags
from fourd_test_explorer.cli.map_line import map_line
from fourd_test_explorer.cli.run import run
from fourd_test_explorer.cli.watch import watch

app = typer.Typer(
    name="fourd-tests",
    help="Discover, run and report 4D unit tests.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def configure(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


app.command("discover")(discover)
app.command("tags")(tags)
app.command("run")(run)
app.command("watch")(watch)
app.command("map-line")(map_line)


def main() -> None:
    app()

from collections.abc import Sequence
from dataclasses import dataclass, field

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from fourd_test_explorer.core.entities import AssertionData, is_assertion, is_heading
from fourd_test_explorer.core.ports.hierarchy import TestNode
from fourd_test_explorer.tree.memory import InMemoryTestRun

_STATUS_STYLES = {
    "passed": "[green]passed[/green]",
    "failed": "[red]failed[/red]",
    "started": "[yellow]no result[/yellow]",
}


@dataclass
class ConsoleTestRun(InMemoryTestRun):
    """Records the run like ``InMemoryTestRun`` and echoes runner output to the console."""

    console: Console = field(default_factory=Console)

    def append_output(self, text: str) -> None:
        super().append_output(text)
        self.console.print(text, end="", markup=False, highlight=False)


def _tag_list(node: TestNode) -> str:
    return ", ".join(tag.id for tag in node.tags)


def _line(node: TestNode) -> str:
    return str(node.range.start.line + 1) if node.range is not None else "-"


def _add_heading(branch: Tree, heading: TestNode) -> None:
    heading_branch = branch.add(
        f"{escape(heading.label)} [dim]({escape(_tag_list(heading))}) line {_line(heading)}[/dim]"
    )
    for child in heading.children:
        if is_assertion(child):
            data: AssertionData = child.data
            heading_branch.add(f"{escape(child.label)} [dim]{escape(data.operator)} line {_line(child)}[/dim]")
        elif is_heading(child):
            _add_heading(heading_branch, child)


def render_tree(console: Console, title: str, roots: Sequence[TestNode]) -> None:
    tree = Tree(f"[bold]{escape(title)}[/bold]")
    for root in roots:
        branch = tree.add(f"[cyan]{escape(root.label)}[/cyan]")
        for heading in root.children:
            if is_heading(heading):
                _add_heading(branch, heading)
    console.print(tree)


def render_tags(console: Console, counts: dict[str, int]) -> None:
    table = Table(show_lines=False)
    table.add_column("tag")
    table.add_column("tests", justify="right")
    for tag, count in counts.items():
        table.add_row(escape(tag), str(count))
    console.print(table)
    console.print(f"({len(counts)} tags)")


def render_results(console: Console, run: InMemoryTestRun, headings: Sequence[TestNode]) -> None:
    latest = run.final_events()
    table = Table(show_lines=False)
    table.add_column("test")
    table.add_column("status")
    table.add_column("ms", justify="right")
    table.add_column("line", justify="right")
    table.add_column("message")

    def _add(node: TestNode, label: str) -> None:
        event = latest.get(node.id)
        if event is None:
            return
        duration = f"{event.duration_ms:g}" if event.duration_ms is not None else ""
        message = (event.message or "").splitlines()
        table.add_row(label, _STATUS_STYLES[event.status], duration, _line(node), escape(message[0] if message else ""))

    for heading in headings:
        _add(heading, f"{escape(heading.file_ref.stem if heading.file_ref else '')}.{escape(heading.label)}")
        for child in heading.children:
            if is_assertion(child):
                _add(child, f"  {escape(child.label)}")
    console.print(table)

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

from fourd_test_explorer.core.ports.hierarchy import TestNode
from fourd_test_explorer.core.tags import Tag
from fourd_test_explorer.models import SourceRange


class InMemoryTestNode:
    def __init__(self, node_id: str, label: str, file_ref: Path | None, parent_id: str | None = None) -> None:
        self.id = node_id
        self.label = label
        self.file_ref = file_ref
        self.parent_id = parent_id
        self.parent: TestNode | None = None
        self.range: SourceRange | None = None
        self.tags: tuple[Tag, ...] = ()
        self.data: Any = None
        self._children: dict[str, TestNode] = {}

    def __repr__(self) -> str:
        return f"InMemoryTestNode(id={self.id!r}, label={self.label!r})"

    @property
    def children(self) -> tuple[TestNode, ...]:
        return tuple(self._children.values())

    def get_child(self, node_id: str) -> TestNode | None:
        return self._children.get(node_id)

    def replace_children(self, children: Sequence[TestNode]) -> None:
        replacement: dict[str, TestNode] = {}
        for child in children:
            replacement.setdefault(child.id, child)
        for child in replacement.values():
            child.parent = self
        # single assignment: readers see either the old or the new set
        self._children = replacement

    def set_range(self, source_range: SourceRange | None) -> None:
        self.range = source_range

    def set_tags(self, tags: tuple[Tag, ...]) -> None:
        self.tags = tags


class InMemoryTestHierarchy:
    """Implements the ``TestHierarchy`` protocol with plain Python objects."""

    def __init__(self) -> None:
        self._roots: dict[str, TestNode] = {}

    def create_node(
        self, parent_id: str | None, node_id: str, label: str, file_ref: Path | None
    ) -> InMemoryTestNode:
        return InMemoryTestNode(node_id, label, file_ref, parent_id)

    def add_root(self, node: TestNode) -> None:
        node.parent = None
        self._roots[node.id] = node

    def get_root(self, node_id: str) -> TestNode | None:
        return self._roots.get(node_id)

    def delete_root(self, node_id: str) -> None:
        self._roots.pop(node_id, None)

    def roots(self) -> list[TestNode]:
        return list(self._roots.values())

    def walk(self) -> list[TestNode]:
        """All nodes, depth first, roots in insertion order."""
        nodes: list[TestNode] = []
        stack = list(reversed(self.roots()))
        while stack:
            node = stack.pop()
            nodes.append(node)
            stack.extend(reversed(node.children))
        return nodes


Status = Literal["started", "passed", "failed"]


@dataclass
class RunEvent:
    status: Status
    node_id: str
    duration_ms: float | None = None
    message: str | None = None


@dataclass
class InMemoryTestRun:
    """Implements the ``TestRun`` protocol by recording every call."""

    events: list[RunEvent] = field(default_factory=list)
    output: list[str] = field(default_factory=list)
    ended: bool = False

    def started(self, node: TestNode) -> None:
        self.events.append(RunEvent("started", node.id))

    def passed(self, node: TestNode, duration_ms: float | None = None) -> None:
        self.events.append(RunEvent("passed", node.id, duration_ms))

    def failed(self, node: TestNode, message: str, duration_ms: float | None = None) -> None:
        self.events.append(RunEvent("failed", node.id, duration_ms, message))

    def append_output(self, text: str) -> None:
        self.output.append(text)

    def end(self) -> None:
        self.ended = True

    def status_of(self, node_id: str) -> Status | None:
        for event in reversed(self.events):
            if event.node_id == node_id:
                return event.status
        return None

    def final_events(self) -> dict[str, RunEvent]:
        """Last recorded event per node."""
        latest: dict[str, RunEvent] = {}
        for event in self.events:
            latest[event.node_id] = event
        return latest

    @property
    def text(self) -> str:
        return "".join(self.output)

from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol

from fourd_test_explorer.core.tags import Tag
from fourd_test_explorer.models import SourceRange


class TestNode(Protocol):
    id: str
    label: str
    file_ref: Path | None
    parent: "TestNode | None"
    range: SourceRange | None
    tags: tuple[Tag, ...]
    data: Any

    @property
    def children(self) -> Sequence["TestNode"]: ...

    def get_child(self, node_id: str) -> "TestNode | None": ...

    def replace_children(self, children: Sequence["TestNode"]) -> None: ...

    def set_range(self, source_range: SourceRange | None) -> None: ...

    def set_tags(self, tags: tuple[Tag, ...]) -> None: ...


class TestHierarchy(Protocol):
    def create_node(self, parent_id: str | None, node_id: str, label: str, file_ref: Path | None) -> TestNode: ...

    def add_root(self, node: TestNode) -> None: ...

    def get_root(self, node_id: str) -> TestNode | None: ...

    def delete_root(self, node_id: str) -> None: ...

    def roots(self) -> list[TestNode]: ...


class TestRun(Protocol):
    def started(self, node: TestNode) -> None: ...

    def passed(self, node: TestNode, duration_ms: float | None = None) -> None: ...

    def failed(self, node: TestNode, message: str, duration_ms: float | None = None) -> None: ...

    def append_output(self, text: str) -> None: ...

    def end(self) -> None: ...

from dataclasses import dataclass
from typing import Literal

from fourd_test_explorer.core.ports.hierarchy import TestNode


@dataclass(frozen=True)
class FileData:
    kind: Literal["file"] = "file"


@dataclass(frozen=True)
class HeadingData:
    generation: int
    tag_depth: int = 1


@dataclass(frozen=True)
class AssertionData:
    file: str
    actual: str
    operator: str
    expected: str
    should: str
    generation: int
    origin: Literal["source", "result"] = "source"
    full_message: str = ""

    @property
    def label(self) -> str:
        return self.should or f"{self.operator}({self.actual})"


NodeData = FileData | HeadingData | AssertionData


def is_file(node: TestNode) -> bool:
    return isinstance(node.data, FileData)


def is_heading(node: TestNode) -> bool:
    return isinstance(node.data, HeadingData)


def is_assertion(node: TestNode) -> bool:
    return isinstance(node.data, AssertionData)


def generation_of(node: TestNode) -> int | None:
    data = node.data
    if isinstance(data, HeadingData | AssertionData):
        return data.generation
    return None


def suite_name(node: TestNode) -> str:
    """The runner's suite name: the class file's base name without extension."""
    return node.file_ref.stem if node.file_ref is not None else ""


def heading_descendants(node: TestNode) -> list[TestNode]:
    """Every heading below *node*, nested headings included, in file order."""
    found: list[TestNode] = []
    for child in node.children:
        if is_heading(child):
            found.append(child)
            found.extend(heading_descendants(child))
    return found


def function_node(node: TestNode) -> TestNode:
    """Climb from *node* to the direct child of its file node."""
    current = node
    while current.parent is not None and current.parent.parent is not None:
        current = current.parent
    return current

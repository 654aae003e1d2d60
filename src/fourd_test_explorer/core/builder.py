"""Build the File -> Heading -> Assertion tree of one source file."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from fourd_test_explorer.core.entities import AssertionData, HeadingData, generation_of, is_heading
from fourd_test_explorer.core.ports.hierarchy import TestNode
from fourd_test_explorer.core.scanner import AssertionEvent, HeadingEvent, iter_events

if TYPE_CHECKING:
    from fourd_test_explorer.core.session import TestSession

logger = logging.getLogger(__name__)


@dataclass
class _OpenEntity:
    node: TestNode
    children: list[TestNode] = field(default_factory=list)


def update_from_text(session: TestSession, file_node: TestNode, text: str, generation: int | None = None) -> bool:
    """Rebuild the children of *file_node* from *text*.

    Every open entity collects its new children while the scanner runs and
    swaps them in with one ``replace_children`` call when it is closed, so the
    tree never shows a half-updated file. Returns ``False`` (and drops the
    file from the hierarchy) when the file declares no test function.
    """
    hierarchy = session.hierarchy
    stamp = session.next_generation() if generation is None else generation
    file_ref = file_node.file_ref
    ancestors: list[_OpenEntity] = [_OpenEntity(file_node)]
    heading_ids: set[str] = set()
    found_function = False

    def ascend(depth: int) -> None:
        while len(ancestors) > depth:
            finished = ancestors.pop()
            finished.node.replace_children([c for c in finished.children if generation_of(c) == stamp])

    for event in iter_events(text):
        if isinstance(event, HeadingEvent):
            found_function = True
            ascend(event.tag_depth)
            parent = ancestors[-1]
            node_id = f"{file_node.id}/{event.name}"
            heading = hierarchy.create_node(parent.node.id, node_id, event.name, file_ref)
            heading.set_range(event.range)
            heading.set_tags(session.tags.resolve(event.tags))
            heading.data = HeadingData(generation=stamp, tag_depth=event.tag_depth)
            if node_id in heading_ids:
                logger.warning("Duplicate test %s in %s, keeping the first", event.name, file_node.label)
            else:
                heading_ids.add(node_id)
                parent.children.append(heading)
            ancestors.append(_OpenEntity(heading))
        elif isinstance(event, AssertionEvent):
            parent = ancestors[-1]
            if not is_heading(parent.node):
                continue
            data = AssertionData(
                file=str(file_ref) if file_ref is not None else "",
                actual=event.actual,
                operator=event.operator,
                expected=event.expected,
                should=event.should,
                generation=stamp,
                full_message=event.should,
            )
            start = event.range.start
            node = hierarchy.create_node(
                parent.node.id, f"{parent.node.id}/{start.line}:{start.column}", data.label, file_ref
            )
            node.set_range(event.range)
            node.set_tags(parent.node.tags)
            node.data = data
            parent.children.append(node)

    ascend(0)

    if not found_function:
        hierarchy.delete_root(file_node.id)
    return found_function


def update_from_disk(session: TestSession, file_node: TestNode, generation: int | None = None) -> bool:
    """Read *file_node*'s file and rebuild it.

    A file that cannot be read is logged and left as it was.
    """
    if file_node.file_ref is None:
        return False
    try:
        text = file_node.file_ref.read_text(encoding="utf-8", errors="replace")
    except OSError:
        logger.warning("Error reading %s", file_node.file_ref, exc_info=True)
        return False
    return update_from_text(session, file_node, text, generation)

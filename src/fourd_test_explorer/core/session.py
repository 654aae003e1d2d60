from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path

from fourd_test_explorer.config import RunnerSettings
from fourd_test_explorer.core.builder import update_from_disk
from fourd_test_explorer.core.discovery import discover_files
from fourd_test_explorer.core.entities import FileData, heading_descendants, suite_name
from fourd_test_explorer.core.ports.hierarchy import TestHierarchy, TestNode
from fourd_test_explorer.core.tags import TagRegistry
from fourd_test_explorer.tree.memory import InMemoryTestHierarchy

logger = logging.getLogger(__name__)


class TestSession:
    """Owns the test hierarchy, the tag registry and the parse generation counter."""

    __test__ = False

    def __init__(
        self,
        workspace: str | Path,
        hierarchy: TestHierarchy | None = None,
        settings: RunnerSettings | None = None,
    ) -> None:
        self.workspace = Path(workspace)
        self.hierarchy: TestHierarchy = hierarchy if hierarchy is not None else InMemoryTestHierarchy()
        self.settings = settings if settings is not None else RunnerSettings.from_env()
        self.tags = TagRegistry()
        self._generation = 0

    def next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def file_node(self, path: str | Path) -> TestNode:
        """Return the root node for *path*, adding it to the hierarchy if needed."""
        resolved = Path(path).resolve()
        node_id = str(resolved)
        node = self.hierarchy.get_root(node_id)
        if node is None:
            node = self.hierarchy.create_node(None, node_id, resolved.name, resolved)
            node.data = FileData()
            self.hierarchy.add_root(node)
        return node

    def refresh(self, path: str | Path) -> TestNode | None:
        """Re-parse one file; returns its node, or ``None`` when it holds no tests."""
        resolved = Path(path).resolve()
        if not resolved.is_file():
            self.hierarchy.delete_root(str(resolved))
            return None
        node = self.file_node(resolved)
        if not update_from_disk(self, node):
            return None
        return node

    def discover(self, root: str | Path | None = None) -> list[TestNode]:
        paths = discover_files(root if root is not None else self.workspace, self.settings)
        logger.info("Discovered %d candidate file(s) under %s", len(paths), root or self.workspace)
        for path in paths:
            self.refresh(path)
        return self.hierarchy.roots()

    def headings(self) -> list[TestNode]:
        return [heading for root in self.hierarchy.roots() for heading in heading_descendants(root)]

    def find_heading(self, suite: str, name: str) -> TestNode | None:
        for root in self.hierarchy.roots():
            if suite_name(root) != suite:
                continue
            for heading in heading_descendants(root):
                if heading.label == name:
                    return heading
        return None

    def tag_counts(self) -> dict[str, int]:
        counts: Counter[str] = Counter()
        for heading in self.headings():
            counts.update(tag.id for tag in heading.tags)
        return dict(sorted(counts.items()))

    def close(self) -> None:
        self.tags.clear()
        for root in self.hierarchy.roots():
            self.hierarchy.delete_root(root.id)

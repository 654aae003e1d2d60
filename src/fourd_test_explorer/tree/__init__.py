from fourd_test_explorer.tree.memory import (
    InMemoryTestHierarchy,
    InMemoryTestNode,
    InMemoryTestRun,
    RunEvent,
)

__all__ = [
    "InMemoryTestHierarchy",
    "InMemoryTestNode",
    "InMemoryTestRun",
    "RunEvent",
]

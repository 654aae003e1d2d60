from collections.abc import Iterable, Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class Tag:
    id: str


class TagRegistry:
    """Interns tag names so the same name always resolves to the same ``Tag``."""

    def __init__(self) -> None:
        self._tags: dict[str, Tag] = {}

    def get_or_create(self, name: str) -> Tag:
        tag = self._tags.get(name)
        if tag is None:
            tag = Tag(name)
            self._tags[name] = tag
        return tag

    def resolve(self, names: Iterable[str]) -> tuple[Tag, ...]:
        return tuple(self.get_or_create(name) for name in names)

    def clear(self) -> None:
        self._tags.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._tags

    def __iter__(self) -> Iterator[Tag]:
        return iter(sorted(self._tags.values(), key=lambda t: t.id))

    def __len__(self) -> int:
        return len(self._tags)

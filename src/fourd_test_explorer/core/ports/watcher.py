from typing import Protocol


class FileWatcherPort(Protocol):
    """Watches class files and reports changed paths until stopped."""

    async def start(self) -> None: ...

    async def wait(self) -> None:
        """Block until the watch ends, either stopped or out of events."""
        ...

    async def stop(self) -> None: ...

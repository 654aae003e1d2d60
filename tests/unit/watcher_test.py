"""Tests for the watchfiles watcher adapter."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from fourd_test_explorer.core.discovery import is_test_source
from fourd_test_explorer.watcher.watchfiles_adapter import WatchfilesWatcher


class TestIsTestSource:
    def test_class_file(self) -> None:
        assert is_test_source(Path("UserServiceTest.4dm")) is True

    def test_upper_case_suffix(self) -> None:
        assert is_test_source(Path("LEGACYTEST.4DM")) is True

    def test_form_definition(self) -> None:
        assert is_test_source(Path("form.4DForm")) is False

    def test_no_extension(self) -> None:
        assert is_test_source(Path("Makefile")) is False


class TestWatchfilesWatcher:
    def test_implements_protocol(self) -> None:
        from fourd_test_explorer.core.ports.watcher import FileWatcherPort

        callback = AsyncMock()
        watcher: FileWatcherPort = WatchfilesWatcher("/tmp", callback)
        assert hasattr(watcher, "start")
        assert hasattr(watcher, "wait")
        assert hasattr(watcher, "stop")

    @pytest.mark.asyncio
    async def test_start_creates_task(self) -> None:
        callback = AsyncMock()
        watcher = WatchfilesWatcher("/tmp", callback)

        with patch("fourd_test_explorer.watcher.watchfiles_adapter.awatch") as mock_awatch:
            mock_awatch.return_value = _empty_async_iter()
            await watcher.start()
            assert watcher._task is not None
            await watcher.stop()
            assert watcher._task is None

    @pytest.mark.asyncio
    async def test_stop_without_start_is_noop(self) -> None:
        callback = AsyncMock()
        watcher = WatchfilesWatcher("/tmp", callback)
        await watcher.stop()

    @pytest.mark.asyncio
    async def test_double_start_is_noop(self) -> None:
        callback = AsyncMock()
        watcher = WatchfilesWatcher("/tmp", callback)

        with patch("fourd_test_explorer.watcher.watchfiles_adapter.awatch") as mock_awatch:
            mock_awatch.return_value = _empty_async_iter()
            await watcher.start()
            task1 = watcher._task
            await watcher.start()
            assert watcher._task is task1
            await watcher.stop()

    @pytest.mark.asyncio
    async def test_callback_receives_class_files(self) -> None:
        callback = AsyncMock()
        watcher = WatchfilesWatcher("/tmp", callback)

        changes = {(1, "/tmp/UserServiceTest.4dm"), (2, "/tmp/notes.txt"), (1, "/tmp/OrderTest.4dm")}

        with patch("fourd_test_explorer.watcher.watchfiles_adapter.awatch") as mock_awatch:
            mock_awatch.return_value = _single_change_iter(changes)
            await watcher.start()
            await asyncio.sleep(0.05)
            await watcher.stop()

        callback.assert_called_once()
        paths = callback.call_args[0][0]
        assert paths == {Path("/tmp/UserServiceTest.4dm"), Path("/tmp/OrderTest.4dm")}

    @pytest.mark.asyncio
    async def test_callback_not_called_for_other_files(self) -> None:
        callback = AsyncMock()
        watcher = WatchfilesWatcher("/tmp", callback)

        changes = {(1, "/tmp/readme.txt"), (2, "/tmp/Makefile")}

        with patch("fourd_test_explorer.watcher.watchfiles_adapter.awatch") as mock_awatch:
            mock_awatch.return_value = _single_change_iter(changes)
            await watcher.start()
            await asyncio.sleep(0.05)
            await watcher.stop()

        callback.assert_not_called()

    @pytest.mark.asyncio
    async def test_callback_error_keeps_watching(self) -> None:
        callback = AsyncMock(side_effect=[RuntimeError("boom"), None])
        watcher = WatchfilesWatcher("/tmp", callback)

        batches = [{(1, "/tmp/ATest.4dm")}, {(1, "/tmp/BTest.4dm")}]

        with patch("fourd_test_explorer.watcher.watchfiles_adapter.awatch") as mock_awatch:
            mock_awatch.return_value = _change_batches_iter(batches)
            await watcher.start()
            await asyncio.sleep(0.05)
            await watcher.stop()

        assert callback.await_count == 2

    @pytest.mark.asyncio
    async def test_wait_returns_when_the_stream_ends(self) -> None:
        callback = AsyncMock()
        watcher = WatchfilesWatcher("/tmp", callback)

        with patch("fourd_test_explorer.watcher.watchfiles_adapter.awatch") as mock_awatch:
            mock_awatch.return_value = _finite_iter({(1, "/tmp/ATest.4dm")})
            await watcher.start()
            await asyncio.wait_for(watcher.wait(), timeout=1)

        callback.assert_awaited_once_with({Path("/tmp/ATest.4dm")})


async def _empty_async_iter() -> AsyncIterator[Any]:
    """Async iterator that never yields, just blocks until cancelled."""
    try:
        await asyncio.sleep(3600)
    except asyncio.CancelledError:
        return
    yield  # pragma: no cover


async def _single_change_iter(changes: set[tuple[int, str]]) -> AsyncIterator[set[tuple[int, str]]]:
    """Async iterator that yields one set of changes then blocks."""
    yield changes
    try:
        await asyncio.sleep(3600)
    except asyncio.CancelledError:
        return


async def _change_batches_iter(batches: list[set[tuple[int, str]]]) -> AsyncIterator[set[tuple[int, str]]]:
    for batch in batches:
        yield batch
    try:
        await asyncio.sleep(3600)
    except asyncio.CancelledError:
        return


async def _finite_iter(changes: set[tuple[int, str]]) -> AsyncIterator[set[tuple[int, str]]]:
    yield changes

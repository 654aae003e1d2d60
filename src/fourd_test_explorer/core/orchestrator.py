"""Select tests, drive the external runner and hand its output to the reconciler."""

from __future__ import annotations

import asyncio
import logging
import shlex
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from fourd_test_explorer.core.entities import function_node, heading_descendants, is_file, suite_name
from fourd_test_explorer.core.ports.hierarchy import TestNode, TestRun
from fourd_test_explorer.core.results import ReconcileSummary, reconcile_results

if TYPE_CHECKING:
    from fourd_test_explorer.core.session import TestSession

logger = logging.getLogger(__name__)

# The report usually arrives as one long line.
_STREAM_LIMIT = 16 * 1024 * 1024


@dataclass(frozen=True)
class RunTarget:
    suite: str
    function: str

    @property
    def qualified(self) -> str:
        return f"{self.suite}.{self.function}"


@dataclass(frozen=True)
class RunRequest:
    """``include=None`` runs everything; ``tag`` narrows the run to one tag."""

    include: Sequence[TestNode] | None = None
    tag: str | None = None


@dataclass(frozen=True)
class RunnerOutput:
    returncode: int
    stdout: str
    # lines longer than the stream limit were dropped from stdout
    overflowed: bool = False


def target_of(node: TestNode) -> RunTarget:
    return RunTarget(suite_name(node), node.label)


def select_functions(session: TestSession, request: RunRequest) -> list[TestNode]:
    """Resolve *request* to test-function nodes, one per ``(suite, function)``."""
    if request.include is None:
        candidates = session.headings()
    else:
        candidates = []
        for node in request.include:
            if is_file(node):
                candidates.extend(heading_descendants(node))
            else:
                candidates.append(function_node(node))

    if request.tag is not None:
        candidates = [node for node in candidates if any(tag.id == request.tag for tag in node.tags)]

    selected: dict[RunTarget, TestNode] = {}
    for node in candidates:
        selected.setdefault(target_of(node), node)
    return list(selected.values())


def collect_targets(nodes: Sequence[TestNode]) -> list[RunTarget]:
    return list(dict.fromkeys(target_of(node) for node in nodes))


def build_runner_args(targets: Sequence[RunTarget], request: RunRequest) -> list[str]:
    args = ["test", "format=json"]
    if request.tag is not None:
        args.append(f"tag={request.tag}")
    elif request.include is not None:
        args.append("test=" + ",".join(target.qualified for target in targets))
    return args


def is_noise(line: str, prefixes: Sequence[str]) -> bool:
    return any(line.startswith(prefix) for prefix in prefixes)


async def _pump(stream: asyncio.StreamReader, sink: Callable[[str], None]) -> bool:
    """Feed decoded lines to *sink*; returns False when an over-long line was dropped."""
    complete = True
    while True:
        try:
            raw = await stream.readline()
        except ValueError:
            # readline discards the oversized line before raising
            complete = False
            continue
        if not raw:
            return complete
        sink(raw.decode("utf-8", errors="replace"))


async def execute_runner(
    command: Sequence[str],
    cwd: Path,
    run: TestRun,
    noise_prefixes: Sequence[str] = (),
    limit: int = _STREAM_LIMIT,
) -> RunnerOutput:
    """Run *command*, buffering filtered stdout and forwarding stderr to *run*.

    A line longer than *limit* bytes is dropped and flagged in the result.
    Raises ``OSError`` when the command cannot be started.
    """
    process = await asyncio.create_subprocess_exec(
        *command,
        cwd=str(cwd),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        limit=limit,
    )
    assert process.stdout is not None
    assert process.stderr is not None
    buffered: list[str] = []

    def _keep_stdout(line: str) -> None:
        if not is_noise(line, noise_prefixes):
            buffered.append(line)

    stdout_complete, stderr_complete = await asyncio.gather(
        _pump(process.stdout, _keep_stdout), _pump(process.stderr, run.append_output)
    )
    returncode = await process.wait()
    logger.debug("Runner exited with status %d", returncode)
    if not stderr_complete:
        logger.warning("Dropped runner stderr lines longer than %d bytes", limit)
    return RunnerOutput(returncode=returncode, stdout="".join(buffered), overflowed=not stdout_complete)


async def run_tests(
    session: TestSession,
    request: RunRequest,
    run: TestRun,
    cancel_event: asyncio.Event | None = None,
) -> ReconcileSummary | None:
    """Run the tests selected by *request* once and apply the report.

    Setting *cancel_event* before the runner is spawned skips the run. Once the
    runner is started it is left to finish and its report is still applied.
    Returns ``None`` when nothing ran.
    """
    try:
        functions = select_functions(session, request)
        targets = collect_targets(functions)
        if not targets:
            run.append_output("No tests selected.\n")
            return None
        if cancel_event is not None and cancel_event.is_set():
            logger.info("Run cancelled before the runner was started")
            return None

        for node in functions:
            run.started(node)

        command = [*session.settings.runner_command, *build_runner_args(targets, request)]
        run.append_output(f"Spawning: {shlex.join(command)}\n")
        logger.info("Running %d test(s): %s", len(targets), shlex.join(command))
        try:
            output = await execute_runner(command, session.workspace, run, session.settings.noise_prefixes)
        except OSError as exc:
            logger.warning("Cannot start %s: %s", command[0], exc)
            run.append_output(f"Cannot start {command[0]}: {exc}\n")
            return None
        if output.overflowed:
            reason = f"runner output line exceeded {_STREAM_LIMIT} bytes"
            logger.warning("No valid result payload: %s", reason)
            run.append_output(f"No valid result payload: {reason}\n")
            return ReconcileSummary(payload_error=reason)
        return reconcile_results(session, output.stdout, run)
    finally:
        run.end()

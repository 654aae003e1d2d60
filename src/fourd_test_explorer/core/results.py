"""Apply the runner's JSON report to the test hierarchy."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from fourd_test_explorer.config import MAX_LABEL_LENGTH
from fourd_test_explorer.core.entities import AssertionData, is_assertion
from fourd_test_explorer.core.line_mapping import map_logical_to_physical
from fourd_test_explorer.core.ports.hierarchy import TestNode, TestRun
from fourd_test_explorer.models import AssertionResult, SourceRange, TestResult, TestRunPayload

if TYPE_CHECKING:
    from fourd_test_explorer.core.session import TestSession

logger = logging.getLogger(__name__)

RESULTS_HEADER = "=== Test Results (JSON) ==="


class ResultPayloadError(ValueError):
    """The runner output holds no usable JSON report."""


@dataclass
class ReconcileSummary:
    passed: int = 0
    failed: int = 0
    failed_assertions: int = 0
    diagnostics: list[str] = field(default_factory=list)
    payload_error: str | None = None

    @property
    def ok(self) -> bool:
        return self.payload_error is None and self.failed == 0


def _truncate(value: str, max_width: int = MAX_LABEL_LENGTH) -> str:
    if len(value) > max_width:
        return value[: max_width - 3] + "..."
    return value


def _to_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


def _load_payload(text: str) -> tuple[dict[str, Any], TestRunPayload]:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise ResultPayloadError("no JSON object found in runner output")
    try:
        raw = json.loads(text[start : end + 1])
    except json.JSONDecodeError as exc:
        raise ResultPayloadError(f"invalid JSON in runner output: {exc}") from exc
    try:
        return raw, TestRunPayload.model_validate(raw)
    except ValidationError as exc:
        raise ResultPayloadError(f"unexpected report shape: {exc.error_count()} error(s)") from exc


def extract_json_payload(text: str) -> TestRunPayload:
    """Parse the report between the first ``{`` and the last ``}`` of *text*."""
    return _load_payload(text)[1]


def format_payload(raw: dict[str, Any]) -> str:
    return f"\n{RESULTS_HEADER}\n{json.dumps(raw, indent=2, ensure_ascii=False)}\n"


def failure_message(assertion: AssertionResult) -> str:
    return f"expected: {_to_json(assertion.expected)} actual: {_to_json(assertion.actual)}\n{assertion.message}"


def heading_failure_message(result: TestResult, reason: str | None) -> str:
    summary = f"{result.failed_assertions} of {result.total_assertions} assertions failed"
    return f"{reason}\n{summary}" if reason else summary


class _SourceCache:
    def __init__(self) -> None:
        self._texts: dict[Path, str | None] = {}

    def get(self, path: Path | None) -> str | None:
        if path is None:
            return None
        if path not in self._texts:
            try:
                self._texts[path] = path.read_text(encoding="utf-8", errors="replace")
            except OSError:
                logger.warning("Cannot read %s to map assertion lines", path)
                self._texts[path] = None
        return self._texts[path]


def _assertion_range(
    assertion: AssertionResult, index: int, previous: list[TestNode], text: str | None
) -> SourceRange | None:
    if assertion.line is not None and assertion.function_name:
        if text is None:
            return None
        physical = map_logical_to_physical(text, assertion.function_name, assertion.line)
        return SourceRange.at_line(physical) if physical is not None else None
    # no line information: fall back to the assertion at the same position in the source
    if index < len(previous):
        return previous[index].range
    return None


def apply_test_result(
    session: TestSession,
    heading: TestNode,
    result: TestResult,
    payload: TestRunPayload,
    run: TestRun,
    sources: _SourceCache | None = None,
) -> bool:
    """Replace *heading*'s assertion children with the reported ones and report their status.

    Returns whether the test passed.
    """
    sources = sources if sources is not None else _SourceCache()
    generation = session.next_generation()
    previous = [child for child in heading.children if is_assertion(child)]
    text = sources.get(heading.file_ref)

    children: list[TestNode] = []
    for index, assertion in enumerate(result.assertions):
        operator = previous[index].data.operator if index < len(previous) else ""
        data = AssertionData(
            file=str(heading.file_ref) if heading.file_ref is not None else "",
            actual=_to_json(assertion.actual),
            operator=operator,
            expected=_to_json(assertion.expected),
            should=assertion.message,
            generation=generation,
            origin="result",
            full_message=assertion.message,
        )
        label = _truncate(assertion.message) if assertion.message else f"assertion {index + 1}"
        node = session.hierarchy.create_node(heading.id, f"{heading.id}/result/{index}", label, heading.file_ref)
        node.set_range(_assertion_range(assertion, index, previous, text))
        node.set_tags(heading.tags)
        node.data = data
        children.append(node)
    # nested headings stay; only the assertions are replaced
    heading.replace_children(children + [child for child in heading.children if not is_assertion(child)])

    for node, assertion in zip(children, result.assertions, strict=True):
        run.started(node)
        if assertion.passed:
            run.passed(node, assertion.duration or 0)
        else:
            run.failed(node, failure_message(assertion), assertion.duration or 0)

    if result.passed:
        run.passed(heading, result.duration or 0)
    else:
        reason = payload.failure_reason(result.suite, result.name)
        run.failed(heading, heading_failure_message(result, reason), result.duration or 0)
    return result.passed


def reconcile_results(session: TestSession, text: str, run: TestRun) -> ReconcileSummary:
    """Match the report in *text* against the hierarchy and report every status.

    An unusable report yields one diagnostic and no status change. Results
    naming a test that is not in the hierarchy each yield one diagnostic line.
    """
    summary = ReconcileSummary()
    try:
        raw, payload = _load_payload(text)
    except ResultPayloadError as exc:
        logger.warning("No valid result payload: %s", exc)
        summary.payload_error = str(exc)
        run.append_output(f"No valid result payload: {exc}\n")
        return summary

    run.append_output(format_payload(raw))
    sources = _SourceCache()
    for result in payload.test_results:
        heading = session.find_heading(result.suite, result.name)
        if heading is None:
            diagnostic = f"No test found for {result.suite}.{result.name}"
            logger.warning("No test found for %s.%s", result.suite, result.name)
            summary.diagnostics.append(diagnostic)
            run.append_output(diagnostic + "\n")
            continue
        if apply_test_result(session, heading, result, payload, run, sources):
            summary.passed += 1
        else:
            summary.failed += 1
            summary.failed_assertions += result.failed_assertions
    return summary

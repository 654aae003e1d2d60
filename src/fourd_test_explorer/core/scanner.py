"""Scanner for test functions and assertions in 4D class source files."""

import re
from collections.abc import Iterator
from dataclasses import dataclass, field

from fourd_test_explorer.core.line_mapping import is_continued, split_lines
from fourd_test_explorer.models import SourceRange

DEFAULT_TAG = "unit"

_HEADING_RE = re.compile(r"^\s*Function\s+(test_\w+)\s*\(")
_METHOD_RE = re.compile(r"^\s*(?:[A-Za-z]+\s+)*(?:Function|constructor)\b")
_TAGS_RE = re.compile(r"//\s*#tags:(.*)$")
_ASSERT_RE = re.compile(r"(?<![\w$.])(?:[\w$]+\.)*assert\.(\w+)\s*\(")

_OPENERS = "([{"
_CLOSERS = ")]}"


@dataclass(frozen=True)
class HeadingEvent:
    range: SourceRange
    name: str
    tag_depth: int
    tags: tuple[str, ...]


@dataclass(frozen=True)
class AssertionEvent:
    range: SourceRange
    actual: str
    operator: str
    expected: str
    should: str


ScanEvent = HeadingEvent | AssertionEvent


@dataclass
class ScanResult:
    events: list[ScanEvent] = field(default_factory=list)
    found_function: bool = False

    @property
    def headings(self) -> list[HeadingEvent]:
        return [e for e in self.events if isinstance(e, HeadingEvent)]

    @property
    def assertions(self) -> list[AssertionEvent]:
        return [e for e in self.events if isinstance(e, AssertionEvent)]


def parse_tags(payload: str | None) -> tuple[str, ...]:
    """Split a ``#tags:`` payload; an absent or empty payload means ``unit``."""
    if payload is None:
        return (DEFAULT_TAG,)
    tags = tuple(dict.fromkeys(t.strip() for t in payload.split(",") if t.strip()))
    return tags or (DEFAULT_TAG,)


def split_arguments(text: str, open_index: int) -> tuple[list[str], int] | None:
    """Split the argument list whose ``(`` sits at *open_index*.

    Only top-level ``;`` separate arguments. Returns the raw arguments and the
    index just past the closing ``)``, or ``None`` when the list is not closed.
    """
    args: list[str] = []
    current: list[str] = []
    depth = 0
    in_string = False
    i = open_index + 1
    while i < len(text):
        ch = text[i]
        if in_string:
            current.append(ch)
            if ch == "\\" and i + 1 < len(text):
                current.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
            current.append(ch)
        elif ch in _OPENERS:
            depth += 1
            current.append(ch)
        elif ch in _CLOSERS:
            if depth == 0:
                if ch != ")":
                    return None
                args.append("".join(current))
                return args, i + 1
            depth -= 1
            current.append(ch)
        elif ch == ";" and depth == 0:
            args.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    return None


def string_literal(arg: str) -> str | None:
    """Return the unescaped body when *arg* is exactly one ``"..."`` literal."""
    value = arg.strip()
    if len(value) < 2 or value[0] != '"':
        return None
    body: list[str] = []
    i = 1
    while i < len(value):
        ch = value[i]
        if ch == "\\" and i + 1 < len(value):
            body.append(value[i + 1])
            i += 2
            continue
        if ch == '"':
            return "".join(body) if i == len(value) - 1 else None
        body.append(ch)
        i += 1
    return None


def _assertion_fields(args: list[str]) -> tuple[str, str, str] | None:
    if not args:
        return None
    rest = [a.strip() for a in args[1:]]
    should = ""
    for index in range(len(rest) - 1, -1, -1):
        literal = string_literal(rest[index])
        if literal is not None:
            should = literal
            del rest[index]
            break
    actual = rest[0] if rest else ""
    expected = rest[1] if len(rest) > 1 else ""
    return actual, expected, should


def _read_assertion(
    lines: list[str], line_no: int, match: re.Match[str]
) -> tuple[AssertionEvent, int, int] | None:
    """Parse the assertion starting at *match*, following continuation lines.

    Returns the event and the (line, column) just past its closing paren.
    """
    # (physical line, offset of that line's text in the joined statement, column of that offset)
    pieces: list[tuple[int, int, int]] = []
    joined = ""
    current = line_no
    column = match.start()
    while True:
        segment = lines[current][column:]
        continued = is_continued(segment)
        if continued:
            segment = segment.rstrip()[:-1]
        pieces.append((current, len(joined), column))
        joined += segment
        parsed = split_arguments(joined, match.end() - 1 - match.start())
        if parsed is not None:
            break
        if not continued or current + 1 >= len(lines):
            return None
        current += 1
        column = 0

    args, end_index = parsed
    fields = _assertion_fields(args)
    if fields is None:
        return None
    actual, expected, should = fields

    end_line, end_column = line_no, match.start() + end_index
    for piece_line, offset, base_column in pieces:
        if end_index > offset:
            end_line, end_column = piece_line, base_column + end_index - offset

    event = AssertionEvent(
        range=SourceRange.from_points(line_no, match.start(), end_line, end_column),
        actual=actual,
        operator=match.group(1),
        expected=expected,
        should=should,
    )
    return event, end_line, end_column


def iter_events(text: str) -> Iterator[ScanEvent]:
    """Yield heading and assertion events in file order.

    Every call starts a fresh pass over *text*; nothing is kept between calls.
    Assertions inside methods that are not tests are not reported.
    """
    lines = split_lines(text)
    line_no = 0
    in_other_method = False
    while line_no < len(lines):
        line = lines[line_no]
        next_line = line_no + 1

        heading = _HEADING_RE.match(line)
        if heading:
            previous = lines[line_no - 1] if line_no > 0 else ""
            tags_match = _TAGS_RE.search(previous)
            payload = tags_match.group(1) if tags_match else None
            yield HeadingEvent(
                range=SourceRange.from_points(line_no, 0, line_no, len(line)),
                name=heading.group(1),
                tag_depth=1 + (payload.count(":") if payload else 0),
                tags=parse_tags(payload),
            )
            in_other_method = False
        elif _METHOD_RE.match(line):
            in_other_method = True
        elif not in_other_method and not line.lstrip().startswith("//"):
            scan_line, position = line_no, 0
            while True:
                match = _ASSERT_RE.search(lines[scan_line], position)
                if match is None:
                    break
                parsed = _read_assertion(lines, scan_line, match)
                if parsed is None:
                    position = match.end()
                    continue
                event, scan_line, position = parsed
                yield event
            next_line = scan_line + 1

        line_no = next_line


def scan_source(text: str) -> ScanResult:
    """Scan a whole file; ``found_function`` tells whether it holds any test."""
    result = ScanResult()
    for event in iter_events(text):
        if isinstance(event, HeadingEvent):
            result.found_function = True
        result.events.append(event)
    return result

"""Translate the runner's function-relative line numbers into file lines.

4D counts a physical line ending in ``\\`` together with the line that follows
it as one logical line, and numbers the lines of a method relative to its
``Function`` declaration (which is line 0). Source files keep the physical
lines, so the two numberings drift apart as soon as a method uses line
continuations.
"""

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)


def split_lines(text: str) -> list[str]:
    """Split *text* into physical lines the way editors number them."""
    return [line[:-1] if line.endswith("\r") else line for line in text.split("\n")]


def is_continued(line: str) -> bool:
    """True when *line* ends with an unescaped continuation marker."""
    stripped = line.rstrip()
    trailing = len(stripped) - len(stripped.rstrip("\\"))
    return trailing % 2 == 1


def find_function_line(lines: list[str], function_name: str) -> int | None:
    method_name = function_name.rsplit(".", 1)[-1]
    pattern = re.compile(rf"^Function\s+{re.escape(method_name)}\s*\(")
    for index, line in enumerate(lines):
        if pattern.match(line.strip()):
            return index
    return None


def map_logical_to_physical(text: str, function_name: str, logical_offset: int) -> int | None:
    """Return the 0-based physical line for *logical_offset* within *function_name*.

    *function_name* may be qualified (``UserServiceTest.test_user_creation``);
    only the trailing identifier is looked up. Returns ``None`` when the
    function is not declared in *text* or the offset runs past the end.
    """
    if logical_offset < 0:
        return None
    lines = split_lines(text)
    start = find_function_line(lines, function_name)
    if start is None:
        return None
    if logical_offset == 0:
        return start

    completed = 0
    for index in range(start + 1, len(lines)):
        if is_continued(lines[index]):
            continue
        completed += 1
        if completed == logical_offset:
            return index
    return None


def map_file_line(path: str | Path, function_name: str, logical_offset: int) -> int | None:
    try:
        text = Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError:
        logger.warning("Cannot read %s to map line %d of %s", path, logical_offset, function_name)
        return None
    return map_logical_to_physical(text, function_name, logical_offset)

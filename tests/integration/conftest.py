"""Fixtures for integration tests that start a real runner process."""

import json
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from fourd_test_explorer.config import RunnerSettings

# Stands in for `make test format=json ...`: echoes its arguments, interleaves
# toolchain noise with the report on stdout and writes progress to stderr.
_RUNNER_SCRIPT = """\
import json
import sys

report = json.loads({report!r})
sys.stderr.write("args: " + " ".join(sys.argv[1:]) + "\\n")
sys.stderr.flush()
print("/Applications/Xcode.app/Contents/Developer/usr/bin/make -C build")
print("tool4d.APPL Cooperative process doesn't yield enough (12 ms)")
print("Running tests...")
print(json.dumps(report))
print("Done.")
sys.exit({exit_code})
"""

PASSING_REPORT = {
    "testResults": [
        {
            "suite": "UserServiceTest",
            "name": "test_user_creation",
            "passed": True,
            "duration": 7,
            "assertionCount": 2,
            "assertions": [
                {
                    "message": "User should have a name",
                    "expected": True,
                    "actual": True,
                    "passed": True,
                    "line": 3,
                    "functionName": "UserServiceTest.test_user_creation",
                },
                {
                    "message": "User name should be correct",
                    "expected": "Ada",
                    "actual": "Ada",
                    "passed": True,
                    "line": 4,
                    "functionName": "UserServiceTest.test_user_creation",
                },
            ],
        }
    ]
}


def write_runner(directory: Path, report: dict[str, object], exit_code: int = 0) -> Path:
    script = directory / "fake_runner.py"
    script.write_text(_RUNNER_SCRIPT.format(report=json.dumps(report), exit_code=exit_code), encoding="utf-8")
    return script


@pytest.fixture
def make_runner(tmp_path: Path) -> Callable[..., RunnerSettings]:
    """Return a factory for settings whose runner prints the given report."""

    def _make(report: dict[str, object] = PASSING_REPORT, exit_code: int = 0) -> RunnerSettings:
        script = write_runner(tmp_path, report, exit_code)
        return RunnerSettings(runner_command=(sys.executable, str(script)))

    return _make

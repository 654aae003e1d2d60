"""Shared fixtures and helpers for tests."""

from pathlib import Path

import pytest

from fourd_test_explorer.config import RunnerSettings
from fourd_test_explorer.core.session import TestSession

_REPO_ROOT = Path(__file__).parent.parent

USER_SERVICE_TEST = """\
Class constructor
	This.service:=cs.UserService.new()

	// #tags: unit, fast
Function test_user_creation($t : cs.Testing.Testing)
	var $user : Object
	$user:=This.service.create("Ada")
	$t.assert.isNotNull($t; $user.name; "User should have a name")
	$t.assert.areEqual($t; "Ada"; $user.name; "User name should be correct")

	// #tags: integration, slow
Function test_user_deletion($t : cs.Testing.Testing)
	This.service.delete("Ada")
	$t.assert.isNull($t; This.service.find("Ada"); "User should be gone")

Function helper()
	$t.assert.isTrue($t; True; "Not a test")
"""

CONTINUATION_TEST = """\
Class constructor

	// #tags: unit
Function test_long_lines($t : cs.Testing.Testing)
	var $total : Integer
	$total:=1+\\
		2+\\
		3
	$t.assert.areEqual($t; 6; $total; "Total should be six")
	$t.assert.isTrue($t; \\
		$total>0; \\
		"Total should be positive")
"""

NEST_TEST = """\
Class constructor

	// #tags: unit
Function test_outer($t : cs.Testing.Testing)
	$t.assert.isTrue($t; True; "Outer works")

	// #tags: db:slow
Function test_inner($t : cs.Testing.Testing)
	$t.assert.isTrue($t; True; "Inner works")
"""


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Shared unit-test fixtures
# ---------------------------------------------------------------------------


def write_class(workspace: Path, name: str, source: str) -> Path:
    """Write a class file below the default sources directory of *workspace*."""
    classes_dir = workspace / "Project" / "Sources" / "Classes"
    classes_dir.mkdir(parents=True, exist_ok=True)
    path = classes_dir / name
    path.write_text(source, encoding="utf-8")
    return path


@pytest.fixture
def settings() -> RunnerSettings:
    return RunnerSettings()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    write_class(tmp_path, "UserServiceTest.4dm", USER_SERVICE_TEST)
    write_class(tmp_path, "ContinuationTest.4dm", CONTINUATION_TEST)
    write_class(tmp_path, "UserService.4dm", "Class constructor\nFunction create($name : Text)\n")
    return tmp_path


@pytest.fixture
def session(workspace: Path, settings: RunnerSettings) -> TestSession:
    test_session = TestSession(workspace, settings=settings)
    test_session.discover()
    return test_session


@pytest.fixture
def user_service_source() -> str:
    return USER_SERVICE_TEST


@pytest.fixture
def continuation_source() -> str:
    return CONTINUATION_TEST


@pytest.fixture
def user_service_file(workspace: Path) -> Path:
    return workspace / "Project" / "Sources" / "Classes" / "UserServiceTest.4dm"


@pytest.fixture
def nested_session(session: TestSession, workspace: Path) -> TestSession:
    """The sample session plus ``NestTest``, whose ``test_inner`` nests under ``test_outer``."""
    session.refresh(write_class(workspace, "NestTest.4dm", NEST_TEST))
    return session

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Position(BaseModel):
    model_config = ConfigDict(frozen=True)

    line: int
    column: int


class SourceRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: Position
    end: Position

    @classmethod
    def from_points(cls, start_line: int, start_column: int, end_line: int, end_column: int) -> "SourceRange":
        return cls(
            start=Position(line=start_line, column=start_column),
            end=Position(line=end_line, column=end_column),
        )

    @classmethod
    def at_line(cls, line: int) -> "SourceRange":
        """Zero-width range at column 0 of *line*."""
        return cls.from_points(line, 0, line, 0)


# ---------------------------------------------------------------------------
# Runner result payload
# ---------------------------------------------------------------------------


class _PayloadModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class AssertionResult(_PayloadModel):
    message: str = ""
    expected: Any = None
    actual: Any = None
    passed: bool = False
    line: int | None = None
    function_name: str | None = Field(default=None, alias="functionName")
    duration: float | None = None


class TestResult(_PayloadModel):
    __test__ = False  # not a pytest class

    suite: str
    name: str
    passed: bool = False
    duration: float | None = None
    assertion_count: int | None = Field(default=None, alias="assertionCount")
    assertions: list[AssertionResult] = Field(default_factory=list)

    @property
    def failed_assertions(self) -> int:
        return sum(1 for a in self.assertions if not a.passed)

    @property
    def total_assertions(self) -> int:
        return self.assertion_count if self.assertion_count is not None else len(self.assertions)


class FailureEntry(_PayloadModel):
    suite: str = ""
    test: str = ""
    reason: str = ""


class TestRunPayload(_PayloadModel):
    __test__ = False

    test_results: list[TestResult] = Field(default_factory=list, alias="testResults")
    failures: list[FailureEntry] = Field(default_factory=list)

    def failure_reason(self, suite: str, test: str) -> str | None:
        for failure in self.failures:
            if failure.suite == suite and failure.test == test:
                return failure.reason
        return None

import os
import shlex
from dataclasses import dataclass, field

DEFAULT_RUNNER = "make"
DEFAULT_SOURCES_DIR = "Project/Sources/Classes"
DEFAULT_FILE_PATTERN = "*Test.4dm"

SOURCE_SUFFIX = ".4dm"

# Host toolchain chatter that is interleaved with the runner's JSON on stdout.
NOISE_PREFIXES: tuple[str, ...] = (
    "/Applications/Xcode.app",
    "tool4d.APPL Cooperative process doesn't yield enough",
)

MAX_LABEL_LENGTH = 80


@dataclass(frozen=True)
class RunnerSettings:
    runner_command: tuple[str, ...] = (DEFAULT_RUNNER,)
    sources_dir: str = DEFAULT_SOURCES_DIR
    file_pattern: str = DEFAULT_FILE_PATTERN
    noise_prefixes: tuple[str, ...] = field(default=NOISE_PREFIXES)

    @classmethod
    def from_env(cls, runner: str | None = None) -> "RunnerSettings":
        command = runner or os.getenv("FOURD_TEST_RUNNER", DEFAULT_RUNNER)
        return cls(
            runner_command=tuple(shlex.split(command)) or (DEFAULT_RUNNER,),
            sources_dir=os.getenv("FOURD_TEST_SOURCES", DEFAULT_SOURCES_DIR),
            file_pattern=os.getenv("FOURD_TEST_PATTERN", DEFAULT_FILE_PATTERN),
        )

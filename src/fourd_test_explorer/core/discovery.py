from pathlib import Path

from fourd_test_explorer.config import SOURCE_SUFFIX, RunnerSettings


def is_test_source(path: Path) -> bool:
    return path.suffix.lower() == SOURCE_SUFFIX


def discover_files(root: str | Path, settings: RunnerSettings) -> list[Path]:
    """Return the class files that may hold tests below *root*.

    A *root* that is itself a ``.4dm`` file is returned as the only candidate.
    """
    root_path = Path(root)
    if is_test_source(root_path):
        return [root_path] if root_path.is_file() else []
    classes_dir = root_path / settings.sources_dir
    if not classes_dir.is_dir():
        return []
    return sorted(p for p in classes_dir.glob(settings.file_pattern) if p.is_file())

"""Project discovery: root, file sets and declared dependencies."""

import re
import tomllib
from pathlib import Path

import structlog

from multiaudit.agents import AnalysisContext, RunAccumulator
from multiaudit.config import AuditSettings, get_settings
from multiaudit.source.paths import first_party_packages, find_project_root, is_test_path

logger = structlog.get_logger()

_REQUIREMENT_NAME = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)")


def _excluded(path: Path, root: Path, exclude_dirs: list[str]) -> bool:
    try:
        parts = path.relative_to(root).parts[:-1]
    except ValueError:
        parts = path.parts[:-1]
    return any(part in exclude_dirs or part.endswith(".egg-info") for part in parts)


def python_files(root: Path, exclude_dirs: list[str] | None = None) -> list[Path]:
    """All ``*.py`` files under ``root``, sorted, minus excluded directories."""
    exclude_dirs = get_settings().exclude_dirs if exclude_dirs is None else exclude_dirs
    return sorted(p for p in root.rglob("*.py") if p.is_file() and not _excluded(p, root, exclude_dirs))


def expand_paths(paths: list[str | Path], exclude_dirs: list[str] | None = None) -> list[str]:
    """Turn files and directories into a sorted, de-duplicated file list.

    Raises:
        FileNotFoundError: If a path does not exist
    """
    files: set[str] = set()
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            files.update(str(p) for p in python_files(path, exclude_dirs))
        elif path.is_file():
            files.add(str(path))
        else:
            raise FileNotFoundError(f"No such file or directory: {raw}")
    return sorted(files)


def _requirement_names(lines: list[str]) -> list[str]:
    names = []
    for line in lines:
        line = line.split("#", 1)[0].strip()
        if not line or line.startswith("-"):
            continue
        match = _REQUIREMENT_NAME.match(line)
        if match:
            names.append(match.group(1).lower().replace("_", "-"))
    return names


def load_dependencies(root: Path) -> list[str]:
    """Distribution names declared in pyproject.toml and requirements files."""
    names: list[str] = []

    pyproject = root / "pyproject.toml"
    if pyproject.is_file():
        try:
            data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
        except (tomllib.TOMLDecodeError, OSError) as e:
            logger.warning("Could not read pyproject.toml", path=str(pyproject), error=str(e))
            data = {}
        project = data.get("project", {})
        names.extend(_requirement_names(project.get("dependencies", [])))
        for extra in project.get("optional-dependencies", {}).values():
            names.extend(_requirement_names(extra))

    for requirements in sorted(root.glob("requirements*.txt")):
        try:
            names.extend(_requirement_names(requirements.read_text(encoding="utf-8").splitlines()))
        except OSError as e:
            logger.warning("Could not read requirements file", path=str(requirements), error=str(e))

    return sorted(set(names))


def build_context(files: list[str], settings: AuditSettings | None = None) -> AnalysisContext:
    """Build the shared AnalysisContext for a run over ``files``."""
    settings = settings or get_settings()
    root = find_project_root(files[0]) if files else Path.cwd()

    project_files = [str(p) for p in python_files(root, settings.exclude_dirs)]
    test_files = [f for f in project_files if is_test_path(str(Path(f).relative_to(root)))]

    context = AnalysisContext(
        project_root=root,
        files=list(files),
        project_files=project_files,
        test_files=test_files,
        dependencies=load_dependencies(root),
        first_party=first_party_packages(root),
        settings=settings,
        accumulator=RunAccumulator(),
    )
    logger.debug(
        "Built analysis context",
        root=str(root),
        project_files=len(project_files),
        test_files=len(test_files),
    )
    return context

"""Path predicates used by agents, discovery and the validation policy."""

import re
from pathlib import Path, PurePath

_TEST_NAME = re.compile(r"^(test_.*|.*_test|conftest)\.pyi?$")
_GENERATED_NAME = re.compile(r"(_pb2(_grpc)?|_generated)\.pyi?$")


def is_test_path(path: str) -> bool:
    """True for test modules and anything under a ``tests``/``test`` directory."""
    pure = PurePath(path)
    if _TEST_NAME.match(pure.name):
        return True
    return any(part in ("tests", "test") for part in pure.parts[:-1])


def is_stub_path(path: str) -> bool:
    return PurePath(path).suffix == ".pyi"


def is_generated_path(path: str) -> bool:
    """Protobuf output and files under ``generated``/``migrations`` directories."""
    pure = PurePath(path)
    if _GENERATED_NAME.search(pure.name):
        return True
    return any(part in ("generated", "migrations") for part in pure.parts[:-1])


ROOT_MARKERS = ("pyproject.toml", "setup.cfg", "setup.py", ".git")


def find_project_root(start: str | Path) -> Path:
    """Nearest ancestor of ``start`` holding a project marker.

    Falls back to the start directory itself when no marker is found.
    """
    path = Path(start).resolve()
    origin = path if path.is_dir() else path.parent
    for candidate in (origin, *origin.parents):
        if any((candidate / marker).exists() for marker in ROOT_MARKERS):
            return candidate
    return origin


def first_party_packages(root: Path) -> frozenset[str]:
    """Top-level importable names defined by the project itself."""
    names: set[str] = set()
    for base in (root, root / "src"):
        if not base.is_dir():
            continue
        for child in base.iterdir():
            if child.is_dir() and (child / "__init__.py").exists():
                names.add(child.name)
            elif child.suffix == ".py" and child.stem not in ("setup", "conftest"):
                names.add(child.stem)
    return frozenset(names)

"""Pytest configuration and shared fixtures."""

import textwrap
from pathlib import Path
from typing import Callable

import pytest
import structlog

from multiaudit.agents import AnalysisContext, RunAccumulator
from multiaudit.config import AuditSettings
from multiaudit.models import Issue, Severity, ValidatedFinding
from multiaudit.source import PythonSourceProvider, SourceModel


@pytest.fixture(scope="session")
def provider() -> PythonSourceProvider:
    """One tree-sitter backed provider for the whole session."""
    return PythonSourceProvider()


@pytest.fixture
def parse(provider: PythonSourceProvider) -> Callable[..., SourceModel]:
    """Parse dedented source text into a SourceModel."""

    def _parse(source: str, path: str = "module.py") -> SourceModel:
        return provider.parse(path, textwrap.dedent(source))

    return _parse


@pytest.fixture
def settings() -> AuditSettings:
    return AuditSettings()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """An empty project root marked by a pyproject.toml."""
    (tmp_path / "pyproject.toml").write_text(
        '[project]\nname = "sample"\ndependencies = ["requests>=2", "rich"]\n',
        encoding="utf-8",
    )
    return tmp_path


@pytest.fixture
def write_file(project: Path) -> Callable[[str, str], Path]:
    """Write dedented source into the sample project."""

    def _write(relative: str, source: str) -> Path:
        path = project / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(source), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def context(project: Path, settings: AuditSettings) -> AnalysisContext:
    """A context for agents run directly, outside the orchestrator."""
    return AnalysisContext(project_root=project, settings=settings, accumulator=RunAccumulator())


@pytest.fixture
def make_issue() -> Callable[..., Issue]:
    def _make(
        dimension: str = "complexity",
        file: str = "app.py",
        line: int | None = 10,
        severity: Severity = Severity.MEDIUM,
        message: str = "Something is off",
        **kwargs,
    ) -> Issue:
        return Issue(dimension=dimension, file=file, line=line, severity=severity, message=message, **kwargs)

    return _make


@pytest.fixture
def make_finding(make_issue: Callable[..., Issue]) -> Callable[..., ValidatedFinding]:
    def _make(severity: Severity = Severity.MEDIUM, false_positive: bool = False, **kwargs) -> ValidatedFinding:
        return ValidatedFinding(
            issue=make_issue(severity=severity, **kwargs),
            agent="CodeQuality",
            confidence=0.2 if false_positive else 1.0,
            is_false_positive=false_positive,
        )

    return _make


@pytest.fixture
def complex_function_source() -> str:
    """A function with 24 ``if`` statements: cyclomatic complexity 25."""
    branches = "\n".join(f"    if value == {i}:\n        total += {i}" for i in range(24))
    return f'"""Branches."""\n\n\ndef classify(value: int) -> int:\n    """Sum matches."""\n    total = 0\n{branches}\n    return total\n'


@pytest.fixture
def unused_import_source() -> str:
    """``import os`` on line 3 is never used."""
    return textwrap.dedent(
        '''\
        """Entry point."""

        import os
        import sys


        def main() -> list[str]:
            """Return the arguments."""
            return sys.argv
        '''
    )


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo the structlog configuration installed by CLI invocations."""
    yield
    structlog.reset_defaults()

"""Auto-fixer for a closed set of fix categories.

The fixer is the only component that writes to analyzed files. For every
issue it:

1. Re-reads the file from disk and re-parses it
2. Returns ``already_fixed`` if there is nothing left to change
3. Computes the complete new content in memory
4. Checks the new content still parses
5. Replaces the file atomically
"""

import os
import tempfile
import time
from enum import Enum
from pathlib import Path
from typing import Callable

import structlog

from multiaudit.errors import SourceParseError, UnsafeFixError
from multiaudit.fix import transforms
from multiaudit.models import FixOutcome, FixResult, FixSummary, Issue, Severity
from multiaudit.source import PythonSourceProvider, SourceModel, SourceModelProvider, read_source
from multiaudit.source.paths import find_project_root, first_party_packages

logger = structlog.get_logger()


class FixCategory(str, Enum):
    """Every kind of fix the fixer knows about."""

    IMPORT_ORDERING = "import_ordering"
    UNUSED_IMPORT = "unused_import"
    DUPLICATE_IMPORTS = "duplicate_imports"
    NONE_COMPARISON = "none_comparison"
    BARE_EXCEPT = "bare_except"
    NAMING_CONVENTION = "naming_convention"  # never auto-applied
    UNHANDLED = "unhandled"

    @classmethod
    def from_dimension(cls, dimension: str) -> "FixCategory":
        return _CATEGORY_BY_DIMENSION.get(dimension, cls.UNHANDLED)


_CATEGORY_BY_DIMENSION = {
    "importOrdering": FixCategory.IMPORT_ORDERING,
    "unusedImports": FixCategory.UNUSED_IMPORT,
    "duplicateImports": FixCategory.DUPLICATE_IMPORTS,
    "noneComparison": FixCategory.NONE_COMPARISON,
    "bareExcept": FixCategory.BARE_EXCEPT,
    "namingConventions": FixCategory.NAMING_CONVENTION,
}

# Attempted by apply_fixes even when the issue is not marked fixable
BEST_EFFORT_CATEGORIES = frozenset({FixCategory.UNUSED_IMPORT, FixCategory.DUPLICATE_IMPORTS})

# Whole-block rewrites run after every line-targeted fix in the file
_WHOLE_FILE = frozenset({FixCategory.IMPORT_ORDERING})


class AutoFixer:
    """Applies safe rewrites for fixable issues, one file at a time."""

    def __init__(self, provider: SourceModelProvider | None = None):
        self.provider = provider or PythonSourceProvider()
        self._first_party: dict[Path, frozenset[str]] = {}
        self._logger = logger.bind(component="AutoFixer")

    def _first_party_for(self, path: Path) -> frozenset[str]:
        root = find_project_root(path)
        if root not in self._first_party:
            self._first_party[root] = first_party_packages(root)
        return self._first_party[root]

    def is_eligible(self, issue: Issue) -> bool:
        """Marked fixable, or a low-severity issue on the best-effort list."""
        if issue.fixable:
            return True
        category = FixCategory.from_dimension(issue.dimension)
        return issue.severity == Severity.LOW and category in BEST_EFFORT_CATEGORIES

    def fix(self, issue: Issue) -> FixResult:
        """Attempt the fix for one issue.

        Args:
            issue: The issue to fix; its file is re-read from disk

        Returns:
            FixResult describing the outcome
        """
        category = FixCategory.from_dimension(issue.dimension)
        match category:
            case FixCategory.NAMING_CONVENTION:
                return FixResult(
                    success=False,
                    outcome=FixOutcome.MANUAL_REVIEW,
                    issue=issue,
                    message="Manual review required",
                    reason="Renames can break callers outside the analyzed files",
                )
            case FixCategory.IMPORT_ORDERING:
                first_party = self._first_party_for(Path(issue.file))
                return self._rewrite(issue, lambda model: transforms.sort_imports(model, first_party))
            case FixCategory.UNUSED_IMPORT:
                return self._rewrite(issue, lambda model: transforms.remove_unused_import(model, issue.line or 0))
            case FixCategory.DUPLICATE_IMPORTS:
                return self._rewrite(issue, lambda model: transforms.merge_duplicate_import(model, issue.line or 0))
            case FixCategory.NONE_COMPARISON:
                return self._rewrite(issue, lambda model: transforms.fix_none_comparison(model, issue.line or 0))
            case FixCategory.BARE_EXCEPT:
                return self._rewrite(issue, lambda model: transforms.fix_bare_except(model, issue.line or 0))
            case FixCategory.UNHANDLED:
                return FixResult(
                    success=False,
                    outcome=FixOutcome.UNSUPPORTED,
                    issue=issue,
                    message="No auto-fix available",
                    reason=f"No fixer for dimension {issue.dimension}",
                )

    def _rewrite(self, issue: Issue, transform: Callable[[SourceModel], str | None]) -> FixResult:
        path = Path(issue.file)
        try:
            before = read_source(path)
            model = self.provider.parse(issue.file, before)
            after = transform(model)
            if after is None or after == before:
                return FixResult(
                    success=True,
                    outcome=FixOutcome.ALREADY_FIXED,
                    issue=issue,
                    message="Already fixed",
                )
            try:
                self.provider.parse(issue.file, after)
            except SourceParseError as e:
                raise UnsafeFixError(f"rewrite would not parse: {e.reason}") from e
            self._write_atomic(path, after)
        except UnsafeFixError as e:
            self._logger.warning("Unsafe fix skipped", file=issue.file, dimension=issue.dimension, reason=str(e))
            return FixResult(success=False, outcome=FixOutcome.FAILED, issue=issue, message="Unsafe fix", reason=str(e))
        except (OSError, UnicodeDecodeError, SourceParseError) as e:
            self._logger.error("Fix failed", file=issue.file, dimension=issue.dimension, error=str(e))
            return FixResult(success=False, outcome=FixOutcome.FAILED, issue=issue, message="Fix failed", reason=str(e))

        changes = transforms.describe_changes(before, after)
        self._logger.info("Applied fix", file=issue.file, dimension=issue.dimension, line=issue.line)
        return FixResult(
            success=True,
            outcome=FixOutcome.APPLIED,
            issue=issue,
            message=f"Fixed {issue.dimension}",
            changes=changes,
        )

    @staticmethod
    def _write_atomic(path: Path, content: str) -> None:
        handle = tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            newline="",
        )
        try:
            with handle:
                handle.write(content)
            os.chmod(handle.name, path.stat().st_mode & 0o7777)
            os.replace(handle.name, path)
        except OSError:
            Path(handle.name).unlink(missing_ok=True)
            raise

    @staticmethod
    def _order_key(issue: Issue) -> tuple:
        category = FixCategory.from_dimension(issue.dimension)
        if category in _WHOLE_FILE:
            return (1, 0, issue.dimension, issue.message)
        # Descending lines: an edit never shifts a target that is still pending
        return (0, -(issue.line or 0), issue.column or 0, issue.dimension, issue.message)

    def apply_fixes(self, issues: list[Issue]) -> FixSummary:
        """Fix every eligible issue, grouped by file.

        All fixes for one file complete before the next file starts.
        Ineligible issues are counted as skipped.

        Args:
            issues: Issues from a report

        Returns:
            FixSummary over all submitted issues
        """
        started = time.perf_counter()
        by_file: dict[str, list[Issue]] = {}
        for issue in issues:
            if self.is_eligible(issue):
                by_file.setdefault(issue.file, []).append(issue)

        results: list[FixResult] = []
        for file in sorted(by_file):
            for issue in sorted(by_file[file], key=self._order_key):
                results.append(self.fix(issue))

        summary = FixSummary.from_results(
            total=len(issues),
            results=results,
            duration_ms=(time.perf_counter() - started) * 1000,
        )
        self._logger.info(
            "Fix batch complete",
            total=summary.total,
            fixed=summary.fixed,
            failed=summary.failed,
            skipped=summary.skipped,
        )
        return summary

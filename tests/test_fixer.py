"""Tests for the auto-fixer and its source transforms."""

import textwrap

import pytest

from multiaudit.agents import CodeQualityAgent, ConsistencyAgent, TypeSafetyAgent
from multiaudit.audit import AnalysisOrchestrator
from multiaudit.config import OrchestratorOptions
from multiaudit.errors import UnsafeFixError
from multiaudit.fix import AutoFixer, FixCategory
from multiaudit.fix.transforms import describe_changes, replace_lines, sort_imports
from multiaudit.models import FixOutcome, Issue, Severity


@pytest.fixture
def fixer(provider) -> AutoFixer:
    return AutoFixer(provider=provider)


@pytest.fixture
def analyze(settings):
    """Run a set of agents over one file and return the active issues."""

    async def _analyze(path, *agents) -> list[Issue]:
        orchestrator = AnalysisOrchestrator(
            agents=[agent() for agent in agents],
            options=OrchestratorOptions.from_settings(settings),
            settings=settings,
        )
        report = await orchestrator.run([str(path)])
        return [f.issue for f in report.active_findings]

    return _analyze


def issue_for(path, dimension: str, line: int, severity: Severity = Severity.LOW, fixable: bool = True) -> Issue:
    return Issue(
        dimension=dimension,
        file=str(path),
        line=line,
        column=1,
        message=f"{dimension} on line {line}",
        severity=severity,
        fixable=fixable,
    )


class TestTransforms:
    """Tests for the pure rewrite helpers."""

    def test_replace_lines_keeps_missing_final_newline(self):
        assert replace_lines("a\nb\nc", 3, 3, ["z"]) == "a\nb\nz"
        assert replace_lines("a\nb\nc\n", 2, 2, []) == "a\nc\n"

    def test_replace_lines_keeps_crlf(self):
        assert replace_lines("a\r\nb\r\n", 1, 1, ["x"]) == "x\r\nb\r\n"

    def test_replace_lines_counts_only_newlines(self):
        assert replace_lines("a\n\x0c\nb\n", 3, 3, []) == "a\n\x0c\n"

    def test_describe_changes(self):
        assert describe_changes("a\nb\n", "a\nc\n") == ["- b", "+ c"]

    def test_sort_imports_refuses_comments(self, parse):
        model = parse("import sys\n# keep\nimport os\n\nprint(os, sys)\n")
        with pytest.raises(UnsafeFixError):
            sort_imports(model)


class TestAutoFixer:
    """Tests for fix routing, safety and idempotence."""

    def test_categories(self):
        assert FixCategory.from_dimension("unusedImports") == FixCategory.UNUSED_IMPORT
        assert FixCategory.from_dimension("complexity") == FixCategory.UNHANDLED

    @pytest.mark.asyncio
    async def test_unused_import_on_line_3(self, write_file, fixer, analyze, unused_import_source):
        """Fixing the unused import leaves no unused-import issue behind."""
        path = write_file("app/main.py", unused_import_source)
        issues = [i for i in await analyze(path, ConsistencyAgent) if i.dimension == "unusedImports"]
        assert [i.line for i in issues] == [3]

        result = fixer.fix(issues[0])

        assert result.success
        assert result.outcome == FixOutcome.APPLIED
        assert "- import os" in result.changes
        remaining = [i for i in await analyze(path, ConsistencyAgent) if i.dimension == "unusedImports"]
        assert remaining == []

    @pytest.mark.asyncio
    async def test_fix_is_idempotent(self, write_file, fixer, analyze, unused_import_source):
        path = write_file("app/main.py", unused_import_source)
        issue = [i for i in await analyze(path, ConsistencyAgent) if i.dimension == "unusedImports"][0]

        first = fixer.fix(issue)
        content = path.read_text(encoding="utf-8")
        second = fixer.fix(issue)

        assert first.outcome == FixOutcome.APPLIED
        assert second.outcome == FixOutcome.ALREADY_FIXED
        assert second.success
        assert path.read_text(encoding="utf-8") == content

    def test_partial_unused_from_import(self, write_file, fixer):
        path = write_file("app/util.py", "from os import path, sep\n\nprint(sep)\n")

        result = fixer.fix(issue_for(path, "unusedImports", 1))

        assert result.outcome == FixOutcome.APPLIED
        assert path.read_text(encoding="utf-8") == "from os import sep\n\nprint(sep)\n"

    def test_comment_makes_fix_unsafe(self, write_file, fixer):
        source = "import os  # needed for plugins\n\nprint(1)\n"
        path = write_file("app/plugins.py", source)

        result = fixer.fix(issue_for(path, "unusedImports", 1))

        assert result.outcome == FixOutcome.FAILED
        assert not result.success
        assert "comment" in result.reason
        assert path.read_text(encoding="utf-8") == source

    def test_import_ordering(self, write_file, fixer):
        path = write_file("app/cli.py", "import requests\nimport sys\nimport os\n\nprint(os, sys, requests)\n")

        result = fixer.fix(issue_for(path, "importOrdering", 1))

        assert result.outcome == FixOutcome.APPLIED
        assert path.read_text(encoding="utf-8") == (
            "import os\nimport sys\n\nimport requests\n\nprint(os, sys, requests)\n"
        )
        assert fixer.fix(issue_for(path, "importOrdering", 1)).outcome == FixOutcome.ALREADY_FIXED

    def test_duplicate_imports(self, write_file, fixer):
        path = write_file("app/paths.py", "from os import path\nimport sys\nfrom os import sep\n\nprint(path, sep, sys)\n")

        result = fixer.fix(issue_for(path, "duplicateImports", 3))

        assert result.outcome == FixOutcome.APPLIED
        assert path.read_text(encoding="utf-8") == "from os import path, sep\nimport sys\n\nprint(path, sep, sys)\n"

    def test_none_comparison(self, write_file, fixer):
        path = write_file(
            "app/checks.py",
            """
            def check(a, b):
                if a == None and b != None:
                    return True
                return False
            """,
        )

        result = fixer.fix(issue_for(path, "noneComparison", 3))

        assert result.outcome == FixOutcome.APPLIED
        assert "if a is None and b is not None:" in path.read_text(encoding="utf-8")

    def test_none_on_left_is_not_rewritten(self, write_file, fixer):
        path = write_file("app/checks.py", "def check(a):\n    return None == a\n")

        result = fixer.fix(issue_for(path, "noneComparison", 2))

        assert result.outcome == FixOutcome.FAILED

    def test_bare_except(self, write_file, fixer):
        path = write_file(
            "app/io.py",
            """
            def read(path):
                try:
                    return open(path).read()
                except:
                    return ""
            """,
        )

        result = fixer.fix(issue_for(path, "bareExcept", 5, severity=Severity.MEDIUM))

        assert result.outcome == FixOutcome.APPLIED
        assert "    except Exception:\n" in path.read_text(encoding="utf-8")

    def test_naming_needs_manual_review(self, write_file, fixer):
        path = write_file("app/names.py", "def renderPage():\n    pass\n")
        before = path.read_text(encoding="utf-8")

        result = fixer.fix(issue_for(path, "namingConventions", 1, fixable=False))

        assert result.outcome == FixOutcome.MANUAL_REVIEW
        assert not result.success
        assert path.read_text(encoding="utf-8") == before

    def test_unhandled_dimension(self, write_file, fixer):
        path = write_file("app/long.py", "x = 1\n")

        result = fixer.fix(issue_for(path, "complexity", 1, severity=Severity.HIGH))

        assert result.outcome == FixOutcome.UNSUPPORTED
        assert not result.success

    def test_missing_file_fails(self, tmp_path, fixer):
        result = fixer.fix(issue_for(tmp_path / "gone.py", "unusedImports", 1))
        assert result.outcome == FixOutcome.FAILED

    def test_form_feed_does_not_shift_lines(self, project, fixer):
        """A form feed line counts as one line, as the parser sees it."""
        path = project / "app" / "legacy.py"
        path.parent.mkdir()
        path.write_bytes(b"import os\n\x0c\nimport sys\n\nprint(os)\n")

        result = fixer.fix(issue_for(path, "unusedImports", 3))

        assert result.outcome == FixOutcome.APPLIED
        assert path.read_bytes() == b"import os\n\x0c\n\nprint(os)\n"
        assert fixer.fix(issue_for(path, "unusedImports", 3)).outcome == FixOutcome.ALREADY_FIXED

    def test_crlf_line_endings_are_kept(self, project, fixer):
        path = project / "app" / "windows.py"
        path.parent.mkdir()
        path.write_bytes(b"import os\r\nimport sys\r\n\r\nprint(sys)\r\n")

        result = fixer.fix(issue_for(path, "unusedImports", 1))

        assert result.outcome == FixOutcome.APPLIED
        assert path.read_bytes() == b"import sys\r\n\r\nprint(sys)\r\n"

    def test_crlf_bare_except(self, project, fixer):
        path = project / "app" / "handler.py"
        path.parent.mkdir()
        path.write_bytes(b"try:\r\n    pass\r\nexcept:\r\n    pass\r\n")

        result = fixer.fix(issue_for(path, "bareExcept", 3, severity=Severity.MEDIUM))

        assert result.outcome == FixOutcome.APPLIED
        assert path.read_bytes() == b"try:\r\n    pass\r\nexcept Exception:\r\n    pass\r\n"

    def test_eligibility(self, fixer):
        assert fixer.is_eligible(issue_for("a.py", "bareExcept", 1, severity=Severity.MEDIUM))
        assert fixer.is_eligible(issue_for("a.py", "unusedImports", 1, fixable=False))
        assert not fixer.is_eligible(issue_for("a.py", "unusedImports", 1, severity=Severity.HIGH, fixable=False))
        assert not fixer.is_eligible(issue_for("a.py", "complexity", 1, severity=Severity.HIGH, fixable=False))

    @pytest.mark.asyncio
    async def test_apply_fixes_in_one_file(self, write_file, fixer, analyze):
        """Several fixes in one file all land, and re-analysis is clean."""
        path = write_file(
            "app/service.py",
            '''
            """Service."""

            import sys
            import os
            import json


            def run(value: object) -> bool:
                """Run."""
                try:
                    print(os.sep, sys.argv)
                except:
                    return False
                return value == None
            ''',
        )
        agents = (ConsistencyAgent, CodeQualityAgent, TypeSafetyAgent)
        issues = [i for i in await analyze(path, *agents) if i.dimension != "emptyHandlers"]

        summary = fixer.apply_fixes(issues)

        assert summary.failed == 0
        assert summary.fixed == 4
        assert summary.fixed + summary.failed + summary.skipped == summary.total
        content = path.read_text(encoding="utf-8")
        assert content == textwrap.dedent(
            '''
            """Service."""

            import os
            import sys


            def run(value: object) -> bool:
                """Run."""
                try:
                    print(os.sep, sys.argv)
                except Exception:
                    return False
                return value is None
            '''
        )
        leftover = {i.dimension for i in await analyze(path, *agents)}
        assert leftover.isdisjoint({"unusedImports", "importOrdering", "bareExcept", "noneComparison"})

"""Testing agent: public functions that no test file mentions."""

import re
import time
from pathlib import Path

from multiaudit.agents.base import AnalysisAgent, AnalysisContext
from multiaudit.agents.code_quality import named_functions
from multiaudit.agents.documentation import definition_scope
from multiaudit.models import DimensionReport, Severity
from multiaudit.source import NodeCategory, SourceModel
from multiaudit.source.paths import is_test_path

_WORD = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


class TestingAgent(AnalysisAgent):
    """Flags public module-level functions never referenced by a test."""

    __test__ = False  # not a pytest class

    name = "Testing"
    dimensions = ("coverageGaps",)

    def _test_vocabulary(self, context: AnalysisContext) -> set[str]:
        """Every identifier-like word in the project's test files, read once per run."""
        state = self.state(context)
        if "vocabulary" not in state:
            words: set[str] = set()
            for path in context.test_files:
                try:
                    words.update(_WORD.findall(Path(path).read_text(encoding="utf-8", errors="replace")))
                except OSError as e:
                    self._logger.warning("Could not read test file", file=path, error=str(e))
            state["vocabulary"] = words
        return state["vocabulary"]

    async def analyze(
        self,
        file: str,
        model: SourceModel,
        context: AnalysisContext,
    ) -> list[DimensionReport]:
        started = time.perf_counter()
        if is_test_path(file) or Path(file).name == "__init__.py":
            return [self.build_report("coverageGaps", [], started=started)]

        public = [
            func
            for func in named_functions(model)
            if not func.name.startswith("_") and definition_scope(func) == NodeCategory.MODULE
        ]
        if not public:
            return [self.build_report("coverageGaps", [], started=started)]

        if not context.test_files:
            issue = self.create_issue(
                "coverageGaps",
                file,
                f"No test files found; {len(public)} public function(s) untested",
                severity=Severity.INFO,
                suggestion="Add a tests/ directory",
            )
            return [self.build_report("coverageGaps", [issue], started=started)]

        vocabulary = self._test_vocabulary(context)
        issues = [
            self.create_issue(
                "coverageGaps",
                file,
                f"Public function '{func.name}' is not referenced by any test",
                node=func,
                suggestion=f"Add a test exercising {func.name}()",
            )
            for func in public
            if func.name not in vocabulary
        ]
        tested = len(public) - len(issues)
        return [
            self.build_report(
                "coverageGaps",
                issues,
                metrics={"publicFunctions": float(len(public)), "referenced": float(tested)},
                started=started,
            )
        ]

"""Consistency agent: imports and project-wide naming style."""

import re
import time
from collections import Counter

from multiaudit.agents.base import AnalysisAgent, AnalysisContext
from multiaudit.agents.code_quality import named_functions
from multiaudit.models import DimensionReport, Issue
from multiaudit.source import SourceModel
from multiaudit.source.imports import duplicate_statements, is_sorted, render_block, unused_bindings
from multiaudit.source.paths import is_test_path

_SNAKE = re.compile(r"^[a-z][a-z0-9]*(_[a-z0-9]+)+$")
_CAMEL = re.compile(r"^[a-z][a-z0-9]*([A-Z][a-z0-9]*)+$")

# A style must cover this share of classified names to count as dominant
DOMINANCE_RATIO = 0.7
MIN_NAMED_FUNCTIONS = 3

_LABELS = {"snake": "snake_case", "camel": "camelCase"}


def naming_style(name: str) -> str | None:
    """Classify a function name as "snake" or "camel"; None if ambiguous."""
    core = name.strip("_")
    if name.startswith("__") and name.endswith("__"):
        return None
    if _SNAKE.match(core):
        return "snake"
    if _CAMEL.match(core):
        return "camel"
    return None


class ConsistencyAgent(AnalysisAgent):
    """Reports import hygiene and naming drift across the run."""

    name = "Consistency"
    dimensions = ("importOrdering", "unusedImports", "duplicateImports", "namingConventions")

    async def collect(self, file: str, model: SourceModel, context: AnalysisContext) -> None:
        if is_test_path(file):
            return
        styles: Counter = self.state(context).setdefault("styles", Counter())
        for func in named_functions(model):
            style = naming_style(func.name)
            if style:
                styles[style] += 1

    async def analyze(
        self,
        file: str,
        model: SourceModel,
        context: AnalysisContext,
    ) -> list[DimensionReport]:
        started = time.perf_counter()
        return [
            self._ordering(file, model, context, started),
            self._unused(file, model, started),
            self._duplicates(file, model, started),
            self._naming(file, model, context, started),
        ]

    def _ordering(
        self,
        file: str,
        model: SourceModel,
        context: AnalysisContext,
        started: float,
    ) -> DimensionReport:
        imports = model.imports
        issues = []
        if len(imports) > 1 and not is_sorted(imports, context.first_party):
            expected = [line for line in render_block(imports, context.first_party) if line]
            issues.append(
                self.create_issue(
                    "importOrdering",
                    file,
                    "Imports are not grouped and sorted",
                    line=imports[0].start_line,
                    column=1,
                    suggestion="Expected order: " + "; ".join(expected),
                    fixable=True,
                )
            )
        return self.build_report("importOrdering", issues, metrics={"imports": float(len(imports))}, started=started)

    def _unused(self, file: str, model: SourceModel, started: float) -> DimensionReport:
        issues: list[Issue] = []
        for statement, bindings in unused_bindings(model):
            for binding in bindings:
                issues.append(
                    self.create_issue(
                        "unusedImports",
                        file,
                        f"'{binding.render()}' imported but unused",
                        line=statement.start_line,
                        column=1,
                        suggestion=f"Remove the unused import of '{binding.bound_name}'",
                        fixable=True,
                    )
                )
        return self.build_report("unusedImports", issues, started=started)

    def _duplicates(self, file: str, model: SourceModel, started: float) -> DimensionReport:
        issues = [
            self.create_issue(
                "duplicateImports",
                file,
                f"'{repeat.module_key or repeat.text}' already imported on line {first.start_line}",
                line=repeat.start_line,
                column=1,
                suggestion="Merge the statements into one",
                fixable=True,
            )
            for first, repeat in duplicate_statements(model)
        ]
        return self.build_report("duplicateImports", issues, started=started)

    def _naming(
        self,
        file: str,
        model: SourceModel,
        context: AnalysisContext,
        started: float,
    ) -> DimensionReport:
        styles: Counter = self.state(context).get("styles", Counter())
        total = sum(styles.values())
        issues = []
        dominant = None
        if total >= MIN_NAMED_FUNCTIONS:
            style, count = styles.most_common(1)[0]
            if count / total >= DOMINANCE_RATIO:
                dominant = style

        if dominant and not is_test_path(file):
            for func in named_functions(model):
                style = naming_style(func.name)
                if style and style != dominant:
                    issues.append(
                        self.create_issue(
                            "namingConventions",
                            file,
                            f"Function '{func.name}' is {_LABELS[style]}; the project uses {_LABELS[dominant]}",
                            node=func,
                            suggestion="Rename the function to match the dominant style",
                            fixable=False,
                        )
                    )
        metrics = {f"{k}Functions": float(v) for k, v in sorted(styles.items())}
        return self.build_report("namingConventions", issues, metrics=metrics, started=started)

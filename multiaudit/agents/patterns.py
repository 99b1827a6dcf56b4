"""Pattern recognition agent.

Finds the dominant variant of a few recurring code patterns across every
file in the run and reports the places that deviate from it:

- handlerPattern: handler method prefixes (execute / handle / process / run)
- errorPattern: exception handlers that re-raise versus ones that return
- namingPattern: class naming style

Variants are gathered in ``collect`` so each file is judged against the
whole run, not just the files analyzed before it.
"""

import re
import time
from collections import Counter
from dataclasses import dataclass

from multiaudit.agents.base import AnalysisAgent, AnalysisContext
from multiaudit.agents.code_quality import named_functions
from multiaudit.models import DimensionReport
from multiaudit.source import SCOPE_CATEGORIES, NodeCategory, SourceModel, SourceNode
from multiaudit.source.paths import is_test_path

_HANDLER_PREFIX = re.compile(r"^(execute|handle|process|run)(?=_|[A-Z0-9]|$)")
_PASCAL = re.compile(r"^[A-Z][a-zA-Z0-9]*$")
_SNAKE = re.compile(r"^[a-z][a-z0-9_]*$")
_CAMEL = re.compile(r"^[a-z][a-z0-9]*([A-Z][a-z0-9]*)+$")

MIN_INSTANCES = 3

# Share of instances the dominant variant needs before deviations count
HANDLER_DOMINANCE = 0.5
ERROR_DOMINANCE = 0.8
NAMING_DOMINANCE = 0.7

_STYLE_LABELS = {"pascal": "PascalCase", "snake": "snake_case", "camel": "camelCase"}


@dataclass(frozen=True)
class PatternInstance:
    file: str
    line: int
    variant: str
    context: str = ""


def handler_variant(name: str) -> str | None:
    match = _HANDLER_PREFIX.match(name.lstrip("_"))
    return match.group(1) if match else None


def error_variant(handler: SourceNode) -> str | None:
    """Classify a handler by whether it raises or returns; None if neither."""
    kinds = {node.kind for node in handler.descendants(stop_at=SCOPE_CATEGORIES)}
    if "raise_statement" in kinds:
        return "raise"
    if "return_statement" in kinds:
        return "return"
    return None


def class_style(name: str) -> str | None:
    core = name.lstrip("_")
    if _PASCAL.match(core):
        return "pascal"
    if _CAMEL.match(core):
        return "camel"
    if _SNAKE.match(core):
        return "snake"
    return None


def enclosing_class(func: SourceNode) -> SourceNode | None:
    parent = func.parent
    if parent is not None and parent.kind == "decorated_definition":
        parent = parent.parent
    if parent is None or parent.category != NodeCategory.BLOCK:
        return None
    owner = parent.parent
    return owner if owner is not None and owner.category == NodeCategory.CLASS else None


def dominant_variant(instances: list[PatternInstance], ratio: float) -> tuple[str | None, int, int]:
    """The variant covering more than ``ratio`` of instances, with its count and the total."""
    counts = Counter(i.variant for i in instances)
    total = sum(counts.values())
    if total < MIN_INSTANCES:
        return None, 0, total
    # Ties go to the alphabetically first variant
    variant, count = min(counts.items(), key=lambda item: (-item[1], item[0]))
    if count / total <= ratio:
        return None, count, total
    return variant, count, total


class PatternRecognitionAgent(AnalysisAgent):
    """Reports deviations from the run's dominant code patterns."""

    name = "PatternRecognition"
    dimensions = ("handlerPattern", "errorPattern", "namingPattern")

    async def collect(self, file: str, model: SourceModel, context: AnalysisContext) -> None:
        if is_test_path(file):
            return
        state = self.state(context)
        state.setdefault("handlers", []).extend(self._handler_instances(file, model))
        state.setdefault("errors", []).extend(self._error_instances(file, model))
        state.setdefault("classes", []).extend(self._class_instances(file, model))

    async def analyze(
        self,
        file: str,
        model: SourceModel,
        context: AnalysisContext,
    ) -> list[DimensionReport]:
        started = time.perf_counter()
        state = self.state(context)
        skip = is_test_path(file)

        return [
            self._handler_report(file, [] if skip else state.get("handlers", []), started),
            self._error_report(file, [] if skip else state.get("errors", []), started),
            self._naming_report(file, [] if skip else state.get("classes", []), started),
        ]

    @staticmethod
    def _handler_instances(file: str, model: SourceModel) -> list[PatternInstance]:
        instances = []
        for func in named_functions(model):
            variant = handler_variant(func.name)
            if variant and enclosing_class(func) is not None:
                instances.append(PatternInstance(file, func.start_line, variant, func.name))
        return instances

    @staticmethod
    def _error_instances(file: str, model: SourceModel) -> list[PatternInstance]:
        instances = []
        for handler in model.find(NodeCategory.HANDLER):
            variant = error_variant(handler)
            if variant:
                instances.append(PatternInstance(file, handler.start_line, variant))
        return instances

    @staticmethod
    def _class_instances(file: str, model: SourceModel) -> list[PatternInstance]:
        instances = []
        for node in model.find(NodeCategory.CLASS):
            style = class_style(node.name)
            if style:
                instances.append(PatternInstance(file, node.start_line, style, node.name))
        return instances

    @staticmethod
    def _metrics(count: int, total: int) -> dict[str, float]:
        score = count / total * 100 if total else 100.0
        return {"dominantCount": float(count), "totalInstances": float(total), "consistencyScore": score}

    def _handler_report(self, file: str, instances: list[PatternInstance], started: float) -> DimensionReport:
        dominant, count, total = dominant_variant(instances, HANDLER_DOMINANCE)
        issues = []
        if dominant:
            for instance in (i for i in instances if i.file == file and i.variant != dominant):
                renamed = instance.context.replace(instance.variant, dominant, 1)
                issues.append(
                    self.create_issue(
                        "handlerPattern",
                        file,
                        f"Handler method '{instance.context}' uses \"{instance.variant}\", "
                        f"but {count}/{total} handlers use \"{dominant}\"",
                        line=instance.line,
                        suggestion=f"Rename to '{renamed}' to follow the dominant pattern",
                    )
                )
        return self.build_report("handlerPattern", issues, metrics=self._metrics(count, total), started=started)

    def _error_report(self, file: str, instances: list[PatternInstance], started: float) -> DimensionReport:
        dominant, count, total = dominant_variant(instances, ERROR_DOMINANCE)
        issues = []
        if dominant:
            for instance in (i for i in instances if i.file == file and i.variant != dominant):
                issues.append(
                    self.create_issue(
                        "errorPattern",
                        file,
                        f"Exception handler uses \"{instance.variant}\", "
                        f"but {count}/{total} handlers use \"{dominant}\"",
                        line=instance.line,
                        suggestion=f"Follow the dominant error handling pattern: \"{dominant}\"",
                    )
                )
        return self.build_report("errorPattern", issues, metrics=self._metrics(count, total), started=started)

    def _naming_report(self, file: str, instances: list[PatternInstance], started: float) -> DimensionReport:
        dominant, count, total = dominant_variant(instances, NAMING_DOMINANCE)
        issues = []
        if dominant:
            for instance in (i for i in instances if i.file == file and i.variant != dominant):
                issues.append(
                    self.create_issue(
                        "namingPattern",
                        file,
                        f"Class '{instance.context}' is {_STYLE_LABELS[instance.variant]}; "
                        f"{count}/{total} classes are {_STYLE_LABELS[dominant]}",
                        line=instance.line,
                        suggestion=f"Rename the class to {_STYLE_LABELS[dominant]}",
                    )
                )
        return self.build_report("namingPattern", issues, metrics=self._metrics(count, total), started=started)

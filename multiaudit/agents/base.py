"""Base agent contract shared by every detector.

An agent owns one or more named dimensions. The orchestrator calls
``collect`` on every agent for every file first, then ``analyze``, so an
agent that needs cross-file knowledge (dominant naming style, duplicated
structures) can gather it in the first phase and report in the second.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

import structlog

from multiaudit.agents.dimensions import get_dimension
from multiaudit.config import AuditSettings
from multiaudit.models import DimensionReport, DimensionStatus, Issue, Severity
from multiaudit.source import SourceModel, SourceNode

logger = structlog.get_logger()


class RunAccumulator:
    """Run-scoped scratch space for cross-file agent state.

    Created by the orchestrator for one run and dropped afterwards; each
    agent gets its own namespace.
    """

    def __init__(self):
        self._spaces: dict[str, dict[str, Any]] = {}

    def namespace(self, agent: str) -> dict[str, Any]:
        return self._spaces.setdefault(agent, {})


@dataclass
class AnalysisContext:
    """Project-level facts available to every agent during a run."""

    project_root: Path
    files: list[str] = field(default_factory=list)
    project_files: list[str] = field(default_factory=list)
    test_files: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    first_party: frozenset[str] = frozenset()
    settings: AuditSettings = field(default_factory=AuditSettings)
    accumulator: RunAccumulator = field(default_factory=RunAccumulator)


class AnalysisAgent(ABC):
    """Abstract base class for all detectors.

    Subclasses set ``name`` and ``dimensions`` and implement ``analyze``.
    Detection must not modify files.
    """

    name: str = ""
    dimensions: tuple[str, ...] = ()

    def __init__(self):
        self._logger = logger.bind(agent=self.name)

    async def collect(self, file: str, model: SourceModel, context: AnalysisContext) -> None:
        """First phase of a run; override to gather cross-file state."""
        return None

    @abstractmethod
    async def analyze(
        self,
        file: str,
        model: SourceModel,
        context: AnalysisContext,
    ) -> list[DimensionReport]:
        """Analyze one file and return one report per dimension."""
        pass

    def state(self, context: AnalysisContext) -> dict[str, Any]:
        """This agent's namespace in the run accumulator."""
        return context.accumulator.namespace(self.name)

    def create_issue(
        self,
        dimension: str,
        file: str,
        message: str,
        *,
        node: SourceNode | None = None,
        line: int | None = None,
        column: int | None = None,
        severity: Severity | None = None,
        suggestion: str | None = None,
        fixable: bool = False,
        references: list[str] | None = None,
        related_files: list[str] | None = None,
    ) -> Issue:
        """Build an Issue, defaulting severity and effort from the catalog."""
        spec = get_dimension(dimension)
        if node is not None:
            line = line or node.start_line
            column = column or node.start_column
        return Issue(
            dimension=dimension,
            file=file,
            line=line,
            column=column,
            message=message,
            severity=severity or spec.default_severity,
            suggestion=suggestion,
            estimated_effort=spec.effort,
            fixable=fixable,
            references=references or [],
            related_files=related_files or [],
        )

    def build_report(
        self,
        dimension: str,
        issues: list[Issue],
        metrics: dict[str, float] | None = None,
        started: float | None = None,
    ) -> DimensionReport:
        """Wrap issues in a DimensionReport with a catalog-derived status."""
        spec = get_dimension(dimension)
        if any(issue.severity.at_least(spec.fail_severity) for issue in issues):
            status = DimensionStatus.FAIL
        elif issues:
            status = DimensionStatus.WARNING
        else:
            status = DimensionStatus.PASS

        duration = (time.perf_counter() - started) * 1000 if started is not None else 0.0
        return DimensionReport(
            dimension=dimension,
            status=status,
            issues=issues,
            metrics=metrics or {},
            duration_ms=duration,
        )


class AgentRegistry:
    """Ordered registry of agent instances, keyed by name."""

    def __init__(self, agents: list[AnalysisAgent] | None = None):
        self._agents: dict[str, AnalysisAgent] = {}
        for agent in agents or []:
            self.register(agent)

    def register(self, agent: AnalysisAgent) -> None:
        """Register an agent; names must be unique."""
        if not agent.name:
            raise ValueError(f"{type(agent).__name__} has no name")
        if agent.name in self._agents:
            raise ValueError(f"Agent {agent.name} already registered")
        self._agents[agent.name] = agent
        logger.debug("Registered agent", agent=agent.name)

    def get(self, name: str) -> AnalysisAgent | None:
        return self._agents.get(name)

    def all(self) -> list[AnalysisAgent]:
        return list(self._agents.values())

    @property
    def names(self) -> list[str]:
        return list(self._agents)

    def without(self, names: list[str]) -> "AgentRegistry":
        """A copy of this registry minus the named agents."""
        excluded = {n.lower() for n in names}
        return AgentRegistry([a for a in self.all() if a.name.lower() not in excluded])

    def __iter__(self) -> Iterator[AnalysisAgent]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._agents)

"""Analysis orchestrator.

Runs every registered agent over a shared set of parsed files and folds
their output into one Report:

1. Parse each file once; unparseable files are skipped and recorded
2. ``collect`` phase over every agent x file, then ``analyze`` phase
3. Resolve conflicts between agents
4. Validate survivors against the false-positive policy
5. Aggregate counts and derive recommendations
6. Optionally hand active findings to the auto-fixer
"""

import dataclasses
import time
from pathlib import Path

import structlog

from multiaudit.agents import (
    AGENT_FAILURE,
    AgentRegistry,
    AnalysisAgent,
    AnalysisContext,
    RunAccumulator,
    default_agents,
)
from multiaudit.audit.discovery import build_context
from multiaudit.audit.policy import POLICY_VERSION
from multiaudit.audit.resolver import Candidate, ConflictResolver
from multiaudit.audit.summary import build_recommendations, build_summary
from multiaudit.audit.validator import FindingValidator
from multiaudit.config import AuditSettings, OrchestratorOptions, get_settings
from multiaudit.errors import AgentExecutionError, SourceParseError
from multiaudit.fix import AutoFixer
from multiaudit.models import (
    AgentReport,
    DimensionReport,
    DimensionStatus,
    FixSummary,
    Issue,
    Report,
    Severity,
    SkippedFile,
)
from multiaudit.source import PythonSourceProvider, SourceModel, SourceModelProvider, read_source

logger = structlog.get_logger()


class AnalysisOrchestrator:
    """Coordinates agents, conflict resolution, validation and fixing."""

    def __init__(
        self,
        agents: AgentRegistry | list[AnalysisAgent] | None = None,
        provider: SourceModelProvider | None = None,
        options: OrchestratorOptions | None = None,
        fixer: AutoFixer | None = None,
        settings: AuditSettings | None = None,
    ):
        if agents is None:
            agents = default_agents()
        elif not isinstance(agents, AgentRegistry):
            agents = AgentRegistry(agents)
        self.settings = settings or get_settings()
        self.agents = agents
        self.provider = provider or PythonSourceProvider()
        self.options = options or OrchestratorOptions.from_settings(self.settings)
        self.fixer = fixer
        self._logger = logger.bind(component="AnalysisOrchestrator")

    def _active_agents(self) -> AgentRegistry:
        if not self.options.exclude_agents:
            return self.agents
        return self.agents.without(self.options.exclude_agents)

    def _parse_all(self, files: list[str]) -> tuple[dict[str, SourceModel], list[SkippedFile]]:
        models: dict[str, SourceModel] = {}
        skipped: list[SkippedFile] = []
        for file in files:
            if not self.provider.supports(file):
                self._logger.warning("Skipping unsupported file", file=file)
                skipped.append(SkippedFile(file=file, reason="unsupported file type"))
                continue
            try:
                content = read_source(file)
                models[file] = self.provider.parse(file, content)
            except SourceParseError as e:
                self._logger.warning("Skipping unparseable file", file=file, reason=e.reason)
                skipped.append(SkippedFile(file=file, reason=e.reason))
            except (OSError, UnicodeDecodeError) as e:
                self._logger.warning("Skipping unreadable file", file=file, error=str(e))
                skipped.append(SkippedFile(file=file, reason=f"unreadable: {e}"))
        return models, skipped

    async def run(self, files: list[str], context: AnalysisContext | None = None) -> Report:
        """Analyze files and produce a Report.

        Args:
            files: Paths of the files to analyze
            context: Pre-built project context; built from ``files`` if omitted

        Returns:
            The reconciled Report

        Raises:
            AgentExecutionError: If an agent raises and ``fail_fast`` is set
        """
        started = time.perf_counter()
        files = list(dict.fromkeys(files))
        registry = self._active_agents()

        if context is None:
            context = build_context(files, self.settings)
        else:
            context = dataclasses.replace(context, files=files, accumulator=RunAccumulator())

        await self._logger.ainfo("Starting analysis", files=len(files), agents=registry.names)

        models, skipped = self._parse_all(files)
        failures: dict[str, list[tuple[str, BaseException]]] = {a.name: [] for a in registry}
        timings: dict[str, float] = {a.name: 0.0 for a in registry}
        dimension_reports: dict[str, list[DimensionReport]] = {a.name: [] for a in registry}

        # Phase one: cross-file collection
        for agent in registry:
            for file, model in models.items():
                agent_started = time.perf_counter()
                try:
                    await agent.collect(file, model, context)
                except Exception as e:
                    self._record_failure(agent, file, e, failures)
                finally:
                    timings[agent.name] += (time.perf_counter() - agent_started) * 1000

        # Phase two: per-file analysis
        for agent in registry:
            for file, model in models.items():
                agent_started = time.perf_counter()
                try:
                    dimension_reports[agent.name].extend(await agent.analyze(file, model, context))
                except Exception as e:
                    self._record_failure(agent, file, e, failures)
                finally:
                    timings[agent.name] += (time.perf_counter() - agent_started) * 1000

        agent_reports = [
            self._agent_report(agent.name, dimension_reports[agent.name], failures[agent.name], timings[agent.name])
            for agent in registry
        ]

        candidates = [
            Candidate(agent=report.agent, issue=issue) for report in agent_reports for issue in report.issues
        ]
        resolution = ConflictResolver(line_window=self.options.conflict_line_window).resolve(candidates)
        findings = FindingValidator(min_confidence=self.options.min_confidence).validate_all(resolution.survivors)
        findings.sort(key=lambda f: (f.issue.sort_key(), f.agent))

        fix_summary: FixSummary | None = None
        if self.options.auto_fix:
            fixer = self.fixer or AutoFixer(provider=self.provider)
            fix_summary = fixer.apply_fixes([f.issue for f in findings if not f.is_false_positive])

        summary = build_summary(
            findings,
            conflicts_resolved=len(resolution.resolutions),
            files_skipped=len(skipped),
            auto_fixed=fix_summary.fixed if fix_summary else 0,
        )

        report = Report(
            files=files,
            agent_reports=agent_reports,
            duration_ms=(time.perf_counter() - started) * 1000,
            summary=summary,
            resolved_conflicts=resolution.resolutions,
            recommendations=build_recommendations(summary),
            validated_findings=findings,
            skipped_files=skipped,
            fix_summary=fix_summary,
            policy_version=POLICY_VERSION,
        )

        await self._logger.ainfo(
            "Analysis complete",
            files=len(files),
            skipped=len(skipped),
            issues=summary.total_issues,
            critical=summary.critical,
            conflicts=summary.conflicts_resolved,
            duration_ms=round(report.duration_ms, 1),
        )
        return report

    def _record_failure(
        self,
        agent: AnalysisAgent,
        file: str,
        error: Exception,
        failures: dict[str, list[tuple[str, BaseException]]],
    ) -> None:
        if self.options.fail_fast:
            raise AgentExecutionError(agent.name, file, error) from error
        self._logger.error("Agent failed", agent=agent.name, file=file, error=str(error))
        failures[agent.name].append((file, error))

    @staticmethod
    def _agent_report(
        name: str,
        reports: list[DimensionReport],
        failures: list[tuple[str, BaseException]],
        duration_ms: float,
    ) -> AgentReport:
        reports = list(reports)
        if failures:
            first_file = failures[0][0]
            details = "; ".join(f"{Path(f).name}: {type(e).__name__}: {e}" for f, e in failures)
            issue = Issue(
                dimension=AGENT_FAILURE,
                file=first_file,
                message=f"Agent {name} failed on {len(failures)} file(s): {details}",
                severity=Severity.CRITICAL,
                suggestion="Check the agent logs; its results for these files are missing",
            )
            reports.append(
                DimensionReport(dimension=AGENT_FAILURE, status=DimensionStatus.FAIL, issues=[issue])
            )

        return AgentReport(
            agent=name,
            status=DimensionStatus.worst(r.status for r in reports),
            dimension_reports=reports,
            duration_ms=duration_ms,
        )

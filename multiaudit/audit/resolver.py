"""Conflict resolution between agents.

Two findings collide when they describe the same spot in the same file
with the same or related dimensions. Findings are visited best-ranked
first; each one either joins the best-ranked earlier group whose winner
it collides with or starts its own group. A group never holds two
distinct findings from one agent, so an agent's separate defects are
never folded into each other by a third finding between them. The
outcome depends only on the set of findings, never on their input order.
"""

from dataclasses import dataclass, field

import structlog

from multiaudit.audit.policy import (
    STRATEGY_NAME,
    UNMERGED_DIMENSIONS,
    agent_priority,
    dimensions_related,
    specificity,
)
from multiaudit.models import ConflictResolution, ConflictType, Issue

logger = structlog.get_logger()


@dataclass(frozen=True)
class Candidate:
    """An issue together with the agent that reported it."""

    agent: str
    issue: Issue

    def canonical_key(self) -> tuple:
        issue = self.issue
        return (
            issue.file,
            issue.line or 0,
            issue.column or 0,
            issue.dimension,
            self.agent,
            -issue.severity.rank,
            issue.message,
            issue.model_dump_json(),
        )

    def rank_key(self) -> tuple:
        """Ranking inside a conflict set; the smallest key wins."""
        return (
            -self.issue.severity.rank,
            -specificity(self.issue.dimension),
            agent_priority(self.agent),
            self.agent,
            self.issue.sort_key(),
            self.canonical_key(),
        )


@dataclass
class Survivor:
    """A winning candidate plus every agent whose finding folded into it."""

    candidate: Candidate
    validated_by: list[str] = field(default_factory=list)


@dataclass
class ResolutionResult:
    survivors: list[Survivor]
    resolutions: list[ConflictResolution]


@dataclass
class _Group:
    """A winner plus the findings folded into it."""

    anchor: Candidate
    members: list[Candidate]
    agents: set[str]


def _duplicate_key(candidate: Candidate) -> tuple:
    issue = candidate.issue
    return (candidate.agent, issue.file, issue.dimension, issue.line, issue.message)


class ConflictResolver:
    """Groups colliding findings and picks one winner per group."""

    def __init__(self, line_window: int = 2):
        self.line_window = line_window
        self._logger = logger.bind(component="ConflictResolver")

    def collides(self, a: Candidate, b: Candidate) -> bool:
        """Whether two candidates describe the same defect."""
        ia, ib = a.issue, b.issue
        if ia.dimension in UNMERGED_DIMENSIONS or ib.dimension in UNMERGED_DIMENSIONS:
            return False
        if ia.file != ib.file or not dimensions_related(ia.dimension, ib.dimension):
            return False
        if a.agent == b.agent:
            return ia.dimension == ib.dimension and ia.line == ib.line and ia.message == ib.message
        if ia.line is None and ib.line is None:
            return True
        if ia.line is None or ib.line is None:
            return False
        return abs(ia.line - ib.line) <= self.line_window

    def resolve(self, candidates: list[Candidate]) -> ResolutionResult:
        """Resolve conflicts among all candidates of a run.

        Args:
            candidates: Every (agent, issue) pair produced by the run

        Returns:
            Survivors in canonical order and one ConflictResolution per
            conflict set of two or more findings
        """
        # Exact repeats from one agent fold together before anything else
        repeats: dict[tuple, list[Candidate]] = {}
        for candidate in sorted(candidates, key=Candidate.rank_key):
            repeats.setdefault(_duplicate_key(candidate), []).append(candidate)

        groups_by_file: dict[str, list[_Group]] = {}
        for members in sorted(repeats.values(), key=lambda m: m[0].rank_key()):
            lead = members[0]
            groups = groups_by_file.setdefault(lead.issue.file, [])
            home = next(
                (g for g in groups if lead.agent not in g.agents and self.collides(g.anchor, lead)),
                None,
            )
            if home is None:
                groups.append(_Group(anchor=lead, members=list(members), agents={lead.agent}))
            else:
                home.members.extend(members)
                home.agents.add(lead.agent)

        survivors: list[Survivor] = []
        resolutions: list[ConflictResolution] = []
        for group in (g for groups in groups_by_file.values() for g in groups):
            members = group.members
            ranked = sorted(members, key=Candidate.rank_key)
            winner = ranked[0]
            agents = sorted({m.agent for m in members}, key=lambda a: (agent_priority(a), a))
            survivors.append(Survivor(candidate=winner, validated_by=agents))
            if len(members) > 1:
                resolutions.append(self._record(winner, ranked))

        survivors.sort(key=lambda s: s.candidate.canonical_key())
        resolutions.sort(key=lambda r: (r.winner.file, r.winner.line or 0, r.winner.dimension, r.winner_agent))

        if resolutions:
            self._logger.debug("Resolved conflicts", conflicts=len(resolutions), survivors=len(survivors))
        return ResolutionResult(survivors=survivors, resolutions=resolutions)

    @staticmethod
    def _conflict_type(members: list[Candidate]) -> ConflictType:
        if len({m.issue.dimension for m in members}) == 1:
            return ConflictType.DUPLICATE
        if len({m.issue.severity for m in members}) > 1:
            return ConflictType.SEVERITY
        return ConflictType.OVERLAP

    def _record(self, winner: Candidate, ranked: list[Candidate]) -> ConflictResolution:
        runner_up = ranked[1]
        if winner.issue.severity != runner_up.issue.severity:
            why = f"higher severity ({winner.issue.severity.value} over {runner_up.issue.severity.value})"
        elif specificity(winner.issue.dimension) != specificity(runner_up.issue.dimension):
            why = f"more specific dimension ({winner.issue.dimension} over {runner_up.issue.dimension})"
        elif agent_priority(winner.agent) != agent_priority(runner_up.agent):
            why = f"agent priority ({winner.agent} over {runner_up.agent})"
        else:
            why = "canonical tie-break"

        folded = len(ranked) - 1
        reasoning = (
            f"Kept {winner.agent}/{winner.issue.dimension} at {winner.issue.location}; "
            f"folded {folded} colliding finding(s) by {why}"
        )
        members = sorted(ranked, key=Candidate.canonical_key)
        return ConflictResolution(
            conflict_type=self._conflict_type(ranked),
            issues=[m.issue for m in members],
            strategy=STRATEGY_NAME,
            reasoning=reasoning,
            winner=winner.issue,
            winner_agent=winner.agent,
        )

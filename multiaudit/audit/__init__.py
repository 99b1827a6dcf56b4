"""Audit pipeline: orchestration, conflict resolution, validation, summary."""

from multiaudit.audit.discovery import build_context, expand_paths, load_dependencies
from multiaudit.audit.orchestrator import AnalysisOrchestrator
from multiaudit.audit.policy import POLICY_VERSION, STRATEGY_NAME
from multiaudit.audit.resolver import Candidate, ConflictResolver, ResolutionResult, Survivor
from multiaudit.audit.summary import (
    build_recommendations,
    build_summary,
    exceeds_threshold,
    exit_code,
)
from multiaudit.audit.validator import FindingValidator

__all__ = [
    "POLICY_VERSION",
    "STRATEGY_NAME",
    "AnalysisOrchestrator",
    "Candidate",
    "ConflictResolver",
    "FindingValidator",
    "ResolutionResult",
    "Survivor",
    "build_context",
    "build_recommendations",
    "build_summary",
    "exceeds_threshold",
    "exit_code",
    "expand_paths",
    "load_dependencies",
]

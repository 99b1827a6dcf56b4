"""Analysis agents.

Each agent implements one or more quality dimensions against a shared
SourceModel. ``default_agents()`` returns the shipped set in priority
order.
"""

from multiaudit.agents.base import AgentRegistry, AnalysisAgent, AnalysisContext, RunAccumulator
from multiaudit.agents.code_quality import CodeQualityAgent
from multiaudit.agents.consistency import ConsistencyAgent
from multiaudit.agents.dimensions import AGENT_FAILURE, DIMENSIONS, DimensionSpec, get_dimension
from multiaudit.agents.documentation import DocumentationAgent
from multiaudit.agents.patterns import PatternRecognitionAgent
from multiaudit.agents.security import SecurityAgent
from multiaudit.agents.testing import TestingAgent
from multiaudit.agents.type_safety import TypeSafetyAgent


def default_agents() -> AgentRegistry:
    """Registry holding one instance of every shipped agent."""
    return AgentRegistry(
        [
            SecurityAgent(),
            TypeSafetyAgent(),
            CodeQualityAgent(),
            TestingAgent(),
            ConsistencyAgent(),
            PatternRecognitionAgent(),
            DocumentationAgent(),
        ]
    )


__all__ = [
    "AGENT_FAILURE",
    "DIMENSIONS",
    "AgentRegistry",
    "AnalysisAgent",
    "AnalysisContext",
    "CodeQualityAgent",
    "ConsistencyAgent",
    "DimensionSpec",
    "DocumentationAgent",
    "PatternRecognitionAgent",
    "RunAccumulator",
    "SecurityAgent",
    "TestingAgent",
    "TypeSafetyAgent",
    "default_agents",
    "get_dimension",
]

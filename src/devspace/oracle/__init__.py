"""External execution and judgment capabilities."""

from devspace.oracle.agents import AgentCompletionOracle, AgentExecutionOracle, AgentTaskGenerator
from devspace.oracle.base import (
    CompletionOracle,
    EvaluationAnomaly,
    ExecutionError,
    ExecutionOracle,
    TaskGenerator,
)

__all__ = [
    "AgentCompletionOracle",
    "AgentExecutionOracle",
    "AgentTaskGenerator",
    "CompletionOracle",
    "EvaluationAnomaly",
    "ExecutionError",
    "ExecutionOracle",
    "TaskGenerator",
]

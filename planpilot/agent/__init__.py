"""The agent loop: serial and batch execution of a plan."""

from planpilot.agent.hooks import CommandNotifier, ExecutorHooks, RunHooks
from planpilot.agent.options import RunOptions, RunResult
from planpilot.agent.outcome import IterationOutcome, OutcomeKind
from planpilot.agent.runner import ExecutionOrchestrator

__all__ = [
    "CommandNotifier",
    "ExecutionOrchestrator",
    "ExecutorHooks",
    "IterationOutcome",
    "OutcomeKind",
    "RunHooks",
    "RunOptions",
    "RunResult",
]

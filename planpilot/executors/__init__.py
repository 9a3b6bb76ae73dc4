"""Executor registry.

The registry is built once at startup and handed to the orchestrator, so
tests can pass a mapping of fakes instead.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from planpilot.config import Settings
from planpilot.errors import ExecutorNotFoundError
from planpilot.executors.base import (
    ExecutionMetadata,
    Executor,
    ExecutorOutput,
    FailureDetails,
)
from planpilot.executors.claude_code import ClaudeCodeExecutor

ExecutorFactory = Callable[[dict[str, Any], Path], Executor]


def build_executor_registry(settings: Settings) -> dict[str, ExecutorFactory]:
    registry: dict[str, ExecutorFactory] = {
        "claude-code": ClaudeCodeExecutor,
    }
    return registry


def build_executor(
    name: str,
    registry: dict[str, ExecutorFactory],
    settings: Settings,
    base_dir: Path,
) -> Executor:
    factory = registry.get(name)
    if factory is None:
        raise ExecutorNotFoundError(
            f"Unknown executor: {name} (available: {', '.join(sorted(registry)) or 'none'})"
        )
    return factory(settings.executor_options(name), base_dir)


__all__ = [
    "ExecutionMetadata",
    "Executor",
    "ExecutorFactory",
    "ExecutorOutput",
    "FailureDetails",
    "build_executor",
    "build_executor_registry",
]

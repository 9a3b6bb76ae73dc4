"""Executor interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal

ExecutionMode = Literal["normal", "simple", "tdd"]


@dataclass(frozen=True)
class ExecutionMetadata:
    plan_id: int | None
    plan_title: str
    plan_file_path: str
    execution_mode: ExecutionMode = "normal"
    capture_output: bool = False
    batch_mode: bool = False


@dataclass
class FailureDetails:
    source_agent: str | None = None
    problems: str | None = None
    requirements: str | None = None
    solutions: str | None = None


@dataclass
class ExecutorOutput:
    """Result of one executor call.

    ``success`` is tri-state: only an explicit False is a failure, None means
    the backend did not say and is treated as success.
    """

    success: bool | None = None
    content: str = ""
    failure_details: FailureDetails | None = None

    @property
    def failed(self) -> bool:
        return self.success is False


class Executor(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    async def execute(self, content: str, metadata: ExecutionMetadata) -> ExecutorOutput | None:
        """Perform the work described by ``content``. May raise."""
        ...

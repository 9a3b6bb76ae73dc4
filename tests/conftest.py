"""Shared fixtures: plan directories and a scriptable fake executor."""

import os
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from planpilot.config import Settings
from planpilot.executors.base import ExecutionMetadata, Executor, ExecutorOutput
from planpilot.plans.store import PlanStore


@pytest.fixture
def tasks_dir(tmp_path) -> Path:
    d = tmp_path / "tasks"
    d.mkdir()
    return d


@pytest.fixture
def write_plan(tasks_dir) -> Callable[..., Path]:
    def _write(plan_id: int, **fields: Any) -> Path:
        data = {"id": plan_id, "uuid": f"uuid-{plan_id}", "title": f"Plan {plan_id}", **fields}
        path = tasks_dir / f"{plan_id}.yml"
        path.write_text(yaml.safe_dump(data, sort_keys=False))
        return path

    return _write


@pytest.fixture
def store(tasks_dir) -> PlanStore:
    return PlanStore(tasks_dir)


@pytest.fixture
def settings(monkeypatch) -> Settings:
    for key in list(os.environ):
        if key.upper().startswith("PLANPILOT_"):
            monkeypatch.delenv(key)
    return Settings(final_review=False)


class FakeExecutor(Executor):
    """Records calls; ``behaviour(content, metadata, call_no)`` decides the result."""

    def __init__(self, behaviour: Callable[[str, ExecutionMetadata, int], Any] | None = None) -> None:
        self.calls: list[tuple[str, ExecutionMetadata]] = []
        self.behaviour = behaviour

    @property
    def name(self) -> str:
        return "fake"

    async def execute(self, content: str, metadata: ExecutionMetadata) -> ExecutorOutput | None:
        self.calls.append((content, metadata))
        if self.behaviour is None:
            return ExecutorOutput(success=True, content="ok")
        return self.behaviour(content, metadata, len(self.calls))


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()

"""Best-effort hooks around plan completion.

None of these may fail a run: the orchestrator logs and discards anything
they raise.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

from planpilot.agent.options import RunResult
from planpilot.executors.base import ExecutionMetadata, Executor
from planpilot.plans.models import Plan
from planpilot.plans.store import PlanStore
from planpilot.prompts import build_final_review_prompt, build_lessons_prompt, build_update_docs_prompt
from planpilot.utils.logging import get_logger
from planpilot.utils.platform import shell_command_args

log = get_logger(__name__)


class RunHooks:
    """No-op hooks. Subclass and override what you need."""

    async def update_docs(self, plan: Plan) -> None:
        return None

    async def final_review(self, plan: Plan) -> int:
        """Review a finished plan; return how many tasks were appended."""
        return 0

    async def apply_lessons(self, plan: Plan) -> None:
        return None

    async def notify(self, result: RunResult) -> None:
        return None


class CommandNotifier:
    """Runs a shell command when a run ends, outcome passed in the environment."""

    def __init__(self, command: str, cwd: Path | None = None) -> None:
        self.command = command
        self.cwd = cwd

    async def notify(self, result: RunResult) -> None:
        env = {
            **os.environ,
            "PLANPILOT_RESULT": "success" if result.success else "failed",
            "PLANPILOT_REASON": result.reason,
            "PLANPILOT_PLAN_ID": "" if result.plan_id is None else str(result.plan_id),
            "PLANPILOT_ITERATIONS": str(result.iterations),
        }
        proc = await asyncio.create_subprocess_exec(
            *shell_command_args(self.command),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(self.cwd) if self.cwd else None,
            env=env,
        )
        _, stderr = await proc.communicate()
        if proc.returncode != 0:
            log.warning(
                "notification_failed",
                exit_code=proc.returncode,
                stderr=stderr.decode("utf-8", errors="replace").strip(),
            )


class ExecutorHooks(RunHooks):
    """Hooks that hand documentation and review work to the run's executor."""

    def __init__(
        self,
        executor: Executor,
        store: PlanStore,
        notifier: CommandNotifier | None = None,
    ) -> None:
        self.executor = executor
        self.store = store
        self.notifier = notifier

    def _metadata(self, plan: Plan) -> ExecutionMetadata:
        return ExecutionMetadata(
            plan_id=plan.id,
            plan_title=plan.display_title,
            plan_file_path=str(plan.path or ""),
        )

    async def update_docs(self, plan: Plan) -> None:
        log.info("update_docs_start", plan_id=plan.id)
        await self.executor.execute(build_update_docs_prompt(plan), self._metadata(plan))

    async def final_review(self, plan: Plan) -> int:
        log.info("final_review_start", plan_id=plan.id)
        before = len(plan.tasks)
        await self.executor.execute(build_final_review_prompt(plan), self._metadata(plan))
        if plan.path is None:
            return 0
        reviewed = self.store.read_plan_file(plan.path)
        appended = max(len(reviewed.tasks) - before, 0)
        log.info("final_review_done", plan_id=plan.id, appended=appended)
        return appended

    async def apply_lessons(self, plan: Plan) -> None:
        log.info("apply_lessons_start", plan_id=plan.id)
        await self.executor.execute(build_lessons_prompt(plan), self._metadata(plan))

    async def notify(self, result: RunResult) -> None:
        if self.notifier is not None:
            await self.notifier.notify(result)

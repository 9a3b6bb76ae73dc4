"""State shared by the serial, batch and stub strategies within one run."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable

import click

from planpilot.actions import run_post_apply_commands
from planpilot.agent.hooks import RunHooks
from planpilot.agent.options import RunOptions
from planpilot.agent.outcome import IterationOutcome
from planpilot.config import PostApplyCommand, UpdateDocsMode
from planpilot.errors import PlanPilotError
from planpilot.executors.base import ExecutionMetadata, Executor, FailureDetails
from planpilot.plans.models import Plan, utc_now
from planpilot.plans.parents import check_and_mark_parent_done, mark_parent_in_progress
from planpilot.plans.store import PlanStore
from planpilot.summary.collector import SummaryCollector
from planpilot.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class ExecutionAttempt:
    ok: bool
    reason: str = ""
    output: str = ""


@dataclass
class RunContext:
    store: PlanStore
    plan_path: Path
    executor: Executor
    summary: SummaryCollector
    hooks: RunHooks
    options: RunOptions
    base_dir: Path
    post_apply_commands: list[PostApplyCommand]
    update_docs_mode: UpdateDocsMode = "never"
    final_review: bool = True
    apply_lessons: bool = False
    initial_completed_tasks: int = 0

    def read_plan(self) -> Plan:
        return self.store.read_plan_file(self.plan_path)

    def save_plan(self, plan: Plan) -> None:
        plan.touch()
        self.store.write_plan_file(self.plan_path, plan)

    # --- Status transitions ---

    def mark_in_progress(self, plan: Plan) -> None:
        if plan.status != "pending" or self.options.dry_run:
            return
        plan.status = "in_progress"
        self.save_plan(plan)
        log.info("plan_marked_in_progress", plan_id=plan.id)
        if plan.parent is not None:
            try:
                mark_parent_in_progress(plan.parent, self.store)
            except PlanPilotError as e:
                log.warning("parent_in_progress_failed", parent_id=plan.parent, error=str(e))

    def mark_done(self, plan: Plan) -> None:
        plan.status = "done"
        self.save_plan(plan)
        log.info("plan_marked_done", plan_id=plan.id)

    # --- Executor ---

    async def execute(
        self, plan: Plan, content: str, title: str, iteration: int, batch: bool = False,
    ) -> ExecutionAttempt:
        """Call the executor once and record the result in the summary.

        Only an explicit ``success=False`` or a raised exception counts as
        failure. Either way the failure details end up in the log and the
        summary record.
        """
        metadata = ExecutionMetadata(
            plan_id=plan.id,
            plan_title=plan.display_title,
            plan_file_path=str(self.plan_path),
            execution_mode=self.options.execution_mode,
            capture_output=self.summary.enabled,
            batch_mode=batch,
        )

        log.info("executor_call", executor=self.executor.name, title=title, iteration=iteration)
        started = utc_now()
        try:
            result = await self.executor.execute(content, metadata)
        except Exception as e:
            ended = utc_now()
            message = str(e) or type(e).__name__
            details = FailureDetails(source_agent=self.executor.name, problems=message)
            report_failure(title, details)
            self.summary.add_step_result(
                title=title,
                executor=self.executor.name,
                success=False,
                error_message=message,
                started_at=started,
                ended_at=ended,
                iteration=iteration,
                failure_details=details,
            )
            return ExecutionAttempt(ok=False, reason=message)

        ended = utc_now()
        output = result.content if result is not None else ""
        if result is not None and result.failed:
            details = result.failure_details
            reason = (details.problems if details else None) or "Executor reported failure."
            report_failure(title, details)
            self.summary.add_step_result(
                title=title,
                executor=self.executor.name,
                success=False,
                output=output,
                error_message=reason,
                started_at=started,
                ended_at=ended,
                iteration=iteration,
                failure_details=details,
            )
            return ExecutionAttempt(ok=False, reason=reason, output=output)

        self.summary.add_step_result(
            title=title,
            executor=self.executor.name,
            success=True,
            output=output,
            started_at=started,
            ended_at=ended,
            iteration=iteration,
        )
        return ExecutionAttempt(ok=True, output=output)

    def show_dry_run(self, title: str, prompt: str) -> IterationOutcome:
        log.info("dry_run_prompt", title=title, chars=len(prompt))
        click.echo(f"--- {title} (dry run) ---\n{prompt}")
        return IterationOutcome.complete("Dry run: nothing executed.")

    # --- Post-apply and hooks ---

    async def post_apply(self) -> IterationOutcome | None:
        """Run post-apply commands; a failed outcome if a required one fails."""
        failed = await run_post_apply_commands(self.post_apply_commands, self.base_dir)
        if failed is None:
            return None
        reason = f"Post-apply command failed: {failed.title}"
        self.summary.add_error(reason)
        return IterationOutcome.failed(reason)

    async def after_iteration(self, plan: Plan) -> IterationOutcome | None:
        if self.update_docs_mode != "after-iteration":
            return None
        await best_effort("update_docs", self.hooks.update_docs(plan))
        return await self.post_apply()

    def should_run_final_review(self, iteration: int) -> bool:
        if not self.final_review:
            return False
        # A plan done in one go from scratch has nothing left to review.
        return not (self.initial_completed_tasks == 0 and iteration == 1)

    async def complete_plan(self, plan: Plan, iteration: int) -> IterationOutcome:
        """Completion hooks for a plan whose tasks are all done.

        A final review that appends tasks reopens the plan and the loop
        continues. Otherwise the plan's parent is checked for completion.
        """
        if self.update_docs_mode == "after-completion":
            await best_effort("update_docs", self.hooks.update_docs(plan))

        if self.should_run_final_review(iteration):
            appended = await best_effort("final_review", self.hooks.final_review(plan), default=0)
            if appended:
                reopened = self.read_plan()
                reopened.status = "in_progress"
                self.save_plan(reopened)
                log.info("final_review_reopened_plan", plan_id=plan.id, appended=appended)
                return IterationOutcome.proceed()

        if self.apply_lessons:
            await best_effort("apply_lessons", self.hooks.apply_lessons(plan))

        if plan.parent is not None:
            try:
                check_and_mark_parent_done(plan.parent, self.store)
            except PlanPilotError as e:
                log.warning("parent_done_check_failed", parent_id=plan.parent, error=str(e))

        return IterationOutcome.complete()


def report_failure(title: str, details: FailureDetails | None) -> None:
    if details is None:
        log.error("execution_failed", title=title)
        return
    log.error(
        "execution_failed",
        title=title,
        source_agent=details.source_agent,
        problems=details.problems,
        requirements=details.requirements,
        solutions=details.solutions,
    )


async def best_effort(name: str, awaitable: Awaitable[Any], default: Any = None) -> Any:
    try:
        return await awaitable
    except Exception:
        log.warning("hook_failed", hook=name, exc_info=True)
        return default

"""Drive one plan to completion."""

from __future__ import annotations

from pathlib import Path

from planpilot.agent.batch import run_batch_iteration
from planpilot.agent.context import RunContext, best_effort
from planpilot.agent.hooks import CommandNotifier, ExecutorHooks, RunHooks
from planpilot.agent.options import RunOptions, RunResult
from planpilot.agent.outcome import IterationOutcome
from planpilot.agent.serial import run_serial_iteration
from planpilot.agent.stub import StubPreparer, execute_stub_plan
from planpilot.config import Settings
from planpilot.executors import ExecutorFactory, build_executor
from planpilot.executors.base import Executor
from planpilot.plans.find_next import count_completed_tasks
from planpilot.plans.models import Plan
from planpilot.plans.store import PlanStore
from planpilot.summary.collector import create_summary_collector
from planpilot.summary.display import write_or_display_summary
from planpilot.utils.logging import get_logger
from planpilot.workspace.lock import WorkspaceLock

log = get_logger(__name__)


class ExecutionOrchestrator:
    """Runs the agent loop for one plan at a time.

    The executor registry is passed in rather than looked up globally, so
    tests can hand over fakes. ``hooks`` defaults to executor-backed hooks
    built per run.
    """

    def __init__(
        self,
        settings: Settings,
        store: PlanStore,
        executors: dict[str, ExecutorFactory],
        *,
        base_dir: Path,
        hooks: RunHooks | None = None,
        stub_preparer: StubPreparer = execute_stub_plan,
    ) -> None:
        self.settings = settings
        self.store = store
        self.executors = dict(executors)
        self.base_dir = Path(base_dir)
        self.hooks = hooks
        self.stub_preparer = stub_preparer

    def _build_hooks(self, executor: Executor, base_dir: Path) -> RunHooks:
        if self.hooks is not None:
            return self.hooks
        notifier = None
        if self.settings.notifications.command:
            notifier = CommandNotifier(self.settings.notifications.command, cwd=base_dir)
        return ExecutorHooks(executor, self.store, notifier)

    async def run(self, plan_ref: str | Path | int, options: RunOptions | None = None) -> RunResult:
        """Run a plan given by path or numeric id.

        Raises ``PlanPilotError`` for conditions that stop the run before
        it starts (invalid plan, unknown executor, locked workspace).
        Failures during the run are returned as an unsuccessful result.
        """
        options = options or RunOptions()
        plan_path = self.store.resolve_plan_file(str(plan_ref))
        plan = self.store.read_plan_file(plan_path)

        base_dir = Path(options.workspace) if options.workspace else self.base_dir
        executor_name = options.executor or self.settings.default_executor
        executor = build_executor(executor_name, self.executors, self.settings, base_dir)

        if options.workspace is None:
            return await self._run_plan(plan, plan_path, executor, options, base_dir)

        lock = WorkspaceLock(options.workspace, self.settings.lock.stale_after_hours)
        with lock.held(owner=f"planpilot run {plan.id if plan.id is not None else plan_path}"):
            return await self._run_plan(plan, plan_path, executor, options, base_dir)

    async def _run_plan(
        self,
        plan: Plan,
        plan_path: Path,
        executor: Executor,
        options: RunOptions,
        base_dir: Path,
    ) -> RunResult:
        summary_enabled = (
            options.summary_enabled if options.summary_enabled is not None
            else self.settings.summary_enabled
        )
        mode = "serial" if options.serial_tasks else "batch"
        summary = create_summary_collector(summary_enabled, plan.id, plan.display_title, mode)
        await summary.record_execution_start(base_dir)

        hooks = self._build_hooks(executor, base_dir)
        ctx = RunContext(
            store=self.store,
            plan_path=plan_path,
            executor=executor,
            summary=summary,
            hooks=hooks,
            options=options,
            base_dir=base_dir,
            post_apply_commands=list(self.settings.post_apply_commands),
            update_docs_mode=options.update_docs_mode or self.settings.update_docs.mode,
            final_review=self.settings.final_review if options.final_review is None else options.final_review,
            apply_lessons=self.settings.update_docs.apply_lessons,
            initial_completed_tasks=count_completed_tasks(plan),
        )
        strategy = run_serial_iteration if options.serial_tasks else run_batch_iteration

        log.info(
            "run_start",
            plan_id=plan.id,
            mode=mode,
            executor=executor.name,
            max_steps=options.max_steps,
            summary=summary_enabled,
        )

        iterations = 0
        outcome = IterationOutcome.proceed()
        try:
            if plan.is_stub:
                iterations = 1
                outcome = await self.stub_preparer(ctx)
            while outcome.is_continue:
                if options.max_steps is not None and iterations >= options.max_steps:
                    log.info("max_steps_reached", plan_id=plan.id, max_steps=options.max_steps)
                    outcome = IterationOutcome.complete(f"Reached maximum steps ({options.max_steps}).")
                    break
                iterations += 1
                outcome = await strategy(ctx, iterations)
        except Exception as e:
            summary.add_error(e)
            log.error("run_aborted", plan_id=plan.id, error=str(e))
            raise
        finally:
            summary.record_execution_end()
            await summary.track_file_changes(base_dir)
            execution_summary = summary.get_execution_summary()
            if execution_summary is not None:
                write_or_display_summary(execution_summary, options.summary_file)

        result = RunResult(
            success=not outcome.is_failed,
            reason=outcome.reason,
            plan_id=plan.id,
            iterations=iterations,
            summary=execution_summary,
        )
        if result.success:
            log.info("run_complete", plan_id=plan.id, iterations=iterations, reason=outcome.reason)
        else:
            log.error("run_failed", plan_id=plan.id, iterations=iterations, reason=outcome.reason)

        await best_effort("notify", hooks.notify(result))
        return result

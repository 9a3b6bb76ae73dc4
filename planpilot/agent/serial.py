"""Serial strategy: one task or step per iteration."""

from __future__ import annotations

from planpilot.agent.context import RunContext
from planpilot.agent.outcome import IterationOutcome
from planpilot.plans.find_next import ActionableItem, ActionableStep, find_next_actionable_item
from planpilot.plans.models import Plan
from planpilot.prompts import build_step_prompt, describe_item
from planpilot.utils.logging import get_logger

log = get_logger(__name__)


def _mark_item_done(plan: Plan, item: ActionableItem) -> bool:
    """Set done on the item in a freshly read plan. Never clears a flag."""
    if item.task_index >= len(plan.tasks):
        return False
    task = plan.tasks[item.task_index]
    if isinstance(item, ActionableStep):
        if item.step_index >= len(task.steps):
            return False
        task.steps[item.step_index].done = True
        if all(step.done for step in task.steps):
            task.done = True
    else:
        task.done = True
    return True


async def run_serial_iteration(ctx: RunContext, iteration: int) -> IterationOutcome:
    plan = ctx.read_plan()
    ctx.mark_in_progress(plan)

    item = find_next_actionable_item(plan)
    if item is None:
        if plan.is_complete and plan.status != "done":
            ctx.mark_done(plan)
        log.info("serial_no_actionable_item", plan_id=plan.id)
        return IterationOutcome.complete()

    title = describe_item(item)
    prompt = build_step_prompt(plan, item, ctx.options.execution_mode)
    if ctx.options.dry_run:
        return ctx.show_dry_run(title, prompt)

    attempt = await ctx.execute(plan, prompt, title, iteration)
    if not attempt.ok:
        return IterationOutcome.failed(attempt.reason)

    failed = await ctx.post_apply()
    if failed is not None:
        return failed

    failed = await ctx.after_iteration(plan)
    if failed is not None:
        return failed

    # Re-read: the executor may have edited the plan file itself.
    plan = ctx.read_plan()
    if not _mark_item_done(plan, item):
        log.warning("serial_item_missing_after_execute", plan_id=plan.id, title=title)
    complete = plan.is_complete
    if complete:
        plan.status = "done"
    ctx.save_plan(plan)
    log.info("serial_item_done", plan_id=plan.id, title=title, plan_complete=complete)

    if complete:
        return await ctx.complete_plan(plan, iteration)
    return IterationOutcome.proceed()

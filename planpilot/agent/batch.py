"""Batch strategy: all incomplete tasks offered to the executor each iteration.

The executor decides which tasks to attempt and marks them done in the plan
file itself. The loop only checks that every iteration completes at least
one task that was incomplete before it.
"""

from __future__ import annotations

from planpilot.agent.context import RunContext
from planpilot.agent.outcome import IterationOutcome
from planpilot.plans.find_next import get_all_incomplete_tasks
from planpilot.prompts import build_batch_prompt
from planpilot.utils.logging import get_logger

log = get_logger(__name__)


async def run_batch_iteration(ctx: RunContext, iteration: int) -> IterationOutcome:
    plan = ctx.read_plan()
    ctx.mark_in_progress(plan)

    incomplete = get_all_incomplete_tasks(plan)
    if not incomplete:
        if plan.status != "done":
            ctx.mark_done(plan)
        return await ctx.complete_plan(plan, iteration)

    title = f"Batch Iteration {iteration}"
    prompt = build_batch_prompt(plan, incomplete, ctx.options.execution_mode)
    if ctx.options.dry_run:
        return ctx.show_dry_run(title, prompt)

    log.info("batch_iteration_start", plan_id=plan.id, iteration=iteration, incomplete=len(incomplete))
    attempt = await ctx.execute(plan, prompt, title, iteration, batch=True)
    ctx.summary.set_batch_iterations(iteration)
    if not attempt.ok:
        return IterationOutcome.failed(attempt.reason)

    failed = await ctx.post_apply()
    if failed is not None:
        return failed

    plan = ctx.read_plan()
    before = {pending.task_index for pending in incomplete}
    remaining = {pending.task_index for pending in get_all_incomplete_tasks(plan)}
    completed_now = before - remaining
    log.info(
        "batch_iteration_done",
        plan_id=plan.id,
        iteration=iteration,
        completed=len(completed_now),
        remaining=len(remaining),
    )

    if not remaining and plan.tasks:
        ctx.mark_done(plan)
        return await ctx.complete_plan(plan, iteration)

    if not completed_now:
        reason = f"Batch iteration {iteration} made no progress: no task was completed."
        ctx.summary.add_error(reason)
        return IterationOutcome.failed(reason)

    failed = await ctx.after_iteration(plan)
    if failed is not None:
        return failed
    return IterationOutcome.proceed()

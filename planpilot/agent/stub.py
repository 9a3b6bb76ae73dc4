"""Plans with no tasks are executed from their goal and details."""

from __future__ import annotations

from typing import Awaitable, Callable

from planpilot.agent.context import RunContext
from planpilot.agent.outcome import IterationOutcome
from planpilot.prompts import build_stub_prompt
from planpilot.utils.logging import get_logger

log = get_logger(__name__)

StubPreparer = Callable[[RunContext], Awaitable[IterationOutcome]]


async def execute_stub_plan(ctx: RunContext) -> IterationOutcome:
    plan = ctx.read_plan()
    title = f"Stub plan: {plan.display_title}"
    prompt = build_stub_prompt(plan, ctx.options.execution_mode)
    if ctx.options.dry_run:
        return ctx.show_dry_run(title, prompt)

    ctx.mark_in_progress(plan)
    log.info("stub_plan_execute", plan_id=plan.id)
    attempt = await ctx.execute(plan, prompt, title, iteration=1)
    if not attempt.ok:
        return IterationOutcome.failed(attempt.reason)

    failed = await ctx.post_apply()
    if failed is not None:
        return failed

    plan = ctx.read_plan()
    if plan.tasks and not plan.is_complete:
        # The executor broke the plan into tasks; the regular loop takes over.
        log.info("stub_plan_expanded", plan_id=plan.id, tasks=len(plan.tasks))
        return IterationOutcome.proceed()

    ctx.mark_done(plan)
    return await ctx.complete_plan(plan, iteration=1)

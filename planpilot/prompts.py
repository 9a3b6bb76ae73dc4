"""Prompt construction for executor calls."""

from __future__ import annotations

from planpilot.executors.base import ExecutionMode
from planpilot.plans.find_next import ActionableStep, ActionableTask, PendingTask
from planpilot.plans.models import Plan

_PLAN_CONTEXT = """\
# Plan: {title}

Plan file: {path}

## Goal
{goal}
"""

_STEP_PROMPT = """\
## Current Task: {task_title}
{task_description}

## Current Step ({step_number} of {step_count})
{prompt}

Complete only this step. Do not work ahead on later steps or tasks.
"""

_LAST_STEP_NOTE = "This is the last open step of the task. Leave the task in a finished state.\n"

_TASK_PROMPT = """\
## Current Task: {task_title}
{task_description}

Complete this task. Do not work ahead on other tasks in the plan.
"""

_BATCH_PROMPT = """\
## Incomplete Tasks

{task_list}

Choose a coherent subset of these tasks that can sensibly be done together \
and complete them. When a task is finished, mark it done in the plan file \
({path}) by setting `done: true` on the task. Leave tasks you did not finish \
untouched. Do not edit any other part of the plan file.
"""

_STUB_PROMPT = """\
This plan has no task breakdown. Implement the goal directly.
"""

_MODE_GUIDANCE: dict[ExecutionMode, str] = {
    "normal": "",
    "simple": "Keep the change minimal. Skip extended review and planning.",
    "tdd": "Work test-first: write or update a failing test, then make it pass.",
}


def _plan_context(plan: Plan) -> str:
    text = _PLAN_CONTEXT.format(
        title=plan.display_title,
        path=plan.path or "(unsaved)",
        goal=plan.goal or "(no goal given)",
    )
    if plan.details:
        text += f"\n## Details\n{plan.details}\n"
    return text


def _with_mode(parts: list[str], mode: ExecutionMode) -> str:
    guidance = _MODE_GUIDANCE.get(mode, "")
    if guidance:
        parts.append(guidance)
    return "\n".join(parts)


def build_step_prompt(plan: Plan, item: ActionableStep | ActionableTask, mode: ExecutionMode = "normal") -> str:
    parts = [_plan_context(plan)]
    if isinstance(item, ActionableStep):
        parts.append(
            _STEP_PROMPT.format(
                task_title=item.task.title,
                task_description=item.task.description,
                step_number=item.step_index + 1,
                step_count=len(item.task.steps),
                prompt=item.step.prompt,
            )
        )
        if item.is_last_step:
            parts.append(_LAST_STEP_NOTE)
    else:
        parts.append(
            _TASK_PROMPT.format(
                task_title=item.task.title,
                task_description=item.task.description,
            )
        )
    return _with_mode(parts, mode)


def _format_task(pending: PendingTask) -> str:
    task = pending.task
    lines = [f"{pending.task_index + 1}. **{task.title}**"]
    if task.description:
        lines.append(f"   {task.description}")
    for step in task.steps:
        mark = "x" if step.done else " "
        lines.append(f"   - [{mark}] {step.prompt}")
    return "\n".join(lines)


def build_batch_prompt(plan: Plan, tasks: list[PendingTask], mode: ExecutionMode = "normal") -> str:
    task_list = "\n".join(_format_task(t) for t in tasks)
    parts = [
        _plan_context(plan),
        _BATCH_PROMPT.format(task_list=task_list, path=plan.path or "(unsaved)"),
    ]
    return _with_mode(parts, mode)


def build_stub_prompt(plan: Plan, mode: ExecutionMode = "normal") -> str:
    return _with_mode([_plan_context(plan), _STUB_PROMPT], mode)


def describe_item(item: ActionableStep | ActionableTask) -> str:
    """Short title used for log lines and summary records."""
    if isinstance(item, ActionableStep):
        return f"{item.task.title} (step {item.step_index + 1}/{len(item.task.steps)})"
    return item.task.title


_UPDATE_DOCS_PROMPT = """\
The work described above has just been implemented. Update the project's \
documentation (README, docs/, module docstrings) so it matches the code. \
Do not change behaviour and do not edit the plan file.
"""

_FINAL_REVIEW_PROMPT = """\
All tasks in this plan are marked done. Review the changes made for it \
against the goal. If anything is missing or wrong, append new tasks to the \
`tasks` list in the plan file ({path}) describing the remaining work. Do not \
modify or remove existing tasks. If nothing is missing, leave the plan file \
unchanged.
"""

_LESSONS_PROMPT = """\
This plan is finished. Record any lessons learned while implementing it \
(surprising behaviour, conventions, pitfalls) in the project's documentation \
where future contributors will find them. Keep it brief.
"""


def build_update_docs_prompt(plan: Plan) -> str:
    return "\n".join([_plan_context(plan), _UPDATE_DOCS_PROMPT])


def build_final_review_prompt(plan: Plan) -> str:
    return "\n".join([_plan_context(plan), _FINAL_REVIEW_PROMPT.format(path=plan.path or "(unsaved)")])


def build_lessons_prompt(plan: Plan) -> str:
    return "\n".join([_plan_context(plan), _LESSONS_PROMPT])

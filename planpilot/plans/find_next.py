"""Locate the next piece of work inside a single plan."""

from __future__ import annotations

from dataclasses import dataclass

from planpilot.plans.models import Plan, Step, Task


@dataclass(frozen=True)
class ActionableTask:
    """A task without steps; the whole task is one unit of work."""

    task_index: int
    task: Task


@dataclass(frozen=True)
class ActionableStep:
    task_index: int
    step_index: int
    task: Task
    step: Step

    @property
    def is_last_step(self) -> bool:
        return all(
            s.done for i, s in enumerate(self.task.steps) if i != self.step_index
        )


ActionableItem = ActionableTask | ActionableStep


@dataclass(frozen=True)
class PendingTask:
    task_index: int
    task: Task


def find_next_actionable_item(plan: Plan) -> ActionableItem | None:
    """First undone item in task-then-step document order."""
    for task_index, task in enumerate(plan.tasks):
        if task.is_done:
            continue
        if not task.steps:
            return ActionableTask(task_index=task_index, task=task)
        for step_index, step in enumerate(task.steps):
            if not step.done:
                return ActionableStep(
                    task_index=task_index, step_index=step_index, task=task, step=step,
                )
    return None


def get_all_incomplete_tasks(plan: Plan) -> list[PendingTask]:
    return [
        PendingTask(task_index=i, task=task)
        for i, task in enumerate(plan.tasks)
        if not task.is_done
    ]


def count_completed_tasks(plan: Plan) -> int:
    return sum(1 for task in plan.tasks if task.is_done)

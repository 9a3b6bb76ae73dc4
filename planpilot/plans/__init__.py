"""Plan models, persistence and dependency resolution."""

from planpilot.plans.find_next import (
    ActionableItem,
    ActionableStep,
    ActionableTask,
    PendingTask,
    find_next_actionable_item,
    get_all_incomplete_tasks,
)
from planpilot.plans.models import Plan, Step, Task
from planpilot.plans.readiness import (
    DependencySearchResult,
    find_next_plan,
    find_next_ready_dependency,
    find_ready_plans,
    is_ready,
)
from planpilot.plans.store import PlanCollection, PlanStore

__all__ = [
    "ActionableItem",
    "ActionableStep",
    "ActionableTask",
    "DependencySearchResult",
    "PendingTask",
    "Plan",
    "PlanCollection",
    "PlanStore",
    "Step",
    "Task",
    "find_next_actionable_item",
    "find_next_plan",
    "find_next_ready_dependency",
    "find_ready_plans",
    "get_all_incomplete_tasks",
    "is_ready",
]

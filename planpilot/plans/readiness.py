"""Dependency resolution across a plan collection.

Everything here is a pure function over an in-memory ``{id: Plan}`` mapping.
Graph-shape problems (dependencies on unknown ids, cycles, orphaned parents)
never raise; they degrade to "nothing ready", so these helpers are safe to
call from listing and reporting code as well as from the agent.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Mapping

from planpilot.plans.models import Plan

NO_READY_DEPENDENCIES = "No ready or pending dependencies found"


@dataclass(frozen=True)
class DependencySearchResult:
    plan: Plan | None
    message: str


def is_ready(plan: Plan, all_plans: Mapping[int, Plan]) -> bool:
    """Whether ``plan`` can be worked on right now.

    ``maybe`` plans are never ready. In-progress plans are always ready.
    Pending plans are ready once every dependency that resolves to a known
    plan is done; ids with no plan behind them are skipped.
    """
    if plan.priority == "maybe":
        return False
    if plan.status == "in_progress":
        return True
    if plan.status != "pending":
        return False
    for dep_id in plan.dependencies:
        dep = all_plans.get(dep_id)
        if dep is not None and dep.status != "done":
            return False
    return True


def _sort_key(plan: Plan, status_first: bool) -> tuple[int, int, int]:
    status_rank = 0 if (status_first and plan.status == "in_progress") else 1
    # sorted() is ascending: negate priority so urgent comes first
    return (status_rank, -plan.priority_rank, plan.id if plan.id is not None else 0)


def find_ready_plans(
    all_plans: Mapping[int, Plan],
    *,
    include_pending: bool = True,
    include_in_progress: bool = False,
) -> list[Plan]:
    """All ready plans matching the status filter, best candidate first."""
    candidates = [
        plan for plan in all_plans.values()
        if (include_pending and plan.status == "pending")
        or (include_in_progress and plan.status == "in_progress")
    ]
    ready = [p for p in candidates if p.priority != "maybe" and is_ready(p, all_plans)]
    status_first = include_pending and include_in_progress
    return sorted(ready, key=lambda p: _sort_key(p, status_first))


def find_next_plan(
    all_plans: Mapping[int, Plan],
    *,
    include_pending: bool = True,
    include_in_progress: bool = False,
) -> Plan | None:
    ready = find_ready_plans(
        all_plans,
        include_pending=include_pending,
        include_in_progress=include_in_progress,
    )
    return ready[0] if ready else None


def _neighbours(plan_id: int, plan: Plan, all_plans: Mapping[int, Plan]) -> list[int]:
    children = [p.id for p in all_plans.values() if p.parent == plan_id and p.id is not None]
    return [*plan.dependencies, *children]


def find_next_ready_dependency(
    parent_id: int, all_plans: Mapping[int, Plan]
) -> DependencySearchResult:
    """Breadth-first search below ``parent_id`` for the next plan to work on.

    The search walks explicit dependencies and child plans (``parent`` field).
    An in-progress plan wins immediately, even if its own dependencies are
    not finished. A pending plan with tasks wins once it is ready. Anything
    else is expanded further. Each id is visited at most once, so cycles
    terminate.
    """
    root = all_plans.get(parent_id)
    if root is None:
        return DependencySearchResult(None, f"Plan not found: {parent_id}")

    visited: set[int] = {parent_id}
    queue: deque[int] = deque()

    def enqueue(ids: list[int]) -> None:
        for dep_id in ids:
            if dep_id in visited or dep_id not in all_plans:
                continue
            visited.add(dep_id)
            queue.append(dep_id)

    enqueue(_neighbours(parent_id, root, all_plans))

    while queue:
        current_id = queue.popleft()
        plan = all_plans[current_id]

        if plan.status == "in_progress":
            return DependencySearchResult(
                plan, f"Found in-progress plan: {plan.display_title} (ID: {current_id})",
            )

        if plan.status == "pending" and plan.tasks and is_ready(plan, all_plans):
            return DependencySearchResult(
                plan, f"Found ready plan: {plan.display_title} (ID: {current_id})",
            )

        enqueue(_neighbours(current_id, plan, all_plans))

    return DependencySearchResult(None, NO_READY_DEPENDENCIES)

"""Tests for plan readiness and dependency search."""

import pytest

from planpilot.plans.models import Plan, Task
from planpilot.plans.readiness import (
    NO_READY_DEPENDENCIES,
    find_next_plan,
    find_next_ready_dependency,
    find_ready_plans,
    is_ready,
)


def make_plan(plan_id, **fields):
    fields.setdefault("tasks", [Task(title="t")])
    return Plan(id=plan_id, title=f"Plan {plan_id}", **fields)


def index(*plans):
    return {p.id: p for p in plans}


class TestIsReady:
    def test_pending_without_dependencies(self):
        plan = make_plan(1)
        assert is_ready(plan, index(plan)) is True

    def test_in_progress_always_ready(self):
        dep = make_plan(2)
        plan = make_plan(1, status="in_progress", dependencies=[2])
        assert is_ready(plan, index(plan, dep)) is True

    def test_pending_with_unfinished_dependency(self):
        dep = make_plan(2, status="in_progress")
        plan = make_plan(1, dependencies=[2])
        assert is_ready(plan, index(plan, dep)) is False

    def test_pending_with_done_dependency(self):
        dep = make_plan(2, status="done")
        plan = make_plan(1, dependencies=[2])
        assert is_ready(plan, index(plan, dep)) is True

    def test_missing_dependency_is_skipped(self):
        plan = make_plan(1, dependencies=[99])
        assert is_ready(plan, index(plan)) is True

    @pytest.mark.parametrize("status", ["pending", "in_progress"])
    def test_maybe_priority_never_ready(self, status):
        plan = make_plan(1, status=status, priority="maybe")
        assert is_ready(plan, index(plan)) is False

    @pytest.mark.parametrize("status", ["done", "cancelled"])
    def test_finished_plans_not_ready(self, status):
        plan = make_plan(1, status=status)
        assert is_ready(plan, index(plan)) is False


class TestFindNextPlan:
    def test_pending_plan_with_done_dependency(self):
        plans = index(
            make_plan(1, dependencies=[2]),
            make_plan(2, status="done"),
        )
        result = find_next_plan(plans, include_pending=True)
        assert result is not None
        assert result.id == 1

    def test_priority_then_id(self):
        plans = index(
            make_plan(1, priority="low"),
            make_plan(2, priority="urgent"),
            make_plan(3, priority="urgent"),
            make_plan(4),
        )
        ordered = [p.id for p in find_ready_plans(plans)]
        assert ordered == [2, 3, 1, 4]

    def test_in_progress_first_only_when_both_included(self):
        plans = index(
            make_plan(1, priority="urgent"),
            make_plan(2, status="in_progress", priority="low"),
        )
        both = find_next_plan(plans, include_pending=True, include_in_progress=True)
        assert both.id == 2
        pending_only = find_next_plan(plans, include_pending=True)
        assert pending_only.id == 1

    def test_in_progress_only(self):
        plans = index(make_plan(1), make_plan(2, status="in_progress"))
        result = find_next_plan(plans, include_pending=False, include_in_progress=True)
        assert result.id == 2

    def test_maybe_excluded(self):
        plans = index(make_plan(1, priority="maybe"))
        assert find_next_plan(plans) is None

    def test_nothing_ready(self):
        plans = index(make_plan(1, dependencies=[2]), make_plan(2, dependencies=[1]))
        assert find_next_plan(plans) is None


class TestFindNextReadyDependency:
    def test_unknown_parent(self):
        result = find_next_ready_dependency(42, {})
        assert result.plan is None
        assert result.message == "Plan not found: 42"

    def test_ready_dependency(self):
        plans = index(make_plan(1, dependencies=[2]), make_plan(2))
        result = find_next_ready_dependency(1, plans)
        assert result.plan.id == 2
        assert result.message.startswith("Found ready plan")

    def test_child_plans_are_searched(self):
        plans = index(make_plan(1, epic=True, tasks=[]), make_plan(5, parent=1))
        result = find_next_ready_dependency(1, plans)
        assert result.plan.id == 5

    def test_in_progress_short_circuits(self):
        plans = index(
            make_plan(1, dependencies=[2, 3]),
            make_plan(2, status="in_progress", dependencies=[4]),
            make_plan(3),
            make_plan(4),
        )
        result = find_next_ready_dependency(1, plans)
        assert result.plan.id == 2
        assert result.message == "Found in-progress plan: Plan 2 (ID: 2)"

    def test_descends_past_blocked_dependency(self):
        plans = index(
            make_plan(1, dependencies=[2]),
            make_plan(2, dependencies=[3]),
            make_plan(3),
        )
        result = find_next_ready_dependency(1, plans)
        assert result.plan.id == 3

    def test_pending_stub_is_expanded_not_returned(self):
        plans = index(
            make_plan(1, dependencies=[2]),
            make_plan(2, tasks=[], dependencies=[3]),
            make_plan(3),
        )
        result = find_next_ready_dependency(1, plans)
        assert result.plan.id == 3

    def test_dependency_cycle_below_parent(self):
        plans = index(
            make_plan(1, dependencies=[2]),
            make_plan(2, dependencies=[3]),
            make_plan(3, dependencies=[2]),
        )
        result = find_next_ready_dependency(1, plans)
        assert result.plan is None
        assert result.message == NO_READY_DEPENDENCIES

    @pytest.mark.parametrize("k", [2, 3, 5])
    def test_k_cycle_terminates(self, k):
        ids = list(range(1, k + 1))
        plans = index(*(
            make_plan(i, dependencies=[ids[i % k]]) for i in ids
        ))
        result = find_next_ready_dependency(1, plans)
        assert result.plan is None
        assert result.message == NO_READY_DEPENDENCIES

    def test_missing_references_skipped(self):
        plans = index(make_plan(1, dependencies=[7, 8]))
        result = find_next_ready_dependency(1, plans)
        assert result.plan is None
        assert result.message == NO_READY_DEPENDENCIES

    def test_done_dependencies_yield_nothing(self):
        plans = index(make_plan(1, dependencies=[2]), make_plan(2, status="done"))
        result = find_next_ready_dependency(1, plans)
        assert result.plan is None

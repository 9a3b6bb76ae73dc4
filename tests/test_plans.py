"""Tests for plan models, actionable-item helpers and the plan store."""

import pytest
import yaml

from planpilot.errors import DuplicatePlanIdError, PlanNotFoundError, PlanValidationError
from planpilot.plans.find_next import (
    ActionableStep,
    ActionableTask,
    count_completed_tasks,
    find_next_actionable_item,
    get_all_incomplete_tasks,
)
from planpilot.plans.models import Plan, Step, Task
from planpilot.plans.parents import check_and_mark_parent_done, mark_parent_in_progress


class TestPlanModels:
    def test_defaults(self):
        plan = Plan(id=1)
        assert plan.status == "pending"
        assert plan.priority is None
        assert plan.dependencies == []
        assert plan.is_stub is True

    def test_task_done_by_flag(self):
        assert Task(title="t", done=True).is_done is True

    def test_task_done_by_steps(self):
        task = Task(title="t", steps=[Step(prompt="a", done=True), Step(prompt="b", done=True)])
        assert task.is_done is True

    def test_task_with_open_step_not_done(self):
        task = Task(title="t", steps=[Step(prompt="a", done=True), Step(prompt="b")])
        assert task.is_done is False

    def test_task_without_steps_not_done(self):
        assert Task(title="t").is_done is False

    def test_zero_task_plan_never_complete(self):
        assert Plan(id=1).is_complete is False

    def test_complete_plan(self):
        plan = Plan(id=1, tasks=[Task(title="a", done=True)])
        assert plan.is_complete is True

    def test_camel_case_aliases(self):
        plan = Plan.model_validate({"id": 1, "changedFiles": ["a.py"], "baseBranch": "main"})
        assert plan.changed_files == ["a.py"]
        assert plan.base_branch == "main"

    def test_unknown_fields_pass_through(self):
        plan = Plan.model_validate({"id": 1, "docs": ["README.md"]})
        assert plan.to_document()["docs"] == ["README.md"]

    def test_document_omits_empty_fields(self):
        doc = Plan(id=1, title="x", tasks=[Task(title="t")]).to_document()
        assert "dependencies" not in doc
        assert "details" not in doc
        assert doc["tasks"] == [{"title": "t", "done": False}]


class TestFindNext:
    def test_steps_in_document_order(self):
        plan = Plan(id=1, tasks=[
            Task(title="a", done=True),
            Task(title="b", steps=[Step(prompt="1", done=True), Step(prompt="2")]),
            Task(title="c"),
        ])
        item = find_next_actionable_item(plan)
        assert isinstance(item, ActionableStep)
        assert (item.task_index, item.step_index) == (1, 1)
        assert item.is_last_step is True

    def test_stepless_task_is_actionable(self):
        plan = Plan(id=1, tasks=[Task(title="a")])
        item = find_next_actionable_item(plan)
        assert isinstance(item, ActionableTask)
        assert item.task_index == 0

    def test_nothing_left(self):
        plan = Plan(id=1, tasks=[Task(title="a", done=True)])
        assert plan.is_complete is True
        assert find_next_actionable_item(plan) is None
        assert get_all_incomplete_tasks(plan) == []

    def test_incomplete_tasks(self):
        plan = Plan(id=1, tasks=[Task(title="a", done=True), Task(title="b"), Task(title="c")])
        assert [t.task_index for t in get_all_incomplete_tasks(plan)] == [1, 2]
        assert count_completed_tasks(plan) == 1


class TestPlanStore:
    def test_read_yaml(self, store, write_plan):
        path = write_plan(1, goal="Ship it", tasks=[{"title": "a"}])
        plan = store.read_plan_file(path)
        assert plan.goal == "Ship it"
        assert plan.path == path

    def test_uuid_assigned_and_persisted(self, store, tasks_dir):
        path = tasks_dir / "3.yml"
        path.write_text(yaml.safe_dump({"id": 3, "title": "x"}))
        plan = store.read_plan_file(path)
        assert plan.uuid
        assert yaml.safe_load(path.read_text())["uuid"] == plan.uuid
        assert store.read_plan_file(path).uuid == plan.uuid

    def test_markdown_front_matter(self, store, tasks_dir):
        path = tasks_dir / "4.plan.md"
        path.write_text("---\nid: 4\nuuid: u4\ntitle: Docs\n---\n\nLonger details here.\n")
        plan = store.read_plan_file(path)
        assert plan.details == "Longer details here."
        plan.status = "in_progress"
        store.write_plan_file(path, plan)
        text = path.read_text()
        assert text.startswith("---\n")
        assert "Longer details here." in text
        assert store.read_plan_file(path).status == "in_progress"

    def test_invalid_plan_raises(self, store, tasks_dir):
        path = tasks_dir / "bad.yml"
        path.write_text("id: 1\nstatus: exploded\n")
        with pytest.raises(PlanValidationError):
            store.read_plan_file(path)

    def test_read_all_skips_invalid(self, store, write_plan, tasks_dir):
        write_plan(1)
        (tasks_dir / "bad.yml").write_text("- not a mapping\n")
        collection = store.read_all_plans()
        assert list(collection.plans) == [1]

    def test_duplicates_block_resolution(self, store, write_plan, tasks_dir):
        write_plan(1)
        (tasks_dir / "copy.yml").write_text(yaml.safe_dump({"id": 1, "uuid": "other"}))
        collection = store.read_all_plans()
        assert len(collection.duplicates[1]) == 2
        with pytest.raises(DuplicatePlanIdError):
            store.load(1)

    def test_resolve_by_id_and_path(self, store, write_plan):
        path = write_plan(7)
        assert store.resolve_plan_file("7") == path
        assert store.resolve_plan_file(path) == path.resolve()

    def test_resolve_unknown(self, store):
        with pytest.raises(PlanNotFoundError):
            store.resolve_plan_file("999")

    def test_save_round_trip_keeps_extra_fields(self, store, tasks_dir):
        path = tasks_dir / "5.yml"
        path.write_text(yaml.safe_dump({"id": 5, "uuid": "u", "rmfilter": ["src/"]}))
        plan = store.read_plan_file(path)
        plan.title = "Renamed"
        store.save(plan)
        data = yaml.safe_load(path.read_text())
        assert data["rmfilter"] == ["src/"]
        assert data["title"] == "Renamed"


class TestParentCascades:
    def test_mark_parent_chain_in_progress(self, store, write_plan):
        write_plan(1)
        write_plan(2, parent=1)
        changed = mark_parent_in_progress(2, store)
        assert changed == [2, 1]
        assert store.load(1).status == "in_progress"

    def test_parent_done_when_children_done(self, store, write_plan):
        write_plan(1, epic=True, status="in_progress")
        write_plan(2, parent=1, status="done", changedFiles=["b.py"])
        write_plan(3, parent=1, status="cancelled", changedFiles=["a.py"])
        assert check_and_mark_parent_done(1, store) == [1]
        parent = store.load(1)
        assert parent.status == "done"
        assert parent.changed_files == ["a.py", "b.py"]

    def test_parent_waits_for_open_child(self, store, write_plan):
        write_plan(1, epic=True, status="in_progress")
        write_plan(2, parent=1, status="done")
        write_plan(3, parent=1, status="pending")
        assert check_and_mark_parent_done(1, store) == []
        assert store.load(1).status == "in_progress"

    def test_non_epic_parent_needs_own_tasks_done(self, store, write_plan):
        write_plan(1, status="in_progress", tasks=[{"title": "own"}])
        write_plan(2, parent=1, status="done")
        assert check_and_mark_parent_done(1, store) == []

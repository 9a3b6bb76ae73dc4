"""Status cascades from child plans up to their parents."""

from __future__ import annotations

from planpilot.plans.store import PlanStore
from planpilot.utils.logging import get_logger

log = get_logger(__name__)

_FINISHED = ("done", "cancelled")


def mark_parent_in_progress(parent_id: int, store: PlanStore) -> list[int]:
    """Move pending ancestors to in_progress. Returns the ids that changed."""
    changed: list[int] = []
    visited: set[int] = set()
    current: int | None = parent_id

    while current is not None and current not in visited:
        visited.add(current)
        parent = store.load(current)
        if parent.status != "pending":
            break
        parent.status = "in_progress"
        parent.touch()
        store.save(parent)
        changed.append(current)
        log.info("parent_marked_in_progress", plan_id=current)
        current = parent.parent

    return changed


def check_and_mark_parent_done(parent_id: int, store: PlanStore) -> list[int]:
    """Close out ancestors whose children have all finished.

    A parent qualifies once it has at least one child, every child is done
    or cancelled, and the parent is either an epic or has finished its own
    tasks. Its ``changedFiles`` become the union of its children's.
    """
    changed: list[int] = []
    visited: set[int] = set()
    current: int | None = parent_id

    while current is not None and current not in visited:
        visited.add(current)
        store.invalidate()
        collection = store.read_all_plans()
        parent = collection.get(current)
        if parent is None or parent.status in _FINISHED:
            break

        children = collection.children_of(current)
        if not children or any(child.status not in _FINISHED for child in children):
            break
        if not parent.epic and not parent.is_complete:
            break

        files = set(parent.changed_files)
        for child in children:
            files.update(child.changed_files)
        parent.changed_files = sorted(files)
        parent.status = "done"
        parent.touch()
        store.save(parent)
        changed.append(current)
        log.info("parent_marked_done", plan_id=current, children=len(children))
        current = parent.parent

    return changed

"""Directory-backed plan persistence (YAML or Markdown with front matter)."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from uuid import uuid4

import yaml
from pydantic import ValidationError

from planpilot.errors import DuplicatePlanIdError, PlanNotFoundError, PlanValidationError
from planpilot.plans.models import Plan
from planpilot.utils.logging import get_logger

log = get_logger(__name__)

PLAN_SUFFIXES = (".yml", ".yaml", ".plan.md")
_FRONT_MATTER = "---"


@dataclass
class PlanCollection:
    plans: dict[int, Plan] = field(default_factory=dict)
    duplicates: dict[int, list[Path]] = field(default_factory=dict)

    def get(self, plan_id: int) -> Plan | None:
        return self.plans.get(plan_id)

    def children_of(self, plan_id: int) -> list[Plan]:
        return [p for p in self.plans.values() if p.parent == plan_id]


def is_plan_file(path: Path) -> bool:
    return path.is_file() and path.name.endswith(PLAN_SUFFIXES)


def _split_front_matter(text: str) -> tuple[str, str | None]:
    """Return (yaml_text, markdown_body or None)."""
    if not text.startswith(_FRONT_MATTER):
        return text, None
    lines = text.splitlines(keepends=True)
    for i in range(1, len(lines)):
        if lines[i].rstrip() == _FRONT_MATTER:
            return "".join(lines[1:i]), "".join(lines[i + 1:]).strip("\n")
    return text, None


def parse_plan_text(text: str, path: Path) -> Plan:
    yaml_text, body = _split_front_matter(text)
    try:
        data: Any = yaml.safe_load(yaml_text) or {}
    except yaml.YAMLError as e:
        raise PlanValidationError(path, f"YAML parse error: {e}") from e
    if not isinstance(data, dict):
        raise PlanValidationError(path, "top level must be a mapping")
    if body:
        data.setdefault("details", body)
    try:
        plan = Plan.model_validate(data)
    except ValidationError as e:
        raise PlanValidationError(path, str(e)) from e
    plan.attach_path(path)
    return plan


def render_plan_text(plan: Plan, path: Path) -> str:
    document = plan.to_document()
    if path.name.endswith(".plan.md"):
        details = document.pop("details", "")
        front = yaml.safe_dump(document, sort_keys=False, allow_unicode=True)
        body = f"\n{details}\n" if details else ""
        return f"{_FRONT_MATTER}\n{front}{_FRONT_MATTER}\n{body}"
    return yaml.safe_dump(document, sort_keys=False, allow_unicode=True)


def _atomic_write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class PlanStore:
    """Reads and writes plan files under one tasks directory.

    The store keeps a snapshot of the last directory scan for id lookups;
    ``invalidate()`` drops it. Individual plan reads always hit the disk.
    """

    def __init__(self, tasks_dir: Path) -> None:
        self._tasks_dir = Path(tasks_dir)
        self._snapshot: PlanCollection | None = None

    @property
    def tasks_dir(self) -> Path:
        return self._tasks_dir

    def invalidate(self) -> None:
        self._snapshot = None

    # --- Single files ---

    def read_plan_file(self, path: Path | str) -> Plan:
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise PlanNotFoundError(f"Plan file not found: {path}") from e
        plan = parse_plan_text(text, path)
        if not plan.uuid:
            plan.uuid = str(uuid4())
            self.write_plan_file(path, plan)
            log.info("plan_uuid_assigned", path=str(path), uuid=plan.uuid)
        return plan

    def write_plan_file(self, path: Path | str, plan: Plan) -> None:
        path = Path(path)
        _atomic_write(path, render_plan_text(plan, path))
        plan.attach_path(path)
        self._snapshot = None

    # --- Directory ---

    def read_all_plans(self, directory: Path | None = None) -> PlanCollection:
        directory = Path(directory) if directory is not None else self._tasks_dir
        collection = PlanCollection()
        if not directory.is_dir():
            log.warning("tasks_dir_missing", directory=str(directory))
            return collection

        seen: dict[int, list[Path]] = {}
        for path in sorted(p for p in directory.rglob("*") if is_plan_file(p)):
            try:
                plan = self.read_plan_file(path)
            except PlanValidationError as e:
                log.warning("plan_file_invalid", path=str(path), error=str(e))
                continue
            except OSError as e:
                log.warning("plan_file_unreadable", path=str(path), error=str(e))
                continue
            if plan.id is None:
                continue
            seen.setdefault(plan.id, []).append(path)
            collection.plans.setdefault(plan.id, plan)

        collection.duplicates = {pid: paths for pid, paths in seen.items() if len(paths) > 1}
        for pid, paths in collection.duplicates.items():
            log.warning("duplicate_plan_id", plan_id=pid, paths=[str(p) for p in paths])

        if directory == self._tasks_dir:
            self._snapshot = collection
        return collection

    def _collection(self) -> PlanCollection:
        if self._snapshot is None:
            return self.read_all_plans()
        return self._snapshot

    def path_for(self, plan_id: int) -> Path:
        collection = self._collection()
        if plan_id in collection.duplicates:
            raise DuplicatePlanIdError(plan_id, collection.duplicates[plan_id])
        plan = collection.get(plan_id)
        if plan is None or plan.path is None:
            raise PlanNotFoundError(f"No plan found with ID: {plan_id}")
        return plan.path

    def load(self, plan_id: int) -> Plan:
        return self.read_plan_file(self.path_for(plan_id))

    def save(self, plan: Plan) -> None:
        if plan.path is None:
            if plan.id is None:
                raise PlanNotFoundError("Cannot save a plan without an id or path")
            plan.attach_path(self._tasks_dir / f"{plan.id}.plan.md")
        self.write_plan_file(plan.path, plan)

    def resolve_plan_file(self, plan_arg: str | Path) -> Path:
        """Resolve a file path or numeric plan id to a plan file."""
        candidate = Path(plan_arg).expanduser()
        if candidate.is_file():
            return candidate.resolve()

        text = str(plan_arg)
        if not text.isdigit():
            raise PlanNotFoundError(f"Plan file not found: {plan_arg}")

        self.invalidate()
        return self.path_for(int(text))

"""Plan data models."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from pydantic.alias_generators import to_camel

PlanStatus = Literal["pending", "in_progress", "done", "cancelled"]
Priority = Literal["low", "medium", "high", "urgent", "maybe"]

PRIORITY_ORDER: dict[str, int] = {"urgent": 4, "high": 3, "medium": 2, "low": 1}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _PlanModel(BaseModel):
    # Unknown keys pass through to disk untouched.
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        validate_assignment=True,
    )


class Step(_PlanModel):
    prompt: str = ""
    done: bool = False


class Task(_PlanModel):
    title: str
    description: str = ""
    done: bool = False
    steps: list[Step] = Field(default_factory=list)

    @property
    def is_done(self) -> bool:
        if self.done:
            return True
        return bool(self.steps) and all(step.done for step in self.steps)


class Plan(_PlanModel):
    id: int | None = None
    uuid: str | None = None
    title: str = ""
    goal: str = ""
    details: str = ""
    status: PlanStatus = "pending"
    priority: Priority | None = None
    dependencies: list[int] = Field(default_factory=list)
    parent: int | None = None
    epic: bool = False
    tasks: list[Task] = Field(default_factory=list)
    changed_files: list[str] = Field(default_factory=list)
    base_branch: str | None = None
    issue: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    _path: Path | None = PrivateAttr(default=None)

    @property
    def path(self) -> Path | None:
        """File this plan was read from."""
        return self._path

    def attach_path(self, path: Path | None) -> None:
        self._path = path

    @property
    def is_stub(self) -> bool:
        return not self.tasks

    @property
    def is_complete(self) -> bool:
        return bool(self.tasks) and all(task.is_done for task in self.tasks)

    @property
    def priority_rank(self) -> int:
        return PRIORITY_ORDER.get(self.priority or "", 0)

    @property
    def display_title(self) -> str:
        return self.title or self.goal or (f"Plan {self.id}" if self.id is not None else "Untitled Plan")

    def touch(self) -> None:
        self.updated_at = utc_now()

    def to_document(self) -> dict[str, Any]:
        """Serializable mapping with on-disk (camelCase) keys."""
        document = _prune(self.model_dump(mode="json", by_alias=True, exclude_none=True))
        for task in document.get("tasks", []):
            _prune(task)
            for step in task.get("steps", []):
                _prune(step)
        return document


_OMIT_WHEN_EMPTY = ("details", "dependencies", "changedFiles", "issue", "epic", "steps", "description")


def _prune(document: dict[str, Any]) -> dict[str, Any]:
    for key in _OMIT_WHEN_EMPTY:
        if key in document and document[key] in ("", [], False):
            del document[key]
    return document

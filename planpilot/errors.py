"""Exception hierarchy for conditions that stop a run before or outside the agent loop."""

from __future__ import annotations

from pathlib import Path


class PlanPilotError(Exception):
    """Base class for planpilot errors."""


class PlanValidationError(PlanPilotError):
    """A plan file could not be parsed or does not match the plan schema."""

    def __init__(self, path: Path | str, message: str) -> None:
        self.path = Path(path)
        super().__init__(f"Invalid plan file {self.path}: {message}")


class PlanNotFoundError(PlanPilotError):
    """No plan matches the requested id or path."""


class DuplicatePlanIdError(PlanPilotError):
    """Several plan files share an id; the id cannot be resolved until fixed."""

    def __init__(self, plan_id: int, paths: list[Path]) -> None:
        self.plan_id = plan_id
        self.paths = list(paths)
        listing = ", ".join(str(p) for p in self.paths)
        super().__init__(f"Plan id {plan_id} is used by multiple files: {listing}")


class WorkspaceLockedError(PlanPilotError):
    """Another live run holds the workspace lock."""

    def __init__(self, workspace: Path, holder: str) -> None:
        self.workspace = workspace
        self.holder = holder
        super().__init__(f"Workspace {workspace} is locked by {holder}")


class VcsError(PlanPilotError):
    """A version-control query failed."""


class ExecutorNotFoundError(PlanPilotError):
    """No executor is registered under the requested name."""

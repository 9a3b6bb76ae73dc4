"""Inputs and result of one agent run."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from planpilot.config import UpdateDocsMode
from planpilot.executors.base import ExecutionMode
from planpilot.summary.collector import ExecutionSummary


@dataclass
class RunOptions:
    serial_tasks: bool = False
    max_steps: int | None = None
    dry_run: bool = False
    execution_mode: ExecutionMode = "normal"
    # None defers to settings (and so to PLANPILOT_SUMMARY_ENABLED)
    summary_enabled: bool | None = None
    summary_file: Path | None = None
    update_docs_mode: UpdateDocsMode | None = None
    final_review: bool | None = None
    workspace: Path | None = None
    executor: str | None = None


@dataclass
class RunResult:
    success: bool
    reason: str = ""
    plan_id: int | None = None
    iterations: int = 0
    summary: ExecutionSummary | None = None

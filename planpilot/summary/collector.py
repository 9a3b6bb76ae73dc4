"""Per-run execution summary with bounded output capture."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Literal

from planpilot.errors import VcsError
from planpilot.executors.base import FailureDetails
from planpilot.plans.models import utc_now
from planpilot.utils.logging import get_logger
from planpilot.vcs import get_changed_files, get_current_commit

log = get_logger(__name__)

MAX_OUTPUT_CHARS = 100_000

SummaryMode = Literal["serial", "batch"]


def truncate_output(text: str, limit: int = MAX_OUTPUT_CHARS) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}\n… truncated (showing first {limit} of {len(text)} chars)"


@dataclass(frozen=True)
class StepResult:
    title: str
    executor: str
    success: bool
    output: str = ""
    error_message: str | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None
    duration_ms: int | None = None
    iteration: int | None = None
    failure_details: FailureDetails | None = None


@dataclass(frozen=True)
class SummaryMetadata:
    total_steps: int
    failed_steps: int
    batch_iterations: int | None
    started_at: datetime | None
    ended_at: datetime | None
    duration_ms: int | None


@dataclass(frozen=True)
class ExecutionSummary:
    plan_id: int | None
    plan_title: str
    mode: SummaryMode
    steps: tuple[StepResult, ...]
    errors: tuple[str, ...]
    changed_files: tuple[str, ...]
    metadata: SummaryMetadata

    @property
    def success(self) -> bool:
        return self.metadata.failed_steps == 0


def _duration_ms(start: datetime | None, end: datetime | None) -> int | None:
    if start is None or end is None:
        return None
    return int((end - start).total_seconds() * 1000)


@dataclass
class SummaryCollector:
    """Accumulates one record per orchestrator iteration.

    Step output is truncated on the way in, so a run's memory and its
    report stay bounded no matter what the executor returns.
    """

    plan_id: int | None
    plan_title: str
    mode: SummaryMode
    max_output_chars: int = MAX_OUTPUT_CHARS
    steps: list[StepResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    changed_files: list[str] = field(default_factory=list)
    batch_iterations: int | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None
    start_commit: str | None = None

    enabled = True

    async def record_execution_start(self, base_dir: Path | None = None) -> None:
        self.started_at = utc_now()
        if base_dir is None:
            return
        try:
            self.start_commit = await get_current_commit(base_dir)
        except VcsError as e:
            log.warning("summary_start_commit_unavailable", error=str(e))

    def record_execution_end(self) -> None:
        self.ended_at = utc_now()

    def add_step_result(
        self,
        *,
        title: str,
        executor: str,
        success: bool,
        output: str = "",
        error_message: str | None = None,
        started_at: datetime | None = None,
        ended_at: datetime | None = None,
        duration_ms: int | None = None,
        iteration: int | None = None,
        failure_details: FailureDetails | None = None,
    ) -> None:
        if duration_ms is None:
            duration_ms = _duration_ms(started_at, ended_at)
        self.steps.append(
            StepResult(
                title=title,
                executor=executor,
                success=success,
                output=truncate_output(output or "", self.max_output_chars),
                error_message=error_message,
                started_at=started_at,
                ended_at=ended_at,
                duration_ms=duration_ms,
                iteration=iteration,
                failure_details=failure_details,
            )
        )

    def add_error(self, error: str | BaseException) -> None:
        self.errors.append(str(error))

    def set_batch_iterations(self, count: int) -> None:
        self.batch_iterations = count

    async def track_file_changes(self, base_dir: Path) -> None:
        try:
            self.changed_files = await get_changed_files(base_dir, self.start_commit)
        except VcsError as e:
            log.warning("summary_changed_files_unavailable", error=str(e))

    def get_execution_summary(self) -> ExecutionSummary | None:
        failed = sum(1 for step in self.steps if not step.success) + len(self.errors)
        return ExecutionSummary(
            plan_id=self.plan_id,
            plan_title=self.plan_title,
            mode=self.mode,
            steps=tuple(self.steps),
            errors=tuple(self.errors),
            changed_files=tuple(self.changed_files),
            metadata=SummaryMetadata(
                total_steps=len(self.steps),
                failed_steps=failed,
                batch_iterations=self.batch_iterations if self.mode == "batch" else None,
                started_at=self.started_at,
                ended_at=self.ended_at,
                duration_ms=_duration_ms(self.started_at, self.ended_at),
            ),
        )


class DisabledSummaryCollector(SummaryCollector):
    """Stands in when summaries are off: records nothing, produces nothing."""

    enabled = False

    async def record_execution_start(self, base_dir: Path | None = None) -> None:
        pass

    def record_execution_end(self) -> None:
        pass

    def add_step_result(self, **kwargs: object) -> None:  # type: ignore[override]
        pass

    def add_error(self, error: str | BaseException) -> None:
        pass

    def set_batch_iterations(self, count: int) -> None:
        pass

    async def track_file_changes(self, base_dir: Path) -> None:
        pass

    def get_execution_summary(self) -> ExecutionSummary | None:
        return None


def create_summary_collector(
    enabled: bool,
    plan_id: int | None,
    plan_title: str,
    mode: SummaryMode,
) -> SummaryCollector:
    cls = SummaryCollector if enabled else DisabledSummaryCollector
    return cls(plan_id=plan_id, plan_title=plan_title, mode=mode)

"""Render an execution summary as Markdown."""

from __future__ import annotations

from pathlib import Path

import click

from planpilot.summary.collector import ExecutionSummary, StepResult
from planpilot.utils.logging import get_logger

log = get_logger(__name__)


def _format_duration(ms: int | None) -> str:
    if ms is None:
        return "n/a"
    seconds = ms / 1000
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, seconds = divmod(int(seconds), 60)
    return f"{minutes}m {seconds}s"


def _format_step(index: int, step: StepResult) -> list[str]:
    status = "✓" if step.success else "✗"
    lines = [f"### {index}. {status} {step.title}", ""]
    lines.append(f"- Executor: {step.executor}")
    lines.append(f"- Duration: {_format_duration(step.duration_ms)}")
    if step.error_message:
        lines.append(f"- Error: {step.error_message}")
    details = step.failure_details
    if details is not None:
        for label, value in (
            ("Source agent", details.source_agent),
            ("Problems", details.problems),
            ("Requirements", details.requirements),
            ("Solutions", details.solutions),
        ):
            if value:
                lines.append(f"- {label}: {value}")
    if step.output:
        lines += ["", "```", step.output, "```"]
    lines.append("")
    return lines


def format_execution_summary(summary: ExecutionSummary) -> str:
    meta = summary.metadata
    title = summary.plan_title
    if summary.plan_id is not None:
        title = f"{title} (ID: {summary.plan_id})"

    lines = [
        f"# Execution Summary: {title}",
        "",
        f"- Mode: {summary.mode}",
        f"- Steps: {meta.total_steps}",
        f"- Failed: {meta.failed_steps}",
    ]
    if meta.batch_iterations is not None:
        lines.append(f"- Batch iterations: {meta.batch_iterations}")
    lines.append(f"- Duration: {_format_duration(meta.duration_ms)}")
    lines.append("")

    if summary.steps:
        lines += ["## Steps", ""]
        for i, step in enumerate(summary.steps, 1):
            lines += _format_step(i, step)

    if summary.errors:
        lines += ["## Errors", ""]
        lines += [f"- {error}" for error in summary.errors]
        lines.append("")

    lines += ["## Changed Files", ""]
    if summary.changed_files:
        lines += [f"- {path}" for path in summary.changed_files]
    else:
        lines.append("No changed files detected.")
    lines.append("")

    return "\n".join(lines)


def write_or_display_summary(summary: ExecutionSummary, path: Path | str | None = None) -> None:
    text = format_execution_summary(summary)
    if path is None:
        click.echo(text)
        return
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    log.info("summary_written", path=str(path))

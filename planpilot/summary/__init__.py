"""Execution summaries."""

from planpilot.summary.collector import (
    MAX_OUTPUT_CHARS,
    DisabledSummaryCollector,
    ExecutionSummary,
    StepResult,
    SummaryCollector,
    create_summary_collector,
    truncate_output,
)
from planpilot.summary.display import format_execution_summary, write_or_display_summary

__all__ = [
    "MAX_OUTPUT_CHARS",
    "DisabledSummaryCollector",
    "ExecutionSummary",
    "StepResult",
    "SummaryCollector",
    "create_summary_collector",
    "format_execution_summary",
    "truncate_output",
    "write_or_display_summary",
]

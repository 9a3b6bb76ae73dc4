"""Execute plan work through the Claude Code CLI."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import click

from planpilot.executors.base import ExecutionMetadata, Executor, ExecutorOutput, FailureDetails
from planpilot.utils.logging import get_logger

log = get_logger(__name__)


class ClaudeCodeExecutor(Executor):
    """Runs ``claude --print`` in the workspace, one subprocess per call.

    Options (from ``executors.claude-code`` in the config): ``model``,
    ``timeout`` in seconds (unset means wait indefinitely), ``allowed_tools``
    and ``extra_args``.
    """

    def __init__(self, options: dict[str, Any], base_dir: Path) -> None:
        self._base_dir = base_dir
        self._model: str | None = options.get("model")
        self._timeout: float | None = options.get("timeout")
        self._allowed_tools: list[str] = list(options.get("allowed_tools", []))
        self._extra_args: list[str] = list(options.get("extra_args", []))

    @property
    def name(self) -> str:
        return "claude-code"

    def _build_args(self, content: str) -> list[str]:
        args = ["claude", "--print", "--output-format", "json"]
        if self._model:
            args += ["--model", self._model]
        if self._allowed_tools:
            args += ["--allowedTools", ",".join(self._allowed_tools)]
        args += self._extra_args
        args.append(content)
        return args

    def _failure(self, problems: str, content: str = "") -> ExecutorOutput:
        return ExecutorOutput(
            success=False,
            content=content,
            failure_details=FailureDetails(source_agent=self.name, problems=problems),
        )

    async def execute(self, content: str, metadata: ExecutionMetadata) -> ExecutorOutput:
        log.info(
            "claude_code_delegating",
            plan_id=metadata.plan_id,
            batch=metadata.batch_mode,
            mode=metadata.execution_mode,
            timeout=self._timeout,
        )

        try:
            proc = await asyncio.create_subprocess_exec(
                *self._build_args(content),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self._base_dir),
            )
        except FileNotFoundError:
            return self._failure("Claude Code CLI ('claude') not found. Is it installed and on PATH?")

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            return self._failure(f"Claude Code timed out after {self._timeout}s")

        stdout_str = stdout.decode("utf-8", errors="replace").strip()
        stderr_str = stderr.decode("utf-8", errors="replace").strip()

        is_error = False
        try:
            result_data = json.loads(stdout_str)
            output = result_data.get("result", stdout_str)
            is_error = bool(result_data.get("is_error", False))
            if isinstance(output, dict):
                output = json.dumps(output, indent=2)
        except (json.JSONDecodeError, AttributeError):
            output = stdout_str

        if not metadata.capture_output and output:
            click.echo(output)

        if proc.returncode != 0 or is_error:
            log.warning("claude_code_failed", exit_code=proc.returncode, is_error=is_error)
            return self._failure(stderr_str or output or f"exit code {proc.returncode}", output)

        return ExecutorOutput(success=True, content=output)

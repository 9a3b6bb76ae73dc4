"""Tests for the executor registry and the Claude Code adapter."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from planpilot.config import Settings
from planpilot.errors import ExecutorNotFoundError
from planpilot.executors import build_executor, build_executor_registry
from planpilot.executors.base import ExecutionMetadata, ExecutorOutput
from planpilot.executors.claude_code import ClaudeCodeExecutor


def metadata(**kwargs):
    return ExecutionMetadata(plan_id=1, plan_title="p", plan_file_path="tasks/1.yml", **kwargs)


def fake_process(stdout=b"", stderr=b"", returncode=0):
    proc = MagicMock()
    proc.communicate = AsyncMock(return_value=(stdout, stderr))
    proc.returncode = returncode
    proc.kill = MagicMock()
    proc.wait = AsyncMock()
    return proc


class TestOutputSemantics:
    def test_only_explicit_false_fails(self):
        assert ExecutorOutput().failed is False
        assert ExecutorOutput(success=True).failed is False
        assert ExecutorOutput(success=False).failed is True


class TestRegistry:
    def test_default_registry(self, tmp_path):
        settings = Settings(executors={"claude-code": {"model": "sonnet"}})
        registry = build_executor_registry(settings)
        executor = build_executor("claude-code", registry, settings, tmp_path)
        assert isinstance(executor, ClaudeCodeExecutor)
        assert executor.name == "claude-code"

    def test_unknown_executor(self, tmp_path):
        settings = Settings()
        with pytest.raises(ExecutorNotFoundError, match="nope"):
            build_executor("nope", build_executor_registry(settings), settings, tmp_path)


class TestClaudeCodeExecutor:
    async def test_success_parses_json_result(self, tmp_path):
        proc = fake_process(stdout=json.dumps({"result": "all done", "is_error": False}).encode())
        executor = ClaudeCodeExecutor({"model": "opus"}, tmp_path)
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)) as spawn:
            result = await executor.execute("do the thing", metadata(capture_output=True))
        assert result.success is True
        assert result.content == "all done"
        args = spawn.call_args.args
        assert args[:4] == ("claude", "--print", "--output-format", "json")
        assert "--model" in args and "opus" in args
        assert args[-1] == "do the thing"
        assert spawn.call_args.kwargs["cwd"] == str(tmp_path)

    async def test_nonzero_exit_is_failure(self, tmp_path):
        proc = fake_process(stdout=b"", stderr=b"auth required", returncode=1)
        executor = ClaudeCodeExecutor({}, tmp_path)
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            result = await executor.execute("x", metadata(capture_output=True))
        assert result.success is False
        assert result.failure_details.problems == "auth required"
        assert result.failure_details.source_agent == "claude-code"

    async def test_is_error_flag_is_failure(self, tmp_path):
        proc = fake_process(stdout=json.dumps({"result": "gave up", "is_error": True}).encode())
        executor = ClaudeCodeExecutor({}, tmp_path)
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            result = await executor.execute("x", metadata(capture_output=True))
        assert result.success is False
        assert result.content == "gave up"

    async def test_plain_text_output(self, tmp_path):
        proc = fake_process(stdout=b"not json")
        executor = ClaudeCodeExecutor({}, tmp_path)
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            result = await executor.execute("x", metadata(capture_output=True))
        assert result.content == "not json"

    async def test_missing_cli(self, tmp_path):
        executor = ClaudeCodeExecutor({}, tmp_path)
        with patch("asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError)):
            result = await executor.execute("x", metadata())
        assert result.success is False
        assert "not found" in result.failure_details.problems

    async def test_timeout(self, tmp_path):
        proc = fake_process()
        proc.communicate = AsyncMock(side_effect=asyncio.TimeoutError)
        executor = ClaudeCodeExecutor({"timeout": 1}, tmp_path)
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            result = await executor.execute("x", metadata())
        assert result.success is False
        assert "timed out" in result.failure_details.problems
        proc.kill.assert_called_once()

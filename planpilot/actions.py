"""Post-apply commands run after each successful executor call."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import click

from planpilot.config import PostApplyCommand
from planpilot.utils.logging import get_logger
from planpilot.utils.platform import shell_command_args

log = get_logger(__name__)


def _resolve_cwd(command: PostApplyCommand, base_dir: Path) -> Path:
    if not command.working_directory:
        return base_dir
    path = Path(command.working_directory).expanduser()
    return path if path.is_absolute() else base_dir / path


async def execute_post_apply_command(command: PostApplyCommand, base_dir: Path | str) -> bool:
    """Run one command through the user's shell.

    Returns True on success, and also when the command fails but is allowed
    to. Output is echoed to the terminal unless it is hidden on success.
    """
    cwd = _resolve_cwd(command, Path(base_dir))
    env = {**os.environ, **command.env}
    args = shell_command_args(command.command)

    log.info("post_apply_start", title=command.title, command=command.command, cwd=str(cwd))

    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=str(cwd),
            env=env,
        )
        stdout, _ = await proc.communicate()
    except OSError as e:
        log.error("post_apply_spawn_failed", title=command.title, error=str(e))
        return command.allow_failure

    output = stdout.decode("utf-8", errors="replace").rstrip()
    success = proc.returncode == 0

    if output and not (success and command.hide_output_on_success):
        click.echo(output)

    if success:
        log.info("post_apply_done", title=command.title)
        return True

    if command.allow_failure:
        log.warning("post_apply_failed_allowed", title=command.title, exit_code=proc.returncode)
        return True

    log.error("post_apply_failed", title=command.title, exit_code=proc.returncode)
    return False


async def run_post_apply_commands(
    commands: list[PostApplyCommand], base_dir: Path | str
) -> PostApplyCommand | None:
    """Run commands in order; return the first required one that failed."""
    for command in commands:
        if not await execute_post_apply_command(command, base_dir):
            return command
    return None

"""Read-only git queries.

Nothing in here writes to the repository; runs only ever ask which commit
they started from and which files have changed since.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from planpilot.errors import VcsError
from planpilot.utils.logging import get_logger

log = get_logger(__name__)


async def _git(cwd: Path | str, *args: str) -> str:
    try:
        proc = await asyncio.create_subprocess_exec(
            "git",
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd),
        )
    except FileNotFoundError as e:
        raise VcsError("git executable not found") from e
    except NotADirectoryError as e:
        raise VcsError(f"Not a directory: {cwd}") from e

    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        message = stderr.decode("utf-8", errors="replace").strip()
        raise VcsError(f"git {' '.join(args)} failed: {message or proc.returncode}")
    return stdout.decode("utf-8", errors="replace")


async def get_git_root(cwd: Path | str) -> Path:
    out = await _git(cwd, "rev-parse", "--show-toplevel")
    return Path(out.strip())


async def get_current_commit(cwd: Path | str) -> str:
    out = await _git(cwd, "rev-parse", "HEAD")
    return out.strip()


async def get_changed_files(base_dir: Path | str, since_commit: str | None = None) -> list[str]:
    """Tracked changes since ``since_commit`` (or HEAD) plus untracked files."""
    diff = await _git(base_dir, "diff", "--name-only", since_commit or "HEAD")
    untracked = await _git(base_dir, "ls-files", "--others", "--exclude-standard")
    files = {line.strip() for line in (diff + untracked).splitlines() if line.strip()}
    return sorted(files)


async def find_repository_root(cwd: Path | str) -> Path:
    """Git root of ``cwd``, or ``cwd`` itself outside a repository."""
    try:
        return await get_git_root(cwd)
    except VcsError as e:
        log.debug("git_root_unavailable", cwd=str(cwd), error=str(e))
        return Path(cwd)

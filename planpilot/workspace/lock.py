"""Advisory per-workspace lock: at most one active run per directory."""

from __future__ import annotations

import atexit
import json
import os
import signal
import socket
import sys
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterator, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from planpilot import __version__
from planpilot.errors import WorkspaceLockedError
from planpilot.plans.models import utc_now
from planpilot.utils.logging import get_logger
from planpilot.utils.platform import get_platform, is_process_alive

if sys.platform == "win32":
    import msvcrt
else:
    import fcntl

log = get_logger(__name__)

LOCK_FILENAME = ".planpilot.lock"
GUARD_FILENAME = LOCK_FILENAME + ".guard"

LockType = Literal["pid", "persistent"]


class LockInfo(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: LockType = "pid"
    pid: int
    command: str = ""
    started_at: datetime = Field(default_factory=utc_now)
    hostname: str = ""
    version: str = ""

    def describe(self) -> str:
        return (
            f"{self.command or 'unknown command'} "
            f"(pid {self.pid} on {self.hostname or 'unknown host'}, "
            f"{self.type} lock since {self.started_at.isoformat()})"
        )


class WorkspaceLock:
    """File lock at ``<workspace>/.planpilot.lock``.

    A ``pid`` lock belongs to a running process and goes stale when that
    process dies or the lock outlives ``stale_after_hours``. A ``persistent``
    lock is placed by an operator, never goes stale, and is only removed
    with ``release(force=True)``.

    Every read-modify-write of the lock file happens under an OS lock on
    ``.planpilot.lock.guard``, so a stale check and the unlink that follows
    it cannot interleave with another process creating a fresh lock.
    """

    def __init__(self, workspace: Path | str, stale_after_hours: float = 24.0) -> None:
        self.workspace = Path(workspace)
        self.stale_after = timedelta(hours=stale_after_hours)

    @property
    def lock_path(self) -> Path:
        return self.workspace / LOCK_FILENAME

    @property
    def guard_path(self) -> Path:
        return self.workspace / GUARD_FILENAME

    @contextmanager
    def _guard(self) -> Iterator[None]:
        with open(self.guard_path, "a+b") as f:
            if sys.platform == "win32":
                f.seek(0)
                msvcrt.locking(f.fileno(), msvcrt.LK_LOCK, 1)
                try:
                    yield
                finally:
                    f.seek(0)
                    msvcrt.locking(f.fileno(), msvcrt.LK_UNLCK, 1)
            else:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                try:
                    yield
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)

    # --- Inspection ---

    def get_lock_info_including_stale(self) -> LockInfo | None:
        try:
            raw = self.lock_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        return self._parse(raw)

    def _parse(self, raw: str) -> LockInfo | None:
        try:
            return LockInfo.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            log.warning("lock_file_unreadable", path=str(self.lock_path), error=str(e))
            return None

    def is_stale(self, info: LockInfo) -> bool:
        if info.type == "persistent":
            return False
        same_host = not info.hostname or info.hostname == socket.gethostname()
        if same_host and not is_process_alive(info.pid):
            return True
        started = info.started_at
        if started.tzinfo is None:
            started = started.replace(tzinfo=timezone.utc)
        return utc_now() - started > self.stale_after

    def _file_age(self) -> timedelta:
        mtime = self.lock_path.stat().st_mtime
        return utc_now() - datetime.fromtimestamp(mtime, tz=timezone.utc)

    def _clear_stale_locked(self) -> bool:
        """Remove a stale lock file. The caller holds the guard."""
        try:
            raw = self.lock_path.read_text(encoding="utf-8")
            info = self._parse(raw)
            # An unreadable file may be a lock still being written elsewhere.
            if info is None and self._file_age() <= self.stale_after:
                return False
        except FileNotFoundError:
            return False
        if info is not None and not self.is_stale(info):
            return False
        log.warning(
            "stale_lock_cleared",
            workspace=str(self.workspace),
            holder=info.describe() if info else "unreadable lock file",
        )
        self.lock_path.unlink(missing_ok=True)
        return True

    def clear_stale_lock(self) -> bool:
        if not self.lock_path.exists():
            return False
        with self._guard():
            return self._clear_stale_locked()

    def get_lock_info(self) -> LockInfo | None:
        """Current live lock holder, clearing a stale lock first."""
        self.clear_stale_lock()
        return self.get_lock_info_including_stale()

    def is_locked(self) -> bool:
        self.clear_stale_lock()
        return self.lock_path.exists()

    # --- Acquire / release ---

    def acquire(
        self,
        owner: str | None = None,
        lock_type: LockType = "pid",
        pid: int | None = None,
    ) -> LockInfo:
        """Create the lock file or fail immediately.

        A stale lock is cleared and acquisition retried once; a live one
        raises ``WorkspaceLockedError``. ``pid`` defaults to this process.
        """
        info = LockInfo(
            type=lock_type,
            pid=os.getpid() if pid is None else pid,
            command=owner or " ".join(sys.argv),
            hostname=socket.gethostname(),
            version=__version__,
        )
        self.workspace.mkdir(parents=True, exist_ok=True)

        with self._guard():
            for attempt in range(2):
                try:
                    fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
                except FileExistsError:
                    if attempt == 0 and self._clear_stale_locked():
                        continue
                    holder = self.get_lock_info_including_stale()
                    raise WorkspaceLockedError(
                        self.workspace, holder.describe() if holder else "an unreadable lock file",
                    ) from None
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(info.model_dump_json(by_alias=True))
                log.info("workspace_locked", workspace=str(self.workspace), type=lock_type, pid=info.pid)
                return info

        raise WorkspaceLockedError(self.workspace, "an unknown process")

    def release(self, force: bool = False) -> bool:
        if not self.lock_path.exists():
            return False
        with self._guard():
            info = self.get_lock_info_including_stale()
            if info is None and not self.lock_path.exists():
                return False
            if not force:
                if info is None or info.type == "persistent" or info.pid != os.getpid():
                    holder = info.describe() if info else "unreadable lock file"
                    log.warning("lock_release_refused", workspace=str(self.workspace), holder=holder)
                    return False
            self.lock_path.unlink(missing_ok=True)
        log.info("workspace_unlocked", workspace=str(self.workspace), forced=force)
        return True

    # --- Process exit ---

    def setup_cleanup_handlers(self, lock_type: LockType = "pid") -> Callable[[], None]:
        """Release a pid lock on interpreter exit and on SIGTERM/SIGHUP.

        The signals are turned into ``SystemExit`` so ``finally`` blocks and
        context managers unwind normally. Returns a callable that restores
        the previous handlers.
        """
        if lock_type == "persistent":
            return lambda: None

        def _release_at_exit() -> None:
            self.release()

        atexit.register(_release_at_exit)

        previous: dict[int, object] = {}
        if get_platform() != "windows" and threading.current_thread() is threading.main_thread():
            def _exit_on_signal(signum: int, _frame: object) -> None:
                log.info("shutdown_signal", signal=signum)
                raise SystemExit(128 + signum)

            for sig in (signal.SIGTERM, signal.SIGHUP):
                previous[sig] = signal.signal(sig, _exit_on_signal)

        def _unregister() -> None:
            atexit.unregister(_release_at_exit)
            for sig, handler in previous.items():
                signal.signal(sig, handler)  # type: ignore[arg-type]

        return _unregister

    @contextmanager
    def held(self, owner: str | None = None) -> Iterator[LockInfo]:
        info = self.acquire(owner)
        unregister = self.setup_cleanup_handlers("pid")
        try:
            yield info
        finally:
            unregister()
            self.release()

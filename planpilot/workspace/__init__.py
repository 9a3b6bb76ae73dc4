"""Workspace locking."""

from planpilot.workspace.lock import LOCK_FILENAME, LockInfo, LockType, WorkspaceLock

__all__ = ["LOCK_FILENAME", "LockInfo", "LockType", "WorkspaceLock"]

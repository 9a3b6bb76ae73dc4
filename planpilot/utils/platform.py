"""Platform detection, path and process utilities."""

from __future__ import annotations

import os
import sys
from pathlib import Path


def get_platform() -> str:
    if sys.platform == "win32":
        return "windows"
    if sys.platform == "darwin":
        return "macos"
    return "linux"


def get_config_dir() -> Path:
    env = os.environ.get("PLANPILOT_CONFIG_DIR")
    if env:
        return Path(env)

    platform = get_platform()
    if platform == "windows":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        return base / "planpilot"
    if platform == "macos":
        return Path.home() / "Library" / "Application Support" / "planpilot"
    # Linux / XDG
    xdg = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
    return Path(xdg) / "planpilot"


def get_default_shell() -> str:
    if get_platform() == "windows":
        return "powershell"
    return os.environ.get("SHELL", "/bin/sh")


def shell_command_args(command: str) -> list[str]:
    """Argument vector that runs ``command`` through the user's shell."""
    if get_platform() == "windows":
        return ["powershell", "-NoProfile", "-Command", command]
    return [get_default_shell(), "-c", command]


def is_process_alive(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists, owned by another user
        return True
    except OSError:
        return False
    return True

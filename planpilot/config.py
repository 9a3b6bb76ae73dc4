"""Configuration management with Pydantic Settings + optional YAML."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from planpilot.utils.platform import get_config_dir

UpdateDocsMode = Literal["never", "after-iteration", "after-completion"]


class PostApplyCommand(BaseModel):
    title: str
    command: str
    working_directory: str | None = None
    env: dict[str, str] = Field(default_factory=dict)
    allow_failure: bool = False
    hide_output_on_success: bool = False

    @property
    def required(self) -> bool:
        return not self.allow_failure


class UpdateDocsConfig(BaseModel):
    mode: UpdateDocsMode = "never"
    apply_lessons: bool = False


class LockConfig(BaseModel):
    stale_after_hours: float = 24.0


class NotificationsConfig(BaseModel):
    command: str = ""


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PLANPILOT_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    tasks_dir: str = "tasks"
    default_executor: str = "claude-code"
    executors: dict[str, dict[str, Any]] = Field(default_factory=dict)
    post_apply_commands: list[PostApplyCommand] = Field(default_factory=list)
    update_docs: UpdateDocsConfig = Field(default_factory=UpdateDocsConfig)
    final_review: bool = True
    summary_enabled: bool = True
    lock: LockConfig = Field(default_factory=LockConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    log_level: str = "INFO"
    log_json: bool = False

    def resolve_tasks_dir(self, root: Path) -> Path:
        path = Path(self.tasks_dir).expanduser()
        return path if path.is_absolute() else root / path

    def executor_options(self, name: str) -> dict[str, Any]:
        return dict(self.executors.get(name, {}))


def _find_config_file(config_path: str | Path | None) -> Path | None:
    if config_path is None:
        config_path = os.environ.get("PLANPILOT_CONFIG")
    if config_path is not None:
        return Path(config_path)

    for candidate in (
        Path.cwd() / ".planpilot" / "config.yml",
        get_config_dir() / "config.yaml",
    ):
        if candidate.exists():
            return candidate
    return None


def _matching_key(node: dict[str, Any], name: str) -> str | None:
    return next((k for k in node if str(k).lower() == name), None)


def _drop_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Remove the YAML leaves that a ``PLANPILOT_`` variable sets.

    ``PLANPILOT_UPDATE_DOCS__MODE`` removes only ``update_docs.mode``, so
    sibling keys under ``update_docs`` still come from the file.
    """
    for env_key in os.environ:
        if not env_key.upper().startswith("PLANPILOT_"):
            continue
        *parents, leaf = env_key[len("PLANPILOT_"):].lower().split("__")
        node = data
        for name in parents:
            key = _matching_key(node, name)
            if key is None or not isinstance(node[key], dict):
                break
            node = node[key]
        else:
            key = _matching_key(node, leaf)
            if key is not None:
                del node[key]
    return data


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from env vars, optionally overlaying a YAML config."""
    yaml_data: dict[str, Any] = {}

    path = _find_config_file(config_path)
    if path is not None and path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}

    # Init kwargs outrank the environment in pydantic-settings and sources are
    # deep-merged, so only the leaves the environment sets are dropped here.
    return Settings(**_drop_env_overrides(yaml_data))

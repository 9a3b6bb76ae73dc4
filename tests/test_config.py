"""Tests for settings loading."""

import os

import pytest
import yaml

from planpilot.config import Settings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in list(os.environ):
        if key.upper().startswith("PLANPILOT_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("PLANPILOT_CONFIG_DIR", str(tmp_path / "user-config"))
    monkeypatch.chdir(tmp_path)


def write_config(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data))
    return path


class TestSettings:
    def test_defaults(self):
        s = load_settings()
        assert s.tasks_dir == "tasks"
        assert s.default_executor == "claude-code"
        assert s.summary_enabled is True
        assert s.update_docs.mode == "never"
        assert s.lock.stale_after_hours == 24.0
        assert s.post_apply_commands == []

    @pytest.mark.parametrize("value", ["0", "false", "no", "off"])
    def test_summary_env_toggle(self, monkeypatch, value):
        monkeypatch.setenv("PLANPILOT_SUMMARY_ENABLED", value)
        assert Settings().summary_enabled is False

    def test_nested_env(self, monkeypatch):
        monkeypatch.setenv("PLANPILOT_LOCK__STALE_AFTER_HOURS", "2")
        assert Settings().lock.stale_after_hours == 2.0

    def test_resolve_tasks_dir(self, tmp_path):
        assert Settings(tasks_dir="plans").resolve_tasks_dir(tmp_path) == tmp_path / "plans"
        assert Settings(tasks_dir="/abs/plans").resolve_tasks_dir(tmp_path).as_posix() == "/abs/plans"


class TestYamlOverlay:
    def test_explicit_path(self, tmp_path):
        path = write_config(tmp_path / "custom.yml", {
            "default_executor": "other",
            "post_apply_commands": [{"title": "fmt", "command": "make fmt", "allow_failure": True}],
            "executors": {"claude-code": {"timeout": 600}},
        })
        s = load_settings(path)
        assert s.default_executor == "other"
        assert s.post_apply_commands[0].required is False
        assert s.executor_options("claude-code") == {"timeout": 600}
        assert s.executor_options("missing") == {}

    def test_project_config_discovered(self, tmp_path):
        write_config(tmp_path / ".planpilot" / "config.yml", {"tasks_dir": "plans"})
        assert load_settings().tasks_dir == "plans"

    def test_user_config_discovered(self, tmp_path):
        write_config(tmp_path / "user-config" / "config.yaml", {"final_review": False})
        assert load_settings().final_review is False

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        path = write_config(tmp_path / "c.yml", {"summary_enabled": True, "log_level": "DEBUG"})
        monkeypatch.setenv("PLANPILOT_SUMMARY_ENABLED", "false")
        s = load_settings(path)
        assert s.summary_enabled is False
        assert s.log_level == "DEBUG"

    def test_env_config_path(self, tmp_path, monkeypatch):
        path = write_config(tmp_path / "elsewhere.yml", {"update_docs": {"mode": "after-completion"}})
        monkeypatch.setenv("PLANPILOT_CONFIG", str(path))
        assert load_settings().update_docs.mode == "after-completion"

    def test_nested_env_keeps_yaml_siblings(self, tmp_path, monkeypatch):
        path = write_config(tmp_path / "c.yml", {
            "update_docs": {"mode": "after-completion", "apply_lessons": True},
            "lock": {"stale_after_hours": 6},
        })
        monkeypatch.setenv("PLANPILOT_UPDATE_DOCS__MODE", "after-iteration")
        s = load_settings(path)
        assert s.update_docs.mode == "after-iteration"
        assert s.update_docs.apply_lessons is True
        assert s.lock.stale_after_hours == 6.0


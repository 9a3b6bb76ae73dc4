"""Tests for credential redaction in log events."""

import pytest

from planpilot.utils.logging import _filter_sensitive, redact


class TestRedact:
    @pytest.mark.parametrize("text,secret", [
        ("ANTHROPIC_API_KEY=abc123def", "abc123def"),
        ('{"api_key": "abc123def"}', "abc123def"),
        ("token: abc123def", "abc123def"),
        ("Authorization: Bearer abc.123-def", "abc.123-def"),
        ("retrying with sk-ant-REDACTED", "sk-ant-REDACTED"),
    ])
    def test_secrets_masked(self, text, secret):
        masked = redact(text)
        assert secret not in masked
        assert "***REDACTED***" in masked

    def test_plain_text_untouched(self):
        assert redact("Ran post-apply command: make test") == "Ran post-apply command: make test"

    def test_filter_only_rewrites_strings(self):
        event = {"event": "executor_failed", "stderr": "password=hunter22", "exit_code": 1}
        filtered = _filter_sensitive(None, "error", event)
        assert filtered["stderr"] == "password=***REDACTED***"
        assert filtered["exit_code"] == 1

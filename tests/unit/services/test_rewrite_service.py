"""Unit tests for the AI commit message rewriter.

The Anthropic client and the GitHub detail fetch are mocked; these tests pin
the prompt inputs, retry policy and user-facing error messages.
"""

from __future__ import annotations

import logging
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import httpx
import pytest
from anthropic import BadRequestError, RateLimitError

from backend.core.exceptions import RewriteError
from backend.services import rewrite_service
from backend.services.rewrite_service import (
    EMPTY_DIFF_MESSAGE,
    GENERIC_MESSAGE,
    NOT_CONFIGURED_MESSAGE,
    SAFETY_MESSAGE,
    build_prompt,
    extract_diff,
    rewrite_commit,
    rewrite_commit_message,
)

DETAIL = {
    "sha": "abc1234def",
    "commit": {"message": "fix"},
    "files": [
        {"filename": "a.py", "patch": "@@ -1 +1 @@\n-x = 1\n+x = 2"},
        {"filename": "logo.png"},
        {"filename": "b.py", "patch": "@@ -0,0 +1 @@\n+import os"},
    ],
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _message(text: str = "Bump x to 2", stop_reason: str = "end_turn") -> SimpleNamespace:
    return SimpleNamespace(stop_reason=stop_reason, content=[SimpleNamespace(type="text", text=text)])


def _api_status_error(cls, status: int):
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    response = httpx.Response(status, request=request)
    return cls("error", response=response, body=None)


@pytest.fixture
def client():
    with patch.object(rewrite_service.anthropic, "Anthropic") as client_cls:
        instance = MagicMock()
        client_cls.return_value = instance
        instance.__enter__.return_value = instance
        yield instance


@pytest.fixture(autouse=True)
def no_sleep():
    with patch.object(rewrite_service, "sleep") as mocked:
        yield mocked


# ═══════════════════════════════════════════════════════════════════════════
# Prompt inputs
# ═══════════════════════════════════════════════════════════════════════════


class TestPromptInputs:
    def test_extract_diff_joins_patches(self):
        assert extract_diff(DETAIL) == "@@ -1 +1 @@\n-x = 1\n+x = 2\n\n@@ -0,0 +1 @@\n+import os"

    def test_extract_diff_without_files(self):
        assert extract_diff({"commit": {}}) == ""

    def test_prompt_contains_message_and_diff(self):
        prompt = build_prompt("  fix stuff \n", "+a", max_diff_chars=100)

        assert "fix stuff" in prompt
        assert "+a" in prompt
        assert "[diff truncated]" not in prompt

    def test_prompt_truncates_long_diff(self):
        prompt = build_prompt("m", "x" * 50, max_diff_chars=10)

        assert "x" * 10 + "\n[diff truncated]" in prompt
        assert "x" * 11 not in prompt


# ═══════════════════════════════════════════════════════════════════════════
# rewrite_commit_message
# ═══════════════════════════════════════════════════════════════════════════


class TestRewriteCommitMessage:
    def test_returns_model_text(self, client):
        client.messages.create.return_value = _message("  Bump x to 2\n\nKeeps config in sync.  ")

        assert rewrite_commit_message("fix", "+x") == "Bump x to 2\n\nKeeps config in sync."
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-sonnet-4-20250514"
        assert kwargs["messages"][0]["role"] == "user"
        assert "+x" in kwargs["messages"][0]["content"]

    def test_refusal(self, client):
        client.messages.create.return_value = _message("", stop_reason="refusal")

        with pytest.raises(RewriteError) as exc_info:
            rewrite_commit_message("fix", "+x")

        assert exc_info.value.message == SAFETY_MESSAGE

    def test_empty_completion(self, client):
        client.messages.create.return_value = _message("   ")

        with pytest.raises(RewriteError) as exc_info:
            rewrite_commit_message("fix", "+x")

        assert exc_info.value.message == GENERIC_MESSAGE

    def test_rate_limit_is_retried(self, client, no_sleep):
        client.messages.create.side_effect = [
            _api_status_error(RateLimitError, 429),
            _message("Bump x"),
        ]

        assert rewrite_commit_message("fix", "+x") == "Bump x"
        assert client.messages.create.call_count == 2
        no_sleep.assert_called_once_with(2)

    def test_retry_warning_uses_lazy_formatting(self, client, caplog):
        client.messages.create.side_effect = [
            _api_status_error(RateLimitError, 429),
            _message("Bump x"),
        ]

        with caplog.at_level(logging.WARNING, logger=rewrite_service.__name__):
            rewrite_commit_message("fix", "+x")

        (record,) = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert record.msg == "%s error (attempt %d/%d), retrying in %ss: %s"
        assert record.getMessage().startswith("Commit rewrite error (attempt 1/3), retrying in 2s")

    def test_client_is_closed(self, client):
        client.messages.create.return_value = _message("Bump x")

        rewrite_commit_message("fix", "+x")

        client.__exit__.assert_called_once()

    def test_client_is_closed_on_failure(self, client):
        client.messages.create.side_effect = _api_status_error(BadRequestError, 400)

        with pytest.raises(RewriteError):
            rewrite_commit_message("fix", "+x")

        client.__exit__.assert_called_once()

    def test_gives_up_after_retries(self, client, no_sleep):
        client.messages.create.side_effect = _api_status_error(RateLimitError, 429)

        with pytest.raises(RewriteError) as exc_info:
            rewrite_commit_message("fix", "+x")

        assert exc_info.value.message == GENERIC_MESSAGE
        assert client.messages.create.call_count == 3
        assert no_sleep.call_count == 2

    def test_bad_request_is_not_retried(self, client):
        client.messages.create.side_effect = _api_status_error(BadRequestError, 400)

        with pytest.raises(RewriteError):
            rewrite_commit_message("fix", "+x")

        assert client.messages.create.call_count == 1

    def test_missing_api_key(self, client, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        rewrite_service.get_settings.cache_clear()

        with pytest.raises(RewriteError) as exc_info:
            rewrite_commit_message("fix", "+x")

        assert exc_info.value.message == NOT_CONFIGURED_MESSAGE
        client.messages.create.assert_not_called()


# ═══════════════════════════════════════════════════════════════════════════
# rewrite_commit
# ═══════════════════════════════════════════════════════════════════════════


class TestRewriteCommit:
    def test_success(self, client):
        client.messages.create.return_value = _message("Bump x to 2")
        with patch.object(rewrite_service.github_service, "fetch_commit_detail", return_value=DETAIL) as fetch:
            result = rewrite_commit("octo", "repo", "abc1234def")

        fetch.assert_called_once_with("octo", "repo", "abc1234def")
        assert result.sha == "abc1234def"
        assert result.original_message == "fix"
        assert result.rewritten_message == "Bump x to 2"

    def test_empty_diff(self, client):
        detail = {"sha": "abc1234", "commit": {"message": "Merge branch"}, "files": [{"filename": "x"}]}
        with patch.object(rewrite_service.github_service, "fetch_commit_detail", return_value=detail):
            with pytest.raises(RewriteError) as exc_info:
                rewrite_commit("octo", "repo", "abc1234")

        assert exc_info.value.message == EMPTY_DIFF_MESSAGE
        client.messages.create.assert_not_called()

"""
AI-assisted commit message rewriting.

The commit's diff is fetched from GitHub, dropped into a fixed prompt and sent
to the Anthropic Messages API. Failures surface as RewriteError carrying the
message shown to the user.
"""

import logging
from time import sleep
from typing import Any, Callable, Dict, TypeVar

import anthropic
from anthropic import APIConnectionError, APIError, InternalServerError, RateLimitError

from backend.core.config import get_settings
from backend.core.exceptions import RewriteError
from backend.models.schemas import RewriteResult
from backend.services import github_service

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_DELAYS = [2, 4, 8]

EMPTY_DIFF_MESSAGE = "Could not retrieve diff for this commit. It might be a merge commit or empty."
SAFETY_MESSAGE = "The AI model refused to generate a response due to safety concerns."
GENERIC_MESSAGE = "An unexpected error occurred during AI rewrite."
NOT_CONFIGURED_MESSAGE = "AI rewrite is not configured (ANTHROPIC_API_KEY is missing)."

PROMPT_TEMPLATE = """You rewrite git commit messages so they describe the change more clearly.

Original commit message:
{message}

Diff:
{diff}

Write a more descriptive commit message for this change: a short summary line \
(72 characters or fewer), a blank line, then a brief body explaining what changed \
and why. Reply with the commit message only."""

T = TypeVar("T")


def extract_diff(detail: Dict[str, Any]) -> str:
    files = detail.get("files") or []
    return "\n".join((f.get("patch") or "") for f in files if isinstance(f, dict))


def build_prompt(message: str, diff: str, max_diff_chars: int) -> str:
    if len(diff) > max_diff_chars:
        diff = diff[:max_diff_chars] + "\n[diff truncated]"
    return PROMPT_TEMPLATE.format(message=message.strip(), diff=diff)


def _call_with_retry(fn: Callable[[], T], operation_name: str = "Commit rewrite") -> T:
    last_error: Exception = RuntimeError(f"{operation_name} failed after retries")
    for attempt in range(MAX_RETRIES):
        try:
            return fn()
        except (RateLimitError, APIConnectionError, InternalServerError) as e:
            last_error = e
            if attempt < MAX_RETRIES - 1:
                delay = RETRY_DELAYS[attempt]
                logger.warning(
                    "%s error (attempt %d/%d), retrying in %ss: %s",
                    operation_name,
                    attempt + 1,
                    MAX_RETRIES,
                    delay,
                    e,
                )
                sleep(delay)
            else:
                logger.error("%s failed after %d attempts: %s", operation_name, MAX_RETRIES, e)
    raise last_error


def rewrite_commit_message(message: str, diff: str) -> str:
    settings = get_settings()
    if not settings.anthropic_api_key:
        raise RewriteError(NOT_CONFIGURED_MESSAGE)

    prompt = build_prompt(message, diff, settings.rewrite_max_diff_chars)

    try:
        with anthropic.Anthropic(api_key=settings.anthropic_api_key) as client:
            response = _call_with_retry(
                lambda: client.messages.create(
                    model=settings.rewrite_model,
                    max_tokens=settings.rewrite_max_tokens,
                    messages=[{"role": "user", "content": prompt}],
                )
            )
    except APIError as exc:
        logger.error("Anthropic request failed: %s", exc)
        raise RewriteError(GENERIC_MESSAGE) from exc

    if getattr(response, "stop_reason", None) == "refusal":
        raise RewriteError(SAFETY_MESSAGE)

    text = "".join(
        block.text for block in response.content if getattr(block, "type", None) == "text"
    ).strip()
    if not text:
        raise RewriteError(GENERIC_MESSAGE)
    return text


def rewrite_commit(owner: str, repo: str, sha: str) -> RewriteResult:
    detail = github_service.fetch_commit_detail(owner, repo, sha)
    original = detail["commit"].get("message") or ""
    diff = extract_diff(detail)
    if not diff.strip():
        raise RewriteError(EMPTY_DIFF_MESSAGE)

    rewritten = rewrite_commit_message(original, diff)
    logger.info("Rewrote commit message for %s/%s@%s", owner, repo, sha[:7])
    return RewriteResult(sha=detail.get("sha") or sha, original_message=original, rewritten_message=rewritten)

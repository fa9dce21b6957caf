"""
Page state and helpers for the Streamlit shell that do not touch `st`.
"""

import datetime as dt
import html
import os
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import requests
from dotenv import load_dotenv

load_dotenv()

API_BASE = os.getenv("API_BASE", "http://127.0.0.1:8000")

INVALID_URL_MESSAGE = "Please enter a valid GitHub repository URL."
NOT_GITHUB_MESSAGE = "URL must be a valid GitHub repository link (e.g., https://github.com/owner/repo)."
MISSING_REPO_MESSAGE = "Invalid GitHub repository URL."

GITHUB_PREFIX = "https://github.com/"

# markdown punctuation only; <, >, & and quotes are left to html.escape
_MARKDOWN_SPECIALS = re.compile(r"([\\`*_{}\[\]()#+\-.!|~])")


class ApiError(Exception):
    pass


@dataclass
class AppState:
    """Everything the page remembers between reruns."""

    owner: Optional[str] = None
    repo: Optional[str] = None
    repo_url: Optional[str] = None
    commits: List[Dict[str, Any]] = field(default_factory=list)
    window: str = "all_time"
    report: Optional[Dict[str, Any]] = None
    report_key: Optional[Tuple[str, str]] = None
    error: Optional[str] = None
    submission: Optional[str] = None
    rewrite: Optional[Dict[str, Any]] = None


# Small HTTP helper so all API calls share timeout/error handling.
def post(path: str, payload: Dict[str, Any]) -> Any:
    url = f"{API_BASE}{path}"
    try:
        resp = requests.post(url, json=payload, timeout=180)
    except requests.RequestException as exc:
        raise ApiError(f"API 요청 실패: {url} / {exc}") from exc
    if not resp.ok:
        try:
            detail = resp.json().get("detail")
        except ValueError:
            detail = None
        if not isinstance(detail, str):
            detail = f"API 요청 실패 ({resp.status_code}): {url}"
        raise ApiError(detail)
    return resp.json()


def escape_text(value: Any) -> str:
    """
    Make commit-controlled text (author names, logins, messages) inert inside
    `st.markdown(..., unsafe_allow_html=True)`.
    """
    text = "" if value is None else str(value)
    return html.escape(_MARKDOWN_SPECIALS.sub(r"\\\1", text), quote=True)


def safe_github_link(url: Optional[str]) -> Optional[str]:
    """Attribute-safe href, or None for anything not on github.com."""
    if not url or not url.startswith(GITHUB_PREFIX):
        return None
    return html.escape(url, quote=True)


def validate_repo_url(url: str) -> Optional[str]:
    url = (url or "").strip()
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return INVALID_URL_MESSAGE
    if not url.startswith(GITHUB_PREFIX):
        return NOT_GITHUB_MESSAGE
    if len([p for p in parsed.path.split("/") if p]) < 2:
        return MISSING_REPO_MESSAGE
    return None


def time_ago(iso: str, now: Optional[dt.datetime] = None) -> str:
    when = dt.datetime.fromisoformat(iso.replace("Z", "+00:00"))
    if when.tzinfo is None:
        when = when.replace(tzinfo=dt.timezone.utc)
    now = now or dt.datetime.now(dt.timezone.utc)
    seconds = int((now - when).total_seconds())
    for unit_seconds, label in ((31536000, "년"), (2592000, "개월"), (86400, "일"), (3600, "시간"), (60, "분")):
        if seconds >= unit_seconds:
            return f"{seconds // unit_seconds}{label} 전"
    return "방금 전"


def submit_repo(state: AppState, url: str) -> AppState:
    """
    Fetch commits for a new repository. The previous state is replaced
    wholesale; a reply for a superseded submission is dropped.
    """
    submission = uuid.uuid4().hex
    state.submission = submission
    fresh = AppState(window=state.window, submission=submission)
    try:
        commits = post("/fetch/commits", {"url": url})
    except ApiError as exc:
        commits = []
        fresh.error = str(exc)

    if state.submission != submission:
        return state
    if fresh.error:
        return fresh
    owner, repo = [p for p in urlparse(url).path.split("/") if p][:2]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    fresh.owner, fresh.repo, fresh.repo_url = owner, repo, url
    fresh.commits = commits or []
    return fresh

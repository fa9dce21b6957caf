"""
Thin wrapper around GitHub REST API for a repository's commits.

Only the API's default page is fetched. Failures are translated into
GitHubAPIError with a user-facing message so routers never see raw
`requests` exceptions.
"""

import logging
import re
from datetime import datetime
from time import sleep
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import requests

from backend.core.config import get_settings
from backend.core.exceptions import (
    ErrorKind,
    GitHubAPIError,
    InvalidRepoUrl,
    MalformedRecord,
)
from backend.models.schemas import CommitRecord

logger = logging.getLogger(__name__)

API_BASE = "https://api.github.com"
MAX_SERVER_RETRIES = 2
MAX_PER_PAGE = 100

_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+$")
_SHA_RE = re.compile(r"^[0-9a-fA-F]{4,40}$")

URL_HINT = "URL must be a valid GitHub repository link (e.g., https://github.com/owner/repo)."
NOT_FOUND_MESSAGE = "Repository not found. Please check the URL."
RATE_LIMIT_MESSAGE = "GitHub API rate limit exceeded. Please try again later."
NETWORK_MESSAGE = "An unexpected network error occurred."


def _normalize_owner_repo(owner: str, repo: str) -> Tuple[str, str]:
    """
    Allow users to pass either (owner, repo) separately or a combined 'owner/repo' string.
    """
    owner = (owner or "").strip()
    repo = (repo or "").strip()
    if "/" in repo and not owner:
        parts = repo.split("/", 1)
        if len(parts) == 2:
            owner, repo = parts[0].strip(), parts[1].strip()
    if "/" in owner and not repo:
        parts = owner.split("/", 1)
        if len(parts) == 2:
            owner, repo = parts[0].strip(), parts[1].strip()
    return owner, repo


def _check_names(owner: str, repo: str) -> Tuple[str, str]:
    for name in (owner, repo):
        if not name or name in (".", "..") or not _NAME_RE.match(name):
            raise InvalidRepoUrl(URL_HINT)
    return owner, repo


def parse_repo_url(url: str) -> Tuple[str, str]:
    """
    https://github.com/<owner>/<repo>[/...] -> (owner, repo).
    """
    parsed = urlparse((url or "").strip())
    if parsed.scheme != "https" or parsed.netloc.lower() != "github.com":
        raise InvalidRepoUrl(URL_HINT)
    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) < 2:
        raise InvalidRepoUrl("Invalid GitHub repository URL.")
    owner, repo = parts[0], parts[1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    return _check_names(owner, repo)


def resolve_repo(
    owner: Optional[str] = None,
    repo: Optional[str] = None,
    url: Optional[str] = None,
) -> Tuple[str, str]:
    if url:
        return parse_repo_url(url)
    return _check_names(*_normalize_owner_repo(owner or "", repo or ""))


def _headers(token: Optional[str]) -> Dict[str, str]:
    # 플레이스홀더/짧은 토큰은 무시하고 비인증 호출로 처리
    if token:
        token = token.strip()
        if not token or "your_token" in token or len(token) < 20:
            token = None

    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
        "User-Agent": "GitView",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _get(url: str, params: Optional[Dict[str, str]] = None) -> requests.Response:
    settings = get_settings()
    use_token = settings.github_token
    attempt = 0
    with requests.Session() as session:
        while True:
            try:
                resp = session.get(
                    url,
                    headers=_headers(use_token),
                    params=params,
                    timeout=settings.github_timeout,
                )
            except (requests.Timeout, requests.ConnectionError) as exc:
                logger.warning("GitHub request failed: %s (%s)", url, exc)
                raise GitHubAPIError(ErrorKind.NETWORK, NETWORK_MESSAGE) from exc

            # 인증 실패 시 토큰 제거 후 한 번 재시도
            if resp.status_code == 401 and use_token:
                logger.info("GitHub rejected the configured token, retrying unauthenticated")
                use_token = None
                continue

            if resp.status_code >= 500 and attempt < MAX_SERVER_RETRIES:
                sleep(2 ** attempt)
                attempt += 1
                continue

            return resp


def _error_message(resp: requests.Response) -> Optional[str]:
    try:
        data = resp.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        return data.get("message")
    return None


def _raise_for_status(resp: requests.Response, what: str, not_found_message: str) -> None:
    if resp.ok:
        return
    status = resp.status_code
    if status == 404:
        raise GitHubAPIError(ErrorKind.NOT_FOUND, not_found_message, status_code=status)
    if status in (403, 429):
        reset = resp.headers.get("X-RateLimit-Reset")
        raise GitHubAPIError(
            ErrorKind.RATE_LIMITED,
            RATE_LIMIT_MESSAGE,
            status_code=status,
            rate_limit_reset=int(reset) if reset and reset.isdigit() else None,
        )
    message = _error_message(resp) or f"Failed to fetch {what} (status: {status})."
    logger.warning("GitHub returned %s for %s: %s", status, resp.url, message)
    raise GitHubAPIError(ErrorKind.UPSTREAM, message, status_code=status)


def normalize_commit(raw: Dict[str, Any]) -> CommitRecord:
    """
    Flatten one /commits item into a CommitRecord.

    `author` (the platform account) is null for commits whose email is not
    linked to a GitHub user, so login and avatar are optional; the date and
    name under `commit.author` always come from the git metadata.
    """
    if not isinstance(raw, dict):
        raise MalformedRecord(None, "commit")
    sha = raw.get("sha")
    if not sha:
        raise MalformedRecord(None, "sha")
    meta = raw.get("commit") or {}
    git_author = meta.get("author") or {}
    date_str = git_author.get("date")
    if not date_str:
        raise MalformedRecord(sha, "author_date")
    try:
        author_date = datetime.fromisoformat(date_str.replace("Z", "+00:00"))
    except ValueError as exc:
        raise MalformedRecord(sha, "author_date") from exc

    account = raw.get("author") or {}
    login = account.get("login") or None
    return CommitRecord(
        sha=sha,
        author_date=author_date,
        author_login=login,
        author_display_name=git_author.get("name") or login or "unknown",
        author_avatar_url=account.get("avatar_url") if login else None,
        message=meta.get("message") or "",
        html_url=raw.get("html_url"),
    )


def fetch_commits(owner: str, repo: str) -> List[CommitRecord]:
    owner, repo = resolve_repo(owner, repo)
    settings = get_settings()
    url = f"{API_BASE}/repos/{owner}/{repo}/commits"
    params = {"per_page": str(max(1, min(settings.commits_per_page, MAX_PER_PAGE)))}

    resp = _get(url, params=params)
    _raise_for_status(resp, "commits", NOT_FOUND_MESSAGE)
    data = resp.json()
    if not isinstance(data, list):
        raise GitHubAPIError(ErrorKind.UPSTREAM, "Unexpected response from GitHub.", resp.status_code)

    commits = [normalize_commit(item) for item in data]
    logger.info("Fetched %d commits for %s/%s", len(commits), owner, repo)
    return commits


def fetch_commit_detail(owner: str, repo: str, sha: str) -> Dict[str, Any]:
    """
    Single commit including `files[].patch`, used for the AI rewrite.
    """
    owner, repo = resolve_repo(owner, repo)
    if not _SHA_RE.match(sha or ""):
        raise GitHubAPIError(ErrorKind.NOT_FOUND, f"No commit found for SHA: {sha}", 404)
    url = f"{API_BASE}/repos/{owner}/{repo}/commits/{sha}"

    resp = _get(url)
    _raise_for_status(resp, "commit details", f"No commit found for SHA: {sha}")
    data = resp.json()
    if not isinstance(data, dict) or not isinstance(data.get("commit"), dict):
        raise GitHubAPIError(ErrorKind.UPSTREAM, "Unexpected response from GitHub.", resp.status_code)
    return data

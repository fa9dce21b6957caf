"""Exceptions raised by the GitView backend services."""

from enum import Enum
from typing import Optional


class GitViewError(Exception):
    """Base class for all service errors."""


class InvalidSelection(GitViewError):
    """An unrecognized time window reached the aggregator."""

    def __init__(self, selection: object):
        self.selection = selection
        super().__init__(f"Unknown time window: {selection!r}")


class MalformedRecord(GitViewError):
    """A commit record is missing a required field."""

    def __init__(self, sha: Optional[str], field: str):
        self.sha = sha
        self.field = field
        super().__init__(f"Commit {sha or '<unknown>'} is missing required field '{field}'")


class InvalidRepoUrl(GitViewError):
    """The submitted URL does not point at a GitHub repository."""


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    UPSTREAM = "upstream"
    NETWORK = "network"


class GitHubAPIError(GitViewError):
    """Error from GitHub API, already translated to a user-facing message."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status_code: Optional[int] = None,
        rate_limit_reset: Optional[int] = None,
    ):
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.rate_limit_reset = rate_limit_reset  # unix timestamp
        super().__init__(message)


class RewriteError(GitViewError):
    """The AI rewrite could not produce a message."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

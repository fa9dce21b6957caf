"""Translate service exceptions into HTTP errors."""

from fastapi import HTTPException

from backend.core.exceptions import (
    ErrorKind,
    GitHubAPIError,
    GitViewError,
    InvalidRepoUrl,
    InvalidSelection,
    MalformedRecord,
    RewriteError,
)

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.UPSTREAM: 502,
    ErrorKind.NETWORK: 504,
}


def to_http_exception(exc: GitViewError, malformed_status: int = 422) -> HTTPException:
    """
    `malformed_status` lets routes blame GitHub (502) instead of the caller
    when a bad record came back from upstream.
    """
    if isinstance(exc, GitHubAPIError):
        headers = None
        if exc.kind is ErrorKind.RATE_LIMITED and exc.rate_limit_reset:
            headers = {"X-RateLimit-Reset": str(exc.rate_limit_reset)}
        return HTTPException(status_code=STATUS_BY_KIND[exc.kind], detail=exc.message, headers=headers)
    if isinstance(exc, MalformedRecord):
        return HTTPException(status_code=malformed_status, detail=str(exc))
    if isinstance(exc, (InvalidRepoUrl, InvalidSelection)):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, RewriteError):
        return HTTPException(status_code=502, detail=exc.message)
    return HTTPException(status_code=500, detail=str(exc))

from typing import List

from fastapi import APIRouter

from backend.core.exceptions import GitViewError
from backend.models.schemas import CommitRecord, RepoRequest
from backend.routers.errors import to_http_exception
from backend.services import github_service

router = APIRouter(prefix="/fetch", tags=["fetch"])


@router.post("/commits", response_model=List[CommitRecord])
def get_commits(payload: RepoRequest):
    """
    Latest page of commits for a repository, newest first.
    """
    try:
        owner, repo = github_service.resolve_repo(payload.owner, payload.repo, payload.url)
        return github_service.fetch_commits(owner, repo)
    except GitViewError as exc:
        raise to_http_exception(exc, malformed_status=502) from exc

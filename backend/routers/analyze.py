# backend/routers/analyze.py
import logging

from fastapi import APIRouter

from backend.core.exceptions import GitViewError
from backend.models.schemas import (
    ActivityReport,
    ActivityRequest,
    ActivityResponse,
    AggregateRequest,
)
from backend.routers.errors import to_http_exception
from backend.services import activity_service, github_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analyze", tags=["analyze"])


@router.post("/activity", response_model=ActivityResponse)
def activity(payload: ActivityRequest):
    try:
        owner, repo = github_service.resolve_repo(payload.owner, payload.repo, payload.url)
        commits = github_service.fetch_commits(owner, repo)
    except GitViewError as exc:
        # upstream이 준 레코드가 깨졌으면 GitHub 쪽 문제
        raise to_http_exception(exc, malformed_status=502) from exc

    try:
        report = activity_service.aggregate_activity(commits, payload.window)
    except GitViewError as exc:
        raise to_http_exception(exc) from exc

    return ActivityResponse(**report.model_dump(), commits=commits)


@router.post("/aggregate", response_model=ActivityReport)
def aggregate(payload: AggregateRequest):
    """
    Re-derive the charts from commits the client already holds, e.g. after
    switching the time window.
    """
    try:
        return activity_service.aggregate_activity(payload.commits, payload.window, now=payload.now)
    except GitViewError as exc:
        logger.warning("Aggregation rejected: %s", exc)
        raise to_http_exception(exc) from exc

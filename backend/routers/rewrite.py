# backend/routers/rewrite.py
from fastapi import APIRouter

from backend.core.exceptions import GitViewError
from backend.models.schemas import RewriteRequest, RewriteResult
from backend.routers.errors import to_http_exception
from backend.services import rewrite_service

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/rewrite", response_model=RewriteResult)
def rewrite(payload: RewriteRequest):
    try:
        return rewrite_service.rewrite_commit(payload.owner, payload.repo, payload.sha)
    except GitViewError as exc:
        raise to_http_exception(exc) from exc

"""API endpoint tests for POST /ai/rewrite."""

from __future__ import annotations

from unittest.mock import patch

from fastapi.testclient import TestClient

from backend.core.exceptions import ErrorKind, GitHubAPIError, RewriteError
from backend.models.schemas import RewriteResult

REWRITE = "backend.services.rewrite_service.rewrite_commit"


class TestRewriteEndpoint:
    def test_success(self, api_client: TestClient):
        result = RewriteResult(sha="abc1234", original_message="fix", rewritten_message="Fix login redirect")
        with patch(REWRITE, return_value=result) as rewrite:
            resp = api_client.post("/ai/rewrite", json={"owner": "octo", "repo": "repo", "sha": "abc1234"})

        assert resp.status_code == 200
        assert resp.json() == {
            "sha": "abc1234",
            "original_message": "fix",
            "rewritten_message": "Fix login redirect",
        }
        rewrite.assert_called_once_with("octo", "repo", "abc1234")

    def test_rewrite_error_is_bad_gateway(self, api_client: TestClient):
        with patch(REWRITE, side_effect=RewriteError("The AI model refused to generate a response due to safety concerns.")):
            resp = api_client.post("/ai/rewrite", json={"owner": "octo", "repo": "repo", "sha": "abc1234"})

        assert resp.status_code == 502
        assert "safety" in resp.json()["detail"]

    def test_unknown_commit(self, api_client: TestClient):
        error = GitHubAPIError(ErrorKind.NOT_FOUND, "No commit found for SHA: abc1234", 404)
        with patch(REWRITE, side_effect=error):
            resp = api_client.post("/ai/rewrite", json={"owner": "octo", "repo": "repo", "sha": "abc1234"})

        assert resp.status_code == 404

    def test_missing_sha(self, api_client: TestClient):
        resp = api_client.post("/ai/rewrite", json={"owner": "octo", "repo": "repo"})

        assert resp.status_code == 422

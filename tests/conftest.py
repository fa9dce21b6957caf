"""Root conftest: isolated settings and an API client for every test.

Settings are cached with lru_cache, so each test starts from a clean
environment (no real GitHub token, a dummy Anthropic key) and a fresh cache.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from backend.core.config import get_settings


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch):
    for name in ("GITHUB_TOKEN", "COMMITS_PER_PAGE", "REWRITE_MODEL", "REWRITE_MAX_DIFF_CHARS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-anthropic-key")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def api_client() -> TestClient:
    from backend.main import app

    return TestClient(app)

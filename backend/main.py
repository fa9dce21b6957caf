import logging

from fastapi import FastAPI
from backend.core.config import get_settings
from backend.routers import analyze, fetch, rewrite

def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title="GitView", version="0.1.0")
    app.state.settings = settings
    app.include_router(fetch.router)
    app.include_router(analyze.router)
    app.include_router(rewrite.router)
    return app

app = create_app()

# backend/impact/main.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from impact.config import get_settings
from impact.db import healthcheck
from impact.errors import ImpactError
from impact.routers.missions import router as missions_router
from impact.routers.users import router as users_router
from impact.routers.leaderboard import router as leaderboard_router
from impact.routers.transactions import router as transactions_router

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Impact Missions API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_origin],
        allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1|0\.0\.0\.0)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=600,
    )

    @app.exception_handler(ImpactError)
    async def impact_error(request: Request, exc: ImpactError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path}: {exc.detail}")
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    # Health
    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/health/db")
    def health_db():
        return healthcheck()

    app.include_router(users_router)
    app.include_router(missions_router)
    app.include_router(leaderboard_router)
    app.include_router(transactions_router)

    return app


app = build_app()

from __future__ import annotations

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from edubro.api import (
    routes_admin,
    routes_auth,
    routes_chats,
    routes_income,
    routes_issues,
    routes_notifications,
    routes_reviews,
    routes_sessions,
    routes_tutors,
)
from edubro.core.config import app_config, logger
from edubro.core.exception_handlers import setup_exception_handlers
from edubro.services.bootstrap import initialize_database


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: טבלאות + admin + מקצועות ברירת מחדל
    logger.info("Starting up EduBro API")
    if not initialize_database():
        logger.error("Database initialization failed, continuing without seed data")
    os.makedirs(app_config.media.media_dir, exist_ok=True)
    yield
    logger.info("Shutting down EduBro API")


def create_app() -> FastAPI:
    logger.info("Creating FastAPI app")
    app = FastAPI(
        title="EduBro",
        version="0.1.0",
        lifespan=lifespan,
    )

    setup_exception_handlers(app)

    # Routers
    app.include_router(routes_auth.router)
    app.include_router(routes_tutors.router)
    app.include_router(routes_sessions.router)
    app.include_router(routes_reviews.router)
    app.include_router(routes_issues.router)
    app.include_router(routes_admin.router)
    app.include_router(routes_income.router)
    app.include_router(routes_notifications.router)
    app.include_router(routes_chats.router)

    # תמונות פרופיל שהועלו
    app.mount(
        "/media",
        StaticFiles(directory=app_config.media.media_dir, check_dir=False),
        name="media",
    )

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok"}

    return app


app = create_app()

"""
Travel Diary — FastAPI application entry-point.

Run with:
    uvicorn travel_diary.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from travel_diary.config import Settings, settings as default_settings
from travel_diary.database import build_engine, build_session_factory, create_schema
from travel_diary.errors import DiaryError, StorageError
from travel_diary.services.entries import EntryRepository
from travel_diary.services.media import ImageTransformer
from travel_diary.services.storage import MediaStore, sweep_orphans
from travel_diary.services.submissions import SubmissionOrchestrator

# ── Import routers ──
from travel_diary.routers import admin, entries

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    # ── Lifespan: wire services, create tables, sweep orphans ──
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = build_engine(settings)
        session_factory = build_session_factory(engine)
        store = MediaStore(settings.MEDIA_ROOT)
        store.ensure_layout()
        repository = EntryRepository(session_factory, settings)

        app.state.settings = settings
        app.state.session_factory = session_factory
        app.state.store = store
        app.state.repository = repository
        app.state.orchestrator = SubmissionOrchestrator(
            settings, repository, store, ImageTransformer(settings, store)
        )

        await create_schema(engine)
        if settings.RECONCILE_ON_STARTUP:
            sweep_orphans(
                store,
                await repository.referenced_media(),
                grace_seconds=settings.ORPHAN_GRACE_SECONDS,
            )
        yield
        await engine.dispose()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Travel diaries with media uploads and moderated publishing.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=("*",))

    # ── Error taxonomy → HTTP ──
    @app.exception_handler(DiaryError)
    async def diary_error_handler(request: Request, exc: DiaryError):
        if isinstance(exc, StorageError):
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    # ── Finished media ──
    app.mount(
        settings.MEDIA_URL_PREFIX,
        StaticFiles(directory=settings.MEDIA_ROOT, check_dir=False),
        name="media",
    )

    # ── Register API routers ──
    app.include_router(entries.router)
    app.include_router(admin.router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()

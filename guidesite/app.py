"""
FastAPI application factory for the guide site backend.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from guidesite.auth import AdminAuth
from guidesite.bootstrap import initialize
from guidesite.config import Settings, get_settings
from guidesite.db import StoreError, connect_backend
from guidesite.errors import AppError
from guidesite.repositories import (
    CategoryRepository,
    FaqRepository,
    PostRepository,
    TrainingStepRepository,
)
from guidesite.routes import router
from guidesite.sessions import SessionStore
from guidesite.settings_store import SettingsStore
from guidesite.storage import LocalStorageClient, S3StorageClient, StorageClient

logger = logging.getLogger(__name__)


def _build_storage(settings: Settings) -> StorageClient:
    if settings.s3_bucket:
        return S3StorageClient(
            bucket=settings.s3_bucket,
            region=settings.s3_region or "",
            endpoint=settings.s3_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_base_url=settings.s3_public_base_url or "",
        )
    return LocalStorageClient(
        directory=settings.effective_uploads_dir,
        url_prefix=settings.uploads_url_prefix,
    )


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.message},
        )

    @app.exception_handler(StoreError)
    async def handle_store_error(request: Request, exc: StoreError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=500, content={"success": False, "message": str(exc)}
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        fields = sorted(
            {".".join(str(part) for part in err.get("loc", ())[1:]) for err in exc.errors()}
        )
        message = "Invalid or missing fields"
        if any(fields):
            message = f"{message}: {', '.join(f for f in fields if f)}"
        return JSONResponse(status_code=400, content={"success": False, "message": message})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the app. Connects to the configured database, creates the schema
    and seeds it before returning, so a bad database URL fails here.
    """
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    backend = connect_backend(settings)
    initialize(backend, settings)

    app = FastAPI(title="Guide Site Backend", version="0.1.0")

    settings_store = SettingsStore(backend)
    app.state.settings = settings
    app.state.backend = backend
    app.state.posts = PostRepository(backend)
    app.state.categories = CategoryRepository(backend)
    app.state.faqs = FaqRepository(backend)
    app.state.training_steps = TrainingStepRepository(backend)
    app.state.settings_store = settings_store
    app.state.auth = AdminAuth(
        settings_store,
        SessionStore(backend, settings.session_ttl_seconds),
        settings.default_admin_password,
    )
    app.state.storage = _build_storage(settings)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        return await call_next(request)

    _register_error_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)

    if isinstance(app.state.storage, LocalStorageClient):
        app.mount(
            settings.uploads_url_prefix,
            StaticFiles(directory=app.state.storage.directory),
            name="uploads",
        )

    @app.on_event("shutdown")
    def dispose_backend():
        backend.dispose()

    return app

"""
Dependency wiring for the FastAPI app.

``create_app`` builds every handle once and keeps it on ``app.state``; these
functions hand them to the routes.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from guidesite.auth import AdminAuth
from guidesite.config import Settings
from guidesite.db import Backend
from guidesite.repositories import (
    CategoryRepository,
    FaqRepository,
    PostRepository,
    TrainingStepRepository,
)
from guidesite.settings_store import SettingsStore
from guidesite.storage import StorageClient


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_backend(request: Request) -> Backend:
    return request.app.state.backend


def get_posts(request: Request) -> PostRepository:
    return request.app.state.posts


def get_categories(request: Request) -> CategoryRepository:
    return request.app.state.categories


def get_faqs(request: Request) -> FaqRepository:
    return request.app.state.faqs


def get_training_steps(request: Request) -> TrainingStepRepository:
    return request.app.state.training_steps


def get_settings_store(request: Request) -> SettingsStore:
    return request.app.state.settings_store


def get_auth(request: Request) -> AdminAuth:
    return request.app.state.auth


def get_storage_client(request: Request) -> StorageClient:
    return request.app.state.storage


def get_session_id(request: Request) -> Optional[str]:
    return request.cookies.get(request.app.state.settings.session_cookie_name)


def require_admin(request: Request) -> None:
    """Reject the request unless its session is authenticated."""
    get_auth(request).require(get_session_id(request))

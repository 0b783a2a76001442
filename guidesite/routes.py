"""
HTTP routes for the guide site API.

Reads are public. Every route that changes content, settings or uploads
requires an authenticated admin session.
"""

from __future__ import annotations

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Request, Response, UploadFile
from fastapi.responses import JSONResponse

from guidesite.auth import AdminAuth, hash_password
from guidesite.config import Settings
from guidesite.db import Backend
from guidesite.dependencies import (
    get_app_settings,
    get_auth,
    get_backend,
    get_categories,
    get_faqs,
    get_posts,
    get_session_id,
    get_settings_store,
    get_storage_client,
    get_training_steps,
    require_admin,
)
from guidesite.errors import NotFoundError, UploadMissingError, ValidationMissingError
from guidesite.repositories import (
    CategoryRepository,
    FaqRepository,
    PostRepository,
    TrainingStepRepository,
)
from guidesite.schemas import (
    CategoryBulkPayload,
    CategoryPayload,
    CategoryResponse,
    CreatedResponse,
    DbStatusResponse,
    DeletePayload,
    DeleteResponse,
    ExportResponse,
    FaqPayload,
    FaqResponse,
    LoginPayload,
    PostPayload,
    PostResponse,
    SettingsPayload,
    SuccessResponse,
    TrainingProcessPayload,
    TrainingStepResponse,
    UploadResponse,
)
from guidesite.settings_store import (
    ADMIN_PASSWORD,
    CONTACT_INFO,
    CONTACT_LINKS,
    LOGO_URL,
    PRIMARY_COLOR,
    SITE_NAME,
    SettingsStore,
)
from guidesite.storage import StorageClient

logger = logging.getLogger(__name__)

router = APIRouter()

NO_CACHE = "no-store, no-cache, must-revalidate, proxy-revalidate"


def _require_id(payload: DeletePayload) -> int:
    if not payload.id:
        raise ValidationMissingError("ID is required")
    return payload.id


def _parse_contact_links(value: Optional[str]) -> list:
    if not value:
        return []
    try:
        links = json.loads(value)
    except ValueError:
        logger.warning("Stored contactLinks is not valid JSON; returning empty list")
        return []
    return links if isinstance(links, list) else []


def _public_settings(raw: dict[str, str]) -> dict:
    data = {key: value for key, value in raw.items() if key != ADMIN_PASSWORD}
    if CONTACT_LINKS in data:
        data[CONTACT_LINKS] = _parse_contact_links(data[CONTACT_LINKS])
    return data


def _set_session_cookie(response: Response, settings: Settings, sid: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=sid,
        max_age=settings.session_ttl_seconds,
        path="/",
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=settings.session_cookie_samesite,
    )


# Posts


@router.get("/posts", response_model=list[PostResponse])
def list_posts(posts: PostRepository = Depends(get_posts)):
    return [post.as_dict() for post in posts.list_all()]


@router.get("/posts/{post_id}", response_model=PostResponse)
def get_post(post_id: int, posts: PostRepository = Depends(get_posts)):
    post = posts.get(post_id)
    if post is None:
        raise NotFoundError("Post not found")
    return post.as_dict()


@router.post(
    "/posts", response_model=CreatedResponse, dependencies=[Depends(require_admin)]
)
def create_post(payload: PostPayload, posts: PostRepository = Depends(get_posts)):
    post_id = posts.create(
        payload.title, payload.content, payload.category, payload.icon
    )
    return CreatedResponse(id=post_id)


@router.put(
    "/posts/{post_id}",
    response_model=SuccessResponse,
    dependencies=[Depends(require_admin)],
)
def update_post(
    post_id: int, payload: PostPayload, posts: PostRepository = Depends(get_posts)
):
    if not posts.update(
        post_id, payload.title, payload.content, payload.category, payload.icon
    ):
        raise NotFoundError("Post not found")
    return SuccessResponse(success=True)


@router.post(
    "/posts/delete",
    response_model=DeleteResponse,
    dependencies=[Depends(require_admin)],
)
def delete_post(payload: DeletePayload, posts: PostRepository = Depends(get_posts)):
    changes = posts.delete(_require_id(payload))
    return DeleteResponse(success=True, changes=changes)


# Categories


@router.get("/categories", response_model=list[CategoryResponse])
def list_categories(categories: CategoryRepository = Depends(get_categories)):
    return [category.as_dict() for category in categories.list_all()]


@router.post(
    "/categories",
    response_model=CreatedResponse,
    dependencies=[Depends(require_admin)],
)
def create_category(
    payload: CategoryPayload,
    categories: CategoryRepository = Depends(get_categories),
):
    category_id = categories.create(payload.name, payload.display_order)
    return CreatedResponse(id=category_id)


@router.delete(
    "/categories/{category_id}",
    response_model=DeleteResponse,
    dependencies=[Depends(require_admin)],
)
def delete_category(
    category_id: int, categories: CategoryRepository = Depends(get_categories)
):
    changes = categories.delete(category_id)
    return DeleteResponse(success=True, changes=changes)


@router.post(
    "/categories/bulk",
    response_model=SuccessResponse,
    dependencies=[Depends(require_admin)],
)
def replace_categories(
    payload: CategoryBulkPayload,
    categories: CategoryRepository = Depends(get_categories),
):
    logger.info("Bulk updating categories")
    categories.replace_all(item.model_dump() for item in payload.categories)
    return SuccessResponse(success=True)


# FAQs


@router.get("/faqs", response_model=list[FaqResponse])
def list_faqs(faqs: FaqRepository = Depends(get_faqs)):
    return [faq.as_dict() for faq in faqs.list_all()]


@router.get("/faqs/{faq_id}", response_model=FaqResponse)
def get_faq(faq_id: int, faqs: FaqRepository = Depends(get_faqs)):
    faq = faqs.get(faq_id)
    if faq is None:
        raise NotFoundError("FAQ not found")
    return faq.as_dict()


@router.post(
    "/faqs", response_model=CreatedResponse, dependencies=[Depends(require_admin)]
)
def create_faq(payload: FaqPayload, faqs: FaqRepository = Depends(get_faqs)):
    faq_id = faqs.create(payload.question, payload.answer)
    return CreatedResponse(id=faq_id)


@router.put(
    "/faqs/{faq_id}",
    response_model=SuccessResponse,
    dependencies=[Depends(require_admin)],
)
def update_faq(
    faq_id: int, payload: FaqPayload, faqs: FaqRepository = Depends(get_faqs)
):
    if not faqs.update(faq_id, payload.question, payload.answer):
        raise NotFoundError("FAQ not found")
    return SuccessResponse(success=True)


@router.post(
    "/faqs/delete",
    response_model=DeleteResponse,
    dependencies=[Depends(require_admin)],
)
def delete_faq(payload: DeletePayload, faqs: FaqRepository = Depends(get_faqs)):
    changes = faqs.delete(_require_id(payload))
    return DeleteResponse(success=True, changes=changes)


# Training process


@router.get("/training-process", response_model=list[TrainingStepResponse])
def list_training_steps(
    steps: TrainingStepRepository = Depends(get_training_steps),
):
    return [step.as_dict() for step in steps.list_all()]


@router.post(
    "/training-process",
    response_model=SuccessResponse,
    dependencies=[Depends(require_admin)],
)
def replace_training_steps(
    payload: TrainingProcessPayload,
    steps: TrainingStepRepository = Depends(get_training_steps),
):
    steps.replace_all(step.model_dump() for step in payload.steps)
    return SuccessResponse(success=True)


# Settings


@router.get("/settings")
def get_site_settings(store: SettingsStore = Depends(get_settings_store)):
    return _public_settings(store.get_all())


@router.post(
    "/settings",
    response_model=SuccessResponse,
    dependencies=[Depends(require_admin)],
)
def update_site_settings(
    payload: SettingsPayload,
    store: SettingsStore = Depends(get_settings_store),
):
    values: dict[str, str] = {}
    for key in (SITE_NAME, PRIMARY_COLOR, LOGO_URL):
        value = getattr(payload, key)
        if value:
            values[key] = value
    if payload.adminPassword:
        values[ADMIN_PASSWORD] = hash_password(payload.adminPassword)
    if payload.contactInfo is not None:
        values[CONTACT_INFO] = payload.contactInfo
    if payload.contactLinks is not None:
        values[CONTACT_LINKS] = json.dumps(
            [link.model_dump() for link in payload.contactLinks], ensure_ascii=False
        )
    store.set_many(values)
    return SuccessResponse(success=True)


# Admin session


@router.post("/admin/login", response_model=SuccessResponse)
def admin_login(
    payload: LoginPayload,
    request: Request,
    response: Response,
    auth: AdminAuth = Depends(get_auth),
    settings: Settings = Depends(get_app_settings),
):
    if payload.password is None:
        raise ValidationMissingError("Password is required")
    sid = auth.login(payload.password, get_session_id(request))
    _set_session_cookie(response, settings, sid)
    return SuccessResponse(success=True)


@router.get("/admin/check", response_model=SuccessResponse)
def admin_check(
    request: Request,
    response: Response,
    auth: AdminAuth = Depends(get_auth),
):
    response.headers["Cache-Control"] = NO_CACHE
    if not auth.is_authenticated(get_session_id(request)):
        return JSONResponse(
            status_code=401,
            content={"success": False},
            headers={"Cache-Control": NO_CACHE},
        )
    return SuccessResponse(success=True)


@router.post("/admin/logout", response_model=SuccessResponse)
def admin_logout(
    request: Request,
    response: Response,
    auth: AdminAuth = Depends(get_auth),
    settings: Settings = Depends(get_app_settings),
):
    auth.logout(get_session_id(request))
    response.delete_cookie(
        settings.session_cookie_name,
        path="/",
        secure=settings.session_cookie_secure,
        httponly=True,
        samesite=settings.session_cookie_samesite,
    )
    return SuccessResponse(success=True)


@router.get(
    "/admin/export",
    response_model=ExportResponse,
    dependencies=[Depends(require_admin)],
)
def export_content(
    posts: PostRepository = Depends(get_posts),
    categories: CategoryRepository = Depends(get_categories),
    faqs: FaqRepository = Depends(get_faqs),
    steps: TrainingStepRepository = Depends(get_training_steps),
    store: SettingsStore = Depends(get_settings_store),
):
    """Snapshot of the current content in the seed-file format."""
    return ExportResponse(
        settings=_public_settings(store.get_all()),
        posts=[post.as_seed() for post in posts.list_all()],
        categories=[category.as_seed() for category in categories.list_all()],
        faqs=[faq.as_seed() for faq in faqs.list_all()],
        training_process=[step.as_seed() for step in steps.list_all()],
    )


# Uploads and status


@router.post(
    "/upload", response_model=UploadResponse, dependencies=[Depends(require_admin)]
)
async def upload_image(
    image: Optional[UploadFile] = File(None),
    storage: StorageClient = Depends(get_storage_client),
):
    if image is None or not image.filename:
        raise UploadMissingError()
    data = await image.read()
    url = storage.save(data, image.filename, image.content_type)
    return UploadResponse(success=True, url=url)


@router.get("/db-status", response_model=DbStatusResponse)
def db_status(
    backend: Backend = Depends(get_backend),
    settings: Settings = Depends(get_app_settings),
):
    return DbStatusResponse(
        usePostgres=backend.name == "postgres", isVercel=settings.vercel
    )


@router.get("/health")
def health():
    return {"status": "ok"}

"""
Pydantic schemas for the guide site API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PostPayload(BaseModel):
    title: str = Field(..., min_length=1)
    content: str
    category: Optional[str] = None
    icon: Optional[str] = None


class PostResponse(BaseModel):
    id: int
    title: str
    content: str
    category: Optional[str] = None
    icon: Optional[str] = None
    updated_at: Optional[datetime] = None


class CategoryPayload(BaseModel):
    name: str = Field(..., min_length=1)
    display_order: Optional[int] = None


class CategoryResponse(BaseModel):
    id: int
    name: str
    display_order: int


class CategoryBulkPayload(BaseModel):
    categories: list[CategoryPayload]


class FaqPayload(BaseModel):
    question: str = Field(..., min_length=1)
    answer: str


class FaqResponse(BaseModel):
    id: int
    question: str
    answer: str
    updated_at: Optional[datetime] = None


class TrainingStepPayload(BaseModel):
    title: str
    description: str
    step_order: Optional[int] = None


class TrainingStepResponse(BaseModel):
    id: int
    title: str
    description: str
    step_order: int


class TrainingProcessPayload(BaseModel):
    steps: list[TrainingStepPayload]


class DeletePayload(BaseModel):
    id: Optional[int] = None


class ContactLink(BaseModel):
    label: str
    url: str
    icon: str = ""


class SettingsPayload(BaseModel):
    """Partial settings update; omitted keys keep their stored value."""

    model_config = ConfigDict(extra="ignore")

    siteName: Optional[str] = None
    primaryColor: Optional[str] = None
    adminPassword: Optional[str] = None
    logoUrl: Optional[str] = None
    contactInfo: Optional[str] = None
    contactLinks: Optional[list[ContactLink]] = None


class LoginPayload(BaseModel):
    password: Optional[str] = None


class SuccessResponse(BaseModel):
    success: bool


class CreatedResponse(BaseModel):
    success: bool = True
    id: int


class DeleteResponse(BaseModel):
    success: bool
    changes: int


class UploadResponse(BaseModel):
    success: bool
    url: str


class DbStatusResponse(BaseModel):
    usePostgres: bool
    isVercel: bool


class ExportResponse(BaseModel):
    settings: dict
    posts: list[dict]
    categories: list[dict]
    faqs: list[dict]
    training_process: list[dict]

"""
Upload sinks for editor images: a local directory or an S3-compatible bucket.
"""

from __future__ import annotations

import logging
import os
import random
import time
from dataclasses import dataclass
from typing import Optional, Protocol

import boto3
from botocore.config import Config

logger = logging.getLogger(__name__)


class StorageClient(Protocol):
    """Stores uploaded bytes and returns the URL they are served from."""

    def save(
        self, data: bytes, filename: str, content_type: Optional[str] = None
    ) -> str:
        ...


def unique_name(filename: str) -> str:
    """Timestamp plus random suffix, keeping the original extension."""
    ext = os.path.splitext(filename or "")[1].lower()
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}{ext}"


@dataclass
class LocalStorageClient:
    """Writes uploads to a directory served under ``url_prefix``."""

    directory: str
    url_prefix: str = "/uploads"

    def __post_init__(self):
        os.makedirs(self.directory, exist_ok=True)

    def save(
        self, data: bytes, filename: str, content_type: Optional[str] = None
    ) -> str:
        name = unique_name(filename)
        with open(os.path.join(self.directory, name), "wb") as f:
            f.write(data)
        logger.info("Stored upload %s (%d bytes)", name, len(data))
        return f"{self.url_prefix.rstrip('/')}/{name}"


@dataclass
class S3StorageClient:
    """
    S3-compatible bucket. Use this where the local disk does not survive
    restarts (e.g. serverless deployments).
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    public_base_url: str
    key_prefix: str = "uploads"

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )

    def save(
        self, data: bytes, filename: str, content_type: Optional[str] = None
    ) -> str:
        key = f"{self.key_prefix.strip('/')}/{unique_name(filename)}"
        self._client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type or "application/octet-stream",
        )
        logger.info("Stored upload s3://%s/%s (%d bytes)", self.bucket, key, len(data))
        return f"{self.public_base_url.rstrip('/')}/{key}"

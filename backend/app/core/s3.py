"""MinIO client helpers for storing workshop assets."""
from __future__ import annotations

from urllib.parse import quote

from minio import Minio

from .config import settings


def get_minio_client() -> Minio:
    """Return a configured MinIO client."""
    return Minio(
        settings.MINIO_ENDPOINT,
        access_key=settings.MINIO_ACCESS_KEY,
        secret_key=settings.MINIO_SECRET_KEY,
        secure=settings.MINIO_SECURE,
    )


def build_object_url(object_key: str, *, bucket: str | None = None) -> str:
    """Return the HTTP URL under which an object can be fetched."""

    endpoint = (settings.MINIO_PUBLIC_ENDPOINT or settings.MINIO_ENDPOINT).rstrip("/")
    if "://" not in endpoint:
        scheme = "https" if settings.MINIO_SECURE else "http"
        endpoint = f"{scheme}://{endpoint}"
    return f"{endpoint}/{bucket or settings.MINIO_BUCKET}/{quote(object_key)}"

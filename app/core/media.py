# app/core/media.py
"""
Media delegate: stores uploaded images in Supabase Storage.

A single MediaStore is built by the application lifespan and handed to
services through the `get_media_store` dependency, so tests can swap it
for an in-memory fake via `app.dependency_overrides`.
"""

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator

from fastapi import HTTPException, Request, UploadFile, status
from supabase import Client

logger = logging.getLogger(__name__)


# --- Image config ---

MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5MB per image
MAX_FILES_PER_UPLOAD = 10

ALLOWED_IMAGE_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


class MediaError(Exception):
    """Raised when the storage backend fails to upload or delete an asset."""


@dataclass
class UploadedAsset:
    """
    Result of a successful upload.

    - public_id: object path inside the bucket (used for deletion)
    - url: public URL
    - width/height: reported when the backend knows them
    """

    public_id: str
    url: str
    width: int | None = None
    height: int | None = None


@dataclass
class ImageFile:
    """Raw image taken off a multipart request."""

    content_type: str
    data: bytes


def validate_image(image: ImageFile) -> str:
    """
    Check content type and size, return the file extension.

    Raises:
        HTTPException(400): unsupported content type
        HTTPException(413): file larger than MAX_IMAGE_BYTES
    """
    if image.content_type not in ALLOWED_IMAGE_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Unsupported image type. Allowed: JPEG, PNG, WEBP, GIF.",
        )

    if len(image.data) > MAX_IMAGE_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Image too large (max 5MB).",
        )

    return ALLOWED_IMAGE_CONTENT_TYPES[image.content_type]


def read_upload(file: UploadFile | None) -> ImageFile | None:
    """
    Turn an optional UploadFile into an ImageFile.

    Empty file fields (browsers send them for untouched inputs) count as absent.
    """
    if file is None or not file.filename:
        return None
    if not file.content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing content-type for uploaded file",
        )
    return ImageFile(content_type=file.content_type, data=file.file.read())


def read_uploads(files: list[UploadFile] | None) -> list[ImageFile]:
    """Read a multi-file field, enforcing MAX_FILES_PER_UPLOAD."""
    images = [img for img in (read_upload(f) for f in files or []) if img]
    if len(images) > MAX_FILES_PER_UPLOAD:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Too many files (max {MAX_FILES_PER_UPLOAD}).",
        )
    return images


class MediaStore:
    """
    Upload/delete images in a Supabase Storage bucket.

    The Supabase client is created lazily on first use, so the API can
    start (and serve non-media routes) without storage credentials.
    """

    def __init__(self, bucket: str, client_factory: Callable[[], Client]):
        self.bucket = bucket
        self._client_factory = client_factory
        self._client: Client | None = None

    def _storage(self):
        if self._client is None:
            self._client = self._client_factory()
        return self._client.storage.from_(self.bucket)

    def upload(self, file_bytes: bytes, folder: str, content_type: str) -> UploadedAsset:
        """
        Upload raw bytes to `<folder>/<uuid>.<ext>` and return the stored asset.

        Raises:
            MediaError: if the storage backend rejects the upload.
        """
        ext = ALLOWED_IMAGE_CONTENT_TYPES.get(content_type, "bin")
        path = f"{folder.strip('/')}/{uuid.uuid4()}.{ext}"
        try:
            storage = self._storage()
            storage.upload(
                path,
                file_bytes,
                {"content-type": content_type, "upsert": "true"},
            )
            url = storage.get_public_url(path)
        except Exception as e:
            logger.error(f"Image upload failed for {path}: {e}")
            raise MediaError("Image upload failed") from e
        return UploadedAsset(public_id=path, url=url)

    def delete(self, public_id: str) -> None:
        """
        Delete an object by its path inside the bucket.

        Raises:
            MediaError: if the storage backend rejects the deletion.
        """
        try:
            self._storage().remove([public_id])
        except Exception as e:
            logger.error(f"Image deletion failed for {public_id}: {e}")
            raise MediaError("Image deletion failed") from e


def store_image(media: MediaStore, image: ImageFile, folder: str) -> UploadedAsset:
    """
    Validate and upload one image.

    Raises:
        HTTPException(400/413): invalid image
        HTTPException(400): storage backend failure ("Image upload failed")
    """
    validate_image(image)
    try:
        return media.upload(image.data, folder, image.content_type)
    except MediaError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )


def discard_image(media: MediaStore, public_id: str | None) -> None:
    """Best-effort deletion: failures are logged, never raised."""
    if not public_id:
        return
    try:
        media.delete(public_id)
    except MediaError as e:
        logger.warning(f"Could not delete image {public_id}: {e}")


@contextmanager
def discard_on_error(media: MediaStore, public_ids: Iterable[str | None]) -> Iterator[None]:
    """
    Guard the write that records freshly stored assets: if it raises,
    the assets are deleted again and the error propagates.
    """
    try:
        yield
    except Exception:
        for public_id in public_ids:
            discard_image(media, public_id)
        raise


def get_media_store(request: Request) -> MediaStore:
    """FastAPI dependency: the MediaStore built at startup."""
    return request.app.state.media_store

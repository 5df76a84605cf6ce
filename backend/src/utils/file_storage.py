"""
Object storage for generated documents and uploads.

Uses S3 (or an S3-compatible endpoint) through aioboto3 when credentials are
configured, and falls back to the local `uploads/` directory otherwise.
Callers persist only the returned key; URLs are derived on read.
"""

import logging
import os
import uuid
import aiofiles
import aioboto3  # type: ignore
from typing import Any
from fastapi import UploadFile
from core.config import (
    API_BASE_URL,
    S3_BUCKET,
    S3_REGION,
    S3_ACCESS_KEY,
    S3_SECRET_KEY,
    S3_ENDPOINT_URL,
)

logger = logging.getLogger(__name__)

# Local storage configuration
UPLOAD_DIR = "uploads"


def s3_enabled() -> bool:
    return bool(S3_BUCKET and S3_ACCESS_KEY and S3_SECRET_KEY)


def _s3_client() -> Any:
    session = aioboto3.Session()
    return session.client(  # type: ignore
        's3',
        region_name=S3_REGION,
        aws_access_key_id=S3_ACCESS_KEY,
        aws_secret_access_key=S3_SECRET_KEY,
        endpoint_url=S3_ENDPOINT_URL
    )


def _local_path(key: str) -> str:
    path = os.path.normpath(os.path.join(UPLOAD_DIR, key))
    if not path.startswith(os.path.normpath(UPLOAD_DIR) + os.sep):
        raise ValueError(f"Invalid storage key: {key}")
    return path


async def upload_bytes(key: str, data: bytes, content_type: str = 'application/octet-stream') -> str:
    """Store `data` under `key` and return the key."""
    if not s3_enabled():
        local_path = _local_path(key)
        os.makedirs(os.path.dirname(local_path), exist_ok=True)
        async with aiofiles.open(local_path, 'wb') as out_file:
            await out_file.write(data)
        return key

    async with _s3_client() as s3:  # type: ignore
        await s3.put_object(
            Bucket=S3_BUCKET,
            Key=key,
            Body=data,
            ContentType=content_type
        )
    return key


async def save_upload_file(upload_file: UploadFile, prefix: str) -> str:
    """
    Saves an uploaded file under `prefix/` and returns its storage key.

    Uploads are small (size is enforced at the API layer), so they are read
    into memory before being written out.
    """
    file_extension = os.path.splitext(upload_file.filename or "")[1]
    key = f"{prefix}/{uuid.uuid4()}{file_extension}"
    await upload_file.seek(0)
    content = await upload_file.read()
    return await upload_bytes(key, content, upload_file.content_type or 'application/octet-stream')


async def delete_file(key: str) -> None:
    """Deletes a stored object. Failures are logged, never raised."""
    if not s3_enabled():
        try:
            local_path = _local_path(key)
            if os.path.exists(local_path):
                os.remove(local_path)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to delete local file {key}: {e}")
        return

    try:
        async with _s3_client() as s3:  # type: ignore
            await s3.delete_object(Bucket=S3_BUCKET, Key=key)
    except Exception as e:
        logger.warning(f"Failed to delete S3 object {key}: {e}")


async def get_download_url(key: str, expiration: int = 3600) -> str:
    """
    Generates a download URL for a stored object.

    Pre-signed when S3 is configured, otherwise the local static URL.
    """
    if not s3_enabled():
        return f"{API_BASE_URL}/{UPLOAD_DIR}/{key}"

    async with _s3_client() as s3:  # type: ignore
        return await s3.generate_presigned_url(
            'get_object',
            Params={'Bucket': S3_BUCKET, 'Key': key},
            ExpiresIn=expiration
        )

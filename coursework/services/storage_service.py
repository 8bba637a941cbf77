"""
Cloudflare R2 (S3-compatible) storage for assignment attachments and
submission files. Uses global config; no per-call reconfiguration.

Without R2 credentials the service keeps metadata-only references: nothing is
uploaded and ``url``/``id`` stay empty.
"""
import asyncio
import logging
from dataclasses import dataclass
from io import BytesIO
from typing import List, Optional, Sequence
from uuid import uuid4

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from coursework.config import settings
from coursework.core.exceptions import StorageError
from coursework.schemas.assignment import FileRef

logger = logging.getLogger(__name__)


@dataclass
class StoredObject:
    url: Optional[str]
    id: Optional[str]


@dataclass
class Upload:
    """A file received with a request, already read into memory"""
    filename: str
    content: bytes
    content_type: Optional[str] = None


def _r2_client():
    return boto3.client(
        service_name="s3",
        endpoint_url=f"https://{settings.R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=settings.R2_ACCESS_KEY_ID,
        aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
        region_name="auto",
        config=boto3.session.Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
        ),
    )


def public_url(key: str) -> str:
    """Build public URL for an object key (custom domain or R2 dev URL)."""
    base = settings.STORAGE_PUBLIC_BASE_URL.rstrip("/")
    key = key.lstrip("/")
    return f"{base}/{key}" if key else base


def object_key(key_prefix: str, filename: str) -> str:
    """Unique object key that keeps the original extension."""
    ext = filename.rsplit(".", 1)[-1] if "." in filename else ""
    name = uuid4().hex
    return f"{key_prefix}/{name}.{ext}" if ext else f"{key_prefix}/{name}"


async def store(
    content: bytes,
    filename: str,
    content_type: Optional[str] = None,
    *,
    key_prefix: str,
) -> StoredObject:
    """
    Upload bytes to R2.

    Returns:
        StoredObject with the public URL and the object key as its id

    Raises:
        StorageError: if the upload fails
    """
    if not settings.storage_configured:
        return StoredObject(url=None, id=None)

    key = object_key(key_prefix, filename)
    extra = {"ContentType": content_type} if content_type else {}

    def _put():
        client = _r2_client()
        client.upload_fileobj(BytesIO(content), settings.R2_BUCKET_NAME, key, ExtraArgs=extra)

    try:
        await asyncio.to_thread(_put)
    except (ClientError, BotoCoreError) as e:
        raise StorageError(f"Storage upload failed for {filename}: {e}") from e
    return StoredObject(url=public_url(key), id=key)


async def delete(object_id: Optional[str]) -> None:
    """
    Delete a stored object by id. Metadata-only references are ignored.

    Raises:
        StorageError: if the delete fails
    """
    if not object_id or not settings.storage_configured:
        return

    def _delete():
        client = _r2_client()
        client.delete_object(Bucket=settings.R2_BUCKET_NAME, Key=object_id)

    try:
        await asyncio.to_thread(_delete)
    except (ClientError, BotoCoreError) as e:
        raise StorageError(f"Storage delete failed for {object_id}: {e}") from e


async def store_uploads(uploads: Sequence[Upload], *, key_prefix: str) -> List[FileRef]:
    """
    Store every upload in order, returning one FileRef per upload.

    The first failure aborts the batch with StorageError; objects stored
    before it are left in place.
    """
    saved: List[FileRef] = []
    for upload in uploads:
        try:
            stored = await store(upload.content, upload.filename, upload.content_type, key_prefix=key_prefix)
        except StorageError:
            logger.error(
                "Aborting upload batch",
                extra={
                    "failed_file": upload.filename,
                    "stored_before_failure": [ref.storage_id for ref in saved],
                },
            )
            raise
        saved.append(
            FileRef(
                filename=upload.filename,
                url=stored.url,
                file_type=upload.content_type,
                storage_id=stored.id,
            )
        )
    return saved

"""Unit tests for the R2 storage service."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from coursework.config import settings
from coursework.core.exceptions import StorageError
from coursework.services import storage_service as storage


@pytest.fixture
def r2_configured(monkeypatch):
    monkeypatch.setattr(settings, "R2_ACCOUNT_ID", "account")
    monkeypatch.setattr(settings, "R2_ACCESS_KEY_ID", "key")
    monkeypatch.setattr(settings, "R2_SECRET_ACCESS_KEY", "secret")
    monkeypatch.setattr(settings, "STORAGE_PUBLIC_BASE_URL", "https://cdn.test/")


def _client_error():
    return ClientError({"Error": {"Code": "500", "Message": "boom"}}, "PutObject")


@pytest.mark.asyncio
async def test_store_without_r2_keeps_metadata_only():
    refs = await storage.store_uploads(
        [storage.Upload(filename="notes.pdf", content=b"%PDF", content_type="application/pdf")],
        key_prefix="assignments",
    )
    assert len(refs) == 1
    assert refs[0].filename == "notes.pdf"
    assert refs[0].file_type == "application/pdf"
    assert refs[0].url is None
    assert refs[0].storage_id is None


@pytest.mark.asyncio
async def test_store_uploads_to_r2(r2_configured):
    client = MagicMock()
    with patch("coursework.services.storage_service._r2_client", return_value=client):
        stored = await storage.store(b"data", "diagram.png", "image/png", key_prefix="submissions/abc")

    assert stored.id.startswith("submissions/abc/")
    assert stored.id.endswith(".png")
    assert stored.url == f"https://cdn.test/{stored.id}"
    args, kwargs = client.upload_fileobj.call_args
    assert args[1] == settings.R2_BUCKET_NAME
    assert args[2] == stored.id
    assert kwargs["ExtraArgs"] == {"ContentType": "image/png"}


@pytest.mark.asyncio
async def test_store_failure_raises_storage_error(r2_configured):
    client = MagicMock()
    client.upload_fileobj.side_effect = _client_error()
    with patch("coursework.services.storage_service._r2_client", return_value=client):
        with pytest.raises(StorageError):
            await storage.store(b"data", "diagram.png", key_prefix="assignments")


@pytest.mark.asyncio
async def test_store_uploads_aborts_on_first_failure(r2_configured):
    client = MagicMock()
    client.upload_fileobj.side_effect = [None, _client_error(), None]
    uploads = [storage.Upload(filename=f"f{i}.txt", content=b"x") for i in range(3)]
    with patch("coursework.services.storage_service._r2_client", return_value=client):
        with pytest.raises(StorageError):
            await storage.store_uploads(uploads, key_prefix="assignments")
    assert client.upload_fileobj.call_count == 2


@pytest.mark.asyncio
async def test_delete_is_noop_for_metadata_only_refs():
    with patch("coursework.services.storage_service._r2_client") as factory:
        await storage.delete(None)
        await storage.delete("assignments/abc.pdf")
    factory.assert_not_called()


@pytest.mark.asyncio
async def test_delete_removes_object(r2_configured):
    client = MagicMock()
    with patch("coursework.services.storage_service._r2_client", return_value=client):
        await storage.delete("assignments/abc.pdf")
    client.delete_object.assert_called_once_with(Bucket=settings.R2_BUCKET_NAME, Key="assignments/abc.pdf")


def test_object_key_keeps_extension():
    assert storage.object_key("assignments", "report.final.docx").endswith(".docx")
    key = storage.object_key("assignments", "README")
    assert key.startswith("assignments/")
    assert "." not in key

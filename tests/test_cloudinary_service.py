"""Tests for receipt checks and upload handling (Cloudinary is never called)."""

import asyncio
from io import BytesIO

import pytest
from PIL import Image

from expense_tracker.config import AppSettings, CloudinarySettings
from expense_tracker.models.expense import ReceiptAttachment
from expense_tracker.services.image import (
    CloudinaryReceiptService,
    ReceiptTooLargeError,
    ReceiptUploadError,
    UnreadableReceiptError,
)


def png_bytes() -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (4, 4), color="white").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def service():
    return CloudinaryReceiptService(
        settings=CloudinarySettings(cloud_name="demo", api_key="key", api_secret="secret"),
        app_settings=AppSettings(_env_file=None, max_upload_size_mb=1),
    )


class TestCheckAttachment:

    def test_accepts_readable_image(self, service):
        service.check_attachment(ReceiptAttachment(filename="r.png", content=png_bytes(), mime_type="image/png"))

    def test_accepts_pdf_without_decoding(self, service):
        service.check_attachment(ReceiptAttachment(filename="r.pdf", content=b"%PDF-1.4", mime_type="application/pdf"))

    def test_rejects_empty_file(self, service):
        with pytest.raises(UnreadableReceiptError):
            service.check_attachment(ReceiptAttachment(filename="r.png", content=b"", mime_type="image/png"))

    def test_rejects_corrupt_image(self, service):
        with pytest.raises(UnreadableReceiptError):
            service.check_attachment(ReceiptAttachment(filename="r.jpg", content=b"not an image", mime_type="image/jpeg"))

    def test_rejects_oversized_file(self, service):
        content = b"%PDF" + b"0" * (1024 * 1024)
        with pytest.raises(ReceiptTooLargeError):
            service.check_attachment(ReceiptAttachment(filename="r.pdf", content=content, mime_type="application/pdf"))


class TestResolve:

    def test_returns_secure_url(self, service, monkeypatch):
        monkeypatch.setattr(service, "_upload", lambda attachment: {"secure_url": "https://res.cloudinary.com/demo/r.png"})
        attachment = ReceiptAttachment(filename="r.png", content=png_bytes(), mime_type="image/png")

        assert asyncio.run(service.resolve(attachment)) == "https://res.cloudinary.com/demo/r.png"

    def test_upload_errors_are_wrapped(self, service, monkeypatch):
        def fail(attachment):
            raise RuntimeError("timed out")

        monkeypatch.setattr(service, "_upload", fail)
        attachment = ReceiptAttachment(filename="r.pdf", content=b"%PDF", mime_type="application/pdf")

        with pytest.raises(ReceiptUploadError):
            asyncio.run(service.resolve(attachment))

    def test_missing_url_is_an_error(self, service, monkeypatch):
        monkeypatch.setattr(service, "_upload", lambda attachment: {})
        attachment = ReceiptAttachment(filename="r.pdf", content=b"%PDF", mime_type="application/pdf")

        with pytest.raises(ReceiptUploadError):
            asyncio.run(service.resolve(attachment))

    def test_public_id_is_stable_per_upload(self, service):
        attachment = ReceiptAttachment(filename="r.pdf", content=b"%PDF", mime_type="application/pdf")
        assert service._generate_public_id(attachment) == service._generate_public_id(attachment)
        assert service._generate_public_id(attachment).startswith(str(attachment.upload_id))

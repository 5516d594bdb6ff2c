"""
Receipt Upload Service using Cloudinary

DESIGN DECISION: Receipts are uploaded to Cloudinary because:
1. Reliable hosting with stable HTTPS URLs for every file
2. Handles both photos and PDFs
3. Simple API
4. Free tier sufficient for personal use

This service turns a ReceiptAttachment into the URL stored on the expense:
1. Size check against the configured upload limit
2. Readability check for images (a corrupt photo is rejected up front)
3. Upload, retried a few times on transient errors
4. Return the secure URL

Whether a failure here blocks the submission is decided by the caller.
"""

import asyncio
import hashlib
from io import BytesIO
from typing import Optional

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
from PIL import Image, UnidentifiedImageError
from tenacity import retry, stop_after_attempt, wait_exponential

from expense_tracker.config import AppSettings, CloudinarySettings, get_settings
from expense_tracker.models.expense import ReceiptAttachment


class AttachmentResolutionFailure(Exception):
    """Base exception for receipt upload errors."""
    pass


class ReceiptTooLargeError(AttachmentResolutionFailure):
    """Receipt file exceeds the upload limit."""
    pass


class UnreadableReceiptError(AttachmentResolutionFailure):
    """Receipt image could not be decoded."""
    pass


class ReceiptUploadError(AttachmentResolutionFailure):
    """Failed to upload receipt to Cloudinary."""
    pass


class CloudinaryReceiptService:
    """
    Resolves receipt attachments to hosted URLs.

    Flow:
    1. Receive the attachment held by the wizard
    2. Check size and readability
    3. Upload to Cloudinary
    4. Return the secure URL or raise AttachmentResolutionFailure
    """

    def __init__(
        self,
        settings: Optional[CloudinarySettings] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        self._settings = settings or get_settings().cloudinary
        self._app_settings = app_settings or get_settings().app
        self._configured = False

    def _configure(self):
        """Configure Cloudinary SDK."""
        if not self._configured:
            cloudinary.config(
                cloud_name=self._settings.cloud_name,
                api_key=self._settings.api_key,
                api_secret=self._settings.api_secret,
                secure=True,
            )
            self._configured = True

    def _generate_public_id(self, attachment: ReceiptAttachment) -> str:
        """
        Generate a unique public ID for Cloudinary.

        Format: {upload_id}_{filename_hash}
        """
        filename_hash = hashlib.md5(attachment.filename.encode()).hexdigest()[:8]
        return f"{attachment.upload_id}_{filename_hash}"

    def check_attachment(self, attachment: ReceiptAttachment) -> None:
        """
        Reject receipts we know will not be usable.

        Raises:
            ReceiptTooLargeError: Over the configured size limit
            UnreadableReceiptError: Empty file, or an image Pillow cannot decode
        """
        if attachment.size_bytes == 0:
            raise UnreadableReceiptError(f"{attachment.filename} is empty")

        max_bytes = self._app_settings.max_upload_size_bytes
        if attachment.size_bytes > max_bytes:
            raise ReceiptTooLargeError(
                f"{attachment.filename} is {attachment.size_bytes / (1024 * 1024):.1f} MB, "
                f"limit is {self._app_settings.max_upload_size_mb} MB"
            )

        if attachment.is_image:
            try:
                with Image.open(BytesIO(attachment.content)) as img:
                    img.verify()
            except (UnidentifiedImageError, OSError, SyntaxError) as e:
                raise UnreadableReceiptError(
                    f"{attachment.filename} is not a readable image: {e}"
                ) from e

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _upload(self, attachment: ReceiptAttachment) -> dict:
        self._configure()
        return cloudinary.uploader.upload(
            attachment.content,
            public_id=self._generate_public_id(attachment),
            folder=self._settings.folder,
            resource_type="auto",
        )

    async def resolve(self, attachment: ReceiptAttachment) -> str:
        """
        Upload a receipt and return its URL.

        Args:
            attachment: The receipt held by the wizard

        Returns:
            HTTPS URL of the uploaded receipt

        Raises:
            AttachmentResolutionFailure: If the receipt cannot be used or uploaded
        """
        self.check_attachment(attachment)

        try:
            result = await asyncio.to_thread(self._upload, attachment)
        except cloudinary.exceptions.Error as e:
            raise ReceiptUploadError(f"Cloudinary error: {e}") from e
        except Exception as e:
            raise ReceiptUploadError(f"Failed to upload receipt: {e}") from e

        url = result.get("secure_url") or result.get("url")
        if not url:
            raise ReceiptUploadError("No URL returned from Cloudinary")
        return url

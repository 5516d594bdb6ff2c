"""Receipt upload services package."""

from expense_tracker.services.image.cloudinary_service import (
    AttachmentResolutionFailure,
    CloudinaryReceiptService,
    ReceiptTooLargeError,
    ReceiptUploadError,
    UnreadableReceiptError,
)

__all__ = [
    "AttachmentResolutionFailure",
    "CloudinaryReceiptService",
    "ReceiptTooLargeError",
    "ReceiptUploadError",
    "UnreadableReceiptError",
]

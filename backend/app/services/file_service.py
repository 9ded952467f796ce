"""
QPaperHub Backend — Upload Validation Service
===============================================

What:  Checks an uploaded question paper before it is sent to the object store.
How:   Extension allow-list, non-empty and size limit checks, then a MIME type
       derived from the validated extension.
Who:   Called by PaperService as the first step of the upload workflow.

Validation order (cheapest first):
    1. Extension check  — no content needed
    2. Size check       — Content-Length header first, then the actual byte count
    3. MIME type        — mapped from the extension; a client-sent type is
                          only kept when it agrees with that mapping
"""

import logging
from pathlib import Path
from typing import Optional, Tuple

from app.config import settings
from app.exceptions import ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
EXTENSION_MIME_TYPES = {
    ".pdf": "application/pdf",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

ALLOWED_EXTENSIONS = set(EXTENSION_MIME_TYPES)


class FileService:
    """Stateless validator for paper uploads."""

    def __init__(self, max_file_size: Optional[int] = None):
        """
        Args:
            max_file_size: Override the configured byte limit (used in tests).
        """
        self.max_file_size = max_file_size or settings.max_file_size

    def validate_extension(self, filename: Optional[str]) -> str:
        """
        Returns the normalized extension (lowercase with dot).

        Raises ValidationError if the file has no name or a disallowed extension.
        """
        if not filename:
            raise ValidationError(message="No file uploaded.", field="file")

        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or filename}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="file",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Reject empty files and files over the configured maximum.

        Args:
            content_length: Value from the Content-Length header (may be None)
            actual_size: Actual byte count of the uploaded file
        """
        max_mb = self.max_file_size / (1024 * 1024)

        if content_length and content_length > self.max_file_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size == 0:
            raise ValidationError(
                message="Uploaded file is empty.",
                field="file",
            )

        if actual_size > self.max_file_size:
            raise ValidationError(
                message=(
                    f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds "
                    f"maximum of {max_mb:.0f}MB."
                ),
                field="file",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def detect_mime_type(self, extension: str, content_type: Optional[str] = None) -> str:
        expected = EXTENSION_MIME_TYPES[extension]
        if content_type and content_type != expected:
            logger.debug(
                "Client content type %s disagrees with extension %s; using %s",
                content_type, extension, expected,
            )
        return expected

    def validate(
        self,
        filename: Optional[str],
        content: bytes,
        content_length: Optional[int] = None,
        content_type: Optional[str] = None,
    ) -> Tuple[str, str]:
        """
        Complete validation pipeline.

        Returns:
            Tuple of (extension, mime_type).
        """
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        return ext, self.detect_mime_type(ext, content_type)


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService()

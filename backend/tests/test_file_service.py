"""
QPaperHub Backend — File Service Unit Tests
=============================================

What:  Tests for upload validation (extension, size, MIME type).

Test Strategy:
    ✅ Allowed extensions (.pdf, .png, .jpg, .jpeg, .doc, .docx), any case
    ✅ Rejected extensions and missing names
    ✅ Empty files and the size limit boundary
    ✅ MIME type derived from the extension
"""

import pytest

from app.exceptions import ValidationError
from app.services.file_service import ALLOWED_EXTENSIONS, FileService

ONE_MB = 1024 * 1024


class TestFileValidation:
    """Tests for validation logic in FileService."""

    def setup_method(self):
        self.service = FileService(max_file_size=ONE_MB)

    # ── Extension Validation ──────────────────────────────────────────────

    @pytest.mark.parametrize("filename", ["exam.pdf", "scan.png", "scan.jpg", "scan.jpeg",
                                          "paper.doc", "paper.docx"])
    def test_allowed_extensions(self, filename):
        assert self.service.validate_extension(filename) in ALLOWED_EXTENSIONS

    def test_extension_is_case_insensitive(self):
        assert self.service.validate_extension("EXAM.PDF") == ".pdf"
        assert self.service.validate_extension("scan.Jpeg") == ".jpeg"

    @pytest.mark.parametrize("filename", ["animation.gif", "malware.exe", "noextension",
                                          "archive.pdf.zip"])
    def test_rejected_extensions(self, filename):
        with pytest.raises(ValidationError, match="not supported"):
            self.service.validate_extension(filename)

    @pytest.mark.parametrize("filename", [None, ""])
    def test_missing_filename_rejected(self, filename):
        with pytest.raises(ValidationError, match="No file uploaded"):
            self.service.validate_extension(filename)

    # ── Size Validation ───────────────────────────────────────────────────

    def test_size_within_limit(self):
        self.service.validate_size(None, 1000)

    def test_size_at_exact_limit(self):
        self.service.validate_size(ONE_MB, ONE_MB)

    def test_size_over_limit_rejected(self):
        with pytest.raises(ValidationError, match="exceeds"):
            self.service.validate_size(None, ONE_MB + 1)

    def test_content_length_over_limit_rejected(self):
        with pytest.raises(ValidationError, match="exceeds"):
            self.service.validate_size(ONE_MB * 5, 10)

    def test_empty_file_rejected(self):
        with pytest.raises(ValidationError, match="empty"):
            self.service.validate_size(0, 0)

    # ── MIME Type ─────────────────────────────────────────────────────────

    def test_mime_type_from_extension(self):
        assert self.service.detect_mime_type(".pdf") == "application/pdf"
        assert self.service.detect_mime_type(".jpg") == "image/jpeg"
        assert self.service.detect_mime_type(".jpeg") == "image/jpeg"

    def test_mismatched_client_type_ignored(self):
        assert self.service.detect_mime_type(".pdf", "image/png") == "application/pdf"

    # ── Pipeline ──────────────────────────────────────────────────────────

    def test_validate_returns_extension_and_mime(self):
        ext, mime = self.service.validate("Finals 2023.PDF", b"%PDF-1.4", content_type="application/pdf")

        assert ext == ".pdf"
        assert mime == "application/pdf"

    def test_validate_checks_extension_before_size(self):
        with pytest.raises(ValidationError, match="not supported"):
            self.service.validate("notes.txt", b"")

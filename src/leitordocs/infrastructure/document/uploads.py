"""Validation and preparation of uploaded documents."""

import base64
import hashlib
from dataclasses import dataclass
from pathlib import PurePath

from leitordocs.shared.exceptions import (
    FileTooLargeError,
    UnsupportedFileTypeError,
    ValidationError,
)
from leitordocs.shared.logging import get_logger

logger = get_logger(__name__)

PDF_MIME_TYPE = "application/pdf"
SUPPORTED_IMAGE_TYPES = (
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
    "image/heic",
    "image/heif",
)
# Max file size: 20 MB
MAX_FILE_SIZE_BYTES = 20 * 1024 * 1024


@dataclass(frozen=True)
class UploadedDocument:
    """An uploaded receipt/invoice ready for analysis."""

    file_name: str
    content: bytes
    mime_type: str
    file_hash: str

    @property
    def is_pdf(self) -> bool:
        return self.mime_type == PDF_MIME_TYPE

    @property
    def extension(self) -> str:
        return PurePath(self.file_name).suffix

    @property
    def size_bytes(self) -> int:
        return len(self.content)

    def as_base64(self) -> str:
        return base64.b64encode(self.content).decode("ascii")


def is_supported_mime_type(mime_type: str) -> bool:
    """Images and PDF only."""
    return mime_type == PDF_MIME_TYPE or mime_type.startswith("image/")


def compute_file_hash(content: bytes) -> str:
    """SHA-256 hex digest of the file content."""
    return hashlib.sha256(content).hexdigest()


def prepare_upload(
    content: bytes,
    file_name: str,
    mime_type: str | None,
    max_size_bytes: int = MAX_FILE_SIZE_BYTES,
) -> UploadedDocument:
    """Validate an upload and compute its hash.

    Raises:
        FileTooLargeError: If the file exceeds the size limit
        UnsupportedFileTypeError: If the file is neither an image nor a PDF
        ValidationError: If the file is empty
    """
    mime_type = (mime_type or "").lower()
    if not is_supported_mime_type(mime_type):
        raise UnsupportedFileTypeError(
            mime_type or "unknown", [PDF_MIME_TYPE, *SUPPORTED_IMAGE_TYPES]
        )

    if len(content) > max_size_bytes:
        raise FileTooLargeError(max_size_bytes // (1024 * 1024))

    if not content:
        raise ValidationError("Arquivo vazio")

    file_hash = compute_file_hash(content)
    logger.debug(
        "upload_prepared",
        mime_type=mime_type,
        size_bytes=len(content),
        file_hash=file_hash[:12],
    )

    return UploadedDocument(
        file_name=file_name or "documento",
        content=content,
        mime_type=mime_type,
        file_hash=file_hash,
    )

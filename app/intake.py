"""File intake: turn uploads into documents and reject bad ones early."""

import logging
import mimetypes
from typing import Optional

from fastapi import UploadFile

from app.errors import ValidationError
from app.models import Document
from app.settings import SUPPORTED_LANGUAGES, Settings

logger = logging.getLogger("medical_report.intake")


def _guess_content_type(filename: str) -> str:
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"


async def document_from_upload(upload: Optional[UploadFile]) -> Document:
    """Read a multipart upload into a :class:`Document`."""

    if upload is None or not upload.filename:
        raise ValidationError("Invalid file")

    content = await upload.read()
    content_type = upload.content_type
    if not content_type or content_type == "application/octet-stream":
        content_type = _guess_content_type(upload.filename)

    return Document(content=content, filename=upload.filename, content_type=content_type)


def check_size(document: Document, max_bytes: int) -> None:
    if document.size > max_bytes:
        logger.warning("Rejected oversized document %s (limit %s)", document.describe(), max_bytes)
        raise ValidationError(
            f"Maximum file size is {max_bytes // (1024 * 1024)}MB",
            {"size": document.size, "maxBytes": max_bytes},
        )


def validate_document(document: Document, settings: Settings) -> None:
    """
    Validate an upload against the configured allow-list and size ceiling.
    Runs before any provider call so rejected files never leave the process.
    """
    if not document.content:
        logger.warning("Rejected empty document %s", document.filename)
        raise ValidationError("Uploaded file was empty.")

    if document.content_type not in settings.allowed_content_types:
        logger.warning("Rejected document %s: type not allowed", document.describe())
        raise ValidationError(
            "Only PDF, JPEG, and PNG files are allowed",
            {"contentType": document.content_type, "allowed": settings.allowed_content_types},
        )

    check_size(document, settings.max_upload_bytes)


def resolve_language(code: Optional[str], settings: Settings) -> str:
    """Normalize a requested language code; blank means the source language."""

    if code is None or not code.strip():
        return settings.source_language

    normalized = code.strip().lower()
    # Older clients send the display name ("English") instead of the code.
    by_name = {name.lower(): lang for lang, name in SUPPORTED_LANGUAGES.items()}
    normalized = by_name.get(normalized, normalized)
    if normalized not in SUPPORTED_LANGUAGES:
        raise ValidationError(
            f"Unsupported language: {code}",
            {"supported": sorted(SUPPORTED_LANGUAGES)},
        )
    return normalized

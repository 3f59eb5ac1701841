from __future__ import annotations

import logging
import re
from pathlib import Path

import PyPDF2
from PyPDF2.errors import PdfReadError

from .config import ACCEPTED_DOCUMENT_SUFFIX
from .errors import DataError, ValidationError

logger = logging.getLogger(__name__)

SAFE_USER_ID = re.compile(r"[A-Za-z0-9_-]+")


class DocumentStore:
    """Keeps the latest uploaded resume per user, one file each."""

    def __init__(self, resumes_dir: Path):
        self.resumes_dir = resumes_dir

    def path_for(self, user_id: str) -> Path:
        if not SAFE_USER_ID.fullmatch(user_id):
            raise ValidationError(f"user id {user_id!r} cannot be used as a file name")
        return self.resumes_dir / f"{user_id}{ACCEPTED_DOCUMENT_SUFFIX}"

    def save(self, user_id: str, data: bytes) -> Path:
        path = self.path_for(user_id)
        self.resumes_dir.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info("Stored resume for %s at %s (%d bytes)", user_id, path, len(data))
        return path


def is_accepted_document(filename: str | None) -> bool:
    return bool(filename) and filename.lower().endswith(ACCEPTED_DOCUMENT_SUFFIX)


def extract_pdf_text(path: Path) -> str:
    try:
        with path.open("rb") as file:
            reader = PyPDF2.PdfReader(file)
            pages = [page.extract_text() or "" for page in reader.pages]
    except (PdfReadError, OSError, ValueError) as exc:
        raise DataError(f"unreadable document {path.name}: {exc}") from exc
    text = "\n".join(pages)
    logger.info("Extracted %d chars from %s", len(text), path.name)
    return text

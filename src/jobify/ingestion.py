from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from .errors import DataError
from .llm import EXTRACTION_PROMPT, RATING_PROMPT, parse_json_reply, user_message
from .model import ResumeAnalysis
from .render import analysis_message
from .resume import DocumentStore, extract_pdf_text, is_accepted_document

logger = logging.getLogger(__name__)

MISSING_ATTACHMENT = "❗ Attach a PDF file please."
WRONG_DOCUMENT_TYPE = "❌ Only PDF files are accepted."
UPLOAD_FAILED = "❌ Error uploading PDF. Please try again."
PROCESSING_FAILED = "⚠️ Error processing your CV."
PROCESSED = "✅ PDF resume received and processed."


class LanguageModel(Protocol):
    async def complete(self, messages: List[Dict[str, str]]) -> str: ...


class ProfileWriter(Protocol):
    def upsert(self, user_id: str, **fields: Optional[str]) -> bool: ...

    def update_cv_text(self, user_id: str, cv_text: Optional[str]) -> bool: ...


@dataclass(slots=True)
class Attachment:
    filename: str
    fetch: Callable[[], Awaitable[bytes]]


class IngestionStatus(Enum):
    REJECTED = "rejected"
    UPLOAD_FAILED = "upload_failed"
    EXTRACTION_FAILED = "extraction_failed"
    PROCESSING_FAILED = "processing_failed"
    COMPLETED = "completed"


@dataclass(slots=True)
class IngestionOutcome:
    status: IngestionStatus
    messages: List[str] = field(default_factory=list)
    profile_updated: bool = False
    analysis: Optional[ResumeAnalysis] = None
    failed_stage: Optional[str] = None
    show_main_menu: bool = False

    @property
    def ok(self) -> bool:
        return self.status is IngestionStatus.COMPLETED


class ResumeIngestionPipeline:
    """Upload, extract, store text, ask the model for fields and a score, then report back.

    Stages run strictly in order. Validation and upload failures stop before extraction;
    an extraction failure stops before any model call; model-stage failures keep whatever
    was already merged into the profile. Every outcome past upload returns the user to the
    main menu.
    """

    def __init__(self, documents: DocumentStore, profiles: ProfileWriter, llm: Optional[LanguageModel] = None):
        self.documents = documents
        self.profiles = profiles
        self.llm = llm

    async def ingest(self, user_id: str, attachment: Optional[Attachment]) -> IngestionOutcome:
        if attachment is None:
            return IngestionOutcome(IngestionStatus.REJECTED, [MISSING_ATTACHMENT], failed_stage="validate")
        if not is_accepted_document(attachment.filename):
            logger.debug("Rejected %r from %s", attachment.filename, user_id)
            return IngestionOutcome(IngestionStatus.REJECTED, [WRONG_DOCUMENT_TYPE], failed_stage="validate")

        try:
            data = await attachment.fetch()
            path = await asyncio.to_thread(self.documents.save, user_id, data)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Resume upload failed for %s: %s", user_id, exc)
            return IngestionOutcome(IngestionStatus.UPLOAD_FAILED, [UPLOAD_FAILED], failed_stage="upload")

        try:
            text = await asyncio.to_thread(extract_pdf_text, path)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Text extraction failed for %s: %s", user_id, exc)
            return IngestionOutcome(
                IngestionStatus.EXTRACTION_FAILED,
                [PROCESSING_FAILED],
                failed_stage="extract",
                show_main_menu=True,
            )

        outcome = IngestionOutcome(IngestionStatus.COMPLETED, show_main_menu=True)
        outcome.profile_updated = await self._store_text(user_id, text)

        if self.llm is None:
            logger.info("No language model configured; skipping CV analysis for %s", user_id)
            outcome.messages.append(PROCESSED)
            return outcome

        analysis = ResumeAnalysis()
        outcome.analysis = analysis
        stage = "extract_fields"
        try:
            fields = await self._extract_fields(text, analysis)
            if await asyncio.to_thread(self.profiles.upsert, user_id, **fields):
                outcome.profile_updated = outcome.profile_updated or any(v for v in fields.values())
                logger.info("Profile updated from CV for %s", user_id)
            else:
                logger.warning("Profile update from CV failed for %s", user_id)

            stage = "score"
            await self._score(text, analysis)
            outcome.messages.append(analysis_message(analysis))
            outcome.messages.append(PROCESSED)
        except Exception as exc:  # noqa: BLE001
            logger.warning("CV analysis failed at %s for %s: %s", stage, user_id, exc)
            outcome.status = IngestionStatus.PROCESSING_FAILED
            outcome.failed_stage = stage
            outcome.messages = [PROCESSING_FAILED]
        return outcome

    async def _store_text(self, user_id: str, text: str) -> bool:
        if not text.strip():
            logger.info("Extracted text for %s is blank; nothing stored", user_id)
            return False
        try:
            stored = await asyncio.to_thread(self.profiles.update_cv_text, user_id, text)
        except Exception as exc:  # noqa: BLE001
            logger.warning("CV text store raised for %s: %s", user_id, exc)
            stored = False
        if not stored:
            logger.warning("CV text could not be stored for %s", user_id)
        return stored

    async def _extract_fields(self, text: str, analysis: ResumeAnalysis) -> Dict[str, Optional[str]]:
        reply = await self.llm.complete(user_message(EXTRACTION_PROMPT.format(cv_text=text)))
        data = parse_json_reply(reply)
        analysis.name = _optional_text(data.get("name"))
        analysis.email = _optional_text(data.get("email"))
        analysis.skills = _text_list(data.get("skills"))
        analysis.positions = _text_list(data.get("positions"))
        return analysis.profile_fields()

    async def _score(self, text: str, analysis: ResumeAnalysis) -> None:
        reply = await self.llm.complete(user_message(RATING_PROMPT.format(cv_text=text)))
        data = parse_json_reply(reply)
        analysis.rating = _rating(data.get("rating"))
        analysis.suggestions = _text_list(data.get("feedback"))


def _optional_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _text_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def _rating(value: Any) -> int:
    if isinstance(value, bool):
        raise DataError(f"rating is not a number: {value!r}")
    try:
        rating = int(round(float(value)))
    except (TypeError, ValueError) as exc:
        raise DataError(f"rating is not a number: {value!r}") from exc
    if not 1 <= rating <= 10:
        raise DataError(f"rating {rating} outside 1-10")
    return rating

from __future__ import annotations

import json
import logging
import mimetypes
from pathlib import Path
from typing import Callable, Optional

import httpx

from gfrecipes.app.domain.errors import ExtractionFailure
from gfrecipes.app.infra.extraction.base import ExtractionAdapter, ExtractionOutput
from gfrecipes.services.errors import (
    FetchFailedError,
    NetworkTimeoutError,
    RateLimitedError,
    ServiceError,
    UnsupportedDocumentError,
)
from gfrecipes.services.gemini_client import GeminiClient

logger = logging.getLogger(__name__)

PROMPTS_DIR = Path(__file__).resolve().parents[2] / "prompts"
TEXT_PROMPT = PROMPTS_DIR / "extract_text.txt"
DRAFT_PROMPT = PROMPTS_DIR / "extract_draft.txt"

MODE_TEXT = "text"
MODE_DRAFT = "draft"

SUPPORTED_MIME_PREFIXES = ("image/",)
SUPPORTED_MIME_TYPES = ("application/pdf",)
MAX_DOCUMENT_BYTES = 20 * 1024 * 1024


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()


class GeminiExtractionAdapter(ExtractionAdapter):
    name = "gemini"

    def __init__(
        self,
        client: GeminiClient,
        mode: str = MODE_TEXT,
        timeout_seconds: float = 30.0,
        http_get: Optional[Callable[..., httpx.Response]] = None,
    ):
        if mode not in (MODE_TEXT, MODE_DRAFT):
            raise ValueError(f"Unknown extraction mode: {mode}")
        self.client = client
        self.mode = mode
        self.timeout_seconds = timeout_seconds
        self._http_get = http_get or httpx.get

    def extract(self, document_reference: str) -> ExtractionOutput:
        try:
            document, mime_type = self._load_document(document_reference)
            logger.info(
                "Extracting with Gemini: reference=%s, mime=%s, bytes=%d, mode=%s",
                document_reference,
                mime_type,
                len(document),
                self.mode,
            )
            if self.mode == MODE_DRAFT:
                return self._extract_draft(document, mime_type)
            return self.client.generate_from_document(document, mime_type, TEXT_PROMPT)

        except (RateLimitedError, NetworkTimeoutError) as error:
            raise ExtractionFailure(document_reference, str(error), retryable=True, cause=error) from error
        except ServiceError as error:
            raise ExtractionFailure(document_reference, str(error), cause=error) from error

    def _extract_draft(self, document: bytes, mime_type: str) -> dict:
        text = self.client.generate_from_document(
            document,
            mime_type,
            DRAFT_PROMPT,
            response_mime_type="application/json",
        )
        try:
            draft = json.loads(_strip_code_fence(text))
        except json.JSONDecodeError as error:
            raise FetchFailedError(f"Model returned invalid JSON: {error}") from error

        if not isinstance(draft, dict):
            raise FetchFailedError("Model returned JSON that is not an object")
        return draft

    def _load_document(self, document_reference: str) -> tuple[bytes, str]:
        if not document_reference or not document_reference.strip():
            raise UnsupportedDocumentError("Empty document reference")

        mime_type, _ = mimetypes.guess_type(document_reference.split("?", 1)[0])

        if document_reference.startswith(("http://", "https://")):
            document, header_type = self._download(document_reference)
            mime_type = header_type or mime_type
        else:
            path = Path(document_reference)
            try:
                document = path.read_bytes()
            except OSError as error:
                raise FetchFailedError(f"Cannot read {path}: {error}") from error

        if not mime_type or not self._is_supported(mime_type):
            raise UnsupportedDocumentError(f"Unsupported document type: {mime_type or 'unknown'}")
        if not document:
            raise UnsupportedDocumentError("Document is empty")
        if len(document) > MAX_DOCUMENT_BYTES:
            raise UnsupportedDocumentError(f"Document larger than {MAX_DOCUMENT_BYTES} bytes")

        return document, mime_type

    def _download(self, url: str) -> tuple[bytes, Optional[str]]:
        try:
            response = self._http_get(url, timeout=self.timeout_seconds, follow_redirects=True)
            response.raise_for_status()
        except httpx.TimeoutException as error:
            raise NetworkTimeoutError(url, self.timeout_seconds) from error
        except httpx.InvalidURL as error:
            raise FetchFailedError(f"Invalid document URL {url}: {error}") from error
        except httpx.HTTPError as error:
            raise FetchFailedError(f"Download failed for {url}: {error}") from error

        content_type = response.headers.get("content-type", "")
        header_type = content_type.split(";", 1)[0].strip() or None
        if header_type == "application/octet-stream":
            header_type = None
        return response.content, header_type

    @staticmethod
    def _is_supported(mime_type: str) -> bool:
        return mime_type.startswith(SUPPORTED_MIME_PREFIXES) or mime_type in SUPPORTED_MIME_TYPES

"""OCR collaborator contract: document bytes plus declared type in, structured field map out."""

from abc import ABC, abstractmethod
import base64
import logging
from typing import Any, Dict, Optional

from common.common_functions import post_json
from core.config import AppSettings
from models.enums import DocumentType
from models.exceptions import CollaboratorError


logger = logging.getLogger(__name__)


class OcrClient(ABC):
    """Extracts fields from a document; may return a partial or empty map."""

    enabled: bool = True

    @abstractmethod
    def extract(self, content: bytes, document_type: DocumentType, mime_type: Optional[str] = None) -> Dict[str, Any]:
        """Return raw OCR fields.

        Raises:
            CollaboratorError: If extraction fails.
        """


class DisabledOcrClient(OcrClient):
    """Used when no OCR provider is configured; every document is `ocr_status=skipped`."""

    enabled = False

    def extract(self, content: bytes, document_type: DocumentType, mime_type: Optional[str] = None) -> Dict[str, Any]:
        return {}


class HttpOcrClient(OcrClient):
    """Posts base64 content to an OCR HTTP endpoint that answers `{"fields": {...}}`."""

    def __init__(self, endpoint_url: str, api_key: Optional[str] = None, timeout_sec: float = 20) -> None:
        self._endpoint_url = endpoint_url
        self._api_key = api_key
        self._timeout_sec = timeout_sec

    def extract(self, content: bytes, document_type: DocumentType, mime_type: Optional[str] = None) -> Dict[str, Any]:
        headers = {"Authorization": "Bearer {0}".format(self._api_key)} if self._api_key else {}
        response = post_json(
            self._endpoint_url,
            {
                "document_type": DocumentType(document_type).value,
                "mime_type": mime_type or "application/octet-stream",
                "content_base64": base64.b64encode(content).decode("ascii"),
            },
            timeout_sec=self._timeout_sec,
            headers=headers,
        )
        fields = response.get("fields", response) if isinstance(response, dict) else None
        if not isinstance(fields, dict):
            raise CollaboratorError("OCR response has no field map")
        return fields


def build_ocr_client(settings: AppSettings) -> OcrClient:
    """Build the OCR client from settings."""
    if settings.ocr_enabled and settings.ocr_endpoint_url:
        logger.info("OCR enabled endpoint=%s", settings.ocr_endpoint_url)
        return HttpOcrClient(settings.ocr_endpoint_url, settings.ocr_api_key, settings.ocr_timeout_sec)
    if settings.ocr_enabled:
        logger.warning("OCR enabled but no endpoint_url configured; OCR disabled.")
    return DisabledOcrClient()

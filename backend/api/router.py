"""Primary API router: scoring, application intake and application lookups."""

import base64
import binascii
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from api.admin_routes import build_admin_router
from api.errors import to_http_exception
from core.config import AppSettings
from models.applicants import ApplicantProfile
from models.applications import ApplicationRecord
from models.enums import DocumentType
from repositories.document_whitelist_repository import DocumentWhitelistRepository
from services import risk_engine
from services.decision_service import DecisionService
from services.document_verification_service import DocumentUpload


logger = logging.getLogger(__name__)


class DocumentPayload(BaseModel):
    """One uploaded document, base64 encoded."""

    document_type: DocumentType = Field(...)
    content_base64: str = Field(..., min_length=1)
    filename: Optional[str] = Field(default=None, max_length=255)


class ApplicationSubmitRequest(BaseModel):
    """Request payload for a new loan application."""

    profile: ApplicantProfile = Field(...)
    documents: List[DocumentPayload] = Field(default_factory=list)


def _decode_uploads(documents: List[DocumentPayload]) -> List[DocumentUpload]:
    """Decode base64 payloads into pipeline uploads.

    Raises:
        HTTPException: 422 for a payload that is not valid base64.
    """
    uploads: List[DocumentUpload] = []
    for document in documents:
        try:
            content = base64.b64decode(document.content_base64, validate=True)
        except (binascii.Error, ValueError):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Document {0} is not valid base64.".format(document.document_type.value),
            )
        uploads.append(DocumentUpload(document_type=document.document_type, content=content, filename=document.filename))
    return uploads


def _application_summary(record: ApplicationRecord) -> Dict[str, Any]:
    """Applicant-facing view of a completed application."""
    assessment = record.assessment
    decision = record.decision
    return {
        "application_id": record.application_id,
        "stage": record.stage.value,
        "status": record.status.value,
        "decision": decision.decision.value if decision else None,
        "decision_maker": decision.decision_maker.value if decision else None,
        "risk_score": assessment.risk_score if assessment else None,
        "triggered_rules": list(assessment.triggered_rules) if assessment else [],
        "explanation": record.explanation,
        "kyc": record.kyc.model_dump(mode="json"),
        "created_at": record.created_at,
        "updated_at": record.updated_at,
    }


def build_router(
    settings: AppSettings,
    decision_service: DecisionService,
    whitelist_repository: DocumentWhitelistRepository,
) -> APIRouter:
    """Build and return the top-level API router.

    Args:
        settings: Application settings payload.
        decision_service: Pipeline and admin service.
        whitelist_repository: Loaded document whitelist.

    Returns:
        APIRouter: Fully configured router with all endpoints.
    """
    router = APIRouter()
    router.include_router(build_admin_router(settings, decision_service, whitelist_repository))

    @router.get("/health", summary="Health check")
    def health_check() -> Dict[str, Any]:
        """Return service health status for probes and monitors."""
        return {
            "status": "ok",
            "app_name": settings.app_name,
            "whitelist_entries": whitelist_repository.stats()["entries"],
        }

    @router.post("/risk/score", summary="Score an applicant profile")
    def score_profile(profile: ApplicantProfile) -> Dict[str, Any]:
        """Run the rule-based risk engine without creating an application."""
        try:
            return risk_engine.score(profile).model_dump(mode="json")
        except Exception as exc:
            raise to_http_exception(exc, "Risk scoring")

    @router.post("/applications", summary="Submit a loan application", status_code=status.HTTP_201_CREATED)
    def submit_application(payload: ApplicationSubmitRequest) -> Dict[str, Any]:
        """Verify documents, score the applicant and record a decision."""
        uploads = _decode_uploads(payload.documents)
        try:
            record = decision_service.submit_application(payload.profile, uploads, actor="applicant")
            return {"success": True, **_application_summary(record)}
        except Exception as exc:
            raise to_http_exception(exc, "Application submission")

    @router.get("/applications/{application_id}", summary="Get application status")
    def get_application(application_id: str) -> Dict[str, Any]:
        try:
            return _application_summary(decision_service.get_application(application_id))
        except Exception as exc:
            raise to_http_exception(exc, "Get application")

    @router.get("/applications/{application_id}/documents", summary="List verified documents")
    def get_documents(application_id: str) -> Dict[str, Any]:
        """Return document artifacts and verification results of one application."""
        try:
            decision_service.get_application(application_id)
            artifacts = decision_service.get_documents(application_id)
            results = decision_service.get_verification_results(application_id)
            return {
                "application_id": application_id,
                "documents": [artifact.model_dump(mode="json") for artifact in artifacts],
                "verifications": [result.model_dump(mode="json") for result in results],
            }
        except Exception as exc:
            raise to_http_exception(exc, "Get documents")

    return router

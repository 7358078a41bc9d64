"""Operator endpoints: overrides, edits, deletion, audit trail and whitelist reload."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Header, HTTPException, Query, status
from pydantic import BaseModel, Field

from api.errors import to_http_exception
from core.config import AppSettings
from models.decisions import OverrideRequest
from models.enums import ApplicationStatus, OperatorRole
from repositories.document_whitelist_repository import DocumentWhitelistRepository
from services.decision_service import DecisionService


logger = logging.getLogger(__name__)

ADMIN_ONLY = {OperatorRole.ADMIN.value}
ANY_OPERATOR = {OperatorRole.ADMIN.value, OperatorRole.REVIEWER.value}


class OverridePayload(BaseModel):
    """Request payload for an admin decision override."""

    application_id: str = Field(..., min_length=3)
    new_decision: str = Field(...)
    reason: Optional[str] = Field(default=None)
    expected_decision: Optional[str] = Field(default=None)


class ApplicationEditRequest(BaseModel):
    """Request payload for correcting applicant profile fields."""

    updates: Dict[str, Any] = Field(default_factory=dict)
    admin_note: Optional[str] = Field(default=None, max_length=1000)


def _require_operator(
    operator_id: Optional[str],
    operator_role: Optional[str],
    allowed: set[str],
    settings: AppSettings,
) -> str:
    """Validate the calling operator against the configured registry and return its id."""
    normalized_id = (operator_id or "").strip()
    normalized_role = (operator_role or "").strip().upper()
    if not normalized_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Operator-Id header.",
        )
    registered_role = settings.admin_operators.get(normalized_id)
    if registered_role is None or registered_role != normalized_role:
        logger.warning("Unknown operator or role mismatch operator_id=%s role=%s", normalized_id, normalized_role)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Operator is not registered with this role.",
        )
    if registered_role not in allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Role not permitted. Allowed roles: {0}".format(", ".join(sorted(allowed))),
        )
    return normalized_id


def build_admin_router(
    settings: AppSettings,
    decision_service: DecisionService,
    whitelist_repository: DocumentWhitelistRepository,
) -> APIRouter:
    """Build the operator router mounted under `/admin`."""
    router = APIRouter(prefix="/admin", tags=["admin"])

    @router.post("/override", summary="Override an application decision")
    def override_decision(
        payload: OverridePayload,
        x_operator_id: Optional[str] = Header(default=None),
        x_operator_role: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        """Replace the system decision; a non-empty reason is mandatory."""
        actor = _require_operator(x_operator_id, x_operator_role, ADMIN_ONLY, settings)
        try:
            request = OverrideRequest(
                application_id=payload.application_id,
                new_decision=payload.new_decision,
                reason=payload.reason,
                expected_decision=payload.expected_decision or None,
            )
            decision = decision_service.override_decision(request, actor=actor)
            return {
                "success": True,
                "application_id": payload.application_id,
                "decision": decision.model_dump(mode="json"),
                "message": "Decision updated to {0}".format(decision.decision.value),
            }
        except Exception as exc:
            raise to_http_exception(exc, "Admin override")

    @router.get("/applications", summary="List applications")
    def list_applications(
        status_filter: Optional[ApplicationStatus] = Query(default=None, alias="status"),
        limit: int = Query(default=50, ge=1, le=500),
        x_operator_id: Optional[str] = Header(default=None),
        x_operator_role: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        """Return the newest applications, optionally filtered by status."""
        _require_operator(x_operator_id, x_operator_role, ANY_OPERATOR, settings)
        try:
            records = decision_service.list_applications(status=status_filter, limit=limit)
            return {
                "count": len(records),
                "applications": [record.model_dump(mode="json") for record in records],
            }
        except Exception as exc:
            raise to_http_exception(exc, "List applications")

    @router.patch("/applications/{application_id}", summary="Edit applicant profile fields")
    def edit_application(
        application_id: str,
        payload: ApplicationEditRequest,
        x_operator_id: Optional[str] = Header(default=None),
        x_operator_role: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        """Correct profile fields without rescoring."""
        actor = _require_operator(x_operator_id, x_operator_role, ADMIN_ONLY, settings)
        try:
            record = decision_service.edit_application(
                application_id,
                changes=payload.updates,
                admin_note=payload.admin_note,
                actor=actor,
            )
            return {"success": True, "application": record.model_dump(mode="json")}
        except Exception as exc:
            raise to_http_exception(exc, "Edit application")

    @router.delete("/applications/{application_id}", summary="Delete an application")
    def delete_application(
        application_id: str,
        reason: Optional[str] = Query(default=None),
        x_operator_id: Optional[str] = Header(default=None),
        x_operator_role: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        """Hard delete an application and its documents; the audit trail is kept."""
        actor = _require_operator(x_operator_id, x_operator_role, ADMIN_ONLY, settings)
        try:
            result = decision_service.delete_application(application_id, actor=actor, reason=reason)
            return {"success": True, **result}
        except Exception as exc:
            raise to_http_exception(exc, "Delete application")

    @router.get("/applications/{application_id}/audit", summary="Audit trail of an application")
    def audit_trail(
        application_id: str,
        x_operator_id: Optional[str] = Header(default=None),
        x_operator_role: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        _require_operator(x_operator_id, x_operator_role, ANY_OPERATOR, settings)
        try:
            entries = decision_service.get_audit_trail(application_id)
            return {
                "application_id": application_id,
                "entries": [entry.model_dump(mode="json") for entry in entries],
            }
        except Exception as exc:
            raise to_http_exception(exc, "Audit trail")

    @router.get("/stats", summary="Dashboard statistics")
    def dashboard_stats(
        x_operator_id: Optional[str] = Header(default=None),
        x_operator_role: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        _require_operator(x_operator_id, x_operator_role, ANY_OPERATOR, settings)
        try:
            return decision_service.dashboard_stats()
        except Exception as exc:
            raise to_http_exception(exc, "Dashboard stats")

    @router.post("/whitelist/reload", summary="Reload the document whitelist")
    def reload_whitelist(
        x_operator_id: Optional[str] = Header(default=None),
        x_operator_role: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        """Swap in the whitelist file from disk; a broken file keeps the current snapshot."""
        actor = _require_operator(x_operator_id, x_operator_role, ADMIN_ONLY, settings)
        try:
            count = whitelist_repository.reload()
            logger.info("Whitelist reloaded by operator_id=%s entries=%d", actor, count)
            return {"success": True, "entries": count, "stats": whitelist_repository.stats()}
        except (OSError, ValueError) as exc:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
        except Exception as exc:
            raise to_http_exception(exc, "Whitelist reload")

    return router

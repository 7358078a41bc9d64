"""Loan application record aggregating profile, assessment, KYC and decision."""

import logging
from typing import List, Optional

from pydantic import BaseModel, Field, root_validator

from .applicants import ApplicantProfile
from .base import BaseRecordModel
from .decisions import DecisionRecord
from .enums import ApplicationStatus, DecisionMaker, WorkflowStage
from .risk_assessments import RiskAssessment


logger = logging.getLogger(__name__)


class KycSummary(BaseModel):
    """Roll-up of per-document verification outcomes."""

    documents_total: int = Field(default=0, ge=0)
    documents_passed: int = Field(default=0, ge=0)
    documents_pending: int = Field(default=0, ge=0)
    documents_invalid: int = Field(default=0, ge=0)
    needs_review: bool = Field(default=False)
    warnings: List[str] = Field(default_factory=list)
    statuses: dict = Field(default_factory=dict)

    @property
    def all_passed(self) -> bool:
        return self.documents_total > 0 and self.documents_passed == self.documents_total


class AdminNote(BaseModel):
    """Free-text note left by an operator when editing an application."""

    actor: str
    note: str
    changed_fields: List[str] = Field(default_factory=list)


class ApplicationRecord(BaseRecordModel):
    """One submitted application and its current state."""

    application_id: str = Field(..., min_length=3)
    profile: ApplicantProfile = Field(...)
    stage: WorkflowStage = Field(default=WorkflowStage.INTAKE)
    status: ApplicationStatus = Field(default=ApplicationStatus.PROCESSING)
    assessment: Optional[RiskAssessment] = Field(default=None)
    decision: Optional[DecisionRecord] = Field(default=None)
    explanation: Optional[str] = Field(default=None)
    explanation_source: Optional[str] = Field(default=None)
    document_ids: List[str] = Field(default_factory=list)
    kyc: KycSummary = Field(default_factory=KycSummary)
    override_count: int = Field(default=0, ge=0)
    admin_notes: List[AdminNote] = Field(default_factory=list)
    submitted_by: str = Field(default="applicant")

    @root_validator(skip_on_failure=True)
    def _validate_decision_state(cls, values: dict) -> dict:
        """A decision requires an assessment; override count must match the decision maker."""
        try:
            decision = values.get("decision")
            if decision is not None and values.get("assessment") is None:
                raise ValueError("decision requires a risk assessment")
            if decision is not None and decision.decision_maker == DecisionMaker.ADMIN and not values.get("override_count"):
                raise ValueError("admin decision requires override_count >= 1")
            return values
        except Exception:
            logger.exception("Application record validation failed application_id=%s", values.get("application_id"))
            raise

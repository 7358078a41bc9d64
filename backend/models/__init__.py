"""Public model package exports for the credit decision engine."""

from .applicants import ApplicantProfile
from .applications import AdminNote, ApplicationRecord, KycSummary
from .audit_logs import AuditLogEntry
from .base import BaseRecordModel, new_id, utc_now
from .decisions import DecisionRecord, OverrideRequest, status_for_decision
from .documents import (
    AadhaarFields,
    BankStatementFields,
    DocumentArtifact,
    ExtractedFields,
    PanFields,
    SalarySlipFields,
    SelfieFields,
    parse_extracted_fields,
)
from .enums import (
    ApplicationStatus,
    AuditAction,
    AuditStatus,
    Decision,
    DecisionMaker,
    DocumentType,
    EmploymentType,
    FlagSeverity,
    MatchMethod,
    MissingReferencePolicy,
    OcrStatus,
    OperatorRole,
    OverrideDecision,
    RiskDecision,
    ValidationStatus,
    WorkflowStage,
)
from .exceptions import (
    CollaboratorError,
    IntegrityViolationError,
    InvalidTransitionError,
    ModelError,
    ModelNotFoundError,
    ModelValidationError,
    OverrideLimitError,
    VersionConflictError,
)
from .repositories import (
    ApplicationRepository,
    AuditLogRepository,
    DocumentRepository,
    VerificationRepository,
)
from .risk_assessments import RiskAssessment, RiskBreakdown
from .verifications import (
    CrossValidationResult,
    FieldCheck,
    HashVerificationResult,
    SimilarityOutcome,
    VerificationResult,
)

__all__ = [
    "ApplicantProfile",
    "AdminNote",
    "ApplicationRecord",
    "KycSummary",
    "AuditLogEntry",
    "BaseRecordModel",
    "new_id",
    "utc_now",
    "DecisionRecord",
    "OverrideRequest",
    "status_for_decision",
    "AadhaarFields",
    "BankStatementFields",
    "DocumentArtifact",
    "ExtractedFields",
    "PanFields",
    "SalarySlipFields",
    "SelfieFields",
    "parse_extracted_fields",
    "ApplicationStatus",
    "AuditAction",
    "AuditStatus",
    "Decision",
    "DecisionMaker",
    "DocumentType",
    "EmploymentType",
    "FlagSeverity",
    "MatchMethod",
    "MissingReferencePolicy",
    "OcrStatus",
    "OperatorRole",
    "OverrideDecision",
    "RiskDecision",
    "ValidationStatus",
    "WorkflowStage",
    "CollaboratorError",
    "IntegrityViolationError",
    "InvalidTransitionError",
    "ModelError",
    "ModelNotFoundError",
    "ModelValidationError",
    "OverrideLimitError",
    "VersionConflictError",
    "ApplicationRepository",
    "AuditLogRepository",
    "DocumentRepository",
    "VerificationRepository",
    "RiskAssessment",
    "RiskBreakdown",
    "CrossValidationResult",
    "FieldCheck",
    "HashVerificationResult",
    "SimilarityOutcome",
    "VerificationResult",
]

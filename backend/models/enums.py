"""Reusable enums for credit decision domain models."""

from enum import Enum


class StringEnum(str, Enum):
    """Base enum class with string behavior for JSON serialization."""


class EmploymentType(StringEnum):
    """Employment categories accepted by the risk engine."""

    SALARIED = "salaried"
    SELF_EMPLOYED = "self_employed"


class RiskDecision(StringEnum):
    """Automated decision produced by the risk engine."""

    APPROVED = "approved"
    PENDING = "pending"
    REJECTED = "rejected"


class Decision(StringEnum):
    """Any decision an application record can carry."""

    APPROVED = "approved"
    PENDING = "pending"
    REJECTED = "rejected"
    UNDER_REVIEW = "under_review"


class OverrideDecision(StringEnum):
    """Decision values an admin override may set."""

    APPROVED = "approved"
    REJECTED = "rejected"
    UNDER_REVIEW = "under_review"


class DecisionMaker(StringEnum):
    """Who produced the current decision."""

    SYSTEM = "system"
    ADMIN = "admin"


class ApplicationStatus(StringEnum):
    """Externally visible application status."""

    APPROVED = "approved"
    REJECTED = "rejected"
    PROCESSING = "processing"


class WorkflowStage(StringEnum):
    """Pipeline stages of one application."""

    INTAKE = "intake"
    KYC_VERIFICATION = "kyc_verification"
    CREDIT_SCORING = "credit_scoring"
    DECISION = "decision"
    COMPLETED = "completed"


class DocumentType(StringEnum):
    """Supported uploaded document types."""

    AADHAAR = "aadhaar"
    PAN = "pan"
    SALARY_SLIP = "salary_slip"
    BANK_STATEMENT = "bank_statement"
    SELFIE = "selfie"


class ValidationStatus(StringEnum):
    """Per-document validation outcome."""

    VALID = "valid"
    INVALID = "invalid"
    PENDING = "pending"


class OcrStatus(StringEnum):
    """Outcome of the OCR collaborator call."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class MatchMethod(StringEnum):
    """How an authenticity match was established."""

    EXACT_DIGEST = "exact_digest"
    FINGERPRINT = "fingerprint"
    SIMILARITY = "similarity"
    REFERENCE_SKIPPED = "reference_skipped"
    NONE = "none"


class MissingReferencePolicy(StringEnum):
    """What to do when no reference image exists for similarity comparison."""

    ACCEPT = "accept"
    REJECT = "reject"
    REQUIRE_MANUAL_REVIEW = "require_manual_review"


class FlagSeverity(StringEnum):
    """Cross-validation flag severity."""

    SOFT = "soft"
    HARD = "hard"


class AuditStatus(StringEnum):
    """Outcome recorded on an audit entry."""

    SUCCESS = "success"
    FAILED = "failed"
    REJECTED = "rejected"


class AuditAction(StringEnum):
    """Audit event names."""

    INTAKE_RECEIVED = "INTAKE_RECEIVED"
    KYC_VERIFIED = "KYC_VERIFIED"
    CREDIT_SCORED = "CREDIT_SCORED"
    DECISION_MADE = "DECISION_MADE"
    PIPELINE_COMPLETED = "PIPELINE_COMPLETED"
    ADMIN_OVERRIDE = "ADMIN_OVERRIDE"
    ADMIN_EDIT = "ADMIN_EDIT"
    APPLICATION_DELETED = "APPLICATION_DELETED"


class OperatorRole(StringEnum):
    """Role names used for admin API authorization checks."""

    ADMIN = "ADMIN"
    REVIEWER = "REVIEWER"

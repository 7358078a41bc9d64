"""Verification outcomes: hash checks, field cross-validation and the combined per-document result."""

import logging
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, root_validator

from .base import BaseRecordModel
from .enums import DocumentType, FlagSeverity, MatchMethod, MissingReferencePolicy, ValidationStatus


logger = logging.getLogger(__name__)


class HashVerificationResult(BaseModel):
    """Outcome of the exact digest / fingerprint whitelist check."""

    model_config = ConfigDict(frozen=True)

    matched: bool
    digest: str
    fingerprint: str
    match_method: MatchMethod = MatchMethod.NONE
    message: str = ""


class SimilarityOutcome(BaseModel):
    """Outcome of the tolerant byte-sampling comparison (or the missing-reference policy)."""

    model_config = ConfigDict(frozen=True)

    matched: bool
    similarity_score: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    reference_missing: bool = False
    policy_applied: Optional[MissingReferencePolicy] = None
    needs_manual_review: bool = False
    message: str = ""


class FieldCheck(BaseModel):
    """One cross-validation check."""

    model_config = ConfigDict(frozen=True)

    check: str
    passed: bool
    severity: FlagSeverity = FlagSeverity.SOFT
    flag: Optional[str] = None
    score: Optional[float] = None


class CrossValidationResult(BaseModel):
    """All checks for one document plus the derived confidence."""

    model_config = ConfigDict(frozen=True)

    document_type: DocumentType
    checks: List[FieldCheck] = Field(default_factory=list)
    confidence: int = Field(default=0, ge=0, le=100)

    @property
    def flags(self) -> List[str]:
        """Human-readable flags of all failed checks, in check order."""
        return [check.flag or check.check for check in self.checks if not check.passed]

    @property
    def soft_flags(self) -> List[str]:
        return [
            check.flag or check.check
            for check in self.checks
            if not check.passed and check.severity == FlagSeverity.SOFT
        ]

    @property
    def hard_flags(self) -> List[str]:
        return [
            check.flag or check.check
            for check in self.checks
            if not check.passed and check.severity == FlagSeverity.HARD
        ]


class VerificationResult(BaseRecordModel):
    """Per-document outcome combining authenticity and field cross-validation.

    `matched` is only true for an exact digest or fingerprint hit, a similarity
    score at or above `similarity_threshold`, or a skipped comparison accepted
    under the `accept` missing-reference policy.

    `whitelist_snapshot` and `authenticity_message` record the authenticity
    half on its own so a later upload of the same bytes can reuse it while
    cross-validating against its own profile.
    """

    result_id: str = Field(..., min_length=3)
    application_id: str = Field(..., min_length=3)
    document_id: str = Field(..., min_length=3)
    document_type: DocumentType = Field(...)
    identity_claim: str = Field(default="")
    content_digest: str = Field(..., min_length=64, max_length=64)
    fingerprint: str = Field(..., min_length=18)
    matched: bool = Field(default=False)
    match_method: MatchMethod = Field(default=MatchMethod.NONE)
    similarity_score: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    similarity_threshold: float = Field(default=80.0, ge=0.0, le=100.0)
    reference_missing: bool = Field(default=False)
    missing_reference_policy: Optional[MissingReferencePolicy] = Field(default=None)
    whitelist_snapshot: str = Field(default="")
    authenticity_message: str = Field(default="")
    cross_validation: Optional[CrossValidationResult] = Field(default=None)
    validation_status: ValidationStatus = Field(default=ValidationStatus.PENDING)
    needs_review: bool = Field(default=False)
    passed: bool = Field(default=False)
    message: str = Field(default="")

    @root_validator(skip_on_failure=True)
    def _validate_match_invariant(cls, values: dict) -> dict:
        """Enforce the matched / passed invariants."""
        try:
            method = values.get("match_method")
            if values.get("matched"):
                if method in (MatchMethod.EXACT_DIGEST, MatchMethod.FINGERPRINT):
                    pass
                elif method == MatchMethod.SIMILARITY:
                    score = values.get("similarity_score")
                    if score is None or score < values.get("similarity_threshold", 80.0):
                        raise ValueError("similarity match requires score >= threshold")
                elif method == MatchMethod.REFERENCE_SKIPPED:
                    if values.get("missing_reference_policy") != MissingReferencePolicy.ACCEPT:
                        raise ValueError("skipped comparison can only match under the accept policy")
                else:
                    raise ValueError("matched result requires a match method")
            if values.get("passed"):
                cross = values.get("cross_validation")
                if values.get("validation_status") != ValidationStatus.VALID:
                    raise ValueError("passed requires validation_status=valid")
                if cross is not None and cross.hard_flags:
                    raise ValueError("passed cannot carry hard-fail flags")
            return values
        except Exception:
            logger.exception("Verification result validation failed result_id=%s", values.get("result_id"))
            raise

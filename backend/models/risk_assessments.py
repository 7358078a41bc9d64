"""Risk assessment produced by the additive scoring model."""

import logging
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, root_validator

from .enums import RiskDecision


logger = logging.getLogger(__name__)


class RiskBreakdown(BaseModel):
    """Five bounded sub-scores; all zero when a hard-reject gate fires."""

    model_config = ConfigDict(frozen=True)

    income_score: int = Field(default=0, ge=0, le=35)
    employment_score: int = Field(default=0, ge=0, le=20)
    dti_score: int = Field(default=0, ge=0, le=25)
    age_score: int = Field(default=0, ge=0, le=10)
    lti_score: int = Field(default=0, ge=0, le=10)

    @property
    def total(self) -> int:
        """Sum of all sub-scores."""
        return self.income_score + self.employment_score + self.dti_score + self.age_score + self.lti_score


class RiskAssessment(BaseModel):
    """Immutable scoring outcome; `triggered_rules` is the applicant-facing explanation."""

    model_config = ConfigDict(frozen=True)

    risk_score: int = Field(..., ge=0, le=100)
    decision: RiskDecision = Field(...)
    breakdown: RiskBreakdown = Field(default_factory=RiskBreakdown)
    triggered_rules: List[str] = Field(default_factory=list)
    hard_reject_gate: Optional[str] = Field(default=None)
    dti_ratio: float = Field(default=0.0, ge=0.0)
    lti_ratio: float = Field(default=0.0, ge=0.0)
    model_version: str = Field(default="additive_v1")

    @root_validator(skip_on_failure=True)
    def _validate_score(cls, values: dict) -> dict:
        """Total must equal the breakdown sum; gated assessments are score 0 and rejected."""
        try:
            breakdown = values.get("breakdown")
            if breakdown is not None and values.get("risk_score") != breakdown.total:
                raise ValueError("risk_score must equal the sum of the breakdown sub-scores")
            if values.get("hard_reject_gate"):
                if values.get("risk_score") != 0 or values.get("decision") != RiskDecision.REJECTED:
                    raise ValueError("hard-rejected assessments must have score 0 and decision rejected")
            return values
        except Exception:
            logger.exception("Risk assessment validation failed values=%s", values)
            raise

    @property
    def is_hard_reject(self) -> bool:
        """True when a gate short-circuited scoring."""
        return self.hard_reject_gate is not None

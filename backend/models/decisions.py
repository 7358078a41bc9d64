"""Decision record and admin override request."""

from datetime import datetime
import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, root_validator, validator

from .base import utc_now
from .enums import ApplicationStatus, Decision, DecisionMaker, OverrideDecision


logger = logging.getLogger(__name__)

_STATUS_BY_DECISION = {
    Decision.APPROVED: ApplicationStatus.APPROVED,
    Decision.REJECTED: ApplicationStatus.REJECTED,
}


def status_for_decision(decision: Decision) -> ApplicationStatus:
    """Map a decision to the externally visible application status."""
    return _STATUS_BY_DECISION.get(Decision(decision), ApplicationStatus.PROCESSING)


class DecisionRecord(BaseModel):
    """Current decision of an application and who made it."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    decision: Decision
    decision_maker: DecisionMaker = DecisionMaker.SYSTEM
    previous_decision: Optional[Decision] = None
    override_reason: Optional[str] = None
    actor: str = "system"
    decided_at: datetime = Field(default_factory=utc_now)

    @root_validator(skip_on_failure=True)
    def _require_reason_for_admin(cls, values: dict) -> dict:
        """Admin decisions must carry a non-empty reason and a named actor."""
        if values.get("decision_maker") == DecisionMaker.ADMIN:
            if not (values.get("override_reason") or "").strip():
                raise ValueError("override_reason is required when decision_maker is admin")
            if not (values.get("actor") or "").strip() or values.get("actor") == "system":
                raise ValueError("admin decisions must name the operator")
        return values


class OverrideRequest(BaseModel):
    """Admin override payload.

    `new_decision` and `reason` are unchecked here; `DecisionService.override_decision`
    rejects unknown values and blank reasons before any state change.
    """

    application_id: str = Field(..., min_length=3)
    new_decision: str = Field(...)
    reason: Optional[str] = Field(default=None)
    expected_decision: Optional[Decision] = Field(default=None)

    @validator("new_decision", pre=True)
    def _normalize_decision(cls, value: str) -> str:
        return str(value or "").strip().lower()

    def parsed_decision(self) -> Optional[OverrideDecision]:
        """Return the override decision or None when the value is unknown."""
        try:
            return OverrideDecision(self.new_decision)
        except ValueError:
            return None

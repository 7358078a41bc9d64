"""Append-only audit log entries."""

import logging
from typing import Any, Dict, Optional

from pydantic import ConfigDict, Field

from .base import BaseRecordModel
from .enums import AuditAction, AuditStatus, WorkflowStage


logger = logging.getLogger(__name__)


class AuditLogEntry(BaseRecordModel):
    """Immutable record of one pipeline stage or admin action."""

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    audit_id: str = Field(..., min_length=3)
    application_id: str = Field(..., min_length=3)
    action: AuditAction = Field(...)
    actor: str = Field(..., min_length=1)
    stage: Optional[WorkflowStage] = Field(default=None)
    status: AuditStatus = Field(default=AuditStatus.SUCCESS)
    input_snapshot: Dict[str, Any] = Field(default_factory=dict)
    output_snapshot: Dict[str, Any] = Field(default_factory=dict)
    reasoning: Optional[str] = Field(default=None)
    duration_ms: Optional[int] = Field(default=None, ge=0)

"""Explicit transition table for the application pipeline."""

import logging
from typing import Dict, FrozenSet

from models.enums import WorkflowStage
from models.exceptions import InvalidTransitionError


logger = logging.getLogger(__name__)

PIPELINE_TRANSITIONS: Dict[WorkflowStage, FrozenSet[WorkflowStage]] = {
    WorkflowStage.INTAKE: frozenset({WorkflowStage.KYC_VERIFICATION}),
    WorkflowStage.KYC_VERIFICATION: frozenset({WorkflowStage.CREDIT_SCORING}),
    WorkflowStage.CREDIT_SCORING: frozenset({WorkflowStage.DECISION}),
    WorkflowStage.DECISION: frozenset({WorkflowStage.COMPLETED}),
    WorkflowStage.COMPLETED: frozenset(),
}

# Only an admin override may step back from completed into decision.
OVERRIDE_TRANSITIONS: Dict[WorkflowStage, FrozenSet[WorkflowStage]] = {
    WorkflowStage.COMPLETED: frozenset({WorkflowStage.DECISION}),
    WorkflowStage.DECISION: frozenset({WorkflowStage.COMPLETED}),
}


def can_transition(current: WorkflowStage, target: WorkflowStage, via_override: bool = False) -> bool:
    """Return whether `current -> target` is allowed."""
    table = OVERRIDE_TRANSITIONS if via_override else PIPELINE_TRANSITIONS
    return WorkflowStage(target) in table.get(WorkflowStage(current), frozenset())


def transition(current: WorkflowStage, target: WorkflowStage, via_override: bool = False) -> WorkflowStage:
    """Validate and return the target stage.

    Raises:
        InvalidTransitionError: If the move is not in the transition table.
    """
    if not can_transition(current, target, via_override=via_override):
        logger.warning(
            "Rejected workflow transition current=%s target=%s via_override=%s",
            current,
            target,
            via_override,
        )
        raise InvalidTransitionError(
            "Cannot move from {0} to {1}{2}".format(
                WorkflowStage(current).value,
                WorkflowStage(target).value,
                " via override" if via_override else "",
            )
        )
    return WorkflowStage(target)

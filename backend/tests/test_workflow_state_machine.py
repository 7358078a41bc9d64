"""Unit tests for the application pipeline transition table."""

from pathlib import Path
import sys
import unittest


PROJECT_ROOT = Path(__file__).resolve().parents[2]
BACKEND_ROOT = PROJECT_ROOT / "backend"
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from models.enums import WorkflowStage
from models.exceptions import InvalidTransitionError
from services.workflow_state_machine import can_transition, transition


PIPELINE = [
    WorkflowStage.INTAKE,
    WorkflowStage.KYC_VERIFICATION,
    WorkflowStage.CREDIT_SCORING,
    WorkflowStage.DECISION,
    WorkflowStage.COMPLETED,
]


class WorkflowStateMachineTests(unittest.TestCase):
    """Forward-only pipeline with a single override loop."""

    def test_pipeline_moves_forward_one_stage_at_a_time(self) -> None:
        for current, target in zip(PIPELINE, PIPELINE[1:]):
            with self.subTest(current=current.value):
                self.assertEqual(transition(current, target), target)

    def test_skipping_or_reversing_stages_is_rejected(self) -> None:
        for current in PIPELINE:
            for target in PIPELINE:
                if PIPELINE.index(target) == PIPELINE.index(current) + 1:
                    continue
                with self.subTest(current=current.value, target=target.value):
                    self.assertFalse(can_transition(current, target))
                    with self.assertRaises(InvalidTransitionError):
                        transition(current, target)

    def test_completed_is_terminal_for_the_pipeline(self) -> None:
        self.assertFalse(can_transition(WorkflowStage.COMPLETED, WorkflowStage.DECISION))

    def test_override_may_reopen_decision_and_complete_again(self) -> None:
        stage = transition(WorkflowStage.COMPLETED, WorkflowStage.DECISION, via_override=True)
        self.assertEqual(stage, WorkflowStage.DECISION)
        self.assertEqual(transition(stage, WorkflowStage.COMPLETED, via_override=True), WorkflowStage.COMPLETED)

    def test_override_cannot_reach_other_stages(self) -> None:
        with self.assertRaises(InvalidTransitionError) as ctx:
            transition(WorkflowStage.CREDIT_SCORING, WorkflowStage.DECISION, via_override=True)
        self.assertIn("via override", str(ctx.exception))
        self.assertFalse(can_transition(WorkflowStage.COMPLETED, WorkflowStage.INTAKE, via_override=True))

    def test_plain_strings_are_accepted(self) -> None:
        self.assertEqual(transition("intake", "kyc_verification"), WorkflowStage.KYC_VERIFICATION)


if __name__ == "__main__":
    unittest.main()

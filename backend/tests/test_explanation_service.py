"""Unit tests for decision explanations and their templated fallback."""

from pathlib import Path
import sys
import unittest


PROJECT_ROOT = Path(__file__).resolve().parents[2]
BACKEND_ROOT = PROJECT_ROOT / "backend"
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from models.applicants import ApplicantProfile
from models.exceptions import CollaboratorError
from services import risk_engine
from services.explanation_service import SOURCE_LLM, SOURCE_TEMPLATE, ExplanationService, template_explanation


PROFILE = ApplicantProfile(
    name="Anita Sharma",
    age=30,
    employment_type="salaried",
    monthly_income=120000,
    existing_emi=5000,
    loan_amount=200000,
    tenure_months=24,
)


class _RecordingTransport:
    def __init__(self, response=None, error=None) -> None:
        self.calls = []
        self._response = response
        self._error = error

    def __call__(self, url, payload, timeout_sec, headers=None):
        self.calls.append({"url": url, "payload": payload, "timeout_sec": timeout_sec, "headers": headers})
        if self._error is not None:
            raise self._error
        return self._response


class ExplanationServiceTests(unittest.TestCase):
    def _service(self, transport, api_key="sk-test") -> ExplanationService:
        return ExplanationService(
            enabled=True,
            base_url="https://llm.example/api/v1/",
            api_key=api_key,
            model="test-model",
            timeout_sec=3,
            transport=transport,
        )

    def test_model_answer_is_used(self) -> None:
        transport = _RecordingTransport({"choices": [{"message": {"content": "  Approved thanks to stable income.  "}}]})
        text, source = self._service(transport).explain(PROFILE, risk_engine.score(PROFILE))

        self.assertEqual((text, source), ("Approved thanks to stable income.", SOURCE_LLM))
        call = transport.calls[0]
        self.assertEqual(call["url"], "https://llm.example/api/v1/chat/completions")
        self.assertEqual(call["headers"], {"Authorization": "Bearer sk-test"})
        prompt = call["payload"]["messages"][0]["content"]
        self.assertIn("Decision: APPROVED", prompt)
        self.assertIn("1. Income 100K+ -> 35 points (Excellent)", prompt)

    def test_collaborator_failure_falls_back_to_template(self) -> None:
        assessment = risk_engine.score(PROFILE)
        transport = _RecordingTransport(error=CollaboratorError("HTTP 429"))
        self.assertEqual(
            self._service(transport).explain(PROFILE, assessment),
            (template_explanation(PROFILE, assessment), SOURCE_TEMPLATE),
        )

    def test_malformed_response_falls_back_to_template(self) -> None:
        for response in ({}, {"choices": []}, {"choices": [{"message": {"content": "   "}}]}):
            with self.subTest(response=response):
                _, source = self._service(_RecordingTransport(response)).explain(PROFILE, risk_engine.score(PROFILE))
                self.assertEqual(source, SOURCE_TEMPLATE)

    def test_missing_api_key_disables_the_model(self) -> None:
        transport = _RecordingTransport({"choices": [{"message": {"content": "unused"}}]})
        _, source = self._service(transport, api_key=None).explain(PROFILE, risk_engine.score(PROFILE))
        self.assertEqual(source, SOURCE_TEMPLATE)
        self.assertEqual(transport.calls, [])


class TemplateExplanationTests(unittest.TestCase):
    def test_rejection_quotes_the_first_rule(self) -> None:
        profile = PROFILE.model_copy(update={"age": 19})
        text = template_explanation(profile, risk_engine.score(profile))
        self.assertIn("unfortunately we cannot approve", text)
        self.assertIn("minimum age", text.lower())

    def test_pending_asks_for_review(self) -> None:
        profile = PROFILE.model_copy(
            update={"age": 50, "monthly_income": 45000, "existing_emi": 10000, "loan_amount": 300000}
        )
        self.assertIn("requires additional review", template_explanation(profile, risk_engine.score(profile)))


if __name__ == "__main__":
    unittest.main()

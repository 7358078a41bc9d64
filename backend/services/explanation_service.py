"""Natural-language decision explanation with a deterministic templated fallback."""

import logging
from typing import Any, Callable, Dict, Optional, Tuple

from common.common_functions import post_json
from core.config import AppSettings
from models.applicants import ApplicantProfile
from models.enums import RiskDecision
from models.exceptions import CollaboratorError
from models.risk_assessments import RiskAssessment


logger = logging.getLogger(__name__)

SOURCE_LLM = "llm"
SOURCE_TEMPLATE = "template"

PostJson = Callable[..., Dict[str, Any]]

_PROMPT = """You are a professional loan officer explaining a loan decision to an applicant.

Application Details:
- Name: {name}
- Age: {age}
- Employment: {employment}
- Monthly Income: {income:,.0f}
- Existing EMI: {emi:,.0f}
- Loan Amount: {loan:,.0f}
- Tenure: {tenure} months

Risk Assessment:
- Decision: {decision}

Key Factors:
{factors}

Provide a brief, empathetic explanation (2-4 sentences) in simple language explaining why this decision was made. Be professional, clear, and human. Do NOT mention the risk score number - focus on the key factors that influenced the decision."""


def template_explanation(profile: ApplicantProfile, assessment: RiskAssessment) -> str:
    """Deterministic paragraph keyed by decision."""
    if assessment.decision == RiskDecision.APPROVED:
        return (
            "Congratulations {0}! Your loan application has been approved. Your stable income profile "
            "and manageable debt obligations make you an ideal candidate for this loan."
        ).format(profile.name)
    if assessment.decision == RiskDecision.PENDING:
        return (
            "Dear {0}, your application requires additional review. While you meet basic criteria, "
            "certain factors need further assessment. Our team will contact you within 2-3 business days."
        ).format(profile.name)
    first_rule = (
        assessment.triggered_rules[0]
        if assessment.triggered_rules
        else "Your current financial profile does not meet our lending criteria."
    )
    return (
        "Dear {0}, unfortunately we cannot approve your loan at this time. {1} "
        "We encourage you to reapply once your financial situation improves."
    ).format(profile.name, first_rule)


class ExplanationService:
    """Asks an OpenAI-compatible chat endpoint for an explanation; never raises."""

    def __init__(
        self,
        enabled: bool,
        base_url: str,
        api_key: Optional[str],
        model: str,
        timeout_sec: float = 15,
        transport: PostJson = post_json,
    ) -> None:
        self._enabled = bool(enabled and api_key)
        self._url = "{0}/chat/completions".format(base_url.rstrip("/"))
        self._api_key = api_key
        self._model = model
        self._timeout_sec = timeout_sec
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "ExplanationService":
        return cls(
            enabled=settings.explanation_enabled,
            base_url=settings.explanation_base_url,
            api_key=settings.explanation_api_key,
            model=settings.explanation_model,
            timeout_sec=settings.explanation_timeout_sec,
        )

    def explain(self, profile: ApplicantProfile, assessment: RiskAssessment) -> Tuple[str, str]:
        """Return `(text, source)` where source is `llm` or `template`."""
        if not self._enabled:
            return template_explanation(profile, assessment), SOURCE_TEMPLATE
        try:
            return self._ask_model(profile, assessment), SOURCE_LLM
        except CollaboratorError as exc:
            logger.warning("Explanation collaborator failed; using template decision=%s error=%s", assessment.decision, exc)
        except Exception:
            logger.exception("Unexpected explanation failure; using template decision=%s", assessment.decision)
        return template_explanation(profile, assessment), SOURCE_TEMPLATE

    def _ask_model(self, profile: ApplicantProfile, assessment: RiskAssessment) -> str:
        prompt = _PROMPT.format(
            name=profile.name,
            age=profile.age,
            employment=profile.employment_type,
            income=profile.monthly_income,
            emi=profile.existing_emi,
            loan=profile.loan_amount,
            tenure=profile.tenure_months,
            decision=assessment.decision.value.upper(),
            factors="\n".join("{0}. {1}".format(idx, rule) for idx, rule in enumerate(assessment.triggered_rules, start=1)),
        )
        response = self._transport(
            self._url,
            {
                "model": self._model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": 0.7,
                "max_tokens": 256,
            },
            timeout_sec=self._timeout_sec,
            headers={"Authorization": "Bearer {0}".format(self._api_key)},
        )
        try:
            text = response["choices"][0]["message"]["content"].strip()
        except (KeyError, IndexError, TypeError, AttributeError):
            raise CollaboratorError("Explanation response missing choices[0].message.content")
        if not text:
            raise CollaboratorError("Explanation response was empty")
        return text

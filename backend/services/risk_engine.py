"""Deterministic additive risk scoring.

`score(profile)` is a pure function: no I/O, no clock, no randomness. The same
profile always yields the same assessment, including the exact wording and
order of `triggered_rules` (income, employment, DTI, age, loan-to-income,
then the final decision line).
"""

from typing import List, Tuple

from common import scoring_constants as sc
from models.applicants import ApplicantProfile
from models.enums import RiskDecision
from models.risk_assessments import RiskAssessment, RiskBreakdown


def _income_points(monthly_income: float) -> Tuple[int, str]:
    for minimum, points, band, label in sc.INCOME_TIERS:
        if monthly_income >= minimum:
            return points, "Income {0} -> {1} points ({2})".format(band, points, label)
    return 0, "Income below 20K -> 0 points"


def _employment_points(employment_type: str) -> Tuple[int, str]:
    for name, points, rule in sc.EMPLOYMENT_POINTS:
        if employment_type == name:
            return points, rule
    return 0, "Other employment -> 0 points"


def _dti_points(dti_ratio: float) -> Tuple[int, str]:
    percent = dti_ratio * 100
    for maximum, points, band, label in sc.DTI_TIERS:
        if dti_ratio <= maximum:
            return points, "DTI {0:.1f}% ({1}) -> {2} points ({3})".format(percent, band, points, label)
    return 0, "DTI {0:.1f}% (>50%) -> 0 points (Hard Reject)".format(percent)


def _age_points(age: int) -> Tuple[int, str]:
    for minimum, maximum, points, label in sc.AGE_TIERS:
        if minimum <= age <= maximum:
            return points, "Age {0} ({1}-{2}) -> {3} points ({4})".format(age, minimum, maximum, points, label)
    return 0, "Age {0} (outside 21-60) -> 0 points".format(age)


def _lti_points(lti_ratio: float) -> Tuple[int, str]:
    for maximum, points, band, label in sc.LTI_TIERS:
        if lti_ratio <= maximum:
            return points, "LTI ratio {0:.2f} ({1}) -> {2} points ({3})".format(lti_ratio, band, points, label)
    return 0, "LTI ratio {0:.2f} (>0.7) -> 0 points (Over-leveraged)".format(lti_ratio)


def decide(total: int) -> Tuple[RiskDecision, str]:
    """Map a total score to the automated decision and its rule line."""
    if total >= sc.APPROVE_MIN_SCORE:
        return RiskDecision.APPROVED, "DECISION: Auto Approved (Score {0}/100 >= {1})".format(total, sc.APPROVE_MIN_SCORE)
    if total >= sc.REVIEW_MIN_SCORE:
        return RiskDecision.PENDING, "DECISION: Manual Review Required (Score {0}/100 between {1}-{2})".format(
            total,
            sc.REVIEW_MIN_SCORE,
            sc.APPROVE_MIN_SCORE - 1,
        )
    return RiskDecision.REJECTED, "DECISION: Auto Rejected (Score {0}/100 < {1})".format(total, sc.REVIEW_MIN_SCORE)


def score(profile: ApplicantProfile) -> RiskAssessment:
    """Score an applicant profile.

    Hard-reject gates run first (age, income, employment, DTI) and short-circuit
    to score 0 with the firing gate as the only rule. Otherwise the five
    sub-scores are summed and thresholded at 85 (approved) and 60 (pending).
    """
    dti_ratio = sc.compute_dti_ratio(profile.existing_emi, profile.monthly_income)
    lti_ratio = sc.compute_lti_ratio(profile.loan_amount, profile.monthly_income, profile.tenure_months)

    gate = sc.gate_rule(profile.age, profile.monthly_income, profile.employment_type, dti_ratio)
    if gate is not None:
        gate_name, rule = gate
        return RiskAssessment(
            risk_score=0,
            decision=RiskDecision.REJECTED,
            breakdown=RiskBreakdown(),
            triggered_rules=[rule],
            hard_reject_gate=gate_name,
            dti_ratio=dti_ratio,
            lti_ratio=lti_ratio,
            model_version=sc.MODEL_VERSION,
        )

    rules: List[str] = []
    income_score, rule = _income_points(profile.monthly_income)
    rules.append(rule)
    employment_score, rule = _employment_points(profile.employment_type)
    rules.append(rule)
    dti_score, rule = _dti_points(dti_ratio)
    rules.append(rule)
    age_score, rule = _age_points(profile.age)
    rules.append(rule)
    lti_score, rule = _lti_points(lti_ratio)
    rules.append(rule)

    breakdown = RiskBreakdown(
        income_score=income_score,
        employment_score=employment_score,
        dti_score=dti_score,
        age_score=age_score,
        lti_score=lti_score,
    )
    total = breakdown.total
    decision, rule = decide(total)
    rules.append(rule)

    return RiskAssessment(
        risk_score=total,
        decision=decision,
        breakdown=breakdown,
        triggered_rules=rules,
        dti_ratio=dti_ratio,
        lti_ratio=lti_ratio,
        model_version=sc.MODEL_VERSION,
    )

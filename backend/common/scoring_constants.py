"""Risk scoring constants and ratio math used by the risk engine.

The additive model awards at most 100 points:

    income 35 + employment 20 + DTI 25 + age 10 + loan-to-income 10

Tier tables are evaluated top to bottom; the first matching row wins.
"""

from __future__ import annotations

from typing import Optional, Tuple

# ---------------------------------------------------------------------------
# Hard-reject gates
# ---------------------------------------------------------------------------
MIN_AGE: int = 21
MAX_AGE: int = 60
MIN_MONTHLY_INCOME: int = 20000
MAX_DTI_RATIO: float = 0.50
ACCEPTED_EMPLOYMENT_TYPES: Tuple[str, ...] = ("salaried", "self_employed")

GATE_AGE_BELOW_MIN = "HARD REJECT: Age below 21 years - minimum age requirement not met"
GATE_AGE_ABOVE_MAX = "HARD REJECT: Age above 60 years - exceeds maximum age limit"
GATE_INCOME_BELOW_MIN = "HARD REJECT: Monthly income below 20,000 - minimum income threshold not met"
GATE_EMPLOYMENT_UNSUPPORTED = "HARD REJECT: Employment type must be Salaried or Self-Employed"
GATE_DTI_ABOVE_MAX = "HARD REJECT: Debt-to-Income ratio exceeds 50% - high debt burden"

# ---------------------------------------------------------------------------
# Sub-score maxima
# ---------------------------------------------------------------------------
INCOME_MAX_POINTS: int = 35
EMPLOYMENT_MAX_POINTS: int = 20
DTI_MAX_POINTS: int = 25
AGE_MAX_POINTS: int = 10
LTI_MAX_POINTS: int = 10

# ---------------------------------------------------------------------------
# Tier tables
# ---------------------------------------------------------------------------
# (minimum monthly income, points, band, label)
INCOME_TIERS: Tuple[Tuple[int, int, str, str], ...] = (
    (100000, 35, "100K+", "Excellent"),
    (60000, 30, "60K-100K", "Very Good"),
    (40000, 24, "40K-60K", "Good"),
    (25000, 18, "25K-40K", "Moderate"),
    (20000, 12, "20K-25K", "Minimum"),
)

# (employment type, points, rule text)
EMPLOYMENT_POINTS: Tuple[Tuple[str, int, str], ...] = (
    ("salaried", 20, "Salaried employment -> 20 points (Stable income)"),
    ("self_employed", 15, "Self-employed -> 15 points (Variable income)"),
)

# (maximum DTI ratio, points, band, label)
DTI_TIERS: Tuple[Tuple[float, int, str, str], ...] = (
    (0.10, 25, "<=10%", "Excellent"),
    (0.20, 20, "10-20%", "Very Good"),
    (0.30, 15, "20-30%", "Good"),
    (0.40, 10, "30-40%", "Acceptable"),
    (0.50, 5, "40-50%", "Risky"),
)

# (minimum age, maximum age, points, label)
AGE_TIERS: Tuple[Tuple[int, int, int, str], ...] = (
    (25, 45, 10, "Prime earning years"),
    (21, 24, 8, "Early career"),
    (46, 55, 6, "Late career"),
    (56, 60, 3, "Near retirement"),
)

# (maximum LTI ratio, points, band, label)
LTI_TIERS: Tuple[Tuple[float, int, str, str], ...] = (
    (0.30, 10, "<=0.3", "Conservative"),
    (0.50, 7, "0.3-0.5", "Moderate"),
    (0.70, 4, "0.5-0.7", "Aggressive"),
)

# ---------------------------------------------------------------------------
# Decision thresholds
# ---------------------------------------------------------------------------
APPROVE_MIN_SCORE: int = 85
REVIEW_MIN_SCORE: int = 60
MODEL_VERSION: str = "additive_v1"


# ---------------------------------------------------------------------------
# Ratio helpers
# ---------------------------------------------------------------------------

def compute_dti_ratio(existing_emi: float, monthly_income: float) -> float:
    """Debt-to-income ratio; 1.0 when there is no income to divide by."""
    if monthly_income <= 0:
        return 1.0
    return existing_emi / monthly_income


def compute_lti_ratio(loan_amount: float, monthly_income: float, tenure_months: int) -> float:
    """Loan-to-income ratio over the full tenure; 1.0 when the denominator is 0."""
    denominator = monthly_income * tenure_months
    if denominator <= 0:
        return 1.0
    return loan_amount / denominator


def gate_rule(age: int, monthly_income: float, employment_type: str, dti_ratio: float) -> Optional[Tuple[str, str]]:
    """Return `(gate_name, rule_text)` for the first hard-reject gate that fires."""
    if age < MIN_AGE:
        return "age", GATE_AGE_BELOW_MIN
    if age > MAX_AGE:
        return "age", GATE_AGE_ABOVE_MAX
    if monthly_income < MIN_MONTHLY_INCOME:
        return "income", GATE_INCOME_BELOW_MIN
    if employment_type not in ACCEPTED_EMPLOYMENT_TYPES:
        return "employment", GATE_EMPLOYMENT_UNSUPPORTED
    if dti_ratio > MAX_DTI_RATIO:
        return "dti", GATE_DTI_ABOVE_MAX
    return None

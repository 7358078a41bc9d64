"""Applicant profile submitted at intake."""

import logging
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, validator

from common.text_matching import collapse_whitespace, normalize_name


logger = logging.getLogger(__name__)

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ApplicantProfile(BaseModel):
    """Self-reported applicant attributes; frozen once submitted.

    `employment_type` is kept as a normalized string rather than an enum so that
    unsupported categories reach the risk engine and trip its employment gate.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    name: str = Field(..., min_length=2, max_length=100)
    age: int = Field(..., ge=0, le=120)
    phone: Optional[str] = Field(default=None)
    email: Optional[str] = Field(default=None)
    employment_type: str = Field(..., min_length=1)
    monthly_income: float = Field(..., ge=0)
    existing_emi: float = Field(default=0, ge=0)
    loan_amount: float = Field(..., ge=1000, le=100000000)
    tenure_months: int = Field(..., ge=6, le=360)
    loan_type: Optional[str] = Field(default=None)
    employer_name: Optional[str] = Field(default=None)
    pan_number: Optional[str] = Field(default=None)
    aadhaar_number: Optional[str] = Field(default=None)

    @validator("name")
    def _collapse_name(cls, value: str) -> str:
        """Collapse internal whitespace in the declared name."""
        return collapse_whitespace(value)

    @validator("employment_type", pre=True)
    def _normalize_employment_type(cls, value: str) -> str:
        """Lowercase and map `self-employed` / `self employed` to `self_employed`."""
        normalized = str(value or "").strip().lower()
        return re.sub(r"[\s-]+", "_", normalized)

    @validator("email")
    def _validate_email(cls, value: Optional[str]) -> Optional[str]:
        """Reject obviously malformed email addresses."""
        if value is None or value == "":
            return None
        if not _EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email address")
        return value.lower()

    @validator("phone")
    def _validate_phone(cls, value: Optional[str]) -> Optional[str]:
        """Keep digits only and require 10 to 15 of them."""
        if value is None or value == "":
            return None
        digits = re.sub(r"\D", "", value)
        if len(digits) < 10 or len(digits) > 15:
            raise ValueError("phone must contain 10 to 15 digits")
        return digits

    @validator("pan_number")
    def _upper_pan(cls, value: Optional[str]) -> Optional[str]:
        """PAN numbers are compared uppercase."""
        return value.upper() if value else None

    @property
    def identity_claim(self) -> str:
        """Key used to look up whitelist and reference entries for this applicant."""
        return normalize_name(self.name)

"""Uploaded document artifacts and their typed OCR field shapes."""

import logging
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, validator

from common.id_formats import clean_aadhaar, parse_amount
from .base import BaseRecordModel
from .enums import DocumentType, OcrStatus, ValidationStatus


logger = logging.getLogger(__name__)


class _OcrFields(BaseModel):
    """Common config for OCR field shapes; unknown keys are ignored."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    @validator("*", pre=True)
    def _blank_to_none(cls, value: Any) -> Any:
        """Treat empty OCR strings as missing."""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def missing(self, required: List[str]) -> List[str]:
        """Names of required fields the OCR did not return."""
        return [name for name in required if getattr(self, name, None) in (None, "")]


class AadhaarFields(_OcrFields):
    document_type: Literal["aadhaar"] = "aadhaar"
    name: Optional[str] = None
    aadhaar_number: Optional[str] = None
    date_of_birth: Optional[str] = None
    gender: Optional[str] = None
    address: Optional[str] = None

    @validator("aadhaar_number")
    def _strip_separators(cls, value: Optional[str]) -> Optional[str]:
        return clean_aadhaar(value) if value else None


class PanFields(_OcrFields):
    document_type: Literal["pan"] = "pan"
    name: Optional[str] = None
    pan_number: Optional[str] = None
    father_name: Optional[str] = None
    date_of_birth: Optional[str] = None

    @validator("pan_number")
    def _upper(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else None


class SalarySlipFields(_OcrFields):
    document_type: Literal["salary_slip"] = "salary_slip"
    employee_name: Optional[str] = None
    employer_name: Optional[str] = None
    employee_id: Optional[str] = None
    pay_period: Optional[str] = None
    basic_salary: Optional[float] = None
    gross_salary: Optional[float] = None
    net_salary: Optional[float] = None

    @validator("basic_salary", "gross_salary", "net_salary", pre=True)
    def _parse_amounts(cls, value: Any) -> Optional[float]:
        return parse_amount(value)


class BankStatementFields(_OcrFields):
    document_type: Literal["bank_statement"] = "bank_statement"
    account_holder_name: Optional[str] = None
    account_number: Optional[str] = None
    ifsc_code: Optional[str] = None
    bank_name: Optional[str] = None
    statement_period: Optional[str] = None
    average_balance: Optional[float] = None
    total_credits: Optional[float] = None

    @validator("average_balance", "total_credits", pre=True)
    def _parse_amounts(cls, value: Any) -> Optional[float]:
        return parse_amount(value)

    @validator("ifsc_code")
    def _upper(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else None


class SelfieFields(_OcrFields):
    document_type: Literal["selfie"] = "selfie"
    face_match_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    face_detected: Optional[bool] = None


ExtractedFields = Union[AadhaarFields, PanFields, SalarySlipFields, BankStatementFields, SelfieFields]

_FIELD_MODELS = {
    DocumentType.AADHAAR: AadhaarFields,
    DocumentType.PAN: PanFields,
    DocumentType.SALARY_SLIP: SalarySlipFields,
    DocumentType.BANK_STATEMENT: BankStatementFields,
    DocumentType.SELFIE: SelfieFields,
}

# OCR providers disagree on key names; map the common variants.
_FIELD_ALIASES = {
    "ifsc": "ifsc_code",
    "dob": "date_of_birth",
    "employer": "employer_name",
    "company_name": "employer_name",
    "holder_name": "account_holder_name",
    "pan": "pan_number",
    "aadhaar": "aadhaar_number",
}


def parse_extracted_fields(document_type: DocumentType, raw: Optional[Dict[str, Any]]) -> ExtractedFields:
    """Build the typed field model for a document from an untyped OCR map.

    Invalid individual values are dropped instead of failing the whole map.
    """
    model_cls = _FIELD_MODELS[DocumentType(document_type)]
    payload: Dict[str, Any] = {}
    for key, value in (raw or {}).items():
        name = _FIELD_ALIASES.get(str(key).strip().lower(), str(key).strip().lower())
        if name in model_cls.model_fields and name != "document_type":
            payload[name] = value
    try:
        return model_cls.model_validate(payload)
    except ValidationError as exc:
        bad_fields = {str(error["loc"][0]) for error in exc.errors() if error.get("loc")}
        logger.warning(
            "Dropping invalid OCR fields document_type=%s fields=%s",
            document_type,
            sorted(bad_fields),
        )
        cleaned = {key: value for key, value in payload.items() if key not in bad_fields}
        return model_cls.model_validate(cleaned)


class DocumentArtifact(BaseRecordModel):
    """One uploaded document; never mutated after creation (re-upload creates a new artifact)."""

    document_id: str = Field(..., min_length=3)
    application_id: str = Field(..., min_length=3)
    document_type: DocumentType = Field(...)
    content_ref: str = Field(..., min_length=8)
    content_digest: str = Field(..., min_length=64, max_length=64)
    fingerprint: str = Field(..., min_length=18)
    byte_length: int = Field(..., ge=0)
    mime_type: Optional[str] = Field(default=None)
    extracted_fields: Optional[ExtractedFields] = Field(default=None)
    ocr_status: OcrStatus = Field(default=OcrStatus.SKIPPED)
    validation_status: ValidationStatus = Field(default=ValidationStatus.PENDING)
    validation_message: str = Field(default="")
    warnings: List[str] = Field(default_factory=list)

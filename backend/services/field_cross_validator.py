"""Reconcile OCR-extracted document fields with form-entered applicant claims."""

import logging
from typing import Callable, Dict, List, Optional

from common.id_formats import clean_aadhaar, mask_identifier, validate_aadhaar_number, validate_ifsc_code, validate_pan_number
from common.text_matching import name_similarity
from models.applicants import ApplicantProfile
from models.documents import (
    AadhaarFields,
    BankStatementFields,
    ExtractedFields,
    PanFields,
    SalarySlipFields,
    SelfieFields,
)
from models.enums import DocumentType, FlagSeverity
from models.verifications import CrossValidationResult, FieldCheck


logger = logging.getLogger(__name__)

REQUIRED_FIELDS: Dict[DocumentType, List[str]] = {
    DocumentType.AADHAAR: ["name", "aadhaar_number"],
    DocumentType.PAN: ["name", "pan_number"],
    DocumentType.SALARY_SLIP: ["employee_name", "basic_salary", "net_salary"],
    DocumentType.BANK_STATEMENT: ["account_number", "ifsc_code", "account_holder_name"],
    DocumentType.SELFIE: ["face_match_score"],
}

# Salary figures outside this band are treated as OCR misreads.
SALARY_PLAUSIBLE_MIN = 10000
SALARY_PLAUSIBLE_MAX = 1000000


class FieldCrossValidator:
    """Per-document-type field checks.

    Soft flags (name drift, salary outside tolerance, missing fields) lower the
    confidence score and mark the document for review. Hard flags (malformed
    national ID or IFSC, ID number different from the declared one) make the
    document fail.
    """

    def __init__(
        self,
        name_match_threshold: float = 0.70,
        name_partial_threshold: float = 0.40,
        salary_tolerance_ratio: float = 0.20,
        face_match_threshold: float = 0.70,
    ) -> None:
        self._name_match_threshold = float(name_match_threshold)
        self._name_partial_threshold = float(name_partial_threshold)
        self._salary_tolerance_ratio = float(salary_tolerance_ratio)
        self._face_match_threshold = float(face_match_threshold)
        self._handlers: Dict[DocumentType, Callable[[ExtractedFields, ApplicantProfile], List[FieldCheck]]] = {
            DocumentType.AADHAAR: self._check_aadhaar,
            DocumentType.PAN: self._check_pan,
            DocumentType.SALARY_SLIP: self._check_salary_slip,
            DocumentType.BANK_STATEMENT: self._check_bank_statement,
            DocumentType.SELFIE: self._check_selfie,
        }

    def validate(self, fields: ExtractedFields, profile: ApplicantProfile) -> CrossValidationResult:
        """Run every check for the document type of `fields`."""
        document_type = DocumentType(fields.document_type)
        checks: List[FieldCheck] = [
            FieldCheck(
                check="missing_{0}".format(name),
                passed=False,
                severity=FlagSeverity.SOFT,
                flag="Missing OCR field: {0}".format(name),
            )
            for name in fields.missing(REQUIRED_FIELDS[document_type])
        ]
        checks.extend(self._handlers[document_type](fields, profile))

        passed = sum(1 for check in checks if check.passed)
        confidence = int(round(100 * passed / len(checks))) if checks else 0
        result = CrossValidationResult(document_type=document_type, checks=checks, confidence=confidence)
        if result.flags:
            logger.info(
                "Cross-validation flags document_type=%s confidence=%d flags=%s",
                document_type.value,
                confidence,
                result.flags,
            )
        return result

    # ------------------------------------------------------------------
    # shared checks
    # ------------------------------------------------------------------
    def _name_check(self, check: str, extracted: Optional[str], declared: str) -> Optional[FieldCheck]:
        if not extracted:
            return None
        similarity = round(name_similarity(extracted, declared), 2)
        if similarity >= self._name_match_threshold:
            return FieldCheck(check=check, passed=True, score=similarity)
        if similarity >= self._name_partial_threshold:
            flag = "Name partially matches declared name (similarity {0:.0f}%)".format(similarity * 100)
        else:
            flag = "Name does not match declared name (similarity {0:.0f}%)".format(similarity * 100)
        return FieldCheck(check=check, passed=False, severity=FlagSeverity.SOFT, flag=flag, score=similarity)

    @staticmethod
    def _format_check(check: str, value: Optional[str], validator: Callable[[Optional[str]], tuple]) -> Optional[FieldCheck]:
        if not value:
            return None
        valid, message = validator(value)
        if valid:
            return FieldCheck(check=check, passed=True)
        return FieldCheck(check=check, passed=False, severity=FlagSeverity.HARD, flag=message)

    @staticmethod
    def _declared_id_check(check: str, extracted: Optional[str], declared: Optional[str], label: str) -> Optional[FieldCheck]:
        if not extracted or not declared:
            return None
        if extracted == declared:
            return FieldCheck(check=check, passed=True)
        return FieldCheck(
            check=check,
            passed=False,
            severity=FlagSeverity.HARD,
            flag="{0} on document ({1}) differs from declared {0} ({2})".format(
                label,
                mask_identifier(extracted),
                mask_identifier(declared),
            ),
        )

    # ------------------------------------------------------------------
    # per document type
    # ------------------------------------------------------------------
    def _check_aadhaar(self, fields: AadhaarFields, profile: ApplicantProfile) -> List[FieldCheck]:
        declared = clean_aadhaar(profile.aadhaar_number) if profile.aadhaar_number else None
        checks = [
            self._name_check("name_match", fields.name, profile.name),
            self._format_check("aadhaar_format", fields.aadhaar_number, validate_aadhaar_number),
            self._declared_id_check("aadhaar_declared", fields.aadhaar_number, declared, "Aadhaar number"),
        ]
        return [check for check in checks if check is not None]

    def _check_pan(self, fields: PanFields, profile: ApplicantProfile) -> List[FieldCheck]:
        checks = [
            self._name_check("name_match", fields.name, profile.name),
            self._format_check("pan_format", fields.pan_number, validate_pan_number),
            self._declared_id_check("pan_declared", fields.pan_number, profile.pan_number, "PAN"),
        ]
        return [check for check in checks if check is not None]

    def _check_salary_slip(self, fields: SalarySlipFields, profile: ApplicantProfile) -> List[FieldCheck]:
        checks: List[Optional[FieldCheck]] = [self._name_check("name_match", fields.employee_name, profile.name)]

        amount = fields.net_salary if fields.net_salary is not None else fields.gross_salary
        if amount is not None:
            if not SALARY_PLAUSIBLE_MIN <= amount <= SALARY_PLAUSIBLE_MAX:
                checks.append(
                    FieldCheck(
                        check="salary_plausible",
                        passed=False,
                        flag="Salary {0:,.0f} outside plausible range {1:,}-{2:,}".format(
                            amount,
                            SALARY_PLAUSIBLE_MIN,
                            SALARY_PLAUSIBLE_MAX,
                        ),
                    )
                )
            checks.append(self._salary_tolerance_check(amount, profile.monthly_income))

        if fields.employer_name and profile.employer_name:
            similarity = round(name_similarity(fields.employer_name, profile.employer_name), 2)
            if similarity >= self._name_partial_threshold:
                checks.append(FieldCheck(check="employer_match", passed=True, score=similarity))
            else:
                checks.append(
                    FieldCheck(
                        check="employer_match",
                        passed=False,
                        flag="Employer on salary slip does not match declared employer",
                        score=similarity,
                    )
                )
        return [check for check in checks if check is not None]

    def _salary_tolerance_check(self, amount: float, monthly_income: float) -> FieldCheck:
        if monthly_income <= 0:
            return FieldCheck(check="salary_consistency", passed=False, flag="No declared income to compare salary against")
        deviation = abs(amount - monthly_income) / monthly_income
        if deviation <= self._salary_tolerance_ratio:
            return FieldCheck(check="salary_consistency", passed=True, score=round(deviation, 4))
        return FieldCheck(
            check="salary_consistency",
            passed=False,
            flag="Salary slip amount {0:,.0f} deviates {1:.0f}% from declared income {2:,.0f} (tolerance {3:.0f}%)".format(
                amount,
                deviation * 100,
                monthly_income,
                self._salary_tolerance_ratio * 100,
            ),
            score=round(deviation, 4),
        )

    def _check_bank_statement(self, fields: BankStatementFields, profile: ApplicantProfile) -> List[FieldCheck]:
        checks = [
            self._name_check("name_match", fields.account_holder_name, profile.name),
            self._format_check("ifsc_format", fields.ifsc_code, validate_ifsc_code),
        ]
        return [check for check in checks if check is not None]

    def _check_selfie(self, fields: SelfieFields, profile: ApplicantProfile) -> List[FieldCheck]:
        if fields.face_match_score is None:
            return []
        if fields.face_match_score >= self._face_match_threshold:
            return [FieldCheck(check="face_match", passed=True, score=fields.face_match_score)]
        return [
            FieldCheck(
                check="face_match",
                passed=False,
                flag="Face match {0:.0f}% below {1:.0f}%".format(
                    fields.face_match_score * 100,
                    self._face_match_threshold * 100,
                ),
                score=fields.face_match_score,
            )
        ]

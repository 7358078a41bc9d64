"""Unit tests for OCR field parsing, identifier formats and field cross-validation."""

from pathlib import Path
import sys
import unittest


PROJECT_ROOT = Path(__file__).resolve().parents[2]
BACKEND_ROOT = PROJECT_ROOT / "backend"
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from common.id_formats import (
    mask_identifier,
    parse_amount,
    validate_aadhaar_number,
    validate_ifsc_code,
    validate_pan_number,
    verhoeff_check_digit,
)
from common.text_matching import levenshtein_distance, name_similarity, normalize_name
from models.applicants import ApplicantProfile
from models.documents import (
    AadhaarFields,
    BankStatementFields,
    PanFields,
    SalarySlipFields,
    SelfieFields,
    parse_extracted_fields,
)
from models.enums import DocumentType, FlagSeverity
from services.field_cross_validator import FieldCrossValidator


AADHAAR_BASE = "23456789012"
VALID_AADHAAR = AADHAAR_BASE + verhoeff_check_digit(AADHAAR_BASE)
INVALID_AADHAAR = VALID_AADHAAR[:-1] + str((int(VALID_AADHAAR[-1]) + 1) % 10)


def _profile(**overrides) -> ApplicantProfile:
    data = {
        "name": "Anita Sharma",
        "age": 30,
        "employment_type": "salaried",
        "monthly_income": 120000,
        "existing_emi": 5000,
        "loan_amount": 200000,
        "tenure_months": 24,
        "employer_name": "Infosys Limited",
        "pan_number": "abcpe1234f",
        "aadhaar_number": "{0} {1} {2}".format(VALID_AADHAAR[:4], VALID_AADHAAR[4:8], VALID_AADHAAR[8:]),
    }
    data.update(overrides)
    return ApplicantProfile(**data)


class IdentifierFormatTests(unittest.TestCase):
    """PAN, Aadhaar and IFSC format rules."""

    def test_aadhaar_checksum(self) -> None:
        self.assertTrue(validate_aadhaar_number(VALID_AADHAAR)[0])
        self.assertTrue(validate_aadhaar_number("{0}-{1}-{2}".format(VALID_AADHAAR[:4], VALID_AADHAAR[4:8], VALID_AADHAAR[8:]))[0])
        self.assertEqual(validate_aadhaar_number(INVALID_AADHAAR), (False, "Invalid Aadhaar checksum"))

    def test_aadhaar_shape(self) -> None:
        self.assertEqual(validate_aadhaar_number("12345"), (False, "Aadhaar must be exactly 12 digits"))
        self.assertEqual(validate_aadhaar_number("1" + VALID_AADHAAR[1:]), (False, "Invalid Aadhaar number format"))

    def test_pan_format_and_holder_type(self) -> None:
        self.assertEqual(validate_pan_number("abcpe1234f"), (True, "PAN format valid (Individual)"))
        self.assertFalse(validate_pan_number("ABCXE1234F")[0])
        self.assertFalse(validate_pan_number("ABCP1234EF")[0])

    def test_ifsc_format(self) -> None:
        self.assertTrue(validate_ifsc_code("HDFC0001234")[0])
        self.assertFalse(validate_ifsc_code("HDFC1001234")[0])

    def test_masking_and_amount_parsing(self) -> None:
        self.assertEqual(mask_identifier("ABCPE1234F"), "XXXXXX234F")
        self.assertEqual(parse_amount("Rs. 1,20,000.50"), 120000.5)
        self.assertIsNone(parse_amount("n/a"))
        self.assertIsNone(parse_amount(True))


class NameMatchingTests(unittest.TestCase):
    """Normalisation and word-level similarity."""

    def test_normalize_name_strips_punctuation_and_case(self) -> None:
        self.assertEqual(normalize_name("  anita.  sharma "), "ANITA SHARMA")

    def test_honorifics_and_word_order_are_ignored(self) -> None:
        self.assertEqual(name_similarity("SHARMA ANITA", "Mrs. Anita Sharma"), 1.0)

    def test_small_spelling_drift_earns_partial_credit(self) -> None:
        self.assertAlmostEqual(name_similarity("Anitha Sharma", "Anita Sharma"), 0.9)

    def test_unrelated_names_score_zero(self) -> None:
        self.assertEqual(name_similarity("Rahul Verma", "Anita Sharma"), 0.0)
        self.assertEqual(name_similarity("", "Anita Sharma"), 0.0)

    def test_levenshtein_distance(self) -> None:
        self.assertEqual(levenshtein_distance("KITTEN", "SITTING"), 3)
        self.assertEqual(levenshtein_distance("", "ABC"), 3)


class ExtractedFieldParsingTests(unittest.TestCase):
    """Untyped OCR maps become typed field models."""

    def test_aliases_and_blank_values(self) -> None:
        fields = parse_extracted_fields(
            DocumentType.BANK_STATEMENT,
            {"Holder_Name": "Anita Sharma", "IFSC": "hdfc0001234", "account_number": "  ", "unknown": "x"},
        )
        self.assertIsInstance(fields, BankStatementFields)
        self.assertEqual(fields.account_holder_name, "Anita Sharma")
        self.assertEqual(fields.ifsc_code, "HDFC0001234")
        self.assertIsNone(fields.account_number)

    def test_invalid_values_are_dropped_not_fatal(self) -> None:
        fields = parse_extracted_fields(DocumentType.SELFIE, {"face_match_score": 1.5, "face_detected": True})
        self.assertIsInstance(fields, SelfieFields)
        self.assertIsNone(fields.face_match_score)
        self.assertTrue(fields.face_detected)

    def test_salary_amounts_are_parsed(self) -> None:
        fields = parse_extracted_fields(DocumentType.SALARY_SLIP, {"net_salary": "1,18,000", "company_name": "Infosys"})
        self.assertEqual(fields.net_salary, 118000.0)
        self.assertEqual(fields.employer_name, "Infosys")

    def test_empty_map_yields_empty_model(self) -> None:
        fields = parse_extracted_fields(DocumentType.AADHAAR, None)
        self.assertIsInstance(fields, AadhaarFields)
        self.assertEqual(fields.missing(["name", "aadhaar_number"]), ["name", "aadhaar_number"])


class FieldCrossValidatorTests(unittest.TestCase):
    """Checks per document type, severities and confidence."""

    def setUp(self) -> None:
        self.validator = FieldCrossValidator()
        self.profile = _profile()

    def test_matching_aadhaar_passes_every_check(self) -> None:
        result = self.validator.validate(
            AadhaarFields(name="ANITA SHARMA", aadhaar_number=VALID_AADHAAR),
            self.profile,
        )
        self.assertEqual([check.check for check in result.checks], ["name_match", "aadhaar_format", "aadhaar_declared"])
        self.assertEqual(result.flags, [])
        self.assertEqual(result.confidence, 100)

    def test_bad_aadhaar_checksum_is_a_hard_flag(self) -> None:
        result = self.validator.validate(
            AadhaarFields(name="Anita Sharma", aadhaar_number=INVALID_AADHAAR),
            self.profile,
        )
        self.assertIn("Invalid Aadhaar checksum", result.hard_flags)
        self.assertEqual(len(result.hard_flags), 2)
        self.assertEqual(result.soft_flags, [])

    def test_missing_ocr_field_is_a_soft_flag(self) -> None:
        result = self.validator.validate(AadhaarFields(name="Anita Sharma"), self.profile)
        self.assertEqual(result.soft_flags, ["Missing OCR field: aadhaar_number"])
        self.assertEqual(result.hard_flags, [])
        self.assertEqual(result.confidence, 50)

    def test_partial_name_match_is_soft(self) -> None:
        result = self.validator.validate(PanFields(name="Anita Verma", pan_number="ABCPE1234F"), self.profile)
        name_check = result.checks[0]
        self.assertFalse(name_check.passed)
        self.assertEqual(name_check.severity, FlagSeverity.SOFT)
        self.assertIn("partially matches", name_check.flag)
        self.assertEqual(result.hard_flags, [])

    def test_pan_different_from_declared_is_hard(self) -> None:
        result = self.validator.validate(PanFields(name="Anita Sharma", pan_number="ZZZPZ9999Z"), self.profile)
        self.assertEqual(len(result.hard_flags), 1)
        self.assertIn("differs from declared PAN", result.hard_flags[0])
        self.assertNotIn("ZZZPZ9999Z", result.hard_flags[0])

    def test_salary_within_tolerance(self) -> None:
        result = self.validator.validate(
            SalarySlipFields(
                employee_name="Anita Sharma",
                employer_name="Infosys Ltd",
                basic_salary=60000,
                net_salary=118000,
            ),
            self.profile,
        )
        self.assertEqual(result.flags, [])
        self.assertEqual({check.check for check in result.checks}, {"name_match", "salary_consistency", "employer_match"})

    def test_salary_far_from_declared_income_is_soft(self) -> None:
        result = self.validator.validate(
            SalarySlipFields(employee_name="Anita Sharma", basic_salary=30000, net_salary=60000),
            self.profile,
        )
        self.assertEqual(len(result.soft_flags), 1)
        self.assertIn("deviates 50%", result.soft_flags[0])
        self.assertEqual(result.hard_flags, [])

    def test_implausible_salary_is_flagged(self) -> None:
        result = self.validator.validate(
            SalarySlipFields(employee_name="Anita Sharma", basic_salary=5000, net_salary=5000),
            self.profile,
        )
        checks = {check.check: check for check in result.checks}
        self.assertFalse(checks["salary_plausible"].passed)
        self.assertFalse(checks["salary_consistency"].passed)

    def test_malformed_ifsc_is_hard(self) -> None:
        result = self.validator.validate(
            BankStatementFields(account_holder_name="Anita Sharma", account_number="50100012345678", ifsc_code="HDFC1001234"),
            self.profile,
        )
        self.assertEqual(result.hard_flags, ["Invalid IFSC code format"])

    def test_face_match_threshold(self) -> None:
        low = self.validator.validate(SelfieFields(face_match_score=0.65), self.profile)
        high = self.validator.validate(SelfieFields(face_match_score=0.9), self.profile)
        self.assertEqual(low.soft_flags, ["Face match 65% below 70%"])
        self.assertEqual(high.confidence, 100)


if __name__ == "__main__":
    unittest.main()

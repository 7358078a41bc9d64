"""Unit tests for the in-memory repositories."""

from datetime import timedelta
from pathlib import Path
import sys
import unittest


PROJECT_ROOT = Path(__file__).resolve().parents[2]
BACKEND_ROOT = PROJECT_ROOT / "backend"
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from models.applicants import ApplicantProfile
from models.applications import ApplicationRecord
from models.audit_logs import AuditLogEntry
from models.base import utc_now
from models.enums import ApplicationStatus, AuditAction, DocumentType, MatchMethod, ValidationStatus
from models.exceptions import ModelNotFoundError, ModelValidationError, VersionConflictError
from models.verifications import VerificationResult
from repositories.memory_repositories import (
    InMemoryApplicationRepository,
    InMemoryAuditLogRepository,
    InMemoryVerificationRepository,
)


DIGEST = "b" * 64
SNAPSHOT = "0123456789abcdef"


def _record(application_id: str, **overrides) -> ApplicationRecord:
    profile = ApplicantProfile(
        name="Anita Sharma",
        age=30,
        employment_type="salaried",
        monthly_income=80000,
        loan_amount=200000,
        tenure_months=24,
    )
    return ApplicationRecord(id=application_id, application_id=application_id, profile=profile, **overrides)


def _result(result_id: str, application_id: str, status: ValidationStatus, **overrides) -> VerificationResult:
    data = {
        "id": result_id,
        "result_id": result_id,
        "application_id": application_id,
        "document_id": "doc_{0}".format(result_id),
        "document_type": DocumentType.AADHAAR,
        "identity_claim": "ANITA SHARMA",
        "content_digest": DIGEST,
        "fingerprint": DIGEST[:16] + "-100",
        "whitelist_snapshot": SNAPSHOT,
        "validation_status": status,
    }
    if status == ValidationStatus.VALID:
        data.update({"matched": True, "match_method": MatchMethod.EXACT_DIGEST, "passed": True})
    data.update(overrides)
    return VerificationResult(**data)


class InMemoryApplicationRepositoryTests(unittest.TestCase):
    """Optimistic versioning and listing."""

    def setUp(self) -> None:
        self.repository = InMemoryApplicationRepository()

    def test_update_requires_next_version(self) -> None:
        record = self.repository.create(_record("app_1"))

        updated = self.repository.update(record.next_version(status=ApplicationStatus.APPROVED))
        self.assertEqual(self.repository.get_by_id("app_1").status, ApplicationStatus.APPROVED)

        with self.assertRaises(VersionConflictError):
            self.repository.update(record.next_version(status=ApplicationStatus.REJECTED))
        self.assertEqual(self.repository.get_by_id("app_1").version, updated.version)

    def test_duplicate_create_and_missing_records(self) -> None:
        self.repository.create(_record("app_1"))
        with self.assertRaises(ModelValidationError):
            self.repository.create(_record("app_1"))
        with self.assertRaises(ModelNotFoundError):
            self.repository.get_by_id("app_404")
        with self.assertRaises(ModelNotFoundError):
            self.repository.update(_record("app_404").next_version())
        with self.assertRaises(ModelNotFoundError):
            self.repository.delete("app_404")

    def test_list_is_newest_first_with_status_filter(self) -> None:
        now = utc_now()
        self.repository.create(_record("app_old", created_at=now - timedelta(minutes=5), status=ApplicationStatus.REJECTED))
        self.repository.create(_record("app_mid", created_at=now - timedelta(minutes=1)))
        self.repository.create(_record("app_new", created_at=now))

        self.assertEqual([record.application_id for record in self.repository.list()], ["app_new", "app_mid", "app_old"])
        self.assertEqual(
            [record.application_id for record in self.repository.list(status=ApplicationStatus.PROCESSING, limit=1)],
            ["app_new"],
        )


class InMemoryVerificationRepositoryTests(unittest.TestCase):
    """Digest-keyed reuse lookup."""

    def setUp(self) -> None:
        self.repository = InMemoryVerificationRepository()

    def test_pending_results_are_never_reused(self) -> None:
        self.repository.create(_result("ver_pending", "app_1", ValidationStatus.PENDING))
        self.assertIsNone(self.repository.find_reusable("ANITA SHARMA", DocumentType.AADHAAR, DIGEST, SNAPSHOT))

    def test_newest_settled_result_is_reused(self) -> None:
        now = utc_now()
        self.repository.create(_result("ver_old", "app_1", ValidationStatus.INVALID, created_at=now - timedelta(hours=1)))
        self.repository.create(_result("ver_new", "app_2", ValidationStatus.VALID, created_at=now))

        reused = self.repository.find_reusable("ANITA SHARMA", DocumentType.AADHAAR, DIGEST, SNAPSHOT)
        self.assertEqual(reused.result_id, "ver_new")
        self.assertIsNone(self.repository.find_reusable("RAVI KUMAR", DocumentType.AADHAAR, DIGEST, SNAPSHOT))
        self.assertIsNone(self.repository.find_reusable("ANITA SHARMA", DocumentType.PAN, DIGEST, SNAPSHOT))
        self.assertIsNone(self.repository.find_reusable("ANITA SHARMA", DocumentType.AADHAAR, DIGEST, "fedcba9876543210"))

    def test_delete_by_application(self) -> None:
        self.repository.create(_result("ver_a", "app_1", ValidationStatus.INVALID))
        self.repository.create(_result("ver_b", "app_1", ValidationStatus.PENDING))
        self.repository.create(_result("ver_c", "app_2", ValidationStatus.INVALID))

        self.assertEqual(self.repository.delete_by_application("app_1"), 2)
        self.assertEqual(self.repository.list_by_application("app_1"), [])
        self.assertEqual(len(self.repository.list_by_application("app_2")), 1)


class InMemoryAuditLogRepositoryTests(unittest.TestCase):
    """Append-only trail."""

    def test_entries_keep_insertion_order_and_ids_are_unique(self) -> None:
        repository = InMemoryAuditLogRepository()
        for index, action in enumerate((AuditAction.INTAKE_RECEIVED, AuditAction.KYC_VERIFIED, AuditAction.CREDIT_SCORED)):
            repository.append(
                AuditLogEntry(audit_id="aud_{0}".format(index), application_id="app_1", action=action, actor="system")
            )

        self.assertEqual(
            [entry.action for entry in repository.list_by_application("app_1")],
            [AuditAction.INTAKE_RECEIVED, AuditAction.KYC_VERIFIED, AuditAction.CREDIT_SCORED],
        )
        self.assertEqual(repository.list_recent(limit=1)[0].action, AuditAction.CREDIT_SCORED)
        with self.assertRaises(ModelValidationError):
            repository.append(
                AuditLogEntry(audit_id="aud_0", application_id="app_1", action=AuditAction.ADMIN_EDIT, actor="ops")
            )
        self.assertFalse(hasattr(repository, "delete"))
        self.assertFalse(hasattr(repository, "update"))


if __name__ == "__main__":
    unittest.main()

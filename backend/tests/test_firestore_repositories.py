"""Unit tests for the Firestore repositories against a fake client manager."""

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
from models.enums import ApplicationStatus, AuditAction, DocumentType, MatchMethod, ValidationStatus
from models.exceptions import ModelNotFoundError, VersionConflictError
from models.verifications import VerificationResult
from repositories.firestore_repositories import (
    FirestoreApplicationRepository,
    FirestoreAuditLogRepository,
    FirestoreVerificationRepository,
)


DIGEST = "c" * 64


class _FakeFirebaseManager:
    """Dict-backed stand-in exposing the FirebaseClientManager calls the repositories use."""

    def __init__(self) -> None:
        self.collections = {}

    def _collection(self, name):
        return self.collections.setdefault(name, {})

    def create_document(self, collection_name, document_id, payload):
        collection = self._collection(collection_name)
        if document_id in collection:
            raise ValueError("already exists")
        collection[document_id] = dict(payload)
        return payload

    def get_document(self, collection_name, document_id):
        payload = self._collection(collection_name).get(document_id)
        if payload is None:
            return None
        return {**payload, "id": document_id}

    def replace_in_transaction(self, collection_name, document_id, build_payload):
        collection = self._collection(collection_name)
        payload = build_payload(collection.get(document_id))
        collection[document_id] = dict(payload)
        return payload

    def delete_document(self, collection_name, document_id):
        self._collection(collection_name).pop(document_id, None)

    def delete_where(self, collection_name, filters):
        collection = self._collection(collection_name)
        keys = [key for key, row in collection.items() if all(row.get(f) == v for f, _, v in filters)]
        for key in keys:
            del collection[key]
        return len(keys)

    def query_documents(self, collection_name, filters=None):
        return [
            {**row, "id": key}
            for key, row in self._collection(collection_name).items()
            if all(row.get(f) == v for f, _, v in filters or [])
        ]


def _record(application_id: str) -> ApplicationRecord:
    profile = ApplicantProfile(
        name="Anita Sharma",
        age=30,
        employment_type="salaried",
        monthly_income=80000,
        loan_amount=200000,
        tenure_months=24,
    )
    return ApplicationRecord(id=application_id, application_id=application_id, profile=profile)


class FirestoreApplicationRepositoryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.manager = _FakeFirebaseManager()
        self.repository = FirestoreApplicationRepository(self.manager)

    def test_payload_is_json_ready(self) -> None:
        self.repository.create(_record("app_1"))
        stored = self.manager.collections["loan_applications"]["app_1"]
        self.assertEqual(stored["status"], "processing")
        self.assertEqual(stored["stage"], "intake")
        self.assertIsInstance(stored["created_at"], str)

    def test_update_checks_version(self) -> None:
        record = self.repository.create(_record("app_1"))
        self.repository.update(record.next_version(status=ApplicationStatus.REJECTED))
        with self.assertRaises(VersionConflictError):
            self.repository.update(record.next_version(status=ApplicationStatus.APPROVED))
        self.assertEqual(self.repository.get_by_id("app_1").status, ApplicationStatus.REJECTED)

        with self.assertRaises(ModelNotFoundError):
            self.repository.update(_record("app_missing").next_version())

    def test_list_filters_by_status_and_delete(self) -> None:
        self.repository.create(_record("app_1"))
        record = self.repository.create(_record("app_2"))
        self.repository.update(record.next_version(status=ApplicationStatus.APPROVED))

        approved = self.repository.list(status=ApplicationStatus.APPROVED)
        self.assertEqual([item.application_id for item in approved], ["app_2"])

        self.repository.delete("app_1")
        with self.assertRaises(ModelNotFoundError):
            self.repository.get_by_id("app_1")
        with self.assertRaises(ModelNotFoundError):
            self.repository.delete("app_1")


class FirestoreVerificationRepositoryTests(unittest.TestCase):
    def test_reuse_skips_pending_results(self) -> None:
        repository = FirestoreVerificationRepository(_FakeFirebaseManager())
        common = {
            "application_id": "app_1",
            "document_type": DocumentType.PAN,
            "identity_claim": "ANITA SHARMA",
            "content_digest": DIGEST,
            "fingerprint": DIGEST[:16] + "-42",
            "whitelist_snapshot": "0123456789abcdef",
        }
        repository.create(VerificationResult(result_id="ver_p", document_id="doc_p", validation_status=ValidationStatus.PENDING, **common))
        self.assertIsNone(repository.find_reusable("ANITA SHARMA", DocumentType.PAN, DIGEST, "0123456789abcdef"))

        repository.create(
            VerificationResult(
                result_id="ver_v",
                document_id="doc_v",
                validation_status=ValidationStatus.VALID,
                matched=True,
                match_method=MatchMethod.FINGERPRINT,
                passed=True,
                **common,
            )
        )
        self.assertEqual(repository.find_reusable("ANITA SHARMA", DocumentType.PAN, DIGEST, "0123456789abcdef").result_id, "ver_v")
        self.assertIsNone(repository.find_reusable("ANITA SHARMA", DocumentType.PAN, DIGEST, "fedcba9876543210"))
        self.assertEqual(repository.delete_by_application("app_1"), 2)


class FirestoreAuditLogRepositoryTests(unittest.TestCase):
    def test_entries_are_created_not_overwritten(self) -> None:
        repository = FirestoreAuditLogRepository(_FakeFirebaseManager())
        repository.append(AuditLogEntry(audit_id="aud_1", application_id="app_1", action=AuditAction.INTAKE_RECEIVED, actor="applicant"))
        with self.assertRaises(ValueError):
            repository.append(AuditLogEntry(audit_id="aud_1", application_id="app_1", action=AuditAction.ADMIN_EDIT, actor="ops"))
        self.assertEqual([entry.action for entry in repository.list_by_application("app_1")], [AuditAction.INTAKE_RECEIVED])


if __name__ == "__main__":
    unittest.main()

"""Firestore implementations of the decision-engine repositories."""

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from core.firebase_client_manager import FirebaseClientManager
from models.applications import ApplicationRecord
from models.audit_logs import AuditLogEntry
from models.documents import DocumentArtifact
from models.enums import ApplicationStatus, DocumentType, ValidationStatus
from models.exceptions import ModelNotFoundError, VersionConflictError
from models.repositories import (
    ApplicationRepository,
    AuditLogRepository,
    DocumentRepository,
    VerificationRepository,
)
from models.verifications import VerificationResult


logger = logging.getLogger(__name__)


class FirestoreApplicationRepository(ApplicationRepository):
    """Persist and fetch application records from Cloud Firestore."""

    def __init__(self, firebase_manager: FirebaseClientManager, collection_name: str = "loan_applications") -> None:
        """Bind to a Firestore collection.

        Args:
            firebase_manager: Shared Firebase client manager instance.
            collection_name: Firestore collection name for applications.
        """
        self._firebase_manager = firebase_manager
        self._collection_name = collection_name
        logger.info("Initialized FirestoreApplicationRepository collection=%s", collection_name)

    def create(self, model: ApplicationRecord) -> ApplicationRecord:
        try:
            self._firebase_manager.create_document(
                self._collection_name,
                model.application_id,
                model.model_dump(mode="json", exclude_none=True),
            )
            return model
        except ValidationError:
            logger.exception("Application validation failed while creating application_id=%s", model.application_id)
            raise
        except Exception:
            logger.exception("Failed to create application_id=%s", model.application_id)
            raise

    def get_by_id(self, model_id: str) -> ApplicationRecord:
        """Fetch one application.

        Raises:
            ModelNotFoundError: If document does not exist.
        """
        try:
            payload = self._firebase_manager.get_document(self._collection_name, model_id)
            if payload is None:
                raise ModelNotFoundError("Application not found: {0}".format(model_id))
            return ApplicationRecord.from_document(payload, doc_id=model_id)
        except ModelNotFoundError:
            raise
        except Exception:
            logger.exception("Failed to get application_id=%s", model_id)
            raise

    def update(self, model: ApplicationRecord) -> ApplicationRecord:
        """Replace the application inside a transaction guarded by the version number.

        Raises:
            ModelNotFoundError: If application does not exist.
            VersionConflictError: If version is stale.
        """

        def _build(current: Optional[Dict[str, Any]]) -> Dict[str, Any]:
            if current is None:
                raise ModelNotFoundError("Application not found: {0}".format(model.application_id))
            if model.version != int(current.get("version", 1)) + 1:
                raise VersionConflictError("Version conflict for application_id={0}".format(model.application_id))
            return model.model_dump(mode="json", exclude_none=True)

        try:
            self._firebase_manager.replace_in_transaction(self._collection_name, model.application_id, _build)
            return model
        except (ModelNotFoundError, VersionConflictError):
            raise
        except Exception:
            logger.exception("Failed to update application_id=%s", model.application_id)
            raise

    def delete(self, model_id: str) -> None:
        try:
            if self._firebase_manager.get_document(self._collection_name, model_id) is None:
                raise ModelNotFoundError("Application not found: {0}".format(model_id))
            self._firebase_manager.delete_document(self._collection_name, model_id)
        except ModelNotFoundError:
            raise
        except Exception:
            logger.exception("Failed to delete application_id=%s", model_id)
            raise

    def list(self, status: Optional[ApplicationStatus] = None, limit: Optional[int] = None) -> List[ApplicationRecord]:
        try:
            filters = [("status", "==", ApplicationStatus(status).value)] if status is not None else []
            rows = self._firebase_manager.query_documents(self._collection_name, filters=filters)
            records = [ApplicationRecord.from_document(row) for row in rows]
            records.sort(key=lambda record: record.created_at, reverse=True)
            return records[: int(limit)] if limit is not None else records
        except Exception:
            logger.exception("Failed to list applications status=%s", status)
            raise


class FirestoreDocumentRepository(DocumentRepository):
    """Insert-only document artifacts in Firestore."""

    def __init__(self, firebase_manager: FirebaseClientManager, collection_name: str = "documents") -> None:
        self._firebase_manager = firebase_manager
        self._collection_name = collection_name

    def create(self, model: DocumentArtifact) -> DocumentArtifact:
        try:
            self._firebase_manager.create_document(
                self._collection_name,
                model.document_id,
                model.model_dump(mode="json", exclude_none=True),
            )
            return model
        except Exception:
            logger.exception("Failed to create document_id=%s", model.document_id)
            raise

    def get_by_id(self, model_id: str) -> DocumentArtifact:
        payload = self._firebase_manager.get_document(self._collection_name, model_id)
        if payload is None:
            raise ModelNotFoundError("Document not found: {0}".format(model_id))
        return DocumentArtifact.from_document(payload, doc_id=model_id)

    def list_by_application(self, application_id: str) -> List[DocumentArtifact]:
        try:
            rows = self._firebase_manager.query_documents(
                self._collection_name,
                filters=[("application_id", "==", application_id)],
            )
            artifacts = [DocumentArtifact.from_document(row) for row in rows]
            artifacts.sort(key=lambda artifact: artifact.created_at)
            return artifacts
        except Exception:
            logger.exception("Failed to list documents application_id=%s", application_id)
            raise

    def delete_by_application(self, application_id: str) -> int:
        return self._firebase_manager.delete_where(self._collection_name, [("application_id", "==", application_id)])


class FirestoreVerificationRepository(VerificationRepository):
    """Verification results in Firestore."""

    def __init__(self, firebase_manager: FirebaseClientManager, collection_name: str = "verification_results") -> None:
        self._firebase_manager = firebase_manager
        self._collection_name = collection_name

    def create(self, model: VerificationResult) -> VerificationResult:
        try:
            self._firebase_manager.create_document(
                self._collection_name,
                model.result_id,
                model.model_dump(mode="json", exclude_none=True),
            )
            return model
        except Exception:
            logger.exception("Failed to create verification result_id=%s", model.result_id)
            raise

    def list_by_application(self, application_id: str) -> List[VerificationResult]:
        rows = self._firebase_manager.query_documents(
            self._collection_name,
            filters=[("application_id", "==", application_id)],
        )
        results = [VerificationResult.from_document(row) for row in rows]
        results.sort(key=lambda result: result.created_at)
        return results

    def find_reusable(
        self,
        identity_claim: str,
        document_type: DocumentType,
        content_digest: str,
        whitelist_snapshot: str,
    ) -> Optional[VerificationResult]:
        try:
            rows = self._firebase_manager.query_documents(
                self._collection_name,
                filters=[
                    ("content_digest", "==", content_digest),
                    ("identity_claim", "==", identity_claim),
                    ("document_type", "==", DocumentType(document_type).value),
                    ("whitelist_snapshot", "==", whitelist_snapshot),
                ],
            )
            results = [
                VerificationResult.from_document(row)
                for row in rows
                if row.get("validation_status") != ValidationStatus.PENDING.value
            ]
            if not results:
                return None
            return max(results, key=lambda result: result.created_at)
        except Exception:
            logger.exception("Failed reuse lookup digest=%s", content_digest[:16])
            raise

    def delete_by_application(self, application_id: str) -> int:
        return self._firebase_manager.delete_where(self._collection_name, [("application_id", "==", application_id)])


class FirestoreAuditLogRepository(AuditLogRepository):
    """Append-only audit trail; documents are created, never set or deleted."""

    def __init__(self, firebase_manager: FirebaseClientManager, collection_name: str = "audit_logs") -> None:
        self._firebase_manager = firebase_manager
        self._collection_name = collection_name

    def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        try:
            self._firebase_manager.create_document(
                self._collection_name,
                entry.audit_id,
                entry.model_dump(mode="json", exclude_none=True),
            )
            return entry
        except Exception:
            logger.exception("Failed to append audit entry audit_id=%s action=%s", entry.audit_id, entry.action)
            raise

    def list_by_application(self, application_id: str) -> List[AuditLogEntry]:
        rows = self._firebase_manager.query_documents(
            self._collection_name,
            filters=[("application_id", "==", application_id)],
        )
        entries = [AuditLogEntry.from_document(row) for row in rows]
        entries.sort(key=lambda entry: entry.created_at)
        return entries

    def list_recent(self, limit: int = 100) -> List[AuditLogEntry]:
        rows = self._firebase_manager.query_documents(self._collection_name)
        entries = [AuditLogEntry.from_document(row) for row in rows]
        entries.sort(key=lambda entry: entry.created_at, reverse=True)
        return entries[: int(limit)]

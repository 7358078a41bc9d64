"""Thread-safe in-memory repositories used when Firestore is disabled and in tests."""

import logging
from threading import RLock
from typing import Any, Dict, List, Optional

from models.applications import ApplicationRecord
from models.audit_logs import AuditLogEntry
from models.documents import DocumentArtifact
from models.enums import ApplicationStatus, DocumentType, ValidationStatus
from models.exceptions import ModelNotFoundError, ModelValidationError, VersionConflictError
from models.repositories import (
    ApplicationRepository,
    AuditLogRepository,
    DocumentRepository,
    VerificationRepository,
)
from models.verifications import VerificationResult


logger = logging.getLogger(__name__)


class _MemoryBucket:
    """Dict-of-payloads store; values are serialized so callers never share mutable state."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._rows: Dict[str, Dict[str, Any]] = {}

    @property
    def lock(self) -> RLock:
        return self._lock

    def insert(self, key: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            if key in self._rows:
                raise ModelValidationError("Record already exists: {0}".format(key))
            self._rows[key] = dict(payload)

    def replace(self, key: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            self._rows[key] = dict(payload)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            payload = self._rows.get(key)
            return dict(payload) if payload is not None else None

    def pop(self, key: str) -> bool:
        with self._lock:
            return self._rows.pop(key, None) is not None

    def values(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(payload) for payload in self._rows.values()]

    def delete_where(self, field_name: str, value: Any) -> int:
        with self._lock:
            keys = [key for key, payload in self._rows.items() if payload.get(field_name) == value]
            for key in keys:
                del self._rows[key]
            return len(keys)


class InMemoryApplicationRepository(ApplicationRepository):
    """Application records with optimistic version checks."""

    def __init__(self) -> None:
        self._bucket = _MemoryBucket()

    def create(self, model: ApplicationRecord) -> ApplicationRecord:
        self._bucket.insert(model.application_id, model.to_document())
        return model

    def get_by_id(self, model_id: str) -> ApplicationRecord:
        payload = self._bucket.get(model_id)
        if payload is None:
            raise ModelNotFoundError("Application not found: {0}".format(model_id))
        return ApplicationRecord.from_document(payload, doc_id=model_id)

    def update(self, model: ApplicationRecord) -> ApplicationRecord:
        with self._bucket.lock:
            current = self._bucket.get(model.application_id)
            if current is None:
                raise ModelNotFoundError("Application not found: {0}".format(model.application_id))
            if model.version != int(current.get("version", 1)) + 1:
                raise VersionConflictError(
                    "Version conflict for application_id={0} stored={1} incoming={2}".format(
                        model.application_id,
                        current.get("version"),
                        model.version,
                    )
                )
            self._bucket.replace(model.application_id, model.to_document())
            return model

    def delete(self, model_id: str) -> None:
        if not self._bucket.pop(model_id):
            raise ModelNotFoundError("Application not found: {0}".format(model_id))

    def list(self, status: Optional[ApplicationStatus] = None, limit: Optional[int] = None) -> List[ApplicationRecord]:
        records = [ApplicationRecord.from_document(payload) for payload in self._bucket.values()]
        if status is not None:
            records = [record for record in records if record.status == status]
        records.sort(key=lambda record: record.created_at, reverse=True)
        if limit is not None:
            records = records[: int(limit)]
        return records


class InMemoryDocumentRepository(DocumentRepository):
    """Insert-only document artifacts."""

    def __init__(self) -> None:
        self._bucket = _MemoryBucket()

    def create(self, model: DocumentArtifact) -> DocumentArtifact:
        self._bucket.insert(model.document_id, model.to_document())
        return model

    def get_by_id(self, model_id: str) -> DocumentArtifact:
        payload = self._bucket.get(model_id)
        if payload is None:
            raise ModelNotFoundError("Document not found: {0}".format(model_id))
        return DocumentArtifact.from_document(payload, doc_id=model_id)

    def list_by_application(self, application_id: str) -> List[DocumentArtifact]:
        rows = [payload for payload in self._bucket.values() if payload.get("application_id") == application_id]
        artifacts = [DocumentArtifact.from_document(payload) for payload in rows]
        artifacts.sort(key=lambda artifact: artifact.created_at)
        return artifacts

    def delete_by_application(self, application_id: str) -> int:
        return self._bucket.delete_where("application_id", application_id)


class InMemoryVerificationRepository(VerificationRepository):
    """Verification results with digest-keyed reuse lookup."""

    def __init__(self) -> None:
        self._bucket = _MemoryBucket()

    def create(self, model: VerificationResult) -> VerificationResult:
        self._bucket.insert(model.result_id, model.to_document())
        return model

    def list_by_application(self, application_id: str) -> List[VerificationResult]:
        rows = [payload for payload in self._bucket.values() if payload.get("application_id") == application_id]
        results = [VerificationResult.from_document(payload) for payload in rows]
        results.sort(key=lambda result: result.created_at)
        return results

    def find_reusable(
        self,
        identity_claim: str,
        document_type: DocumentType,
        content_digest: str,
        whitelist_snapshot: str,
    ) -> Optional[VerificationResult]:
        candidates = [
            VerificationResult.from_document(payload)
            for payload in self._bucket.values()
            if payload.get("identity_claim") == identity_claim
            and payload.get("document_type") == DocumentType(document_type)
            and payload.get("content_digest") == content_digest
            and payload.get("whitelist_snapshot") == whitelist_snapshot
            and payload.get("validation_status") != ValidationStatus.PENDING
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda result: result.created_at)

    def delete_by_application(self, application_id: str) -> int:
        return self._bucket.delete_where("application_id", application_id)


class InMemoryAuditLogRepository(AuditLogRepository):
    """Append-only audit trail kept in insertion order."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._entries: List[Dict[str, Any]] = []
        self._ids: set = set()

    def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        with self._lock:
            if entry.audit_id in self._ids:
                raise ModelValidationError("Audit entry already exists: {0}".format(entry.audit_id))
            self._ids.add(entry.audit_id)
            self._entries.append(entry.to_document())
        return entry

    def list_by_application(self, application_id: str) -> List[AuditLogEntry]:
        with self._lock:
            rows = [dict(payload) for payload in self._entries if payload.get("application_id") == application_id]
        return [AuditLogEntry.from_document(payload) for payload in rows]

    def list_recent(self, limit: int = 100) -> List[AuditLogEntry]:
        with self._lock:
            rows = [dict(payload) for payload in reversed(self._entries)][: int(limit)]
        return [AuditLogEntry.from_document(payload) for payload in rows]

"""Repository interfaces for datastore-agnostic record access."""

from abc import ABC, abstractmethod
from typing import List, Optional

from .applications import ApplicationRecord
from .audit_logs import AuditLogEntry
from .documents import DocumentArtifact
from .enums import ApplicationStatus, DocumentType
from .verifications import VerificationResult


class ApplicationRepository(ABC):
    """Application record access with optimistic versioning."""

    @abstractmethod
    def create(self, model: ApplicationRecord) -> ApplicationRecord:
        """Persist a new application."""

    @abstractmethod
    def get_by_id(self, model_id: str) -> ApplicationRecord:
        """Fetch an application.

        Raises:
            ModelNotFoundError: If the application does not exist.
        """

    @abstractmethod
    def update(self, model: ApplicationRecord) -> ApplicationRecord:
        """Replace an application whose version is exactly one ahead of the stored one.

        Raises:
            ModelNotFoundError: If the application does not exist.
            VersionConflictError: If the stored version moved on.
        """

    @abstractmethod
    def delete(self, model_id: str) -> None:
        """Hard delete an application."""

    @abstractmethod
    def list(self, status: Optional[ApplicationStatus] = None, limit: Optional[int] = None) -> List[ApplicationRecord]:
        """List applications, newest first."""


class DocumentRepository(ABC):
    """Document artifact access; artifacts are insert-only."""

    @abstractmethod
    def create(self, model: DocumentArtifact) -> DocumentArtifact:
        """Persist a new artifact."""

    @abstractmethod
    def get_by_id(self, model_id: str) -> DocumentArtifact:
        """Fetch one artifact.

        Raises:
            ModelNotFoundError: If the artifact does not exist.
        """

    @abstractmethod
    def list_by_application(self, application_id: str) -> List[DocumentArtifact]:
        """Artifacts uploaded for one application."""

    @abstractmethod
    def delete_by_application(self, application_id: str) -> int:
        """Remove every artifact of an application and return the count."""


class VerificationRepository(ABC):
    """Verification result access, keyed for reuse by content digest."""

    @abstractmethod
    def create(self, model: VerificationResult) -> VerificationResult:
        """Persist a verification result."""

    @abstractmethod
    def list_by_application(self, application_id: str) -> List[VerificationResult]:
        """Results recorded for one application."""

    @abstractmethod
    def find_reusable(
        self,
        identity_claim: str,
        document_type: DocumentType,
        content_digest: str,
        whitelist_snapshot: str,
    ) -> Optional[VerificationResult]:
        """Most recent non-pending result for the same bytes, claim and whitelist snapshot, if any."""

    @abstractmethod
    def delete_by_application(self, application_id: str) -> int:
        """Remove every result of an application and return the count."""


class AuditLogRepository(ABC):
    """Append-only audit trail: there is no update or delete."""

    @abstractmethod
    def append(self, entry: AuditLogEntry) -> AuditLogEntry:
        """Persist one audit entry; an existing id is never overwritten."""

    @abstractmethod
    def list_by_application(self, application_id: str) -> List[AuditLogEntry]:
        """Entries for one application in creation order."""

    @abstractmethod
    def list_recent(self, limit: int = 100) -> List[AuditLogEntry]:
        """Most recent entries across all applications, newest first."""

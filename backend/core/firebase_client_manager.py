"""Firestore client manager used by the persistent repositories."""

from datetime import datetime, timezone
import logging
import os
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from google.cloud import firestore
from google.oauth2 import service_account


logger = logging.getLogger(__name__)

FilterTuple = Tuple[str, str, Any]


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


class FirebaseClientManager:
    """Encapsulates Firestore client setup and the record-level operations the engine needs."""

    def __init__(self, project_id: Optional[str] = None, credentials_path: Optional[str] = None) -> None:
        """Initialize Firestore client.

        Args:
            project_id: Optional Google Cloud project id override.
            credentials_path: Optional path to a service account json file.
        """
        try:
            if credentials_path:
                os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = credentials_path
                credentials = service_account.Credentials.from_service_account_file(credentials_path)
                self._client = firestore.Client(project=project_id, credentials=credentials)
            else:
                self._client = firestore.Client(project=project_id) if project_id else firestore.Client()
            logger.info("FirebaseClientManager initialized for project_id=%s", project_id)
        except Exception:
            logger.exception("Failed to initialize Firebase Firestore client.")
            raise

    def create_document(self, collection_name: str, document_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Create a document, failing if the id already exists.

        Append-only collections (audit logs, artifacts) rely on this to never overwrite.
        """
        try:
            ref = self._client.collection(collection_name).document(document_id)
            safe_payload = dict(payload)
            safe_payload.setdefault("created_at", _utc_now())
            safe_payload.setdefault("updated_at", safe_payload["created_at"])
            ref.create(safe_payload)
            return safe_payload
        except Exception:
            logger.exception(
                "Failed to create document collection=%s document_id=%s",
                collection_name,
                document_id,
            )
            raise

    def get_document(self, collection_name: str, document_id: str) -> Optional[Dict[str, Any]]:
        """Get one document by id."""
        try:
            snapshot = self._client.collection(collection_name).document(document_id).get()
            if not snapshot.exists:
                return None
            data = snapshot.to_dict() or {}
            data["id"] = snapshot.id
            return data
        except Exception:
            logger.exception(
                "Failed to get document collection=%s document_id=%s",
                collection_name,
                document_id,
            )
            raise

    def replace_in_transaction(
        self,
        collection_name: str,
        document_id: str,
        build_payload: Callable[[Optional[Dict[str, Any]]], Dict[str, Any]],
    ) -> Dict[str, Any]:
        """Read-check-write a document atomically.

        `build_payload` receives the current document (or None) and returns the
        replacement payload; it may raise to abort the write.
        """
        try:
            ref = self._client.collection(collection_name).document(document_id)
            transaction = self._client.transaction()

            @firestore.transactional
            def _apply(txn: Any) -> Dict[str, Any]:
                snapshot = ref.get(transaction=txn)
                current = snapshot.to_dict() if snapshot.exists else None
                payload = dict(build_payload(current))
                payload["updated_at"] = _utc_now()
                txn.set(ref, payload)
                return payload

            return _apply(transaction)
        except Exception:
            logger.exception(
                "Transactional replace failed collection=%s document_id=%s",
                collection_name,
                document_id,
            )
            raise

    def delete_document(self, collection_name: str, document_id: str) -> None:
        """Hard delete a document."""
        try:
            self._client.collection(collection_name).document(document_id).delete()
        except Exception:
            logger.exception(
                "Failed to hard delete document collection=%s document_id=%s",
                collection_name,
                document_id,
            )
            raise

    def delete_where(self, collection_name: str, filters: Sequence[FilterTuple]) -> int:
        """Hard delete every document matching the filters in one batch."""
        try:
            query = self._client.collection(collection_name)
            for field_name, operator, value in filters:
                query = query.where(field_name, operator, value)
            batch = self._client.batch()
            deleted = 0
            for snapshot in query.stream():
                batch.delete(snapshot.reference)
                deleted += 1
            if deleted:
                batch.commit()
            return deleted
        except Exception:
            logger.exception("Failed batch delete for collection=%s", collection_name)
            raise

    def query_documents(
        self,
        collection_name: str,
        filters: Optional[Sequence[FilterTuple]] = None,
    ) -> List[Dict[str, Any]]:
        """Run an equality-filtered query and return document payloads with their ids.

        Results are unordered; callers sort.
        """
        try:
            query = self._client.collection(collection_name)
            for field_name, operator, value in filters or []:
                query = query.where(field_name, operator, value)

            documents: List[Dict[str, Any]] = []
            for snapshot in query.stream():
                payload = snapshot.to_dict() or {}
                payload["id"] = snapshot.id
                documents.append(payload)
            return documents
        except Exception:
            logger.exception("Failed query for collection=%s", collection_name)
            raise

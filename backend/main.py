"""Application entrypoint for the loan decision engine FastAPI backend."""

import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Ensure the backend packages are importable
# ---------------------------------------------------------------------------
_BACKEND_DIR = Path(__file__).resolve().parent
if str(_BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(_BACKEND_DIR))

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from api.router import build_router
from core import FirebaseClientManager, get_logger, load_settings, setup_logging
from core.config import AppSettings
from repositories.document_whitelist_repository import DocumentWhitelistRepository
from repositories.firestore_repositories import (
    FirestoreApplicationRepository,
    FirestoreAuditLogRepository,
    FirestoreDocumentRepository,
    FirestoreVerificationRepository,
)
from repositories.memory_repositories import (
    InMemoryApplicationRepository,
    InMemoryAuditLogRepository,
    InMemoryDocumentRepository,
    InMemoryVerificationRepository,
)
from services import DecisionService, DocumentVerificationService, ExplanationService, build_ocr_client


setup_logging()
logger = get_logger(__name__)


def _build_repositories(settings: AppSettings) -> tuple:
    """Return `(applications, documents, verifications, audit_logs)` repositories."""
    if settings.firebase_enabled:
        try:
            firebase_manager = FirebaseClientManager(
                project_id=settings.firebase_project_id,
                credentials_path=settings.firebase_credentials_path,
            )
            return (
                FirestoreApplicationRepository(firebase_manager, settings.firebase_applications_collection),
                FirestoreDocumentRepository(firebase_manager, settings.firebase_documents_collection),
                FirestoreVerificationRepository(firebase_manager, settings.firebase_verifications_collection),
                FirestoreAuditLogRepository(firebase_manager, settings.firebase_audit_collection),
            )
        except Exception:
            logger.exception("Failed to initialize Firestore repositories.")
            raise
    logger.info("Firebase integration disabled by firebase.enabled=false; using in-memory repositories")
    return (
        InMemoryApplicationRepository(),
        InMemoryDocumentRepository(),
        InMemoryVerificationRepository(),
        InMemoryAuditLogRepository(),
    )


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and configure a FastAPI application instance."""
    settings = settings or load_settings()
    app = FastAPI(title=settings.app_name, debug=settings.debug)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    applications, documents, verifications, audit_logs = _build_repositories(settings)
    whitelist = DocumentWhitelistRepository(settings.whitelist_path)
    whitelist.load()

    document_service = DocumentVerificationService(
        settings=settings,
        whitelist=whitelist,
        ocr_client=build_ocr_client(settings),
        document_repository=documents,
        verification_repository=verifications,
    )
    decision_service = DecisionService(
        settings=settings,
        application_repository=applications,
        document_repository=documents,
        verification_repository=verifications,
        audit_repository=audit_logs,
        document_service=document_service,
        explanation_service=ExplanationService.from_settings(settings),
    )
    app.state.decision_service = decision_service
    app.state.whitelist = whitelist

    app.include_router(build_router(settings, decision_service, whitelist))

    @app.on_event("shutdown")
    async def _shutdown_services() -> None:
        """Stop the document worker pool on application shutdown."""
        try:
            app.state.decision_service.shutdown()
        except Exception:
            logger.exception("Failed to stop services during shutdown.")

    logger.info("Application initialized: %s", settings.app_name)
    return app


app = create_app()


def run() -> None:
    """Start the ASGI server for local development."""
    settings = load_settings()
    try:
        uvicorn.run("main:app", host=settings.host, port=settings.port, reload=settings.debug)
    except Exception:
        logger.exception("Failed to start uvicorn server.")
        raise


if __name__ == "__main__":
    run()

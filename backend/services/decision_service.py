"""Application pipeline, admin overrides and the audit trail."""

from contextlib import contextmanager
import logging
from threading import Lock
import time
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from pydantic import ValidationError

from core.config import AppSettings
from models.applicants import ApplicantProfile
from models.applications import AdminNote, ApplicationRecord, KycSummary
from models.audit_logs import AuditLogEntry
from models.base import new_id
from models.decisions import DecisionRecord, OverrideRequest, status_for_decision
from models.documents import DocumentArtifact
from models.enums import (
    ApplicationStatus,
    AuditAction,
    AuditStatus,
    Decision,
    DecisionMaker,
    DocumentType,
    ValidationStatus,
    WorkflowStage,
)
from models.exceptions import (
    IntegrityViolationError,
    InvalidTransitionError,
    ModelValidationError,
    OverrideLimitError,
    VersionConflictError,
)
from models.repositories import (
    ApplicationRepository,
    AuditLogRepository,
    DocumentRepository,
    VerificationRepository,
)
from models.verifications import VerificationResult
from services import risk_engine
from services.document_verification_service import DocumentOutcome, DocumentUpload, DocumentVerificationService
from services.explanation_service import ExplanationService
from services.workflow_state_machine import transition


logger = logging.getLogger(__name__)

EDITABLE_PROFILE_FIELDS = frozenset(
    {
        "name",
        "email",
        "phone",
        "age",
        "employment_type",
        "monthly_income",
        "existing_emi",
        "loan_amount",
        "tenure_months",
        "loan_type",
    }
)


class _LockEntry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = Lock()
        self.users = 0


def summarize_kyc(outcomes: Iterable[DocumentOutcome]) -> KycSummary:
    """Roll per-document outcomes up into the application's KYC summary."""
    outcomes = list(outcomes)
    statuses: Dict[str, str] = {}
    warnings: List[str] = []
    for outcome in outcomes:
        document_type = outcome.artifact.document_type.value
        statuses[document_type] = outcome.result.validation_status.value
        warnings.extend("{0}: {1}".format(document_type, warning) for warning in outcome.artifact.warnings)

    pending = sum(1 for outcome in outcomes if outcome.result.validation_status == ValidationStatus.PENDING)
    return KycSummary(
        documents_total=len(outcomes),
        documents_passed=sum(1 for outcome in outcomes if outcome.result.passed),
        documents_pending=pending,
        documents_invalid=sum(1 for outcome in outcomes if outcome.result.validation_status == ValidationStatus.INVALID),
        needs_review=pending > 0 or any(outcome.result.needs_review for outcome in outcomes),
        warnings=warnings,
        statuses=statuses,
    )


class DecisionService:
    """Runs applications through intake, KYC, scoring and decision, and handles admin actions.

    Every stage and every admin action appends one audit entry. Mutations of a
    single application are serialised with a per-application lock on top of the
    repository's optimistic version check.
    """

    def __init__(
        self,
        settings: AppSettings,
        application_repository: ApplicationRepository,
        document_repository: DocumentRepository,
        verification_repository: VerificationRepository,
        audit_repository: AuditLogRepository,
        document_service: DocumentVerificationService,
        explanation_service: ExplanationService,
    ) -> None:
        self._settings = settings
        self._applications = application_repository
        self._documents = document_repository
        self._verifications = verification_repository
        self._audit_logs = audit_repository
        self._document_service = document_service
        self._explainer = explanation_service
        self._locks: Dict[str, _LockEntry] = {}
        self._locks_guard = Lock()

    def shutdown(self) -> None:
        self._document_service.shutdown()

    # ------------------------------------------------------------------
    # pipeline
    # ------------------------------------------------------------------
    def submit_application(
        self,
        profile: ApplicantProfile,
        uploads: Sequence[DocumentUpload] = (),
        actor: str = "applicant",
    ) -> ApplicationRecord:
        """Run a new application through every stage and return the completed record."""
        application_id = new_id("app")
        try:
            record = ApplicationRecord(
                id=application_id,
                application_id=application_id,
                profile=profile,
                submitted_by=actor,
            )
            self._applications.create(record)
            self._audit(
                application_id,
                AuditAction.INTAKE_RECEIVED,
                actor,
                stage=WorkflowStage.INTAKE,
                input_snapshot={
                    "employment_type": profile.employment_type,
                    "loan_amount": profile.loan_amount,
                    "tenure_months": profile.tenure_months,
                    "document_types": [DocumentType(upload.document_type).value for upload in uploads],
                },
                output_snapshot={"application_id": application_id},
            )

            started = time.monotonic()
            stage = transition(record.stage, WorkflowStage.KYC_VERIFICATION)
            outcomes = self._document_service.verify_all(application_id, uploads, profile) if uploads else []
            kyc = summarize_kyc(outcomes)
            record = self._save(
                record,
                stage=stage,
                kyc=kyc,
                document_ids=[outcome.artifact.document_id for outcome in outcomes],
            )
            self._audit(
                application_id,
                AuditAction.KYC_VERIFIED,
                "system",
                stage=stage,
                input_snapshot={"documents": len(outcomes)},
                output_snapshot=kyc.model_dump(mode="json"),
                reasoning="; ".join(kyc.warnings) or None,
                started=started,
            )

            started = time.monotonic()
            stage = transition(record.stage, WorkflowStage.CREDIT_SCORING)
            assessment = risk_engine.score(profile)
            record = self._save(record, stage=stage, assessment=assessment)
            self._audit(
                application_id,
                AuditAction.CREDIT_SCORED,
                "system",
                stage=stage,
                status=AuditStatus.REJECTED if assessment.is_hard_reject else AuditStatus.SUCCESS,
                input_snapshot={
                    "age": profile.age,
                    "monthly_income": profile.monthly_income,
                    "existing_emi": profile.existing_emi,
                    "loan_amount": profile.loan_amount,
                },
                output_snapshot={
                    "risk_score": assessment.risk_score,
                    "decision": assessment.decision.value,
                    "hard_reject_gate": assessment.hard_reject_gate,
                    "model_version": assessment.model_version,
                },
                reasoning="; ".join(assessment.triggered_rules),
                started=started,
            )

            started = time.monotonic()
            stage = transition(record.stage, WorkflowStage.DECISION)
            decision = DecisionRecord(decision=Decision(assessment.decision.value))
            explanation, source = self._explainer.explain(profile, assessment)
            record = self._save(
                record,
                stage=stage,
                decision=decision,
                status=status_for_decision(decision.decision),
                explanation=explanation,
                explanation_source=source,
            )
            self._audit(
                application_id,
                AuditAction.DECISION_MADE,
                "system",
                stage=stage,
                input_snapshot={"risk_score": assessment.risk_score, "kyc_needs_review": kyc.needs_review},
                output_snapshot={"decision": decision.decision.value, "explanation_source": source},
                reasoning=explanation,
                started=started,
            )

            stage = transition(record.stage, WorkflowStage.COMPLETED)
            record = self._save(record, stage=stage)
            self._audit(
                application_id,
                AuditAction.PIPELINE_COMPLETED,
                "system",
                stage=stage,
                output_snapshot={"status": record.status.value},
            )
            logger.info(
                "Application completed application_id=%s decision=%s score=%s kyc_passed=%d/%d",
                application_id,
                decision.decision.value,
                assessment.risk_score,
                kyc.documents_passed,
                kyc.documents_total,
            )
            return record
        except Exception:
            logger.exception("Application pipeline failed application_id=%s", application_id)
            raise

    # ------------------------------------------------------------------
    # admin actions
    # ------------------------------------------------------------------
    def override_decision(self, request: OverrideRequest, actor: str) -> DecisionRecord:
        """Replace the system decision with an operator's decision.

        Raises:
            IntegrityViolationError: Blank reason, unknown decision value or missing operator.
            ModelNotFoundError: If the application does not exist.
            VersionConflictError: If `expected_decision` no longer matches.
            OverrideLimitError: If the application was already overridden.
            InvalidTransitionError: If the application has not completed its pipeline.
        """
        reason = (request.reason or "").strip()
        if not reason:
            raise IntegrityViolationError("Override reason is required")
        new_decision = request.parsed_decision()
        if new_decision is None:
            raise IntegrityViolationError(
                "Unknown decision value '{0}'; expected approved, rejected or under_review".format(request.new_decision)
            )
        actor = (actor or "").strip()
        if not actor:
            raise IntegrityViolationError("Override requires an operator id")

        application_id = request.application_id
        with self._application_lock(application_id):
            try:
                record = self._applications.get_by_id(application_id)
                current = record.decision
                if current is None:
                    raise InvalidTransitionError("Application {0} has no decision to override".format(application_id))
                if request.expected_decision is not None and current.decision != request.expected_decision:
                    raise VersionConflictError(
                        "Decision for {0} is {1}, expected {2}".format(
                            application_id,
                            current.decision.value,
                            request.expected_decision.value,
                        )
                    )
                if record.override_count >= self._settings.override_limit:
                    raise OverrideLimitError(
                        "Application {0} was already overridden {1} time(s)".format(application_id, record.override_count)
                    )

                stage = transition(record.stage, WorkflowStage.DECISION, via_override=True)
                stage = transition(stage, WorkflowStage.COMPLETED, via_override=True)
                decision = DecisionRecord(
                    decision=Decision(new_decision.value),
                    decision_maker=DecisionMaker.ADMIN,
                    previous_decision=current.decision,
                    override_reason=reason,
                    actor=actor,
                )
                record = self._save(
                    record,
                    stage=stage,
                    decision=decision,
                    status=status_for_decision(decision.decision),
                    override_count=record.override_count + 1,
                )
                self._audit(
                    application_id,
                    AuditAction.ADMIN_OVERRIDE,
                    actor,
                    stage=WorkflowStage.DECISION,
                    input_snapshot={
                        "previous_decision": current.decision.value,
                        "new_decision": decision.decision.value,
                        "reason": reason,
                        "risk_score": record.assessment.risk_score if record.assessment else None,
                    },
                    output_snapshot={"decision": decision.decision.value, "status": record.status.value},
                    reasoning=reason,
                )
                logger.info(
                    "Decision overridden application_id=%s %s -> %s actor=%s",
                    application_id,
                    current.decision.value,
                    decision.decision.value,
                    actor,
                )
                return decision
            except (InvalidTransitionError, VersionConflictError):
                logger.warning("Override refused application_id=%s actor=%s", application_id, actor)
                raise
            except Exception:
                logger.exception("Override failed application_id=%s actor=%s", application_id, actor)
                raise

    def edit_application(
        self,
        application_id: str,
        changes: Dict[str, Any],
        admin_note: Optional[str],
        actor: str,
    ) -> ApplicationRecord:
        """Apply an operator's corrections to the applicant profile without rescoring.

        Raises:
            IntegrityViolationError: No changes or a field outside the editable set.
            ModelValidationError: If the edited profile is invalid.
            ModelNotFoundError: If the application does not exist.
        """
        if not changes:
            raise IntegrityViolationError("No updates provided")
        disallowed = sorted(set(changes) - EDITABLE_PROFILE_FIELDS)
        if disallowed:
            raise IntegrityViolationError("Fields cannot be edited: {0}".format(", ".join(disallowed)))

        with self._application_lock(application_id):
            try:
                record = self._applications.get_by_id(application_id)
                previous = record.profile.model_dump(mode="json")
                try:
                    profile = ApplicantProfile.model_validate({**previous, **changes})
                except ValidationError as exc:
                    raise ModelValidationError(str(exc))

                note = AdminNote(actor=actor, note=(admin_note or "").strip(), changed_fields=sorted(changes))
                record = self._save(record, profile=profile, admin_notes=list(record.admin_notes) + [note])
                self._audit(
                    application_id,
                    AuditAction.ADMIN_EDIT,
                    actor,
                    stage=record.stage,
                    input_snapshot={"changes": dict(changes), "previous": {key: previous.get(key) for key in changes}},
                    output_snapshot={"version": record.version},
                    reasoning=note.note or None,
                )
                logger.info("Application edited application_id=%s fields=%s actor=%s", application_id, sorted(changes), actor)
                return record
            except ModelValidationError:
                raise
            except Exception:
                logger.exception("Edit failed application_id=%s actor=%s", application_id, actor)
                raise

    def delete_application(self, application_id: str, actor: str, reason: Optional[str] = None) -> Dict[str, Any]:
        """Hard delete an application with its documents and verification results.

        The deletion is audited before anything is removed; audit entries are kept.
        A cascade that fails part way appends a `failed` entry after the first one.
        """
        with self._application_lock(application_id):
            try:
                record = self._applications.get_by_id(application_id)
                self._audit(
                    application_id,
                    AuditAction.APPLICATION_DELETED,
                    actor,
                    stage=record.stage,
                    input_snapshot={
                        "reason": reason,
                        "status": record.status.value,
                        "decision": record.decision.decision.value if record.decision else None,
                        "document_ids": list(record.document_ids),
                    },
                    reasoning=reason,
                )
            except Exception:
                logger.exception("Delete failed application_id=%s actor=%s", application_id, actor)
                raise

            try:
                documents_deleted = self._documents.delete_by_application(application_id)
                verifications_deleted = self._verifications.delete_by_application(application_id)
                self._applications.delete(application_id)
            except Exception as exc:
                logger.exception("Delete cascade failed application_id=%s actor=%s", application_id, actor)
                self._audit(
                    application_id,
                    AuditAction.APPLICATION_DELETED,
                    actor,
                    stage=record.stage,
                    status=AuditStatus.FAILED,
                    input_snapshot={"reason": reason},
                    reasoning="Deletion did not complete: {0}".format(exc),
                )
                raise

        logger.warning(
            "Application deleted application_id=%s documents=%d verifications=%d actor=%s",
            application_id,
            documents_deleted,
            verifications_deleted,
            actor,
        )
        return {
            "application_id": application_id,
            "documents_deleted": documents_deleted,
            "verifications_deleted": verifications_deleted,
        }

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    def get_application(self, application_id: str) -> ApplicationRecord:
        return self._applications.get_by_id(application_id)

    def list_applications(
        self,
        status: Optional[ApplicationStatus] = None,
        limit: Optional[int] = None,
    ) -> List[ApplicationRecord]:
        return self._applications.list(status=status, limit=limit)

    def get_audit_trail(self, application_id: str) -> List[AuditLogEntry]:
        return self._audit_logs.list_by_application(application_id)

    def get_documents(self, application_id: str) -> List[DocumentArtifact]:
        return self._documents.list_by_application(application_id)

    def get_verification_results(self, application_id: str) -> List[VerificationResult]:
        return self._verifications.list_by_application(application_id)

    def dashboard_stats(self) -> Dict[str, Any]:
        """Counts by status and the average risk score of scored applications."""
        records = self._applications.list()
        scores = [record.assessment.risk_score for record in records if record.assessment is not None]
        return {
            "total": len(records),
            "approved": sum(1 for record in records if record.status == ApplicationStatus.APPROVED),
            "pending": sum(1 for record in records if record.status == ApplicationStatus.PROCESSING),
            "rejected": sum(1 for record in records if record.status == ApplicationStatus.REJECTED),
            "average_risk_score": round(sum(scores) / len(scores), 1) if scores else 0.0,
        }

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @contextmanager
    def _application_lock(self, application_id: str) -> Iterator[None]:
        """Serialise mutations of one application; the lock is dropped once no caller holds or awaits it."""
        with self._locks_guard:
            entry = self._locks.get(application_id)
            if entry is None:
                entry = self._locks[application_id] = _LockEntry()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    self._locks.pop(application_id, None)

    def _save(self, record: ApplicationRecord, **changes: Any) -> ApplicationRecord:
        return self._applications.update(record.next_version(**changes))

    def _audit(
        self,
        application_id: str,
        action: AuditAction,
        actor: str,
        stage: Optional[WorkflowStage] = None,
        status: AuditStatus = AuditStatus.SUCCESS,
        input_snapshot: Optional[Dict[str, Any]] = None,
        output_snapshot: Optional[Dict[str, Any]] = None,
        reasoning: Optional[str] = None,
        started: Optional[float] = None,
    ) -> AuditLogEntry:
        audit_id = new_id("aud")
        entry = AuditLogEntry(
            id=audit_id,
            audit_id=audit_id,
            application_id=application_id,
            action=action,
            actor=actor or "system",
            stage=stage,
            status=status,
            input_snapshot=input_snapshot or {},
            output_snapshot=output_snapshot or {},
            reasoning=reasoning,
            duration_ms=int((time.monotonic() - started) * 1000) if started is not None else None,
        )
        return self._audit_logs.append(entry)

"""Per-document KYC pipeline: file checks, authenticity, OCR and field cross-validation."""

from concurrent.futures import Future, ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
import logging
import time
from typing import Dict, List, Optional, Sequence, Tuple

from common.file_checks import check_upload
from core.config import AppSettings
from models.applicants import ApplicantProfile
from models.base import new_id
from models.documents import DocumentArtifact, ExtractedFields, parse_extracted_fields
from models.enums import DocumentType, MatchMethod, MissingReferencePolicy, OcrStatus, ValidationStatus
from models.exceptions import CollaboratorError, ModelNotFoundError
from models.repositories import DocumentRepository, VerificationRepository
from models.verifications import CrossValidationResult, VerificationResult
from repositories.document_whitelist_repository import DocumentWhitelistRepository
from services.field_cross_validator import FieldCrossValidator
from services.hash_verifier import HashVerifier, compute_digest, compute_fingerprint
from services.ocr_client import OcrClient
from services.similarity_verifier import SimilarityVerifier


logger = logging.getLogger(__name__)

IDENTITY_DOCUMENT_ORDER = (DocumentType.AADHAAR, DocumentType.PAN)


@dataclass(frozen=True)
class DocumentUpload:
    """Raw upload handed to the pipeline."""

    document_type: DocumentType
    content: bytes
    filename: Optional[str] = None


@dataclass(frozen=True)
class DocumentOutcome:
    """Artifact and verification result produced for one upload."""

    artifact: DocumentArtifact
    result: VerificationResult


@dataclass(frozen=True)
class _Authenticity:
    matched: bool
    match_method: MatchMethod
    message: str
    similarity_score: Optional[float] = None
    reference_missing: bool = False
    policy: Optional[MissingReferencePolicy] = None
    manual_review: bool = False


class DocumentVerificationService:
    """Verifies uploads independently on a bounded worker pool.

    The selfie runs after the identity documents and is only verified once an
    Aadhaar (or, without one, a PAN) has passed. Outcomes are persisted from
    the calling thread, so a worker that outlives its deadline never writes.

    Re-uploaded bytes reuse the authenticity verdict and OCR fields of a
    settled result computed against the same whitelist snapshot; field
    cross-validation always runs against the submitting profile.
    """

    def __init__(
        self,
        settings: AppSettings,
        whitelist: DocumentWhitelistRepository,
        ocr_client: OcrClient,
        document_repository: DocumentRepository,
        verification_repository: VerificationRepository,
        cross_validator: Optional[FieldCrossValidator] = None,
    ) -> None:
        self._settings = settings
        self._whitelist = whitelist
        self._ocr_client = ocr_client
        self._documents = document_repository
        self._verifications = verification_repository
        self._hash_verifier = HashVerifier(whitelist)
        self._similarity_verifier = SimilarityVerifier(
            whitelist,
            threshold=settings.similarity_threshold,
            sample_count=settings.similarity_sample_count,
            tolerance=settings.byte_tolerance,
            on_missing_reference=MissingReferencePolicy(settings.on_missing_reference),
        )
        self._cross_validator = cross_validator or FieldCrossValidator(
            name_match_threshold=settings.name_match_threshold,
            name_partial_threshold=settings.name_partial_threshold,
            salary_tolerance_ratio=settings.salary_tolerance_ratio,
            face_match_threshold=settings.face_match_threshold,
        )
        self._timeout_sec = float(settings.document_timeout_sec)
        self._executor = ThreadPoolExecutor(max_workers=settings.max_workers, thread_name_prefix="doc-verify")

    def shutdown(self) -> None:
        """Stop the worker pool without waiting for stragglers."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    # ------------------------------------------------------------------
    # batch entry point
    # ------------------------------------------------------------------
    def verify_all(
        self,
        application_id: str,
        uploads: Sequence[DocumentUpload],
        profile: ApplicantProfile,
    ) -> List[DocumentOutcome]:
        """Verify every upload of one application and persist the outcomes."""
        try:
            deadline = time.monotonic() + self._timeout_sec
            first_pass = [upload for upload in uploads if upload.document_type != DocumentType.SELFIE]
            selfies = [upload for upload in uploads if upload.document_type == DocumentType.SELFIE]

            outcomes: List[DocumentOutcome] = self._run_batch(application_id, first_pass, profile, deadline)

            if selfies:
                identity_accepted = self._identity_accepted(outcomes)
                if identity_accepted:
                    outcomes.extend(self._run_batch(application_id, selfies, profile, deadline))
                else:
                    for upload in selfies:
                        outcomes.append(
                            self._pending_outcome(
                                application_id,
                                upload,
                                profile,
                                "Selfie check waits for an accepted identity document",
                            )
                        )

            for outcome in outcomes:
                self._documents.create(outcome.artifact)
                self._verifications.create(outcome.result)
            logger.info(
                "Verified documents application_id=%s count=%d statuses=%s",
                application_id,
                len(outcomes),
                {outcome.artifact.document_type.value: outcome.artifact.validation_status.value for outcome in outcomes},
            )
            return outcomes
        except Exception:
            logger.exception("Failed verifying documents application_id=%s", application_id)
            raise

    def _run_batch(
        self,
        application_id: str,
        uploads: Sequence[DocumentUpload],
        profile: ApplicantProfile,
        deadline: float,
    ) -> List[DocumentOutcome]:
        futures: List[Tuple[DocumentUpload, Future]] = [
            (upload, self._executor.submit(self.evaluate, application_id, upload, profile)) for upload in uploads
        ]
        wait([future for _, future in futures], timeout=max(0.0, deadline - time.monotonic()))

        outcomes: List[DocumentOutcome] = []
        for upload, future in futures:
            if not future.done():
                future.cancel()
                logger.warning(
                    "Document verification timed out application_id=%s document_type=%s",
                    application_id,
                    upload.document_type.value,
                )
                outcomes.append(
                    self._pending_outcome(application_id, upload, profile, "Verification timed out; resubmit to retry")
                )
                continue
            try:
                outcomes.append(future.result(timeout=0))
            except FutureTimeoutError:
                outcomes.append(
                    self._pending_outcome(application_id, upload, profile, "Verification timed out; resubmit to retry")
                )
            except Exception:
                logger.exception(
                    "Document verification crashed application_id=%s document_type=%s",
                    application_id,
                    upload.document_type.value,
                )
                outcomes.append(
                    self._pending_outcome(application_id, upload, profile, "Verification error; resubmit to retry")
                )
        return outcomes

    @staticmethod
    def _identity_accepted(outcomes: Sequence[DocumentOutcome]) -> bool:
        by_type: Dict[DocumentType, List[DocumentOutcome]] = {}
        for outcome in outcomes:
            by_type.setdefault(outcome.artifact.document_type, []).append(outcome)
        for document_type in IDENTITY_DOCUMENT_ORDER:
            if document_type in by_type:
                return any(outcome.result.passed for outcome in by_type[document_type])
        return False

    # ------------------------------------------------------------------
    # single document
    # ------------------------------------------------------------------
    def evaluate(self, application_id: str, upload: DocumentUpload, profile: ApplicantProfile) -> DocumentOutcome:
        """Compute the outcome for one upload without persisting it."""
        document_type = DocumentType(upload.document_type)
        content = upload.content or b""
        digest = compute_digest(content)
        fingerprint = compute_fingerprint(content, digest)
        claim = profile.identity_claim

        max_size = (
            self._settings.salary_slip_max_file_size_bytes
            if document_type == DocumentType.SALARY_SLIP
            else self._settings.max_file_size_bytes
        )
        ok, mime_type, file_message = check_upload(content, document_type.value, max_size)
        if not ok:
            return self._build_outcome(
                application_id,
                document_type,
                claim,
                digest,
                fingerprint,
                len(content),
                mime_type,
                status=ValidationStatus.INVALID,
                message=file_message,
            )

        snapshot_id = self._whitelist.snapshot_id
        cached = self._verifications.find_reusable(claim, document_type, digest, snapshot_id)
        fields: Optional[ExtractedFields] = None
        ocr_status = OcrStatus.SKIPPED
        if cached is not None:
            authenticity = self._cached_authenticity(cached)
            fields, ocr_status = self._cached_fields(cached)
            logger.info("Reused authenticity document_type=%s digest=%s", document_type.value, digest[:16])
        else:
            authenticity = self._check_authenticity(content, claim, document_type)
        if fields is None:
            ocr_status, raw_fields = self._run_ocr(content, document_type, mime_type)
            fields = parse_extracted_fields(document_type, raw_fields)

        cross: Optional[CrossValidationResult] = None
        if ocr_status != OcrStatus.SKIPPED:
            cross = self._cross_validator.validate(fields, profile)

        if authenticity.matched:
            status = ValidationStatus.VALID
        elif authenticity.manual_review:
            status = ValidationStatus.PENDING
        else:
            status = ValidationStatus.INVALID

        return self._build_outcome(
            application_id,
            document_type,
            claim,
            digest,
            fingerprint,
            len(content),
            mime_type,
            status=status,
            message=authenticity.message,
            matched=authenticity.matched,
            match_method=authenticity.match_method,
            similarity_score=authenticity.similarity_score,
            reference_missing=authenticity.reference_missing,
            policy=authenticity.policy,
            manual_review=authenticity.manual_review,
            ocr_status=ocr_status,
            fields=fields if ocr_status == OcrStatus.SUCCEEDED else None,
            cross=cross,
            whitelist_snapshot=snapshot_id,
        )

    def _check_authenticity(self, content: bytes, claim: str, document_type: DocumentType) -> _Authenticity:
        hash_result = self._hash_verifier.verify(content, claim, document_type)
        if hash_result.matched:
            return _Authenticity(
                matched=True,
                match_method=hash_result.match_method,
                message=hash_result.message,
            )
        outcome = self._similarity_verifier.verify(content, claim, document_type)
        if outcome.reference_missing:
            match_method = MatchMethod.REFERENCE_SKIPPED if outcome.matched else MatchMethod.NONE
        else:
            match_method = MatchMethod.SIMILARITY if outcome.matched else MatchMethod.NONE
        return _Authenticity(
            matched=outcome.matched,
            match_method=match_method,
            message=outcome.message,
            similarity_score=outcome.similarity_score,
            reference_missing=outcome.reference_missing,
            policy=outcome.policy_applied,
            manual_review=outcome.needs_manual_review,
        )

    @staticmethod
    def _cached_authenticity(cached: VerificationResult) -> _Authenticity:
        return _Authenticity(
            matched=cached.matched,
            match_method=cached.match_method,
            message=cached.authenticity_message or cached.message,
            similarity_score=cached.similarity_score,
            reference_missing=cached.reference_missing,
            policy=cached.missing_reference_policy,
        )

    def _cached_fields(self, cached: VerificationResult) -> Tuple[Optional[ExtractedFields], OcrStatus]:
        """OCR fields of the cached upload when they were extracted successfully."""
        if not self._ocr_client.enabled:
            return None, OcrStatus.SKIPPED
        try:
            prior = self._documents.get_by_id(cached.document_id)
        except ModelNotFoundError:
            return None, OcrStatus.SKIPPED
        if prior.ocr_status != OcrStatus.SUCCEEDED or prior.extracted_fields is None:
            return None, OcrStatus.SKIPPED
        return prior.extracted_fields, OcrStatus.SUCCEEDED

    def _run_ocr(
        self,
        content: bytes,
        document_type: DocumentType,
        mime_type: Optional[str],
    ) -> Tuple[OcrStatus, Dict]:
        if not self._ocr_client.enabled:
            return OcrStatus.SKIPPED, {}
        try:
            return OcrStatus.SUCCEEDED, self._ocr_client.extract(content, document_type, mime_type) or {}
        except CollaboratorError as exc:
            logger.warning("OCR failed document_type=%s error=%s", document_type.value, exc)
        except Exception:
            logger.exception("Unexpected OCR failure document_type=%s", document_type.value)
        return OcrStatus.FAILED, {}

    def _pending_outcome(
        self,
        application_id: str,
        upload: DocumentUpload,
        profile: ApplicantProfile,
        message: str,
    ) -> DocumentOutcome:
        content = upload.content or b""
        digest = compute_digest(content)
        return self._build_outcome(
            application_id,
            DocumentType(upload.document_type),
            profile.identity_claim,
            digest,
            compute_fingerprint(content, digest),
            len(content),
            None,
            status=ValidationStatus.PENDING,
            message=message,
        )

    def _build_outcome(
        self,
        application_id: str,
        document_type: DocumentType,
        claim: str,
        digest: str,
        fingerprint: str,
        byte_length: int,
        mime_type: Optional[str],
        status: ValidationStatus,
        message: str,
        matched: bool = False,
        match_method: MatchMethod = MatchMethod.NONE,
        similarity_score: Optional[float] = None,
        reference_missing: bool = False,
        policy: Optional[MissingReferencePolicy] = None,
        manual_review: bool = False,
        ocr_status: OcrStatus = OcrStatus.SKIPPED,
        fields: Optional[ExtractedFields] = None,
        cross: Optional[CrossValidationResult] = None,
        whitelist_snapshot: str = "",
    ) -> DocumentOutcome:
        warnings = list(cross.flags) if cross is not None else []
        hard_flags = cross.hard_flags if cross is not None else []
        passed = status == ValidationStatus.VALID and not hard_flags
        needs_review = manual_review or bool(warnings) or ocr_status == OcrStatus.FAILED
        if ocr_status == OcrStatus.FAILED:
            warnings.append("OCR unavailable; fields not extracted")
        authenticity_message = message
        if hard_flags:
            message = "{0}; {1}".format(message, "; ".join(hard_flags))

        document_id = new_id("doc")
        artifact = DocumentArtifact(
            id=document_id,
            document_id=document_id,
            application_id=application_id,
            document_type=document_type,
            content_ref="sha256:{0}".format(digest),
            content_digest=digest,
            fingerprint=fingerprint,
            byte_length=byte_length,
            mime_type=mime_type,
            extracted_fields=fields,
            ocr_status=ocr_status,
            validation_status=status,
            validation_message=message,
            warnings=warnings,
        )
        result_id = new_id("ver")
        result = VerificationResult(
            id=result_id,
            result_id=result_id,
            application_id=application_id,
            document_id=document_id,
            document_type=document_type,
            identity_claim=claim,
            content_digest=digest,
            fingerprint=fingerprint,
            matched=matched,
            match_method=match_method,
            similarity_score=similarity_score,
            similarity_threshold=self._similarity_verifier.threshold,
            reference_missing=reference_missing,
            missing_reference_policy=policy,
            whitelist_snapshot=whitelist_snapshot,
            authenticity_message=authenticity_message,
            cross_validation=cross,
            validation_status=status,
            needs_review=needs_review,
            passed=passed,
            message=message,
        )
        return DocumentOutcome(artifact=artifact, result=result)

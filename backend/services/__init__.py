"""Service layer exports."""

from .decision_service import DecisionService
from .document_verification_service import DocumentUpload, DocumentVerificationService
from .explanation_service import ExplanationService
from .field_cross_validator import FieldCrossValidator
from .hash_verifier import HashVerifier
from .ocr_client import build_ocr_client
from .similarity_verifier import SimilarityVerifier

__all__ = [
    "DecisionService",
    "DocumentUpload",
    "DocumentVerificationService",
    "ExplanationService",
    "FieldCrossValidator",
    "HashVerifier",
    "SimilarityVerifier",
    "build_ocr_client",
]

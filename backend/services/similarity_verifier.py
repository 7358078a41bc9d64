"""Tolerant byte-sampling comparison against a reference image."""

import logging
from typing import Optional

from models.enums import DocumentType, MissingReferencePolicy
from models.verifications import SimilarityOutcome
from repositories.document_whitelist_repository import DocumentWhitelistRepository


logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_COUNT = 1000
DEFAULT_BYTE_TOLERANCE = 5
DEFAULT_THRESHOLD = 80.0


def compare(
    uploaded: bytes,
    reference: bytes,
    sample_count: int = DEFAULT_SAMPLE_COUNT,
    tolerance: int = DEFAULT_BYTE_TOLERANCE,
) -> float:
    """Percentage (0-100) of sampled byte pairs that differ by at most `tolerance`.

    Sample `i` reads offset `i * len(buf) // samples` in each buffer, so both
    files are walked proportionally to their own length. The number of samples
    is capped at the uploaded length, which makes the result depend on argument
    order: `compare(a, b)` and `compare(b, a)` differ when the buffers are
    shorter than `sample_count`.
    """
    if not uploaded or not reference or sample_count <= 0:
        return 0.0
    samples = min(sample_count, len(uploaded))
    uploaded_length = len(uploaded)
    reference_length = len(reference)
    matches = 0
    for i in range(samples):
        uploaded_byte = uploaded[i * uploaded_length // samples]
        reference_byte = reference[i * reference_length // samples]
        if abs(uploaded_byte - reference_byte) <= tolerance:
            matches += 1
    return matches / samples * 100


class SimilarityVerifier:
    """Runs `compare` against the whitelisted reference image and applies the missing-reference policy."""

    def __init__(
        self,
        whitelist: DocumentWhitelistRepository,
        threshold: float = DEFAULT_THRESHOLD,
        sample_count: int = DEFAULT_SAMPLE_COUNT,
        tolerance: int = DEFAULT_BYTE_TOLERANCE,
        on_missing_reference: MissingReferencePolicy = MissingReferencePolicy.ACCEPT,
    ) -> None:
        self._whitelist = whitelist
        self.threshold = float(threshold)
        self._sample_count = int(sample_count)
        self._tolerance = int(tolerance)
        self.on_missing_reference = MissingReferencePolicy(on_missing_reference)

    def verify(
        self,
        content: bytes,
        identity_claim: str,
        document_type: DocumentType,
        reference: Optional[bytes] = None,
    ) -> SimilarityOutcome:
        """Compare against the reference image, or apply the policy when none exists."""
        if reference is None:
            reference = self._whitelist.get_reference_bytes(identity_claim, document_type)
        if reference is None:
            return self._missing_reference(document_type)

        similarity = round(
            compare(content, reference, sample_count=self._sample_count, tolerance=self._tolerance),
            2,
        )
        matched = similarity >= self.threshold
        logger.info(
            "Similarity check document_type=%s similarity=%.2f threshold=%.2f matched=%s",
            document_type,
            similarity,
            self.threshold,
            matched,
        )
        if matched:
            message = "Similar to verified original ({0:.1f}% similarity)".format(similarity)
        else:
            message = "Document differs from verified original ({0:.1f}% similarity, need {1:.0f}%)".format(
                similarity,
                self.threshold,
            )
        return SimilarityOutcome(matched=matched, similarity_score=similarity, message=message)

    def _missing_reference(self, document_type: DocumentType) -> SimilarityOutcome:
        """Outcome when there is no reference image to compare with."""
        policy = self.on_missing_reference
        logger.warning("No reference image document_type=%s policy=%s", document_type, policy.value)
        if policy == MissingReferencePolicy.ACCEPT:
            return SimilarityOutcome(
                matched=True,
                reference_missing=True,
                policy_applied=policy,
                message="No reference image on file; accepted by policy",
            )
        if policy == MissingReferencePolicy.REJECT:
            return SimilarityOutcome(
                matched=False,
                reference_missing=True,
                policy_applied=policy,
                message="No reference image on file; rejected by policy",
            )
        return SimilarityOutcome(
            matched=False,
            reference_missing=True,
            policy_applied=policy,
            needs_manual_review=True,
            message="No reference image on file; manual review required",
        )

"""Exact digest and fingerprint verification against the document whitelist."""

import hashlib
import logging
from typing import Optional

from models.enums import DocumentType, MatchMethod
from models.verifications import HashVerificationResult
from repositories.document_whitelist_repository import DocumentWhitelistRepository


logger = logging.getLogger(__name__)

FINGERPRINT_PREFIX_LENGTH = 16


def compute_digest(content: bytes) -> str:
    """SHA-256 hex digest of the raw bytes."""
    return hashlib.sha256(content).hexdigest()


def compute_fingerprint(content: bytes, digest: Optional[str] = None) -> str:
    """First 16 hex characters of the digest joined with the byte length."""
    digest = digest or compute_digest(content)
    return "{0}-{1}".format(digest[:FINGERPRINT_PREFIX_LENGTH], len(content))


class HashVerifier:
    """Checks uploaded bytes against whitelisted digests and fingerprints for one identity claim.

    There is no tolerance for byte-level changes here; re-encoded files fall
    through to `SimilarityVerifier`.
    """

    def __init__(self, whitelist: DocumentWhitelistRepository) -> None:
        self._whitelist = whitelist

    def verify(
        self,
        content: bytes,
        identity_claim: str,
        document_type: DocumentType,
    ) -> HashVerificationResult:
        """Exact digest match first, then fingerprint, else not matched."""
        digest = compute_digest(content)
        fingerprint = compute_fingerprint(content, digest)
        entry = self._whitelist.get_entry(identity_claim, document_type)

        if entry is not None and digest in entry.digests:
            logger.info("Exact digest match document_type=%s digest=%s", document_type, digest[:16])
            return HashVerificationResult(
                matched=True,
                digest=digest,
                fingerprint=fingerprint,
                match_method=MatchMethod.EXACT_DIGEST,
                message="Document authenticated: exact match with verified original",
            )
        if entry is not None and fingerprint in entry.fingerprints:
            logger.info("Fingerprint match document_type=%s fingerprint=%s", document_type, fingerprint)
            return HashVerificationResult(
                matched=True,
                digest=digest,
                fingerprint=fingerprint,
                match_method=MatchMethod.FINGERPRINT,
                message="Fingerprint verified: same source document",
            )

        message = (
            "Document rejected: does not match any verified original"
            if entry is not None
            else "No verified original on file for this identity"
        )
        return HashVerificationResult(
            matched=False,
            digest=digest,
            fingerprint=fingerprint,
            match_method=MatchMethod.NONE,
            message=message,
        )

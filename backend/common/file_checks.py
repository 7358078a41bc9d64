"""Upload sanity checks: magic-byte sniffing and size limits."""

from __future__ import annotations

from typing import Optional, Tuple

MAGIC_SIGNATURES: Tuple[Tuple[bytes, str], ...] = (
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"\x89PNG", "image/png"),
    (b"%PDF", "application/pdf"),
)

IMAGE_ONLY_TYPES = frozenset({"selfie"})


def sniff_mime_type(content: bytes) -> Optional[str]:
    """Return the MIME type implied by the leading bytes, if recognised."""
    for signature, mime_type in MAGIC_SIGNATURES:
        if content.startswith(signature):
            return mime_type
    return None


def check_upload(
    content: bytes,
    document_type: str,
    max_size_bytes: int,
) -> Tuple[bool, Optional[str], str]:
    """Validate size and file signature.

    Returns:
        Tuple of (ok, mime_type, message).
    """
    if not content:
        return False, None, "Empty file"
    if len(content) > max_size_bytes:
        return False, None, "File too large: {0} bytes (max {1})".format(len(content), max_size_bytes)
    mime_type = sniff_mime_type(content)
    if mime_type is None:
        return False, None, "Unsupported file signature (expected JPEG, PNG or PDF)"
    if document_type in IMAGE_ONLY_TYPES and mime_type == "application/pdf":
        return False, mime_type, "Selfie must be an image"
    return True, mime_type, "File accepted"

"""Common reusable utility exports."""

from .file_checks import check_upload, sniff_mime_type
from .id_formats import (
    mask_identifier,
    parse_amount,
    validate_aadhaar_number,
    validate_ifsc_code,
    validate_pan_number,
)
from .scoring_constants import compute_dti_ratio, compute_lti_ratio
from .text_matching import name_similarity, normalize_name

__all__ = [
    "check_upload",
    "sniff_mime_type",
    "mask_identifier",
    "parse_amount",
    "validate_aadhaar_number",
    "validate_ifsc_code",
    "validate_pan_number",
    "compute_dti_ratio",
    "compute_lti_ratio",
    "name_similarity",
    "normalize_name",
]

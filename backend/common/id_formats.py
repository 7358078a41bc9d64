"""Format checks for Indian identity and banking identifiers."""

from __future__ import annotations

import re
from typing import Any, Optional, Tuple

PAN_PATTERN = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]$")
AADHAAR_PATTERN = re.compile(r"^\d{12}$")
IFSC_PATTERN = re.compile(r"^[A-Z]{4}0[A-Z0-9]{6}$")
_AADHAAR_SEPARATORS = re.compile(r"[\s-]")
_AMOUNT_NOISE = re.compile(r"[^0-9.\-]")

# 4th PAN letter encodes the holder category.
PAN_HOLDER_TYPES = {
    "P": "Individual",
    "C": "Company",
    "H": "HUF",
    "F": "Firm",
    "A": "AOP",
    "T": "Trust",
    "B": "BOI",
    "L": "Local Authority",
    "J": "Artificial Juridical Person",
    "G": "Government",
}

# Verhoeff dihedral-group tables.
_VERHOEFF_D = (
    (0, 1, 2, 3, 4, 5, 6, 7, 8, 9),
    (1, 2, 3, 4, 0, 6, 7, 8, 9, 5),
    (2, 3, 4, 0, 1, 7, 8, 9, 5, 6),
    (3, 4, 0, 1, 2, 8, 9, 5, 6, 7),
    (4, 0, 1, 2, 3, 9, 5, 6, 7, 8),
    (5, 9, 8, 7, 6, 0, 4, 3, 2, 1),
    (6, 5, 9, 8, 7, 1, 0, 4, 3, 2),
    (7, 6, 5, 9, 8, 2, 1, 0, 4, 3),
    (8, 7, 6, 5, 9, 3, 2, 1, 0, 4),
    (9, 8, 7, 6, 5, 4, 3, 2, 1, 0),
)
_VERHOEFF_P = (
    (0, 1, 2, 3, 4, 5, 6, 7, 8, 9),
    (1, 5, 7, 6, 2, 8, 3, 0, 9, 4),
    (5, 8, 0, 3, 7, 9, 6, 1, 4, 2),
    (8, 9, 1, 6, 0, 4, 3, 5, 2, 7),
    (9, 4, 5, 3, 1, 2, 6, 8, 7, 0),
    (4, 2, 8, 6, 5, 7, 3, 9, 0, 1),
    (2, 7, 9, 3, 8, 0, 6, 4, 1, 5),
    (7, 0, 4, 6, 9, 1, 3, 2, 5, 8),
)
_VERHOEFF_INV = (0, 4, 3, 2, 1, 5, 6, 7, 8, 9)


def verhoeff_is_valid(digits: str) -> bool:
    """Return True when the trailing digit is a correct Verhoeff checksum."""
    checksum = 0
    for index, char in enumerate(reversed(digits)):
        checksum = _VERHOEFF_D[checksum][_VERHOEFF_P[index % 8][int(char)]]
    return checksum == 0


def verhoeff_check_digit(digits: str) -> str:
    """Compute the Verhoeff check digit to append to `digits`."""
    checksum = 0
    for index, char in enumerate(reversed(digits)):
        checksum = _VERHOEFF_D[checksum][_VERHOEFF_P[(index + 1) % 8][int(char)]]
    return str(_VERHOEFF_INV[checksum])


def clean_aadhaar(value: Optional[str]) -> str:
    """Strip spaces and hyphens from an Aadhaar number."""
    return _AADHAAR_SEPARATORS.sub("", str(value or ""))


def clean_pan(value: Optional[str]) -> str:
    """Uppercase and trim a PAN."""
    return str(value or "").strip().upper()


def validate_aadhaar_number(value: Optional[str]) -> Tuple[bool, str]:
    """Check Aadhaar shape, leading digit and Verhoeff checksum."""
    cleaned = clean_aadhaar(value)
    if not AADHAAR_PATTERN.match(cleaned):
        return False, "Aadhaar must be exactly 12 digits"
    if cleaned[0] in "01":
        return False, "Invalid Aadhaar number format"
    if not verhoeff_is_valid(cleaned):
        return False, "Invalid Aadhaar checksum"
    return True, "Aadhaar number format valid"


def validate_pan_number(value: Optional[str]) -> Tuple[bool, str]:
    """Check PAN shape (AAAAA9999A) and the holder-type letter."""
    cleaned = clean_pan(value)
    if not PAN_PATTERN.match(cleaned):
        return False, "PAN must be in format AAAAA9999A (5 letters, 4 numbers, 1 letter)"
    if cleaned[3] not in PAN_HOLDER_TYPES:
        return False, "Invalid PAN format (4th character)"
    return True, "PAN format valid ({0})".format(PAN_HOLDER_TYPES[cleaned[3]])


def validate_ifsc_code(value: Optional[str]) -> Tuple[bool, str]:
    """Check IFSC shape: 4 letters, a zero, 6 alphanumerics."""
    cleaned = str(value or "").strip().upper()
    if not IFSC_PATTERN.match(cleaned):
        return False, "Invalid IFSC code format"
    return True, "IFSC format valid"


def mask_identifier(value: Optional[str], visible: int = 4) -> str:
    """Mask all but the last `visible` characters for logs and audit snapshots."""
    raw = str(value or "")
    if len(raw) <= visible:
        return raw
    return "X" * (len(raw) - visible) + raw[-visible:]


def parse_amount(value: Any) -> Optional[float]:
    """Parse OCR amounts like '45,000.00' or 'Rs. 45000' into a float."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = _AMOUNT_NOISE.sub("", str(value))
    cleaned = cleaned.strip(".")
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None

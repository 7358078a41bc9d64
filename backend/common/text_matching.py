"""Name normalisation and fuzzy matching used by KYC cross-validation."""

from __future__ import annotations

import re
from typing import List, Optional

_NON_LETTERS = re.compile(r"[^A-Z\s]")
_WHITESPACE = re.compile(r"\s+")

HONORIFICS = frozenset({"MR", "MRS", "MS", "DR", "SHRI", "SMT", "KUMAR", "KUMARI"})

# A word within this edit distance (and length delta) counts as a partial hit.
MAX_WORD_EDIT_DISTANCE = 2
PARTIAL_WORD_CREDIT = 0.8


def collapse_whitespace(value: Optional[str]) -> str:
    """Trim and collapse internal whitespace runs to one space."""
    return _WHITESPACE.sub(" ", str(value or "")).strip()


def normalize_name(value: Optional[str]) -> str:
    """Uppercase, keep only letters and spaces, collapse whitespace."""
    upper = str(value or "").upper()
    return collapse_whitespace(_NON_LETTERS.sub(" ", upper))


def name_tokens(value: Optional[str]) -> List[str]:
    """Return normalized name words without honorifics."""
    return [word for word in normalize_name(value).split(" ") if word and word not in HONORIFICS]


def levenshtein_distance(left: str, right: str) -> int:
    """Classic edit distance with a rolling row."""
    if left == right:
        return 0
    if not left:
        return len(right)
    if not right:
        return len(left)
    previous = list(range(len(right) + 1))
    for i, left_char in enumerate(left, start=1):
        current = [i]
        for j, right_char in enumerate(right, start=1):
            cost = 0 if left_char == right_char else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def _word_credit(word: str, candidates: List[str]) -> float:
    """Best credit a single word earns against the other name's words."""
    best = 0.0
    for candidate in candidates:
        if word == candidate or word in candidate or candidate in word:
            return 1.0
        if (
            abs(len(word) - len(candidate)) <= MAX_WORD_EDIT_DISTANCE
            and levenshtein_distance(word, candidate) <= MAX_WORD_EDIT_DISTANCE
        ):
            best = max(best, PARTIAL_WORD_CREDIT)
    return best


def name_similarity(extracted: Optional[str], declared: Optional[str]) -> float:
    """Word-level similarity in [0, 1] between an OCR name and a form-entered name.

    Case, punctuation, whitespace runs and honorifics are ignored. Word order
    does not matter, so "SHARMA ANITA" and "Mrs. Anita Sharma" compare as equal.
    """
    extracted_words = name_tokens(extracted)
    declared_words = name_tokens(declared)
    if not extracted_words or not declared_words:
        return 0.0
    if extracted_words == declared_words:
        return 1.0
    matched = sum(_word_credit(word, declared_words) for word in extracted_words)
    return min(1.0, matched / max(len(extracted_words), len(declared_words)))

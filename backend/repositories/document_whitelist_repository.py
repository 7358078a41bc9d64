"""Whitelist of known-genuine document digests and reference images.

The whitelist file is JSON of the form::

    {
      "entries": [
        {
          "identity_claim": "Anita Sharma",
          "document_type": "aadhaar",
          "digests": ["<sha256 hex>"],
          "fingerprints": ["<first 16 hex>-<byte length>"],
          "reference_path": "references/anita_aadhaar.jpg"
        }
      ]
    }

`reference_path` is resolved relative to the whitelist file. `snapshot_id` is a
digest of the loaded file text and changes whenever a reload picks up different
contents.
"""

from datetime import datetime
import hashlib
import json
import logging
from pathlib import Path
from threading import RLock
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, validator

from common.text_matching import normalize_name
from models.base import utc_now
from models.enums import DocumentType


logger = logging.getLogger(__name__)

EntryKey = Tuple[str, DocumentType]

EMPTY_SNAPSHOT_ID = "empty"


class WhitelistEntry(BaseModel):
    """Accepted digests, fingerprints and optional reference image for one claim and document type."""

    identity_claim: str = Field(..., min_length=2)
    document_type: DocumentType = Field(...)
    digests: List[str] = Field(default_factory=list)
    fingerprints: List[str] = Field(default_factory=list)
    reference_path: Optional[str] = Field(default=None)

    @validator("identity_claim")
    def _normalize_claim(cls, value: str) -> str:
        normalized = normalize_name(value)
        if not normalized:
            raise ValueError("identity_claim must contain letters")
        return normalized

    @validator("digests", pre=True, always=True)
    def _normalize_digests(cls, value: Optional[List[str]]) -> List[str]:
        return sorted({str(item).strip().lower() for item in (value or []) if str(item).strip()})

    @validator("fingerprints", pre=True, always=True)
    def _normalize_fingerprints(cls, value: Optional[List[str]]) -> List[str]:
        return sorted({str(item).strip().lower() for item in (value or []) if str(item).strip()})


class DocumentWhitelistRepository:
    """Read-only lookup over the whitelist file with load-at-startup and hot reload."""

    def __init__(self, path: str) -> None:
        """Bind the repository to a whitelist file; call `load()` before use."""
        self._path = Path(path).resolve()
        self._lock = RLock()
        self._entries: Dict[EntryKey, WhitelistEntry] = {}
        self._loaded_at: Optional[datetime] = None
        self._snapshot_id = EMPTY_SNAPSHOT_ID

    @property
    def path(self) -> str:
        """Return whitelist JSON path."""
        return str(self._path)

    @property
    def snapshot_id(self) -> str:
        """Identifier of the whitelist contents currently in use."""
        with self._lock:
            return self._snapshot_id

    def _read_entries(self) -> Tuple[Dict[EntryKey, WhitelistEntry], str]:
        """Parse and validate the whitelist file into a fresh snapshot and its id.

        Raises:
            FileNotFoundError: If the file is missing.
            ValueError: If the top-level shape is wrong.
        """
        text = self._path.read_text(encoding="utf-8")
        raw = json.loads(text)
        rows = raw.get("entries") if isinstance(raw, dict) else raw
        if not isinstance(rows, list):
            raise ValueError("Whitelist file must contain an 'entries' array.")

        loaded: Dict[EntryKey, WhitelistEntry] = {}
        for row in rows:
            try:
                entry = WhitelistEntry.model_validate(row)
            except ValidationError:
                logger.exception("Invalid whitelist row skipped row=%s", row)
                continue
            key = (entry.identity_claim, entry.document_type)
            if key in loaded:
                current = loaded[key]
                entry = current.model_copy(
                    update={
                        "digests": sorted(set(current.digests) | set(entry.digests)),
                        "fingerprints": sorted(set(current.fingerprints) | set(entry.fingerprints)),
                        "reference_path": current.reference_path or entry.reference_path,
                    }
                )
            loaded[key] = entry
        return loaded, hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]

    def load(self) -> int:
        """Load the whitelist at startup; a missing file yields an empty whitelist."""
        with self._lock:
            if not self._path.exists():
                logger.warning("Document whitelist not found at path=%s", self._path)
                self._entries = {}
                self._snapshot_id = EMPTY_SNAPSHOT_ID
                self._loaded_at = utc_now()
                return 0
            try:
                self._entries, self._snapshot_id = self._read_entries()
                self._loaded_at = utc_now()
                logger.info("Loaded document whitelist entries=%d from path=%s", len(self._entries), self._path)
                return len(self._entries)
            except Exception:
                logger.exception("Failed loading document whitelist from path=%s", self._path)
                self._entries = {}
                self._snapshot_id = EMPTY_SNAPSHOT_ID
                self._loaded_at = utc_now()
                return 0

    def reload(self) -> int:
        """Re-read the file and swap the snapshot atomically.

        Raises:
            OSError: If the file cannot be read; the previous snapshot stays active.
            ValueError: If the file is malformed; the previous snapshot stays active.
        """
        try:
            fresh, snapshot_id = self._read_entries()
        except Exception:
            logger.exception("Whitelist reload failed; keeping previous snapshot path=%s", self._path)
            raise
        with self._lock:
            self._entries = fresh
            self._snapshot_id = snapshot_id
            self._loaded_at = utc_now()
        logger.info("Reloaded document whitelist entries=%d snapshot_id=%s", len(fresh), snapshot_id)
        return len(fresh)

    def get_entry(self, identity_claim: str, document_type: DocumentType) -> Optional[WhitelistEntry]:
        """Return the entry for a claim and document type, if any."""
        key = (normalize_name(identity_claim), DocumentType(document_type))
        with self._lock:
            return self._entries.get(key)

    def get_reference_bytes(self, identity_claim: str, document_type: DocumentType) -> Optional[bytes]:
        """Read the reference image for a claim, or None when none is configured or readable."""
        entry = self.get_entry(identity_claim, document_type)
        if entry is None or not entry.reference_path:
            return None
        reference = Path(entry.reference_path)
        if not reference.is_absolute():
            reference = self._path.parent / reference
        try:
            return reference.read_bytes()
        except OSError:
            logger.warning(
                "Reference image unreadable claim=%s document_type=%s path=%s",
                entry.identity_claim,
                document_type,
                reference,
            )
            return None

    def stats(self) -> Dict[str, Any]:
        """Counts for the admin reload endpoint."""
        with self._lock:
            return {
                "path": str(self._path),
                "entries": len(self._entries),
                "with_reference": sum(1 for entry in self._entries.values() if entry.reference_path),
                "loaded_at": self._loaded_at,
                "snapshot_id": self._snapshot_id,
            }

"""Script to print the digest and fingerprint of a document for the whitelist."""

import argparse
import json
import logging
from pathlib import Path
import sys


BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from common.text_matching import normalize_name
from models.enums import DocumentType
from services.hash_verifier import compute_digest, compute_fingerprint


logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")
logger = logging.getLogger(__name__)


def main() -> None:
    """Hash a document and optionally print a ready-to-paste whitelist entry."""
    parser = argparse.ArgumentParser(description="Compute SHA-256 digest and fingerprint of a document.")
    parser.add_argument("path", type=str, help="Document file to hash.")
    parser.add_argument("--identity-claim", type=str, default=None, help="Applicant name for a whitelist entry.")
    parser.add_argument(
        "--document-type",
        type=str,
        default=DocumentType.AADHAAR.value,
        choices=[item.value for item in DocumentType],
        help="Document type for a whitelist entry.",
    )
    parser.add_argument("--reference", action="store_true", help="Also record the file as the reference image.")
    args = parser.parse_args()

    path = Path(args.path)
    content = path.read_bytes()
    digest = compute_digest(content)
    fingerprint = compute_fingerprint(content, digest)
    logger.info("Hashed %s bytes=%d", path, len(content))
    print("digest:      {0}".format(digest))
    print("fingerprint: {0}".format(fingerprint))
    print("bytes:       {0}".format(len(content)))

    if args.identity_claim:
        entry = {
            "identity_claim": normalize_name(args.identity_claim),
            "document_type": args.document_type,
            "digests": [digest],
            "fingerprints": [fingerprint],
            "reference_path": str(path) if args.reference else None,
        }
        print(json.dumps(entry, indent=2))


if __name__ == "__main__":
    main()

# certchain/hashutil.py
import hashlib
import re
import struct
from typing import List, Tuple

from certchain.models import CertificateRecord, format_timestamp

# Bumped whenever the byte layout below changes; old hashes stay valid only
# under the version they were computed with.
CANONICAL_HEADER = b"certchain.record.v1\n"

# Fixed field order of the canonical encoding. Never derived from dict order.
CANONICAL_FIELDS = (
    "name",
    "courseName",
    "instituteName",
    "pdfRef",
    "photoRef",
    "createdAt",
)

_HASH_RE = re.compile(r"^[0-9a-f]{64}$")


def canonical_fields(record: CertificateRecord) -> List[Tuple[str, str]]:
    values = {
        "name": record.name,
        "courseName": record.course_name,
        "instituteName": record.institute_name,
        "pdfRef": record.pdf_ref,
        "photoRef": record.photo_ref,
        "createdAt": format_timestamp(record.created_at),
    }
    return [(key, values[key]) for key in CANONICAL_FIELDS]


def _pack(text: str) -> bytes:
    raw = text.encode("utf-8")
    return struct.pack(">I", len(raw)) + raw


def canonicalize(record: CertificateRecord) -> bytes:
    """
    Return the stable byte representation of a record:
    - version header
    - fields in CANONICAL_FIELDS order
    - each key and value UTF-8 encoded behind a 4-byte big-endian length
    Length prefixes keep field boundaries unambiguous, so
    name="ab", courseName="c" never collides with name="a", courseName="bc".
    """
    parts = [CANONICAL_HEADER]
    for key, value in canonical_fields(record):
        parts.append(_pack(key))
        parts.append(_pack(value))
    return b"".join(parts)


def sha256_hex(b: bytes, prefix: bool = False) -> str:
    """
    SHA-256 of bytes -> hex string. '0x' prefix is nice for blockchain contexts.
    """
    h = hashlib.sha256(b).hexdigest()
    return f"0x{h}" if prefix else h


def content_hash(record: CertificateRecord) -> str:
    """Convenience wrapper: canonicalize -> hash -> 64 hex chars."""
    return sha256_hex(canonicalize(record))


def is_content_hash(text: str) -> bool:
    return bool(_HASH_RE.match(text or ""))

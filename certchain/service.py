# certchain/service.py
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional

from certchain.blobs import BlobStore
from certchain.errors import ValidationError
from certchain.hashutil import content_hash
from certchain.models import CertificateRecord
from certchain.store import RecordStore

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("name", "courseName", "instituteName")


def utc_now() -> datetime:
    # millisecond precision, same as the canonical timestamp rendering
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


class RecordService:
    """
    Validates submissions, builds and hashes records, and resolves them back
    for display. Holds no records itself; the store owns them.
    """

    def __init__(
        self,
        store: RecordStore,
        blobs: Optional[BlobStore] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.blobs = blobs
        self.clock = clock

    def clean_fields(self, raw_fields: Mapping[str, Any]) -> Dict[str, str]:
        """Trimmed text fields; every blank or absent one is reported at once."""
        cleaned = {}
        missing = []
        for key in TEXT_FIELDS:
            value = raw_fields.get(key)
            value = value.strip() if isinstance(value, str) else ""
            if not value:
                missing.append(key)
            cleaned[key] = value
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                kind="missing_field",
                fields=missing,
            )
        return cleaned

    def submit(self, raw_fields: Mapping[str, Any], pdf_ref: Optional[str], photo_ref: Optional[str]) -> str:
        """
        Store a new certificate record and return its content hash.

        Raises ValidationError (nothing written) or StorageWriteError
        (nothing committed). A hash is only returned once the record is durable.
        """
        cleaned = self.clean_fields(raw_fields)

        refs = {"pdfRef": pdf_ref, "photoRef": photo_ref}
        absent = [k for k, ref in refs.items() if not isinstance(ref, str) or not ref.strip()]
        if not absent and self.blobs is not None:
            absent = [k for k, ref in refs.items() if not self.blobs.exists(ref)]
        if absent:
            raise ValidationError(
                "Both a PDF certificate and a student photo are required.",
                kind="missing_blob_ref",
                fields=absent,
            )

        record = CertificateRecord(
            name=cleaned["name"],
            course_name=cleaned["courseName"],
            institute_name=cleaned["instituteName"],
            pdf_ref=pdf_ref,
            photo_ref=photo_ref,
            created_at=self.clock(),
        )
        digest = content_hash(record)
        self.store.put(digest, record)

        logger.info("Certificate stored: name=%s hash=%s…", record.name, digest[:12])
        return digest

    def get(self, digest: str) -> Optional[CertificateRecord]:
        return self.store.get(digest)

    def resolve(self, digest: str) -> Optional[Dict[str, Any]]:
        """
        Record for display: stored fields plus pdfUrl / photoUrl locators.
        None when no record has this exact hash.
        """
        record = self.store.get(digest)
        if record is None:
            return None
        out = record.to_json()
        if self.blobs is not None:
            out["pdfUrl"] = self.blobs.locator(record.pdf_ref)
            out["photoUrl"] = self.blobs.locator(record.photo_ref)
        return out

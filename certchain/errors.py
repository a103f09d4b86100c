# certchain/errors.py
from typing import Optional, Sequence


class CertChainError(Exception):
    """Base error. `kind` is the machine-readable reason surfaced to callers."""

    kind = "error"

    def __init__(self, message: str, kind: Optional[str] = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind
        self.message = message


class ValidationError(CertChainError):
    """Submission rejected before anything was written."""

    kind = "missing_field"

    def __init__(self, message: str, kind: Optional[str] = None, fields: Sequence[str] = ()):
        super().__init__(message, kind)
        self.fields = list(fields)


class BlobRejectedError(ValidationError):
    kind = "invalid_blob"


class StorageWriteError(CertChainError):
    """
    The record was NOT committed. Store file and index are unchanged, so the
    caller must not treat the hash as issued.
    """

    kind = "io_failure"


class StorageReadError(CertChainError):
    """The store could not be loaded; lookups are unavailable (not NotFound)."""

    kind = "io_failure"


class ChainConfigError(RuntimeError):
    pass

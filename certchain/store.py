# certchain/store.py
"""
Content-addressed record store.

In-memory index {hash: record} backed by a single JSON snapshot file
(database.json). Every put writes a full snapshot to a temp file next to the
store, fsyncs it and renames it over the old one, so the file on disk is
always either the previous or the next complete snapshot. Writers are
serialized by a lock; readers only ever see a fully built index.
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError as SchemaError

from certchain.errors import StorageReadError, StorageWriteError
from certchain.models import CertificateRecord

logger = logging.getLogger(__name__)


class RecordStore:
    def __init__(self, path: Path, write_timeout: float = 5.0):
        self.path = Path(path)
        self.write_timeout = write_timeout
        self._write_lock = threading.Lock()
        self._index: Dict[str, CertificateRecord] = {}
        self.load()

    # ---------- read side ----------

    def load(self) -> None:
        """
        Reload the whole snapshot into memory.
        A missing file is an empty store; anything unreadable raises StorageReadError.
        """
        if not self.path.exists():
            logger.info("No store file at %s, starting empty", self.path)
            self._index = {}
            return

        try:
            raw = self.path.read_bytes()
        except OSError as e:
            raise StorageReadError(f"cannot read store file {self.path}: {e}") from e

        try:
            data = json.loads(raw) if raw.strip() else {}
            if not isinstance(data, dict):
                raise ValueError("top-level JSON value is not an object")
            index = {h: CertificateRecord.model_validate(rec) for h, rec in data.items()}
        except (ValueError, SchemaError) as e:
            raise StorageReadError(
                f"store file {self.path} is corrupt: {e}", kind="corrupt_snapshot"
            ) from e

        self._index = index
        logger.info("Loaded %d records from %s", len(index), self.path)

    def get(self, content_hash: str) -> Optional[CertificateRecord]:
        """Exact-match lookup. None means NotFound."""
        return self._index.get(content_hash)

    def hashes(self) -> List[str]:
        """Stored hashes in insertion order (diagnostics only)."""
        return list(self._index)

    def __contains__(self, content_hash: str) -> bool:
        return content_hash in self._index

    def __len__(self) -> int:
        return len(self._index)

    # ---------- write side ----------

    def put(self, content_hash: str, record: CertificateRecord) -> None:
        """
        Insert or overwrite `content_hash`. Returns only once the new snapshot
        is durable on disk. On any failure raises StorageWriteError and leaves
        both the file and the in-memory index as they were.
        """
        if not self._write_lock.acquire(timeout=self.write_timeout):
            raise StorageWriteError(
                f"timed out after {self.write_timeout}s waiting for the store write lock"
            )
        try:
            snapshot = dict(self._index)
            snapshot[content_hash] = record
            payload = self._serialize(snapshot)
            self._write_atomic(payload)
            # swap only after the rename succeeded
            self._index = snapshot
        finally:
            self._write_lock.release()

        logger.debug("Stored %s… (%d records)", content_hash[:12], len(snapshot))

    def _serialize(self, snapshot: Dict[str, CertificateRecord]) -> bytes:
        try:
            data = {h: rec.to_json() for h, rec in snapshot.items()}
            return json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise StorageWriteError(
                f"cannot serialize store snapshot: {e}", kind="serialization_failure"
            ) from e

    def _write_atomic(self, payload: bytes) -> None:
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            logger.error("Store write to %s failed: %s", self.path, e)
            raise StorageWriteError(f"cannot write store file {self.path}: {e}") from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)
        self._fsync_dir()

    def _fsync_dir(self) -> None:
        # makes the rename itself durable; not available on Windows
        if not hasattr(os, "O_DIRECTORY"):
            return
        try:
            dir_fd = os.open(str(self.path.parent), os.O_RDONLY | os.O_DIRECTORY)
            try:
                os.fsync(dir_fd)
            finally:
                os.close(dir_fd)
        except OSError as e:
            # the new snapshot is already in place; only the rename's durability is in doubt
            logger.warning("fsync of %s failed: %s", self.path.parent, e)

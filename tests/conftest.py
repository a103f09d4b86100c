import pytest
from datetime import datetime, timezone
from fastapi.testclient import TestClient

from certchain.blobs import LocalBlobStore
from certchain.main import app
from certchain.models import CertificateRecord
from certchain.service import RecordService
from certchain.store import RecordStore


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "database.json"


@pytest.fixture
def store(db_path):
    return RecordStore(db_path, write_timeout=1.0)


@pytest.fixture
def blobs(tmp_path):
    blob_store = LocalBlobStore(tmp_path / "uploads")
    blob_store.ensure()
    return blob_store


@pytest.fixture
def service(store):
    """Service without a blob store: refs are only checked for presence."""
    return RecordService(store)


@pytest.fixture
def sample_fields():
    return {
        "name": "Alice Tan",
        "courseName": "Data Structures",
        "instituteName": "Tech U",
    }


@pytest.fixture
def sample_record():
    return CertificateRecord(
        name="Alice Tan",
        course_name="Data Structures",
        institute_name="Tech U",
        pdf_ref="pdf-1",
        photo_ref="photo-1",
        created_at=datetime(2026, 10, 19, 12, 0, 0, 123000, tzinfo=timezone.utc),
    )


@pytest.fixture
def sample_files():
    return {
        "pdf": ("certificate.pdf", b"%PDF-1.4 test certificate", "application/pdf"),
        "photo": ("student.png", b"\x89PNG\r\n\x1a\n fake photo", "image/png"),
    }


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    data = tmp_path / "data"
    monkeypatch.setenv("CERTCHAIN_DATA_DIR", str(data))
    monkeypatch.delenv("CERTCHAIN_DB_PATH", raising=False)
    monkeypatch.delenv("CERTCHAIN_UPLOADS_DIR", raising=False)
    monkeypatch.setenv("CERTCHAIN_BLOB_BACKEND", "local")
    monkeypatch.setenv("CERTCHAIN_CHAIN_ENABLED", "0")
    return data


@pytest.fixture
def client(data_dir):
    """A test client whose startup hook points at a fresh data directory."""
    with TestClient(app) as test_client:
        yield test_client

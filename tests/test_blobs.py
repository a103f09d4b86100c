"""
Blob storage: upload validation, local directory and S3 backends
"""
import io
import re

import boto3
import pytest
from botocore.stub import ANY, Stubber

from certchain.blobs import BlobStore, LocalBlobStore, S3BlobStore, make_blob_store
from certchain.config import Settings
from certchain.errors import BlobRejectedError


def test_local_save_and_exists(blobs):
    ref = blobs.save("pdf", "Certificate.PDF", "application/pdf", b"%PDF-1.4")

    assert re.match(r"^pdf-\d+-\d+\.pdf$", ref)
    assert blobs.exists(ref)
    assert (blobs.root / ref).read_bytes() == b"%PDF-1.4"
    assert blobs.locator(ref) == f"/uploads/{ref}"


def test_refs_are_unique(blobs):
    refs = {blobs.save("photo", "a.png", "image/png", b"x") for _ in range(20)}
    assert len(refs) == 20


@pytest.mark.parametrize("kind, content_type", [
    ("pdf", "image/png"),
    ("pdf", None),
    ("photo", "application/pdf"),
    ("photo", "text/plain"),
    ("video", "video/mp4"),
])
def test_wrong_content_type_rejected(blobs, kind, content_type):
    with pytest.raises(BlobRejectedError) as exc:
        blobs.save(kind, "file", content_type, b"data")
    assert exc.value.kind == "invalid_blob"
    assert list(blobs.root.iterdir()) == []


def test_size_limits(tmp_path):
    small = LocalBlobStore(tmp_path, max_bytes=4)
    assert small.exists(small.save("photo", "p.gif", "image/gif", b"1234"))
    with pytest.raises(BlobRejectedError):
        small.save("photo", "p.gif", "image/gif", b"12345")
    with pytest.raises(BlobRejectedError):
        small.save("photo", "p.gif", "image/gif", b"")


def test_read_limited_stops_past_the_limit(tmp_path):
    store = LocalBlobStore(tmp_path, max_bytes=8)
    stream = io.BytesIO(b"x" * 1000)

    data = store.read_limited(stream)
    assert len(data) == 9
    assert stream.tell() == 9
    with pytest.raises(BlobRejectedError):
        store.validate("photo", "image/png", len(data))

    assert store.read_limited(io.BytesIO(b"12345678")) == b"12345678"


def test_incomplete_backend_fails_at_construction():
    class NoLocator(BlobStore):
        def ensure(self):
            pass

        def _write(self, ref, content_type, data):
            pass

        def exists(self, ref):
            return False

    with pytest.raises(TypeError):
        NoLocator()
    with pytest.raises(TypeError):
        BlobStore()


@pytest.mark.parametrize("ref", ["", ".hidden", "../database.json", "a/b.pdf"])
def test_local_exists_rejects_foreign_refs(blobs, ref):
    (blobs.root.parent / "database.json").write_text("{}")
    assert not blobs.exists(ref)


def _s3_store():
    client = boto3.client(
        "s3", region_name="us-east-1",
        aws_access_key_id="test", aws_secret_access_key="test",
    )
    return S3BlobStore(client, "certs", public_base="http://minio:9000/"), client


def test_s3_save_and_locator():
    store, client = _s3_store()
    with Stubber(client) as stub:
        stub.add_response(
            "put_object", {},
            {"Bucket": "certs", "Key": ANY, "Body": ANY, "ContentType": "application/pdf"},
        )
        ref = store.save("pdf", "c.pdf", "application/pdf", b"%PDF-1.4")
        stub.assert_no_pending_responses()

    assert ref.startswith("pdf-")
    assert store.locator(ref) == f"http://minio:9000/certs/{ref}"


def test_s3_exists():
    store, client = _s3_store()
    with Stubber(client) as stub:
        stub.add_response("head_object", {}, {"Bucket": "certs", "Key": "pdf-1.pdf"})
        stub.add_client_error(
            "head_object", service_error_code="404", http_status_code=404,
            expected_params={"Bucket": "certs", "Key": "missing.pdf"},
        )
        assert store.exists("pdf-1.pdf")
        assert not store.exists("missing.pdf")


def test_s3_ensure_tolerates_existing_bucket():
    store, client = _s3_store()
    with Stubber(client) as stub:
        stub.add_client_error("create_bucket", service_error_code="BucketAlreadyOwnedByYou")
        store.ensure()


def test_make_blob_store(tmp_path):
    local = make_blob_store(Settings.for_data_dir(tmp_path))
    assert isinstance(local, LocalBlobStore)
    assert local.root == tmp_path / "uploads"

    s3 = make_blob_store(Settings.for_data_dir(
        tmp_path, blob_backend="s3", s3_endpoint="http://localhost:9000",
        s3_access_key="k", s3_secret_key="s", s3_bucket="b",
    ))
    assert isinstance(s3, S3BlobStore)
    assert s3.bucket == "b"

    with pytest.raises(ValueError):
        make_blob_store(Settings.for_data_dir(tmp_path, blob_backend="ftp"))

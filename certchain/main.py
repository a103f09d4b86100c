# certchain/main.py
import logging
from typing import Optional

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from certchain.blobs import LocalBlobStore, make_blob_store
from certchain.chain import CertificateRegistry
from certchain.config import get_settings
from certchain.errors import (
    ChainConfigError,
    StorageReadError,
    StorageWriteError,
    ValidationError,
)
from certchain.hashutil import canonicalize, content_hash, is_content_hash
from certchain.models import HashBody
from certchain.service import RecordService
from certchain.store import RecordStore

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="CertChain API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def _startup():
    settings = get_settings()
    app.state.settings = settings

    blobs = make_blob_store(settings)
    blobs.ensure()
    app.state.blobs = blobs

    app.state.store_error = None
    app.state.service = None
    try:
        store = RecordStore(settings.db_path, write_timeout=settings.write_timeout)
        app.state.service = RecordService(store, blobs)
        logger.info("Database: %s (%d records)", settings.db_path, len(store))
    except StorageReadError as e:
        # keep serving; lookups answer 503 instead of a false "not found"
        logger.error("Record store unavailable: %s", e)
        app.state.store_error = e

    app.state.registry = None
    if settings.chain_enabled:
        try:
            app.state.registry = CertificateRegistry.connect(settings.rpc_url, settings.artifacts_dir)
        except ChainConfigError as e:
            logger.warning("Chain lookup disabled: %s", e)


def _service() -> RecordService:
    if app.state.service is None:
        raise app.state.store_error or StorageReadError("record store not initialised")
    return app.state.service


# ---------- error mapping ----------

@app.exception_handler(ValidationError)
def _validation_error(_request: Request, e: ValidationError):
    logger.info("Rejected submission (%s): %s", e.kind, e.message)
    body = {"success": False, "kind": "validation", "reason": e.kind, "error": e.message}
    if e.fields:
        body["fields"] = e.fields
    return JSONResponse(status_code=400, content=body)


@app.exception_handler(StorageWriteError)
def _storage_write_error(_request: Request, e: StorageWriteError):
    return JSONResponse(
        status_code=500,
        content={"success": False, "kind": "storage", "reason": e.kind, "error": "Failed to write database."},
    )


@app.exception_handler(StorageReadError)
def _storage_read_error(_request: Request, e: StorageReadError):
    return JSONResponse(
        status_code=503,
        content={"success": False, "kind": "unavailable", "reason": e.kind, "error": "Record store unavailable."},
    )


# ---------- routes ----------

@app.get("/")
def health():
    service = app.state.service
    return {
        "message": "CertChain backend running",
        "records": len(service.store) if service is not None else None,
        "chainConnected": app.state.registry is not None,
    }


def _read_upload(upload: Optional[UploadFile]) -> Optional[UploadFile]:
    if upload is None or not upload.filename:
        return None
    return upload


@app.post("/api/certificates")
def create_certificate(
    name: Optional[str] = Form(None),
    course_name: Optional[str] = Form(None, alias="courseName"),
    institute_name: Optional[str] = Form(None, alias="instituteName"),
    pdf: Optional[UploadFile] = File(None),
    photo: Optional[UploadFile] = File(None),
):
    """
    Multipart upload: three text fields plus `pdf` and `photo` files.
    Returns {"success": true, "hash": "<64 hex>"} once the record is durable.
    """
    service = _service()
    raw = {"name": name, "courseName": course_name, "instituteName": institute_name}

    # text fields first so a bad form never leaves orphan blobs behind
    service.clean_fields(raw)

    pdf, photo = _read_upload(pdf), _read_upload(photo)
    if pdf is None or photo is None:
        raise ValidationError(
            "Both a PDF certificate and a student photo are required.",
            kind="missing_blob_ref",
            fields=[k for k, f in (("pdf", pdf), ("photo", photo)) if f is None],
        )

    blobs = app.state.blobs
    pdf_data = blobs.read_limited(pdf.file)
    photo_data = blobs.read_limited(photo.file)

    # both files must pass before either is written
    blobs.validate("pdf", pdf.content_type, len(pdf_data))
    blobs.validate("photo", photo.content_type, len(photo_data))

    pdf_ref = blobs.save("pdf", pdf.filename, pdf.content_type, pdf_data)
    photo_ref = blobs.save("photo", photo.filename, photo.content_type, photo_data)

    digest = service.submit(raw, pdf_ref, photo_ref)
    return {"success": True, "hash": digest}


@app.get("/api/certificates/{digest}")
def get_certificate(digest: str):
    certificate = _service().resolve(digest)
    if certificate is None:
        return JSONResponse(status_code=404, content={"success": False, "error": "Certificate not found."})
    return {"success": True, "certificate": certificate}


@app.get("/api/verify/{query}")
def verify(query: str):
    """
    Look up by on-chain certificate ID first, then fall back to treating
    `query` as a content hash.
    """
    service = _service()
    registry = app.state.registry

    if registry is not None:
        chain_hash = None
        try:
            chain_hash = registry.lookup(query)
        except Exception as e:
            logger.warning("Chain lookup for %r failed, trying hash: %s", query, e)
        if chain_hash:
            return {
                "found": True,
                "hash": chain_hash,
                "id": query,
                "certificate": service.resolve(chain_hash),
                "source": "blockchain",
            }

    if is_content_hash(query):
        certificate = service.resolve(query)
        if certificate is not None:
            return {"found": True, "hash": query, "id": None, "certificate": certificate, "source": "database"}

    return JSONResponse(
        status_code=404,
        content={"found": False, "hash": None, "id": None, "certificate": None, "source": None},
    )


@app.get("/uploads/{ref}")
def get_upload(ref: str):
    blobs = app.state.blobs
    if not isinstance(blobs, LocalBlobStore) or not blobs.exists(ref):
        raise HTTPException(status_code=404, detail="file not found")
    return FileResponse(blobs.root / ref)


@app.post("/debug/hash")
def debug_hash(body: HashBody):
    """
    POST a record and get back:
    - the canonical bytes (hex) we hash
    - the SHA-256 hash
    This lets you verify stability and see *exactly* what is hashed.
    """
    record = body.to_record()
    return {
        "ok": True,
        "canonical_hex": canonicalize(record).hex(),
        "hash": content_hash(record),
        "createdAt": record.to_json()["createdAt"],
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("certchain.main:app", host="0.0.0.0", port=get_settings().port)

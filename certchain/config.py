# certchain/config.py
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()  # loads .env from the working directory, if any

# Default data dir at the repo root: <repo>/data/
# (parents[1] = parent of "certchain" = the repo root)
REPO_ROOT = Path(__file__).resolve().parents[1]

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MB


class Settings(BaseModel):
    data_dir: Path
    db_path: Path
    uploads_dir: Path
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    write_timeout: float = 5.0

    blob_backend: str = "local"  # "local" | "s3"
    s3_endpoint: Optional[str] = None
    s3_access_key: Optional[str] = None
    s3_secret_key: Optional[str] = None
    s3_bucket: str = "certchain-uploads"

    chain_enabled: bool = False
    rpc_url: str = "http://127.0.0.1:8545"
    artifacts_dir: Path = REPO_ROOT / "artifacts"

    cors_origins: List[str] = ["*"]
    port: int = 5000

    @classmethod
    def for_data_dir(cls, data_dir: Path, **overrides) -> "Settings":
        data_dir = Path(data_dir)
        values = {
            "data_dir": data_dir,
            "db_path": data_dir / "database.json",
            "uploads_dir": data_dir / "uploads",
        }
        values.update(overrides)
        return cls(**values)


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def get_settings() -> Settings:
    """Build settings from the environment (and .env)."""
    data_dir = Path(os.getenv("CERTCHAIN_DATA_DIR", str(REPO_ROOT / "data")))
    origins = os.getenv("CORS_ORIGINS", "*")

    return Settings(
        data_dir=data_dir,
        db_path=Path(os.getenv("CERTCHAIN_DB_PATH", str(data_dir / "database.json"))),
        uploads_dir=Path(os.getenv("CERTCHAIN_UPLOADS_DIR", str(data_dir / "uploads"))),
        max_upload_bytes=int(os.getenv("CERTCHAIN_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)),
        write_timeout=float(os.getenv("CERTCHAIN_WRITE_TIMEOUT", "5")),
        blob_backend=os.getenv("CERTCHAIN_BLOB_BACKEND", "local"),
        s3_endpoint=os.getenv("S3_ENDPOINT"),
        s3_access_key=os.getenv("S3_ACCESS_KEY"),
        s3_secret_key=os.getenv("S3_SECRET_KEY"),
        s3_bucket=os.getenv("S3_BUCKET", "certchain-uploads"),
        chain_enabled=_flag(os.getenv("CERTCHAIN_CHAIN_ENABLED")),
        rpc_url=os.getenv("RPC_URL", "http://127.0.0.1:8545"),
        artifacts_dir=Path(os.getenv("CERTCHAIN_ARTIFACTS_DIR", str(REPO_ROOT / "artifacts"))),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        port=int(os.getenv("PORT", "5000")),
    )

from pathlib import Path

from certchain.config import DEFAULT_MAX_UPLOAD_BYTES, get_settings


def test_defaults_follow_data_dir(tmp_path, monkeypatch):
    for var in ("CERTCHAIN_DB_PATH", "CERTCHAIN_UPLOADS_DIR", "CERTCHAIN_MAX_UPLOAD_BYTES",
                "CERTCHAIN_CHAIN_ENABLED", "CORS_ORIGINS"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("CERTCHAIN_DATA_DIR", str(tmp_path))

    settings = get_settings()
    assert settings.db_path == tmp_path / "database.json"
    assert settings.uploads_dir == tmp_path / "uploads"
    assert settings.max_upload_bytes == DEFAULT_MAX_UPLOAD_BYTES
    assert settings.chain_enabled is False
    assert settings.cors_origins == ["*"]


def test_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("CERTCHAIN_DB_PATH", str(tmp_path / "db.json"))
    monkeypatch.setenv("CERTCHAIN_WRITE_TIMEOUT", "0.5")
    monkeypatch.setenv("CERTCHAIN_CHAIN_ENABLED", "true")
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost:5173, http://127.0.0.1:5173")

    settings = get_settings()
    assert settings.db_path == Path(tmp_path / "db.json")
    assert settings.write_timeout == 0.5
    assert settings.chain_enabled is True
    assert settings.cors_origins == ["http://localhost:5173", "http://127.0.0.1:5173"]

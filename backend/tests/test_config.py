"""
Unit tests for path resolution and environment-driven configuration.
Run from repo root: python -m pytest backend/tests/test_config.py -v
"""
from pathlib import Path


def test_backend_layout():
    """Package resolves from backend/ and the repo root sits above it."""
    from halalcheck import config
    assert config._BACKEND_DIR.is_dir()
    assert (config._BACKEND_DIR / "halalcheck").is_dir()
    assert config._REPO_ROOT.name != "halalcheck"


def test_session_cache_default_path(monkeypatch):
    from halalcheck.config import _REPO_ROOT, get_session_cache_path
    monkeypatch.delenv("SESSION_CACHE_PATH", raising=False)
    path = get_session_cache_path()
    assert path == _REPO_ROOT / "data" / "session_cache.json"
    assert path.suffix == ".json"


def test_session_cache_override(monkeypatch, tmp_path):
    from halalcheck.config import get_session_cache_path
    monkeypatch.setenv("SESSION_CACHE_PATH", str(tmp_path / "x.json"))
    assert get_session_cache_path() == tmp_path / "x.json"


def test_limits_are_fixed():
    from halalcheck.config import DEFAULT_CONFIDENCE, EVIDENCE_ALLOWED_MIME_TYPES, EVIDENCE_MAX_BYTES, SESSION_TTL_MS
    assert SESSION_TTL_MS == 86_400_000
    assert EVIDENCE_MAX_BYTES == 10_485_760
    assert set(EVIDENCE_ALLOWED_MIME_TYPES) == {"application/pdf", "image/jpeg", "image/png"}
    assert DEFAULT_CONFIDENCE == 70


def test_flags_from_env(monkeypatch):
    from halalcheck.config import (
        get_classifier_timeout,
        get_evidence_preview_dir,
        get_pipeline_store_url,
        get_require_client_reference,
    )
    monkeypatch.setenv("REQUIRE_CLIENT_REFERENCE", "yes")
    monkeypatch.setenv("CLASSIFIER_TIMEOUT", "15")
    monkeypatch.setenv("PIPELINE_STORE_URL", " http://pipeline.local ")
    monkeypatch.setenv("EVIDENCE_PREVIEW_DIR", "/tmp/previews")
    assert get_require_client_reference() is True
    assert get_classifier_timeout() == 15
    assert get_pipeline_store_url() == "http://pipeline.local"
    assert get_evidence_preview_dir() == Path("/tmp/previews")

    monkeypatch.setenv("REQUIRE_CLIENT_REFERENCE", "0")
    monkeypatch.delenv("EVIDENCE_PREVIEW_DIR")
    assert get_require_client_reference() is False
    assert get_evidence_preview_dir() is None

"""
Feature flags, paths, and centralized configuration.
All resolution relative to the backend directory.
"""
import os
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Repo root: backend/halalcheck/config.py -> parent=halalcheck, parent.parent=backend, parent.parent.parent=repo
_BACKEND_DIR = Path(__file__).resolve().parent.parent
_REPO_ROOT = _BACKEND_DIR.parent

# --- Fixed limits ---
SESSION_TTL_MS = 24 * 60 * 60 * 1000  # 86_400_000
EVIDENCE_MAX_BYTES = 10 * 1024 * 1024  # 10_485_760
EVIDENCE_ALLOWED_MIME_TYPES = ("application/pdf", "image/jpeg", "image/png")
DEFAULT_CONFIDENCE = 70


def _env_flag(name: str, default: str = "") -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


# --- Data paths ---
def get_session_cache_path() -> Path:
    override = os.environ.get("SESSION_CACHE_PATH", "").strip()
    if override:
        return Path(override)
    return _REPO_ROOT / "data" / "session_cache.json"


def get_evidence_preview_dir() -> Optional[Path]:
    """None means a private temp directory per session."""
    raw = os.environ.get("EVIDENCE_PREVIEW_DIR", "").strip()
    return Path(raw) if raw else None


# --- Classifier (lazy read from env) ---
def get_classifier_url() -> str:
    return os.environ.get("CLASSIFIER_API_URL", "http://localhost:3001/api/analysis/analyze")


def get_classifier_timeout() -> int:
    return int(os.environ.get("CLASSIFIER_TIMEOUT", "60"))


# --- Pipeline store ---
def get_pipeline_store_url() -> str:
    return os.environ.get("PIPELINE_STORE_URL", "").strip()


def get_require_client_reference() -> bool:
    return _env_flag("REQUIRE_CLIENT_REFERENCE", "false")


# --- Startup logging ---
def log_config() -> None:
    logger.info(
        "CONFIG: classifier_url=%s classifier_timeout=%ds pipeline_store=%s require_client=%s "
        "session_cache=%s preview_dir=%s",
        get_classifier_url(), get_classifier_timeout(),
        get_pipeline_store_url() or "in-memory",
        get_require_client_reference(),
        get_session_cache_path(),
        get_evidence_preview_dir() or "tempdir",
    )

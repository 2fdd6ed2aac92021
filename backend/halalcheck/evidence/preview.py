"""
Local preview files for uploaded evidence. Each handle is owned by exactly one
EvidenceRecord and must be released on record removal or session end.
"""
import logging
import shutil
import tempfile
import threading
import uuid
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class PreviewStore:
    """Writes preview bytes under a private directory; handle = absolute file path."""

    def __init__(self, root: Optional[Path] = None):
        self._owns_root = root is None
        self._root = Path(root) if root is not None else Path(tempfile.mkdtemp(prefix="halalcheck-preview-"))
        self._root.mkdir(parents=True, exist_ok=True)
        self._handles: set[str] = set()
        self._lock = threading.Lock()

    @property
    def root(self) -> Path:
        return self._root

    def create(self, data: bytes, suffix: str = "") -> str:
        path = self._root / f"{uuid.uuid4().hex}{suffix}"
        path.write_bytes(data)
        handle = str(path)
        with self._lock:
            self._handles.add(handle)
        return handle

    def release(self, handle: Optional[str]) -> None:
        """Idempotent: unknown or already-released handles are ignored."""
        if not handle:
            return
        with self._lock:
            if handle not in self._handles:
                return
            self._handles.discard(handle)
        Path(handle).unlink(missing_ok=True)
        logger.debug("PREVIEW released handle=%s", handle)

    def release_all(self) -> int:
        with self._lock:
            handles = list(self._handles)
            self._handles.clear()
        for handle in handles:
            Path(handle).unlink(missing_ok=True)
        if self._owns_root:
            shutil.rmtree(self._root, ignore_errors=True)
        if handles:
            logger.info("PREVIEW released_all count=%d", len(handles))
        return len(handles)

    def active_handles(self) -> set[str]:
        with self._lock:
            return set(self._handles)

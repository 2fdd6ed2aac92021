"""
Session-scoped cache of assessment histories.
- Backend: JSON file (data/session_cache.json) so a reload within 24h restores results.
- Record: {singleProductHistory, batchHistory, lastPersistedAt (epoch ms)}.
- Reads older than SESSION_TTL_MS from lastPersistedAt are treated as absent.
- Unreadable record -> cold start, never an error for the caller.
- Merge-on-save: only provided fields are written; omitted fields are kept.
"""
import json
import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Optional

from halalcheck.config import SESSION_TTL_MS, get_session_cache_path
from halalcheck.errors import CacheCorrupt, StaleCache, StateError
from halalcheck.evaluation.rollup import apply_rollup
from halalcheck.models.assessment import ProductAssessment

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class SessionState:
    single_product_history: List[ProductAssessment] = field(default_factory=list)  # most recent first
    batch_history: List[ProductAssessment] = field(default_factory=list)
    last_persisted_at: Optional[int] = None

    def is_empty(self) -> bool:
        return not self.single_product_history and not self.batch_history

    def to_record(self) -> dict[str, Any]:
        return {
            "singleProductHistory": [a.to_dict() for a in self.single_product_history],
            "batchHistory": [a.to_dict() for a in self.batch_history],
            "lastPersistedAt": self.last_persisted_at,
        }

    @classmethod
    def from_record(cls, data: Any) -> "SessionState":
        """Parse a persisted record. Raises CacheCorrupt on any shape problem."""
        try:
            stamp = data["lastPersistedAt"]
            if stamp is None or isinstance(stamp, bool):
                raise ValueError("lastPersistedAt missing")
            single = [ProductAssessment.from_dict(a) for a in data.get("singleProductHistory") or []]
            batch = [ProductAssessment.from_dict(a) for a in data.get("batchHistory") or []]
            last = int(stamp)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CacheCorrupt(f"invalid session record: {e}") from e
        # Derived fields are never trusted from disk
        for a in single + batch:
            apply_rollup(a)
        return cls(single_product_history=single, batch_history=batch, last_persisted_at=last)


class SessionCache:
    """
    Explicit session state with load/save/append/merge/replace.
    Mutations stamp lastPersistedAt and persist immediately.
    """

    def __init__(self, path: Optional[Path] = None, clock: Optional[Callable[[], int]] = None):
        self._path = Path(path) if path is not None else get_session_cache_path()
        self._clock = clock or _now_ms
        self._state = SessionState()
        self._lock = threading.RLock()
        # Called with the assessments dropped when in-memory state outlives the TTL
        self.on_expire: Optional[Callable[[List[ProductAssessment]], None]] = None

    @property
    def path(self) -> Path:
        return self._path

    # --- persistence ---

    def _read_record(self, now: int) -> SessionState:
        if not self._path.exists():
            return SessionState()
        try:
            with open(self._path, encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:  # includes JSONDecodeError, UnicodeDecodeError
            raise CacheCorrupt(f"unreadable session record: {e}") from e
        state = SessionState.from_record(raw)
        age = now - state.last_persisted_at
        if age >= SESSION_TTL_MS:
            raise StaleCache(f"session record age {age}ms exceeds {SESSION_TTL_MS}ms")
        return state

    def _write_record(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(self._state.to_record(), f, indent=2)
        tmp.replace(self._path)

    def _is_stale(self, now: int) -> bool:
        stamp = self._state.last_persisted_at
        return stamp is not None and now - stamp >= SESSION_TTL_MS

    def _fresh_state(self, now: int) -> SessionState:
        if self._is_stale(now):
            dropped = self._state.single_product_history + self._state.batch_history
            logger.info(
                "SESSION_CACHE stale in-memory state dropped last_persisted_at=%s dropped=%d",
                self._state.last_persisted_at, len(dropped),
            )
            self._state = SessionState()
            if self.on_expire is not None and dropped:
                self.on_expire(dropped)
        return self._state

    # --- public API ---

    def load(self, now: Optional[int] = None) -> SessionState:
        """Load persisted state if younger than the TTL; otherwise start empty."""
        now = self._clock() if now is None else now
        with self._lock:
            try:
                self._state = self._read_record(now)
            except StateError as e:
                logger.warning("SESSION_CACHE cold_start path=%s reason=%s", self._path, e)
                self._state = SessionState()
            logger.info(
                "SESSION_CACHE load single=%d batch=%d",
                len(self._state.single_product_history), len(self._state.batch_history),
            )
            return self._state

    def save(self, update: Optional[dict] = None, now: Optional[int] = None) -> SessionState:
        """
        Merge provided fields (single_product_history, batch_history) into state,
        stamp lastPersistedAt = now and persist.
        """
        now = self._clock() if now is None else now
        with self._lock:
            state = self._fresh_state(now)
            update = update or {}
            if update.get("single_product_history") is not None:
                state.single_product_history = list(update["single_product_history"])
            if update.get("batch_history") is not None:
                state.batch_history = list(update["batch_history"])
            state.last_persisted_at = now
            self._write_record()
            return state

    def snapshot(self, now: Optional[int] = None) -> SessionState:
        now = self._clock() if now is None else now
        with self._lock:
            return self._fresh_state(now)

    def append_single(self, assessment: ProductAssessment) -> SessionState:
        with self._lock:
            state = self._fresh_state(self._clock())
            return self.save({"single_product_history": [assessment] + state.single_product_history})

    def merge_batch(self, new_batch: List[ProductAssessment]) -> SessionState:
        """Empty history -> replace; otherwise new batch goes ahead of prior batches."""
        with self._lock:
            state = self._fresh_state(self._clock())
            if not state.batch_history:
                merged = list(new_batch)
            else:
                merged = list(new_batch) + state.batch_history
            logger.info(
                "SESSION_CACHE merge_batch new=%d existing=%d total=%d",
                len(new_batch), len(state.batch_history), len(merged),
            )
            return self.save({"batch_history": merged})

    def find(self, assessment_id: str) -> Optional[ProductAssessment]:
        with self._lock:
            state = self._fresh_state(self._clock())
            for a in state.single_product_history + state.batch_history:
                if a.id == assessment_id:
                    return a
            return None

    def replace(self, assessment: ProductAssessment) -> bool:
        """Swap in a recomputed assessment by id. Returns False if it is not cached."""
        with self._lock:
            state = self._fresh_state(self._clock())
            found = False
            single = list(state.single_product_history)
            batch = list(state.batch_history)
            for history in (single, batch):
                for idx, a in enumerate(history):
                    if a.id == assessment.id:
                        history[idx] = assessment
                        found = True
            if found:
                self.save({"single_product_history": single, "batch_history": batch})
            return found

    def clear(self) -> List[ProductAssessment]:
        """Drop all state and the persisted record. Returns the dropped assessments."""
        with self._lock:
            dropped = self._state.single_product_history + self._state.batch_history
            self._state = SessionState()
            self._path.unlink(missing_ok=True)
            logger.info("SESSION_CACHE cleared dropped=%d", len(dropped))
            return dropped

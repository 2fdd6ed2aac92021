"""
Pipeline store connectors. The store owns entries once submitted.
HttpPipelineStore posts to PIPELINE_STORE_URL; InMemoryPipelineStore is for local runs and tests.
"""
import logging
import threading
import uuid
from typing import Any, Dict, List, Optional

from halalcheck.config import get_pipeline_store_url
from halalcheck.errors import PipelineUnavailable
from halalcheck.external_apis.http_retry import post_with_retries
from halalcheck.models.pipeline import PipelineEntry

logger = logging.getLogger(__name__)


class PipelineStore:
    def submit(self, entry: PipelineEntry) -> Dict[str, Any]:
        raise NotImplementedError


class InMemoryPipelineStore(PipelineStore):

    def __init__(self):
        self._entries: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def submit(self, entry: PipelineEntry) -> Dict[str, Any]:
        stored = {"id": uuid.uuid4().hex, **entry.to_payload()}
        with self._lock:
            self._entries.append(stored)
        logger.info("PIPELINE_STORE in_memory stored id=%s source=%s", stored["id"], entry.source_assessment_id)
        return stored

    @property
    def entries(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._entries)


class HttpPipelineStore(PipelineStore):

    def __init__(self, url: str, timeout: int = 30, max_retries: int = 3):
        self.url = url
        self.timeout = timeout
        self.max_retries = max_retries

    def submit(self, entry: PipelineEntry) -> Dict[str, Any]:
        resp, error = post_with_retries(
            self.url, entry.to_payload(), timeout=self.timeout, max_retries=self.max_retries,
        )
        if resp is None:
            raise PipelineUnavailable(f"pipeline store unreachable: {error}")
        if resp.status_code >= 400:
            raise PipelineUnavailable(f"pipeline store returned HTTP {resp.status_code}")
        try:
            body = resp.json()
        except ValueError:
            body = {}
        logger.info("PIPELINE_STORE http stored source=%s status=%s", entry.source_assessment_id, resp.status_code)
        return body if isinstance(body, dict) else {"response": body}


def get_pipeline_store(url: Optional[str] = None) -> PipelineStore:
    url = url if url is not None else get_pipeline_store_url()
    if url:
        return HttpPipelineStore(url)
    return InMemoryPipelineStore()

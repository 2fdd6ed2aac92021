"""
Client for the external ingredient classifier.
Request:  {productName, ingredientsText}
Response: ordered list of {name, label, confidence, category, reasoning, alternatives, references},
either bare or under "ingredients". Fields beyond name/label/confidence are passed through.
"""
import logging
from typing import Any, List, Optional

from halalcheck.config import get_classifier_timeout, get_classifier_url
from halalcheck.errors import ClassifierUnavailable
from halalcheck.external_apis.http_retry import post_with_retries

logger = logging.getLogger(__name__)


def _extract_records(body: Any) -> List[Any]:
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        for key in ("ingredients", "results"):
            if isinstance(body.get(key), list):
                return body[key]
        analysis = body.get("analysis")
        if isinstance(analysis, dict) and isinstance(analysis.get("ingredients"), list):
            return analysis["ingredients"]
    raise ClassifierUnavailable("classifier response has no ingredient list")


class ClassifierClient:

    def __init__(self, url: Optional[str] = None, timeout: Optional[int] = None, max_retries: int = 3):
        self.url = url or get_classifier_url()
        self.timeout = timeout or get_classifier_timeout()
        self.max_retries = max_retries

    def classify(self, product_name: str, ingredients_text: str) -> List[Any]:
        """
        Returns the raw, ordered classifier records.
        Raises ClassifierUnavailable on network failure, non-2xx, or unparseable body.
        """
        payload = {"productName": product_name, "ingredientsText": ingredients_text}
        resp, error = post_with_retries(
            self.url, payload, timeout=self.timeout, max_retries=self.max_retries,
        )
        if resp is None:
            logger.error("CLASSIFIER failed product=%s error=%s", product_name[:60], error)
            raise ClassifierUnavailable(f"classifier unreachable: {error}")
        if resp.status_code != 200:
            logger.error("CLASSIFIER http_error product=%s status=%s", product_name[:60], resp.status_code)
            raise ClassifierUnavailable(f"classifier returned HTTP {resp.status_code}")
        try:
            body = resp.json()
        except ValueError as e:
            raise ClassifierUnavailable(f"classifier returned invalid JSON: {e}") from e
        records = _extract_records(body)
        logger.info("CLASSIFIER ok product=%s records=%d", product_name[:60], len(records))
        return records

"""
Unit tests for the classifier connector (mocked HTTP).
Run from repo root: python -m pytest backend/tests/test_classifier_client.py -v
"""
from unittest.mock import MagicMock, patch

import pytest


@patch("halalcheck.external_apis.http_retry.requests.post")
def test_classify_bare_list(mock_post):
    from halalcheck.external_apis.classifier import ClassifierClient
    records = [{"name": "Sugar", "label": "HALAL", "confidence": 95}]
    mock_post.return_value = MagicMock(status_code=200, json=lambda: records)
    client = ClassifierClient(url="http://classifier.local/analyze", timeout=5)
    assert client.classify("Candy", "sugar") == records
    _, kwargs = mock_post.call_args
    assert kwargs["json"] == {"productName": "Candy", "ingredientsText": "sugar"}
    assert kwargs["timeout"] == 5


@patch("halalcheck.external_apis.http_retry.requests.post")
def test_classify_wrapped_response(mock_post):
    from halalcheck.external_apis.classifier import ClassifierClient
    body = {"overall": "APPROVED", "ingredients": [{"name": "Salt", "status": "APPROVED"}]}
    mock_post.return_value = MagicMock(status_code=200, json=lambda: body)
    assert ClassifierClient(url="http://x").classify("P", "salt") == body["ingredients"]


@patch("halalcheck.external_apis.http_retry.requests.post")
def test_classify_http_error(mock_post):
    from halalcheck.errors import ClassifierUnavailable
    from halalcheck.external_apis.classifier import ClassifierClient
    mock_post.return_value = MagicMock(status_code=400, json=lambda: {})
    with pytest.raises(ClassifierUnavailable):
        ClassifierClient(url="http://x").classify("P", "salt")


@patch("halalcheck.external_apis.http_retry.requests.post")
def test_classify_missing_ingredient_list(mock_post):
    from halalcheck.errors import ClassifierUnavailable
    from halalcheck.external_apis.classifier import ClassifierClient
    mock_post.return_value = MagicMock(status_code=200, json=lambda: {"message": "ok"})
    with pytest.raises(ClassifierUnavailable):
        ClassifierClient(url="http://x").classify("P", "salt")


@patch("halalcheck.external_apis.http_retry.time.sleep")
@patch("halalcheck.external_apis.http_retry.requests.post")
def test_retries_on_timeout_then_succeeds(mock_post, mock_sleep):
    import requests
    from halalcheck.external_apis.classifier import ClassifierClient
    ok = MagicMock(status_code=200, json=lambda: [])
    mock_post.side_effect = [requests.Timeout("slow"), ok]
    assert ClassifierClient(url="http://x", max_retries=3).classify("P", "x") == []
    assert mock_post.call_count == 2
    mock_sleep.assert_called_once_with(1.0)


@patch("halalcheck.external_apis.http_retry.time.sleep")
@patch("halalcheck.external_apis.http_retry.requests.post")
def test_server_errors_exhaust_retries(mock_post, _sleep):
    from halalcheck.errors import ClassifierUnavailable
    from halalcheck.external_apis.classifier import ClassifierClient
    mock_post.return_value = MagicMock(status_code=503)
    with pytest.raises(ClassifierUnavailable):
        ClassifierClient(url="http://x", max_retries=3).classify("P", "x")
    assert mock_post.call_count == 3

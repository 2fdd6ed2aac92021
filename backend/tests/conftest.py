"""
Shared fixtures: isolated session cache path, preview dir, fake classifier.
"""
import pytest


class FakeClassifier:
    """Returns canned records per product name; raises if configured to fail."""

    def __init__(self, responses=None, fail_for=()):
        self.responses = responses or {}
        self.fail_for = set(fail_for)
        self.calls = []

    def classify(self, product_name, ingredients_text):
        from halalcheck.errors import ClassifierUnavailable
        self.calls.append((product_name, ingredients_text))
        if product_name in self.fail_for:
            raise ClassifierUnavailable("classifier unreachable: simulated")
        return list(self.responses.get(product_name, []))


class Clock:
    def __init__(self, start=1_700_000_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture()
def clock():
    return Clock()


@pytest.fixture()
def cache_path(tmp_path):
    return tmp_path / "session_cache.json"


@pytest.fixture()
def previews(tmp_path):
    from halalcheck.evidence.preview import PreviewStore
    store = PreviewStore(tmp_path / "previews")
    yield store
    store.release_all()


@pytest.fixture()
def fake_classifier():
    return FakeClassifier(
        responses={
            "Biscuits": [
                {"name": "Wheat flour", "label": "HALAL", "confidence": 90, "category": "Grain"},
                {"name": "E471 Mono- and diglycerides", "label": "MASHBOOH", "confidence": 60,
                 "reasoning": "Source may be animal fat"},
            ],
            "Gummies": [
                {"name": "Pork gelatin", "label": "HARAM", "confidence": 95},
                {"name": "Sugar", "label": "HALAL", "confidence": 90},
            ],
            "Crackers": [
                {"name": "Wheat flour", "label": "HALAL", "confidence": 95},
                {"name": "Salt", "label": "HALAL", "confidence": 99},
            ],
        },
        fail_for={"Offline"},
    )


@pytest.fixture()
def session(cache_path, previews, fake_classifier, clock):
    from halalcheck.pipeline.store import InMemoryPipelineStore
    from halalcheck.service import AnalysisSession
    from halalcheck.session.cache import SessionCache
    s = AnalysisSession(
        cache=SessionCache(path=cache_path, clock=clock),
        classifier=fake_classifier,
        previews=previews,
        pipeline_store=InMemoryPipelineStore(),
        require_client=False,
        clock=clock,
    )
    s.start()
    yield s
    s.close()


def pdf_upload(name="certificate.pdf", size=128, declared="CERTIFICATE"):
    from halalcheck.evidence.ledger import EvidenceUpload
    from halalcheck.models.assessment import EvidenceType
    return EvidenceUpload(
        filename=name,
        mime_type="application/pdf",
        data=b"%PDF" + b"0" * max(0, size - 4),
        declared_type=EvidenceType.parse(declared),
    )


@pytest.fixture()
def make_upload():
    return pdf_upload
